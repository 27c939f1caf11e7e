"""Error taxonomy for the capability bridge, plus retry helpers."""

import asyncio
import builtins
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    NETWORK = "network"  # Provider unreachable, handshake failed
    VALIDATION = "validation"  # Argument bag rejected by schema
    NOT_FOUND = "not_found"  # Unknown tool or unresolvable resource
    API_ERROR = "api_error"  # Remote call failed
    INTERNAL = "internal"  # Catalog invariant violated


class BridgeError(Exception):
    """Base exception for every failure the bridge raises."""
    category: ErrorCategory = ErrorCategory.API_ERROR
    retryable: bool = False

    def __init__(self, message: str, tool_name: Optional[str] = None):
        self.message = message
        self.tool_name = tool_name
        super().__init__(message)

    def with_tool(self, tool_name: str) -> "BridgeError":
        """Attach tool name context (keeps an existing one)."""
        if not self.tool_name:
            self.tool_name = tool_name
        return self

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "tool_name": self.tool_name,
        }


class ConnectionError(BridgeError):
    """Provider unreachable or handshake failed."""
    category = ErrorCategory.NETWORK
    retryable = True

    def __init__(self, message: str, provider_url: Optional[str] = None):
        self.provider_url = provider_url
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["provider_url"] = self.provider_url
        return data


@dataclass(frozen=True)
class FieldIssue:
    """A single offending field in a rejected argument bag."""
    field: str
    expected: str  # declared type, e.g. "string"
    message: str  # human readable

    def __str__(self) -> str:
        return f"{self.field} (expected {self.expected}): {self.message}"


class ValidationError(BridgeError):
    """Argument bag does not satisfy the tool's input schema."""
    category = ErrorCategory.VALIDATION

    def __init__(self, issues: List[FieldIssue], tool_name: Optional[str] = None):
        self.issues = list(issues)
        fields = ", ".join(str(issue) for issue in self.issues) or "no details"
        super().__init__(f"Invalid arguments: {fields}", tool_name=tool_name)

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["issues"] = [
            {"field": i.field, "expected": i.expected, "message": i.message}
            for i in self.issues
        ]
        return data


class UnknownToolError(BridgeError):
    """Tool name is not invocable (never registered or no owner)."""
    category = ErrorCategory.NOT_FOUND

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found", tool_name=tool_name)


class ResourceNotFoundError(BridgeError):
    """No provider connection could resolve a resource URI."""
    category = ErrorCategory.NOT_FOUND

    def __init__(self, uri: str, reason: Optional[str] = None):
        self.uri = uri
        message = f"Resource not found: {uri}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["uri"] = self.uri
        return data


class InvocationError(BridgeError):
    """The remote tool call itself failed."""
    category = ErrorCategory.API_ERROR

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        provider_url: Optional[str] = None,
        code: Optional[int] = None,
    ):
        self.provider_url = provider_url
        self.code = code
        super().__init__(message, tool_name=tool_name)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["provider_url"] = self.provider_url
        data["code"] = self.code
        return data


class InternalConsistencyError(BridgeError):
    """Catalog invariant violated. Indicates a bug, not a user error."""
    category = ErrorCategory.INTERNAL

    def __init__(self, tool_name: str, detail: str):
        self.detail = detail
        super().__init__(
            f"Catalog inconsistency for tool '{tool_name}': {detail}",
            tool_name=tool_name,
        )


def classify_error(error: Exception) -> Tuple[ErrorCategory, bool]:
    """
    Classify an error into a category and determine if it's retryable.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (category, retryable)
    """
    if isinstance(error, BridgeError):
        return error.category, error.retryable
    if isinstance(error, (builtins.ConnectionError, asyncio.TimeoutError, OSError)):
        return ErrorCategory.NETWORK, True
    return ErrorCategory.API_ERROR, False


async def retry_with_backoff(
    func: Callable,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], Any]] = None,
) -> Any:
    """
    Retry an async function with exponential backoff.

    Args:
        func: Async function (no arguments) to retry
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        retryable_exceptions: Exception types eligible for a retry
        on_retry: Optional callback called on each retry (exception, attempt_number)

    Returns:
        Result of the function call

    Raises:
        Last exception if all retries fail
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except retryable_exceptions as e:
            _, retryable = classify_error(e)
            if not retryable or attempt >= max_retries:
                raise

            delay = min(initial_delay * (exponential_base ** attempt), max_delay)
            # Jitter to avoid thundering herd
            delay += random.uniform(0, delay * 0.1)

            if on_retry:
                result = on_retry(e, attempt + 1)
                if asyncio.iscoroutine(result):
                    await result

            logger.info(
                "Retrying after failure",
                extra={"attempt": attempt + 1, "delay_s": round(delay, 3), "error": str(e)},
            )
            await asyncio.sleep(delay)
