"""OpenAI adapter that fills tool arguments from conversation context."""

import json
import logging
import time
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from toolbridge.infra.config import config
from toolbridge.infra.errors import InvocationError
from toolbridge.infra.metrics import llm_call_duration, llm_calls_total, llm_tokens_total
from toolbridge.models.capability import ConversationContext
from toolbridge.models.tool import ToolDefinition
from toolbridge.services.schema_compiler import CompiledValidator

logger = logging.getLogger(__name__)

ARGUMENT_PROMPT = """You prepare the arguments for a single tool call.

Tool: {name}
Description: {description}

Respond with one JSON object that matches this JSON schema exactly.
Only use information present in the conversation. Omit optional
properties you have no value for.

{schema}"""


class OpenAIArgumentGenerator:
    """Asks a chat model for values of exactly the tool's declared properties."""

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or config.ARGUMENT_MODEL
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            api_key = self._api_key or config.OPENAI_API_KEY
            if not api_key:
                raise ValueError("OPENAI_API_KEY not configured")
            self._client = AsyncOpenAI(api_key=api_key)
        return self._client

    async def generate_arguments(
        self,
        context: ConversationContext,
        tool: ToolDefinition,
        validator: CompiledValidator,
    ) -> Dict[str, Any]:
        """
        Generate an argument bag for a tool from the conversation.

        Returns:
            Dict of argument values (validated later by the catalog)

        Raises:
            InvocationError: If the model call fails or returns non-object JSON
        """
        if not validator.fields:
            return {}

        messages = [
            {
                "role": "system",
                "content": ARGUMENT_PROMPT.format(
                    name=tool.name,
                    description=tool.description or "(none)",
                    schema=json.dumps(validator.json_schema(), indent=2),
                ),
            },
            {"role": "user", "content": context.recent_messages or ""},
        ]

        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            llm_calls_total.labels(provider="openai", model=self.model, status="error").inc()
            logger.error(
                f"Argument generation failed for {tool.name}: {type(e).__name__}: {str(e)}",
                extra={"tool_name": tool.name, "model": self.model},
            )
            raise InvocationError(f"Argument generation failed: {str(e)}", tool_name=tool.name) from e
        finally:
            llm_call_duration.labels(provider="openai", model=self.model).observe(time.time() - start_time)

        llm_calls_total.labels(provider="openai", model=self.model, status="success").inc()
        self._record_usage(getattr(response, "usage", None))

        content = response.choices[0].message.content if response.choices else None
        try:
            args = json.loads(content or "{}")
        except json.JSONDecodeError as e:
            raise InvocationError(f"Model returned invalid JSON arguments: {str(e)}", tool_name=tool.name)

        if not isinstance(args, dict):
            raise InvocationError("Model returned non-object arguments", tool_name=tool.name)
        return args

    def _record_usage(self, usage: Any) -> None:
        prompt_tokens = getattr(usage, "prompt_tokens", None)
        completion_tokens = getattr(usage, "completion_tokens", None)
        if isinstance(prompt_tokens, int):
            llm_tokens_total.labels(provider="openai", model=self.model, type="prompt").inc(prompt_tokens)
        if isinstance(completion_tokens, int):
            llm_tokens_total.labels(provider="openai", model=self.model, type="completion").inc(completion_tokens)
