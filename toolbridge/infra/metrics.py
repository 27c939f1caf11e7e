"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Request metrics
request_count = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

# Tool metrics
tool_calls_total = Counter(
    "tool_calls_total",
    "Total tool calls routed through the catalog",
    ["tool_name", "provider", "status"],  # status: success | validation_error | unknown_tool | failure
)

tool_call_duration = Histogram(
    "tool_call_duration_seconds",
    "Tool call duration in seconds",
    ["tool_name", "provider"],
)

# Provider metrics
provider_connections = Gauge(
    "mcp_provider_connections",
    "Number of connected MCP providers",
)

provider_connect_total = Counter(
    "mcp_provider_connect_total",
    "MCP provider connection attempts",
    ["provider", "status"],
)

metadata_lookups_total = Counter(
    "capability_metadata_lookups_total",
    "Descriptive metadata lookups during capability synthesis",
    ["status"],  # found | missing | no_template
)

# Argument generation (LLM) metrics
llm_calls_total = Counter(
    "llm_calls_total",
    "Total LLM calls made to generate tool arguments",
    ["provider", "model", "status"],
)

llm_call_duration = Histogram(
    "llm_call_duration_seconds",
    "LLM call duration in seconds",
    ["provider", "model"],
)

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total LLM tokens",
    ["provider", "model", "type"],  # type: prompt or completion
)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
