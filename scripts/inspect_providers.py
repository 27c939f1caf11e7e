#!/usr/bin/env python3
"""Connect to the configured MCP providers and print what they expose.

Usage:
    python scripts/inspect_providers.py [--providers JSON] [--output FILE]

Providers default to the MCP_PROVIDERS environment variable (or .env), e.g.
    MCP_PROVIDERS='[{"url": "https://tools.example.com/mcp", "api_key_env": "TOOLS_KEY"}]'
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from toolbridge.adapters.vendor_adapter_openai import OpenAIArgumentGenerator
from toolbridge.infra.config import load_provider_configs
from toolbridge.infra.errors import BridgeError
from toolbridge.services.bridge import create_bridge


async def inspect(providers_json=None):
    """Build a bridge and describe its catalog as a JSON-serializable dict."""
    providers = load_provider_configs(providers_json)
    bridge = await create_bridge(OpenAIArgumentGenerator(), providers=providers)
    try:
        catalog = bridge.catalog
        templates = await catalog.list_metadata_templates()
        return {
            "providers": [
                {"url": c.url, "server": c.server_info, "capabilities": c.server_capabilities}
                for c in catalog.connections
            ],
            "tools": [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "provider": catalog.get_tool_provider(tool.name),
                    "input_schema": catalog.get_validator(tool.name).json_schema(),
                }
                for tool in catalog.list_tools()
            ],
            "resource_templates": [t.model_dump(by_alias=True) for t in templates],
            "capabilities": [
                {
                    "name": c.name,
                    "similes": list(c.similes),
                    "examples": [[turn.model_dump() for turn in exchange] for exchange in c.examples],
                }
                for c in bridge.capabilities
            ],
        }
    finally:
        await bridge.cleanup()


async def main():
    parser = argparse.ArgumentParser(description="Inspect configured MCP providers")
    parser.add_argument(
        "--providers",
        type=str,
        default=None,
        help="JSON array of providers (default: MCP_PROVIDERS)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the report to a file instead of stdout",
    )

    args = parser.parse_args()

    try:
        report = await inspect(args.providers)
    except (BridgeError, ValueError) as e:
        print(f"✗ Error inspecting providers: {e}", file=sys.stderr)
        sys.exit(1)

    text = json.dumps(report, indent=2, default=str)
    if args.output:
        Path(args.output).write_text(text)
        print(f"✓ Report written to {args.output}")
    else:
        print(text)


if __name__ == "__main__":
    asyncio.run(main())
