"""Configuration management for the capability bridge."""

import json
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from toolbridge.models.provider import ProviderConfig

# Load .env file from project root
# This ensures dotenv works regardless of where the script is run from
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

# override=False means existing environment variables take precedence
load_dotenv(dotenv_path=env_file, override=False)


class Config:
    """Application configuration read from the environment."""
    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # MCP providers: JSON array of {"url", "api_key"?, "api_key_env"?, "name"?, "version"?}
    MCP_PROVIDERS: str = os.getenv("MCP_PROVIDERS", "[]")
    MCP_REQUEST_TIMEOUT: float = float(os.getenv("MCP_REQUEST_TIMEOUT", "30"))
    MCP_CONNECT_RETRIES: int = int(os.getenv("MCP_CONNECT_RETRIES", "0"))
    MCP_PROTOCOL_VERSION: str = os.getenv("MCP_PROTOCOL_VERSION", "2024-11-05")

    # HTTP surface
    BRIDGE_API_KEY: Optional[str] = os.getenv("BRIDGE_API_KEY")

    # Argument generation
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    ARGUMENT_MODEL: str = os.getenv("ARGUMENT_MODEL", "gpt-4o-mini")


config = Config()


def load_provider_configs(raw: Optional[str] = None) -> List[ProviderConfig]:
    """
    Parse provider configuration into ProviderConfig objects.

    Args:
        raw: JSON array string; defaults to the MCP_PROVIDERS setting

    Returns:
        Provider configs in declaration order

    Raises:
        ValueError: If the JSON is malformed or an entry is invalid
    """
    raw = config.MCP_PROVIDERS if raw is None else raw
    try:
        entries = json.loads(raw or "[]")
    except json.JSONDecodeError as e:
        raise ValueError(f"MCP_PROVIDERS is not valid JSON: {e}")

    if not isinstance(entries, list):
        raise ValueError("MCP_PROVIDERS must be a JSON array")

    providers = []
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            entry = {"url": entry}
        if not isinstance(entry, dict):
            raise ValueError(f"MCP_PROVIDERS[{index}] must be an object or URL string")

        entry = dict(entry)
        # api_key_env names an environment variable holding the credential
        key_env = entry.pop("api_key_env", None)
        if key_env and not entry.get("api_key"):
            entry["api_key"] = os.getenv(key_env)

        providers.append(ProviderConfig(**entry))

    return providers
