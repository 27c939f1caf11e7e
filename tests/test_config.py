"""Tests for provider configuration loading."""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from toolbridge.infra.config import load_provider_configs
from toolbridge.models.provider import ProviderConfig


class TestLoadProviderConfigs:

    def test_objects_and_url_strings(self):
        providers = load_provider_configs(json.dumps([
            {"url": "https://a.example.com/mcp", "api_key": "k1", "name": "agent", "version": "2.0.0"},
            "wss://b.example.com/ws",
        ]))

        assert [p.url for p in providers] == ["https://a.example.com/mcp", "wss://b.example.com/ws"]
        assert providers[0].api_key.get_secret_value() == "k1"
        assert providers[0].client_name == "agent"
        assert providers[1].transport == "websocket"
        assert providers[1].client_name == "mcp-client"
        assert providers[1].client_version == "1.0.0"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("SEARCH_PROVIDER_KEY", "from-env")
        providers = load_provider_configs(json.dumps([
            {"url": "https://a.example.com/mcp", "api_key_env": "SEARCH_PROVIDER_KEY"},
        ]))
        assert providers[0].api_key.get_secret_value() == "from-env"

    def test_empty(self):
        assert load_provider_configs("[]") == []
        assert load_provider_configs("") == []

    def test_malformed_json(self):
        with pytest.raises(ValueError):
            load_provider_configs("[{")

    def test_not_an_array(self):
        with pytest.raises(ValueError):
            load_provider_configs('{"url": "https://a.example.com/mcp"}')

    def test_bad_entry(self):
        with pytest.raises(ValueError):
            load_provider_configs("[42]")


class TestProviderConfig:

    @pytest.mark.parametrize("url", ["ftp://a.example.com", "a.example.com/mcp", "https://"])
    def test_rejects_bad_urls(self, url):
        with pytest.raises(PydanticValidationError):
            ProviderConfig(url=url)

    def test_repr_hides_credentials(self):
        provider = ProviderConfig(url="https://a.example.com/mcp", api_key="super-secret")
        assert "super-secret" not in repr(provider)
        assert "super-secret" not in str(provider)
        assert "super-secret" not in f"{provider}"
        assert "super-secret" not in provider.model_dump_json()
        assert provider.api_key.get_secret_value() == "super-secret"
        assert provider.transport == "http"
