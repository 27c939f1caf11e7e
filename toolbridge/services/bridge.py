"""Bootstrap: connect providers, build the catalog, synthesize capabilities."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from toolbridge.infra.config import load_provider_configs
from toolbridge.models.provider import ProviderConfig
from toolbridge.services.capability_synthesizer import ArgumentGenerator, Capability, CapabilitySynthesizer
from toolbridge.services.tool_catalog import ToolCatalog

logger = logging.getLogger(__name__)


@dataclass
class Bridge:
    """A ready catalog plus the capabilities synthesized from it."""
    catalog: ToolCatalog
    capabilities: List[Capability] = field(default_factory=list)

    def get_capability(self, name: str) -> Optional[Capability]:
        for capability in self.capabilities:
            if capability.name == name:
                return capability
        return None

    async def cleanup(self) -> None:
        self.capabilities = []
        await self.catalog.cleanup()


async def create_bridge(
    argument_generator: ArgumentGenerator,
    providers: Optional[Iterable[ProviderConfig]] = None,
    catalog: Optional[ToolCatalog] = None,
) -> Bridge:
    """
    Build a Bridge.

    Args:
        argument_generator: Produces tool arguments from conversation context
        providers: Provider configs; defaults to MCP_PROVIDERS from the environment
        catalog: Catalog to populate; a new one is created when omitted

    Raises:
        ValueError: If no providers are configured
        ConnectionError: If any provider fails to connect
    """
    providers = load_provider_configs() if providers is None else list(providers)
    catalog = catalog or ToolCatalog()

    await catalog.initialize(providers)
    try:
        capabilities = await CapabilitySynthesizer(catalog, argument_generator).synthesize()
    except Exception:
        await catalog.cleanup()
        raise

    logger.info(
        "Capability bridge ready",
        extra={"providers": len(catalog.connections), "capabilities": len(capabilities)},
    )
    return Bridge(catalog=catalog, capabilities=capabilities)
