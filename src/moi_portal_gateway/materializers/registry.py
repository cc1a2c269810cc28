"""
Session Materializer Registry.

Resolves the materializer implementation configured for the traffic portal
(TRAFFIC_PORTAL_MATERIALIZER).
"""

import logging
from typing import Dict, Optional, Type

from ..settings import ConfigurationError, PortalConfig
from .base import SessionMaterializer
from .playwright_browser import PlaywrightSessionMaterializer

logger = logging.getLogger(__name__)


MATERIALIZER_REGISTRY: Dict[str, Type[SessionMaterializer]] = {
    'playwright': PlaywrightSessionMaterializer,
}


def get_materializer(name: str, config: PortalConfig) -> SessionMaterializer:
    """Instantiate a materializer by registry name.

    Raises:
        ConfigurationError: if no implementation is registered under `name`
    """
    materializer_class = MATERIALIZER_REGISTRY.get(name)
    if not materializer_class:
        raise ConfigurationError(f"Unknown session materializer: {name}", ["TRAFFIC_PORTAL_MATERIALIZER"])
    return materializer_class(config)


def materializer_for_portal(config: PortalConfig) -> Optional[SessionMaterializer]:
    """Return the configured materializer, or None when browser automation is off."""
    if not config.browser_automation:
        return None
    logger.debug(f"Using session materializer '{config.materializer}'")
    return get_materializer(config.materializer, config)
