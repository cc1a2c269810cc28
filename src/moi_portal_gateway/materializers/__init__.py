"""
Session Materializers for the traffic portal.

Usage:
    from moi_portal_gateway.materializers import materializer_for_portal

    materializer = materializer_for_portal(portal_config)  # None when disabled
    if materializer:
        materializer.materialize(PortalCredentials(email, password))
"""

from .base import MaterializationError, PortalCredentials, SessionMaterializer
from .registry import MATERIALIZER_REGISTRY, get_materializer, materializer_for_portal
from .playwright_browser import PlaywrightSessionMaterializer

__all__ = [
    'MaterializationError',
    'PortalCredentials',
    'SessionMaterializer',
    'MATERIALIZER_REGISTRY',
    'get_materializer',
    'materializer_for_portal',
    'PlaywrightSessionMaterializer',
]
