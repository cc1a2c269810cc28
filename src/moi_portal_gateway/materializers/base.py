"""
Abstract base class for session materializers.

After the HTTP handshake the traffic portal still has to "see" a real login
before the linked session exists on its side. A materializer produces that
server-side session from the citizen's portal credentials, or fails.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..settings import PortalConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortalCredentials:
    email: str
    password: str = field(repr=False)


class MaterializationError(Exception):
    """Raised when the remote session could not be materialized."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class SessionMaterializer(ABC):
    """Produces a materialized portal session for a set of credentials.

    Implementations must release every resource they acquire (browsers,
    pages, connections) before returning or raising.
    """

    def __init__(self, config: PortalConfig):
        self.config = config

    @abstractmethod
    def materialize(self, credentials: PortalCredentials) -> str:
        """Log in and materialize the session.

        Returns:
            The portal URL the session ended on

        Raises:
            MaterializationError: on any timeout or navigation failure
        """
        pass
