"""Base device abstraction for path-addressed configuration APIs."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

PropertyBag = dict[str, str]


@dataclass
class DeviceConfig:
    """Configuration for a managed appliance."""
    type: str
    name: str
    host: str
    protocol: str = "https"
    port: int = 443
    username: str = "admin"
    password: Optional[str] = None
    password_env: str = "ROUTEROS_PASSWORD"
    timeout: float = 30
    retries: int = 3
    retry_delay: float = 1
    verify_ssl: bool = True
    pool_size: int = 10

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


class DeviceAPI(ABC):
    """Abstract property-bag API of a remote appliance.

    Paths are collection paths (``/routing/bgp/template``) or item paths
    (``/routing/bgp/template/*2``). Implementations raise NotFoundError for
    missing items and DeviceError for every other failure.
    """

    def __init__(self, device_id: str, config: DeviceConfig):
        self.device_id = device_id
        self.config = config
        self._connected = False

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Connection management
    @abstractmethod
    async def connect(self) -> bool:
        """Open the session to the device."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session to the device."""
        pass

    # Property-bag operations
    @abstractmethod
    async def list_items(self, path: str, query: Optional[dict[str, str]] = None) -> list[PropertyBag]:
        """List every item of a collection, optionally filtered by exact values."""
        pass

    @abstractmethod
    async def get(self, path: str) -> PropertyBag:
        """Fetch one item."""
        pass

    @abstractmethod
    async def create(self, path: str, bag: PropertyBag) -> str:
        """Add an item to a collection.

        Returns:
            The device-assigned identifier
        """
        pass

    @abstractmethod
    async def update(self, path: str, bag: PropertyBag) -> None:
        """Apply a partial property bag to one item."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove one item."""
        pass

    # Context manager support
    async def __aenter__(self) -> Any:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
