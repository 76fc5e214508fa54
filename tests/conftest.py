"""Shared fixtures: an in-memory RouterOS-like device and a ready orchestrator."""
from typing import Optional

import pytest

from ros_reconciler.devices.base import DeviceAPI, DeviceConfig, PropertyBag
from ros_reconciler.engine import ResourceOrchestrator
from ros_reconciler.engine.errors import NotFoundError
from ros_reconciler.resources import build_registry

BGP_PATH = "/routing/bgp/template"


class InMemoryDevice(DeviceAPI):
    """Property-bag store that behaves like the RouterOS REST API."""

    def __init__(self, device_id: str = "test-rtr", next_id: int = 1):
        super().__init__(
            device_id,
            DeviceConfig(type="memory", name="Test router", host="127.0.0.1"),
        )
        self.items: dict[str, dict[str, PropertyBag]] = {}
        self.next_id = next_id
        self.calls: list[tuple[str, str, PropertyBag]] = []

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def disconnect(self) -> None:
        self._connected = False

    def seed(self, collection: str, bag: PropertyBag) -> str:
        """Place an item directly, bypassing call tracking."""
        identifier = f"*{self.next_id:X}"
        self.next_id += 1
        self.items.setdefault(collection, {})[identifier] = dict(bag)
        return identifier

    def stored(self, path: str) -> PropertyBag:
        collection, _, identifier = path.rpartition("/")
        return self.items[collection][identifier]

    @property
    def writes(self) -> list[tuple[str, str, PropertyBag]]:
        return [c for c in self.calls if c[0] in ("create", "update", "delete")]

    def _find(self, path: str) -> tuple[str, str]:
        collection, _, identifier = path.rpartition("/")
        if identifier not in self.items.get(collection, {}):
            raise NotFoundError("no such item", path=path)
        return collection, identifier

    async def list_items(self, path: str, query: Optional[dict[str, str]] = None) -> list[PropertyBag]:
        self.calls.append(("list", path, dict(query or {})))
        result = []
        for identifier, bag in self.items.get(path, {}).items():
            if query and any(bag.get(k) != v for k, v in query.items()):
                continue
            result.append({".id": identifier, **bag})
        return result

    async def get(self, path: str) -> PropertyBag:
        self.calls.append(("get", path, {}))
        collection, identifier = self._find(path)
        return {".id": identifier, **self.items[collection][identifier]}

    async def create(self, path: str, bag: PropertyBag) -> str:
        self.calls.append(("create", path, dict(bag)))
        return self.seed(path, bag)

    async def update(self, path: str, bag: PropertyBag) -> None:
        self.calls.append(("update", path, dict(bag)))
        collection, identifier = self._find(path)
        self.items[collection][identifier].update(bag)

    async def delete(self, path: str) -> None:
        self.calls.append(("delete", path, {}))
        collection, identifier = self._find(path)
        del self.items[collection][identifier]


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def device():
    return InMemoryDevice(next_id=2)


@pytest.fixture
def crud(registry, device):
    return ResourceOrchestrator(registry, device)
