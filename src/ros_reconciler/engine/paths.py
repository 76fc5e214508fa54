"""Path resolution for resource instances.

RouterOS addresses items as ``<collection path>/<identifier>`` where the
identifier is either the device-assigned ``.id`` (``*2``, ``*1A``) or, for
some resource types, the item name.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import AmbiguousKeyError, NotFoundError
from .schema import ID_FIELD, ResourceSchema

logger = logging.getLogger(__name__)

ROUTEROS_ID = re.compile(r"^\*[0-9A-Fa-f]+$")


class LookupStatus(str, Enum):
    """Outcome of a natural-key lookup."""
    NONE = "none"
    ONE = "one"
    MANY = "many"


@dataclass
class LookupResult:
    """Items matching a natural key; may be none, one, or many."""
    key: str
    matches: list[Mapping[str, str]] = field(default_factory=list)

    @property
    def status(self) -> LookupStatus:
        if not self.matches:
            return LookupStatus.NONE
        if len(self.matches) == 1:
            return LookupStatus.ONE
        return LookupStatus.MANY


class PathResolver:
    """Resolve resource instances to concrete API paths."""

    def __init__(self, schema: ResourceSchema):
        self.schema = schema

    def collection_path(self) -> str:
        return self.schema.path

    def item_path(self, identifier: str) -> str:
        if not identifier:
            raise NotFoundError("Empty identifier", path=self.schema.path)
        return f"{self.schema.path}/{identifier}"

    def is_identifier(self, token: str) -> bool:
        """Check whether a token is a device identifier literal."""
        if self.schema.id_field == ID_FIELD:
            return bool(ROUTEROS_ID.match(token))
        return bool(token)

    def identifier_of(self, bag: Mapping[str, Any]) -> Optional[str]:
        """Extract the identifier from a device property bag."""
        value = bag.get(self.schema.id_field)
        return str(value) if value else None

    def lookup(self, items: list[Mapping[str, str]], key_value: str) -> LookupResult:
        """Find items whose natural key equals key_value."""
        result = LookupResult(key=key_value)
        if self.schema.natural_key is None:
            return result
        device_key = self.schema.attributes[self.schema.natural_key].device_key
        result.matches = [item for item in items if item.get(device_key) == key_value]
        return result

    async def resolve_import(self, device: Any, token: str) -> str:
        """
        Resolve an import token to a device identifier.

        Args:
            device: DeviceAPI used for the collection lookup
            token: Identifier literal or natural-key value

        Returns:
            The device identifier

        Raises:
            NotFoundError: If no item matches the token
            AmbiguousKeyError: If several items share the natural key
        """
        token = token.strip()
        if self.is_identifier(token):
            return token

        if self.schema.natural_key is None:
            raise NotFoundError(
                f"'{token}' is not an identifier and {self.schema.name} has no natural key",
                path=self.schema.path,
            )

        logger.info(f"Looking up {self.schema.name} by {self.schema.natural_key}='{token}'")
        items = await device.list_items(self.collection_path())
        result = self.lookup(items, token)

        if result.status == LookupStatus.NONE:
            raise NotFoundError(
                f"No {self.schema.name} with {self.schema.natural_key}='{token}'",
                path=self.schema.path,
            )
        if result.status == LookupStatus.MANY:
            raise AmbiguousKeyError(
                token,
                [self.identifier_of(m) for m in result.matches],
                path=self.schema.path,
            )

        identifier = self.identifier_of(result.matches[0])
        if identifier is None:
            raise NotFoundError(
                f"Item matching '{token}' carries no {self.schema.id_field}",
                path=self.schema.path,
            )
        return identifier
