"""Value codec between typed attribute values and device property bags.

The device stores every value as a string. Collections are comma-joined and
nested block members are flattened into dotted keys (``input.accept-nlri``).
"""
import logging
import re
from typing import Any, Mapping, Optional

from .errors import CodecError
from .schema import Attribute, AttributeKind, DataType, ResourceSchema, type_matches

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "yes")
FALSE_VALUES = ("false", "no")
INTEGER = re.compile(r"-?[0-9]+")


class ValueCodec:
    """Encode and decode attribute values. Pure; holds no state."""

    # === Encoding ===

    def encode(self, attr: Attribute, value: Any) -> str | dict[str, str]:
        """
        Encode one attribute value for the device.

        Blocks return a dict of dotted keys; every other kind a string.

        Raises:
            CodecError: If the value does not match the declared type
        """
        if attr.kind == AttributeKind.BLOCK:
            return self._encode_block(attr, value)
        if attr.kind == AttributeKind.SET:
            items = self._check_collection(attr, value)
            return ",".join(sorted(set(items)))
        if attr.kind == AttributeKind.LIST:
            return ",".join(self._check_collection(attr, value))
        return self._encode_scalar(attr, value)

    def _encode_scalar(self, attr: Attribute, value: Any) -> str:
        if not type_matches(attr.type, value):
            raise CodecError(
                f"expected {attr.type.value}, got {type(value).__name__} {value!r}",
                attribute=attr.name,
            )
        if attr.type == DataType.BOOL:
            return "true" if value else "false"
        return str(value)

    def _check_collection(self, attr: Attribute, value: Any) -> list[str]:
        if isinstance(value, (str, bytes, Mapping)):
            raise CodecError(
                f"expected a collection of strings, got {type(value).__name__}",
                attribute=attr.name,
            )
        try:
            items = list(value)
        except TypeError:
            raise CodecError(
                f"expected a collection of strings, got {type(value).__name__}",
                attribute=attr.name,
            ) from None
        for item in items:
            if not isinstance(item, str):
                raise CodecError(f"collection item {item!r} is not a string", attribute=attr.name)
            if "," in item:
                raise CodecError(f"collection item {item!r} contains a comma", attribute=attr.name)
        return items

    def _encode_block(self, attr: Attribute, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise CodecError(
                f"expected a single mapping, got {type(value).__name__}",
                attribute=attr.name,
            )
        encoded = {}
        for member in attr.nested:
            member_value = value.get(member.name)
            if member_value is None:
                continue
            encoded[f"{attr.device_key}.{member.device_key}"] = self.encode(member, member_value)
        return encoded

    def encode_bag(self, schema: ResourceSchema, values: Mapping[str, Any]) -> dict[str, str]:
        """Flatten a value mapping into a device property bag.

        ``None`` values are omitted; so is a block with no members.
        """
        bag: dict[str, str] = {}
        for name, value in values.items():
            if value is None:
                continue
            attr = schema.attribute(name)
            if "." in name:
                block_name = name.partition(".")[0]
                key = f"{schema.attributes[block_name].device_key}.{attr.device_key}"
                bag[key] = self.encode(attr, value)  # type: ignore[assignment]
                continue
            encoded = self.encode(attr, value)
            if isinstance(encoded, dict):
                bag.update(encoded)
            else:
                bag[attr.device_key] = encoded
        return bag

    def encode_clear(self, schema: ResourceSchema, name: str) -> dict[str, str]:
        """Bag fragment that removes an attribute's value on the device."""
        attr = schema.attribute(name)
        if "." in name:
            block_attr = schema.attributes[name.partition(".")[0]]
            return {f"{block_attr.device_key}.{attr.device_key}": ""}
        if attr.kind == AttributeKind.BLOCK:
            return {f"{attr.device_key}.{m.device_key}": "" for m in attr.nested}
        return {attr.device_key: ""}

    # === Decoding ===

    def decode(self, attr: Attribute, raw: Optional[str]) -> Any:
        """
        Decode one raw device string into a typed value.

        Blank or missing values decode to the declared default.

        Raises:
            CodecError: If the raw value does not satisfy the declared type
        """
        if attr.kind == AttributeKind.BLOCK:
            raise CodecError("blocks are decoded from a bag, not a value", attribute=attr.name)
        if raw is None or raw == "":
            return attr.default
        if not isinstance(raw, str):
            raise CodecError(f"raw value {raw!r} is not a string", attribute=attr.name)

        if attr.kind == AttributeKind.SET:
            items = frozenset(i for i in raw.split(",") if i)
            return items or attr.default
        if attr.kind == AttributeKind.LIST:
            items = tuple(i for i in raw.split(",") if i)
            return items or attr.default

        if attr.type == DataType.BOOL:
            lowered = raw.lower()
            if lowered in TRUE_VALUES:
                return True
            if lowered in FALSE_VALUES:
                return False
            raise CodecError(f"'{raw}' is not a boolean", attribute=attr.name)
        if attr.type == DataType.INT:
            if not INTEGER.fullmatch(raw):
                raise CodecError(f"'{raw}' is not an integer", attribute=attr.name)
            return int(raw)
        return raw

    def decode_block(self, attr: Attribute, bag: Mapping[str, str]) -> Optional[dict[str, Any]]:
        """Rebuild a block from the dotted keys of a bag.

        Returns None when no member carries a value.
        """
        result = {}
        for member in attr.nested:
            raw = bag.get(f"{attr.device_key}.{member.device_key}")
            result[member.name] = self.decode(member, raw)
        result = {k: v for k, v in result.items() if v is not None}
        return result or None

    def decode_bag(self, schema: ResourceSchema, bag: Mapping[str, str]) -> dict[str, Any]:
        """Decode every schema attribute from a device property bag."""
        values: dict[str, Any] = {}
        known = set()
        for attr in schema.attributes.values():
            if attr.kind == AttributeKind.BLOCK:
                values[attr.name] = self.decode_block(attr, bag)
                known.update(f"{attr.device_key}.{m.device_key}" for m in attr.nested)
            else:
                values[attr.name] = self.decode(attr, bag.get(attr.device_key))
                known.add(attr.device_key)

        unknown = [k for k in bag if k not in known and not k.startswith(".")]
        if unknown:
            logger.debug(f"Ignoring unmanaged keys for {schema.name}: {', '.join(sorted(unknown))}")
        return values


def normalize(attr: Attribute, value: Any) -> Any:
    """Canonicalize a caller-supplied value to the decoded form.

    Sets become frozensets, lists become tuples, empty strings, empty
    collections and empty blocks become None.
    """
    if value is None or value == "":
        return None
    if attr.kind == AttributeKind.SET:
        return frozenset(value) or None
    if attr.kind == AttributeKind.LIST:
        return tuple(value) or None
    if attr.kind == AttributeKind.BLOCK:
        members = {
            m.name: normalize(m, value.get(m.name))
            for m in attr.nested
            if value.get(m.name) is not None
        }
        return members or None
    return value
