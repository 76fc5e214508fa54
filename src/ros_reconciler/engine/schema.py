"""Schema definitions for the reconciliation engine.

Declares the attribute schema format, the resource instance produced by the
orchestrator, and the diff result dataclasses.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from .errors import SchemaError


Validator = Callable[[Any], Optional[str]]
Equivalence = Callable[[Any, Any], bool]


class AttributeKind(str, Enum):
    """Shape of an attribute value."""
    SCALAR = "scalar"
    LIST = "list"    # Ordered string collection
    SET = "set"      # Unordered string collection
    BLOCK = "block"  # Nested single record


class DataType(str, Enum):
    """Data type of a scalar attribute."""
    STRING = "string"
    BOOL = "bool"
    INT = "int"


_PYTHON_TYPES = {
    DataType.STRING: str,
    DataType.BOOL: bool,
    DataType.INT: int,
}


def type_matches(data_type: DataType, value: Any) -> bool:
    """Check a Python value against a declared data type."""
    if data_type == DataType.INT and isinstance(value, bool):
        return False
    return isinstance(value, _PYTHON_TYPES[data_type])


@dataclass(frozen=True)
class Attribute:
    """Descriptor for a single resource attribute."""
    name: str
    kind: AttributeKind = AttributeKind.SCALAR
    type: DataType = DataType.STRING
    required: bool = False
    optional: bool = False
    computed: bool = False
    default: Any = None
    validators: tuple[Validator, ...] = ()
    equivalence: Optional[Equivalence] = None
    device_key: str = ""
    sticky: bool = False  # Device refuses to unset once written
    nested: tuple["Attribute", ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        if self.required == self.optional:
            raise SchemaError(
                f"Attribute '{self.name}' must be exactly one of required/optional"
            )
        if self.required and self.default is not None:
            raise SchemaError(f"Required attribute '{self.name}' cannot have a default")

        if self.kind == AttributeKind.BLOCK:
            if not self.nested:
                raise SchemaError(f"Block attribute '{self.name}' declares no members")
            if self.default is not None:
                raise SchemaError(f"Block attribute '{self.name}' cannot have a default")
            for member in self.nested:
                if member.kind == AttributeKind.BLOCK:
                    raise SchemaError(
                        f"Block '{self.name}' cannot nest block '{member.name}'"
                    )
                if member.required:
                    raise SchemaError(
                        f"Block member '{self.name}.{member.name}' must be optional"
                    )
        elif self.nested:
            raise SchemaError(f"Only block attributes may declare members: '{self.name}'")

        if self.kind in (AttributeKind.LIST, AttributeKind.SET) and self.type != DataType.STRING:
            raise SchemaError(f"Collection attribute '{self.name}' must hold strings")

        if self.default is not None:
            self._check_default()

        if not self.device_key:
            object.__setattr__(self, "device_key", self.name.replace("_", "-"))

    def _check_default(self) -> None:
        if self.kind == AttributeKind.SCALAR:
            valid = type_matches(self.type, self.default)
        elif self.kind == AttributeKind.SET:
            valid = isinstance(self.default, frozenset)
        else:
            valid = isinstance(self.default, tuple)
        if not valid:
            raise SchemaError(
                f"Default {self.default!r} does not match type of '{self.name}'"
            )

    @property
    def is_collection(self) -> bool:
        return self.kind in (AttributeKind.LIST, AttributeKind.SET)

    def member(self, name: str) -> "Attribute":
        """Get a nested block member by name."""
        for attr in self.nested:
            if attr.name == name:
                return attr
        raise KeyError(f"Unknown member '{name}' of block '{self.name}'")


# --- Attribute factories ---

def scalar(
    name: str,
    type: DataType = DataType.STRING,
    *,
    required: bool = False,
    computed: bool = False,
    default: Any = None,
    validators: Iterable[Validator] = (),
    equivalence: Optional[Equivalence] = None,
    device_key: str = "",
    sticky: bool = False,
    description: str = "",
) -> Attribute:
    """Declare a scalar attribute (optional unless ``required``)."""
    return Attribute(
        name=name,
        kind=AttributeKind.SCALAR,
        type=type,
        required=required,
        optional=not required,
        computed=computed,
        default=default,
        validators=tuple(validators),
        equivalence=equivalence,
        device_key=device_key,
        sticky=sticky,
        description=description,
    )


def set_of(
    name: str,
    *,
    required: bool = False,
    computed: bool = False,
    default: Optional[Iterable[str]] = None,
    validators: Iterable[Validator] = (),
    device_key: str = "",
    sticky: bool = False,
    description: str = "",
) -> Attribute:
    """Declare an unordered string collection."""
    return Attribute(
        name=name,
        kind=AttributeKind.SET,
        required=required,
        optional=not required,
        computed=computed,
        default=frozenset(default) if default is not None else None,
        validators=tuple(validators),
        device_key=device_key,
        sticky=sticky,
        description=description,
    )


def list_of(
    name: str,
    *,
    required: bool = False,
    computed: bool = False,
    default: Optional[Iterable[str]] = None,
    validators: Iterable[Validator] = (),
    device_key: str = "",
    sticky: bool = False,
    description: str = "",
) -> Attribute:
    """Declare an ordered string collection."""
    return Attribute(
        name=name,
        kind=AttributeKind.LIST,
        required=required,
        optional=not required,
        computed=computed,
        default=tuple(default) if default is not None else None,
        validators=tuple(validators),
        device_key=device_key,
        sticky=sticky,
        description=description,
    )


def block(
    name: str,
    members: Iterable[Attribute],
    *,
    device_key: str = "",
    description: str = "",
) -> Attribute:
    """Declare an optional nested block holding at most one record."""
    return Attribute(
        name=name,
        kind=AttributeKind.BLOCK,
        optional=True,
        nested=tuple(members),
        device_key=device_key,
        description=description,
    )


# --- Resource schema and registry ---

ID_FIELD = ".id"
NAME_FIELD = "name"


@dataclass(frozen=True)
class ResourceSchema:
    """Complete declaration of one resource type."""
    name: str
    path: str
    attributes: Mapping[str, Attribute]
    id_field: str = ID_FIELD
    natural_key: Optional[str] = NAME_FIELD

    def __post_init__(self) -> None:
        if not self.path.startswith("/"):
            raise SchemaError(f"Resource path must be absolute: {self.path}")
        if self.id_field not in (ID_FIELD, NAME_FIELD):
            raise SchemaError(f"Unsupported id field: {self.id_field}")

        attrs = dict(self.attributes)
        for key, attr in attrs.items():
            if key != attr.name:
                raise SchemaError(f"Attribute registered as '{key}' is named '{attr.name}'")
        device_keys = [a.device_key for a in attrs.values()]
        if len(device_keys) != len(set(device_keys)):
            raise SchemaError(f"Duplicate device keys in resource '{self.name}'")
        if self.natural_key is not None and self.natural_key not in attrs:
            raise SchemaError(
                f"Natural key '{self.natural_key}' is not an attribute of '{self.name}'"
            )
        object.__setattr__(self, "path", self.path.rstrip("/"))
        object.__setattr__(self, "attributes", MappingProxyType(attrs))

    @classmethod
    def declare(
        cls,
        name: str,
        path: str,
        attributes: Iterable[Attribute],
        id_field: str = ID_FIELD,
        natural_key: Optional[str] = NAME_FIELD,
    ) -> "ResourceSchema":
        """Build a schema from a list of attribute descriptors."""
        attrs: dict[str, Attribute] = {}
        for attr in attributes:
            if attr.name in attrs:
                raise SchemaError(f"Duplicate attribute '{attr.name}' in '{name}'")
            attrs[attr.name] = attr
        return cls(
            name=name,
            path=path,
            attributes=attrs,
            id_field=id_field,
            natural_key=natural_key,
        )

    def attribute(self, name: str) -> Attribute:
        """Look up an attribute, accepting dotted block member paths."""
        head, _, member = name.partition(".")
        attr = self.attributes[head]
        if member:
            return attr.member(member)
        return attr

    @property
    def required(self) -> list[str]:
        return [a.name for a in self.attributes.values() if a.required]


class SchemaRegistry(Mapping[str, ResourceSchema]):
    """Immutable, explicitly assembled mapping of resource schemas."""

    def __init__(self, schemas: Iterable[ResourceSchema] = ()):
        entries: dict[str, ResourceSchema] = {}
        for schema in schemas:
            if schema.name in entries:
                raise SchemaError(f"Resource '{schema.name}' registered twice")
            entries[schema.name] = schema
        self._schemas = MappingProxyType(entries)

    def __getitem__(self, name: str) -> ResourceSchema:
        try:
            return self._schemas[name]
        except KeyError:
            raise KeyError(f"Unknown resource type: {name}") from None

    def __iter__(self):
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)

    def __repr__(self) -> str:
        return f"SchemaRegistry({', '.join(self._schemas)})"


# --- Resource instance ---

@dataclass(frozen=True)
class ResourceInstance:
    """One concrete configuration object on the device."""
    resource: str
    identifier: str
    path: str
    values: Mapping[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        values = {}
        for key, value in self.values.items():
            if isinstance(value, frozenset):
                value = sorted(value)
            elif isinstance(value, tuple):
                value = list(value)
            values[key] = value
        return {
            "resource": self.resource,
            "id": self.identifier,
            "path": self.path,
            "values": values,
        }


# --- Diff Results ---

class ChangeType(str, Enum):
    """Type of change for one attribute."""
    SET = "set"
    CLEAR = "clear"


@dataclass
class AttributeChange:
    """A single attribute discrepancy between desired and observed state."""
    name: str  # Dotted for block members, e.g. "input.allow_as"
    desired: Any
    observed: Any
    change_type: ChangeType = ChangeType.SET


@dataclass
class DiffResult:
    """Result of diffing desired vs observed state."""
    changes: list[AttributeChange] = field(default_factory=list)
    suppressed: list[AttributeChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        """Check if there are any changes."""
        return len(self.changes) == 0

    @property
    def total_changes(self) -> int:
        """Total number of changes."""
        return len(self.changes)

    def as_pairs(self) -> dict[str, tuple[Any, Any]]:
        """Map attribute name to (desired, observed)."""
        return {c.name: (c.desired, c.observed) for c in self.changes}


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of desired-state validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
