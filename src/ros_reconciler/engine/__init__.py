"""Reconciliation engine - schema-driven CRUD against a property-bag API.

The engine reconciles declaratively described resources with a device:
- Attribute schemas describe every field once (type, default, validators)
- Values are encoded to the device's flat string bag and decoded back
- Cosmetic differences ("3m" vs "180s") are suppressed per attribute
- Updates write only the attributes that actually changed

Usage:
    from ros_reconciler.engine import ResourceOrchestrator
    from ros_reconciler.resources import build_registry

    crud = ResourceOrchestrator(build_registry(), device)
    instance = await crud.create("bgp_template", {
        "name": "temp1",
        "as": "65000",
        "multihop": True,
    })
    print(crud.preview(instance, {"name": "temp1", "as": "65000", "hold_time": "180s"}))
"""

from .orchestrator import ResourceOrchestrator
from .schema import (
    Attribute,
    AttributeKind,
    DataType,
    ResourceSchema,
    SchemaRegistry,
    ResourceInstance,
    AttributeChange,
    ChangeType,
    DiffResult,
    ValidationResult,
    scalar,
    set_of,
    list_of,
    block,
)
from .errors import (
    ReconcileError,
    SchemaError,
    ValidationError,
    CodecError,
    NotFoundError,
    AmbiguousKeyError,
    DeviceError,
    OperationTimeoutError,
)
from .codec import ValueCodec
from .paths import PathResolver, LookupResult, LookupStatus
from .suppress import DiffSuppressor, duration_equal, multi_value_equal, parse_duration
from .validator import SchemaValidator
from .diff import DiffEngine, patch_bag, summarize_diff

__all__ = [
    # Main engine
    "ResourceOrchestrator",
    # Schema classes
    "Attribute",
    "AttributeKind",
    "DataType",
    "ResourceSchema",
    "SchemaRegistry",
    "ResourceInstance",
    "AttributeChange",
    "ChangeType",
    "DiffResult",
    "ValidationResult",
    "scalar",
    "set_of",
    "list_of",
    "block",
    # Errors
    "ReconcileError",
    "SchemaError",
    "ValidationError",
    "CodecError",
    "NotFoundError",
    "AmbiguousKeyError",
    "DeviceError",
    "OperationTimeoutError",
    # Components (for advanced use)
    "ValueCodec",
    "PathResolver",
    "LookupResult",
    "LookupStatus",
    "DiffSuppressor",
    "duration_equal",
    "multi_value_equal",
    "parse_duration",
    "SchemaValidator",
    "DiffEngine",
    "patch_bag",
    "summarize_diff",
]
