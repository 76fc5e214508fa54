"""Resource declarations and registry assembly."""
from ..engine.schema import ResourceSchema, SchemaRegistry
from .bgp_template import BGP_TEMPLATE

BUILTIN_RESOURCES = (
    BGP_TEMPLATE,
)


def build_registry(*extra: ResourceSchema) -> SchemaRegistry:
    """Assemble the immutable schema registry.

    Call once at startup and hand the result to ResourceOrchestrator.
    """
    return SchemaRegistry(BUILTIN_RESOURCES + extra)


__all__ = ["BGP_TEMPLATE", "BUILTIN_RESOURCES", "build_registry"]
