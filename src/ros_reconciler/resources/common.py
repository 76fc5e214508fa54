"""Attributes shared by most RouterOS resources."""
from ..engine.schema import Attribute, DataType, scalar


def name_attribute(description: str = "Item name.") -> Attribute:
    return scalar("name", required=True, description=description)


def comment_attribute() -> Attribute:
    return scalar("comment", description="Short description of the item.")


def disabled_attribute() -> Attribute:
    return scalar(
        "disabled",
        DataType.BOOL,
        default=False,
        description="Whether the item is ignored by the device.",
    )
