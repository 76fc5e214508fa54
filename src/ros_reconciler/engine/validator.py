"""Pre-flight validation for desired resource values.

Catches schema violations before any device communication.
"""
from typing import Any, Mapping

from .schema import (
    Attribute,
    AttributeKind,
    ResourceSchema,
    ValidationResult,
    type_matches,
)


class SchemaValidator:
    """Validate desired values against a resource schema."""

    def __init__(self, schema: ResourceSchema):
        self.schema = schema

    def validate(self, desired: Any, creating: bool = True) -> ValidationResult:
        """
        Validate a desired value mapping.

        Performs pre-flight checks:
        - Unknown attributes
        - Required attributes present
        - Value types per attribute kind
        - Per-attribute validators
        - Blocks supplied as a single record

        Args:
            desired: Mapping of attribute name to desired value
            creating: If True, required attributes must be supplied

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not isinstance(desired, Mapping):
            return ValidationResult(
                valid=False,
                errors=[f"Desired state must be a mapping, got {type(desired).__name__}"],
            )

        for name in desired:
            if name not in self.schema.attributes:
                errors.append(f"Unknown attribute '{name}' for {self.schema.name}")

        self._check_required(desired, creating, errors)

        for name, attr in self.schema.attributes.items():
            if name not in desired:
                continue
            value = desired[name]
            if value is None:
                if attr.sticky:
                    warnings.append(
                        f"Attribute '{name}' cannot be removed once set; clearing is ignored"
                    )
                continue
            if attr.kind == AttributeKind.BLOCK:
                self._validate_block(attr, value, errors, warnings)
            else:
                self._validate_value(name, attr, value, errors)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def _check_required(
        self,
        desired: Mapping[str, Any],
        creating: bool,
        errors: list[str]
    ) -> None:
        for name in self.schema.required:
            if name not in desired:
                if creating:
                    errors.append(f"Missing required attribute '{name}'")
            elif desired[name] is None or desired[name] == "":
                errors.append(f"Required attribute '{name}' cannot be empty")

    def _validate_block(
        self,
        attr: Attribute,
        value: Any,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        if isinstance(value, (list, tuple)):
            errors.append(f"Block '{attr.name}' accepts at most one record, not a list")
            return
        if not isinstance(value, Mapping):
            errors.append(f"Block '{attr.name}' must be a mapping, got {type(value).__name__}")
            return

        members = {m.name: m for m in attr.nested}
        for member_name, member_value in value.items():
            member = members.get(member_name)
            if member is None:
                errors.append(f"Unknown attribute '{attr.name}.{member_name}'")
                continue
            if member_value is None:
                if member.sticky:
                    warnings.append(
                        f"Attribute '{attr.name}.{member_name}' cannot be removed once set; "
                        f"clearing is ignored"
                    )
                continue
            self._validate_value(f"{attr.name}.{member_name}", member, member_value, errors)

    def _validate_value(
        self,
        name: str,
        attr: Attribute,
        value: Any,
        errors: list[str]
    ) -> None:
        if attr.is_collection:
            if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
                errors.append(f"Attribute '{name}' must be a collection of strings")
                return
            if not all(isinstance(item, str) and "," not in item for item in value):
                errors.append(f"Attribute '{name}' items must be strings without commas")
                return
        elif not type_matches(attr.type, value):
            errors.append(
                f"Attribute '{name}' must be {attr.type.value}, got {type(value).__name__}"
            )
            return

        for check in attr.validators:
            message = check(value)
            if message:
                errors.append(f"Invalid value for '{name}': {message}")
