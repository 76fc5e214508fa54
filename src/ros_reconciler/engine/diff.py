"""Diff engine for calculating changes between desired and observed values.

Computes the minimal set of attribute changes needed to reach the desired
state, after per-attribute diff suppression.
"""
import logging
from typing import Any, Mapping, Optional

from .codec import ValueCodec, normalize
from .schema import (
    Attribute,
    AttributeChange,
    AttributeKind,
    ChangeType,
    DiffResult,
    ResourceSchema,
)
from .suppress import DiffSuppressor

logger = logging.getLogger(__name__)


class DiffEngine:
    """Calculate differences between desired and observed resource values."""

    def __init__(self, suppressor: Optional[DiffSuppressor] = None):
        self.suppressor = suppressor or DiffSuppressor()

    def calculate(
        self,
        schema: ResourceSchema,
        desired: Mapping[str, Any],
        observed: Mapping[str, Any],
    ) -> DiffResult:
        """
        Calculate diff between desired values and the last observed values.

        An attribute present in desired is managed to that value (None means
        clear it). An absent attribute is managed to its default if it has
        one and is otherwise left alone. Blocks are compared member by member.

        Args:
            schema: Resource schema
            desired: Desired attribute values
            observed: Decoded values of the last known instance

        Returns:
            DiffResult with changes and suppressed discrepancies
        """
        result = DiffResult()

        for name, attr in schema.attributes.items():
            if attr.kind == AttributeKind.BLOCK:
                if name in desired:
                    self._diff_block(attr, desired[name], observed.get(name), result)
                continue

            if name in desired:
                wanted = normalize(attr, desired[name])
            elif attr.default is not None:
                wanted = attr.default
            else:
                continue
            self._compare(name, attr, wanted, observed.get(name), result)

        return result

    def _diff_block(
        self,
        attr: Attribute,
        desired: Optional[Mapping[str, Any]],
        observed: Optional[Mapping[str, Any]],
        result: DiffResult,
    ) -> None:
        current = observed or {}

        # Whole block removed: clear every member still set on the device.
        # A block naming members, even only as None, clears just those members.
        if not desired:
            for member in attr.nested:
                if current.get(member.name) is not None:
                    self._compare(
                        f"{attr.name}.{member.name}", member, None, current[member.name], result
                    )
            return

        for member in attr.nested:
            if member.name in desired:
                wanted = normalize(member, desired[member.name])
            elif member.default is not None:
                wanted = member.default
            else:
                continue
            self._compare(
                f"{attr.name}.{member.name}", member, wanted, current.get(member.name), result
            )

    def _compare(
        self,
        name: str,
        attr: Attribute,
        desired: Any,
        observed: Any,
        result: DiffResult,
    ) -> None:
        if self.suppressor.equivalent(attr, desired, observed):
            if desired != observed:
                logger.debug(f"Suppressed equivalent diff on {name}: {desired!r} ~ {observed!r}")
                result.suppressed.append(AttributeChange(name, desired, observed))
            return

        if desired is None:
            change = AttributeChange(name, None, observed, ChangeType.CLEAR)
            if attr.sticky:
                logger.warning(f"Attribute {name} cannot be removed once set, keeping {observed!r}")
                result.suppressed.append(change)
                return
            result.changes.append(change)
            return

        result.changes.append(AttributeChange(name, desired, observed))


def patch_bag(
    schema: ResourceSchema,
    diff: DiffResult,
    codec: Optional[ValueCodec] = None,
) -> dict[str, str]:
    """Encode only the changed attributes of a diff into a partial bag."""
    codec = codec or ValueCodec()
    bag: dict[str, str] = {}
    for change in diff.changes:
        if change.change_type == ChangeType.CLEAR:
            bag.update(codec.encode_clear(schema, change.name))
        else:
            bag.update(codec.encode_bag(schema, {change.name: change.desired}))
    return bag


def _format_value(value: Any) -> str:
    if value is None:
        return "(unset)"
    if isinstance(value, (frozenset, set)):
        return "{" + ", ".join(sorted(value)) + "}"
    if isinstance(value, tuple):
        return "[" + ", ".join(value) + "]"
    return repr(value)


def summarize_diff(diff: DiffResult, resource: str = "") -> str:
    """
    Create a human-readable summary of a diff.

    Useful for dry-run output and logging.
    """
    if diff.no_change:
        return "No changes needed - observed state matches desired state"

    target = f" to {resource}" if resource else ""
    lines = [f"Changes to apply{target} ({diff.total_changes} total):", ""]

    for change in diff.changes:
        if change.change_type == ChangeType.CLEAR:
            lines.append(f"  [-] {change.name}")
            lines.append(f"      (was: {_format_value(change.observed)})")
        elif change.observed is None:
            lines.append(f"  [+] {change.name} = {_format_value(change.desired)}")
        else:
            lines.append(
                f"  [~] {change.name}: {_format_value(change.observed)} -> "
                f"{_format_value(change.desired)}"
            )

    if diff.suppressed:
        lines.append("")
        lines.append(f"Suppressed ({len(diff.suppressed)} equivalent or sticky):")
        for change in diff.suppressed:
            lines.append(f"  [=] {change.name}")

    return "\n".join(lines)
