"""Error taxonomy for the reconciliation engine.

Every error carries the resource path and identifier (when known) so callers
juggling many resources can attribute a failure to the right instance.
"""
from typing import Any, Optional


class ReconcileError(Exception):
    """Base class for all reconciliation errors."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        identifier: Optional[str] = None,
    ):
        self.message = message
        self.path = path
        self.identifier = identifier
        super().__init__(message)

    def __str__(self) -> str:
        # Path and identifier may be attached after construction
        return self._format()

    def _format(self) -> str:
        context = []
        if self.path:
            context.append(f"path={self.path}")
        if self.identifier:
            context.append(f"id={self.identifier}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class SchemaError(ReconcileError):
    """A resource declaration is internally inconsistent."""
    pass


class ValidationError(ReconcileError):
    """Desired values were rejected before any device call."""

    def __init__(
        self,
        errors: list[str],
        path: Optional[str] = None,
        identifier: Optional[str] = None,
    ):
        self.errors = list(errors)
        super().__init__(
            f"Validation failed: {'; '.join(self.errors)}", path, identifier
        )


class CodecError(ReconcileError):
    """A value cannot be mapped to or from its declared data type."""

    def __init__(
        self,
        message: str,
        attribute: Optional[str] = None,
        path: Optional[str] = None,
        identifier: Optional[str] = None,
    ):
        self.attribute = attribute
        if attribute:
            message = f"{attribute}: {message}"
        super().__init__(message, path, identifier)


class NotFoundError(ReconcileError):
    """The device has no item at the requested path."""
    pass


class AmbiguousKeyError(ReconcileError):
    """A natural-key lookup matched more than one device item."""

    def __init__(
        self,
        key: str,
        matches: list[Any],
        path: Optional[str] = None,
    ):
        self.key = key
        self.matches = list(matches)
        super().__init__(
            f"Natural key '{key}' matches {len(self.matches)} items: {', '.join(map(str, self.matches))}",
            path,
        )


class DeviceError(ReconcileError):
    """Transport or API failure reported by the device."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        identifier: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} [HTTP {status_code}]"
        super().__init__(message, path, identifier)


class OperationTimeoutError(DeviceError):
    """A device call did not complete within the caller's timeout."""
    pass
