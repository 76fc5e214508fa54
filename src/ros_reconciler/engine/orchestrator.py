"""CRUD orchestrator - generic reconciliation of one resource instance.

Provides a single entry point per lifecycle step:
1. create  - validate, encode, add to the collection, read back
2. read    - fetch the property bag and decode it
3. update  - diff against the last known instance, patch only what changed
4. delete  - remove, treating an already-missing item as success
5. import_ - resolve an identifier or natural key, then read

Each call is one synchronous request/response exchange with the device.
Calls against the same item path are serialized; distinct items run
concurrently, bounded by the device's connection pool.
"""
import asyncio
import logging
import weakref
from typing import Any, Awaitable, Mapping, Optional, TypeVar

from ..devices.base import DeviceAPI, PropertyBag
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed, timed_section
from .codec import ValueCodec, normalize
from .diff import DiffEngine, patch_bag, summarize_diff
from .errors import (
    DeviceError,
    NotFoundError,
    OperationTimeoutError,
    ReconcileError,
    ValidationError,
)
from .paths import PathResolver
from .schema import (
    DiffResult,
    ResourceInstance,
    ResourceSchema,
    SchemaRegistry,
    ValidationResult,
)
from .suppress import DiffSuppressor
from .validator import SchemaValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _with_context(error: ReconcileError, path: str, identifier: Optional[str]) -> ReconcileError:
    """Fill in the path and identifier an error was raised without."""
    error.path = error.path or path
    error.identifier = error.identifier or identifier
    return error


class ResourceOrchestrator:
    """
    Schema-driven Create/Read/Update/Delete/Import against one device.

    Usage:
        registry = build_registry()
        async with RouterOSDevice("core-rtr", config) as device:
            crud = ResourceOrchestrator(registry, device)
            instance = await crud.create("bgp_template", {"name": "temp1", "as": "65000"})
            instance = await crud.update(instance, {"name": "temp1", "as": "65001"})
            await crud.delete("bgp_template", instance.identifier)
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        device: DeviceAPI,
        codec: Optional[ValueCodec] = None,
        suppressor: Optional[DiffSuppressor] = None,
        tracker: Optional[ChangeTracker] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Immutable schema registry
            device: Device API collaborator
            codec: Value codec (defaults to ValueCodec())
            suppressor: Diff suppressor (defaults to DiffSuppressor())
            tracker: Audit change tracker (defaults to one for this device)
            timeout: Default per-call timeout in seconds, None for no limit
        """
        self.registry = registry
        self.device = device
        self.codec = codec or ValueCodec()
        self.diff_engine = DiffEngine(suppressor)
        self.tracker = tracker or ChangeTracker(device.device_id)
        self.timeout = timeout
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @property
    def device_id(self) -> str:
        return self.device.device_id

    # === Lifecycle operations ===

    @timed("create")
    async def create(
        self,
        resource: str,
        desired: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> ResourceInstance:
        """
        Create a resource instance on the device.

        Validation and encoding happen before any device call, so a local
        failure never leaves a partial write behind.

        Args:
            resource: Resource type name
            desired: Desired attribute values
            timeout: Per-call timeout override in seconds

        Returns:
            The created instance, read back from the device

        Raises:
            ValidationError: If desired values violate the schema
            CodecError: If a value cannot be encoded
            DeviceError: If the device rejects the write
        """
        schema = self.registry[resource]
        resolver = PathResolver(schema)
        path = resolver.collection_path()

        self._raise_if_invalid(schema, desired, creating=True, path=path)

        values = self._with_defaults(schema, desired)
        try:
            bag = self.codec.encode_bag(schema, values)
        except ReconcileError as e:
            raise _with_context(e, path, None)

        logger.info(f"Creating {resource} at {path} on {self.device_id}")
        try:
            identifier = await self._call(
                "device_create", self.device.create(path, bag), path, timeout=timeout
            )
        except ReconcileError as e:
            self._audit("create", schema, path, None, bag, error=e)
            raise
        self._audit("create", schema, path, identifier, bag)

        return await self.read(resource, identifier, timeout=timeout)

    @timed("read")
    async def read(
        self,
        resource: str,
        identifier: str,
        timeout: Optional[float] = None,
    ) -> ResourceInstance:
        """
        Read a resource instance from the device.

        Attributes missing from the device bag resolve to their default.

        Raises:
            NotFoundError: If the device has no such item
            CodecError: If a device value does not fit its declared type
        """
        schema = self.registry[resource]
        path = PathResolver(schema).item_path(identifier)
        async with self._lock(path):
            return await self._read(schema, identifier, path, timeout)

    async def refresh(
        self,
        instance: ResourceInstance,
        timeout: Optional[float] = None,
    ) -> Optional[ResourceInstance]:
        """Re-read an instance; None when it no longer exists on the device."""
        try:
            return await self.read(instance.resource, instance.identifier, timeout=timeout)
        except NotFoundError:
            logger.info(f"{instance.path} is gone from {self.device_id}")
            return None

    @timed("update")
    async def update(
        self,
        instance: ResourceInstance,
        desired: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> ResourceInstance:
        """
        Reconcile a known instance toward desired values.

        Only changed attributes are written. When nothing differs after diff
        suppression, no device call is made and the instance is returned as-is.

        Args:
            instance: Last known instance (as returned by create/read/update)
            desired: Desired attribute values
            timeout: Per-call timeout override in seconds

        Returns:
            The instance re-read after the patch, or the given one on a no-op

        Raises:
            ValidationError: If desired values violate the schema
            NotFoundError: If the item disappeared from the device
            DeviceError: If the device rejects the patch
        """
        schema = self.registry[instance.resource]
        path = PathResolver(schema).item_path(instance.identifier)

        self._raise_if_invalid(
            schema, desired, creating=False, path=path, identifier=instance.identifier
        )

        diff = self.diff_engine.calculate(schema, desired, instance.values)
        if diff.no_change:
            logger.info(f"No changes needed for {path}")
            return instance

        try:
            bag = patch_bag(schema, diff, self.codec)
        except ReconcileError as e:
            raise _with_context(e, path, instance.identifier)

        logger.info(f"Patching {path} on {self.device_id}: {', '.join(sorted(bag))}")

        async with self._lock(path):
            try:
                await self._call(
                    "device_update", self.device.update(path, bag), path,
                    identifier=instance.identifier, timeout=timeout,
                )
            except ReconcileError as e:
                self._audit("update", schema, path, instance.identifier, bag, instance, error=e)
                raise
            self._audit("update", schema, path, instance.identifier, bag, instance)
            return await self._read(schema, instance.identifier, path, timeout)

    @timed("delete")
    async def delete(
        self,
        resource: str,
        identifier: str,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Delete a resource instance. Deleting a missing item succeeds.

        Raises:
            DeviceError: If the device rejects the delete
        """
        schema = self.registry[resource]
        path = PathResolver(schema).item_path(identifier)

        async with self._lock(path):
            try:
                await self._call(
                    "device_delete", self.device.delete(path), path,
                    identifier=identifier, timeout=timeout,
                )
            except NotFoundError:
                logger.info(f"{path} already absent on {self.device_id}")
                return
            except ReconcileError as e:
                self._audit("delete", schema, path, identifier, {}, error=e)
                raise
            self._audit("delete", schema, path, identifier, {})

    @timed("import")
    async def import_(
        self,
        resource: str,
        token: str,
        timeout: Optional[float] = None,
    ) -> ResourceInstance:
        """
        Import an existing item by identifier or natural key.

        Args:
            resource: Resource type name
            token: Identifier literal (``*2``) or natural-key value (``temp1``)
            timeout: Per-call timeout override in seconds

        Raises:
            NotFoundError: If nothing matches the token
            AmbiguousKeyError: If several items share the natural key
        """
        schema = self.registry[resource]
        resolver = PathResolver(schema)
        identifier = await self._wait(
            resolver.resolve_import(self.device, token),
            resolver.collection_path(),
            None,
            timeout,
        )
        logger.info(f"Resolved import token '{token}' to {identifier}")
        return await self.read(resource, identifier, timeout=timeout)

    def plan(
        self,
        instance: ResourceInstance,
        desired: Mapping[str, Any],
    ) -> DiffResult:
        """Validate and diff without touching the device (dry run)."""
        schema = self.registry[instance.resource]
        self._raise_if_invalid(
            schema, desired, creating=False, path=instance.path, identifier=instance.identifier
        )
        return self.diff_engine.calculate(schema, desired, instance.values)

    def preview(self, instance: ResourceInstance, desired: Mapping[str, Any]) -> str:
        """Human-readable summary of what update() would change."""
        return summarize_diff(self.plan(instance, desired), resource=instance.path)

    def validate(self, resource: str, desired: Any, creating: bool = True) -> ValidationResult:
        """Validate desired values (for external use)."""
        return SchemaValidator(self.registry[resource]).validate(desired, creating=creating)

    # === Internals ===

    async def _read(
        self,
        schema: ResourceSchema,
        identifier: str,
        path: str,
        timeout: Optional[float],
    ) -> ResourceInstance:
        bag: PropertyBag = await self._call(
            "device_get", self.device.get(path), path, identifier=identifier, timeout=timeout
        )
        try:
            values = self.codec.decode_bag(schema, bag)
        except ReconcileError as e:
            raise _with_context(e, path, identifier)
        return ResourceInstance(
            resource=schema.name,
            identifier=identifier,
            path=path,
            values=values,
        )

    def _raise_if_invalid(
        self,
        schema: ResourceSchema,
        desired: Any,
        creating: bool,
        path: str,
        identifier: Optional[str] = None,
    ) -> None:
        result = SchemaValidator(schema).validate(desired, creating=creating)
        for warning in result.warnings:
            logger.warning(f"{path}: {warning}")
        if not result.valid:
            raise ValidationError(result.errors, path=path, identifier=identifier)

    def _with_defaults(self, schema: ResourceSchema, desired: Mapping[str, Any]) -> dict[str, Any]:
        """Normalize desired values and fill declared defaults."""
        values = {}
        for name, attr in schema.attributes.items():
            if name in desired:
                values[name] = normalize(attr, desired[name])
            elif attr.default is not None:
                values[name] = attr.default
        return values

    def _lock(self, path: str) -> asyncio.Lock:
        """Per-item lock, held only while some caller references it."""
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    async def _call(
        self,
        operation: str,
        call: Awaitable[T],
        path: str,
        identifier: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> T:
        async with timed_section(operation, device_id=self.device_id, path=path):
            return await self._wait(call, path, identifier, timeout)

    async def _wait(
        self,
        call: Awaitable[T],
        path: str,
        identifier: Optional[str],
        timeout: Optional[float],
    ) -> T:
        """Await a device call under the timeout, attaching path context to errors."""
        limit = timeout if timeout is not None else self.timeout
        try:
            return await asyncio.wait_for(call, limit)
        except asyncio.TimeoutError:
            raise OperationTimeoutError(
                f"No response from {self.device_id} within {limit}s",
                path=path,
                identifier=identifier,
            ) from None
        except ReconcileError as e:
            raise _with_context(e, path, identifier)
        except OSError as e:
            raise DeviceError(str(e), path=path, identifier=identifier) from e

    def _audit(
        self,
        operation: str,
        schema: ResourceSchema,
        path: str,
        identifier: Optional[str],
        bag: Mapping[str, str],
        before: Optional[ResourceInstance] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.tracker.log_change(
            operation=operation,
            resource=schema.name,
            path=path,
            identifier=identifier,
            properties=dict(bag),
            success=error is None,
            error=str(error) if error else None,
            before_state=before.to_dict()["values"] if before else None,
        )
