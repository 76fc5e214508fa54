"""MikroTik RouterOS v7 REST API handler.

RouterOS exposes its configuration tree under ``/rest``:

- GET    /rest/<path>         list a collection (query params filter it)
- GET    /rest/<path>/<id>    read one item
- PUT    /rest/<path>         add an item, responds with the new item
- PATCH  /rest/<path>/<id>    set a subset of properties
- DELETE /rest/<path>/<id>    remove an item

Every property value travels as a string.
"""
import logging
from typing import Any, Optional

import httpx

from .base import DeviceAPI, DeviceConfig, PropertyBag
from ..engine.errors import DeviceError, NotFoundError
from ..utils.connection import request_retry

logger = logging.getLogger(__name__)


class RouterOSDevice(DeviceAPI):
    """RouterOS handler over the REST API with HTTP basic auth."""

    def __init__(
        self,
        device_id: str,
        config: DeviceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(device_id, config)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._base_url = f"{config.protocol}://{config.host}:{config.port}/rest"

    async def connect(self) -> bool:
        """Create the pooled HTTP session."""
        self._session()
        return True

    def _session(self) -> httpx.AsyncClient:
        """Return the HTTP session, opening it on first use."""
        if self._http is None:
            logger.info(f"Opening REST session to {self.device_id} at {self._base_url}")
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                auth=(self.config.username, self.config.get_password()),
                timeout=httpx.Timeout(self.config.timeout),
                verify=self.config.verify_ssl,
                limits=httpx.Limits(
                    max_connections=self.config.pool_size,
                    max_keepalive_connections=self.config.pool_size,
                ),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
            self._connected = True
        return self._http

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        self._connected = False
        logger.info(f"Disconnected from {self.device_id}")

    # === Property-bag operations ===

    async def list_items(self, path: str, query: Optional[dict[str, str]] = None) -> list[PropertyBag]:
        """List a collection."""
        data = await self._request("GET", path, params=query)
        if not isinstance(data, list):
            raise DeviceError(
                f"Expected a list from {self.device_id}, got {type(data).__name__}",
                path=path,
            )
        return [self._to_bag(item, path) for item in data]

    async def get(self, path: str) -> PropertyBag:
        """Read one item."""
        data = await self._request("GET", path)
        return self._to_bag(data, path)

    async def create(self, path: str, bag: PropertyBag) -> str:
        """Add an item and return its .id."""
        data = await self._request("PUT", path, body=bag, idempotent=False)
        created = self._to_bag(data, path)
        identifier = created.get(".id")
        if not identifier:
            raise DeviceError(
                f"Device {self.device_id} did not return an identifier for the new item",
                path=path,
            )
        logger.info(f"Created {path}/{identifier} on {self.device_id}")
        return identifier

    async def update(self, path: str, bag: PropertyBag) -> None:
        """Patch one item."""
        await self._request("PATCH", path, body=bag, idempotent=False)
        logger.info(f"Updated {path} on {self.device_id}: {', '.join(sorted(bag))}")

    async def delete(self, path: str) -> None:
        """Remove one item."""
        await self._request("DELETE", path)
        logger.info(f"Deleted {path} on {self.device_id}")

    # === Internals ===

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[PropertyBag] = None,
        params: Optional[dict[str, str]] = None,
        idempotent: bool = True,
    ) -> Any:
        """Send one request and map failures onto the error taxonomy."""
        client = self._session()

        @request_retry(self.config.retries, self.config.retry_delay, idempotent)
        async def _send() -> httpx.Response:
            return await client.request(method, path, json=body, params=params)

        logger.debug(f"{method} {path} on {self.device_id}")
        try:
            response = await _send()
        except httpx.TimeoutException as e:
            raise DeviceError(f"Timed out talking to {self.device_id}: {e}", path=path) from e
        except httpx.HTTPError as e:
            raise DeviceError(
                f"Transport failure talking to {self.device_id}: {e}",
                path=path,
            ) from e

        if response.status_code == 404:
            raise NotFoundError(f"{self.device_id} has no such item", path=path)
        if response.status_code in (401, 403):
            raise DeviceError(
                f"Permission denied on {self.device_id}",
                path=path,
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise DeviceError(
                self._error_message(response),
                path=path,
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DeviceError(
                f"Malformed response from {self.device_id}: {e}",
                path=path,
                status_code=response.status_code,
            ) from e

    def _error_message(self, response: httpx.Response) -> str:
        """Extract RouterOS' message/detail from an error response."""
        try:
            data = response.json()
        except ValueError:
            return response.text.strip() or response.reason_phrase
        if not isinstance(data, dict):
            return str(data)
        message = data.get("message", response.reason_phrase)
        detail = data.get("detail")
        return f"{message}: {detail}" if detail else message

    def _to_bag(self, data: Any, path: str) -> PropertyBag:
        if not isinstance(data, dict):
            raise DeviceError(
                f"Expected an object from {self.device_id}, got {type(data).__name__}",
                path=path,
            )
        return {str(k): "" if v is None else str(v) for k, v in data.items()}
