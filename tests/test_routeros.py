"""Tests for the RouterOS REST handler using a mocked HTTP transport."""
import json

import httpx
import pytest

from ros_reconciler.devices.base import DeviceConfig
from ros_reconciler.devices.routeros import RouterOSDevice
from ros_reconciler.engine.errors import DeviceError, NotFoundError

from conftest import BGP_PATH


def make_device(handler):
    """Create a RouterOS device whose HTTP calls go to handler."""
    config = DeviceConfig(
        type="routeros",
        name="Test router",
        host="192.168.88.1",
        username="admin",
        password="test",
        retries=2,
        retry_delay=0,
    )
    return RouterOSDevice("test-rtr", config, transport=httpx.MockTransport(handler))


class TestRouterOSRequests:
    """Tests for verb mapping and request shape."""

    @pytest.mark.asyncio
    async def test_list_uses_get_on_collection(self):
        """Listing GETs the collection under /rest with query filters."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{".id": "*1", "name": "default", "as": 65000}])

        async with make_device(handler) as device:
            items = await device.list_items(BGP_PATH, {"name": "default"})

        assert items == [{".id": "*1", "name": "default", "as": "65000"}]
        assert seen[0].method == "GET"
        assert seen[0].url.path == f"/rest{BGP_PATH}"
        assert seen[0].url.params["name"] == "default"
        assert seen[0].headers["authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_create_uses_put_and_returns_id(self):
        """RouterOS adds items with PUT on the collection."""
        seen = []

        def handler(request):
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(201, json={".id": "*2", **body})

        async with make_device(handler) as device:
            identifier = await device.create(BGP_PATH, {"name": "temp1", "as": "65000"})

        assert identifier == "*2"
        assert seen[0].method == "PUT"
        assert json.loads(seen[0].content) == {"name": "temp1", "as": "65000"}

    @pytest.mark.asyncio
    async def test_create_without_id_fails(self):
        def handler(request):
            return httpx.Response(201, json={"name": "temp1"})

        async with make_device(handler) as device:
            with pytest.raises(DeviceError):
                await device.create(BGP_PATH, {"name": "temp1"})

    @pytest.mark.asyncio
    async def test_update_uses_patch(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={".id": "*2", "comment": "x"})

        async with make_device(handler) as device:
            await device.update(f"{BGP_PATH}/*2", {"comment": "x"})

        assert seen[0].method == "PATCH"
        assert seen[0].url.path == f"/rest{BGP_PATH}/*2"

    @pytest.mark.asyncio
    async def test_delete_accepts_empty_response(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        async with make_device(handler) as device:
            await device.delete(f"{BGP_PATH}/*2")

        assert seen[0].method == "DELETE"

    @pytest.mark.asyncio
    async def test_none_values_become_blank(self):
        def handler(request):
            return httpx.Response(200, json={".id": "*2", "comment": None, "disabled": "false"})

        async with make_device(handler) as device:
            bag = await device.get(f"{BGP_PATH}/*2")

        assert bag["comment"] == ""
        assert bag["disabled"] == "false"


class TestRouterOSErrors:
    """Tests for mapping HTTP failures onto the error taxonomy."""

    @pytest.mark.asyncio
    async def test_404_is_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"error": 404, "message": "Not Found"})

        async with make_device(handler) as device:
            with pytest.raises(NotFoundError) as exc:
                await device.get(f"{BGP_PATH}/*9")
        assert exc.value.path == f"{BGP_PATH}/*9"

    @pytest.mark.asyncio
    async def test_401_is_permission_denied(self):
        def handler(request):
            return httpx.Response(401, json={"error": 401, "message": "Unauthorized"})

        async with make_device(handler) as device:
            with pytest.raises(DeviceError) as exc:
                await device.list_items(BGP_PATH)
        assert exc.value.status_code == 401
        assert "Permission denied" in str(exc.value)

    @pytest.mark.asyncio
    async def test_400_carries_device_detail(self):
        def handler(request):
            return httpx.Response(
                400,
                json={"error": 400, "message": "Bad Request", "detail": "input does not match any value of as"},
            )

        async with make_device(handler) as device:
            with pytest.raises(DeviceError) as exc:
                await device.create(BGP_PATH, {"name": "x", "as": "bogus"})
        assert "input does not match any value of as" in str(exc.value)
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        def handler(request):
            return httpx.Response(200, content=b"{not json")

        async with make_device(handler) as device:
            with pytest.raises(DeviceError):
                await device.get(f"{BGP_PATH}/*1")

    @pytest.mark.asyncio
    async def test_read_retries_on_connect_failure(self):
        """Idempotent reads are retried after transport failures."""
        attempts = 0

        def handler(request):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[])

        async with make_device(handler) as device:
            assert await device.list_items(BGP_PATH) == []
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_write_not_retried_after_read_timeout(self):
        """A write that may have reached the device is not replayed."""
        attempts = 0

        def handler(request):
            nonlocal attempts
            attempts += 1
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_device(handler) as device:
            with pytest.raises(DeviceError):
                await device.update(f"{BGP_PATH}/*2", {"comment": "x"})
        assert attempts == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_device_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_device(handler) as device:
            with pytest.raises(DeviceError):
                await device.get(f"{BGP_PATH}/*1")

    @pytest.mark.asyncio
    async def test_invalid_utf8_body(self):
        """Undecodable bytes are a malformed response, not a crash."""
        def handler(request):
            return httpx.Response(200, content=b'{"name": "\xff\xfe"}')

        async with make_device(handler) as device:
            with pytest.raises(DeviceError) as exc:
                await device.get(f"{BGP_PATH}/*1")
        assert exc.value.path == f"{BGP_PATH}/*1"

    @pytest.mark.asyncio
    async def test_invalid_utf8_error_body(self):
        def handler(request):
            return httpx.Response(500, content=b"failure \xff\xfe")

        async with make_device(handler) as device:
            with pytest.raises(DeviceError) as exc:
                await device.list_items(BGP_PATH)
        assert exc.value.status_code == 500
        assert "failure" in str(exc.value)


class TestRouterOSSession:
    """Tests for session handling."""

    @pytest.mark.asyncio
    async def test_first_request_opens_session(self):
        """Requests work without an explicit connect()."""
        device = make_device(lambda request: httpx.Response(200, json=[]))
        assert not device.is_connected

        assert await device.list_items(BGP_PATH) == []
        assert device.is_connected
        await device.disconnect()
        assert not device.is_connected

    @pytest.mark.asyncio
    async def test_connect_is_reentrant(self):
        device = make_device(lambda request: httpx.Response(200, json=[]))
        await device.connect()
        session = device._session()
        await device.connect()
        assert device._session() is session
        await device.disconnect()
