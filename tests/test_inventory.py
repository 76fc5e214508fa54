"""Tests for device inventory management."""
import os
import tempfile

import pytest

from ros_reconciler.config.inventory import DeviceInventory
from ros_reconciler.devices import RouterOSDevice


class TestDeviceInventory:
    """Tests for DeviceInventory class."""

    @pytest.fixture
    def temp_config(self):
        """Create a temporary config file for testing."""
        config_content = """
defaults:
  password_env: "TEST_PASSWORD"
  timeout: 30
  retries: 3

devices:
  core-rtr:
    type: routeros
    name: "Core Router"
    host: 192.168.88.1
    username: admin

  lab-rtr:
    type: routeros
    host: 10.0.0.1
    protocol: http
    port: 8080
    retries: 1

  old-switch:
    type: brocade
    host: 192.168.1.1
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(config_content)
            f.flush()
            yield f.name
        os.unlink(f.name)

    def test_load_config(self, temp_config):
        """Inventory loads config file correctly."""
        inv = DeviceInventory(temp_config)
        assert inv.get_device_ids() == ["core-rtr", "lab-rtr", "old-switch"]

    def test_get_device_config(self, temp_config):
        """Defaults are merged under per-device values."""
        inv = DeviceInventory(temp_config)
        config = inv.get_device_config("core-rtr")
        assert config["type"] == "routeros"
        assert config["host"] == "192.168.88.1"
        assert config["password_env"] == "TEST_PASSWORD"
        assert config["timeout"] == 30

        lab = inv.get_device_config("lab-rtr")
        assert lab["retries"] == 1
        assert lab["name"] == "lab-rtr"

    def test_unknown_device(self, temp_config):
        inv = DeviceInventory(temp_config)
        with pytest.raises(KeyError):
            inv.get_device_config("nonexistent")

    def test_get_device_is_cached(self, temp_config):
        """Device instances are created once per id."""
        inv = DeviceInventory(temp_config)
        device = inv.get_device("lab-rtr")
        assert isinstance(device, RouterOSDevice)
        assert device.config.port == 8080
        assert inv.get_device("lab-rtr") is device

    def test_unsupported_type_warns(self, temp_config, caplog):
        with caplog.at_level("WARNING"):
            inv = DeviceInventory(temp_config)
        assert "old-switch" in caplog.text
        with pytest.raises(ValueError):
            inv.get_device("old-switch")

    def test_get_devices_by_type(self, temp_config):
        inv = DeviceInventory(temp_config)
        devices = inv.get_devices_by_type("routeros")
        assert [d.device_id for d in devices] == ["core-rtr", "lab-rtr"]

    @pytest.mark.asyncio
    async def test_close_all(self, temp_config):
        inv = DeviceInventory(temp_config)
        device = inv.get_device("core-rtr")
        await device.connect()
        await inv.close_all()
        assert not device.is_connected
        assert inv.get_device("core-rtr") is not device

    def test_empty_devices(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("defaults: {}\n")
        try:
            assert DeviceInventory(f.name).get_device_ids() == []
        finally:
            os.unlink(f.name)
