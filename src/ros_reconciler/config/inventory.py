"""Device inventory management from YAML configuration."""
import logging
from pathlib import Path
from typing import Optional

import yaml

from ..devices import DEVICE_TYPES, DeviceAPI, create_device

logger = logging.getLogger(__name__)


class DeviceInventory:
    """Manages the device inventory loaded from YAML config.

    ```yaml
    defaults:
      protocol: https
      port: 443
      password_env: ROUTEROS_PASSWORD

    devices:
      core-rtr:
        type: routeros
        name: "Core router"
        host: 192.168.88.1
        username: admin
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._devices: dict[str, DeviceAPI] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "ros-reconciler" / "devices.yaml",
            Path("/etc/ros-reconciler/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path, encoding="utf-8") as f:
            self._config = yaml.safe_load(f) or {}

        devices = self._config.get("devices") or {}
        self._config["devices"] = devices

        # Apply defaults
        defaults = self._config.get("defaults", {})
        for device_id, device_config in devices.items():
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value
            device_config.setdefault("name", device_id)

            device_type = str(device_config.get("type", "")).lower()
            if device_type not in DEVICE_TYPES:
                logger.warning(f"Device '{device_id}' has unsupported type '{device_type}'")

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config["devices"].keys())

    def get_device_config(self, device_id: str) -> dict:
        """Get raw config for a device."""
        devices = self._config["devices"]
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return devices[device_id]

    def get_device(self, device_id: str) -> DeviceAPI:
        """Get or create a device instance."""
        if device_id not in self._devices:
            config = self.get_device_config(device_id)
            self._devices[device_id] = create_device(device_id, config)
        return self._devices[device_id]

    def get_devices_by_type(self, device_type: str) -> list[DeviceAPI]:
        """Get devices filtered by type."""
        return [
            self.get_device(device_id)
            for device_id, config in self._config["devices"].items()
            if config.get("type") == device_type
        ]

    async def close_all(self) -> None:
        """Close all device sessions."""
        for device in self._devices.values():
            if device.is_connected:
                await device.disconnect()
        self._devices.clear()
