"""Device handlers for different appliance APIs."""
from .base import DeviceAPI, DeviceConfig, PropertyBag
from .routeros import RouterOSDevice

__all__ = [
    "DeviceAPI",
    "DeviceConfig",
    "PropertyBag",
    "RouterOSDevice",
]

# Device type registry
DEVICE_TYPES = {
    "routeros": RouterOSDevice,
}


def create_device(device_id: str, config: dict) -> DeviceAPI:
    """Factory function to create device instances."""
    device_type = config.get("type", "").lower()
    if device_type not in DEVICE_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")

    device_class = DEVICE_TYPES[device_type]
    return device_class(device_id, DeviceConfig(**config))
