"""Configuration loading."""
from .inventory import DeviceInventory

__all__ = ["DeviceInventory"]
