"""ros_reconciler - schema-driven reconciliation of RouterOS configuration."""

__version__ = "0.1.0"
