"""Audit logging for device writes.

Every create, update and delete issued by the orchestrator is recorded as one
JSON line: resource path, identifier, the property bag that was sent, and the
outcome. The trail goes to a dedicated logger so it can be routed separately.
"""
import json
import logging
import os
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

audit_logger = logging.getLogger("ros_reconciler.audit")

DEFAULT_AUDIT_DIR = "~/.ros_reconciler"


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.ros_reconciler/

    Returns:
        Path of the audit log file
    """
    log_dir = os.path.expanduser(log_dir or DEFAULT_AUDIT_DIR)
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # JSON lines, one record per write
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """Record of one device write."""
    timestamp: str
    device_id: str
    operation: str  # create, update, delete
    resource: str
    path: str
    identifier: Optional[str]
    success: bool
    properties: dict
    before_state: Optional[dict] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log device writes for one device."""

    def __init__(self, device_id: str):
        self.device_id = device_id

    def log_change(
        self,
        operation: str,
        resource: str,
        path: str,
        identifier: Optional[str],
        properties: dict,
        success: bool,
        error: Optional[str] = None,
        before_state: Optional[dict] = None,
    ) -> ChangeRecord:
        """Log a device write.

        Args:
            operation: create, update or delete
            resource: Resource type name
            path: Path the write was issued against
            identifier: Device identifier, if known
            properties: Property bag sent to the device
            success: Whether the write succeeded
            error: Error message if failed
            before_state: Last known values before the write

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device_id=self.device_id,
            operation=operation,
            resource=resource,
            path=path,
            identifier=identifier,
            success=success,
            properties=dict(properties),
            before_state=before_state,
            error=error,
        )
        audit_logger.info(record.to_json())
        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    resource: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.ros_reconciler/audit.log
        device_id: Filter by device ID
        resource: Filter by resource type
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), "audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if device_id and record.device_id != device_id:
                continue
            if resource and record.resource != resource:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
