"""Logging configuration for ros_reconciler.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Timing decorators for CRUD operations and device calls

Environment Variables:
    ROS_RECONCILER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    ROS_RECONCILER_LOG_FILE: Path to log file (default: ~/.ros_reconciler/ros_reconciler.log)
    ROS_RECONCILER_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    ROS_RECONCILER_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from ros_reconciler.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("read")
    async def read(self, resource, identifier):
        ...

    async with timed_section("device_get", device_id="core-rtr", path=path):
        ...
"""
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

LOGGER_NAME = "ros_reconciler"

# Timing logger - separate from main logger for easy filtering
perf_logger = logging.getLogger(f"{LOGGER_NAME}.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("ROS_RECONCILER_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".ros_reconciler" / "ros_reconciler.log"
    path_str = os.environ.get("ROS_RECONCILER_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(log_file: Optional[Path] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (respects ROS_RECONCILER_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)

    Timing lines from ``ros_reconciler.perf`` propagate to both handlers.
    Calling it again replaces the handlers instead of stacking them.
    """
    log_level = get_log_level()
    log_file = log_file or get_log_file()
    max_size_mb = int(os.environ.get("ROS_RECONCILER_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("ROS_RECONCILER_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Main format: timestamp - logger - level - message
    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    root_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    root_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")


def _format_timing(
    operation: str,
    device_id: Optional[str],
    elapsed: float,
    outcome: str,
    extra: dict,
) -> str:
    msg = f"{operation:16s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    return msg


def timed(operation: str):
    """Decorator to log execution time of an async method.

    The device id is taken from ``self.device_id`` when the instance has one.

    Usage:
        @timed("create")
        async def create(self, resource, desired):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            dev_id = getattr(args[0], "device_id", None) if args else None

            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_format_timing(operation, dev_id, elapsed, f"FAIL: {e}", {}))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.info(_format_timing(operation, dev_id, elapsed, "OK", {}))
            return result

        return wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Args:
        operation: Name of the operation
        device_id: Device identifier
        **extra: Additional context to log

    Usage:
        async with timed_section("device_patch", device_id="core-rtr", path=path):
            await device.update(path, bag)
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_format_timing(operation, device_id, elapsed, f"FAIL: {e}", extra))
        raise
    elapsed = (time.perf_counter() - start) * 1000
    perf_logger.debug(_format_timing(operation, device_id, elapsed, "OK", extra))
