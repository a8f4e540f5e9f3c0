"""
TradeCockpit Logger

Centralized Loguru-based logging with structured output, context binding
and optional file rotation.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import get_settings


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure Loguru sinks from settings.

    Args:
        log_level: Override default log level from settings
    """
    settings = get_settings()

    logger.remove()

    level = log_level or settings.log_level.value

    if settings.log_json_format:
        def json_formatter(record):
            json_record = {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "logger": record["name"],
                "function": record["function"],
                "line": record["line"],
                "message": record["message"],
            }
            if record["extra"]:
                json_record.update(record["extra"])
            # Loguru formats the returned string, so braces must be escaped
            return json.dumps(json_record, default=str).replace("{", "{{").replace("}", "}}") + "\n"

        logger.add(
            sys.stderr,
            format=json_formatter,
            level=level,
            backtrace=True,
            diagnose=not settings.is_production()
        )
    else:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        logger.add(
            sys.stderr,
            format=console_format,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=not settings.is_production()
        )

    if settings.log_to_file:
        log_path = Path(settings.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{message}"
        )

        logger.add(
            str(log_path),
            format=file_format,
            level=level,
            rotation=settings.log_rotation_size,
            retention=f"{settings.log_retention_days} days",
            compression=settings.log_compression,
            serialize=settings.log_json_format,
            backtrace=True,
            diagnose=not settings.is_production(),
            enqueue=True
        )

    logger.info(f"{settings.app_name} logging initialized - Level: {level}")
    logger.info(f"Environment: {settings.environment.value}")

    if settings.debug:
        logger.debug("Debug mode enabled")


def get_logger(name: str = None):
    """
    Get a logger instance with optional name binding.

    Args:
        name: Logger name for identification and filtering

    Returns:
        Configured logger instance with context binding
    """
    if name:
        return logger.bind(component=name)
    return logger


class ContextLogger:
    """
    Context-aware logger for dashboard components.

    Binds a component name and adds event-typed helpers for risk alerts,
    quote data and user actions.
    """

    def __init__(self, component: str):
        """
        Initialize context logger.

        Args:
            component: Component name (e.g., 'risk', 'data', 'store')
        """
        self.component = component
        self.logger = logger.bind(component=component)

    def risk(self, message: str, level: str = "WARNING", **kwargs):
        """Log risk alerts with risk context."""
        context = {"event_type": "risk", "risk_level": level, **kwargs}

        if level.upper() == "CRITICAL":
            self.logger.bind(**context).critical(f"RISK: {message}")
        elif level.upper() == "ERROR":
            self.logger.bind(**context).error(f"RISK: {message}")
        elif level.upper() == "INFO":
            self.logger.bind(**context).info(f"RISK: {message}")
        else:
            self.logger.bind(**context).warning(f"RISK: {message}")

    def system(self, message: str, level: str = "INFO", **kwargs):
        """Log system-related messages with system context."""
        context = {"event_type": "system", "system_level": level, **kwargs}

        if level.upper() == "ERROR":
            self.logger.bind(**context).error(f"SYSTEM: {message}")
        elif level.upper() == "WARNING":
            self.logger.bind(**context).warning(f"SYSTEM: {message}")
        else:
            self.logger.bind(**context).info(f"SYSTEM: {message}")

    def data(self, message: str, data_type: str = None, **kwargs):
        """Log data processing messages."""
        context = {"event_type": "data", "data_type": data_type, **kwargs}
        self.logger.bind(**context).debug(f"DATA: {message}")

    def debug(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).debug(message)
        else:
            self.logger.debug(message)

    def info(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).info(message)
        else:
            self.logger.info(message)

    def warning(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).warning(message)
        else:
            self.logger.warning(message)

    def error(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).error(message)
        else:
            self.logger.error(message)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        if kwargs:
            self.logger.bind(**kwargs).exception(message)
        else:
            self.logger.exception(message)


def create_audit_log(
    action: str,
    component: str,
    result: str,
    details: Dict[str, Any] = None,
    user: str = None
) -> None:
    """
    Create audit log entry for operator actions.

    Args:
        action: Action performed
        component: Component affected
        result: Action result
        details: Additional details
        user: User performing action
    """
    audit_context = {
        "event_type": "audit",
        "action": action,
        "component": component,
        "result": result,
        "user": user or "operator",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if details:
        audit_context["details"] = details

    logger.bind(**audit_context).info(f"AUDIT: {user or 'OPERATOR'} {action} {component} - {result}")


# Pre-configured component loggers
core_logger = ContextLogger("core")
risk_logger = ContextLogger("risk")
data_logger = ContextLogger("data")
store_logger = ContextLogger("store")
monitor_logger = ContextLogger("monitor")
