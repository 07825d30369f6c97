"""
Structured logging setup using structlog directly.

Transitions are written to the ``audit`` logger as plain structured entries.
"""

import logging

import structlog

from .settings import get_settings


def setup_logging() -> None:
    """
    Setup structured logging with structlog.

    Level and renderer come from the engine settings.
    """
    settings = get_settings()
    logging.basicConfig(format="%(message)s", level=settings.log_level.value)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def get_audit_logger() -> structlog.stdlib.BoundLogger:
    """Logger for audit events."""
    return structlog.get_logger("audit")


def log_transition_event(
    entity_type: str,
    entity_id: str,
    from_status: str,
    to_status: str,
    reason: str | None = None,
    actor: str = "system",
    **kwargs: object,
) -> None:
    """
    Log a status transition as an audit entry.

    Args:
        entity_type: ``subscription`` or ``payment``
        entity_id: Id of the entity that changed
        from_status: Status before the change
        to_status: Status after the change
    """
    get_audit_logger().info(
        f"{entity_type}.transition",
        audit_resource_type=entity_type,
        audit_resource_id=entity_id,
        from_status=from_status,
        to_status=to_status,
        reason=reason,
        actor=actor,
        **kwargs,
    )


# Initialize on import
setup_logging()
