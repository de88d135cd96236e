"""Structured logging configuration for pnpmshield."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from .config import get_settings


def setup_logging() -> None:
    """Configure structured logging for pnpmshield.

    Everything is written to stderr so the installer hook can keep stdout for
    the sanitized manifest.
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    processors: list[Processor] = [
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
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_audit_event(
    logger: structlog.stdlib.BoundLogger,
    repository: str,
    status: str,
    tier: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Log the outcome of auditing one repository."""
    log_data: Dict[str, Any] = {
        "repository": repository,
        "status": status,
    }

    if tier is not None:
        log_data["tier"] = tier

    log_data.update(kwargs)

    if status == "failed":
        logger.warning("audit.repository", **log_data)
    else:
        logger.info("audit.repository", **log_data)


def log_migration_event(
    logger: structlog.stdlib.BoundLogger,
    run_id: str,
    repository: str,
    step: str,
    outcome: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Log a migration step with run context."""
    log_data: Dict[str, Any] = {
        "run_id": run_id,
        "repository": repository,
        "step": step,
    }

    if outcome is not None:
        log_data["outcome"] = outcome

    log_data.update(kwargs)

    if outcome == "FAILED":
        logger.error(f"migration.{step}", **log_data)
    elif outcome == "WARNING":
        logger.warning(f"migration.{step}", **log_data)
    else:
        logger.info(f"migration.{step}", **log_data)


def log_policy_action(
    logger: structlog.stdlib.BoundLogger,
    action: str,
    package_name: str,
    script: str = "",
    **kwargs: Any,
) -> None:
    """Log a script policy decision."""
    log_data: Dict[str, Any] = {
        "action": action,
        "package": package_name,
    }

    # Script bodies stay in the audit log; only the name goes to the stream
    if script:
        log_data["script"] = script

    log_data.update(kwargs)

    if action == "BLOCKED_PACKAGE":
        logger.warning("policy.action", **log_data)
    else:
        logger.info("policy.action", **log_data)


# Initialize logging on module import
setup_logging()
