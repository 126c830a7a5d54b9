"""
app/core/logging.py — loguru structured JSON logging setup
Structured JSON records go to stdout. Messages relayed through
POST /api/log/{level} are mirrored to a separate colorized console sink.
"""
from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

# Console markup per relayed severity; unknown levels print uncolored
RELAY_CONSOLE_TAGS: dict[str, tuple[str, str]] = {
    "log": ("<bold><blue>", "</blue></bold>"),
    "warn": ("<bold><yellow>", "</yellow></bold>"),
    "error": ("<bold><red>", "</red></bold>"),
}

_RELAY_LOGURU_LEVELS: dict[str, str] = {
    "log": "INFO",
    "warn": "WARNING",
    "error": "ERROR",
}


def _is_relay(record: dict[str, Any]) -> bool:
    return bool(record["extra"].get("relay"))


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure loguru: JSON records to stdout, relayed client logs to a
    colorized stderr sink.
    """
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level.upper(),
        format="{message}",
        serialize=True,
        backtrace=True,
        diagnose=False,
        colorize=False,
        filter=lambda record: not _is_relay(record),
    )

    logger.add(
        sys.stderr,
        level="DEBUG",
        format="{message}",
        colorize=True,
        filter=_is_relay,
    )


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


# ──────────────────────────────────────────────────────────────────────────────
# Log event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_discord_call(
    method: str,
    route: str,
    status_code: Optional[int],
    latency_ms: float,
    error: Optional[str] = None,
) -> None:
    """Every Discord REST call is logged."""
    record = _build_log_record("discord_client", "api_call", {
        "method": method,
        "route": route,
        "status_code": status_code,
        "latency_ms": round(latency_ms, 2),
        "error": error,
    })
    if error:
        logger.warning(json.dumps(record))
    else:
        logger.debug(json.dumps(record))


def log_application(
    member_id: str,
    client_ip: Optional[str],
    outcome: str,  # sent | member_not_found | rate_limited | forward_failed
    courses_count: int = 0,
) -> None:
    record = _build_log_record("applications", "submit", {
        "member_id": member_id,
        "client_ip": client_ip,
        "outcome": outcome,
        "courses_count": courses_count,
    })
    logger.info(json.dumps(record))


def log_feedback(
    kind: str,  # bug | suggestion
    user_id: str,
    success: bool,
    error: Optional[str] = None,
) -> None:
    record = _build_log_record("feedback", kind, {
        "user_id": user_id,
        "success": success,
        "error": error,
    })
    logger.info(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Every error is logged with full context."""
    tb = traceback.format_exc()
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "stack_trace": tb[:2000] if tb else "",
        "context": context or {},
    })
    logger.error(json.dumps(record))


def relay_to_console(level: str, message: str, data: Any) -> None:
    """Mirror a relayed client log line to the console sink, colored by severity."""
    tags = RELAY_CONSOLE_TAGS.get(level)
    loguru_level = _RELAY_LOGURU_LEVELS.get(level, "INFO")
    if tags:
        opening, closing = tags
        template = f"{opening}{{}}:{closing} {{}}\n{{}}"
    else:
        template = "{}: {}\n{}"
    # Arguments are not parsed for markup, only the template is
    logger.bind(relay=True).opt(colors=True).log(
        loguru_level, template, level, message, json.dumps(data, default=str)
    )
