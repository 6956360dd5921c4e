"""
Structured logging configuration for the Patients Service API.

- One stdout handler on the root logger; application and uvicorn loggers
  propagate to it
- JSON lines (default) or plain text (``LOG_FORMAT=text``)
- The current request id, set by LoggingMiddleware, is attached to every record
- Patient contact data (emails, phone numbers) is masked before it is written

JSON record:
    {"ts": "2024-01-15T10:30:00.123Z", "level": "WARNING",
     "logger": "services.patient_service", "msg": "Email already in use",
     "request_id": "1a2b3c4d", "email": "j***@test.com"}

Usage:
    from core.logging_config import setup_logging

    setup_logging(settings.log_level, settings.log_format == "json")  # once, in the lifespan
    logger.warning("Email already in use", extra={"email": payload.email})
"""
import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

APP_LOGGERS = ("core", "api", "services", "repositories", "main")
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# Request id of the request being handled. Copied into run_in_threadpool
# workers along with the rest of the context.
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def clear_request_id() -> None:
    _request_id.set(None)


# =============================================================================
# CONTACT DATA MASKING
# =============================================================================

_EMAIL_IN_TEXT = re.compile(r"([^\s@:=,'\"]+)@([^\s@,'\"]+\.[^\s@,'\"]+)")
_PHONE_IN_TEXT = re.compile(r"(?<![0-9])[0-9]{6}([0-9]{4})(?![0-9])")
_MASKED_KEYS = {"email", "phone"}


def mask_email(email: str) -> str:
    """``juan@test.com`` -> ``j***@test.com``."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


def mask_phone(phone: str) -> str:
    """Keep only the last four digits."""
    return "******" + phone[-4:] if len(phone) > 4 else "***"


def mask_text(text: str) -> str:
    """Mask every email address and 10-digit phone number found in ``text``."""
    text = _EMAIL_IN_TEXT.sub(lambda m: mask_email(m.group(0)), text)
    return _PHONE_IN_TEXT.sub(r"******\1", text)


def _mask_value(key: str, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _mask_value(k, v) for k, v in value.items()}
    if not isinstance(value, str):
        return value
    if key == "email":
        return mask_email(value)
    if key == "phone":
        return mask_phone(value)
    return value


# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "request_id"}


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: _mask_value(key, value)
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, extras flattened into the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": mask_text(record.getMessage()),
        }
        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        for key, value in _record_extras(record).items():
            entry.setdefault(key, value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local development."""

    def __init__(self):
        super().__init__(
            "%(asctime)s | %(levelname)-8s | %(name)s | [%(request_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or "-"
        line = mask_text(super().format(record))
        extras = _record_extras(record)
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        return line


def setup_logging(level: str = "INFO", json_format: bool = True, include_uvicorn: bool = True) -> None:
    """
    Configure logging for the application.

    The lifespan passes ``Settings.log_level`` and ``Settings.log_format``
    (``LOG_LEVEL`` and ``LOG_FORMAT`` in the environment or .env file).
    """
    level = level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    names = APP_LOGGERS + (UVICORN_LOGGERS if include_uvicorn else ())
    for name in names:
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.propagate = True
        if name in APP_LOGGERS:
            logger.setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"level": level, "format": "json" if json_format else "text"}
    )
