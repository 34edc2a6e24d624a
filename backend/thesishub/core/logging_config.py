"""
ThesisHub - Logging

One "thesishub" logger for the whole backend. Every record is stamped with
the current request id, caller and group (set by the middleware and the
endpoints), rendered as JSON in production and as aligned text elsewhere.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from thesishub.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
group_id_var: ContextVar[str] = ContextVar('group_id', default='')

CONTEXT_VARS = {
    'request_id': request_id_var,
    'user_id': user_id_var,
    'group_id': group_id_var,
}

# LogRecord attributes that are not "extra" fields
_STANDARD_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def set_group_id(group_id: str) -> None:
    group_id_var.set(group_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


class ContextFilter(logging.Filter):
    """Copy the request context onto each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in CONTEXT_VARS.items():
            setattr(record, name, var.get() or '-')
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith('_') or value in (None, '-'):
                continue
            entry[key] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(entry, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s|%(user_id)s|%(group_id)s] %(message)s"


class ThesisHubLogger(logging.Logger):
    """Logger with helpers for the events ThesisHub cares about"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        level = logging.WARNING if status_code >= 500 else logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} in {duration_ms:.1f}ms",
            extra={"event": "http", "status": status_code, "duration_ms": round(duration_ms, 2), **kwargs},
        )

    def log_auth_event(self, event: str, success: bool, principal: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Login/registration outcome; failures are warnings"""
        outcome = "ok" if success else f"failed ({reason})" if reason else "failed"
        self.log(
            logging.INFO if success else logging.WARNING,
            f"{event} {principal or '?'}: {outcome}",
            extra={"event": f"auth.{event}", "principal": principal, **kwargs},
        )

    def log_workflow_event(self, entity: str, entity_id: str, event: str, **kwargs) -> None:
        """
        A state change in groups, invitations, proposals, requests or group
        records, e.g. log_workflow_event("request", rid, "approved", by="admin").
        """
        details = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.info(
            f"{entity} {entity_id} {event}" + (f" ({details})" if details else ""),
            extra={"event": f"{entity}.{event}", "entity_id": entity_id, **kwargs},
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None, **kwargs) -> None:
        self.error(
            f"{type(error).__name__} in {context or 'unknown'}: {error}",
            exc_info=error,
            extra={"event": "error", **kwargs},
        )


def _build_handler(handler: logging.Handler, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    return handler


def setup_logging() -> ThesisHubLogger:
    """(Re)configure the "thesishub" logger from settings"""
    logging.setLoggerClass(ThesisHubLogger)
    logger = logging.getLogger("thesishub")
    logger.__class__ = ThesisHubLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    production = settings.ENVIRONMENT == "production"
    formatter = JSONFormatter() if production else logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S")

    logger.addHandler(_build_handler(logging.StreamHandler(sys.stdout), formatter, logging.INFO))

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
        logger.addHandler(_build_handler(file_handler, JSONFormatter() if production else logging.Formatter(TEXT_FORMAT), logging.DEBUG))

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


logger: ThesisHubLogger = setup_logging()
