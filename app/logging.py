import logging
import json
import os
from typing import Any, Dict
from opentelemetry.trace import get_current_span


SENSITIVE_KEYS = {"password", "token", "access_token", "email", "phone", "shipping_address"}

# Record attributes passed through ``extra=`` that end up in the JSON line.
CONTEXT_FIELDS = ("user_id", "order_id", "product_id", "seller_id", "buyer_id")


def current_request_id() -> str:
    try:
        from flask import g
        rid = getattr(g, "request_id", None)
        return rid or "n/a"
    except Exception:
        return "n/a"


def current_user_id() -> str:
    try:
        from flask import g
        user = getattr(g, "current_user", None)
        return user.id if user is not None else "anonymous"
    except Exception:
        return "anonymous"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        try:
            record.request_id = current_request_id()
        except Exception:
            record.request_id = "n/a"
        if not hasattr(record, "user_id"):
            record.user_id = current_user_id()
        return True


def current_trace_ids():
    try:
        span = get_current_span()
        ctx = span.get_span_context() if span else None
        if not ctx or not ctx.is_valid:
            return "n/a", "n/a"
        return format(ctx.trace_id, "032x"), format(ctx.span_id, "016x")
    except Exception:
        return "n/a", "n/a"


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        trace_id, span_id = current_trace_ids()
        record.trace_id = trace_id
        record.span_id = span_id
        return True


def _mask_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    masked = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            masked[key] = "[REDACTED]"
        elif isinstance(value, dict):
            masked[key] = _mask_dict(value)
        else:
            masked[key] = value
    return masked


class MaskingFilter(logging.Filter):
    """Redact sensitive keys in dict messages, except debug lines outside production."""

    def filter(self, record: logging.LogRecord) -> bool:
        env = os.getenv("APP_ENV", "development").lower()
        if record.levelno == logging.DEBUG and env != "production":
            return True
        if isinstance(record.msg, dict):
            record.msg = _mask_dict(record.msg)
        if isinstance(record.args, dict):
            record.args = _mask_dict(record.args)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "request_id": getattr(record, "request_id", "n/a"),
            "trace_id": getattr(record, "trace_id", "n/a"),
            "span_id": getattr(record, "span_id", "n/a"),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                base[field] = value
        if isinstance(record.msg, dict):
            base.update(record.msg)
        else:
            base["message"] = record.getMessage()
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, default=str)


def configure_logging(app) -> None:
    datefmt = "%Y-%m-%dT%H:%M:%S%z"
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(datefmt=datefmt))
    handler.addFilter(RequestIdFilter())
    handler.addFilter(TraceIdFilter())
    handler.addFilter(MaskingFilter())

    app.logger.handlers.clear()
    app.logger.addHandler(handler)

    level_name = os.getenv("LOG_LEVEL")
    if level_name:
        level = getattr(logging, level_name.upper(), logging.INFO)
    else:
        level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    app.logger.setLevel(level)

    root = logging.getLogger()
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        root.addHandler(handler)
    root.setLevel(level)

    for name in ("werkzeug", "celery"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.handlers.clear()
        lg.addHandler(handler)
