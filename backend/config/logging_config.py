"""Logging Configuration - Structured JSON logging for trigger runs."""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per record so scheduler logs can be aggregated
    and filtered by run, campaign or rule.
    """

    def __init__(self, app_name: str = "sentinel"):
        super().__init__()
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "app": self.app_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Add bound context (run_id, campaign_id, rule_id, ...)
        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds contextual information to log records.
    """

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra", {}))
        if self.extra:
            extra.update(self.extra)
        kwargs["extra"] = {"extra_fields": extra}
        return msg, kwargs

    def bind(self, **context) -> "ContextualLogger":
        """Return a child adapter with additional context."""
        merged = dict(self.extra or {})
        merged.update({k: v for k, v in context.items() if v is not None})
        return ContextualLogger(self.logger, merged)


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    app_name: str = "sentinel"
) -> None:
    """
    Set up application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON formatted logs
        app_name: Application name stamped on every JSON record
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if json_output:
        handler.setFormatter(JSONFormatter(app_name=app_name))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

    root_logger.addHandler(handler)

    # Set log levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str, **context) -> ContextualLogger:
    """
    Get a contextual logger.

    Args:
        name: Logger name
        **context: Additional context to include in all log messages

    Returns:
        ContextualLogger instance
    """
    logger = logging.getLogger(name)
    return ContextualLogger(logger, context)


def get_run_logger(
    name: str,
    run_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    rule_id: Optional[str] = None,
    **extra
) -> ContextualLogger:
    """
    Get a logger bound to a trigger run.

    Args:
        name: Logger name
        run_id: Batch pass identifier
        campaign_id: Campaign being evaluated
        rule_id: Rule being evaluated
        **extra: Additional context

    Returns:
        ContextualLogger instance
    """
    context = {}
    if run_id:
        context["run_id"] = run_id
    if campaign_id:
        context["campaign_id"] = campaign_id
    if rule_id:
        context["rule_id"] = rule_id
    context.update(extra)

    return get_logger(name, **context)
