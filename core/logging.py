"""Structured logging for scenario campaigns.

Records logged while a campaign runs are stamped with where they came
from: the campaign id, the Hypothesis seed, the validator under test and
the index of the scenario being checked. JSON output carries these as
top-level fields; text output as a bracketed prefix, so a warning about
one mismatching scenario can be replayed from the log alone.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional, TextIO

from pythonjsonlogger import jsonlogger


CAMPAIGN_FIELDS = ("campaign_id", "seed", "validator", "scenario")

# Fields of the innermost LogContext, merged with every enclosing one
_campaign_context: ContextVar[tuple[tuple[str, Any], ...]] = ContextVar(
    "campaign_context", default=()
)


def current_context() -> dict[str, Any]:
    """Campaign fields in effect for the current thread or task."""
    return dict(_campaign_context.get())


class CampaignContextFilter(logging.Filter):
    """Copy the current campaign fields onto each record.

    Fields passed explicitly through ``extra=`` win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name, value in _campaign_context.get():
            if not hasattr(record, name):
                setattr(record, name, value)
        return True


def campaign_fields(record: logging.LogRecord) -> dict[str, Any]:
    """The campaign fields a record carries, in a fixed order."""
    fields = {}
    for name in CAMPAIGN_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding service, level, logger and campaign fields."""

    def __init__(
        self,
        *args: Any,
        service_name: str = "custody-scenario-generator",
        **kwargs: Any
    ):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["time"] = log_record.pop("asctime", None) or self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service_name

        # Unset campaign fields are left out rather than written as null
        for name in CAMPAIGN_FIELDS:
            if log_record.get(name) is None:
                log_record.pop(name, None)
        log_record.update(campaign_fields(record))

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("levelname", None)
        log_record.pop("name", None)


class TextFormatter(logging.Formatter):
    """Terminal formatter prefixing messages with the campaign fields.

    ``[campaign_id=1f0c... seed=7 scenario=12] Scenario unexpected acceptance``
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = campaign_fields(record)
        if not fields:
            return super().format(record)

        prefix = " ".join(f"{name}={value}" for name, value in fields.items())
        original_msg = record.msg
        record.msg = f"[{prefix}] {original_msg}"
        try:
            return super().format(record)
        finally:
            record.msg = original_msg


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    service_name: str = "custody-scenario-generator",
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """Configure the root logger for a campaign run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Log format ('json' or 'text').
        service_name: Service name for log identification.
        stream: Where records are written (default: stdout).

    Returns:
        The root logger configured with the specified settings.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CampaignContextFilter())

    if fmt == "json":
        formatter = CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            service_name=service_name
        )
    else:
        formatter = TextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Hypothesis reports falsifying examples through its own logger
    logging.getLogger("hypothesis").setLevel(logging.WARNING)

    return root_logger


class LogContext:
    """Stamp campaign fields on every record logged inside the block.

    Nested contexts add to the enclosing one; ``None`` values are
    ignored so optional settings can be passed straight through.

    Usage:
        with LogContext(campaign_id="abc-123", seed=7):
            with LogContext(scenario=4):
                logger.warning("mismatch")  # carries all three fields
    """

    def __init__(self, **fields: Any):
        unknown = sorted(set(fields) - set(CAMPAIGN_FIELDS))
        if unknown:
            raise ValueError(f"Unknown campaign log fields: {', '.join(unknown)}")
        self.fields = {name: value for name, value in fields.items() if value is not None}
        self._token: Any = None

    def __enter__(self) -> "LogContext":
        merged = {**current_context(), **self.fields}
        self._token = _campaign_context.set(tuple(merged.items()))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        _campaign_context.reset(self._token)
