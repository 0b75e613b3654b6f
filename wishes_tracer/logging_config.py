"""Structured logging configuration."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

from pythonjsonlogger import jsonlogger

from wishes_tracer import __version__
from wishes_tracer.config import settings

# Record attributes that describe which product a line is about
CONTEXT_FIELDS = ("product_id", "url", "vendor", "failure", "direction")

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("asyncio", "httpx", "aiosqlite", "apscheduler.executors.default")


def record_context(record: logging.LogRecord) -> dict:
    """Product context bound to a record, plus the page host when a URL is known."""
    context = {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) not in (None, "")
    }
    url = context.get("url")
    if url:
        try:
            host = urlparse(str(url)).hostname
        except ValueError:
            host = None
        if host:
            context["host"] = host
    return context


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every record with source and product context.

    Context fields passed through ``extra`` or bound with :func:`get_logger`
    are grouped under a single ``product`` object instead of being scattered
    across the top level.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.utcnow().isoformat() + 'Z'
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['source'] = f"{record.filename}:{record.lineno}"
        log_record['app'] = "wishes-tracer"
        log_record['version'] = __version__

        if record.funcName:
            log_record['function'] = record.funcName

        context = record_context(record)
        if context:
            for field in CONTEXT_FIELDS:
                log_record.pop(field, None)
            log_record['product'] = context


class ConsoleContextFilter(logging.Filter):
    """Appends ``[product_id=... host=...]`` to console lines that carry context."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = record_context(record)
        context.pop("url", None)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            record.context_suffix = f" [{pairs}]"
        else:
            record.context_suffix = ""
        return True


def setup_logging(base_dir: str | Path | None = None, level: str | None = None):
    """Configure logging for the application.

    Args:
        base_dir: Optional base directory to place the logs/ folder in.
                  If omitted, uses the current working directory.
        level: Root level name; defaults to ``settings.log_level``.
    """
    logs_dir = (Path(base_dir) if base_dir else Path.cwd()) / "logs"
    logs_dir.mkdir(exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.log_level).upper()))

    root_logger.handlers.clear()

    # Console handler (human-readable, product context appended)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.addFilter(ConsoleContextFilter())
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s%(context_suffix)s")
    )
    root_logger.addHandler(console_handler)

    # File handlers (JSON): everything, and errors only
    json_formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    json_handler = logging.FileHandler(logs_dir / "app.log", encoding="utf-8")
    json_handler.setLevel(logging.DEBUG)
    json_handler.setFormatter(json_formatter)
    root_logger.addHandler(json_handler)

    error_handler = logging.FileHandler(logs_dir / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(json_formatter)
    root_logger.addHandler(error_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


class ProductLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter bound to one product; call-site extras win over bound ones."""

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get('extra', {}))
        kwargs['extra'] = extra
        return msg, kwargs

    def bind(self, **context) -> "ProductLoggerAdapter":
        """New adapter with additional context (e.g. the vendor once it is known)."""
        return ProductLoggerAdapter(self.logger, {**self.extra, **context})


def get_logger(name: str, **context) -> ProductLoggerAdapter:
    """
    Get a logger with bound product context.

    Args:
        name: Logger name (usually __name__)
        **context: Context fields (product_id=..., url=..., vendor=...)

    Returns:
        ProductLoggerAdapter with context
    """
    return ProductLoggerAdapter(logging.getLogger(name), context)
