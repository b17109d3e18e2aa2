import copy
import logging
from logging.config import dictConfig
from typing import Any, Mapping


class KeyValueFormatter(logging.Formatter):
    """
    Formatter that automatically renders any 'extra' context added to the record
    as key=value pairs at the end of the log line.
    """
    # Reserved keys that already exist in LogRecord and shouldn't be printed again
    _RESERVED = {
        'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
        'funcName', 'levelname', 'levelno', 'lineno', 'message', 'module',
        'msecs', 'msg', 'name', 'pathname', 'process', 'processName',
        'relativeCreated', 'stack_info', 'thread', 'threadName', 'taskName'
    }

    def format(self, record: logging.LogRecord) -> str:
        s = super().format(record)

        extras = {k: v for k, v in record.__dict__.items() if k not in self._RESERVED}
        if extras:
            # Sorted for deterministic logs
            context_str = " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
            s = f"{s} | {context_str}"

        return s


_DEFAULT_LOGGING_CONF = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "kv": {
            "()": KeyValueFormatter,
            "format": "%(asctime)s [%(levelname).1s] %(name)s | %(funcName)s | %(message)s"
        }
    },
    "handlers": {
        "stderr": {
            "class": "logging.StreamHandler",
            "formatter": "kv",
        }
    },
    "loggers": {
        "requestkit": {"level": "INFO", "handlers": ["stderr"]},
    },
}


def configure_logging(level: str | int = "INFO", **overrides) -> None:
    """
    Configure requestkit's logger.

    The library never configures logging on import. Call this once in an
    application entry-point **or** leave logging to the host application.

    Args:
        level (str | int): Logging level to configure. Defaults to "INFO".
        **overrides: Additional logging configuration overrides, merged over the
            top-level keys of the default configuration
    """
    conf = {**copy.deepcopy(_DEFAULT_LOGGING_CONF), **copy.deepcopy(overrides)}
    conf.setdefault("loggers", {}).setdefault("requestkit", {})["level"] = level
    dictConfig(conf)


class RequestAdapter(logging.LoggerAdapter):
    """
    Inject request context (method, url) so the handler/formatter never needs
    to know about builders or responses.
    """
    def process(self, msg: str, kwargs: Mapping[str, Any]):
        extra = self.extra.copy()
        extra.update(kwargs.pop("extra", {}))
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, **ctx) -> RequestAdapter:
    base = logging.getLogger(name)
    # default placeholders so formatter never blows up
    defaults = {"method": "-", "url": "-"}
    defaults.update(ctx)
    return RequestAdapter(base, defaults)
