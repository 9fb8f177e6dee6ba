import inspect
import logging
import os
import sys
from contextlib import contextmanager
from typing import Optional, Sequence

import json_log_formatter
from opentelemetry import trace

# DO NOT CHANGE LOGGING FORMAT
LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] [%(filename)s:%(lineno)d] - %(message)s"

PACKAGE_LOGGER_PREFIX = "brupop_apiserver"

__all__: Sequence[str] = (
    # most common imports
    "make_logger",
    "logger_name",
    # supporting / less common
    "make_json_logger",
    "configure_package_loggers",
    "LOG_FORMAT",
    "CustomJSONFormatter",
    "loggers_at_level",
)


class CustomJSONFormatter(json_log_formatter.JSONFormatter):
    def json_record(self, message: str, extra: dict, record: logging.LogRecord) -> dict:
        extra = super().json_record(message, extra, record)
        extra["level"] = record.levelname
        extra["name"] = record.name
        extra["lineno"] = record.lineno
        extra["pathname"] = record.pathname

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            extra["trace_id"] = format(span_context.trace_id, "032x")
            extra["span_id"] = format(span_context.span_id, "016x")

        service_name = os.getenv("OTEL_SERVICE_NAME")
        if service_name:
            extra["service"] = service_name

        return extra


def _make_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return CustomJSONFormatter()
    return logging.Formatter(LOG_FORMAT)


def make_json_logger(name: str, log_level: int = logging.INFO) -> logging.Logger:
    """Create a JSON logger. This allows us to pass arbitrary key/value data in log messages.
    It also puts stack traces in a single log message instead of spreading them across multiple log messages.
    """
    if name is None or not isinstance(name, str) or len(name) == 0:
        raise ValueError("Name must be a non-empty string.")

    logger = logging.getLogger(name)
    if any(isinstance(handler, logging.StreamHandler) for handler in logger.handlers):
        # logger already initialized
        return logger

    stream_handler = logging.StreamHandler()
    in_kubernetes = os.getenv("KUBERNETES_SERVICE_HOST")
    # Reading JSON logs in your terminal is kinda hard, so outside of a cluster
    # fall back to the standard log format.
    stream_handler.setFormatter(_make_formatter(bool(in_kubernetes)))

    logger.addHandler(stream_handler)
    logger.setLevel(log_level)
    logger.propagate = False

    # Want to make sure that unhandled exceptions get logged using the JSON logger.
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception
    return logger


def make_logger(name: str, log_level: int = logging.INFO) -> logging.Logger:
    return make_json_logger(name, log_level)


def configure_package_loggers(
    log_level: int, use_json: bool, prefix: str = PACKAGE_LOGGER_PREFIX
) -> None:
    """Re-applies level and formatter to every logger created under `prefix`.

    Loggers are created at import time, before the runtime configuration is known,
    so telemetry initialization calls this once the environment has been parsed.
    """
    formatter = _make_formatter(use_json)
    for name, log in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(log, logging.Logger):
            continue
        if name != prefix and not name.startswith(f"{prefix}."):
            continue
        log.setLevel(log_level)
        for handler in log.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setFormatter(formatter)


def logger_name(*, fallback_name: Optional[str] = None) -> str:
    """Returns the __name__ from where the calling function is defined or its filename if it is "__main__".

    Normally, __name__ is the fully qualified Python name of the module. However, if execution starts at
    the module, then it's __name__ attribute is "__main__". In this scenario, we obtain the module's filename.

    NOTE: If :param:`fallback_name` is provided and is not-None and non-empty, then, in the event that
          the logger name cannot be inferred from the calling __main__ module, this value will be used
          instead of raising a ValueError.
    """
    stack = inspect.stack()
    calling_frame = stack[1]
    calling_module = inspect.getmodule(calling_frame[0])
    if calling_module is None:
        raise ValueError(
            f"Cannot obtain module from calling function. Tried to use calling frame {calling_frame}"
        )
    name = calling_module.__name__
    if name == "__main__":
        if hasattr(calling_module, "__file__"):
            return _filename_wo_ext(calling_module.__file__)  # type: ignore
        if fallback_name is not None:
            fallback_name = fallback_name.strip()
            if len(fallback_name) > 0:
                return fallback_name
        raise ValueError("Cannot determine calling module's name from its __file__ attribute!")
    return name


@contextmanager  # type: ignore
def loggers_at_level(*loggers_or_names, new_level: int) -> None:  # type: ignore
    """Temporarily set one or more loggers to a specific level, resetting to previous levels on context end.

    :param:`loggers_or_names` is one or more :class:`logging.Logger` instances, or `str` names
                              of loggers regiested via `logging.getLogger`.
    :param:`new_level` is the new logging level to set during the context.
    """
    loggers: Sequence[logging.Logger] = [
        (logging.getLogger(log) if isinstance(log, str) else log) for log in loggers_or_names
    ]
    previous_levels: Sequence[int] = [log.level for log in loggers]
    try:
        for log in loggers:
            log.setLevel(new_level)

        yield

    finally:
        for log, level in zip(loggers, previous_levels):
            log.setLevel(level)


def _filename_wo_ext(filename: str) -> str:
    """Gets the filename, without the file extension, if present."""
    return os.path.split(filename)[1].split(".", 1)[0]
