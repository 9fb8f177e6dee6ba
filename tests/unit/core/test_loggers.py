import json
import logging

from brupop_apiserver.core.loggers import (
    LOG_FORMAT,
    CustomJSONFormatter,
    configure_package_loggers,
    logger_name,
    loggers_at_level,
    make_logger,
)
from opentelemetry.sdk.trace import TracerProvider


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="brupop_apiserver.test",
        level=logging.ERROR,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )


def test_logger_name():
    assert logger_name() == __name__


def test_json_formatter_fields():
    payload = json.loads(CustomJSONFormatter().format(_record()))

    assert payload["message"] == "hello"
    assert payload["level"] == "ERROR"
    assert payload["name"] == "brupop_apiserver.test"
    assert payload["lineno"] == 10
    assert "trace_id" not in payload


def test_json_formatter_includes_trace_ids():
    tracer = TracerProvider().get_tracer("test")

    with tracer.start_as_current_span("startup") as span:
        payload = json.loads(CustomJSONFormatter().format(_record()))

    assert payload["trace_id"] == format(span.get_span_context().trace_id, "032x")
    assert payload["span_id"] == format(span.get_span_context().span_id, "016x")


def test_configure_package_loggers():
    logger = make_logger("brupop_apiserver.tests.configure")
    other = make_logger("somebody_else.configure")
    other.setLevel(logging.INFO)

    configure_package_loggers(logging.WARNING, use_json=True)

    assert logger.level == logging.WARNING
    assert isinstance(logger.handlers[0].formatter, CustomJSONFormatter)
    assert other.level == logging.INFO

    configure_package_loggers(logging.INFO, use_json=False)
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_loggers_at_level():
    logger = make_logger("brupop_apiserver.tests.at_level")
    logger.setLevel(logging.INFO)

    with loggers_at_level(logger, new_level=logging.FATAL):
        assert logger.level == logging.FATAL

    assert logger.level == logging.INFO


def test_exported_names_exist():
    from brupop_apiserver.core import loggers

    assert all(hasattr(loggers, name) for name in loggers.__all__)
    assert "silence_chatty_logger" not in loggers.__all__
