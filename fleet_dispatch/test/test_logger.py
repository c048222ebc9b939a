"""
Test the JSON logging setup.
"""

import json
import logging
from fleet_dispatch.logger import JsonFormatter, ROOT_LOGGER_NAME, SingletonLogger, get_logger


def _record(message, level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="fleet_dispatch.test",
        level=level,
        pathname=__file__,
        lineno=12,
        msg=message,
        args=(),
        exc_info=exc_info,
        func="test_func",
    )


def test_logger_is_singleton():
    assert SingletonLogger() is SingletonLogger()
    assert get_logger() is get_logger(ROOT_LOGGER_NAME)


def test_named_loggers_live_under_root():
    assert get_logger("fleet_dispatch.dispatching").name == "fleet_dispatch.dispatching"
    assert get_logger("build").name == "fleet_dispatch.build"


def test_json_formatter_fields():
    formatter = JsonFormatter({"level": "levelname", "logger": "name", "line": "lineno", "message": "message"})

    payload = json.loads(formatter.format(_record("Dispatch 7 created")))

    assert payload == {
        "level": "INFO",
        "logger": "fleet_dispatch.test",
        "line": 12,
        "message": "Dispatch 7 created",
    }


def test_json_formatter_includes_exception():
    formatter = JsonFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        import sys
        record = _record("failed", level=logging.ERROR, exc_info=sys.exc_info())

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "failed"
    assert "ValueError: boom" in payload["exc_info"]


def test_json_formatter_timestamp():
    formatter = JsonFormatter({"timestamp": "asctime", "message": "message"})

    payload = json.loads(formatter.format(_record("tick")))

    assert payload["timestamp"].endswith("Z")
