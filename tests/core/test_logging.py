from __future__ import annotations

import json
import logging
import sys

from studyquest.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **kwargs) -> logging.LogRecord:
    return logging.LogRecord(
        name=kwargs.pop("name", "test"),
        level=level,
        pathname=kwargs.pop("pathname", "test.py"),
        lineno=kwargs.pop("lineno", 1),
        msg=msg,
        args=kwargs.pop("args", ()),
        exc_info=kwargs.pop("exc_info", None),
    )


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_third_party_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_selects_json_formatter() -> None:
    setup_logging("info", json_format=True)
    [handler] = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


def test_container_formatter_location_only_for_warnings() -> None:
    fmt = _ContainerFormatter()
    assert "[test.py:" not in fmt.format(_record(logging.INFO))
    assert "[svc.py:99]" in fmt.format(_record(logging.ERROR, pathname="svc.py", lineno=99))


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record(name="studyquest.main", msg="started"))
    assert "INFO" in output
    assert "studyquest.main" in output
    assert not output.startswith("{")


def test_json_formatter_produces_valid_json() -> None:
    output = _JsonFormatter().format(_record(msg="Hello %s", args=("world",), name="t.log"))
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "t.log"
    assert parsed["message"] == "Hello world"
    assert "timestamp" in parsed


def test_json_formatter_includes_progression_context() -> None:
    record = _record(msg="Quiz submitted")
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.student_id = "stu-1"  # type: ignore[attr-defined]
    record.course_id = "bio-101"  # type: ignore[attr-defined]
    record.week_number = 3  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["student_id"] == "stu-1"
    assert parsed["course_id"] == "bio-101"
    assert parsed["week_number"] == 3
    assert "task_type" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("test error")
    except ValueError:
        output = _JsonFormatter().format(_record(logging.ERROR, exc_info=sys.exc_info()))

    assert "ValueError: test error" in json.loads(output)["exception"]
