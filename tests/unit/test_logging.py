from __future__ import annotations

import json
import logging

from active_record.utils.logging import JsonFormatter, _json_formatter, configure_logging

EXPECTED_ROWS = 3


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record("Entry updated")
    record.rows = EXPECTED_ROWS
    record.table = "test_table"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "Entry updated"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["table"] == "test_table"
    assert "pathname" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"columns": ["first_value"]}

    payload = json.loads(_json_formatter(record))

    assert payload["columns"] == ["first_value"]


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.payload = b"root"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["payload"] == "b'root'"


def test_configure_logging_without_force_keeps_existing_handlers() -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    marker = logging.NullHandler()
    root.addHandler(marker)
    try:
        configure_logging(level="DEBUG", json_logs=True, force=False)
        assert marker in root.handlers
        assert root.level == previous_level
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)


def test_configure_logging_installs_json_handler() -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging(level="WARNING", json_logs=True)
        assert root.level == logging.WARNING
        assert any(isinstance(handler.formatter, JsonFormatter) for handler in root.handlers)
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
