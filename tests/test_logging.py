from __future__ import annotations

import json
import logging

from ec2_inventory.logging import JsonFormatter, LogConfig, PlainFormatter, add_run_log_file, setup_logging


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="unit",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_skips_non_serializable_extras() -> None:
    record = _record()
    record.good = {"a": 1, "b": [1, 2]}
    record.bad = {"obj": object()}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["level"] == "WARNING"
    assert payload["good"] == {"a": 1, "b": [1, 2]}
    assert "bad" not in payload


def test_plain_formatter_renders_step_region_and_duration() -> None:
    record = _record("Collection complete")
    record.step = "collect"
    record.phase = "complete"
    record.region = "us-east-1"
    record.duration_ms = 12

    line = PlainFormatter().format(record)

    assert line.endswith("unit: [collect:complete] Collection complete region=us-east-1 (duration_ms=12)")


def test_add_run_log_file_writes(tmp_path) -> None:
    if getattr(setup_logging, "_configured", False):
        setattr(setup_logging, "_configured", False)
    setup_logging(LogConfig(level="INFO", json_logs=False))

    log_path = tmp_path / "run.log"
    add_run_log_file(log_path)
    add_run_log_file(log_path)

    logging.getLogger("unit.test").info("file log test")

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert "file log test" in log_path.read_text(encoding="utf-8")
    for handler in file_handlers:
        root.removeHandler(handler)
        handler.close()


def test_json_formatter_keeps_extras_with_null_values() -> None:
    record = _record()
    record.config = {"region": "all", "profile": None, "log_file": None}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["config"] == {"region": "all", "profile": None, "log_file": None}
