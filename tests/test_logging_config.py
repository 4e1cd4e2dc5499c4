from __future__ import annotations

import argparse
import json
import logging

import pytest

from resmerge.logging_config import (
    JsonFormatter,
    LogContext,
    TextFormatter,
    add_logging_args,
    get_log_context,
)
from resmerge.result import Err, Ok


def _record(message: str = "merged %s") -> logging.LogRecord:
    return logging.LogRecord(
        "resmerge.merge", logging.INFO, __file__, 1, message, ("a.cnl",), None
    )


def test_log_context_nests_and_resets() -> None:
    assert get_log_context() == {}
    with LogContext(output="out.cnl"):
        with LogContext(input="a.cnl"):
            assert get_log_context() == {"output": "out.cnl", "input": "a.cnl"}
        assert get_log_context() == {"output": "out.cnl"}
    assert get_log_context() == {}


def test_text_formatter_shows_input_as_source() -> None:
    formatter = TextFormatter()
    assert formatter.format(_record()).endswith("| INFO | resmerge.merge | merged a.cnl")
    with LogContext(input="levels/a.cnl"):
        line = formatter.format(_record())
        assert line.endswith("| resmerge.merge | [levels/a.cnl] merged a.cnl")
        with LogContext(output="out.cnl"):
            assert formatter.format(_record()).endswith("merged a.cnl | output=out.cnl")


def test_json_formatter_payload() -> None:
    formatter = JsonFormatter()
    with LogContext(input="a.cnl"):
        payload = json.loads(formatter.format(_record()))
        with LogContext(output="out.cnl"):
            nested = json.loads(formatter.format(_record()))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "resmerge.merge"
    assert payload["message"] == "merged a.cnl"
    assert payload["input"] == "a.cnl"
    assert "context" not in payload
    assert nested["input"] == "a.cnl"
    assert nested["context"] == {"output": "out.cnl"}
    assert payload["timestamp"].endswith("Z")


def test_result_serialization() -> None:
    ok = Ok({"clusters": 3}, output="out.cnl")
    assert ok.is_ok and not ok.is_err
    assert ok.to_dict() == {"status": "ok", "value": {"clusters": 3}, "output": "out.cnl"}

    err = Err("output_not_empty", "The output file x should be empty", size=4)
    assert err.is_err
    data = err.to_dict()
    assert data["status"] == "error"
    assert data["error"] == "output_not_empty"
    assert data["size"] == 4


def test_log_level_argument_is_case_insensitive() -> None:
    parser = argparse.ArgumentParser()
    add_logging_args(parser)
    args = parser.parse_args(["--log-level", "debug", "--log-format", "json"])
    assert (args.log_level, args.log_format) == ("DEBUG", "json")
    assert parser.parse_args([]).log_level is None
    with pytest.raises(SystemExit):
        parser.parse_args(["--log-level", "loud"])
