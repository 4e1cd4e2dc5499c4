from __future__ import annotations

import pytest

from resmerge.exceptions import (
    ConfigurationError,
    ConfigValidationError,
    InputUnavailableError,
    OutputConflictError,
    OutputIOError,
    ResmergeError,
    YamlParseError,
)


@pytest.mark.parametrize(
    ("exc_type", "code"),
    [
        (ResmergeError, "resmerge_error"),
        (ConfigurationError, "configuration_error"),
        (ConfigValidationError, "config_validation_error"),
        (YamlParseError, "yaml_parse_error"),
        (InputUnavailableError, "input_unavailable"),
        (OutputConflictError, "output_conflict"),
        (OutputIOError, "output_io_error"),
    ],
)
def test_error_codes(exc_type: type[ResmergeError], code: str) -> None:
    err = exc_type("boom")
    assert err.code == code
    assert isinstance(err, ResmergeError)
    assert str(err) == "boom"


def test_configuration_errors_are_value_errors() -> None:
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(YamlParseError, ValueError)
    assert not issubclass(OutputIOError, ValueError)


def test_code_override_and_log_fields() -> None:
    err = OutputIOError("disk full", code="disk_full", context={"output": "x.cnl"})
    assert err.code == "disk_full"
    assert OutputIOError.code == "output_io_error"
    assert err.as_log_fields() == {
        "error_code": "disk_full",
        "error": "disk full",
        "output": "x.cnl",
    }


def test_context_is_copied() -> None:
    context = {"inputs": ["a.cnl"]}
    err = InputUnavailableError("nothing to read", context=context)
    context["inputs"] = []
    assert err.context == {"inputs": ["a.cnl"]}
    assert InputUnavailableError("again").context == {}
