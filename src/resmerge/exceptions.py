"""
resmerge/exceptions.py

Error types raised by resmerge.

Every error carries a stable machine ``code`` and a ``context`` dict so that
callers can log failures as structured fields instead of parsing messages.
"""

from __future__ import annotations

from typing import Any


class ResmergeError(Exception):
    """Base class for resmerge errors."""

    code = "resmerge_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if code:
            self.code = code
        self.context: dict[str, Any] = dict(context or {})

    def as_log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"error_code": self.code, "error": str(self)}
        fields.update(self.context)
        return fields


class ConfigurationError(ResmergeError, ValueError):
    """Invalid arguments or settings, detected before any I/O."""

    code = "configuration_error"


class ConfigValidationError(ConfigurationError):
    """A config file violates its schema."""

    code = "config_validation_error"


class YamlParseError(ConfigurationError):
    """A config file is not valid YAML."""

    code = "yaml_parse_error"


class InputUnavailableError(ResmergeError):
    """None of the requested inputs could be opened."""

    code = "input_unavailable"


class OutputConflictError(ResmergeError):
    """The output already exists and rewriting was not allowed."""

    code = "output_conflict"


class OutputIOError(ResmergeError):
    """Writing the merged output failed."""

    code = "output_io_error"
