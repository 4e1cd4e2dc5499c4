"""
resmerge/result.py

Outcome type of the merge and extraction engines.

Error Handling Convention:
--------------------------
1. **Exceptions** (resmerge.exceptions) are raised for problems detected
   before processing starts: bad settings, output conflicts, no readable input.

2. **Result** objects are returned by the engines once processing has begun.
   A failed body write yields ``Err``; degraded-but-valid outcomes (e.g. the
   provisional header could not be patched) stay ``Ok`` and are flagged in the
   summary carried as the value.

3. At the CLI boundary a Result is serialized with ``to_dict`` and mapped to
   the exit status.

Usage:
------
    from resmerge.result import Err, Ok, Result

    result = merge_collections(fout, files, min_size=2)
    if result.is_ok:
        print(result.value["clusters"])
    else:
        print(f"Failed: {result.error}: {result.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """
    Either a success (Ok) or a failure (Err).

    Attributes:
        status: "ok" for success, "error" for failure
        value: The success value (only meaningful when status="ok")
        error: Error code (only meaningful when status="error")
        message: Human-readable error message
        extras: Additional context (path, stage, ...)
    """

    status: str
    value: T | None = None
    error: str | None = None
    message: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_err(self) -> bool:
        return self.status == "error"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for JSON output."""
        d: dict[str, Any] = {"status": self.status}
        if self.status == "ok":
            if self.value is not None:
                d["value"] = self.value
        else:
            if self.error:
                d["error"] = self.error
            if self.message:
                d["message"] = self.message
        d.update(self.extras)
        return d


def Ok(value: T = None, **extras: Any) -> Result[T]:  # noqa: N802 - intentional PascalCase
    """Create a successful result."""
    return Result(status="ok", value=value, extras=extras)


def Err(error: str, message: str | None = None, **extras: Any) -> Result[Any]:  # noqa: N802
    """Create a failure result."""
    return Result(status="error", error=error, message=message, extras=extras)
