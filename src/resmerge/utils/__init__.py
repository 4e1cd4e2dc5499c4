"""Shared utility functions for resmerge."""

from resmerge.utils.io import CollectionFile, create_output, open_inputs, write_json
from resmerge.utils.logging import log_event, utc_now
from resmerge.utils.paths import ensure_dir, is_dir_name

__all__ = [
    "CollectionFile",
    "create_output",
    "open_inputs",
    "write_json",
    "log_event",
    "utc_now",
    "ensure_dir",
    "is_dir_name",
]
