from __future__ import annotations

import gzip
import io
import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Any

import zstandard as zstd

from resmerge.exceptions import (
    ConfigurationError,
    InputUnavailableError,
    OutputConflictError,
    OutputIOError,
)
from resmerge.utils.paths import ensure_dir, is_dir_name

logger = logging.getLogger(__name__)


def write_json(path: Path, obj: dict[str, Any], *, indent: int = 2) -> None:
    """Write dict to JSON file atomically."""
    ensure_dir(path.parent)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        f.write(json.dumps(obj, indent=indent, ensure_ascii=False) + "\n")
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)


def _open_binary(path: Path, mode: str) -> IO[bytes]:
    if mode == "rb":
        if path.suffix == ".gz":
            return gzip.open(path, "rb")
        if path.suffix == ".zst":
            raw = path.open("rb")
            try:
                reader = zstd.ZstdDecompressor().stream_reader(raw, read_across_frames=True)
            except zstd.ZstdError as e:
                raw.close()
                raise OSError(f"Failed to open zstd file {path}: {e}") from e
            return io.BufferedReader(reader)
    return open(path, mode)


class CollectionFile:
    """A named, seekable, byte-counted collection stream.

    The file is opened on construction (unless ``lazy``) and may be reopened
    in another mode, which the engines use to patch the output header.
    """

    def __init__(self, path: Path | str, mode: str = "rb", *, lazy: bool = False) -> None:
        self.path = Path(path)
        self.mode = mode
        self._stream: IO[bytes] | None = None
        if not lazy:
            self.open()

    @property
    def name(self) -> str:
        return str(self.path)

    @property
    def stream(self) -> IO[bytes]:
        if self._stream is None:
            raise ValueError(f"{self.name} is not open")
        return self._stream

    @property
    def closed(self) -> bool:
        return self._stream is None

    def open(self) -> IO[bytes]:
        if self._stream is None:
            self._stream = _open_binary(self.path, self.mode)
        return self._stream

    def reopen(self, mode: str | None = None) -> IO[bytes]:
        self.close()
        if mode:
            self.mode = mode
        return self.open()

    def close(self) -> None:
        if self._stream is not None:
            stream, self._stream = self._stream, None
            stream.close()

    def size(self) -> int | None:
        """Size of the file on disk in bytes, None when it can't be fetched."""
        if self._stream is not None and not self._stream.closed:
            try:
                self._stream.flush()
            except (OSError, ValueError) as e:
                # The on-disk size may miss the buffered bytes
                logger.debug("Flush of %s failed before sizing: %s", self.path, e)
        try:
            return self.path.stat().st_size
        except OSError:
            logger.warning("Failed to fetch the size of %s", self.path, exc_info=True)
            return None

    def __enter__(self) -> CollectionFile:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else self.mode
        return f"CollectionFile({self.name!r}, {state})"


def _try_open(path: Path) -> CollectionFile | None:
    try:
        return CollectionFile(path)
    except OSError as e:
        logger.warning("Can't open %s: %s", path, e)
        return None


def open_inputs(names: Iterable[str | Path]) -> list[CollectionFile]:
    """Open the input collections named by files or directories.

    Directories contribute their files (one level deep, subdirectories are
    skipped). Missing entries are logged and skipped; InputUnavailableError is
    raised only when nothing could be opened.
    """
    names = [Path(name) for name in names]
    if not names:
        raise InputUnavailableError("Input collections are required")
    files: list[CollectionFile] = []
    missing: list[str] = []
    num_files = 0
    num_dirs = 0
    for path in names:
        if not path.exists():
            missing.append(str(path))
            continue
        if path.is_dir():
            num_dirs += 1
            for entry in sorted(path.iterdir()):
                if entry.is_dir():
                    continue
                opened = _try_open(entry)
                if opened is not None:
                    files.append(opened)
        else:
            num_files += 1
            opened = _try_open(path)
            if opened is not None:
                files.append(opened)

    if missing:
        logger.warning(
            "%d of %d file system entries do not exist: %s",
            len(missing),
            len(names),
            ", ".join(missing),
        )
    if not files:
        raise InputUnavailableError(
            "The input data does not exist",
            context={"inputs": [str(p) for p in names], "missing": missing},
        )
    logger.info(
        "Opened %d files from the %d files and %d dirs", len(files), num_files, num_dirs
    )
    return files


def create_output(name: str | Path, *, rewrite: bool = False) -> CollectionFile:
    """Create the output collection, refusing to clobber an existing file."""
    raw = str(name)
    path = Path(raw)
    if is_dir_name(raw) or path.is_dir():
        raise ConfigurationError(
            f"A file name is expected for the output: {raw}",
            context={"output": raw},
        )
    if path.exists():
        logger.warning("The output file %s already exists, rewrite: %s", path, rewrite)
        if not rewrite:
            raise OutputConflictError(
                f"The output file {path} already exists, use --rewrite to overwrite it",
                context={"output": str(path)},
            )
    else:
        ensure_dir(path.parent)
    try:
        return CollectionFile(path, "w+b")
    except OSError as e:
        raise OutputIOError(
            f"The output file {path} can't be created: {e}",
            context={"output": str(path)},
        ) from e
