"""
resmerge/cnl/header.py

CNL header handling.

A collection may start with comment lines; the header is the comment carrying
``# Clusters: <uint>[,] Nodes: <uint>[, Fuzzy: <0|1>, Numbered: <0|1>]``.
Attribute names are case-insensitive and separated from their values by
``:``, ``,`` or whitespace.

Outputs are written with a provisional header whose counts are fixed-width,
comma-terminated fields (``0,`` padded with spaces). Once the body is written
the fields are overwritten in place with the final counts, so the patch never
shifts the body.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import IO

from resmerge.cnl.line_buffer import LineBuffer
from resmerge.cnl.tokens import MAX_NODE_ID, is_comment

logger = logging.getLogger(__name__)

HEADER_ATTRIBUTES = ("clusters", "nodes", "fuzzy", "numbered")

# Wide enough for the largest node id followed by the terminating comma
COUNT_FIELD_WIDTH = len(str(MAX_NODE_ID)) + 1

_ATTR_RE = re.compile(rb"([A-Za-z]+)(?:[ \t]*[:,][ \t]*|[ \t]+)(\d+)[\s,]*")


@dataclasses.dataclass
class CollectionHeader:
    """Counts declared by a collection header, 0 when not specified."""

    clusters: int = 0
    nodes: int = 0
    fuzzy: int | None = None
    numbered: int | None = None


def _parse_attributes(body: bytes, header: CollectionHeader, seen: set[str]) -> bool:
    pos = 0
    found = False
    while pos < len(body):
        match = _ATTR_RE.match(body, pos)
        name = match.group(1).decode("ascii").lower() if match else None
        if match is None or name not in HEADER_ATTRIBUTES:
            if found:
                token = body[pos:].split(None, 1)[0].decode("utf-8", "replace")
                logger.warning(
                    "Unexpected header attribute %r, the remaining header is skipped", token
                )
            return found
        found = True
        if name not in seen:
            seen.add(name)
            setattr(header, name, int(match.group(2)))
        pos = match.end()
    return found


def parse_header(stream: IO[bytes], line: LineBuffer) -> CollectionHeader:
    """Parse the leading comments of a collection.

    On return ``line`` holds the first non-comment line of the stream, or is
    empty when the stream has no clusters.
    """
    header = CollectionHeader()
    seen: set[str] = set()
    while line.readline(stream):
        first = next(line.tokens(), None)
        if first is None:
            continue
        if not is_comment(first):
            break
        body = line.line().strip().lstrip(b"#").strip()
        if not _parse_attributes(body, header, seen):
            logger.debug("Commentary line skipped: %r", body[:80])
    else:
        line.clear()

    if header.clusters and header.nodes and header.clusters > header.nodes:
        logger.warning(
            "Declared clusters exceed declared nodes: %d > %d", header.clusters, header.nodes
        )
    return header


def format_count(value: int) -> bytes:
    """Render a count as a fixed-width header field."""
    text = f"{value},"
    if value < 0 or len(text) > COUNT_FIELD_WIDTH:
        raise ValueError(f"Count does not fit the header field: {value}")
    return text.ljust(COUNT_FIELD_WIDTH).encode("ascii")


@dataclasses.dataclass(frozen=True)
class HeaderLayout:
    """Literal header parts interleaved with the patchable count fields."""

    parts: tuple[str, ...]
    fields: tuple[str, ...]

    def render(self, **counts: int) -> bytes:
        out = [self.parts[0].encode("ascii")]
        for field, part in zip(self.fields, self.parts[1:]):
            out.append(format_count(counts.get(field, 0)))
            out.append(part.encode("ascii"))
        return b"".join(out)

    def offset(self, field: str) -> int:
        idx = self.fields.index(field)
        return sum(len(part) for part in self.parts[: idx + 1]) + idx * COUNT_FIELD_WIDTH

    @property
    def size(self) -> int:
        return sum(len(part) for part in self.parts) + len(self.fields) * COUNT_FIELD_WIDTH


MERGE_LAYOUT = HeaderLayout(
    parts=("# Clusters: ", " Nodes: ", " Fuzzy: 0, Numbered: 0\n"),
    fields=("clusters", "nodes"),
)

# The node base is stored as a single cluster
BASE_LAYOUT = HeaderLayout(
    parts=("# Clusters: 1, Nodes: ", " Fuzzy: 0, Numbered: 0\n"),
    fields=("nodes",),
)


def write_provisional_header(stream: IO[bytes], layout: HeaderLayout) -> None:
    stream.write(layout.render())


def patch_header(stream: IO[bytes], layout: HeaderLayout, **counts: int) -> None:
    """Overwrite the provisional count fields in place."""
    for field in layout.fields:
        if field not in counts:
            continue
        stream.seek(layout.offset(field))
        stream.write(format_count(counts[field]))
    stream.flush()
