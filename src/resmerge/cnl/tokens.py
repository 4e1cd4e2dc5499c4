"""Tokenization of CNL cluster lines.

A cluster line is ``[<label>>] <id>[:<share>] <id>[:<share>] ...``; lines whose
first token starts with ``#`` are comments.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterator
from typing import IO

from resmerge.cnl.line_buffer import LineBuffer

logger = logging.getLogger(__name__)

#: Node ids are 32-bit unsigned integers
MAX_NODE_ID = 2**32 - 1

_ID_RE = re.compile(rb"\d+")


@dataclasses.dataclass
class ClusterTokens:
    label: bytes | None
    members: list[bytes]


def is_comment(token: bytes) -> bool:
    return token.startswith(b"#")


def is_label(token: bytes) -> bool:
    return token.endswith(b">")


def parse_node_id(token: bytes) -> int | None:
    """Node id of a member token ignoring its share suffix, None if malformed."""
    match = _ID_RE.match(token)
    if not match:
        return None
    nid = int(match.group())
    if nid > MAX_NODE_ID:
        return None
    return nid


def split_cluster(line: LineBuffer) -> ClusterTokens | None:
    """Split the current line into its label and member tokens.

    Returns None for blank and comment lines.
    """
    tokens = line.tokens()
    first = next(tokens, None)
    if first is None or is_comment(first):
        return None
    if is_label(first):
        return ClusterTokens(label=first, members=list(tokens))
    members = [first]
    members.extend(tokens)
    return ClusterTokens(label=None, members=members)


def iter_members(tokens: list[bytes]) -> Iterator[tuple[int, bytes]]:
    """Yield (node id, raw token) pairs, skipping malformed tokens."""
    for token in tokens:
        nid = parse_node_id(token)
        if nid is None:
            logger.warning("Unparseable node id %r, skipped", token.decode("utf-8", "replace"))
            continue
        yield nid, token


def iter_clusters(stream: IO[bytes], line: LineBuffer) -> Iterator[ClusterTokens]:
    """Yield the clusters starting from the line already held by ``line``.

    ``line`` is expected to hold the first non-header line, as left by
    ``parse_header``. Label-only clusters are reported and skipped.
    """
    if line.empty() and not line.readline(stream):
        return
    while True:
        cluster = split_cluster(line)
        if cluster is not None:
            if cluster.members:
                yield cluster
            else:
                logger.warning(
                    "Empty cluster exists: %r, skipped",
                    (cluster.label or b"").decode("utf-8", "replace"),
                )
        if not line.readline(stream):
            return
