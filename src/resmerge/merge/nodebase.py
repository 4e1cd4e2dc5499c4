from __future__ import annotations

import logging

from resmerge.cnl.estimate import estimate_counts
from resmerge.cnl.header import parse_header
from resmerge.cnl.line_buffer import LineBuffer
from resmerge.cnl.tokens import iter_clusters, iter_members
from resmerge.merge.types import InputStats, size_in_range
from resmerge.utils.io import CollectionFile

logger = logging.getLogger(__name__)


def prepare_input(file: CollectionFile, line: LineBuffer, membership: float) -> InputStats:
    """Parse the header of ``file`` and estimate its undeclared counts.

    Leaves the first cluster line in ``line``.
    """
    header = parse_header(file.stream, line)
    stats = InputStats(
        path=file.name,
        declared_clusters=header.clusters,
        declared_nodes=header.nodes,
    )
    byte_size = None
    if not header.nodes and not header.clusters:
        byte_size = file.size()
    stats.estimated_clusters, stats.estimated_nodes = estimate_counts(
        header.clusters, header.nodes, byte_size, membership
    )
    logger.debug(
        "%s: declared %d clusters, %d nodes; expecting %d clusters, %d nodes",
        file.name,
        header.clusters,
        header.nodes,
        stats.estimated_clusters,
        stats.estimated_nodes,
    )
    return stats


def load_nodes(
    file: CollectionFile | None,
    membership: float = 1.0,
    min_size: int = 0,
    max_size: int = 0,
) -> set[int]:
    """Load the unique node ids of a collection.

    Clusters whose member count is outside [min_size, max_size] are ignored,
    max_size 0 means any size. A missing file yields an empty node base.
    """
    nodebase: set[int] = set()
    if file is None:
        return nodebase

    line = LineBuffer()
    stats = prepare_input(file, line, membership)
    for cluster in iter_clusters(file.stream, line):
        ids = [nid for nid, _ in iter_members(cluster.members)]
        stats.clusters_read += 1
        stats.members_read += len(ids)
        if ids and size_in_range(len(ids), min_size, max_size):
            nodebase.update(ids)
    if line.error is not None:
        logger.warning("Reading of the node base %s stopped early: %s", file.name, line.error)

    logger.info(
        "The loaded node base has %d nodes from %d members of %d clusters",
        len(nodebase),
        stats.members_read,
        stats.clusters_read,
    )
    return nodebase
