"""Heuristic node and cluster counts of a collection.

The estimates only size the run statistics; they never affect which clusters
are written.
"""

from __future__ import annotations

import math

from resmerge.exceptions import ConfigurationError


def _check_membership(membership: float) -> None:
    if not membership > 0:
        raise ConfigurationError(
            f"Membership should be positive: {membership}",
            context={"membership": membership},
        )


def estimate_node_count(byte_size: int, membership: float = 1.0) -> int:
    """Estimate the number of nodes listed in ``byte_size`` bytes of clusters.

    Ids are assumed to be dense: all 1-digit ids, then all 2-digit ids and so
    on, each followed by a single separator byte.
    """
    _check_membership(membership)
    remaining = max(byte_size, 0)
    nodes = 0
    digits = 1
    bracket_ids = 10  # 0..9
    while remaining:
        token_bytes = digits + 1
        bracket_bytes = bracket_ids * token_bytes
        if remaining <= bracket_bytes:
            nodes += remaining // token_bytes
            break
        nodes += bracket_ids
        remaining -= bracket_bytes
        digits += 1
        bracket_ids = 9 * 10 ** (digits - 1)
    return int(nodes / membership)


def estimate_cluster_count(node_count: int, membership: float = 1.0) -> int:
    """Estimate the number of clusters, which grows as the square root of nodes."""
    _check_membership(membership)
    if node_count <= 0:
        return 0
    return math.isqrt(node_count) + 1


def estimate_nodes_from_clusters(cluster_count: int, membership: float = 1.0) -> int:
    """Expected number of nodes when only the number of clusters is declared."""
    _check_membership(membership)
    return int(cluster_count * cluster_count / membership)


def estimate_counts(
    clusters: int, nodes: int, byte_size: int | None, membership: float = 1.0
) -> tuple[int, int]:
    """Fill the undeclared (zero) counts of a collection header.

    ``byte_size`` is None when the collection size is unknown.
    """
    if not nodes:
        if clusters:
            nodes = estimate_nodes_from_clusters(clusters, membership)
        elif byte_size is not None:
            nodes = estimate_node_count(byte_size, membership)
    if not clusters:
        clusters = estimate_cluster_count(nodes, membership)
    return clusters, nodes
