"""Reading and writing of CNL (cluster node list) collections."""

from resmerge.cnl.estimate import (
    estimate_cluster_count,
    estimate_counts,
    estimate_node_count,
    estimate_nodes_from_clusters,
)
from resmerge.cnl.header import (
    BASE_LAYOUT,
    COUNT_FIELD_WIDTH,
    MERGE_LAYOUT,
    CollectionHeader,
    HeaderLayout,
    parse_header,
    patch_header,
    write_provisional_header,
)
from resmerge.cnl.line_buffer import PAGE_SIZE, LineBuffer
from resmerge.cnl.tokens import MAX_NODE_ID, ClusterTokens, iter_clusters, iter_members

__all__ = [
    "BASE_LAYOUT",
    "COUNT_FIELD_WIDTH",
    "MAX_NODE_ID",
    "MERGE_LAYOUT",
    "PAGE_SIZE",
    "ClusterTokens",
    "CollectionHeader",
    "HeaderLayout",
    "LineBuffer",
    "estimate_cluster_count",
    "estimate_counts",
    "estimate_node_count",
    "estimate_nodes_from_clusters",
    "iter_clusters",
    "iter_members",
    "parse_header",
    "patch_header",
    "write_provisional_header",
]
