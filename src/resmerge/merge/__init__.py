from __future__ import annotations

import io
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from resmerge.cnl.header import (
    BASE_LAYOUT,
    MERGE_LAYOUT,
    HeaderLayout,
    patch_header,
    write_provisional_header,
)
from resmerge.cnl.line_buffer import LineBuffer
from resmerge.cnl.tokens import iter_clusters, iter_members
from resmerge.exceptions import OutputIOError
from resmerge.logging_config import LogContext
from resmerge.merge.dedupe import AggregateFingerprint, DedupIndex
from resmerge.merge.nodebase import load_nodes, prepare_input
from resmerge.merge.types import (
    InputStats,
    MergeSettings,
    MergeState,
    RunStage,
    size_in_range,
)
from resmerge.result import Err, Ok, Result
from resmerge.utils.io import CollectionFile
from resmerge.utils.logging import log_event, utc_now

logger = logging.getLogger(__name__)

# Number of node ids written per chunk of the extracted node base
IDS_CHUNK = 4096

__all__ = [
    "AggregateFingerprint",
    "DedupIndex",
    "InputStats",
    "MergeSettings",
    "MergeState",
    "RunStage",
    "extract_base",
    "load_nodes",
    "merge_collections",
    "resolve_merge_settings",
    "size_in_range",
]


def resolve_merge_settings(
    cfg: dict[str, Any],
    *,
    btm_size: int | None = None,
    top_size: int | None = None,
    membership: float | None = None,
    strict_dedup: bool | None = None,
) -> MergeSettings:
    """Merge settings from the ``merge`` section of ``cfg``, explicit values win."""
    g_merge = cfg.get("merge", {}) or {}
    settings = MergeSettings(
        btm_size=int(btm_size if btm_size is not None else g_merge.get("btm_size", 0)),
        top_size=int(top_size if top_size is not None else g_merge.get("top_size", 0)),
        membership=float(
            membership if membership is not None else g_merge.get("membership", 1.0)
        ),
        strict_dedup=bool(
            strict_dedup if strict_dedup is not None else g_merge.get("strict_dedup", False)
        ),
    )
    return settings.validate()


def check_output(output: CollectionFile) -> Result[Any] | None:
    """Err when the output can't receive a new collection, None otherwise."""
    if output.closed:
        return Err("output_undefined", f"The output file {output.name} is not open")
    size = output.size()
    if size:
        return Err(
            "output_not_empty",
            f"The output file {output.name} should be empty",
            output=output.name,
            size=size,
        )
    return None


def write_output(output: CollectionFile, data: bytes) -> None:
    try:
        output.stream.write(data)
    except (OSError, ValueError) as e:
        raise OutputIOError(
            f"Output to {output.name} failed: {e}", context={"output": output.name}
        ) from e


def write_header(state: MergeState, layout: HeaderLayout) -> None:
    try:
        write_provisional_header(state.output.stream, layout)
    except (OSError, ValueError) as e:
        raise OutputIOError(
            f"The header of {state.output.name} can't be written: {e}",
            context={"output": state.output.name},
        ) from e
    state.stage = RunStage.HEADER_WRITTEN


def finalize_header(state: MergeState, layout: HeaderLayout, **counts: int) -> None:
    """Replace the provisional header counts, keeping the stub on failure."""
    try:
        stream = state.output.reopen("r+b")
        patch_header(stream, layout, **counts)
    except (OSError, ValueError) as e:
        logger.warning(
            "Can't update the header of %s, the provisional header is retained: %s",
            state.output.name,
            e,
        )
        return
    state.header_patched = True
    state.stage = RunStage.HEADER_PATCHED


def process_merge_input(
    file: CollectionFile,
    line: LineBuffer,
    state: MergeState,
    fingerprint: AggregateFingerprint,
) -> InputStats:
    assert state.dedupe is not None, "merge requires a dedup index"
    stats = prepare_input(file, line, state.membership)
    state.inputs.append(stats)
    members: list[int] = []
    tokens: list[bytes] = []
    for cluster in iter_clusters(file.stream, line):
        members.clear()
        tokens.clear()
        fingerprint.clear()
        stats.clusters_read += 1
        for nid, token in iter_members(cluster.members):
            stats.members_read += 1
            # Synchronize with the node base
            if state.sync and nid not in state.nodebase:
                continue
            members.append(nid)
            fingerprint.add(nid)
            tokens.append(token)
        if not members or not state.accepts_size(len(members)):
            continue
        if not state.dedupe.try_insert(fingerprint, members):
            continue
        write_output(state.output, b" ".join(tokens) + b"\n")
        stats.clusters_written += 1
        # Only the written clusters form the node base
        if not state.sync:
            state.nodebase.update(members)
    if line.error is not None:
        logger.warning("Reading of %s stopped early: %s", file.name, line.error)
    return stats


def merge_collections(
    output: CollectionFile,
    inputs: Iterable[CollectionFile],
    base: CollectionFile | None = None,
    *,
    min_size: int = 0,
    max_size: int = 0,
    membership: float = 1.0,
    strict: bool = False,
) -> Result[dict[str, Any]]:
    """Merge collections into ``output`` retaining unique clusters of an allowed size.

    Clusters are unique with respect to their order-independent members. When
    ``base`` lists nodes, members outside of it are dropped before the size
    filter; otherwise the node base is formed by the merged clusters.
    ``output`` should be empty.
    """
    MergeSettings(
        btm_size=min_size, top_size=max_size, membership=membership, strict_dedup=strict
    ).validate()
    failure = check_output(output)
    if failure is not None:
        logger.error("%s", failure.message)
        return failure

    # The synchronization base is not filtered by size
    nodebase = load_nodes(base, membership)
    if base is not None and not nodebase:
        logger.warning(
            "The node base %s is empty, the merged clusters form the node base", base.name
        )
    state = MergeState(
        output=output,
        nodebase=nodebase,
        dedupe=DedupIndex(strict=strict),
        min_size=min_size,
        max_size=max_size,
        membership=membership,
        sync=bool(nodebase),
    )
    try:
        write_header(state, MERGE_LAYOUT)
        state.stage = RunStage.STREAMING
        line = LineBuffer()
        fingerprint = AggregateFingerprint()
        for file in inputs:
            with LogContext(input=file.name):
                process_merge_input(file, line, state, fingerprint)
    except OutputIOError as e:
        state.stage = RunStage.FAILED
        logger.error("Merging into %s failed: %s", output.name, e)
        return Err(e.code, str(e), **state.summary())

    finalize_header(
        state, MERGE_LAYOUT, clusters=len(state.dedupe), nodes=len(state.nodebase)
    )
    state.stage = RunStage.DONE
    summary = state.summary()
    summary["finished_at_utc"] = utc_now()
    log_event(
        logger,
        "Collections merged",
        output=output.name,
        files=summary["counts"]["files"],
        clusters=summary["clusters"],
        nodes=summary["nodes"],
        clusters_read=summary["counts"]["clusters_read"],
    )
    return Ok(summary)


def process_base_input(file: CollectionFile, line: LineBuffer, state: MergeState) -> InputStats:
    stats = prepare_input(file, line, state.membership)
    state.inputs.append(stats)
    for cluster in iter_clusters(file.stream, line):
        ids = [nid for nid, _ in iter_members(cluster.members)]
        stats.clusters_read += 1
        stats.members_read += len(ids)
        if ids and state.accepts_size(len(ids)):
            state.nodebase.update(ids)
    if line.error is not None:
        logger.warning("Reading of %s stopped early: %s", file.name, line.error)
    return stats


def write_ids(output: CollectionFile, ids: Sequence[int]) -> None:
    for start in range(0, len(ids), IDS_CHUNK):
        chunk = " ".join(map(str, ids[start : start + IDS_CHUNK]))
        if start:
            chunk = " " + chunk
        write_output(output, chunk.encode("ascii"))
    write_output(output, b"\n")


def extract_base(
    output: CollectionFile,
    inputs: Iterable[CollectionFile],
    *,
    min_size: int = 0,
    max_size: int = 0,
    membership: float = 1.0,
) -> Result[dict[str, Any]]:
    """Write the unique node ids of the collections as a single cluster.

    Clusters outside [min_size, max_size] do not contribute their nodes.
    ``output`` should be empty.
    """
    MergeSettings(btm_size=min_size, top_size=max_size, membership=membership).validate()
    failure = check_output(output)
    if failure is not None:
        logger.error("%s", failure.message)
        return failure

    state = MergeState(
        output=output,
        nodebase=set(),
        min_size=min_size,
        max_size=max_size,
        membership=membership,
    )
    try:
        write_header(state, BASE_LAYOUT)
        state.stage = RunStage.STREAMING
        line = LineBuffer()
        for file in inputs:
            with LogContext(input=file.name):
                process_base_input(file, line, state)

        finalize_header(state, BASE_LAYOUT, nodes=len(state.nodebase))
        if output.closed:
            output.reopen("ab")
        else:
            output.stream.seek(0, io.SEEK_END)
        write_ids(output, sorted(state.nodebase))
    except (OSError, OutputIOError) as e:
        state.stage = RunStage.FAILED
        logger.error("Node base output to %s failed: %s", output.name, e)
        code = e.code if isinstance(e, OutputIOError) else OutputIOError.code
        return Err(code, str(e), **state.summary())

    state.stage = RunStage.DONE
    summary = state.summary()
    summary["finished_at_utc"] = utc_now()
    log_event(
        logger,
        "Node base extracted",
        output=output.name,
        files=summary["counts"]["files"],
        nodes=summary["nodes"],
        members_read=summary["counts"]["members_read"],
    )
    return Ok(summary)
