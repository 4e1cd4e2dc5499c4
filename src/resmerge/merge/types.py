from __future__ import annotations

import dataclasses
import enum
from typing import TYPE_CHECKING, Any

from resmerge.exceptions import ConfigurationError

if TYPE_CHECKING:
    from resmerge.merge.dedupe import DedupIndex
    from resmerge.utils.io import CollectionFile


def size_in_range(size: int, min_size: int, max_size: int) -> bool:
    """Cluster size filter, max_size 0 means unbounded."""
    return size >= min_size and (not max_size or size <= max_size)


class RunStage(str, enum.Enum):
    CREATED = "created"
    HEADER_WRITTEN = "header_written"
    STREAMING = "streaming"
    HEADER_PATCHED = "header_patched"
    DONE = "done"
    FAILED = "failed"


@dataclasses.dataclass
class MergeSettings:
    btm_size: int = 0
    top_size: int = 0
    membership: float = 1.0
    strict_dedup: bool = False

    def validate(self) -> MergeSettings:
        if not self.membership > 0:
            raise ConfigurationError(
                f"Membership should be positive: {self.membership}",
                context={"membership": self.membership},
            )
        if self.btm_size < 0 or self.top_size < 0:
            raise ConfigurationError(
                "Cluster size bounds should be non-negative",
                context={"btm_size": self.btm_size, "top_size": self.top_size},
            )
        if self.top_size and self.top_size < self.btm_size:
            raise ConfigurationError(
                f"Top cluster size {self.top_size} is below the bottom size {self.btm_size}",
                context={"btm_size": self.btm_size, "top_size": self.top_size},
            )
        return self


@dataclasses.dataclass
class InputStats:
    """Per input counters, reported in the run summary."""

    path: str
    declared_clusters: int = 0
    declared_nodes: int = 0
    estimated_clusters: int = 0
    estimated_nodes: int = 0
    clusters_read: int = 0
    members_read: int = 0
    clusters_written: int = 0

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass
class MergeState:
    output: CollectionFile
    nodebase: set[int]
    dedupe: DedupIndex | None = None
    min_size: int = 0
    max_size: int = 0
    membership: float = 1.0
    sync: bool = False
    stage: RunStage = RunStage.CREATED
    header_patched: bool = False
    inputs: list[InputStats] = dataclasses.field(default_factory=list)

    def accepts_size(self, size: int) -> bool:
        return size_in_range(size, self.min_size, self.max_size)

    def summary(self) -> dict[str, Any]:
        summary: dict[str, Any] = {
            "output": self.output.name,
            "stage": self.stage.value,
            "header_patched": self.header_patched,
            "nodes": len(self.nodebase),
            "synchronized": self.sync,
            "inputs": [stats.as_dict() for stats in self.inputs],
            "counts": {
                "files": len(self.inputs),
                "clusters_read": sum(s.clusters_read for s in self.inputs),
                "members_read": sum(s.members_read for s in self.inputs),
            },
        }
        if self.dedupe is not None:
            summary["clusters"] = len(self.dedupe)
            summary["strict_dedup"] = self.dedupe.strict
        return summary
