from __future__ import annotations

from collections.abc import Sequence


class AggregateFingerprint:
    """Order-independent digest of a cluster: (count, sum, sum of squares).

    Identical member multisets always share a fingerprint. Distinct multisets
    may collide, e.g. {1, 5, 6} and {2, 3, 7}.
    """

    __slots__ = ("count", "idsum", "id2sum")

    def __init__(self) -> None:
        self.count = 0
        self.idsum = 0
        self.id2sum = 0

    def add(self, nid: int) -> None:
        self.count += 1
        self.idsum += nid
        self.id2sum += nid * nid

    def clear(self) -> None:
        self.count = 0
        self.idsum = 0
        self.id2sum = 0

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.count, self.idsum, self.id2sum)

    def __len__(self) -> int:
        return self.count

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AggregateFingerprint):
            return NotImplemented
        return self.key == other.key

    def __repr__(self) -> str:
        return f"AggregateFingerprint(count={self.count}, sum={self.idsum}, sum2={self.id2sum})"

    @classmethod
    def of(cls, ids: Sequence[int]) -> AggregateFingerprint:
        fingerprint = cls()
        for nid in ids:
            fingerprint.add(nid)
        return fingerprint


class DedupIndex:
    """Fingerprints of the accepted clusters bucketed by their scalar hash.

    With ``strict`` a fingerprint match is confirmed by comparing the sorted
    members, so colliding fingerprints of distinct clusters are both kept.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict
        self._buckets: dict[int, list[tuple]] = {}
        self._size = 0

    def try_insert(
        self, fingerprint: AggregateFingerprint, members: Sequence[int] | None = None
    ) -> bool:
        """Register a cluster; False when it duplicates an accepted one."""
        if self.strict:
            if members is None:
                raise ValueError("Strict deduplication requires the cluster members")
            entry: tuple = (fingerprint.key, tuple(sorted(members)))
        else:
            entry = fingerprint.key
        bucket = self._buckets.setdefault(hash(fingerprint), [])
        if entry in bucket:
            return False
        bucket.append(entry)
        self._size += 1
        return True

    def __len__(self) -> int:
        return self._size

    @property
    def buckets(self) -> int:
        return len(self._buckets)
