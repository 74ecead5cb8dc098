"""Per-phase timing records for the Voronoi computation and their report.

Durations are plain float seconds.  ``PhaseTimings.render`` produces the
human-readable breakdown; ``PhaseTimings.report`` writes it to stderr.
"""

from __future__ import annotations

import sys
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Buckets 0-47 hold exact counts for 1-48 neighbors (bucket i = i + 1),
# bucket 48 holds 49-64, bucket 49 holds 65-96 and bucket 50 holds 97+.
NEIGHBOR_HIST_BUCKETS = 51


def bucket_to_neighbors(bucket: int) -> int:
    """Neighbor count a histogram bucket stands for (upper bound for ranges)."""
    if not 0 <= bucket < NEIGHBOR_HIST_BUCKETS:
        raise ValueError(f"bucket {bucket} out of range 0..{NEIGHBOR_HIST_BUCKETS - 1}")
    if bucket < 48:
        return bucket + 1
    if bucket == 48:
        return 64
    if bucket == 49:
        return 96
    return 97


def neighbors_to_bucket(neighbors_processed: int) -> int:
    """Histogram bucket for the number of neighbors processed by a cell."""
    if neighbors_processed <= 48:
        return max(neighbors_processed - 1, 0)
    if neighbors_processed <= 64:
        return 48
    if neighbors_processed <= 96:
        return 49
    return 50


class StageKind(Enum):
    """Which k-NN stage a cell terminated in."""

    RESUME = "resume"
    RESTART = "restart"
    FULL_SCAN_FALLBACK = "full_scan_fallback"


@dataclass(frozen=True)
class KnnCellStage:
    """The k-NN stage a cell terminated at, with its k where it has one."""

    kind: StageKind
    k: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind is StageKind.FULL_SCAN_FALLBACK:
            if self.k is not None:
                raise ValueError("full scan fallback carries no k")
        elif self.k is None or self.k < 0:
            raise ValueError(f"{self.kind.value} stage needs a non-negative k")

    @classmethod
    def resume(cls, k: int) -> "KnnCellStage":
        return cls(StageKind.RESUME, k)

    @classmethod
    def restart(cls, k: int) -> "KnnCellStage":
        return cls(StageKind.RESTART, k)

    @classmethod
    def full_scan_fallback(cls) -> "KnnCellStage":
        return cls(StageKind.FULL_SCAN_FALLBACK)


def _empty_histogram() -> list[int]:
    return [0] * NEIGHBOR_HIST_BUCKETS


@dataclass
class CellSubPhases:
    """Sub-phase timings accumulated during cell construction."""

    knn_query: float = 0.0
    packed_knn: float = 0.0
    packed_knn_setup: float = 0.0
    packed_knn_query_cache: float = 0.0
    packed_knn_security_thresholds: float = 0.0
    packed_knn_center_pass: float = 0.0
    packed_knn_ring_thresholds: float = 0.0
    packed_knn_ring_pass: float = 0.0
    packed_knn_ring_fallback: float = 0.0
    packed_knn_select_sort: float = 0.0
    packed_knn_other: float = 0.0
    clipping: float = 0.0
    certification: float = 0.0
    key_dedup: float = 0.0
    edge_checks: float = 0.0
    edge_collect: float = 0.0
    edge_resolve: float = 0.0
    edge_emit: float = 0.0
    stage_counts: Counter = field(default_factory=Counter)
    cells_knn_exhausted: int = 0
    neighbors_histogram: list[int] = field(default_factory=_empty_histogram)

    def __post_init__(self) -> None:
        if len(self.neighbors_histogram) != NEIGHBOR_HIST_BUCKETS:
            raise ValueError(
                f"neighbors_histogram must have {NEIGHBOR_HIST_BUCKETS} buckets, "
                f"got {len(self.neighbors_histogram)}"
            )
        self.stage_counts = Counter(self.stage_counts)


@dataclass
class DedupSubPhases:
    """Sub-phase timings and counters of the deduplication phase."""

    overflow_collect: float = 0.0
    overflow_flush: float = 0.0
    edge_checks_overflow: float = 0.0
    edge_checks_overflow_sort: float = 0.0
    edge_checks_overflow_match: float = 0.0
    deferred_fallback: float = 0.0
    concat_vertices: float = 0.0
    emit_cells: float = 0.0
    triplet_keys: int = 0
    support_keys: int = 0
    bad_edges_count: int = 0


def _ms(seconds: float) -> float:
    return seconds * 1000.0


def _share(part: float, whole: float) -> float:
    return 0.0 if whole <= 0.0 else part / whole * 100.0


@dataclass
class PhaseTimings:
    """Timings of every phase of one Voronoi computation."""

    total: float = 0.0
    preprocess: float = 0.0
    knn_build: float = 0.0
    cell_construction: float = 0.0
    cell_sub: CellSubPhases = field(default_factory=CellSubPhases)
    dedup: float = 0.0
    dedup_sub: DedupSubPhases = field(default_factory=DedupSubPhases)
    edge_repair: float = 0.0
    assemble: float = 0.0

    def render(self, n: int) -> str:
        """Return the timing breakdown for ``n`` input points as text."""
        lines = [f"[timing] knn_clipping n={n}"]

        def phase(label: str, d: float) -> str:
            return f"  {label:<19}{_ms(d):7.1f}ms ({_share(d, self.total):4.1f}%)"

        if self.preprocess > 0.0:
            lines.append(phase("preprocess:", self.preprocess))
        lines.append(phase("knn_build:", self.knn_build))
        lines.append(phase("cell_construction:", self.cell_construction))
        lines.extend(self._cell_lines())
        lines.append(phase("dedup:", self.dedup))
        lines.extend(self._dedup_lines())

        if self.dedup_sub.bad_edges_count > 0:
            lines.append(f"  bad_edges:         {self.dedup_sub.bad_edges_count} detected")
        if self.edge_repair > 0.0:
            lines.append(phase("edge_repair:", self.edge_repair))
        lines.append(phase("assemble:", self.assemble))
        lines.append(f"  total:             {_ms(self.total):7.1f}ms")
        return "\n".join(lines)

    def report(self, n: int) -> None:
        """Write the timing breakdown to stderr."""
        print(self.render(n), file=sys.stderr)

    def _cell_lines(self) -> list[str]:
        sub = self.cell_sub
        cpu_total = (
            sub.knn_query
            + sub.packed_knn
            + sub.clipping
            + sub.certification
            + sub.key_dedup
            + sub.edge_checks
        )
        wall = self.cell_construction
        cpu_to_wall = wall / cpu_total if cpu_total > 0.0 else 1.0
        parallelism = cpu_total / wall if wall > 0.0 else 1.0

        def row(label: str, d: float, whole: float) -> str:
            return f"{label}{_ms(d * cpu_to_wall):7.1f}ms ({_share(d, whole):4.1f}%)"

        lines = [row("    knn_query:       ", sub.knn_query, cpu_total)]
        if sub.packed_knn > 0.0:
            lines.append(row("    packed_knn:      ", sub.packed_knn, cpu_total))
            packed_parts = [
                ("      pk_setup:     ", sub.packed_knn_setup),
                ("      pk_queries:   ", sub.packed_knn_query_cache),
                ("      pk_security:  ", sub.packed_knn_security_thresholds),
                ("      pk_center:    ", sub.packed_knn_center_pass),
                ("      pk_thresh:    ", sub.packed_knn_ring_thresholds),
                ("      pk_ring:      ", sub.packed_knn_ring_pass),
                ("      pk_fallback:  ", sub.packed_knn_ring_fallback),
                ("      pk_select:    ", sub.packed_knn_select_sort),
                ("      pk_other:     ", sub.packed_knn_other),
            ]
            lines.extend(
                row(label, d, sub.packed_knn) for label, d in packed_parts if d > 0.0
            )
        lines.append(row("    clipping:        ", sub.clipping, cpu_total))
        lines.append(row("    certification:   ", sub.certification, cpu_total))
        if sub.key_dedup > 0.0:
            lines.append(row("    key_dedup:       ", sub.key_dedup, cpu_total))
        if sub.edge_checks > 0.0:
            lines.append(row("    edge_checks:    ", sub.edge_checks, cpu_total))
            edge_parts = [
                ("      edge_collect:", sub.edge_collect),
                ("      edge_resolve:", sub.edge_resolve),
                ("      edge_emit:   ", sub.edge_emit),
            ]
            lines.extend(row(label, d, cpu_total) for label, d in edge_parts if d > 0.0)
        lines.append(f"    ({parallelism:.1f}x parallelism)")
        lines.append(self._stage_line())
        lines.extend(self._histogram_lines())
        return lines

    def _stage_line(self) -> str:
        sub = self.cell_sub
        total_cells = max(sum(sub.stage_counts.values()), 1)

        def pct(count: int) -> float:
            return count / total_cells * 100.0

        def ks(kind: StageKind) -> list[tuple[int, int]]:
            return sorted(
                (stage.k, count)
                for stage, count in sub.stage_counts.items()
                if stage.kind is kind
            )

        parts = ["    knn_stages:"]
        parts.extend(f" k{k}={c} ({pct(c):.1f}%)" for k, c in ks(StageKind.RESUME))
        parts.extend(f" K{k}={c} ({pct(c):.1f}%)" for k, c in ks(StageKind.RESTART))
        full_scan = sub.stage_counts.get(KnnCellStage.full_scan_fallback(), 0)
        if full_scan > 0:
            parts.append(f" full_scan={full_scan} ({pct(full_scan):.1f}%)")
        exhausted = sub.cells_knn_exhausted
        parts.append(f" exhausted={exhausted} ({pct(exhausted):.1f}%)")
        return "".join(parts)

    def _histogram_lines(self) -> list[str]:
        hist = self.cell_sub.neighbors_histogram
        hist_total = sum(hist)
        if hist_total == 0:
            return []

        def percentile(p: float) -> int:
            target = int(hist_total * p)
            cumulative = 0
            for bucket, count in enumerate(hist):
                cumulative += count
                if cumulative >= target:
                    return bucket_to_neighbors(bucket)
            return bucket_to_neighbors(NEIGHBOR_HIST_BUCKETS - 1)

        max_bucket = max(
            (bucket for bucket, count in enumerate(hist) if count > 0), default=0
        )
        summary = (
            f"    neighbors: p50={percentile(0.50)} p90={percentile(0.90)} "
            f"p99={percentile(0.99)} max={bucket_to_neighbors(max_bucket)}"
        )
        detail = "    neighbors_detail:" + "".join(
            f" {bucket_to_neighbors(bucket)}={count / hist_total * 100.0:.1f}%"
            for bucket, count in enumerate(hist)
            if count > 0
        )
        return [summary, detail]

    def _dedup_lines(self) -> list[str]:
        sub = self.dedup_sub
        dedup_total = (
            sub.overflow_collect
            + sub.overflow_flush
            + sub.edge_checks_overflow
            + sub.deferred_fallback
            + sub.concat_vertices
            + sub.emit_cells
        )
        if dedup_total <= 0.0:
            return []

        def row(label: str, d: float, width: int = 7) -> str:
            return f"{label}{_ms(d):{width}.1f}ms ({_share(d, dedup_total):4.1f}%)"

        lines = []
        if sub.overflow_collect > 0.0:
            lines.append(row("    overflow_collect:", sub.overflow_collect))
        if sub.overflow_flush > 0.0:
            lines.append(row("    overflow_flush: ", sub.overflow_flush))
        if sub.edge_checks_overflow > 0.0:
            lines.append(row("    edge_checks:    ", sub.edge_checks_overflow))
            if sub.edge_checks_overflow_sort > 0.0:
                lines.append(row("      edge_sort:   ", sub.edge_checks_overflow_sort))
            if sub.edge_checks_overflow_match > 0.0:
                lines.append(row("      edge_match:  ", sub.edge_checks_overflow_match))
        if sub.deferred_fallback > 0.0:
            lines.append(row("    deferred_fallback:", sub.deferred_fallback, 5))
        if sub.concat_vertices > 0.0:
            lines.append(row("    concat_vertices:", sub.concat_vertices))
        if sub.emit_cells > 0.0:
            lines.append(row("    emit_cells:     ", sub.emit_cells))

        total_keys = sub.triplet_keys + sub.support_keys
        if total_keys > 0:
            lines.append(
                f"    keys: triplet={sub.triplet_keys} "
                f"({sub.triplet_keys / total_keys * 100.0:.1f}%) "
                f"support={sub.support_keys} "
                f"({sub.support_keys / total_keys * 100.0:.1f}%)"
            )
        return lines