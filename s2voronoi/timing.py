"""Timers and accumulators that collect phase timings during a computation.

Durations are float seconds.  ``CellSubAccum`` gathers per-chunk cell
construction timings that are merged and turned into ``CellSubPhases``.
``TimingBuilder`` assembles a ``PhaseTimings`` record.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from time import perf_counter
from typing import Optional

from .phases import (
    CellSubPhases,
    DedupSubPhases,
    KnnCellStage,
    PhaseTimings,
    neighbors_to_bucket,
)

_DURATION_FIELDS = tuple(
    f.name
    for f in fields(CellSubPhases)
    if f.name not in ("stage_counts", "cells_knn_exhausted", "neighbors_histogram")
)


class Timer:
    """Measures the wall time elapsed since it was created."""

    def __init__(self) -> None:
        self._start = perf_counter()

    @classmethod
    def start(cls) -> "Timer":
        """Create a timer that starts now."""
        return cls()

    def elapsed(self) -> float:
        """Seconds elapsed since the timer started."""
        return perf_counter() - self._start


@dataclass
class CellSubAccum(CellSubPhases):
    """Accumulates cell sub-phase timings for one chunk of cells."""

    def add_knn(self, d: float) -> None:
        self.knn_query += d

    def add_packed_knn(self, d: float) -> None:
        self.packed_knn += d

    def add_packed_knn_setup(self, d: float) -> None:
        self.packed_knn_setup += d

    def add_packed_knn_query_cache(self, d: float) -> None:
        self.packed_knn_query_cache += d

    def add_packed_knn_security_thresholds(self, d: float) -> None:
        self.packed_knn_security_thresholds += d

    def add_packed_knn_center_pass(self, d: float) -> None:
        self.packed_knn_center_pass += d

    def add_packed_knn_ring_thresholds(self, d: float) -> None:
        self.packed_knn_ring_thresholds += d

    def add_packed_knn_ring_pass(self, d: float) -> None:
        self.packed_knn_ring_pass += d

    def add_packed_knn_ring_fallback(self, d: float) -> None:
        self.packed_knn_ring_fallback += d

    def add_packed_knn_select_sort(self, d: float) -> None:
        self.packed_knn_select_sort += d

    def add_packed_knn_other(self, d: float) -> None:
        self.packed_knn_other += d

    def add_clip(self, d: float) -> None:
        self.clipping += d

    def add_cert(self, d: float) -> None:
        self.certification += d

    def add_key_dedup(self, d: float) -> None:
        self.key_dedup += d

    def add_edge_collect(self, d: float) -> None:
        """Add edge-collection time; it also counts toward edge checks."""
        self.edge_collect += d
        self.edge_checks += d

    def add_edge_resolve(self, d: float) -> None:
        """Add edge-resolution time; it also counts toward edge checks."""
        self.edge_resolve += d
        self.edge_checks += d

    def add_edge_emit(self, d: float) -> None:
        """Add edge-emission time; it also counts toward edge checks."""
        self.edge_emit += d
        self.edge_checks += d

    def add_cell_stage(
        self, stage: KnnCellStage, knn_exhausted: bool, neighbors_processed: int
    ) -> None:
        """Record the stage a cell finished in and how many neighbors it used."""
        self.stage_counts[stage] += 1
        if knn_exhausted:
            self.cells_knn_exhausted += 1
        self.neighbors_histogram[neighbors_to_bucket(neighbors_processed)] += 1

    def merge(self, other: CellSubPhases) -> None:
        """Add another accumulator's totals into this one."""
        for name in _DURATION_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(other, name))
        self.stage_counts.update(other.stage_counts)
        self.cells_knn_exhausted += other.cells_knn_exhausted
        self.neighbors_histogram = [
            mine + theirs
            for mine, theirs in zip(self.neighbors_histogram, other.neighbors_histogram)
        ]

    def into_sub_phases(self) -> CellSubPhases:
        """Return the accumulated totals as a :class:`CellSubPhases` record."""
        values = {name: getattr(self, name) for name in _DURATION_FIELDS}
        return CellSubPhases(
            **values,
            stage_counts=self.stage_counts.copy(),
            cells_knn_exhausted=self.cells_knn_exhausted,
            neighbors_histogram=list(self.neighbors_histogram),
        )


class TimingBuilder:
    """Collects phase durations; the total runs from construction to ``finish``."""

    def __init__(self) -> None:
        self._start = perf_counter()
        self.preprocess = 0.0
        self.knn_build = 0.0
        self.cell_construction = 0.0
        self.cell_sub = CellSubPhases()
        self.dedup = 0.0
        self.dedup_sub = DedupSubPhases()
        self.edge_repair = 0.0
        self.assemble = 0.0

    def set_preprocess(self, d: float) -> None:
        self.preprocess = d

    def set_knn_build(self, d: float) -> None:
        self.knn_build = d

    def set_cell_construction(self, d: float, sub: Optional[CellSubPhases]) -> None:
        """Record cell construction time and its sub-phase breakdown."""
        self.cell_construction = d
        self.cell_sub = CellSubPhases() if sub is None else sub

    def set_dedup(self, d: float, sub: Optional[DedupSubPhases]) -> None:
        """Record deduplication time and its sub-phase breakdown."""
        self.dedup = d
        self.dedup_sub = DedupSubPhases() if sub is None else sub

    def set_edge_repair(self, d: float) -> None:
        self.edge_repair = d

    def set_assemble(self, d: float) -> None:
        self.assemble = d

    def finish(self) -> PhaseTimings:
        """Build the timing record, stamping the total elapsed time."""
        return PhaseTimings(
            total=perf_counter() - self._start,
            preprocess=self.preprocess,
            knn_build=self.knn_build,
            cell_construction=self.cell_construction,
            cell_sub=self.cell_sub,
            dedup=self.dedup,
            dedup_sub=self.dedup_sub,
            edge_repair=self.edge_repair,
            assemble=self.assemble,
        )