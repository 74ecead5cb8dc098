import io
from collections import Counter

import pytest
from hypothesis import given
from hypothesis import strategies as st

from s2voronoi.phases import (
    NEIGHBOR_HIST_BUCKETS,
    CellSubPhases,
    DedupSubPhases,
    KnnCellStage,
    PhaseTimings,
    StageKind,
    bucket_to_neighbors,
    neighbors_to_bucket,
)


@pytest.mark.parametrize(
    "bucket, neighbors",
    [(0, 1), (47, 48), (48, 64), (49, 96), (50, 97)],
)
def test_bucket_to_neighbors_documented_values(bucket, neighbors):
    assert bucket_to_neighbors(bucket) == neighbors


@pytest.mark.parametrize(
    "neighbors, bucket",
    [(0, 0), (1, 0), (2, 1), (48, 47), (49, 48), (64, 48), (65, 49), (96, 49), (97, 50)],
)
def test_neighbors_to_bucket_documented_values(neighbors, bucket):
    assert neighbors_to_bucket(neighbors) == bucket


@pytest.mark.parametrize("bucket", [-1, NEIGHBOR_HIST_BUCKETS])
def test_bucket_to_neighbors_rejects_out_of_range(bucket):
    with pytest.raises(ValueError):
        bucket_to_neighbors(bucket)


@given(st.integers(min_value=1, max_value=48))
def test_exact_buckets_round_trip(n):
    assert bucket_to_neighbors(neighbors_to_bucket(n)) == n


@given(st.integers(min_value=0, max_value=NEIGHBOR_HIST_BUCKETS - 1))
def test_bucket_round_trip(bucket):
    assert neighbors_to_bucket(bucket_to_neighbors(bucket)) == bucket


@given(st.integers(min_value=0, max_value=10_000))
def test_bucket_in_range_and_upper_bound(n):
    bucket = neighbors_to_bucket(n)
    assert 0 <= bucket < NEIGHBOR_HIST_BUCKETS
    if n <= 96:
        assert bucket_to_neighbors(bucket) >= n


def test_stage_constructors_and_hashing():
    counts = Counter([KnnCellStage.resume(12), KnnCellStage.resume(12)])
    assert counts[KnnCellStage(StageKind.RESUME, 12)] == 2
    assert KnnCellStage.full_scan_fallback().k is None
    assert KnnCellStage.restart(24).kind is StageKind.RESTART


def test_stage_validation():
    with pytest.raises(ValueError):
        KnnCellStage(StageKind.RESUME)
    with pytest.raises(ValueError):
        KnnCellStage(StageKind.RESTART, -1)
    with pytest.raises(ValueError):
        KnnCellStage(StageKind.FULL_SCAN_FALLBACK, 3)


def test_cell_sub_phases_histogram_length_checked():
    assert len(CellSubPhases().neighbors_histogram) == NEIGHBOR_HIST_BUCKETS
    with pytest.raises(ValueError):
        CellSubPhases(neighbors_histogram=[0, 1, 2])


def test_render_header_and_total():
    text = PhaseTimings().render(100)
    lines = text.splitlines()
    assert lines[0] == "[timing] knn_clipping n=100"
    assert lines[-1].startswith("  total:")
    assert lines[-1].endswith("0.0ms")


def test_preprocess_line_only_when_nonzero():
    assert "preprocess:" not in PhaseTimings().render(10)
    assert "preprocess:" in PhaseTimings(total=1.0, preprocess=0.5).render(10)


def test_phase_share_of_total():
    text = PhaseTimings(total=2.0, knn_build=1.0).render(5)
    knn_line = next(line for line in text.splitlines() if "knn_build:" in line)
    assert "1000.0ms" in knn_line
    assert "(50.0%)" in knn_line


def test_stage_line_orders_resume_before_restart():
    sub = CellSubPhases(
        stage_counts={
            KnnCellStage.restart(24): 1,
            KnnCellStage.resume(48): 2,
            KnnCellStage.resume(12): 3,
        }
    )
    text = PhaseTimings(cell_sub=sub).render(6)
    line = next(line for line in text.splitlines() if "knn_stages:" in line)
    assert line.index("k12=3") < line.index("k48=2") < line.index("K24=1")
    assert "full_scan" not in line
    assert "exhausted=0" in line


def test_stage_line_reports_full_scan():
    sub = CellSubPhases(stage_counts={KnnCellStage.full_scan_fallback(): 4})
    text = PhaseTimings(cell_sub=sub).render(4)
    assert "full_scan=4" in text


def test_histogram_lines():
    hist = [0] * NEIGHBOR_HIST_BUCKETS
    hist[5] = 10
    text = PhaseTimings(cell_sub=CellSubPhases(neighbors_histogram=hist)).render(10)
    n = bucket_to_neighbors(5)
    assert f"    neighbors: p50={n} p90={n} p99={n} max={n}" in text.splitlines()
    assert f"    neighbors_detail: {n}=100.0%" in text.splitlines()


def test_no_histogram_lines_when_empty():
    assert "neighbors:" not in PhaseTimings().render(1)


def test_dedup_details():
    dedup = DedupSubPhases(emit_cells=0.1, triplet_keys=3, support_keys=1, bad_edges_count=7)
    text = PhaseTimings(total=1.0, dedup=0.1, dedup_sub=dedup).render(3)
    assert "emit_cells:" in text
    assert "triplet=3" in text and "support=1" in text
    assert "bad_edges:         7 detected" in text
    assert "overflow_flush" not in text


def test_report_writes_render(capsys):
    timings = PhaseTimings(total=1.0, assemble=0.25)
    timings.report(8)
    assert capsys.readouterr().err == timings.render(8) + "\n"