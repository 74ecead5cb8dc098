import math

import pytest

from s2voronoi.topo2d import CellError, CellFailure, Topo2DBuilder
from s2voronoi.types import UnitVec3


def unit(x, y, z):
    return UnitVec3(x, y, z).normalize()


POLE = UnitVec3(0.0, 0.0, 1.0)


def triangle_builder():
    builder = Topo2DBuilder(0, POLE)
    builder.clip(1, unit(1.0, 0.0, 0.5))
    builder.clip(2, unit(-0.5, 0.866, 0.5))
    builder.clip(3, unit(-0.5, -0.866, 0.5))
    return builder


def square_builder():
    builder = Topo2DBuilder(0, POLE)
    builder.clip(1, unit(1.0, 0.0, 0.5))
    builder.clip(2, unit(0.0, 1.0, 0.5))
    builder.clip(3, unit(-1.0, 0.0, 0.5))
    builder.clip(4, unit(0.0, -1.0, 0.5))
    return builder


def test_incremental_triangle():
    builder = Topo2DBuilder(0, POLE)
    assert not builder.is_bounded()
    builder.clip(1, unit(1.0, 0.0, 0.5))
    assert not builder.is_bounded()
    builder.clip(2, unit(-0.5, 0.866, 0.5))
    assert not builder.is_bounded()
    builder.clip(3, unit(-0.5, -0.866, 0.5))
    assert builder.is_bounded()
    assert builder.vertex_count() >= 3


def test_incremental_square():
    builder = square_builder()
    assert builder.is_bounded()
    assert builder.vertex_count() == 4


def test_early_termination_check():
    builder = Topo2DBuilder(0, POLE)
    builder.clip(1, unit(0.1, 0.0, 0.99))
    builder.clip(2, unit(-0.05, 0.087, 0.99))
    builder.clip(3, unit(-0.05, -0.087, 0.99))
    assert builder.is_bounded()
    assert builder.can_terminate(0.5) is True
    assert builder.can_terminate(0.9999) is False


def test_cannot_terminate_when_unbounded():
    builder = Topo2DBuilder(0, POLE)
    builder.clip(1, unit(1.0, 0.0, 0.5))
    assert builder.can_terminate(-1.0) is False


def test_to_vertex_data():
    vertices = triangle_builder().to_vertex_data()
    assert len(vertices) == 3
    for key, pos in vertices:
        assert abs(pos.length() - 1.0) < 1e-5
        a, b, c = key
        assert a < b < c


def test_vertex_data_unbounded_raises_no_valid_seed():
    builder = Topo2DBuilder(0, POLE)
    with pytest.raises(CellError) as info:
        builder.to_vertex_data()
    assert info.value.failure is CellFailure.NO_VALID_SEED


def test_edge_neighbors_match_vertex_keys():
    vertices, edges = square_builder().to_vertex_data_with_edge_neighbors()
    assert len(vertices) == len(edges) == 4
    assert set(edges) == {1, 2, 3, 4}
    for i, neighbor in enumerate(edges):
        assert neighbor in vertices[i][0]
        assert neighbor in vertices[(i + 1) % len(vertices)][0]
    assert all(0 in key for key, _ in vertices)


def test_redundant_plane_not_stored():
    builder = square_builder()
    builder.clip(5, UnitVec3(0.0, 0.0, -1.0))
    assert not builder.has_neighbor(5)
    assert builder.has_neighbor(3)
    assert builder.neighbor_indices() == [1, 2, 3, 4]
    assert builder.count_active_planes() == (4, 4)


def test_reset_clears_state():
    builder = square_builder()
    builder.reset(7, UnitVec3(1.0, 0.0, 0.0))
    assert builder.neighbor_indices() == []
    assert not builder.is_bounded()
    assert builder.vertex_count() == 3
    assert builder.failure() is None
    assert not builder.is_failed()
    assert builder.count_active_planes() == (0, 0)


@pytest.mark.parametrize("k", [3, 4, 5, 6, 8, 12])
def test_regular_ring_gives_k_vertices(k):
    builder = Topo2DBuilder(0, POLE)
    for i in range(k):
        angle = 2.0 * math.pi * i / k
        builder.clip(i + 1, unit(math.cos(angle), math.sin(angle), 0.5))
    assert builder.is_bounded()
    assert builder.vertex_count() == k
    vertices = builder.to_vertex_data()
    keys = {key for key, _ in vertices}
    assert len(keys) == k
    for _, pos in vertices:
        assert pos.z > 0.0
        assert abs(pos.length() - 1.0) < 1e-9


def test_generator_accepts_tuple():
    builder = Topo2DBuilder(2, (0.0, 0.0, 2.0))
    builder.clip(1, (1.0, 0.0, 0.0))
    builder.clip(3, (-0.5, math.sqrt(3) / 2, 0.0))
    builder.clip(4, (-0.5, -math.sqrt(3) / 2, 0.0))
    assert builder.is_bounded()
    assert builder.vertex_count() == 3
    assert builder.neighbor_indices() == [1, 3, 4]