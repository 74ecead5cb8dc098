"""Incremental construction of a single spherical Voronoi cell.

Each neighbor contributes a bisector half-space.  The half-spaces are
projected onto lines in the generator's gnomonic tangent plane and
intersected as half-planes.  This yields the active constraints and the
cyclic vertex order.  Vertex positions are then lifted back onto the
sphere.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Optional

from .polygon import ClipResult, HalfPlane, PolyBuffer, TangentBasis, clip_convex
from .types import UnitVec3, as_unit_vec3

# Machine epsilon of single-precision floats, used for conservative padding.
F32_EPSILON = 2.0 ** -23

# Half-size of the initial bounding triangle in gnomonic coordinates.
_BOUNDING_EXTENT = 1e6

VertexKey = tuple[int, int, int]
VertexData = tuple[VertexKey, UnitVec3]


class CellFailure(Enum):
    """Reasons a cell cannot be built."""

    TOO_MANY_VERTICES = "too many vertices"
    CLIPPED_AWAY = "clipped away"
    NO_VALID_SEED = "no valid seed"


class CellError(Exception):
    """Raised when cell construction fails; carries the :class:`CellFailure`."""

    def __init__(self, failure: CellFailure) -> None:
        super().__init__(failure.value)
        self.failure = failure


def _unit64(p: Any) -> tuple[float, float, float]:
    v = as_unit_vec3(p)
    length = math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)
    if length == 0.0:
        raise ValueError("generator must be a non-zero vector")
    return (v.x / length, v.y / length, v.z / length)


class Topo2DBuilder:
    """Builds the Voronoi cell of one generator by successive clipping."""

    def __init__(self, generator_idx: int, generator: Any) -> None:
        angle_pad = 8.0 * F32_EPSILON
        self._term_sin_pad = math.sin(angle_pad)
        self._term_cos_pad = math.cos(angle_pad)
        self.reset(generator_idx, generator)

    def reset(self, generator_idx: int, generator: Any) -> None:
        """Start over for a new generator."""
        self.generator_idx = generator_idx
        self.generator = _unit64(generator)
        self._basis = TangentBasis(self.generator)
        self._half_planes: list[HalfPlane] = []
        self._neighbor_indices: list[int] = []
        self._poly = PolyBuffer()
        self._poly.init_bounding(_BOUNDING_EXTENT)
        self._failed: Optional[CellFailure] = None

    def _fail(self, failure: CellFailure) -> CellError:
        self._failed = failure
        return CellError(failure)

    def clip(self, neighbor_idx: int, neighbor: Any) -> None:
        """Clip the cell by the bisector with ``neighbor``.

        Duplicate and near-coincident neighbors must be filtered by the
        caller.  Planes that do not cut the cell are not stored.  Raises
        :class:`CellError` if the cell has failed or fails now.
        """
        if self._failed is not None:
            raise CellError(self._failed)

        n = as_unit_vec3(neighbor)
        # The bisector normal is G - unit(N); first-order expansion of |N|
        # avoids a square root for nearly normalized inputs.
        len_sq = n.x * n.x + n.y * n.y + n.z * n.z
        scale = 0.5 * (len_sq + 1.0)
        gx, gy, gz = self.generator
        normal = (gx * scale - n.x, gy * scale - n.y, gz * scale - n.z)

        a, b, c = self._basis.plane_to_line(normal)
        hp = HalfPlane(a, b, c, len(self._half_planes))

        result, out = clip_convex(self._poly, hp)
        if result is ClipResult.TOO_MANY_VERTICES:
            raise self._fail(CellFailure.TOO_MANY_VERTICES)
        if result is ClipResult.CHANGED:
            self._half_planes.append(hp)
            self._neighbor_indices.append(neighbor_idx)
            self._poly = out

        if len(self._poly) < 3:
            raise self._fail(CellFailure.CLIPPED_AWAY)

    def is_bounded(self) -> bool:
        """True once no vertex of the bounding triangle remains."""
        return not self._poly.has_bounding_ref

    def is_failed(self) -> bool:
        """True if construction has failed."""
        return self._failed is not None

    def failure(self) -> Optional[CellFailure]:
        """The failure reason, or ``None``."""
        return self._failed

    def vertex_count(self) -> int:
        """Number of vertices of the current polygon."""
        return len(self._poly)

    def has_neighbor(self, neighbor_idx: int) -> bool:
        """True if ``neighbor_idx`` contributed a stored plane."""
        return neighbor_idx in self._neighbor_indices

    def neighbor_indices(self) -> list[int]:
        """Indices of the neighbors whose planes were stored, in order."""
        return list(self._neighbor_indices)

    def can_terminate(self, max_unseen_dot_bound: float) -> bool:
        """True if no unseen neighbor with at most this dot product can cut the cell."""
        if not self.is_bounded() or self.vertex_count() < 3:
            return False

        min_cos = self._poly.min_cos()
        if min_cos <= 0.0 or min_cos > 1.0:
            return False

        sin_theta = math.sqrt(max(1.0 - min_cos * min_cos, 0.0))
        cos_theta_pad = min_cos * self._term_cos_pad - sin_theta * self._term_sin_pad
        cos_2max = 2.0 * cos_theta_pad * cos_theta_pad - 1.0
        threshold = cos_2max - 3.0 * F32_EPSILON
        return float(max_unseen_dot_bound) < threshold

    def to_vertex_data(self) -> list[VertexData]:
        """Vertices in cyclic order, each keyed by its sorted defining triplet."""
        vertices, _ = self._vertex_data()
        return vertices

    def to_vertex_data_with_edge_neighbors(
        self,
    ) -> tuple[list[VertexData], list[Optional[int]]]:
        """Vertices plus, for each vertex, the neighbor across the edge to the next vertex."""
        return self._vertex_data()

    def _vertex_data(self) -> tuple[list[VertexData], list[Optional[int]]]:
        if not self.is_bounded() or len(self._poly) < 3:
            raise CellError(CellFailure.NO_VALID_SEED)

        basis = self._basis
        vertices: list[VertexData] = []
        edge_neighbors: list[Optional[int]] = []
        for (u, v), (plane_a, plane_b), edge_plane in zip(
            self._poly.vertices, self._poly.vertex_planes, self._poly.edge_planes
        ):
            direction = tuple(
                g + t1 * u + t2 * v for g, t1, t2 in zip(basis.g, basis.t1, basis.t2)
            )
            len2 = sum(c * c for c in direction)
            if len2 < 1e-28:
                raise CellError(CellFailure.NO_VALID_SEED)
            inv_len = 1.0 / math.sqrt(len2)
            pos = UnitVec3(*(c * inv_len for c in direction))

            a, b, c = sorted(
                (
                    self.generator_idx,
                    self._neighbor_indices[plane_a],
                    self._neighbor_indices[plane_b],
                )
            )
            vertices.append(((a, b, c), pos))
            edge_neighbors.append(
                None if edge_plane is None else self._neighbor_indices[edge_plane]
            )
        return vertices, edge_neighbors

    def count_active_planes(self) -> tuple[int, int]:
        """Return ``(planes defining a vertex, planes stored)``."""
        total = len(self._half_planes)
        active = {
            p
            for pair in self._poly.vertex_planes
            for p in pair
            if p is not None and p < total
        }
        return len(active), total