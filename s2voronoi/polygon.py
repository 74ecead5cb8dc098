"""Convex polygon clipping in the gnomonic tangent plane of a generator.

Spherical half-space constraints are projected onto lines in the tangent
plane at the generator.  Clipping a convex polygon by such half-planes
yields the active constraint set and the cyclic vertex order of a cell.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from itertools import chain
from typing import Iterable, Optional

EPS_INSIDE = 1e-12

# Most vertices a polygon may hold.  Generous, because clipping starts from
# a bounding triangle; real cells rarely exceed 20 vertices.
MAX_POLY_VERTICES = 64

Point2 = tuple[float, float]
Vec3 = tuple[float, float, float]
PlanePair = tuple[Optional[int], Optional[int]]


@dataclass(frozen=True)
class HalfPlane:
    """The half-plane ``a*u + b*v + c >= 0``.

    The coefficients are not normalized; inside/outside classification
    uses a tolerance scaled by the length of ``(a, b)``.
    """

    a: float
    b: float
    c: float
    plane_idx: int
    eps: float = field(init=False)

    def __post_init__(self) -> None:
        norm = math.sqrt(self.a * self.a + self.b * self.b)
        object.__setattr__(self, "eps", EPS_INSIDE * norm)

    def signed_dist(self, u: float, v: float) -> float:
        """Unnormalized signed distance of ``(u, v)``; positive inside."""
        return self.a * u + self.b * v + self.c


@dataclass
class PolyBuffer:
    """A convex polygon in the tangent plane.

    ``vertex_planes[i]`` holds the two planes meeting at vertex ``i`` and
    ``edge_planes[i]`` the plane of the edge from vertex ``i`` to the next.
    ``None`` marks an edge or vertex of the initial bounding triangle.
    """

    vertices: list[Point2] = field(default_factory=list)
    vertex_planes: list[PlanePair] = field(default_factory=list)
    edge_planes: list[Optional[int]] = field(default_factory=list)
    max_r2: float = 0.0
    has_bounding_ref: bool = False

    def __len__(self) -> int:
        return len(self.vertices)

    def init_bounding(self, bound: float) -> None:
        """Reset to a large triangle around the origin with circumradius ``bound``."""
        self.vertices = [
            (0.0, bound),
            (-bound * 0.866, -bound * 0.5),
            (bound * 0.866, -bound * 0.5),
        ]
        self.vertex_planes = [(None, None)] * 3
        self.edge_planes = [None] * 3
        self.max_r2 = bound * bound
        self.has_bounding_ref = True

    def clear(self) -> None:
        """Remove all vertices."""
        self.vertices = []
        self.vertex_planes = []
        self.edge_planes = []
        self.max_r2 = 0.0
        self.has_bounding_ref = False

    def min_cos(self) -> float:
        """Smallest cosine of the angle between the generator and any vertex.

        Derived from the gnomonic radius: ``cos = 1 / sqrt(1 + u^2 + v^2)``.
        """
        if not self.vertices:
            return 1.0
        return 1.0 / math.sqrt(1.0 + self.max_r2)


class ClipResult(Enum):
    """Outcome of clipping a polygon by a half-plane."""

    UNCHANGED = auto()
    CHANGED = auto()
    TOO_MANY_VERTICES = auto()


def _dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _normalize(a: Vec3) -> Vec3:
    length = math.sqrt(_dot(a, a))
    return (a[0] / length, a[1] / length, a[2] / length)


class TangentBasis:
    """Orthonormal basis ``(t1, t2, g)`` for gnomonic projection at ``g``."""

    def __init__(self, g: Iterable[float]) -> None:
        gx, gy, gz = (float(c) for c in g)
        ax, ay, az = abs(gx), abs(gy), abs(gz)
        if ax <= ay and ax <= az:
            arbitrary: Vec3 = (1.0, 0.0, 0.0)
        elif ay <= az:
            arbitrary = (0.0, 1.0, 0.0)
        else:
            arbitrary = (0.0, 0.0, 1.0)
        self.g: Vec3 = (gx, gy, gz)
        self.t1: Vec3 = _normalize(_cross(self.g, arbitrary))
        self.t2: Vec3 = _cross(self.g, self.t1)

    def plane_to_line(self, n: Iterable[float]) -> tuple[float, float, float]:
        """Project a plane normal to line coefficients ``(a, b, c)``."""
        normal = tuple(float(c) for c in n)
        return (_dot(normal, self.t1), _dot(normal, self.t2), _dot(normal, self.g))


def _lerp(p0: Point2, p1: Point2, t: float) -> Point2:
    return (p0[0] + t * (p1[0] - p0[0]), p0[1] + t * (p1[1] - p0[1]))


def clip_convex(poly: PolyBuffer, hp: HalfPlane) -> tuple[ClipResult, PolyBuffer]:
    """Clip a convex polygon by a half-plane.

    Returns the outcome and the resulting polygon.  When the polygon lies
    entirely inside the half-plane, or the result would exceed
    ``MAX_POLY_VERTICES``, the input polygon itself is returned.
    """
    n = len(poly)
    if n < 3:
        return ClipResult.CHANGED, PolyBuffer()

    dists = [hp.signed_dist(u, v) for u, v in poly.vertices]
    inside = [d >= -hp.eps for d in dists]
    inside_count = sum(inside)

    if inside_count == n:
        return ClipResult.UNCHANGED, poly
    if inside_count == 0:
        return ClipResult.CHANGED, PolyBuffer()

    entry: Optional[tuple[int, int]] = None
    exit_: Optional[tuple[int, int]] = None
    for i in range(n):
        j = (i + 1) % n
        if inside[i] != inside[j]:
            if inside[j]:
                entry = (i, j)
            else:
                exit_ = (i, j)
    assert entry is not None and exit_ is not None

    if inside_count + 2 > MAX_POLY_VERTICES:
        return ClipResult.TOO_MANY_VERTICES, poly

    entry_idx, entry_next = entry
    t_entry = dists[entry_idx] / (dists[entry_idx] - dists[entry_next])
    entry_pt = _lerp(poly.vertices[entry_idx], poly.vertices[entry_next], t_entry)
    entry_edge_plane = poly.edge_planes[entry_idx]

    exit_idx, exit_next = exit_
    t_exit = dists[exit_idx] / (dists[exit_idx] - dists[exit_next])
    exit_pt = _lerp(poly.vertices[exit_idx], poly.vertices[exit_next], t_exit)
    exit_edge_plane = poly.edge_planes[exit_idx]

    if entry_next <= exit_idx:
        survivors: Iterable[int] = range(entry_next, exit_idx + 1)
    else:
        survivors = chain(range(entry_next, n), range(exit_idx + 1))

    out = PolyBuffer()
    out.vertices.append(entry_pt)
    out.vertex_planes.append((entry_edge_plane, hp.plane_idx))
    out.edge_planes.append(entry_edge_plane)
    for i in survivors:
        out.vertices.append(poly.vertices[i])
        out.vertex_planes.append(poly.vertex_planes[i])
        out.edge_planes.append(poly.edge_planes[i])
    out.vertices.append(exit_pt)
    out.vertex_planes.append((exit_edge_plane, hp.plane_idx))
    out.edge_planes.append(hp.plane_idx)

    # The last surviving input vertex leads to the exit point along its
    # original edge, so it keeps that edge's plane.
    out.edge_planes[-2] = exit_edge_plane

    out.max_r2 = max(u * u + v * v for u, v in out.vertices)
    out.has_bounding_ref = poly.has_bounding_ref and any(
        vp[0] is None for vp in out.vertex_planes
    )
    return ClipResult.CHANGED, out