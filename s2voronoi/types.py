"""Core value types: points on the unit sphere and computation settings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterator, Optional


@dataclass(frozen=True)
class UnitVec3:
    """A point on the unit sphere, stored as a 3D vector.

    The constructor does not normalize; callers are responsible for
    supplying points on (or near) the unit sphere.
    """

    x: float
    y: float
    z: float

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def dot(self, other: "UnitVec3") -> float:
        """Dot product with another vector."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def length_squared(self) -> float:
        """Squared Euclidean length."""
        return self.dot(self)

    def length(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.length_squared())

    def normalize(self) -> "UnitVec3":
        """Return the vector scaled to unit length; a zero vector is returned unchanged."""
        length = self.length()
        if length > 0.0:
            return UnitVec3(self.x / length, self.y / length, self.z / length)
        return self

    def to_array(self) -> list[float]:
        """Return the coordinates as ``[x, y, z]``."""
        return [self.x, self.y, self.z]


def as_unit_vec3(p: Any) -> UnitVec3:
    """Convert a point-like value to a :class:`UnitVec3`.

    Accepts a ``UnitVec3``, any object with ``x``, ``y`` and ``z``
    attributes, or any iterable of exactly three numbers.
    """
    if isinstance(p, UnitVec3):
        return p
    if all(hasattr(p, name) for name in ("x", "y", "z")):
        return UnitVec3(float(p.x), float(p.y), float(p.z))
    if isinstance(p, (str, bytes)):
        raise TypeError(f"cannot interpret {type(p).__name__} as a 3D point")
    try:
        coords = tuple(p)
    except TypeError:
        raise TypeError(f"cannot interpret {type(p).__name__} as a 3D point") from None
    if len(coords) != 3:
        raise ValueError(f"expected 3 coordinates, got {len(coords)}")
    x, y, z = (float(c) for c in coords)
    return UnitVec3(x, y, z)


@dataclass
class VoronoiConfig:
    """Settings for a Voronoi computation.

    ``preprocess`` merges near-coincident generators before clipping.
    ``preprocess_threshold`` overrides the density-based merge threshold.
    ``termination_max_k`` caps k during the termination fallback.
    """

    preprocess: bool = True
    preprocess_threshold: Optional[float] = None
    termination_max_k: Optional[int] = None