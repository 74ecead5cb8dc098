"""Building blocks for spherical Voronoi cells: tangent-plane clipping, validation and timing."""

__version__ = "0.1.0"