# s2voronoi

Pure-Python building blocks for spherical Voronoi cells on the unit sphere.
It has no dependencies outside the standard library.

A cell is built by clipping against the bisector planes between its generator
and the neighbouring generators. Each bisector plane is projected gnomonically
into the tangent plane at the generator. The cell is then clipped there as a
convex 2D polygon, and its vertices are lifted back onto the sphere.

## Modules

- `s2voronoi.types` holds the point and settings types.
  - `UnitVec3` is a frozen point with `x`, `y` and `z`. It has `dot`,
    `length_squared`, `length`, `normalize` and `to_array`, and it can be
    iterated. It does not normalize its input.
  - `as_unit_vec3(p)` accepts a `UnitVec3`, any object with `x`/`y`/`z`
    attributes, or any iterable of exactly three numbers. It raises
    `TypeError` or `ValueError` for anything else.
  - `VoronoiConfig` holds the settings `preprocess`, `preprocess_threshold`
    and `termination_max_k`.
- `s2voronoi.polygon` holds the 2D clipping parts: `HalfPlane`, `PolyBuffer`,
  `ClipResult`, `TangentBasis` and `clip_convex(poly, hp)`. `clip_convex`
  returns a pair `(ClipResult, PolyBuffer)`. A polygon holds at most
  `MAX_POLY_VERTICES` (64) vertices.
- `s2voronoi.topo2d` holds `Topo2DBuilder`, which builds the cell of one
  generator by successive clipping, together with `CellFailure` and
  `CellError`.
- `s2voronoi.validation` holds `validate(diagram)` and `ValidationReport`,
  which check the topology of a finished diagram.
- `s2voronoi.phases` holds the timing records `PhaseTimings`, `CellSubPhases`
  and `DedupSubPhases`, the stage records `KnnCellStage` and `StageKind`, and
  the histogram helpers `bucket_to_neighbors` and `neighbors_to_bucket`.
- `s2voronoi.timing` holds `Timer`, `CellSubAccum` and `TimingBuilder`, which
  collect those records.

## Building a single cell

```python
from s2voronoi.topo2d import Topo2DBuilder
from s2voronoi.types import UnitVec3

builder = Topo2DBuilder(0, UnitVec3(0.0, 0.0, 1.0))
for idx, (x, y, z) in enumerate(
    [(1.0, 0.0, 0.5), (-0.5, 0.866, 0.5), (-0.5, -0.866, 0.5)], start=1
):
    builder.clip(idx, UnitVec3(x, y, z).normalize())

assert builder.is_bounded()
for key, position in builder.to_vertex_data():
    print(key, position)
```

`to_vertex_data()` returns the vertices in cyclic order. Each vertex is a pair
`(key, position)`:

- `key` is the sorted triple of generator indices that meet at that vertex.
- `position` is a `UnitVec3` on the unit sphere.

`to_vertex_data_with_edge_neighbors()` returns the same list together with a
second list. For each vertex, that list gives the neighbour across the edge to
the next vertex, or `None` for an edge of the initial bounding triangle.

Planes that do not cut the cell are not stored. `neighbor_indices()`,
`has_neighbor()` and `count_active_planes()` only count the planes that are
stored. `can_terminate(max_unseen_dot_bound)` answers one question: can any
unseen neighbour whose dot product with the generator is at most that bound
still cut the cell?

`clip` raises `CellError` when a clip removes the whole cell, or when the
polygon would grow past its vertex limit. The failure, a `CellFailure` value,
is kept on the builder and returned by `failure()`. Later calls to `clip`
raise it again. Converting to vertex data also raises `CellError` while the
cell is still unbounded.

## Checking a diagram

`validate(diagram)` accepts any object that has all of the following:

- a `vertices` sequence of points with `x`, `y` and `z`;
- a `num_cells()` method;
- a `num_vertices()` method;
- an `iter_cells()` method that yields cells with `vertex_indices`.

The returned `ValidationReport` counts the following:

- the Euler characteristic, taken over unique cells and non-orphan vertices;
- degenerate cells and cells with duplicate vertices;
- vertices that lie off the unit sphere;
- vertex degrees.

`is_valid()` checks the report with some tolerance and `is_perfect()` checks it
strictly. `summary()` lists any problems that were found. `str(report)` gives a
one-line overview.

## Timing

`TimingBuilder` records the duration of each phase, in seconds. Its `finish()`
returns a `PhaseTimings`, with the total taken from when the builder was
created. `CellSubAccum` gathers per-chunk cell timings, stage counts and a
neighbour-count histogram. It combines with `merge()` and turns into a
`CellSubPhases` with `into_sub_phases()`. `PhaseTimings.render(n)` returns the
breakdown as text and `PhaseTimings.report(n)` writes it to stderr.

## What this package does not do

The package has no function that computes a whole Voronoi diagram from a set
of points. It has no neighbour search, no merging of near-coincident
generators and no deduplication of vertices between cells. `VoronoiConfig`
only holds settings, and nothing in the package reads them. The package also
installs no command-line tool.

## Running the tests

```
pip install ".[test]"
pytest
```