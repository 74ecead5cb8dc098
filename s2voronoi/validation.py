"""Topological validation for spherical Voronoi diagrams.

``validate`` accepts any diagram object that provides ``num_cells()``,
``num_vertices()``, ``iter_cells()`` (cells with a ``vertex_indices``
sequence) and a ``vertices`` sequence of points with ``x``, ``y``, ``z``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_SPHERE_EPS = 1e-4


@dataclass(frozen=True)
class ValidationReport:
    """Detailed validation report for a spherical Voronoi diagram."""

    num_cells: int
    num_vertices: int
    num_edges: int
    euler_characteristic: int
    expected_vertices: int
    degenerate_cells: int
    cells_with_duplicates: int
    total_cell_vertices: int
    total_unique_cell_vertices: int
    vertices_off_sphere: int
    non_degree3_vertices: int
    orphan_vertices: int
    # Vertex counts by degree: (degree 0, degree 1, degree 2, degree 4+).
    degree_counts: tuple[int, int, int, int]
    unique_cells: int
    duplicate_cells_count: int

    def is_valid(self) -> bool:
        """Check validity with tolerance for numerical edge cases."""
        euler_ok = abs(self.euler_characteristic - 2) <= 2
        degenerate_ok = self.degenerate_cells / max(self.num_cells, 1) <= 0.01
        no_duplicates = self.cells_with_duplicates == 0
        edges_consistent = self.total_unique_cell_vertices % 2 == 0
        on_sphere = self.vertices_off_sphere == 0
        low_degree = self.degree_counts[1] + self.degree_counts[2]
        degree3_ok = low_degree / max(self.num_vertices, 1) <= 0.01
        return (
            euler_ok
            and degenerate_ok
            and no_duplicates
            and edges_consistent
            and on_sphere
            and degree3_ok
        )

    def is_perfect(self) -> bool:
        """Strict check: exact Euler characteristic and clean structure."""
        return (
            self.euler_characteristic == 2
            and self.degenerate_cells == 0
            and self.cells_with_duplicates == 0
            and self.total_unique_cell_vertices % 2 == 0
            and self.vertices_off_sphere == 0
            and self.non_degree3_vertices == 0
        )

    def summary(self) -> str:
        """Describe any issues found."""
        if self.is_perfect():
            return "Perfect"

        issues = []
        if self.euler_characteristic != 2:
            issues.append(f"Euler={self.euler_characteristic} (expected 2)")
        if self.num_vertices != self.expected_vertices:
            issues.append(f"V={self.num_vertices} (expected {self.expected_vertices})")
        if self.degenerate_cells > 0:
            issues.append(f"{self.degenerate_cells} degenerate cells")
        if self.cells_with_duplicates > 0:
            issues.append(f"{self.cells_with_duplicates} cells with duplicate vertices")
        if self.total_unique_cell_vertices % 2 != 0:
            issues.append("odd total cell vertices (edge inconsistency)")
        if self.vertices_off_sphere > 0:
            issues.append(f"{self.vertices_off_sphere} vertices off sphere")
        if self.orphan_vertices > 0:
            issues.append(f"{self.orphan_vertices} orphan vertices (in 0 cells)")
        if self.non_degree3_vertices > 0:
            _, d1, d2, _ = self.degree_counts
            parts = []
            if d1 > 0:
                parts.append(f"d1:{d1}")
            if d2 > 0:
                parts.append(f"d2:{d2}")
            issues.append(
                f"{self.non_degree3_vertices} non-degree-3 vertices ({', '.join(parts)})"
            )

        return ", ".join(issues) if issues else "Valid (minor imperfections)"

    def __str__(self) -> str:
        return (
            f"ValidationReport {{ V={self.num_vertices}, E={self.num_edges}, "
            f"F={self.num_cells}, euler={self.euler_characteristic}, {self.summary()} }}"
        )


def validate(diagram: Any) -> ValidationReport:
    """Validate the topological correctness of a spherical Voronoi diagram."""
    num_cells = diagram.num_cells()
    num_vertices = diagram.num_vertices()

    signatures: set[tuple[int, ...]] = set()
    duplicate_cells_count = 0
    incidence = [0] * num_vertices
    total_cell_vertices = 0
    degenerate_cells = 0
    cells_with_duplicates = 0

    for cell in diagram.iter_cells():
        indices = list(cell.vertex_indices)
        count = len(indices)
        total_cell_vertices += count
        if count < 3:
            degenerate_cells += 1
        if len(set(indices)) < count:
            cells_with_duplicates += 1

        signature = tuple(sorted(indices))
        if signature in signatures:
            duplicate_cells_count += 1
        else:
            signatures.add(signature)

        for vi in indices:
            if 0 <= vi < num_vertices:
                incidence[vi] += 1

    unique_cells = len(signatures)

    d0 = d1 = d2 = d4 = 0
    for count in incidence:
        if count == 0:
            d0 += 1
        elif count == 1:
            d1 += 1
        elif count == 2:
            d2 += 1
        elif count > 3:
            d4 += 1
    orphan_vertices = d0
    non_degree3_vertices = d1 + d2

    total_unique_cell_vertices = sum(len(s) for s in signatures)
    unique_edges = total_unique_cell_vertices // 2

    effective_vertices = max(num_vertices - orphan_vertices, 0)
    euler_characteristic = effective_vertices - unique_edges + unique_cells
    expected_vertices = 2 * unique_cells - 4 if unique_cells >= 2 else 0

    vertices_off_sphere = sum(
        1
        for v in diagram.vertices
        if abs(v.x * v.x + v.y * v.y + v.z * v.z - 1.0) > _SPHERE_EPS
    )

    return ValidationReport(
        num_cells=num_cells,
        num_vertices=num_vertices,
        num_edges=unique_edges,
        euler_characteristic=euler_characteristic,
        expected_vertices=expected_vertices,
        degenerate_cells=degenerate_cells,
        cells_with_duplicates=cells_with_duplicates,
        total_cell_vertices=total_cell_vertices,
        total_unique_cell_vertices=total_unique_cell_vertices,
        vertices_off_sphere=vertices_off_sphere,
        non_degree3_vertices=non_degree3_vertices,
        orphan_vertices=orphan_vertices,
        degree_counts=(d0, d1, d2, d4),
        unique_cells=unique_cells,
        duplicate_cells_count=duplicate_cells_count,
    )