"""
Outline extraction for triangulated wall meshes.

An outline is a closed loop of vertices separating walls from open space. An
edge lies on an outline when exactly one triangle of the mesh contains it;
interior edges are shared by two triangles. Outlines are traced with a
consistent winding, which later decides which side of a wall is visible.

Very small outlines can be missed, e.g. a single floor tile surrounded by
walls, so tiny rooms should be pruned before meshing.
"""

from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .triangulation import MeshData

logger = structlog.get_logger()

# Every outline has at least one vertex contained in this many triangles or fewer
MAX_TRIANGLES_FOR_OUTLINE_START = 3


def is_right_of(a: Sequence[float], b: Sequence[float], c: Sequence[float]) -> bool:
    """Is c to the right of the line from a to b, looking down the y axis?"""
    return ((b[0] - a[0]) * (c[2] - a[2]) - (b[2] - a[2]) * (c[0] - a[0])) < 0


class TriangleLookup:
    """Which triangles contain each vertex of a mesh."""

    def __init__(self, num_vertices: int, triangles: Sequence[int]):
        self._triangles = np.asarray(triangles, dtype=np.int64)
        self._containing: List[List[int]] = [[] for _ in range(num_vertices)]
        for triangle_index in range(len(self._triangles) // 3):
            for vertex in self._triangles[3 * triangle_index:3 * triangle_index + 3]:
                self._containing[vertex].append(triangle_index)

    def count(self, vertex: int) -> int:
        return len(self._containing[vertex])

    def triangles_containing(self, vertex: int) -> List[int]:
        """Indices (into the triangle list) of the triangles containing vertex."""
        return self._containing[vertex]

    def vertices_of(self, triangle: int) -> Tuple[int, int, int]:
        start = 3 * triangle
        a, b, c = self._triangles[start:start + 3]
        return int(a), int(b), int(c)

    def shared_triangle_count(self, vertex_a: int, vertex_b: int) -> int:
        return sum(1 for t in self._containing[vertex_a] if vertex_b in self.vertices_of(t))

    def share_multiple_triangles(self, vertex_a: int, vertex_b: int) -> bool:
        shared = 0
        for triangle in self._containing[vertex_a]:
            if vertex_b in self.vertices_of(triangle):
                shared += 1
                if shared > 1:
                    return True
        return False


class Outline:
    """
    Closed loop of vertex indices; the first and last index are the same.

    Attributes:
        vertices: Vertex array the indices point into
    """

    def __init__(self, indices: Sequence[int], vertices: np.ndarray):
        self._indices = list(indices)
        self.vertices = vertices

    def __len__(self) -> int:
        return len(self._indices)

    def __getitem__(self, item: int) -> int:
        return self._indices[item]

    def __iter__(self) -> Iterator[int]:
        return iter(self._indices)

    def __repr__(self) -> str:
        return f"Outline(num_vertices={self.num_vertices})"

    @property
    def indices(self) -> List[int]:
        return list(self._indices)

    @property
    def num_vertices(self) -> int:
        """Number of distinct vertices on the loop."""
        return len(self._indices) - 1

    @property
    def num_edges(self) -> int:
        return len(self._indices) - 1

    def point(self, i: int) -> Tuple[float, float]:
        """Position of the i-th vertex of the loop projected onto the xz plane."""
        vertex = self.vertices[self._indices[i]]
        return float(vertex[0]), float(vertex[2])

    def perimeter_length(self) -> float:
        """Length of the loop, ignoring height."""
        points = self.vertices[self._indices][:, [0, 2]]
        return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())

    def reverse(self) -> None:
        self._indices.reverse()


class OutlineGenerator:
    """Traces every outline of a mesh."""

    def __init__(self, mesh: MeshData):
        self.vertices = mesh.vertices
        self.lookup = TriangleLookup(len(mesh.vertices), mesh.triangles)

    def generate_outlines(self) -> List[Outline]:
        """
        Trace the outlines of the mesh.

        Returns:
            Outlines in order of their starting vertex

        Raises:
            RuntimeError: If an outline cannot be started in the right direction
        """
        visited = np.zeros(len(self.vertices), dtype=bool)
        outlines = []
        for vertex in range(len(self.vertices)):
            count = self.lookup.count(vertex)
            if not visited[vertex] and 0 < count <= MAX_TRIANGLES_FOR_OUTLINE_START:
                outlines.append(self._trace(vertex, visited))
        logger.debug("Outlines extracted", outlines=len(outlines), vertices=len(self.vertices))
        return outlines

    def _trace(self, start: int, visited: np.ndarray) -> Outline:
        visited[start] = True
        indices = [start]
        current = self._initial_vertex(start)
        while current is not None:
            indices.append(current)
            visited[current] = True
            current = self._next_vertex(current, visited)
        indices.append(start)
        return Outline(indices, self.vertices)

    def _initial_vertex(self, start: int) -> int:
        for triangle in self.lookup.triangles_containing(start):
            corners = self.lookup.vertices_of(triangle)
            for vertex in corners:
                if self._is_outline_edge(start, vertex) and self._is_correct_orientation(start, vertex, corners):
                    return vertex
        raise RuntimeError(f"Failed to initialize outline at vertex {start}")

    def _next_vertex(self, current: int, visited: np.ndarray) -> Optional[int]:
        for triangle in self.lookup.triangles_containing(current):
            for vertex in self.lookup.vertices_of(triangle):
                if not visited[vertex] and self._is_outline_edge(current, vertex):
                    return vertex
        return None

    def _is_outline_edge(self, vertex_a: int, vertex_b: int) -> bool:
        return vertex_a != vertex_b and not self.lookup.share_multiple_triangles(vertex_a, vertex_b)

    def _is_correct_orientation(self, start: int, other: int, corners: Tuple[int, int, int]) -> bool:
        third = next(v for v in corners if v != start and v != other)
        return is_right_of(self.vertices[start], self.vertices[other], self.vertices[third])


def extract_outlines(mesh: MeshData) -> List[Outline]:
    return OutlineGenerator(mesh).generate_outlines()
