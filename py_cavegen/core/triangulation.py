"""
Marching squares triangulation of wall grids.

A square is the group of four grid points (x, y), (x + 1, y), (x, y + 1) and
(x + 1, y + 1). Which of its corners are walls gives one of 16
configurations, and each configuration maps to a fan of points taken from
the square's four corners and four edge midpoints:

    0 1 2
    7 - 3
    6 5 4

Neighbouring squares share vertices. VertexLookup deduplicates them while
only remembering two rows of squares at a time.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import structlog

from .grid import TileGrid

logger = structlog.get_logger()

MAX_VERTICES_IN_TRIANGULATION = 6

CONFIGURATION_TABLE: Tuple[Tuple[int, ...], ...] = (
    (),                    # 0 no walls
    (5, 6, 7),             # 1 bottom left
    (3, 4, 5),             # 2 bottom right
    (3, 4, 6, 7),          # 3 bottom half
    (1, 2, 3),             # 4 top right
    (1, 2, 3, 5, 6, 7),    # 5 top right and bottom left
    (1, 2, 4, 5),          # 6 right half
    (1, 2, 4, 6, 7),       # 7 all but top left
    (0, 1, 7),             # 8 top left
    (0, 1, 5, 6),          # 9 left half
    (0, 1, 3, 4, 5, 7),    # 10 top left and bottom right
    (0, 1, 3, 4, 6),       # 11 all but top right
    (0, 2, 3, 7),          # 12 top half
    (0, 2, 3, 5, 6),       # 13 all but bottom right
    (0, 2, 4, 5, 7),       # 14 all but bottom left
    (0, 2, 4, 6),          # 15 full square
)

# Position of each of the 8 points relative to the square's bottom left corner
POINT_OFFSETS: Tuple[Tuple[float, float], ...] = (
    (0.0, 1.0),
    (0.5, 1.0),
    (1.0, 1.0),
    (1.0, 0.5),
    (1.0, 0.0),
    (0.5, 0.0),
    (0.0, 0.0),
    (0.0, 0.5),
)


def compute_configuration(bottom_left: int, bottom_right: int, top_right: int, top_left: int) -> int:
    """Marching squares configuration (0 to 15) of a square's corners."""
    return bottom_left + 2 * bottom_right + 4 * top_right + 8 * top_left


def intersects_triangle(x: float, y: float, configuration: int) -> bool:
    """
    Does the point (x, y) of the unit square fall on a wall triangle?

    Args:
        x: Horizontal position within the square, between 0 and 1
        y: Vertical position within the square, between 0 and 1
        configuration: Square configuration from 0 to 15

    Raises:
        ValueError: If configuration is not between 0 and 15
    """
    if configuration == 0:
        return False
    if configuration == 15:
        return True
    if configuration == 1:
        return x + y <= 0.5
    if configuration == 2:
        return x >= y + 0.5
    if configuration == 3:
        return y <= 0.5
    if configuration == 4:
        return x + y >= 1.5
    if configuration == 5:
        # Saddle: the diagonal band joining the two wall corners
        return x <= y + 0.5 and y <= x + 0.5
    if configuration == 6:
        return x >= 0.5
    if configuration == 7:
        return y <= 0.5 + x
    if configuration == 8:
        return y >= 0.5 + x
    if configuration == 9:
        return x <= 0.5
    if configuration == 10:
        return 0.5 <= x + y <= 1.5
    if configuration == 11:
        return x + y <= 1.5
    if configuration == 12:
        return y >= 0.5
    if configuration == 13:
        return x <= y + 0.5
    if configuration == 14:
        return x + y >= 0.5
    raise ValueError(f"Configuration must be between 0 and 15 inclusive, got {configuration}")


class WallGrid:
    """
    Read-only grid of 0s (floors) and 1s (walls) ready for meshing.

    Attributes:
        scale: World-space size of one square
        position: World-space location of point (0, 0)
    """

    def __init__(self, walls: np.ndarray, position: Sequence[float] = (0.0, 0.0, 0.0), scale: int = 1):
        walls = np.array(walls, dtype=np.uint8)
        if walls.ndim != 2:
            raise ValueError(f"Wall array must be 2D, got shape {walls.shape}")
        walls.setflags(write=False)
        self._walls = walls
        self.position = tuple(float(v) for v in position)
        self.scale = scale

    @classmethod
    def from_tile_grid(cls, grid: TileGrid) -> "WallGrid":
        return cls(grid.tiles, grid.position, grid.square_size)

    @property
    def length(self) -> int:
        return self._walls.shape[0]

    @property
    def width(self) -> int:
        return self._walls.shape[1]

    @property
    def walls(self) -> np.ndarray:
        return self._walls

    def __getitem__(self, key: Tuple[int, int]) -> int:
        return int(self._walls[key])

    def invert(self) -> "WallGrid":
        """Copy of this grid with floors and walls swapped."""
        return WallGrid(1 - self._walls, self.position, self.scale)

    def configurations(self) -> np.ndarray:
        """Configuration of every square, as a (length - 1) x (width - 1) array."""
        walls = self._walls.astype(np.int32)
        return (
            walls[:-1, :-1]
            + 2 * walls[1:, :-1]
            + 4 * walls[1:, 1:]
            + 8 * walls[:-1, 1:]
        )


@dataclass
class MeshData:
    """
    Vertices and triangles of a mesh.

    Attributes:
        vertices: N x 3 array of (x, y, z) positions
        triangles: Flat array of vertex indices, three per triangle
        uv: Optional N x 2 array of texture coordinates
    """

    vertices: np.ndarray
    triangles: np.ndarray
    uv: Optional[np.ndarray] = None

    @classmethod
    def empty(cls) -> "MeshData":
        return cls(np.zeros((0, 3), dtype=np.float64), np.zeros(0, dtype=np.int64))

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles) // 3

    def triangle(self, index: int) -> Tuple[int, int, int]:
        start = 3 * index
        return tuple(int(v) for v in self.triangles[start:start + 3])

    def validate(self) -> None:
        """
        Check the mesh is well formed.

        Raises:
            ValueError: If the arrays have the wrong shape or a triangle
                refers to a missing vertex
        """
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 3:
            raise ValueError(f"Vertices must be an N x 3 array, got shape {self.vertices.shape}")
        if len(self.triangles) % 3 != 0:
            raise ValueError(f"Triangle array length {len(self.triangles)} is not a multiple of 3")
        if len(self.triangles) and (self.triangles.min() < 0 or self.triangles.max() >= len(self.vertices)):
            raise ValueError("Triangle refers to a vertex that does not exist")
        if self.uv is not None and self.uv.shape != (len(self.vertices), 2):
            raise ValueError(f"UV array must be {len(self.vertices)} x 2, got shape {self.uv.shape}")

    def copy(self) -> "MeshData":
        uv = None if self.uv is None else self.uv.copy()
        return MeshData(self.vertices.copy(), self.triangles.copy(), uv)


class VertexLookup:
    """
    Two-row cache of vertex indices for the triangulator.

    Squares must be visited row by row in increasing x. Points on the bottom
    of a square (6, 5, 4) were the top points (0, 1, 2) of the square below;
    points on the left (0, 7, 6) were the right points (2, 3, 4) of the
    square to the left. Only points 0 to 4 are ever looked up later, so only
    those are stored.
    """

    PER_SQUARE_CACHE_SIZE = 5
    _EMPTY = -1

    _FROM_BELOW = {6: 0, 5: 1, 4: 2}
    _FROM_LEFT = {0: 2, 7: 3, 6: 4}

    def __init__(self, row_length: int):
        size = row_length * self.PER_SQUARE_CACHE_SIZE
        self._current_row = np.full(size, self._EMPTY, dtype=np.int64)
        self._previous_row = np.full(size, self._EMPTY, dtype=np.int64)

    def get(self, point: int, x: int) -> Optional[int]:
        """Cached index of point on square x of the current row, if any."""
        index = self._EMPTY
        if point in self._FROM_BELOW:
            index = self._previous_row[self.PER_SQUARE_CACHE_SIZE * x + self._FROM_BELOW[point]]
        if index == self._EMPTY and point in self._FROM_LEFT and x > 0:
            index = self._current_row[self.PER_SQUARE_CACHE_SIZE * (x - 1) + self._FROM_LEFT[point]]
        return None if index == self._EMPTY else int(index)

    def cache(self, vertex_index: int, point: int, x: int) -> None:
        if point < self.PER_SQUARE_CACHE_SIZE:
            self._current_row[self.PER_SQUARE_CACHE_SIZE * x + point] = vertex_index

    def finalize_row(self) -> None:
        """Call after the last square of every row."""
        self._current_row, self._previous_row = self._previous_row, self._current_row
        self._current_row.fill(self._EMPTY)


class MapTriangulator:
    """Triangulates the walls of a grid with marching squares."""

    def __init__(self, grid: WallGrid):
        self.grid = grid

    def triangulate(self) -> MeshData:
        """
        Triangulate every square of the grid.

        Returns:
            Mesh with y = 0 for every vertex and no UVs
        """
        grid = self.grid
        configurations = grid.configurations()
        lookup = VertexLookup(grid.length)
        local_vertices: List[Tuple[float, float]] = []
        triangles: List[int] = []
        square_indices = [0] * MAX_VERTICES_IN_TRIANGULATION

        for y in range(grid.width - 1):
            for x in range(grid.length - 1):
                configuration = configurations[x, y]
                if configuration == 0:
                    continue
                points = CONFIGURATION_TABLE[configuration]
                for i, point in enumerate(points):
                    vertex_index = lookup.get(point, x)
                    if vertex_index is None:
                        vertex_index = len(local_vertices)
                        dx, dy = POINT_OFFSETS[point]
                        local_vertices.append((x + dx, y + dy))
                    lookup.cache(vertex_index, point, x)
                    square_indices[i] = vertex_index
                for i in range(len(points) - 2):
                    triangles.extend((square_indices[0], square_indices[i + 1], square_indices[i + 2]))
            lookup.finalize_row()

        mesh = MeshData(self._to_world(local_vertices), np.array(triangles, dtype=np.int64))
        logger.debug(
            "Grid triangulated",
            length=grid.length,
            width=grid.width,
            vertices=mesh.num_vertices,
            triangles=mesh.num_triangles,
        )
        return mesh

    def _to_world(self, local_vertices: List[Tuple[float, float]]) -> np.ndarray:
        vertices = np.zeros((len(local_vertices), 3), dtype=np.float64)
        if local_vertices:
            local = np.array(local_vertices, dtype=np.float64)
            vertices[:, 0] = local[:, 0]
            vertices[:, 2] = local[:, 1]
        vertices *= self.grid.scale
        vertices += np.array(self.grid.position, dtype=np.float64)
        return vertices


def triangulate(grid: Union[WallGrid, TileGrid]) -> MeshData:
    """Triangulate a WallGrid or TileGrid."""
    if isinstance(grid, TileGrid):
        grid = WallGrid.from_tile_grid(grid)
    return MapTriangulator(grid).triangulate()
