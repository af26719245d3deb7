"""
Tile grid data structures for cave map generation.

This module provides:
- Tile enum (floor/wall)
- Coord, an immutable integer coordinate with neighbour and distance helpers
- Boundary, a half-open integer rectangle used to constrain random walks
- TileGrid, a numpy-backed 2D grid of tiles indexed as grid[x, y]
- subdivide(), which breaks a finished grid into overlapping chunks
"""

import math
from enum import IntEnum
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import structlog

logger = structlog.get_logger()

DEFAULT_CHUNK_SIZE = 150


class Tile(IntEnum):
    """A single map tile. Values double as the wall flag used by meshing."""

    FLOOR = 0
    WALL = 1

    @property
    def opposite(self) -> "Tile":
        return Tile.FLOOR if self == Tile.WALL else Tile.WALL


class Coord(NamedTuple):
    """Integer grid coordinate. x increases to the right, y increases upwards."""

    x: int
    y: int

    @property
    def left(self) -> "Coord":
        return Coord(self.x - 1, self.y)

    @property
    def right(self) -> "Coord":
        return Coord(self.x + 1, self.y)

    @property
    def up(self) -> "Coord":
        return Coord(self.x, self.y + 1)

    @property
    def down(self) -> "Coord":
        return Coord(self.x, self.y - 1)

    @property
    def top_left(self) -> "Coord":
        return Coord(self.x - 1, self.y + 1)

    @property
    def top_right(self) -> "Coord":
        return Coord(self.x + 1, self.y + 1)

    @property
    def bottom_left(self) -> "Coord":
        return Coord(self.x - 1, self.y - 1)

    @property
    def bottom_right(self) -> "Coord":
        return Coord(self.x + 1, self.y - 1)

    def offset(self, dx: int, dy: int) -> "Coord":
        return Coord(self.x + dx, self.y + dy)

    def squared_distance(self, other: "Coord") -> int:
        """Squared Euclidean distance. Preserves ordering and avoids the sqrt."""
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def distance(self, other: "Coord") -> float:
        """Euclidean distance between the two coordinates."""
        return math.sqrt(self.squared_distance(other))

    def sup_norm_distance(self, other: "Coord") -> int:
        """
        Distance under the supremum norm, e.g. (2, 3) to (5, 105) is 102.
        """
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def line_to(self, other: "Coord") -> List["Coord"]:
        """
        Rasterise a straight line from this coordinate to other (both inclusive).

        The line takes max(|dx|, |dy|) unit steps along the dominant axis;
        the minor axis is interpolated and truncated.

        Args:
            other: End of the line

        Returns:
            List of coordinates starting with self and ending with other
        """
        dx = other.x - self.x
        dy = other.y - self.y
        steps = max(abs(dx), abs(dy))
        if steps == 0:
            return [self]
        # i * d / steps keeps the endpoint exact, unlike accumulating d / steps
        return [
            Coord(
                math.floor(self.x + i * dx / steps),
                math.floor(self.y + i * dy / steps),
            )
            for i in range(steps + 1)
        ]


class Boundary:
    """
    Half-open rectangle [x_min, x_max) x [y_min, y_max).

    Boundary(length, width) covers every valid index of a length by width grid.
    """

    def __init__(self, x_max: int, y_max: int, x_min: int = 0, y_min: int = 0):
        if x_min > x_max or y_min > y_max:
            raise ValueError("Minimum boundary cannot exceed maximum.")
        self.x_min = x_min
        self.x_max = x_max
        self.y_min = y_min
        self.y_max = y_max

    def is_in_bounds(self, coord: Coord) -> bool:
        return self.x_min <= coord.x < self.x_max and self.y_min <= coord.y < self.y_max

    def __repr__(self) -> str:
        return (
            f"Boundary(x=[{self.x_min}, {self.x_max}), "
            f"y=[{self.y_min}, {self.y_max}))"
        )


GridIndex = Union[Coord, Tuple[int, int]]


class TileGrid:
    """
    Rectangular length x width grid of tiles.

    Tiles are stored in a uint8 numpy array indexed [x, y]. Dimensions are
    fixed at construction. Item access is bounds-checked; hot loops should
    take the raw array from ``tiles`` after checking bounds themselves.

    Attributes:
        square_size: Physical size of one tile in world units
        position: World-space position (x, y, z) of tile (0, 0)
        index: Chunk index when the grid is a piece of a larger map
    """

    def __init__(
        self,
        length: int,
        width: int,
        square_size: int = 1,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        index: Coord = Coord(0, 0),
    ):
        if length <= 0 or width <= 0:
            raise ValueError(
                f"Grid dimensions must be positive, got {length}x{width}"
            )
        if square_size <= 0:
            raise ValueError(f"Square size must be positive, got {square_size}")
        self._tiles = np.zeros((length, width), dtype=np.uint8)
        self.square_size = square_size
        self.position = tuple(float(v) for v in position)
        self.index = Coord(*index)

    @classmethod
    def from_array(
        cls,
        tiles: np.ndarray,
        square_size: int = 1,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        index: Coord = Coord(0, 0),
    ) -> "TileGrid":
        """
        Build a grid from a 2D array of 0s (floors) and 1s (walls).

        The array is copied; it is indexed [x, y].
        """
        tiles = np.asarray(tiles)
        if tiles.ndim != 2:
            raise ValueError(f"Tile array must be 2D, got shape {tiles.shape}")
        if tiles.size and not np.isin(tiles, (Tile.FLOOR, Tile.WALL)).all():
            raise ValueError("Tiles must be 0 (floors) and 1 (walls).")
        grid = cls(tiles.shape[0], tiles.shape[1], square_size, position, index)
        grid._tiles[:, :] = tiles
        return grid

    @classmethod
    def from_ascii(cls, text: str, square_size: int = 1) -> "TileGrid":
        """
        Parse a picture of the grid: '#' is a wall, '.' is a floor.

        The first line is the top row (highest y), characters run along x.
        Blank lines and surrounding whitespace are ignored.
        """
        rows = [line.strip() for line in text.strip().splitlines() if line.strip()]
        if not rows:
            raise ValueError("Cannot build a grid from empty text")
        length = len(rows[0])
        if any(len(row) != length for row in rows):
            raise ValueError("All rows must have the same length")
        width = len(rows)
        grid = cls(length, width, square_size)
        for row_number, row in enumerate(rows):
            y = width - 1 - row_number
            for x, char in enumerate(row):
                if char == "#":
                    grid._tiles[x, y] = Tile.WALL
                elif char == ".":
                    grid._tiles[x, y] = Tile.FLOOR
                else:
                    raise ValueError(f"Unexpected character {char!r} in grid text")
        return grid

    @property
    def length(self) -> int:
        return self._tiles.shape[0]

    @property
    def width(self) -> int:
        return self._tiles.shape[1]

    @property
    def tiles(self) -> np.ndarray:
        """The underlying [x, y] array. Mutations write through to the grid."""
        return self._tiles

    def __getitem__(self, key: GridIndex) -> Tile:
        x, y = key
        if not self.contains(x, y):
            raise IndexError(f"Tile ({x}, {y}) outside {self.length}x{self.width} grid")
        return Tile(self._tiles[x, y])

    def __setitem__(self, key: GridIndex, value: Tile) -> None:
        x, y = key
        if not self.contains(x, y):
            raise IndexError(f"Tile ({x}, {y}) outside {self.length}x{self.width} grid")
        self._tiles[x, y] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TileGrid):
            return NotImplemented
        return np.array_equal(self._tiles, other._tiles)

    def __repr__(self) -> str:
        return f"TileGrid(length={self.length}, width={self.width}, walls={self.count(Tile.WALL)})"

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.length and 0 <= y < self.width

    def is_wall(self, x: int, y: int) -> bool:
        return self[x, y] == Tile.WALL

    def is_floor(self, x: int, y: int) -> bool:
        return self[x, y] == Tile.FLOOR

    def is_boundary_tile(self, x: int, y: int) -> bool:
        if not self.contains(x, y):
            return False
        return x == 0 or x == self.length - 1 or y == 0 or y == self.width - 1

    def is_interior_tile(self, x: int, y: int) -> bool:
        return 0 < x < self.length - 1 and 0 < y < self.width - 1

    def adjacent_tiles(self, x: int, y: int) -> Iterator[Coord]:
        """Yield the in-bounds horizontal/vertical neighbours of (x, y)."""
        if x > 0:
            yield Coord(x - 1, y)
        if x + 1 < self.length:
            yield Coord(x + 1, y)
        if y > 0:
            yield Coord(x, y - 1)
        if y + 1 < self.width:
            yield Coord(x, y + 1)

    def is_adjacent_to_wall(self, x: int, y: int) -> bool:
        """
        Does (x, y) have a wall among its 4 neighbours?

        Positions beyond the edge of the grid count as walls.
        """
        tiles = self._tiles
        length, width = tiles.shape
        return (
            x == 0 or tiles[x - 1, y] == Tile.WALL
            or x == length - 1 or tiles[x + 1, y] == Tile.WALL
            or y == 0 or tiles[x, y - 1] == Tile.WALL
            or y == width - 1 or tiles[x, y + 1] == Tile.WALL
        )

    def surrounding_wall_count(self, x: int, y: int) -> int:
        """
        Number of walls among the 8 neighbours of an interior tile.

        Raises:
            IndexError: If (x, y) is not an interior tile
        """
        if not self.is_interior_tile(x, y):
            raise IndexError(f"Tile ({x}, {y}) is not an interior tile")
        block = self._tiles[x - 1:x + 2, y - 1:y + 2]
        return int(block.sum()) - int(self._tiles[x, y])

    def count(self, tile: Tile) -> int:
        return int(np.count_nonzero(self._tiles == tile))

    def fill(self, tile: Tile) -> None:
        self._tiles.fill(tile)

    def fill_boundary(self, tile: Tile) -> None:
        """Set every tile on the outer ring of the grid."""
        self._tiles[0, :] = tile
        self._tiles[-1, :] = tile
        self._tiles[:, 0] = tile
        self._tiles[:, -1] = tile

    def invert(self) -> None:
        """Swap floors and walls in place."""
        np.bitwise_xor(self._tiles, 1, out=self._tiles)

    def copy(self) -> "TileGrid":
        """Deep copy, including position, scale and chunk index."""
        return TileGrid.from_array(self._tiles, self.square_size, self.position, self.index)

    def copy_from(self, other: "TileGrid") -> None:
        """Overwrite this grid's tiles with other's. Dimensions must match."""
        if other._tiles.shape != self._tiles.shape:
            raise ValueError(
                f"Cannot copy {other.length}x{other.width} grid into {self.length}x{self.width} grid"
            )
        np.copyto(self._tiles, other._tiles)

    def to_array(self) -> np.ndarray:
        """Copy of the tiles as a uint8 [x, y] array."""
        return self._tiles.copy()

    def to_ascii(self) -> str:
        """Inverse of from_ascii: '#' walls, '.' floors, top row first."""
        lines = []
        for y in range(self.width - 1, -1, -1):
            lines.append(
                "".join("#" if self._tiles[x, y] else "." for x in range(self.length))
            )
        return "\n".join(lines)


def subdivide(grid: TileGrid, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[TileGrid]:
    """
    Break a grid into chunks of at most (chunk_size + 1) tiles per side.

    Neighbouring chunks share one row/column of tiles so that their meshes
    meet without gaps. Each chunk records its chunk index and the world
    position of its (0, 0) tile.

    Args:
        grid: Finished map
        chunk_size: Number of squares per chunk side

    Returns:
        Chunks ordered by x index, then y index
    """
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")

    x_chunks = math.ceil(grid.length / chunk_size)
    y_chunks = math.ceil(grid.width / chunk_size)
    scale = grid.square_size
    base_x, base_y, base_z = grid.position

    chunks = []
    for x_index in range(x_chunks):
        for y_index in range(y_chunks):
            x_start = x_index * chunk_size
            y_start = y_index * chunk_size
            x_end = _chunk_end(x_start, chunk_size, grid.length)
            y_end = _chunk_end(y_start, chunk_size, grid.width)
            position = (base_x + x_start * scale, base_y, base_z + y_start * scale)
            chunks.append(
                TileGrid.from_array(
                    grid.tiles[x_start:x_end, y_start:y_end],
                    square_size=scale,
                    position=position,
                    index=Coord(x_index, y_index),
                )
            )

    logger.debug("Grid subdivided", chunks=len(chunks), chunk_size=chunk_size)
    return chunks


def _chunk_end(start: int, chunk_size: int, maximum: int) -> int:
    return maximum if start + chunk_size >= maximum else start + chunk_size + 1
