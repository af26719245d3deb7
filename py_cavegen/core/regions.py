"""
Flood-fill region analysis for tile grids.

A region is a maximal set of tiles of one type connected through horizontal
and vertical steps. Regions are discovered with a breadth-first search over a
visited bitmap that starts out marking every tile of the opposite type.
"""

from collections import deque
from typing import Iterator, List, Sequence, overload

import numpy as np
import structlog

from .grid import Coord, Tile, TileGrid

logger = structlog.get_logger()


class TileRegion:
    """
    Fixed, ordered collection of coordinates forming one region.

    Attributes:
        index: Identifier of the region, used as a graph vertex id
    """

    __slots__ = ("_tiles", "index")

    def __init__(self, tiles: Sequence[Coord], index: int = 0):
        self._tiles = tuple(tiles)
        self.index = index

    def __len__(self) -> int:
        return len(self._tiles)

    @overload
    def __getitem__(self, item: int) -> Coord: ...

    @overload
    def __getitem__(self, item: slice) -> tuple: ...

    def __getitem__(self, item):
        return self._tiles[item]

    def __iter__(self) -> Iterator[Coord]:
        return iter(self._tiles)

    def __contains__(self, coord: object) -> bool:
        return coord in self._tiles

    def __repr__(self) -> str:
        return f"TileRegion(index={self.index}, size={len(self._tiles)})"


def find_regions(grid: TileGrid, tile_type: Tile) -> List[TileRegion]:
    """
    Find every connected region of the given tile type.

    Start tiles are scanned with x in the outer loop and y in the inner loop,
    and each region lists its tiles in BFS order.

    Args:
        grid: Grid to analyse
        tile_type: Type of tile the regions are made of

    Returns:
        Regions in discovery order; each region's index is its list position
    """
    visited = grid.tiles != tile_type
    return _collect_regions(grid.tiles, visited, tile_type)


def remove_small_regions(grid: TileGrid, tile_type: Tile, threshold: int) -> int:
    """
    Flip every region of tile_type smaller than threshold to the other type.

    Wall regions touching the edge of the grid are never removed, so pruning
    walls cannot open the cave onto the outside of the map.

    Args:
        grid: Grid to modify in place
        tile_type: Type of tile whose small regions are removed
        threshold: Minimum number of tiles a region needs to survive

    Returns:
        Number of regions removed

    Raises:
        ValueError: If threshold is negative
    """
    if threshold < 0:
        raise ValueError(f"Removal threshold cannot be negative, got {threshold}")
    if threshold == 0:
        return 0

    tiles = grid.tiles
    visited = tiles != tile_type
    if tile_type == Tile.WALL:
        _mark_boundary_regions(tiles, visited)

    replacement = Tile(tile_type).opposite
    removed = 0
    for region in _collect_regions(tiles, visited, tile_type):
        if len(region) < threshold:
            for x, y in region:
                tiles[x, y] = replacement
            removed += 1

    logger.debug(
        "Small regions removed",
        tile_type=Tile(tile_type).name,
        threshold=threshold,
        removed=removed,
    )
    return removed


def _collect_regions(tiles: np.ndarray, visited: np.ndarray, tile_type: Tile) -> List[TileRegion]:
    regions: List[TileRegion] = []
    length, width = tiles.shape
    for x in range(length):
        for y in range(width):
            if not visited[x, y]:
                region_tiles = _flood_fill(tiles, visited, x, y)
                regions.append(TileRegion(region_tiles, len(regions)))
    return regions


def _flood_fill(tiles: np.ndarray, visited: np.ndarray, start_x: int, start_y: int) -> List[Coord]:
    """BFS from (start_x, start_y) over unvisited tiles, marking them visited."""
    length, width = tiles.shape
    region = []
    queue = deque([(start_x, start_y)])
    visited[start_x, start_y] = True
    while queue:
        x, y = queue.popleft()
        region.append(Coord(x, y))
        # left, right, up, down
        for nx, ny in ((x - 1, y), (x + 1, y), (x, y + 1), (x, y - 1)):
            if 0 <= nx < length and 0 <= ny < width and not visited[nx, ny]:
                visited[nx, ny] = True
                queue.append((nx, ny))
    return region


def _mark_boundary_regions(tiles: np.ndarray, visited: np.ndarray) -> None:
    length, width = tiles.shape
    edge = [(x, 0) for x in range(length)] + [(x, width - 1) for x in range(length)]
    edge += [(0, y) for y in range(width)] + [(length - 1, y) for y in range(width)]
    for x, y in edge:
        if not visited[x, y]:
            _flood_fill(tiles, visited, x, y)
