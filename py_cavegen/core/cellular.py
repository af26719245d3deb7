"""
Cellular automata passes for cave map generation.

The usual recipe is to seed a grid with random walls, smooth it a handful of
times so the noise clumps into caverns, then prune regions that are too small
to be interesting:

    grid = initialize_random_map(80, 60, 0.45, seed=42)
    smooth(grid)
    remove_small_floor_regions(grid, 50)
"""

import numpy as np
import structlog
from scipy import ndimage

from .grid import Tile, TileGrid
from .regions import find_regions, remove_small_regions

logger = structlog.get_logger()

SMOOTHING_ITERATIONS = 5
SMOOTHING_THRESHOLD = 4
MAX_SMOOTHING_ITERATIONS = 10

_BLOCK = np.ones((3, 3), dtype=np.int32)


def initialize_random_map(length: int, width: int, density: float, seed: int) -> TileGrid:
    """
    Fill a new grid with walls at random.

    Args:
        length: Number of tiles along x
        width: Number of tiles along y
        density: Probability that any given tile is a wall, e.g. 0.45
        seed: Seed for the random stream; equal seeds give equal maps

    Returns:
        New grid of the given dimensions

    Raises:
        ValueError: If a dimension is not positive or density is outside [0, 1]
    """
    if length <= 0 or width <= 0:
        raise ValueError(f"Map dimensions must be positive, got {length}x{width}")
    if not 0.0 <= density <= 1.0:
        raise ValueError(f"Map density must be between 0 and 1, got {density}")

    rng = np.random.default_rng(seed)
    tiles = (rng.random((length, width)) < density).astype(np.uint8)
    grid = TileGrid.from_array(tiles)
    logger.debug("Random map initialized", length=length, width=width, density=density, seed=seed)
    return grid


def smooth(grid: TileGrid, iterations: int = SMOOTHING_ITERATIONS) -> None:
    """
    Make every tile more like its neighbours.

    Interior tiles become walls when more than SMOOTHING_THRESHOLD of their
    8 neighbours are walls. Boundary tiles look at the part of their 3x3 block
    that lies on the grid (themselves included) and become walls on a tie.
    Each pass reads the previous generation only. May affect connectivity.

    Args:
        grid: Grid to smooth in place
        iterations: Number of passes. Values above MAX_SMOOTHING_ITERATIONS
            are clamped since the automaton converges quickly.
    """
    _run_smoothing(grid, iterations, only_walls=False)


def smooth_only_walls(grid: TileGrid, iterations: int = 1) -> None:
    """
    Same as smooth, but floors are never turned into walls.

    Useful for rounding off jagged wall edges without breaking connectivity.
    """
    _run_smoothing(grid, iterations, only_walls=True)


def remove_small_wall_regions(grid: TileGrid, threshold: int) -> int:
    """Replace wall regions with fewer than threshold tiles by floor."""
    return remove_small_regions(grid, Tile.WALL, threshold)


def remove_small_floor_regions(grid: TileGrid, threshold: int) -> int:
    """Replace floor regions with fewer than threshold tiles by wall."""
    return remove_small_regions(grid, Tile.FLOOR, threshold)


def apply_border(grid: TileGrid, border_size: int) -> TileGrid:
    """
    Surround the map with walls.

    A border of n tiles adds 2n to both the length and the width.

    Args:
        grid: Map to border; it is not modified
        border_size: Thickness of the border on each side

    Returns:
        New bordered grid (a plain copy when border_size is 0)

    Raises:
        ValueError: If border_size is negative
    """
    if border_size < 0:
        raise ValueError(f"Cannot add a border of negative size, got {border_size}")
    if border_size == 0:
        return grid.copy()

    tiles = np.pad(grid.tiles, border_size, mode="constant", constant_values=Tile.WALL)
    return TileGrid.from_array(tiles, grid.square_size, grid.position, grid.index)


def is_connected(grid: TileGrid) -> bool:
    """
    Can every floor tile be reached from every other one?

    Only horizontal and vertical steps count. A map without floors is
    trivially connected.
    """
    return len(find_regions(grid, Tile.FLOOR)) < 2


def _run_smoothing(grid: TileGrid, iterations: int, only_walls: bool) -> None:
    if iterations < 0:
        raise ValueError(f"Smoothing iterations cannot be negative, got {iterations}")
    iterations = min(MAX_SMOOTHING_ITERATIONS, iterations)
    if iterations == 0:
        return

    current = grid.to_array()
    smoothed = np.empty_like(current)
    # Number of on-grid tiles in each 3x3 block, for the boundary rule
    block_sizes = ndimage.convolve(
        np.ones(current.shape, dtype=np.int32), _BLOCK, mode="constant", cval=0
    )
    interior = np.zeros(current.shape, dtype=bool)
    interior[1:-1, 1:-1] = True

    for _ in range(iterations):
        _smooth_pass(current, smoothed, block_sizes, interior)
        if only_walls:
            smoothed[current == Tile.FLOOR] = Tile.FLOOR
        current, smoothed = smoothed, current

    grid.tiles[:, :] = current
    logger.debug("Grid smoothed", iterations=iterations, only_walls=only_walls)


def _smooth_pass(
    current: np.ndarray,
    out: np.ndarray,
    block_sizes: np.ndarray,
    interior: np.ndarray,
) -> None:
    block_walls = ndimage.convolve(current.astype(np.int32), _BLOCK, mode="constant", cval=0)
    neighbour_walls = block_walls - current
    interior_rule = neighbour_walls > SMOOTHING_THRESHOLD
    boundary_rule = 2 * block_walls >= block_sizes
    out[:, :] = np.where(interior, interior_rule, boundary_rule)
