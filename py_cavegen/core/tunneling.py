"""
Tunnel carving between regions of a cave map.

A tunneler turns a pair of coordinates into a path of coordinates (both ends
included). Carving clears every tile within a radius of the path. The
built-in tunnelers are:

- "direct": a rasterised straight line
- "low_variance": a random walk that never moves away from the goal
- "high_variance": random jumps toward the goal, joined by low variance walks

Passages left one tile wide by carving can be widened afterwards so larger
agents fit through them.
"""

from typing import Iterable, List, Optional, Protocol

import numpy as np
import structlog

from .connectivity import get_connections
from .grid import Boundary, Coord, Tile, TileGrid
from .regions import find_regions

logger = structlog.get_logger()

MAX_DIRECTION_ATTEMPTS = 30000
MAX_PATH_STEPS = 1_000_000
JUMP_SIZE = 20

# Clockwise around a tile, starting at the top left
_RING_OFFSETS = ((-1, 1), (0, 1), (1, 1), (1, 0), (1, -1), (0, -1), (-1, -1), (-1, 0))

TUNNELER_KINDS = ("direct", "low_variance", "high_variance")


class TunnelingError(RuntimeError):
    """Raised when a random tunneler fails to reach its goal within its iteration caps."""


class Tunneler(Protocol):
    """Builds a path between two coordinates."""

    def get_path(self, start: Coord, end: Coord) -> Iterable[Coord]:
        """Path from start (inclusive) to end (inclusive)."""
        ...


class DirectTunneler:
    """Straight line between the two endpoints."""

    def get_path(self, start: Coord, end: Coord) -> List[Coord]:
        return start.line_to(end)


class RandomDirectedTunneler:
    """
    Random walk that gravitates towards the goal.

    Each step moves to one of the 8 neighbouring tiles, chosen at random
    among those inside the boundary that are no farther from the goal.

    Args:
        boundary: Region the walk may not leave, usually Boundary(length, width)
        seed: Fixes the randomness
    """

    DIRECTIONS = (
        Coord(1, 0), Coord(0, 1), Coord(-1, 0), Coord(0, -1),
        Coord(1, 1), Coord(-1, 1), Coord(1, -1), Coord(-1, -1),
    )

    def __init__(self, boundary: Boundary, seed: Optional[int] = None):
        self.boundary = boundary
        self._rng = np.random.default_rng(seed)

    def get_path(self, start: Coord, end: Coord) -> List[Coord]:
        current = start
        path = [current]
        while current != end:
            if len(path) > MAX_PATH_STEPS:
                raise TunnelingError(f"Path from {start} to {end} exceeded {MAX_PATH_STEPS} steps")
            current = self._next_step(current, end)
            path.append(current)
        return path

    def _next_step(self, current: Coord, end: Coord) -> Coord:
        current_distance = current.squared_distance(end)
        for _ in range(MAX_DIRECTION_ATTEMPTS):
            dx, dy = self.DIRECTIONS[self._rng.integers(len(self.DIRECTIONS))]
            candidate = Coord(current.x + dx, current.y + dy)
            if self.boundary.is_in_bounds(candidate) and candidate.squared_distance(end) <= current_distance:
                return candidate
        raise TunnelingError(f"Could not find a step from {current} towards {end}")


class RandomWalkTunneler:
    """
    Wide, wandering tunnels.

    While far from the goal, jump to a random point in a box around the
    current point that is strictly closer to the goal, and join consecutive
    points with RandomDirectedTunneler walks.
    """

    def __init__(self, boundary: Boundary, seed: Optional[int] = None):
        self.boundary = boundary
        self._rng = np.random.default_rng(seed)
        self._walker = RandomDirectedTunneler(boundary, seed)

    def get_path(self, start: Coord, end: Coord) -> List[Coord]:
        current = start
        path: List[Coord] = []
        jumps = 0
        while current.distance(end) > JUMP_SIZE:
            jumps += 1
            if jumps > MAX_PATH_STEPS:
                raise TunnelingError(f"Path from {start} to {end} exceeded {MAX_PATH_STEPS} jumps")
            following = self._next_jump(current, end)
            path.extend(self._walker.get_path(current, following))
            current = following
        path.extend(self._walker.get_path(current, end))
        return path

    def _next_jump(self, current: Coord, end: Coord) -> Coord:
        current_distance = current.distance(end)
        for _ in range(MAX_DIRECTION_ATTEMPTS):
            candidate = Coord(
                int(self._rng.integers(current.x - JUMP_SIZE, current.x + JUMP_SIZE)),
                int(self._rng.integers(current.y - JUMP_SIZE, current.y + JUMP_SIZE)),
            )
            if self.boundary.is_in_bounds(candidate) and candidate.distance(end) < current_distance:
                return candidate
        raise TunnelingError(f"Could not find a jump from {current} towards {end}")


def get_tunneler(kind: str, boundary: Boundary, seed: Optional[int] = None) -> Tunneler:
    """
    Build one of the built-in tunnelers by name.

    Raises:
        ValueError: If kind is not one of TUNNELER_KINDS
    """
    if kind == "direct":
        return DirectTunneler()
    if kind == "low_variance":
        return RandomDirectedTunneler(boundary, seed)
    if kind == "high_variance":
        return RandomWalkTunneler(boundary, seed)
    raise ValueError(f"Unknown tunneler {kind!r}, expected one of {TUNNELER_KINDS}")


def carve_tunnel(grid: TileGrid, path: Iterable[Coord], radius: int, interior_only: bool = False) -> None:
    """
    Turn every tile within radius of a path tile into floor.

    With interior_only, the outer ring of the grid is never cleared, so a
    walled map stays closed.
    """
    tiles = grid.tiles
    length, width = tiles.shape
    margin = 1 if interior_only else 0
    squared_radius = radius * radius
    for center in path:
        x_min = max(margin, center.x - radius)
        y_min = max(margin, center.y - radius)
        x_max = min(length - 1 - margin, center.x + radius)
        y_max = min(width - 1 - margin, center.y + radius)
        for y in range(y_min, y_max + 1):
            for x in range(x_min, x_max + 1):
                if center.squared_distance(Coord(x, y)) <= squared_radius:
                    tiles[x, y] = Tile.FLOOR


def connect_floors(
    grid: TileGrid,
    tunnel_radius: int,
    tunneler: Optional[Tunneler] = None,
    interior_only: bool = False,
) -> int:
    """
    Carve tunnels until every floor region is reachable from every other.

    The tunnels follow the minimum spanning tree of region connections, so
    the total tunneling is kept small. Work happens on a copy; if the
    tunneler fails the input grid is left untouched.

    Args:
        grid: Grid to modify in place
        tunnel_radius: Radius of the carved tunnels; 0 does nothing
        tunneler: Path strategy, DirectTunneler by default
        interior_only: Leave the outer ring of the grid untouched

    Returns:
        Number of tunnels carved

    Raises:
        ValueError: If tunnel_radius is negative
        TunnelingError: If a random tunneler gives up
    """
    if tunnel_radius < 0:
        raise ValueError(f"Tunnel radius cannot be negative, got {tunnel_radius}")
    if tunnel_radius == 0:
        return 0
    if tunneler is None:
        tunneler = DirectTunneler()

    working = grid.copy()
    floors = find_regions(working, Tile.FLOOR)
    connections = get_connections(working, floors)
    for connection in connections:
        path = tunneler.get_path(connection.tile_a, connection.tile_b)
        carve_tunnel(working, path, tunnel_radius, interior_only)
    grid.copy_from(working)

    logger.info("Floors connected", regions=len(floors), tunnels=len(connections))
    return len(connections)


def widen_tunnels(grid: TileGrid) -> int:
    """
    Widen passages one tile wide to at least two tiles.

    A floor tile is a passage when walking once around its 8 neighbours
    switches between floor and wall more than twice, i.e. walls touch it from
    more than one side. Every neighbour of a passage tile becomes floor.
    Passages are found before anything is cleared, and the outer ring of the
    grid is never cleared.

    Returns:
        Number of walls turned into floors
    """
    tiles = grid.tiles
    length, width = tiles.shape
    if length < 3 or width < 3:
        return 0

    ring = [tiles[1 + dx:length - 1 + dx, 1 + dy:width - 1 + dy] for dx, dy in _RING_OFFSETS]
    changes = np.zeros((length - 2, width - 2), dtype=np.int32)
    for i, neighbours in enumerate(ring):
        changes += neighbours != ring[i - 1]
    passages = (tiles[1:-1, 1:-1] == Tile.FLOOR) & (changes > 2)

    cleared = np.zeros(tiles.shape, dtype=bool)
    for dx, dy in _RING_OFFSETS:
        cleared[1 + dx:length - 1 + dx, 1 + dy:width - 1 + dy] |= passages
    cleared[[0, -1], :] = False
    cleared[:, [0, -1]] = False

    widened = int(np.count_nonzero(cleared & (tiles == Tile.WALL)))
    tiles[cleared] = Tile.FLOOR
    logger.debug("Tunnels widened", passages=int(passages.sum()), widened=widened)
    return widened
