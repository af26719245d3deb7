"""
Default cave map generator.

Runs the full generation pipeline from a MapParameters model:

1. Seed the map with random walls and wall off its outer ring
2. Smooth the noise into caverns
3. Fill in floor regions that are too small
4. Tunnel between the remaining floor regions
5. Widen passages that are one tile wide
6. Remove wall regions that are too small
7. Add a wall border

The result has every floor tile reachable from every other floor tile, and
its outer ring is solid wall.
"""

import structlog

from ..config.map_parameters import MapParameters
from ..utils.timing import Stopwatch
from .cellular import (
    apply_border,
    initialize_random_map,
    remove_small_floor_regions,
    remove_small_wall_regions,
    smooth,
)
from .grid import Boundary, Tile, TileGrid
from .tunneling import connect_floors, get_tunneler, widen_tunnels

logger = structlog.get_logger()


class MapGenerator:
    """
    Generates randomized cave maps.

    Attributes:
        parameters: Validated generation parameters
    """

    def __init__(self, parameters: MapParameters):
        self.parameters = parameters

    def generate_map(self) -> TileGrid:
        """
        Build a new map.

        Returns:
            Grid of size (length + 2 * border_size) x (width + 2 * border_size)

        Raises:
            TunnelingError: If a random tunneler gives up while connecting rooms
        """
        params = self.parameters
        stopwatch = Stopwatch()
        logger.info(
            "Generating map",
            length=params.length,
            width=params.width,
            seed=params.seed,
            tunneler=params.tunneler,
        )

        grid = initialize_random_map(params.length, params.width, params.initial_density, params.seed)
        grid.fill_boundary(Tile.WALL)
        stopwatch.query("initialize")

        smooth(grid, params.smoothing_iterations)
        # Smoothing can open the ring where floors crowd the edge
        grid.fill_boundary(Tile.WALL)
        stopwatch.query("smooth")

        removed_floors = remove_small_floor_regions(grid, params.min_floor_size)
        stopwatch.query("remove_small_floors", removed=removed_floors)

        interior = Boundary(grid.length - 1, grid.width - 1, 1, 1)
        tunneler = get_tunneler(params.tunneler, interior, params.seed)
        tunnels = connect_floors(grid, params.tunnel_radius, tunneler, interior_only=True)
        stopwatch.query("connect_floors", tunnels=tunnels)

        if params.expand_tunnels:
            widened = widen_tunnels(grid)
            stopwatch.query("widen_tunnels", widened=widened)

        removed_walls = remove_small_wall_regions(grid, params.min_wall_size)
        stopwatch.query("remove_small_walls", removed=removed_walls)

        grid = apply_border(grid, params.border_size)
        grid.square_size = params.square_size
        stopwatch.query("apply_border")

        logger.info(
            "Map generated",
            length=grid.length,
            width=grid.width,
            floors=grid.count(Tile.FLOOR),
            seconds=round(stopwatch.total, 4),
        )
        return grid
