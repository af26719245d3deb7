"""
Region connectivity for cave maps.

Given the floor regions of a map, this module picks a short set of
tile-to-tile connections that, once tunneled, make every region reachable
from every other region. It works in four steps:

1. Reduce each region to its edge tiles (floor tiles touching a wall), in a
   roughly continuous order.
2. Find a near-shortest connection between every pair of regions with a
   galloping scan over the edge tiles.
3. Bucket sort the connections on their truncated distance.
4. Keep the minimum spanning tree of the connections (Kruskal over a
   union-find).

The galloping scan is what keeps step 2 close to linear: after measuring a
distance d between two tiles, the next d - 1 tiles of the other region cannot
be much closer, so they are skipped. Shortest connections in practice are
only a few tiles long, so the error this introduces is negligible.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import structlog

from .grid import Coord, Tile, TileGrid
from .regions import TileRegion

logger = structlog.get_logger()


@dataclass(frozen=True)
class ConnectionInfo:
    """Candidate tunnel between two regions, ordered by distance."""

    tile_a: Coord
    tile_b: Coord
    room_index_a: int
    room_index_b: int
    distance: float

    def __lt__(self, other: "ConnectionInfo") -> bool:
        return self.distance < other.distance


class EdgeExtractor:
    """
    Extract edge tiles of regions on one map.

    The visited bitmap is shared between calls, which is fine because the
    regions of a map are disjoint.
    """

    # up, down, right, left, up-left, down-left, up-right, down-right
    _OFFSETS = ((0, 1), (0, -1), (1, 0), (-1, 0), (-1, 1), (-1, -1), (1, 1), (1, -1))

    def __init__(self, grid: TileGrid):
        self.grid = grid
        self._visited = np.zeros((grid.length, grid.width), dtype=bool)

    def extract(self, region: TileRegion) -> TileRegion:
        """
        Trace the edge tiles of a floor region with a depth-first walk.

        The walk only moves between edge tiles. Diagonal moves are allowed so
        the trace can turn corners, but only when one of the two tiles the
        move cuts past is a floor; otherwise the walk could leak into a
        different region through a diagonal gap between walls. The result is
        mostly continuous; occasional jumps are tolerated.

        Args:
            region: Non-empty floor region of this extractor's grid

        Returns:
            Edge tiles in traversal order, keeping the region's index
        """
        assert len(region) > 0, "Room is empty!"

        grid = self.grid
        tiles = grid.tiles
        visited = self._visited

        first = next(tile for tile in region if grid.is_adjacent_to_wall(tile.x, tile.y))
        edge_tiles = [first]
        stack = [first]
        visited[first.x, first.y] = True
        while stack:
            tile = stack.pop()
            for dx, dy in self._OFFSETS:
                x, y = tile.x + dx, tile.y + dy
                if not grid.contains(x, y) or visited[x, y]:
                    continue
                if (
                    tiles[x, y] == Tile.FLOOR
                    and grid.is_adjacent_to_wall(x, y)
                    and self.is_valid_jump(tile, Coord(x, y))
                ):
                    visited[x, y] = True
                    adjacent = Coord(x, y)
                    stack.append(adjacent)
                    edge_tiles.append(adjacent)
        return TileRegion(edge_tiles, region.index)

    def is_valid_jump(self, source: Coord, destination: Coord) -> bool:
        """
        Can the walk step from source to destination?

        Orthogonal steps always can. A diagonal step needs one of the two
        orthogonal tiles shared by source and destination to be a floor.
        """
        dx = destination.x - source.x
        dy = destination.y - source.y
        return self._is_floor(source.x + dx, source.y) or self._is_floor(source.x, source.y + dy)

    def _is_floor(self, x: int, y: int) -> bool:
        return self.grid.contains(x, y) and self.grid.tiles[x, y] == Tile.FLOOR


def find_connection(
    room_a: Sequence[Coord], room_b: Sequence[Coord], index_a: int, index_b: int
) -> ConnectionInfo:
    """
    Find a near-shortest connection between two rooms of edge tiles.

    Both scans gallop: the inner scan over room_b skips ahead by the distance
    just computed, and the outer scan over room_a skips ahead by the best
    distance found for the current tile. Steps are never smaller than 1.

    Args:
        room_a: Edge tiles of the first room, in traversal order
        room_b: Edge tiles of the second room, in traversal order
        index_a: Index of the first room
        index_b: Index of the second room

    Returns:
        The best connection found
    """
    best_tile_a: Optional[Coord] = None
    best_tile_b: Optional[Coord] = None
    best_distance = float("inf")

    index_in_a = 0
    while index_in_a < len(room_a):
        tile_a = room_a[index_in_a]
        best_tile_b_this_loop = None
        best_distance_this_loop = float("inf")
        index_in_b = 0
        while index_in_b < len(room_b):
            tile_b = room_b[index_in_b]
            distance = tile_a.distance(tile_b)
            if distance < best_distance_this_loop:
                best_distance_this_loop = distance
                best_tile_b_this_loop = tile_b
            index_in_b += max(1, int(distance))

        if best_distance_this_loop < best_distance:
            best_tile_a = tile_a
            best_tile_b = best_tile_b_this_loop
            best_distance = best_distance_this_loop
        index_in_a += max(1, int(best_distance_this_loop))

    return ConnectionInfo(best_tile_a, best_tile_b, index_a, index_b, best_distance)


def sort_connections(connections: Sequence[ConnectionInfo]) -> List[ConnectionInfo]:
    """
    Sort connections by distance in linear time.

    Distances are truncated to integers and bucketed; connections with the
    same truncated distance keep their input order.
    """
    if not connections:
        return []
    max_distance = max(int(connection.distance) for connection in connections)
    buckets: List[List[ConnectionInfo]] = [[] for _ in range(max_distance + 1)]
    for connection in connections:
        buckets[int(connection.distance)].append(connection)
    return [connection for bucket in buckets for connection in bucket]


class UnionFind:
    """
    Disjoint sets over the integers 0..n-1.

    Uses union by rank and path compression, so a sequence of operations
    runs in effectively constant amortized time per operation.
    """

    def __init__(self, n: int):
        if n < 1:
            raise ValueError(f"Union-find needs at least one element, got {n}")
        self._parents = list(range(n))
        self._ranks = [0] * n

    def __len__(self) -> int:
        return len(self._parents)

    def find(self, node: int) -> int:
        """Return the representative of node's set, compressing the path to it."""
        self._check(node)
        root = node
        while self._parents[root] != root:
            root = self._parents[root]
        while self._parents[node] != root:
            self._parents[node], node = root, self._parents[node]
        return root

    def union(self, node_a: int, node_b: int) -> bool:
        """
        Merge the sets containing node_a and node_b.

        Returns:
            False if they were already in the same set
        """
        root_a = self.find(node_a)
        root_b = self.find(node_b)
        if root_a == root_b:
            return False
        if self._ranks[root_a] < self._ranks[root_b]:
            root_a, root_b = root_b, root_a
        self._parents[root_b] = root_a
        if self._ranks[root_a] == self._ranks[root_b]:
            self._ranks[root_a] += 1
        return True

    def connected(self, node_a: int, node_b: int) -> bool:
        return self.find(node_a) == self.find(node_b)

    def _check(self, node: int) -> None:
        if not 0 <= node < len(self._parents):
            raise IndexError(f"Node {node} outside union-find of size {len(self._parents)}")


def compute_mst(sorted_connections: Sequence[ConnectionInfo], num_rooms: int) -> List[ConnectionInfo]:
    """
    Kruskal's algorithm over connections already sorted by distance.

    Returns:
        Connections of the minimum spanning forest, in the order kept
    """
    union_find = UnionFind(num_rooms)
    tree: List[ConnectionInfo] = []
    for connection in sorted_connections:
        if union_find.union(connection.room_index_a, connection.room_index_b):
            tree.append(connection)
            if len(tree) == num_rooms - 1:
                break
    return tree


def get_connections(grid: TileGrid, regions: Sequence[TileRegion]) -> List[ConnectionInfo]:
    """
    Choose the connections that make every region reachable from every other.

    The sum of connection distances is close to minimal.

    Args:
        grid: Map the regions belong to
        regions: Floor regions of the map

    Returns:
        num_regions - 1 connections, or nothing when there are fewer than 2
        regions
    """
    if len(regions) < 2:
        return []

    extractor = EdgeExtractor(grid)
    rooms = [extractor.extract(region) for region in regions]

    candidates = []
    for a in range(len(rooms)):
        for b in range(a + 1, len(rooms)):
            candidates.append(find_connection(rooms[a], rooms[b], a, b))

    connections = compute_mst(sort_connections(candidates), len(rooms))
    logger.debug("Region connections computed", regions=len(rooms), connections=len(connections))
    return connections
