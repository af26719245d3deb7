"""
Core cave generation functionality.
"""

from .grid import Tile, Coord, Boundary, TileGrid, subdivide
from .regions import TileRegion, find_regions, remove_small_regions
from .cellular import (initialize_random_map, smooth, smooth_only_walls, remove_small_wall_regions,
                       remove_small_floor_regions, apply_border, is_connected)
from .connectivity import ConnectionInfo, EdgeExtractor, UnionFind, get_connections
from .tunneling import (TunnelingError, DirectTunneler, RandomDirectedTunneler, RandomWalkTunneler,
                        get_tunneler, carve_tunnel, connect_floors)
from .map_generator import MapGenerator
from .triangulation import WallGrid, MeshData, MapTriangulator, triangulate
from .outlines import Outline, OutlineGenerator, extract_outlines
from .mesh_builder import CaveType, CaveMeshes, generate_meshes, generate_cave

__all__ = ['Tile', 'Coord', 'Boundary', 'TileGrid', 'subdivide',
           'TileRegion', 'find_regions', 'remove_small_regions',
           'initialize_random_map', 'smooth', 'smooth_only_walls', 'remove_small_wall_regions',
           'remove_small_floor_regions', 'apply_border', 'is_connected',
           'ConnectionInfo', 'EdgeExtractor', 'UnionFind', 'get_connections',
           'TunnelingError', 'DirectTunneler', 'RandomDirectedTunneler', 'RandomWalkTunneler',
           'get_tunneler', 'carve_tunnel', 'connect_floors',
           'MapGenerator',
           'WallGrid', 'MeshData', 'MapTriangulator', 'triangulate',
           'Outline', 'OutlineGenerator', 'extract_outlines',
           'CaveType', 'CaveMeshes', 'generate_meshes', 'generate_cave']
