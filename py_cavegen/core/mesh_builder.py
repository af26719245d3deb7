"""
Cave mesh building.

Turns a finished grid into the meshes of a 3D cave:

- floor: the floors of the grid, triangulated at the floor height
- ceiling: either the walls triangulated at the ceiling height (isometric
  caves, viewed from above) or a copy of the floor facing down (enclosed
  caves, viewed from inside)
- walls: vertical quads along every outline, joining floor and ceiling

Meshes of large maps are built per chunk. Chunks overlap by one tile, so
their outlines include spurious walls along the seams, which are pruned.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
import structlog

from ..config import settings
from .grid import TileGrid, subdivide
from .outlines import Outline, extract_outlines
from .triangulation import MeshData, WallGrid, triangulate

logger = structlog.get_logger()

FLAT_UV_SCALE = 50.0
WALL_UV_SCALE = 10.0
DEFAULT_CEILING_HEIGHT = 3.0


class CaveType(str, Enum):
    """Which way the cave is meant to be viewed."""

    ISOMETRIC = "isometric"
    ENCLOSED = "enclosed"


@dataclass
class CaveMeshes:
    """Meshes making up one chunk of a cave."""

    floor: MeshData
    ceiling: MeshData
    walls: MeshData
    index: tuple = (0, 0)

    @property
    def meshes(self) -> List[MeshData]:
        return [self.floor, self.ceiling, self.walls]


def build_floor(wall_grid: WallGrid, height: float = 0.0) -> MeshData:
    """Triangulate the floors of the grid."""
    return _build_flat_mesh(wall_grid.invert(), height)


def build_ceiling(wall_grid: WallGrid, height: float = DEFAULT_CEILING_HEIGHT) -> MeshData:
    """Triangulate the walls of the grid, raised to the given height."""
    return _build_flat_mesh(wall_grid, height)


def build_enclosure(floor: MeshData, height: float = DEFAULT_CEILING_HEIGHT) -> MeshData:
    """
    Copy the floor up to the given height, visible from below.

    The floor is visible from above; reversing the triangle order flips the
    direction it faces.
    """
    enclosure = floor.copy()
    enclosure.vertices[:, 1] = height
    enclosure.triangles = enclosure.triangles[::-1].copy()
    return enclosure


def build_walls(
    outlines: Sequence[Outline],
    vertices: np.ndarray,
    floor_height: float = 0.0,
    ceiling_height: float = DEFAULT_CEILING_HEIGHT,
) -> MeshData:
    """
    Raise a wall along each outline.

    Every outline point gets two vertices, one at the ceiling height and one
    at the floor height, and every outline edge gets a quad. Texture u runs
    along the outline and is scaled so each loop ends on the nearest whole
    number, which keeps the texture seamless where the loop closes. It never
    advances slower than one repeat per WALL_UV_SCALE units, so short loops
    still get a varying texture.

    Args:
        outlines: Closed outlines, typically from the ceiling mesh
        vertices: Vertex array the outlines index into
        floor_height: Height of the bottom of the walls
        ceiling_height: Height of the top of the walls

    Returns:
        Wall mesh with UVs
    """
    num_points = sum(len(outline) for outline in outlines)
    wall_vertices = np.zeros((2 * num_points, 3), dtype=np.float64)
    uv = np.zeros((2 * num_points, 2), dtype=np.float64)
    triangles: List[int] = []

    v_top = ceiling_height / WALL_UV_SCALE
    v_bottom = floor_height / WALL_UV_SCALE
    vertex_index = 0
    for outline in outlines:
        points = vertices[outline.indices]
        steps = np.linalg.norm(np.diff(points[:, [0, 2]], axis=0), axis=1)
        distances = np.concatenate(([0.0], np.cumsum(steps)))
        total = distances[-1]
        increment = _uv_increment(total)

        for i, point in enumerate(points):
            top = vertex_index + 2 * i
            wall_vertices[top] = (point[0], ceiling_height, point[2])
            wall_vertices[top + 1] = (point[0], floor_height, point[2])
            u = distances[i] * increment
            uv[top] = (u, v_top)
            uv[top + 1] = (u, v_bottom)

        for i in range(outline.num_edges):
            v = vertex_index + 2 * i
            triangles.extend((v, v + 1, v + 3, v + 3, v + 2, v))
        # The last two vertices of a loop close the seam and start no quad
        vertex_index += 2 * len(outline)

    return MeshData(wall_vertices, np.array(triangles, dtype=np.int64), uv)


def prune_seam_walls(mesh: MeshData, modulus: float, origin: Sequence[float] = (0.0, 0.0)) -> int:
    """
    Remove triangles lying on a line x or z equal to a multiple of modulus.

    Chunks that meet along floor tiles produce outlines (and so walls) on
    the shared boundary; those walls are exactly the triangles whose
    centroid lies on such a line.

    Args:
        mesh: Wall mesh, modified in place
        modulus: Spacing of the seams in world units
        origin: World (x, z) the seams are measured from

    Returns:
        Number of triangles removed
    """
    if modulus <= 0:
        raise ValueError(f"Modulus must be positive, got {modulus}")
    if mesh.num_triangles == 0:
        return 0
    corners = mesh.vertices[mesh.triangles.reshape(-1, 3)]
    centroids = corners.mean(axis=1)
    x = centroids[:, 0] - origin[0]
    z = centroids[:, 2] - origin[1]
    on_seam = (np.mod(x, modulus) == 0) | (np.mod(z, modulus) == 0)
    mesh.triangles = mesh.triangles.reshape(-1, 3)[~on_seam].reshape(-1)
    return int(on_seam.sum())


def generate_meshes(
    grid,
    cave_type: CaveType = CaveType.ISOMETRIC,
    floor_height: float = 0.0,
    ceiling_height: float = DEFAULT_CEILING_HEIGHT,
) -> CaveMeshes:
    """
    Build the floor, ceiling and wall meshes of a grid.

    Args:
        grid: TileGrid or WallGrid, at most settings.max_map_size tiles per side
        cave_type: Isometric or enclosed
        floor_height: Height of the floor
        ceiling_height: Height of the ceiling, at least floor_height

    Raises:
        ValueError: If the grid is too large or the heights are inverted
    """
    wall_grid = WallGrid.from_tile_grid(grid) if isinstance(grid, TileGrid) else grid
    max_size = settings.max_map_size
    if wall_grid.length > max_size or wall_grid.width > max_size:
        raise ValueError(f"Max grid size is {max_size} by {max_size}")
    if floor_height > ceiling_height:
        raise ValueError("Floor height cannot be greater than ceiling height")

    cave_type = CaveType(cave_type)
    floor = build_floor(wall_grid, floor_height)
    wall_tops = build_ceiling(wall_grid, ceiling_height)
    outlines = extract_outlines(wall_tops)
    walls = build_walls(outlines, wall_tops.vertices, floor_height, ceiling_height)

    if cave_type == CaveType.ISOMETRIC:
        ceiling = wall_tops
    else:
        ceiling = build_enclosure(floor, ceiling_height)

    logger.debug(
        "Cave meshes built",
        cave_type=cave_type.value,
        outlines=len(outlines),
        floor_triangles=floor.num_triangles,
        wall_triangles=walls.num_triangles,
    )
    return CaveMeshes(floor, ceiling, walls)


def generate_cave(
    grid: TileGrid,
    cave_type: CaveType = CaveType.ISOMETRIC,
    floor_height: float = 0.0,
    ceiling_height: float = DEFAULT_CEILING_HEIGHT,
    chunk_size: Optional[int] = None,
) -> List[CaveMeshes]:
    """
    Build cave meshes for a map of any size.

    The map is split into chunks, each chunk is meshed on its own and walls
    along the chunk seams are pruned.

    Args:
        grid: Finished map
        cave_type: Isometric or enclosed
        floor_height: Height of the floor
        ceiling_height: Height of the ceiling
        chunk_size: Squares per chunk side, settings.chunk_size by default

    Returns:
        One CaveMeshes per chunk, ordered like subdivide's chunks
    """
    if chunk_size is None:
        chunk_size = settings.chunk_size
    if chunk_size + 1 > settings.max_map_size:
        raise ValueError(f"Chunk size must be below {settings.max_map_size}, got {chunk_size}")

    chunks = subdivide(grid, chunk_size)
    seam_spacing = chunk_size * grid.square_size
    origin = (grid.position[0], grid.position[2])

    caves = []
    for chunk in chunks:
        meshes = generate_meshes(chunk, cave_type, floor_height, ceiling_height)
        if len(chunks) > 1:
            prune_seam_walls(meshes.walls, seam_spacing, origin)
        meshes.index = tuple(chunk.index)
        caves.append(meshes)

    logger.info("Cave generated", chunks=len(caves), cave_type=CaveType(cave_type).value)
    return caves


def _build_flat_mesh(wall_grid: WallGrid, height: float) -> MeshData:
    mesh = triangulate(wall_grid)
    mesh.vertices[:, 1] = height
    mesh.uv = mesh.vertices[:, [0, 2]] / FLAT_UV_SCALE
    return mesh


def _uv_increment(perimeter: float) -> float:
    if perimeter <= 0:
        return 0.0
    # Tiny loops would round to 0 and collapse the texture
    return max(round(perimeter / WALL_UV_SCALE) / perimeter, 1 / WALL_UV_SCALE)
