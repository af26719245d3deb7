#!/usr/bin/env python3
"""
Simple demo script showing cave generation and meshing.
"""

import numpy as np
from py_cavegen.config import MapParameters
from py_cavegen.core import CaveType, MapGenerator, extract_outlines, find_regions, generate_cave, Tile
from py_cavegen.utils import configure_logging


def main():
    """Demonstrate map generation and meshing."""
    configure_logging(log_format="console")

    print("Py-CaveGen Demo")
    print("=" * 40)

    for tunneler in ["direct", "low_variance", "high_variance"]:
        print(f"\n{tunneler.upper()} Tunneler:")
        print("-" * 30)

        params = MapParameters(length=60, width=40, seed=1234, tunneler=tunneler, border_size=1)
        grid = MapGenerator(params).generate_map()

        floors = grid.count(Tile.FLOOR)
        floor_pct = floors / (grid.length * grid.width) * 100
        print(f"  Size: {grid.length} x {grid.width}")
        print(f"  Floor tiles: {floors} ({floor_pct:.1f}%)")
        print(f"  Floor regions: {len(find_regions(grid, Tile.FLOOR))}")
        print(f"  Wall regions: {len(find_regions(grid, Tile.WALL))}")

        if tunneler == "direct":
            print("  Map:")
            for line in grid.to_ascii().splitlines():
                print(f"    {line}")

    # Meshing example
    print("\n\nMeshing Example:")
    print("-" * 30)
    params = MapParameters(length=320, width=180, seed=99, border_size=2)
    grid = MapGenerator(params).generate_map()

    for cave_type in CaveType:
        caves = generate_cave(grid, cave_type, floor_height=0.0, ceiling_height=3.0)
        vertices = sum(mesh.num_vertices for cave in caves for mesh in cave.meshes)
        triangles = sum(mesh.num_triangles for cave in caves for mesh in cave.meshes)
        print(f"\n  {cave_type.value}: {len(caves)} chunks, {vertices} vertices, {triangles} triangles")

        for cave in caves:
            outlines = extract_outlines(cave.ceiling) if cave_type == CaveType.ISOMETRIC else []
            heights = np.unique(cave.walls.vertices[:, 1])
            print(
                f"    chunk {cave.index}: floor={cave.floor.num_triangles} "
                f"ceiling={cave.ceiling.num_triangles} walls={cave.walls.num_triangles} "
                f"outlines={len(outlines)} wall heights={heights.tolist()}"
            )


if __name__ == "__main__":
    main()
