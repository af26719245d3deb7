"""Tests for marching squares triangulation."""

import pytest
import numpy as np
from py_cavegen.core.grid import TileGrid
from py_cavegen.core.triangulation import (
    CONFIGURATION_TABLE,
    POINT_OFFSETS,
    MeshData,
    VertexLookup,
    WallGrid,
    compute_configuration,
    intersects_triangle,
    triangulate,
)

SAMPLES = (0.1, 0.3, 0.7, 0.9)


def square_grid(configuration):
    """2x2 wall grid whose single square has the given configuration."""
    walls = np.zeros((2, 2), dtype=np.uint8)
    walls[0, 0] = configuration & 1
    walls[1, 0] = (configuration >> 1) & 1
    walls[1, 1] = (configuration >> 2) & 1
    walls[0, 1] = (configuration >> 3) & 1
    return WallGrid(walls)


def in_triangle(p, a, b, c):
    def cross(o, u, v):
        return (u[0] - o[0]) * (v[1] - o[1]) - (u[1] - o[1]) * (v[0] - o[0])

    d1, d2, d3 = cross(a, b, p), cross(b, c, p), cross(c, a, p)
    has_negative = d1 < 0 or d2 < 0 or d3 < 0
    has_positive = d1 > 0 or d2 > 0 or d3 > 0
    return not (has_negative and has_positive)


class TestConfigurations:
    """Test the marching squares tables."""

    def test_compute_configuration(self):
        assert compute_configuration(0, 0, 0, 0) == 0
        assert compute_configuration(1, 0, 0, 0) == 1
        assert compute_configuration(0, 1, 0, 1) == 10
        assert compute_configuration(1, 1, 1, 1) == 15

    def test_table_shape(self):
        """Test that every configuration has 0 or 3 to 6 points."""
        assert len(CONFIGURATION_TABLE) == 16
        for points in CONFIGURATION_TABLE[1:]:
            assert 3 <= len(points) <= 6
            assert len(set(points)) == len(points)

    def test_corners_match_walls(self):
        """Test that a corner point appears exactly when that corner is a wall."""
        corner_points = {1: 6, 2: 4, 4: 2, 8: 0}
        for configuration, points in enumerate(CONFIGURATION_TABLE):
            for bit, point in corner_points.items():
                assert (point in points) == bool(configuration & bit)

    def test_wall_grid_configurations(self):
        grid = WallGrid(np.array([[1, 0], [0, 1]]))
        # bl = (0,0) wall, tr = (1,1) wall
        np.testing.assert_array_equal(grid.configurations(), [[5]])


class TestIntersectsTriangle:
    """Test point-in-wall queries."""

    def test_empty_and_full(self):
        assert not intersects_triangle(0.5, 0.5, 0)
        assert intersects_triangle(0.5, 0.5, 15)

    def test_single_corner(self):
        assert intersects_triangle(0.1, 0.1, 1)
        assert not intersects_triangle(0.9, 0.9, 1)
        assert intersects_triangle(0.9, 0.1, 2)
        assert intersects_triangle(0.9, 0.9, 4)
        assert intersects_triangle(0.1, 0.9, 8)

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            intersects_triangle(0.5, 0.5, 16)

    @pytest.mark.parametrize("configuration", range(16))
    def test_agrees_with_triangulation(self, configuration):
        """Test that the query matches the triangles built for the square."""
        points = [POINT_OFFSETS[p] for p in CONFIGURATION_TABLE[configuration]]
        fan = [(points[0], points[i + 1], points[i + 2]) for i in range(len(points) - 2)]
        for x in SAMPLES:
            for y in SAMPLES:
                inside = any(in_triangle((x, y), *triangle) for triangle in fan)
                assert intersects_triangle(x, y, configuration) == inside


class TestTriangulate:
    """Test full grid triangulation."""

    def test_no_walls(self):
        """Test that configuration 0 gives no geometry."""
        mesh = triangulate(square_grid(0))
        assert mesh.num_vertices == 0
        assert mesh.num_triangles == 0

    def test_full_square(self):
        """Test that configuration 15 gives the two triangles of the square."""
        mesh = triangulate(square_grid(15))
        assert mesh.num_vertices == 4
        assert mesh.num_triangles == 2

    def test_saddles_give_four_triangles(self):
        assert triangulate(square_grid(5)).num_triangles == 4
        assert triangulate(square_grid(10)).num_triangles == 4

    @pytest.mark.parametrize("configuration", range(16))
    def test_triangles_per_square(self, configuration):
        """Test that a square with k points gives k - 2 triangles."""
        mesh = triangulate(square_grid(configuration))
        k = len(CONFIGURATION_TABLE[configuration])
        assert mesh.num_triangles == max(0, k - 2)
        assert mesh.num_vertices == k
        mesh.validate()

    def test_single_corner_positions(self):
        mesh = triangulate(square_grid(1))
        expected = {(0.5, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.5)}
        assert {tuple(v) for v in mesh.vertices} == expected

    def test_vertices_are_shared(self):
        """Test that a 3x3 block of walls has one vertex per grid point."""
        mesh = triangulate(WallGrid(np.ones((3, 3), dtype=np.uint8)))
        assert mesh.num_vertices == 9
        assert mesh.num_triangles == 8
        assert len({tuple(v) for v in mesh.vertices}) == 9

    def test_no_duplicate_vertices_on_random_grid(self):
        """Test deduplication on an irregular grid."""
        walls = np.random.default_rng(3).integers(0, 2, size=(20, 15)).astype(np.uint8)
        mesh = triangulate(WallGrid(walls))
        mesh.validate()
        assert len({tuple(v) for v in mesh.vertices}) == mesh.num_vertices

    def test_position_and_scale(self):
        grid = WallGrid(np.ones((2, 2), dtype=np.uint8), position=(10.0, 0.0, 5.0), scale=2)
        mesh = triangulate(grid)
        np.testing.assert_array_equal(np.sort(np.unique(mesh.vertices[:, 0])), [10.0, 12.0])
        np.testing.assert_array_equal(np.sort(np.unique(mesh.vertices[:, 2])), [5.0, 7.0])
        assert np.all(mesh.vertices[:, 1] == 0.0)

    def test_accepts_tile_grid(self):
        grid = TileGrid.from_ascii(
            """
            ##
            ##
            """
        )
        assert triangulate(grid).num_triangles == 2


class TestWallGrid:
    """Test the read-only wall grid."""

    def test_invert(self):
        grid = WallGrid(np.array([[1, 0], [0, 0]]), position=(1.0, 2.0, 3.0), scale=4)
        inverted = grid.invert()
        np.testing.assert_array_equal(inverted.walls, [[0, 1], [1, 1]])
        assert inverted.position == grid.position
        assert inverted.scale == 4
        assert grid[0, 0] == 1

    def test_read_only(self):
        grid = WallGrid(np.zeros((2, 2)))
        with pytest.raises(ValueError):
            grid.walls[0, 0] = 1


class TestVertexLookup:
    """Test the two row vertex cache."""

    def test_left_lookup(self):
        lookup = VertexLookup(4)
        lookup.cache(7, 2, 0)
        assert lookup.get(0, 1) == 7
        assert lookup.get(0, 0) is None

    def test_below_lookup_after_row(self):
        lookup = VertexLookup(4)
        lookup.cache(3, 1, 2)
        lookup.finalize_row()
        assert lookup.get(5, 2) == 3
        assert lookup.get(1, 2) is None

    def test_rows_are_cleared(self):
        lookup = VertexLookup(2)
        lookup.cache(3, 0, 0)
        lookup.finalize_row()
        lookup.finalize_row()
        assert lookup.get(6, 0) is None


class TestMeshData:
    """Test mesh validation and copies."""

    def test_validate_rejects_bad_index(self):
        mesh = MeshData(np.zeros((2, 3)), np.array([0, 1, 2]))
        with pytest.raises(ValueError):
            mesh.validate()

    def test_validate_rejects_partial_triangle(self):
        mesh = MeshData(np.zeros((3, 3)), np.array([0, 1]))
        with pytest.raises(ValueError):
            mesh.validate()

    def test_copy_is_deep(self):
        mesh = MeshData(np.zeros((3, 3)), np.array([0, 1, 2]), np.zeros((3, 2)))
        clone = mesh.copy()
        clone.vertices[0, 0] = 5.0
        clone.uv[0, 0] = 1.0
        assert mesh.vertices[0, 0] == 0.0
        assert mesh.uv[0, 0] == 0.0
