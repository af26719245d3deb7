"""Tests for tile grids, coordinates and chunking."""

import pytest
import numpy as np
from py_cavegen.core.grid import Boundary, Coord, Tile, TileGrid, subdivide


class TestCoord:
    """Test coordinate helpers."""

    def test_neighbours(self):
        """Test that neighbour properties step one tile."""
        c = Coord(3, 4)
        assert c.left == Coord(2, 4)
        assert c.right == Coord(4, 4)
        assert c.up == Coord(3, 5)
        assert c.down == Coord(3, 3)
        assert c.top_left == Coord(2, 5)
        assert c.bottom_right == Coord(4, 3)

    def test_distances(self):
        """Test Euclidean, squared and supremum distances."""
        a, b = Coord(0, 0), Coord(3, 4)
        assert a.squared_distance(b) == 25
        assert a.distance(b) == pytest.approx(5.0)
        assert Coord(2, 3).sup_norm_distance(Coord(5, 105)) == 102

    def test_line_to_self(self):
        """Test that a line to the same point is that point."""
        assert Coord(2, 2).line_to(Coord(2, 2)) == [Coord(2, 2)]

    def test_line_endpoints_and_steps(self):
        """Test that lines include both endpoints and move at most one tile per step."""
        for end in [Coord(7, 3), Coord(-5, 9), Coord(0, -6), Coord(4, 4), Coord(-3, -11)]:
            line = Coord(0, 0).line_to(end)
            assert line[0] == Coord(0, 0)
            assert line[-1] == end
            assert len(line) == max(abs(end.x), abs(end.y)) + 1
            for a, b in zip(line, line[1:]):
                assert a.sup_norm_distance(b) == 1

    def test_horizontal_line(self):
        """Test a purely horizontal line."""
        assert Coord(1, 2).line_to(Coord(4, 2)) == [Coord(1, 2), Coord(2, 2), Coord(3, 2), Coord(4, 2)]


class TestBoundary:
    """Test half-open boundaries."""

    def test_in_bounds(self):
        """Test that the maximum is excluded and the minimum included."""
        boundary = Boundary(10, 5)
        assert boundary.is_in_bounds(Coord(0, 0))
        assert boundary.is_in_bounds(Coord(9, 4))
        assert not boundary.is_in_bounds(Coord(10, 4))
        assert not boundary.is_in_bounds(Coord(-1, 0))

    def test_invalid_boundary(self):
        """Test that min above max is rejected."""
        with pytest.raises(ValueError):
            Boundary(5, 5, x_min=6)


class TestTileGrid:
    """Test TileGrid access and transforms."""

    @pytest.fixture
    def grid(self):
        return TileGrid.from_ascii(
            """
            #####
            #..##
            #...#
            #####
            """
        )

    def test_dimensions(self, grid):
        """Test that ASCII rows run along x and stack along y."""
        assert grid.length == 5
        assert grid.width == 4

    def test_ascii_orientation(self, grid):
        """Test that the first text row is the highest y."""
        assert grid[1, 2] == Tile.FLOOR
        assert grid[3, 2] == Tile.WALL
        assert grid[3, 1] == Tile.FLOOR
        assert grid.to_ascii() == "#####\n#..##\n#...#\n#####"

    def test_invalid_dimensions(self):
        """Test that non-positive dimensions are rejected."""
        with pytest.raises(ValueError):
            TileGrid(0, 5)
        with pytest.raises(ValueError):
            TileGrid(5, -1)

    def test_out_of_bounds_access(self, grid):
        """Test that indexing outside the grid raises IndexError."""
        with pytest.raises(IndexError):
            grid[5, 0]
        with pytest.raises(IndexError):
            grid[-1, 0]
        with pytest.raises(IndexError):
            grid[Coord(0, 4)] = Tile.FLOOR

    def test_set_and_get(self, grid):
        """Test assignment through coordinates."""
        grid[Coord(2, 2)] = Tile.WALL
        assert grid.is_wall(2, 2)

    def test_boundary_and_interior(self, grid):
        """Test classification of boundary tiles."""
        assert grid.is_boundary_tile(0, 2)
        assert grid.is_boundary_tile(2, 3)
        assert not grid.is_boundary_tile(2, 2)
        assert grid.is_interior_tile(2, 2)
        assert not grid.is_boundary_tile(7, 7)

    def test_surrounding_wall_count(self, grid):
        """Test counting walls among the 8 neighbours."""
        assert grid.surrounding_wall_count(1, 1) == 5
        assert grid.surrounding_wall_count(2, 2) == 4
        with pytest.raises(IndexError):
            grid.surrounding_wall_count(0, 0)

    def test_adjacent_tiles(self, grid):
        """Test that adjacent tiles stay within bounds."""
        assert set(grid.adjacent_tiles(0, 0)) == {Coord(1, 0), Coord(0, 1)}
        assert len(list(grid.adjacent_tiles(2, 2))) == 4

    def test_adjacent_to_wall_at_edge(self):
        """Test that positions beyond the grid count as walls."""
        grid = TileGrid(3, 3)
        assert grid.is_adjacent_to_wall(0, 1)
        assert not grid.is_adjacent_to_wall(1, 1)

    def test_invert(self, grid):
        """Test that invert swaps floors and walls."""
        walls = grid.count(Tile.WALL)
        floors = grid.count(Tile.FLOOR)
        grid.invert()
        assert grid.count(Tile.WALL) == floors
        assert grid.count(Tile.FLOOR) == walls

    def test_copy_is_independent(self, grid):
        """Test that copies do not share tiles."""
        clone = grid.copy()
        clone[2, 2] = Tile.WALL
        assert grid[2, 2] == Tile.FLOOR
        assert clone != grid

    def test_copy_from_requires_same_shape(self, grid):
        """Test that copy_from rejects mismatched grids."""
        with pytest.raises(ValueError):
            grid.copy_from(TileGrid(2, 2))
        other = TileGrid(grid.length, grid.width)
        grid.copy_from(other)
        assert grid.count(Tile.WALL) == 0

    def test_from_array_rejects_other_values(self):
        """Test that only 0 and 1 are accepted."""
        with pytest.raises(ValueError):
            TileGrid.from_array(np.array([[0, 2], [1, 0]]))

    def test_to_array_is_copy(self, grid):
        """Test that to_array returns a copy."""
        array = grid.to_array()
        array[:] = 0
        assert grid.count(Tile.WALL) > 0


class TestSubdivide:
    """Test chunking of large grids."""

    def test_single_chunk(self):
        """Test that a small grid gives one chunk equal to itself."""
        grid = TileGrid(20, 10)
        chunks = subdivide(grid, 150)
        assert len(chunks) == 1
        assert chunks[0] == grid
        assert chunks[0].index == Coord(0, 0)

    def test_chunks_overlap_by_one(self):
        """Test chunk sizes, overlap and world positions."""
        tiles = np.random.default_rng(1).integers(0, 2, size=(25, 12)).astype(np.uint8)
        grid = TileGrid.from_array(tiles, square_size=2)
        chunks = subdivide(grid, 10)

        assert len(chunks) == 6
        first = chunks[0]
        assert (first.length, first.width) == (11, 11)
        assert first.position == (0.0, 0.0, 0.0)

        last = chunks[-1]
        assert last.index == Coord(2, 1)
        assert (last.length, last.width) == (5, 2)
        assert last.position == (40.0, 0.0, 20.0)
        np.testing.assert_array_equal(last.tiles, tiles[20:25, 10:12])

        second = chunks[1]
        np.testing.assert_array_equal(first.tiles[:, 10], second.tiles[:, 0])
