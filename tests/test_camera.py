"""Unit tests for the camera and the parallel ray-cast pass.

Tests cover:
- Direction normalisation (true modulo into [0, 360))
- Parameter validation
- Central-column hit distance in a walled room
- Range cut-off and rays leaving the grid
- Trace ordering along a ray and trace collection across rays
- Axis-parallel cameras and state guarding during a pass
"""

import math

import numpy as np
import pytest

ROOM_9X9 = [
    "#########",
    "#       #",
    "#       #",
    "#       #",
    "#   c   #",
    "#       #",
    "#       #",
    "#       #",
    "#########",
]


class TestDirection:
    """Tests for the direction property."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0.0, 0.0),
            (90.0, 90.0),
            (360.0, 0.0),
            (450.0, 90.0),
            (-90.0, 270.0),
            (-360.0, 0.0),
            (-725.0, 355.0),
        ],
    )
    def test_direction_is_normalized(self, room_map, value, expected):
        """Test that any direction is stored modulo 360 in [0, 360)."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)
        camera.direction = value

        assert abs(camera.direction - expected) < 1e-9

    def test_tiny_negative_direction_stays_below_360(self, room_map):
        """Test that a direction which rounds up to 360 wraps to 0."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=-1e-20)

        assert 0.0 <= camera.direction < 360.0

    def test_constructor_direction_is_normalized(self, room_map):
        """Test that the constructor applies the same normalisation."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=-30.0)

        assert camera.direction == 330.0


class TestCameraSetup:
    """Tests for construction defaults and validation."""

    def test_defaults(self, room_map):
        """Test the default range and focal length."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        assert camera.range == 25
        assert camera.focal_length == 0.8
        assert camera.direction == 0.0
        assert camera.world is room_map
        assert camera.location == room_map.start_location

    @pytest.mark.parametrize("cast_range", [0, -1.0])
    def test_non_positive_range_raises(self, room_map, cast_range):
        """Test that the range must be positive."""
        from src.raycaster.camera.camera import Camera

        with pytest.raises(ValueError):
            Camera(room_map.start_location, room_map, range=cast_range)

    @pytest.mark.parametrize("focal_length", [0.0, -0.8])
    def test_non_positive_focal_length_raises(self, room_map, focal_length):
        """Test that the focal length must be positive."""
        from src.raycaster.camera.camera import Camera

        with pytest.raises(ValueError):
            Camera(room_map.start_location, room_map, focal_length=focal_length)

    @pytest.mark.parametrize("width", [0, -4])
    def test_non_positive_render_width_raises(self, room_map, width):
        """Test that snapshot needs at least one column."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        with pytest.raises(ValueError):
            camera.snapshot(width)

    def test_max_steps_covers_range(self):
        """Test that the step bound exceeds the grid lines a ray can cross."""
        from src.raycaster.camera.camera import max_steps_for_range

        for cast_range in (1, 5, 25, 100):
            assert max_steps_for_range(cast_range) > cast_range * math.sqrt(2.0) + 2


class TestSnapshot:
    """Tests for the cast pass in a walled 5x5 room."""

    def test_central_column_hits_wall_at_two(self, room_map):
        """Test that the straight-ahead ray hits the east wall 2 units away."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=0.0, focal_length=0.8)

        result = camera.snapshot(10)
        center = result.columns[5]

        assert abs(center.distance - 2.0) < 1e-9
        assert center.surface.height == 1.0
        assert abs(center.location.x - 4.0) < 1e-9
        assert abs(center.location.y - 2.0) < 1e-9

    @pytest.mark.parametrize(
        "direction,expected_distance,expected_location",
        [
            (90.0, 2.0, (2.0, 4.0)),
            (180.0, 1.0, (1.0, 2.0)),
            (270.0, 1.0, (2.0, 1.0)),
        ],
    )
    def test_central_column_in_each_direction(
        self, room_map, direction, expected_distance, expected_location
    ):
        """Test the straight-ahead hit for the other three axis directions.

        The camera sits on the corner (2, 2) of its cell, so walls to the
        west and north are one unit away and walls to the east and south two.
        """
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=direction)

        center = camera.snapshot(10).columns[5]

        assert abs(center.distance - expected_distance) < 1e-9
        assert center.surface.height == 1.0
        assert abs(center.location.x - expected_location[0]) < 1e-9
        assert abs(center.location.y - expected_location[1]) < 1e-9

    def test_every_column_hits_a_wall(self, room_map):
        """Test that no ray escapes a closed room."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=37.0)

        result = camera.snapshot(64)

        assert len(result.columns) == 64
        assert all(sample.surface.height == 1.0 for sample in result.columns)
        assert all(0.0 < sample.distance <= camera.range for sample in result.columns)

    def test_side_columns_are_farther_than_center(self):
        """Test that off-axis rays travel farther to the same flat wall."""
        from src.raycaster.camera.camera import Camera
        from src.raycaster.world.grid_map import Map

        world = Map(ROOM_9X9)
        camera = Camera(world.start_location, world, direction=0.0)

        distances = camera.snapshot(10).terminal_distances()

        assert distances[0] > distances[5]
        assert distances[9] > distances[5]

    def test_column_angles_span_field_of_view(self):
        """Test that the first column looks atan2(-0.5, f) off the view axis."""
        from src.raycaster.camera.camera import Camera
        from src.raycaster.world.grid_map import Map

        world = Map(ROOM_9X9)
        camera = Camera(world.start_location, world, direction=0.0, focal_length=0.8)

        first = camera.snapshot(10).columns[0]

        # Camera at (4, 4) facing +x; the east wall face is at x = 8
        expected_y = 4.0 + 4.0 * (-0.5 / 0.8)
        assert abs(first.location.x - 8.0) < 1e-9
        assert abs(first.location.y - expected_y) < 1e-9
        assert abs(first.distance - math.hypot(4.0, 4.0 * 0.5 / 0.8)) < 1e-9

    def test_wider_focal_length_narrows_view(self, room_map):
        """Test that a longer focal length brings edge rays closer to the axis."""
        from src.raycaster.camera.camera import Camera

        wide = Camera(room_map.start_location, room_map, focal_length=0.4)
        narrow = Camera(room_map.start_location, room_map, focal_length=1.6)

        wide_edge = wide.snapshot(10).columns[0]
        narrow_edge = narrow.snapshot(10).columns[0]

        assert abs(narrow_edge.location.y - 2.0) < abs(wide_edge.location.y - 2.0)

    def test_terminal_heights(self, room_map):
        """Test the per-column height helper."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        heights = camera.snapshot(8).terminal_heights()

        assert heights.shape == (8,)
        assert np.all(heights == 1.0)


class TestRange:
    """Tests for the range cut-off."""

    def test_wall_beyond_range_is_not_hit(self, room_map):
        """Test that a wall farther than range leaves a no-height terminal."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, range=1.5)

        center = camera.snapshot(10).columns[5]

        assert center.surface.has_no_height
        assert abs(center.distance - 1.0) < 1e-9

    def test_range_shorter_than_first_step(self, room_map):
        """Test that the origin is terminal when even the first step is out of range."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, range=0.5)

        center = camera.snapshot(10).columns[5]

        assert center.distance == 0.0
        assert center.surface.has_no_height
        assert center.location == room_map.start_location

    def test_wall_exactly_at_range_is_hit(self, room_map):
        """Test that a hit at distance == range still counts."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, range=2)

        center = camera.snapshot(10).columns[5]

        assert center.surface.height == 1.0
        assert abs(center.distance - 2.0) < 1e-9

    def test_rays_leaving_the_grid_terminate(self, open_map):
        """Test that rays through open space stop once range is exceeded."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(open_map.start_location, open_map, range=10, direction=20.0)

        result = camera.snapshot(32, include_trace=True)

        for sample in result.columns:
            assert sample.surface.has_no_height
            assert sample.distance <= camera.range
            # The next crossing (at most sqrt(2) further) would exceed range
            assert sample.distance > camera.range - math.sqrt(2.0)

    def test_no_hit_is_recorded_beyond_range(self, room_map):
        """Test that no sample in any trace lies beyond range."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, range=1.7, direction=45.0)

        result = camera.snapshot(32, include_trace=True)

        assert all(sample.distance <= 1.7 for sample in result.all_sample_points)


class TestTrace:
    """Tests for per-ray traces and diagnostics."""

    def test_trace_not_included_by_default(self, room_map):
        """Test that traces are only collected on request."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        result = camera.snapshot(10)

        assert result.rays is None
        assert result.all_sample_points == []

    def test_trace_starts_at_camera_and_ends_at_terminal(self, room_map):
        """Test that each ray runs from the camera position to its terminal sample."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=12.0)

        result = camera.snapshot(16, include_trace=True)

        assert len(result.rays) == 16
        for column, ray in enumerate(result.rays):
            assert ray.column == column
            assert ray[0].location == room_map.start_location
            assert ray[0].distance == 0.0
            assert ray.terminal == result.columns[column]

    def test_distance_is_non_decreasing_along_each_ray(self, room_map):
        """Test that accumulated distance never goes backwards."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=123.0)

        result = camera.snapshot(40, include_trace=True)

        for ray in result.rays:
            distances = [sample.distance for sample in ray]
            assert distances == sorted(distances)

    def test_only_terminal_sample_has_height(self, room_map):
        """Test that rays pass through floor cells and stop at the first wall."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=200.0)

        result = camera.snapshot(24, include_trace=True)

        for ray in result.rays:
            samples = list(ray)
            assert all(sample.surface.has_no_height for sample in samples[:-1])

    def test_step_lengths_match_distance_increments(self, room_map):
        """Test that each step adds sqrt(length) to the accumulated distance."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=33.0)

        result = camera.snapshot(12, include_trace=True)

        for ray in result.rays:
            for previous, current in zip(list(ray)[:-1], list(ray)[1:]):
                increment = current.distance - previous.distance
                assert abs(increment - math.sqrt(current.length)) < 1e-9

    def test_all_sample_points_is_union_of_rays(self, room_map):
        """Test that the diagnostic collection holds every sample of every ray."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        result = camera.snapshot(20, include_trace=True)

        expected = sorted(
            (s.location.x, s.location.y, s.distance) for ray in result.rays for s in ray
        )
        actual = sorted(
            (s.location.x, s.location.y, s.distance) for s in result.all_sample_points
        )
        assert actual == expected

    def test_debug_string_marks_traced_cells(self, room_map):
        """Test that a traced snapshot can be drawn onto the map."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        result = camera.snapshot(10, include_trace=True)
        lines = room_map.to_debug_string(result.all_sample_points).split("\n")

        # The camera cell and the cell it looks across are both visited
        assert lines[2][2] == "."
        assert lines[2][3] == "."

    @pytest.mark.parametrize("direction", [180.0, 225.0, 270.0])
    def test_debug_string_ignores_samples_outside_the_grid(self, open_map, direction):
        """Test that rays leaving to the north or west only mark cells they crossed."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(open_map.start_location, open_map, range=10, direction=direction)

        result = camera.snapshot(16, include_trace=True)
        lines = open_map.to_debug_string(result.all_sample_points).split("\n")

        expected = {
            (math.floor(s.location.x), math.floor(s.location.y))
            for s in result.all_sample_points
        }
        expected = {(x, y) for x, y in expected if open_map.contains(x, y)}
        marked = {
            (x, y)
            for y, line in enumerate(lines)
            for x, glyph in enumerate(line)
            if glyph == "."
        }
        assert marked == expected


class TestCameraState:
    """Tests for position updates and render-pass guarding."""

    def test_moving_between_passes(self, room_map):
        """Test that a new position takes effect on the next pass."""
        from src.raycaster.camera.camera import Camera
        from src.raycaster.world.grid_map import Location2D

        camera = Camera(room_map.start_location, room_map)
        camera.location = Location2D(x=3.0, y=2.0)

        center = camera.snapshot(10).columns[5]

        assert abs(center.distance - 1.0) < 1e-9

    def test_fractional_position(self, room_map):
        """Test a camera that is not on a grid corner."""
        from src.raycaster.camera.camera import Camera
        from src.raycaster.world.grid_map import Location2D

        camera = Camera(Location2D(x=1.25, y=2.5), room_map)

        center = camera.snapshot(10).columns[5]

        assert abs(center.distance - 2.75) < 1e-9
        assert abs(center.location.y - 2.5) < 1e-9

    def test_mutation_during_pass_is_rejected(self, room_map):
        """Test that position and direction are locked while rendering."""
        from src.raycaster.camera.camera import Camera
        from src.raycaster.world.grid_map import Location2D

        camera = Camera(room_map.start_location, room_map)
        camera._rendering = True

        with pytest.raises(RuntimeError):
            camera.direction = 45.0
        with pytest.raises(RuntimeError):
            camera.location = Location2D(x=1.0, y=1.0)

        camera._rendering = False
        camera.direction = 45.0
        assert camera.direction == 45.0

    def test_snapshot_holds_guard_while_casting(self, room_map, monkeypatch):
        """Test that moving the camera from inside a pass is rejected."""
        from src.raycaster.camera import camera as camera_module
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map, direction=10.0)
        original_cast = camera_module._cast_columns
        attempts = []

        def cast_and_turn(*args):
            try:
                camera.direction = 90.0
            except RuntimeError:
                attempts.append("rejected")
            original_cast(*args)

        monkeypatch.setattr(camera_module, "_cast_columns", cast_and_turn)

        result = camera.snapshot(10)

        assert attempts == ["rejected"]
        assert camera.direction == 10.0
        assert len(result.columns) == 10
        # Released after the pass
        camera.direction = 90.0
        assert camera.direction == 90.0

    def test_failed_pass_releases_guard(self, room_map, monkeypatch):
        """Test that an error inside the cast still unlocks the camera."""
        from src.raycaster.camera import camera as camera_module
        from src.raycaster.camera.camera import Camera

        def failing_cast(*args):
            raise RuntimeError("kernel failed")

        monkeypatch.setattr(camera_module, "_cast_columns", failing_cast)
        camera = Camera(room_map.start_location, room_map)

        with pytest.raises(RuntimeError, match="kernel failed"):
            camera.snapshot(10)

        assert camera._rendering is False
        camera.direction = 45.0
        assert camera.direction == 45.0

    def test_buffers_reused_for_same_width(self, room_map):
        """Test that trace buffers are only reallocated when they grow."""
        from src.raycaster.camera.camera import Camera

        camera = Camera(room_map.start_location, room_map)

        camera.snapshot(16)
        buffers = camera._buffers
        camera.snapshot(8)
        assert camera._buffers is buffers

        camera.snapshot(32)
        assert camera._buffers is not buffers
