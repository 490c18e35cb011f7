"""Tests for the Velocity Bender waveform preview."""

import numpy as np
import pytest

from motorik_surface.velocity_bender import VelocityBenderModel
from motorik_surface.waveform import GRID_WIDTHS, WaveformRenderer, curve_points, grid_lines


class TestGrid:
    """Test beat grid geometry."""

    def test_line_counts(self):
        lines = grid_lines(160, 100)
        levels = [line.level for line in lines]

        assert levels.count('beat') == 3
        assert levels.count('eighth') == 4
        assert levels.count('sixteenth') == 8
        assert levels.count('centre') == 1

    def test_positions(self):
        lines = grid_lines(160, 100)

        assert [line.x1 for line in lines if line.level == 'beat'] == [40, 80, 120]
        assert [line.x1 for line in lines if line.level == 'eighth'] == [20, 60, 100, 140]
        centre = [line for line in lines if line.level == 'centre'][0]
        assert (centre.y1, centre.x2) == (50, 160)

    def test_widths(self):
        for line in grid_lines(160, 100):
            assert line.width == GRID_WIDTHS[line.level]


class TestCurvePoints:
    """Test mapping of display values to pixels."""

    def test_one_point_per_value(self):
        points = curve_points(np.array([0.0, 0.5, 1.0]), 100)

        np.testing.assert_allclose(points, [[0, 100], [1, 50], [2, 0]])


class TestWaveformRenderer:
    """Test frame production."""

    def test_draw_produces_frame_per_pixel_column(self):
        renderer = WaveformRenderer(VelocityBenderModel(), width=200, height=80)

        frame = renderer.draw()

        assert renderer.frame is frame
        assert len(frame.values) == 200
        assert frame.points.shape == (200, 2)
        assert frame.border == (0.0, 0.0, 200.0, 80.0)

    def test_flat_curve_draws_centre_line(self):
        frame = WaveformRenderer(VelocityBenderModel(), width=50, height=80).draw()

        np.testing.assert_allclose(frame.points[:, 1], 40)

    def test_bent_curve_tracks_model(self):
        model = VelocityBenderModel([0.8, -0.2, 0.4, 0.0])
        renderer = WaveformRenderer(model, width=100, height=60)

        frame = renderer.draw()

        np.testing.assert_allclose(frame.values, model.waveform_for_display(100))

    def test_render_resizes(self):
        renderer = WaveformRenderer(VelocityBenderModel())

        frame = renderer.render(300, 90)

        assert (frame.width, frame.height) == (300, 90)
        assert len(frame.values) == 300

    def test_resize_keeps_positive_size(self):
        renderer = WaveformRenderer(VelocityBenderModel())

        renderer.resize(0, -5)

        assert (renderer.width, renderer.height) == (1, 1)

    def test_listeners_receive_frames(self):
        renderer = WaveformRenderer(VelocityBenderModel(), width=10)
        frames = []
        renderer.add_listener(frames.append)

        renderer.draw()
        renderer.remove_listener(frames.append)
        renderer.draw()

        assert len(frames) == 1

    def test_sample_count(self):
        renderer = WaveformRenderer(VelocityBenderModel())

        assert len(renderer.sample(550)) == 550
        assert renderer.sample(550)[0] == pytest.approx(0.5)
