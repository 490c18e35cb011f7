"""Waveform preview for the Velocity Bender.

The renderer turns the model's sampled curve into drawing primitives: one
polyline point per pixel column, a beat grid and a border. Any drawing
backend can consume the resulting frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from motorik_surface.velocity_bender import VelocityBenderModel

LOGGER = logging.getLogger(__name__)

# Line width per grid level
GRID_WIDTHS = {
    'beat': 0.5,
    'eighth': 0.4,
    'sixteenth': 0.3,
    'centre': 0.5,
}


@dataclass(frozen=True)
class GridLine:
    """Straight reference line; ``level`` selects its weight."""

    x1: float
    y1: float
    x2: float
    y2: float
    level: str

    @property
    def width(self) -> float:
        return GRID_WIDTHS[self.level]


@dataclass(frozen=True)
class WaveformFrame:
    """Everything needed to paint one preview."""

    width: int
    height: int
    values: np.ndarray
    points: np.ndarray
    grid: Tuple[GridLine, ...]

    @property
    def border(self) -> Tuple[float, float, float, float]:
        return (0.0, 0.0, float(self.width), float(self.height))


def grid_lines(width: float, height: float) -> Tuple[GridLine, ...]:
    """One bar: quarter-beat lines, odd eighths, odd sixteenths and the centre line."""
    lines = [GridLine(width / 4 * i, 0.0, width / 4 * i, height, 'beat') for i in range(1, 4)]
    lines += [GridLine(width / 8 * i, 0.0, width / 8 * i, height, 'eighth') for i in range(1, 8, 2)]
    lines += [GridLine(width / 16 * i, 0.0, width / 16 * i, height, 'sixteenth') for i in range(1, 16, 2)]
    lines.append(GridLine(0.0, height * 0.5, width, height * 0.5, 'centre'))
    return tuple(lines)


def curve_points(values: np.ndarray, height: float) -> np.ndarray:
    """Map display values in [0, 1] to (x, y) pixels, x = sample index, y down."""
    values = np.asarray(values, dtype=float)
    xs = np.arange(len(values), dtype=float)
    ys = height * (1.0 - values)
    return np.column_stack((xs, ys))


class WaveformRenderer:
    """Draws the Velocity Bender curve; its last frame is its only state."""

    def __init__(self, model: VelocityBenderModel, width: int = 550, height: int = 120) -> None:
        self.model = model
        self.width = width
        self.height = height
        self.frame: Optional[WaveformFrame] = None
        self._listeners: List[Callable[[WaveformFrame], None]] = []

    def add_listener(self, listener: Callable[[WaveformFrame], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[WaveformFrame], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def sample(self, num_points: int) -> np.ndarray:
        """Curve values rescaled to [0, 1] at ``num_points`` phases over [0, 1]."""
        return self.model.waveform_for_display(num_points)

    def resize(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))

    def render(self, width: int, height: int) -> WaveformFrame:
        self.resize(width, height)
        return self.draw()

    def draw(self) -> WaveformFrame:
        values = self.sample(self.width)
        frame = WaveformFrame(
            width=self.width,
            height=self.height,
            values=values,
            points=curve_points(values, self.height),
            grid=grid_lines(self.width, self.height),
        )
        self.frame = frame

        for listener in list(self._listeners):
            listener(frame)
        return frame


__all__ = ['GRID_WIDTHS', 'GridLine', 'WaveformFrame', 'WaveformRenderer', 'curve_points', 'grid_lines']
