"""Velocity Bender preview model for the Motorik surface.

Four weights bend a one-bar velocity curve built from sines at half, quarter,
triplet-quarter and eighth beat divisions. The curve previews what the
rhythm engine applies to note velocities.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence

import numpy as np

from motorik_surface import config
from motorik_surface.controls import (
    PRIORITY_MODEL,
    BooleanControl,
    ContinuousControl,
    Control,
    Subscription,
)

LOGGER = logging.getLogger(__name__)

NUM_BANDS = 4


class VelocityBenderModel:
    """Weighted multi-band sine with soft normalization and tanh saturation."""

    def __init__(self, weights: Optional[Sequence[float]] = None,
                 rng: Optional[np.random.Generator] = None) -> None:
        self.divisions = tuple(config.vb_beat_divisions)
        self.phase_shifts = tuple(config.vb_phase_shifts)
        self.rng = rng if rng is not None else np.random.default_rng()
        self._weights: List[float] = [0.0] * NUM_BANDS
        self.instrument_enabled: List[bool] = [True] * config.num_instruments

        if weights is not None:
            self.set_weights(weights)

    @property
    def weights(self) -> tuple:
        return tuple(self._weights)

    def set_weight(self, index: int, value: float) -> None:
        if not 0 <= index < NUM_BANDS:
            raise IndexError(f'weight index {index} outside 0..{NUM_BANDS - 1}')
        self._weights[index] = max(-1.0, min(1.0, float(value)))

    def set_weights(self, values: Sequence[float]) -> None:
        if len(values) != NUM_BANDS:
            raise ValueError(f'expected {NUM_BANDS} weights, got {len(values)}')
        for index, value in enumerate(values):
            self.set_weight(index, value)

    def set_instrument_enabled(self, index: int, enabled: bool) -> None:
        if 0 <= index < len(self.instrument_enabled):
            self.instrument_enabled[index] = bool(enabled)

    def randomize(self) -> None:
        """Draw every weight uniformly from [-1, 1]."""
        self._weights = [float(w) for w in self.rng.uniform(-1.0, 1.0, size=NUM_BANDS)]

    def reset(self) -> None:
        self._weights = [0.0] * NUM_BANDS

    def is_flat(self) -> bool:
        return all(w == 0.0 for w in self._weights)

    def value_at(self, phase: float) -> float:
        """Curve value in [-1, 1] at ``phase`` in [0, 1)."""
        value = 0.0
        total_weight = 0.0

        for division, shift, weight in zip(self.divisions, self.phase_shifts, self._weights):
            frequency = 1.0 / division
            sine = math.sin(2.0 * math.pi * frequency * (phase + shift))

            # Raising a knob bends the curve toward its start
            inverted = -weight
            value += sine * inverted
            total_weight += abs(inverted)

        if total_weight > config.vb_normalize_threshold:
            value /= total_weight + 1.0

        return math.tanh(value * config.vb_saturation)

    def values_at(self, phases) -> np.ndarray:
        """Vectorized :meth:`value_at`."""
        phases = np.asarray(phases, dtype=float)
        value = np.zeros_like(phases)
        total_weight = 0.0

        for division, shift, weight in zip(self.divisions, self.phase_shifts, self._weights):
            inverted = -weight
            value += np.sin(2.0 * np.pi * (1.0 / division) * (phases + shift)) * inverted
            total_weight += abs(inverted)

        if total_weight > config.vb_normalize_threshold:
            value /= total_weight + 1.0

        return np.tanh(value * config.vb_saturation)

    def waveform_for_display(self, num_points: int = None) -> np.ndarray:
        """Sample the curve at evenly spaced phases over [0, 1], rescaled to [0, 1]."""
        if num_points is None:
            num_points = config.vb_display_points
        if num_points <= 0:
            return np.zeros(0)
        if num_points == 1:
            phases = np.zeros(1)
        else:
            phases = np.linspace(0.0, 1.0, num_points)
        return (self.values_at(phases) + 1.0) * 0.5


class BenderAction:
    """Single button that randomizes a flat curve and resets a bent one."""

    def __init__(self, model: VelocityBenderModel, knobs: Sequence[ContinuousControl],
                 on_redraw: Optional[Callable[[], None]] = None) -> None:
        self.model = model
        self.knobs = list(knobs)
        self.on_redraw = on_redraw

    @property
    def label(self) -> str:
        """Name of the action the next trigger will take."""
        return config.vb_label_random if self.model.is_flat() else config.vb_label_reset

    def trigger(self) -> str:
        if self.model.is_flat():
            self.model.randomize()
            action = 'randomize'
        else:
            self.model.reset()
            action = 'reset'

        for knob, weight in zip(self.knobs, self.model.weights):
            knob.sync(weight)

        if self.on_redraw is not None:
            self.on_redraw()

        LOGGER.info('Velocity Bender %s: %s', action, ', '.join(f'{w:+.2f}' for w in self.model.weights))
        return action


class VelocityBender:
    """Keeps the model in step with its four weight knobs and six row toggles."""

    def __init__(
        self,
        model: VelocityBenderModel,
        knobs: Sequence[ContinuousControl],
        toggles: Sequence[Optional[BooleanControl]] = (),
        on_redraw: Optional[Callable[[], None]] = None,
    ) -> None:
        if len(knobs) != NUM_BANDS:
            raise ValueError(f'expected {NUM_BANDS} weight knobs, got {len(knobs)}')

        self.model = model
        self.knobs = list(knobs)
        self.toggles = list(toggles)
        self.on_redraw = on_redraw
        self.action = BenderAction(model, self.knobs, self.redraw)
        self._subscriptions: List[Subscription] = []

    def attach(self) -> None:
        for index, knob in enumerate(self.knobs):
            self.model.set_weight(index, knob.value)
            self._subscriptions.append(knob.subscribe(self._weight_listener(index), PRIORITY_MODEL))

        for index, toggle in enumerate(self.toggles):
            if toggle is None:
                continue
            self.model.set_instrument_enabled(index, toggle.value)
            self._subscriptions.append(toggle.subscribe(self._toggle_listener(index), PRIORITY_MODEL))

        self.redraw()

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    def _weight_listener(self, index: int):
        def on_change(control: Control, value: float) -> None:
            self.model.set_weight(index, value)
            self.redraw()
        return on_change

    def _toggle_listener(self, index: int):
        def on_change(control: Control, value: bool) -> None:
            self.model.set_instrument_enabled(index, value)
        return on_change

    def redraw(self) -> None:
        if self.on_redraw is not None:
            self.on_redraw()


__all__ = ['BenderAction', 'NUM_BANDS', 'VelocityBender', 'VelocityBenderModel']
