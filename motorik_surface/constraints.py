"""Cross-control constraints for the Motorik surface.

Each policy subscribes to its driving control at constraint priority, so it
finishes re-evaluating dependents before any engine or display listener of
the same control runs.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from motorik_surface import config
from motorik_surface.controls import (
    PRIORITY_CONSTRAINT,
    BooleanControl,
    Control,
    ContinuousControl,
    DiscreteControl,
    Subscription,
    deferred_redraw,
)
from motorik_surface.mix_matrix import RoutingMatrix

LOGGER = logging.getLogger(__name__)


def range_options(upper: int, start: int) -> List[str]:
    """Integer labels ``start..upper`` inclusive."""
    return [str(i) for i in range(start, upper + 1)]


def _parse_int(label: str) -> Optional[int]:
    try:
        return int(str(label).strip())
    except ValueError:
        return None


def remap_selection(old_label: str, new_options: Sequence[str]) -> int:
    """Pick the index in ``new_options`` that best keeps ``old_label``.

    The same label keeps its slot. Otherwise a numeric label moves to the
    closest entry not above ``min(old, new maximum)``. Anything else,
    including non-numeric labels, lands on the last option.
    """
    labels = list(new_options)
    if old_label in labels:
        return labels.index(old_label)

    last = len(labels) - 1
    old_number = _parse_int(old_label)
    if old_number is None:
        return last

    numbered = [(number, i) for i, number in enumerate(_parse_int(label) for label in labels) if number is not None]
    if not numbered:
        return last

    ceiling = min(old_number, max(number for number, _ in numbered))
    candidates = [(number, i) for number, i in numbered if number <= ceiling]
    if not candidates:
        return last
    return max(candidates)[1]


class OptionDependency:
    """Steps drives the option lists of pulses (0..N) and start-on (1..N)."""

    low_start = 0
    high_start = 1

    def __init__(self, driver: DiscreteControl, low: DiscreteControl, high: DiscreteControl) -> None:
        self.driver = driver
        self.low = low
        self.high = high
        self._subscription: Optional[Subscription] = None

    def attach(self) -> None:
        """Subscribe to the driver and size the dependents from its starting value."""
        if self._subscription is None:
            self._subscription = self.driver.subscribe(self._on_driver_change, PRIORITY_CONSTRAINT)
        self.apply()

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _on_driver_change(self, control: Control, value: int) -> None:
        self.apply()

    def apply(self) -> None:
        steps = _parse_int(self.driver.label)
        if steps is None:
            LOGGER.warning('%s: cannot parse step count from %r', self.driver.control_id, self.driver.label)
            return
        if steps < 1:
            LOGGER.warning('%s: step count %d leaves no start position', self.driver.control_id, steps)
            return

        self._install(self.low, range_options(steps, self.low_start))
        self._install(self.high, range_options(steps, self.high_start))

    @staticmethod
    def _install(dependent: DiscreteControl, options: List[str]) -> None:
        old_label = dependent.label
        index = remap_selection(old_label, options)
        if options[index] != old_label:
            LOGGER.debug('%s: %r no longer offered, selecting %r', dependent.control_id, old_label, options[index])

        dependent.set_options(options, index)
        dependent.notify()


class ScaleLevelPairing:
    """Fixed velocity switch: disables Scale and enables Level while on."""

    def __init__(self, fixed: BooleanControl, scale: ContinuousControl, level: ContinuousControl) -> None:
        self.fixed = fixed
        self.scale = scale
        self.level = level
        self._subscription: Optional[Subscription] = None

    @property
    def scale_label(self) -> str:
        return 'Fixed' if self.fixed.value else 'Scale'

    def attach(self) -> None:
        if self._subscription is None:
            self._subscription = self.fixed.subscribe(self._on_fixed_change, PRIORITY_CONSTRAINT)
        self.apply(self.fixed.value)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _on_fixed_change(self, control: Control, value: bool) -> None:
        self.apply(value)

    def apply(self, fixed: bool) -> None:
        with deferred_redraw(self.scale, self.level):
            self.scale.set_enabled(not fixed)
            self.level.set_enabled(bool(fixed))


class DawSyncLink:
    """While synced to the host, the BPM list is locked and reads "DAW"."""

    def __init__(self, sync: BooleanControl, bpm: DiscreteControl) -> None:
        self.sync = sync
        self.bpm = bpm
        self._subscription: Optional[Subscription] = None

    def display_text(self) -> str:
        return config.daw_sync_label if self.sync.value else self.bpm.label

    def attach(self) -> None:
        if self._subscription is None:
            self._subscription = self.sync.subscribe(self._on_sync_change, PRIORITY_CONSTRAINT)
        self.apply(self.sync.value)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _on_sync_change(self, control: Control, value: bool) -> None:
        self.apply(value)

    def apply(self, synced: bool) -> None:
        self.bpm.set_enabled(not synced)


class ConstraintEngine:
    """Owns every constraint policy of the surface."""

    def __init__(self, matrix: Optional[RoutingMatrix] = None) -> None:
        self.dependencies: Dict[str, OptionDependency] = {}
        self.pairings: Dict[str, ScaleLevelPairing] = {}
        self.daw_sync: Optional[DawSyncLink] = None
        self.matrix = matrix if matrix is not None else RoutingMatrix()

    @classmethod
    def from_registry(cls, registry, rows: Sequence[str] = None,
                      matrix: Optional[RoutingMatrix] = None) -> 'ConstraintEngine':
        """Create the policies for every row whose controls are all present."""
        engine = cls(matrix)
        rows = config.rows if rows is None else rows

        for row in rows:
            steps = registry.get(f'{row}-steps')
            pulses = registry.get(f'{row}-pulses')
            start_on = registry.get(f'{row}-start-on')
            if steps is not None and pulses is not None and start_on is not None:
                engine.dependencies[row] = OptionDependency(steps, pulses, start_on)
            else:
                LOGGER.warning('Row %s lacks steps/pulses/start-on controls; no option dependency', row)

            fixed = registry.get(f'{row}-vel-fixed')
            scale = registry.get(f'{row}-vel-scale')
            level = registry.get(f'{row}-vel-level')
            if fixed is not None and scale is not None and level is not None:
                engine.pairings[row] = ScaleLevelPairing(fixed, scale, level)

        sync = registry.get('midi-sync')
        bpm = registry.get('midi-bpm')
        if sync is not None and bpm is not None:
            engine.daw_sync = DawSyncLink(sync, bpm)

        return engine

    def _policies(self) -> list:
        policies = list(self.dependencies.values()) + list(self.pairings.values())
        if self.daw_sync is not None:
            policies.append(self.daw_sync)
        return policies

    def attach(self) -> None:
        """Subscribe every policy and drive each once with its starting values."""
        for policy in self._policies():
            policy.attach()

    def detach(self) -> None:
        for policy in self._policies():
            policy.detach()


__all__ = [
    'ConstraintEngine',
    'DawSyncLink',
    'OptionDependency',
    'ScaleLevelPairing',
    'range_options',
    'remap_selection',
]
