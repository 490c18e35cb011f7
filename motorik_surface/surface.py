"""The Motorik control surface: every control, policy and output, wired together."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np

from motorik_surface import config
from motorik_surface.constraints import ConstraintEngine, remap_selection
from motorik_surface.controls import Control, DiscreteControl, PointControl
from motorik_surface.layout import default_declaration
from motorik_surface.mix_matrix import RoutingMatrix
from motorik_surface.params import ParameterEmitter, ParameterEvent, ParameterSink
from motorik_surface.registry import ControlRegistry, Declaration
from motorik_surface.velocity_bender import VelocityBender, VelocityBenderModel
from motorik_surface.waveform import WaveformRenderer
from motorik_surface.widgets import PointerBus, Widget

LOGGER = logging.getLogger(__name__)


def _log_event(event: ParameterEvent) -> None:
    LOGGER.debug('Parameter %s = %r', event.control_id, event.value)


class MotorikSurface:
    """Owns the registry, the constraint engine, the Velocity Bender and the engine output.

    Controls are created once here and released together by :meth:`teardown`.
    Renderers read values and display texts through this object and repaint
    from the controls' redraw hooks.
    """

    def __init__(
        self,
        declarations: Optional[Iterable[Declaration]] = None,
        *,
        sink: Optional[ParameterSink] = None,
        parameter_table: Optional[Iterable[str]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if declarations is None:
            declarations = default_declaration()

        self.bus = PointerBus()
        self.registry = ControlRegistry(self.bus)
        self.build_failures = self.registry.populate(declarations)
        self.registry.seal()

        self.matrix = RoutingMatrix()
        self.constraints = ConstraintEngine.from_registry(self.registry, matrix=self.matrix)

        self.bender_model = VelocityBenderModel(rng=rng)
        self.waveform = WaveformRenderer(self.bender_model, width=config.vb_display_points)
        self.bender = self._build_bender()

        self.emitter = ParameterEmitter(sink if sink is not None else _log_event, parameter_table)
        self._display: Dict[str, str] = {}
        self._torn_down = False

        # Dependents are sized before anything downstream listens
        self.constraints.attach()
        if self.bender is not None:
            self.bender.attach()

        for widget in self.registry.widgets():
            self.emitter.attach(widget.control)
            widget.control.add_redraw_hook(self._on_redraw)
            self._refresh_display(widget.control_id)

        self.matrix.subscribe(self._on_matrix_change)
        LOGGER.info('Surface ready: %d controls', len(self.registry))

    def _build_bender(self) -> Optional[VelocityBender]:
        knobs = [self.registry.get(knob_id) for knob_id in config.vb_knob_ids]
        if any(knob is None for knob in knobs):
            LOGGER.warning('Velocity Bender knobs missing; bender disabled')
            return None

        toggles = [self.registry.get(f'{row}-bender') for row in config.rows]
        return VelocityBender(self.bender_model, knobs, toggles, on_redraw=self.waveform.draw)

    # Lookup

    def get_control(self, control_id: str) -> Control:
        """Return the control for ``control_id``; raises KeyError if unknown."""
        return self.registry[control_id]

    def widget(self, control_id: str) -> Optional[Widget]:
        return self.registry.widget(control_id)

    def get_value(self, control_id: str) -> Any:
        return self.registry[control_id].current_value()

    def set_value(self, control_id: str, value: Any) -> Any:
        return self.registry[control_id].set_value(value)

    def is_enabled(self, control_id: str) -> bool:
        return self.registry[control_id].is_enabled()

    # Display

    def display_text(self, control_id: str) -> str:
        if control_id not in self._display:
            self._refresh_display(control_id)
        return self._display[control_id]

    def scale_label(self, row: str) -> str:
        pairing = self.constraints.pairings.get(row)
        return pairing.scale_label if pairing is not None else 'Scale'

    @property
    def bender_label(self) -> str:
        if self.bender is None:
            return config.vb_label_random
        return self.bender.action.label

    def _on_redraw(self, control: Control) -> None:
        self._refresh_display(control.control_id)

    def _refresh_display(self, control_id: str) -> None:
        daw_sync = self.constraints.daw_sync
        if daw_sync is not None and control_id == daw_sync.bpm.control_id:
            self._display[control_id] = daw_sync.display_text()
            return

        widget = self.registry.widget(control_id)
        if widget is None:
            raise KeyError(control_id)
        self._display[control_id] = widget.display_text()

    # Velocity Bender

    def trigger_bender_action(self) -> Optional[str]:
        """Randomize a flat curve or reset a bent one, then report the four weights."""
        if self.bender is None:
            return None

        action = self.bender.action.trigger()
        for knob in self.bender.knobs:
            self.emitter.emit(knob.control_id, knob.value)
        return action

    # Mix Matrix

    def _on_matrix_change(self, name: str, row: int, value: Any) -> None:
        row_name = config.rows[row] if row < len(config.rows) else str(row)
        self.emitter.emit(f'mm-{row_name}-{name}', value)

    # State

    def get_state(self) -> Dict[str, Any]:
        """Snapshot of every control value and the routing matrix.

        Discrete controls are stored by label so a snapshot survives option
        list changes.
        """
        controls: Dict[str, Any] = {}
        for control in self.registry.controls():
            if isinstance(control, DiscreteControl):
                controls[control.control_id] = control.label
            elif isinstance(control, PointControl):
                controls[control.control_id] = list(control.value)
            else:
                controls[control.control_id] = control.value

        return {'controls': controls, 'matrix': self.matrix.get_state()}

    def apply_state(self, state: Mapping[str, Any]) -> List[str]:
        """Restore a snapshot from :meth:`get_state`.

        Values are restored regardless of enabled flags, in registry order,
        and every restored control notifies its listeners once.

        Returns:
            Ids in the snapshot that the surface does not have
        """
        unknown = []
        values = state.get('controls', {})

        for control in self.registry.controls():
            if control.control_id not in values:
                continue
            value = values[control.control_id]
            if isinstance(control, DiscreteControl):
                value = self._index_for_label(control, value)
            control.sync(value)
            control.notify()

        for control_id in values:
            if control_id not in self.registry:
                LOGGER.warning('Ignoring state for unknown control %s', control_id)
                unknown.append(control_id)

        if 'matrix' in state:
            self.matrix.apply_state(state['matrix'])

        return unknown

    @staticmethod
    def _index_for_label(control: DiscreteControl, label: Any) -> int:
        if isinstance(label, int):
            return label
        index = control.index_of(label)
        if index < 0:
            index = remap_selection(str(label), control.current_options())
            LOGGER.debug('%s: %r not offered, restoring %r', control.control_id, label, control.options[index])
        return index

    # Lifecycle

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def teardown(self) -> None:
        """Release every subscription, drag session and control."""
        if self._torn_down:
            return

        self.emitter.detach_all()
        self.matrix.unsubscribe(self._on_matrix_change)
        if self.bender is not None:
            self.bender.detach()
        self.constraints.detach()
        self.registry.teardown()
        self._display.clear()
        self._torn_down = True
        LOGGER.info('Surface torn down')


__all__ = ['MotorikSurface']
