"""Widget kinds for the Motorik surface.

Every widget wraps exactly one control and turns pointer gestures into
``set_value`` calls. Widgets also expose the geometry a renderer needs
(angles, handle positions, labels), always derived from the control's own
bounds.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable, Dict, List, Optional, Tuple

from motorik_surface import config
from motorik_surface.controls import (
    BooleanControl,
    ContinuousControl,
    Control,
    DiscreteControl,
    PointControl,
)

LOGGER = logging.getLogger(__name__)

POINTER_EVENTS = ('move', 'up', 'cancel')


def gesture(method):
    """Keep exceptions raised while handling a gesture inside the surface."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception:
            LOGGER.exception('Unhandled exception in %s.%s for %s',
                             type(self).__name__, method.__name__, self.control_id)
            return None

    return wrapper


class PointerBus:
    """Surface-wide source of pointer move/up/cancel events."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Callable]] = {name: [] for name in POINTER_EVENTS}

    def add_listener(self, event: str, handler: Callable) -> None:
        self._handlers[event].append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        try:
            self._handlers[event].remove(handler)
        except ValueError:
            pass

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._handlers[event])
        return sum(len(handlers) for handlers in self._handlers.values())

    def _dispatch(self, event: str, *args) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(*args)
            except Exception:
                LOGGER.exception('Unhandled exception in pointer %s handler', event)

    def move(self, x: float, y: float) -> None:
        self._dispatch('move', x, y)

    def up(self, x: float = 0.0, y: float = 0.0) -> None:
        self._dispatch('up', x, y)

    def cancel(self) -> None:
        self._dispatch('cancel')

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()


class DragSession:
    """An active press-move-release interaction.

    Attaches move/up/cancel listeners to the bus on creation and detaches all
    of them on release, whichever way the interaction ends. Usable as a
    context manager.
    """

    def __init__(
        self,
        bus: PointerBus,
        on_move: Optional[Callable[[float, float], None]] = None,
        on_end: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._bus = bus
        self._on_move = on_move
        self._on_end = on_end
        self.active = True
        self.cancelled = False

        bus.add_listener('move', self._handle_move)
        bus.add_listener('up', self._handle_up)
        bus.add_listener('cancel', self._handle_cancel)

    def __enter__(self) -> 'DragSession':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release(cancelled=exc_type is not None)

    def _handle_move(self, x: float, y: float) -> None:
        if self.active and self._on_move is not None:
            self._on_move(x, y)

    def _handle_up(self, x: float, y: float) -> None:
        self.release()

    def _handle_cancel(self) -> None:
        self.release(cancelled=True)

    def release(self, cancelled: bool = False) -> None:
        if not self.active:
            return
        self.active = False
        self.cancelled = cancelled
        self._bus.remove_listener('move', self._handle_move)
        self._bus.remove_listener('up', self._handle_up)
        self._bus.remove_listener('cancel', self._handle_cancel)
        if self._on_end is not None:
            self._on_end(cancelled)


class Widget:
    """Base widget: one control, one pointer bus, at most one drag."""

    kind_name = 'widget'

    def __init__(self, control: Control, bus: Optional[PointerBus] = None) -> None:
        self.control = control
        self.bus = bus if bus is not None else PointerBus()
        self._drag: Optional[DragSession] = None

    @property
    def control_id(self) -> str:
        return self.control.control_id

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None and self._drag.active

    def _begin_drag(self, on_move=None, on_end=None) -> DragSession:
        # A press while a session is still open means its release was dropped
        if self._drag is not None:
            self._drag.release(cancelled=True)

        def finished(cancelled: bool) -> None:
            if self._drag is session:
                self._drag = None
            if on_end is not None:
                on_end(cancelled)

        session = DragSession(self.bus, on_move, finished)
        self._drag = session
        return session

    def release(self) -> None:
        """End any interaction in progress (teardown, focus loss)."""
        if self._drag is not None:
            self._drag.release(cancelled=True)

    @gesture
    def press(self, x: float, y: float) -> None:
        pass

    @gesture
    def double_click(self) -> None:
        pass

    @gesture
    def wheel(self, delta_y: float) -> None:
        pass

    def display_text(self) -> str:
        return str(self.control.value)


class Knob(Widget):
    """Rotary knob, unipolar or bipolar, 270 degree sweep."""

    kind_name = 'knob'

    def __init__(self, control: ContinuousControl, bus: Optional[PointerBus] = None,
                 size: int = config.knob_default_size) -> None:
        super().__init__(control, bus)
        self.size = size

    @property
    def sweep(self) -> float:
        return config.knob_max_angle - config.knob_min_angle

    def angle_for(self, value: float) -> float:
        return config.knob_min_angle + self.sweep * self.control.normalized(value)

    @property
    def angle(self) -> float:
        return self.angle_for(self.control.value)

    def arcs(self) -> List[Tuple[float, float]]:
        """Arcs to draw as (start, end) angle pairs, measured from 12 o'clock."""
        control = self.control
        if not control.bipolar:
            return [(config.knob_min_angle, self.angle)]

        origin_angle = self.angle_for(control.origin)
        if control.value > control.origin:
            return [(origin_angle, self.angle)]
        if control.value < control.origin:
            return [(self.angle, origin_angle)]
        return []

    @property
    def drag_step(self) -> float:
        key = 'bipolar' if self.control.bipolar else 'unipolar'
        return config.knob_drag_span_fraction[key] * self.control.span

    @gesture
    def press(self, x: float, y: float) -> None:
        start_y = y
        start_value = self.control.value

        def on_move(_x: float, move_y: float) -> None:
            self.control.set_value(start_value + (start_y - move_y) * self.drag_step)

        self._begin_drag(on_move)

    @gesture
    def double_click(self) -> None:
        self.control.reset()

    def display_text(self) -> str:
        if self.control.bipolar:
            return f'{self.control.value:.2f}'
        return str(int(round(self.control.value)))


class Slider(Widget):
    """Vertical slider; pointer position maps straight to a value."""

    kind_name = 'slider'
    track_offset = config.slider_track_offset
    track_length = config.slider_track_length

    def value_for_position(self, x: float, y: float) -> float:
        t = 1.0 - (y - self.track_offset) / self.track_length
        return round(self.control.from_normalized(t))

    def handle_position(self) -> float:
        return self.track_offset + (1.0 - self.control.normalized()) * self.track_length

    def fill_extent(self) -> float:
        return self.control.normalized() * self.track_length

    @gesture
    def press(self, x: float, y: float) -> None:
        def on_move(move_x: float, move_y: float) -> None:
            self.control.set_value(self.value_for_position(move_x, move_y))

        on_move(x, y)
        self._begin_drag(on_move)

    @gesture
    def wheel(self, delta_y: float) -> None:
        direction = -1 if delta_y > 0 else 1
        self.control.set_value(self.control.value + direction)

    def display_text(self) -> str:
        return str(int(round(self.control.value)))


class HorizontalSlider(Slider):
    """Horizontal slider with a round handle."""

    kind_name = 'h-slider'
    track_offset = config.h_slider_track_offset
    track_length = config.h_slider_track_length

    def value_for_position(self, x: float, y: float) -> float:
        t = (x - self.track_offset) / self.track_length
        return round(self.control.from_normalized(t))

    def handle_position(self) -> float:
        return self.track_offset + self.control.normalized() * self.track_length


class ToggleSlider(Widget):
    """Two-position flip switch."""

    kind_name = 'toggle-slider'
    handle_travel = 22

    def handle_offset(self) -> int:
        return self.handle_travel if self.control.value else 0

    @gesture
    def press(self, x: float = 0.0, y: float = 0.0) -> None:
        self.control.set_value(not self.control.value)

    def display_text(self) -> str:
        return 'true' if self.control.value else 'false'


class ToggleButton(ToggleSlider):
    """Latching ON/OFF button."""

    kind_name = 'toggle'

    def display_text(self) -> str:
        return 'ON' if self.control.value else 'OFF'


class MomentaryButton(Widget):
    """True while held; any release or leaving the button ends the press."""

    kind_name = 'momentary'

    @gesture
    def press(self, x: float = 0.0, y: float = 0.0) -> None:
        self._begin_drag(on_end=self._on_release)
        self.control.set_value(True)

    @gesture
    def leave(self) -> None:
        self.release()

    def _on_release(self, cancelled: bool) -> None:
        self.control.set_value(False)

    def release(self) -> None:
        if self._drag is not None:
            self._drag.release()

    def display_text(self) -> str:
        return 'true' if self.control.value else 'false'


class XYPad(Widget):
    """Two-axis pad; y grows upwards."""

    kind_name = 'xy-pad'

    def __init__(self, control: PointControl, bus: Optional[PointerBus] = None,
                 width: float = 200.0, height: float = 200.0) -> None:
        super().__init__(control, bus)
        self.width = width
        self.height = height

    def point_for_position(self, px: float, py: float) -> Tuple[int, int]:
        inset = config.xy_pad_inset
        maximum = self.control.maximum
        x = round((px - inset) / (self.width - 2 * inset) * maximum)
        y = round((1.0 - (py - inset) / (self.height - 2 * inset)) * maximum)
        return x, y

    def handle_position(self) -> Tuple[float, float]:
        inset = config.xy_pad_inset
        maximum = self.control.maximum
        hx = (self.control.x / maximum) * (self.width - 2 * inset) + inset
        hy = ((maximum - self.control.y) / maximum) * (self.height - 2 * inset) + inset
        return hx, hy

    @gesture
    def press(self, x: float, y: float) -> None:
        def on_move(move_x: float, move_y: float) -> None:
            self.control.set_value(self.point_for_position(move_x, move_y))

        on_move(x, y)
        self._begin_drag(on_move)

    def display_text(self) -> str:
        return f'X: {self.control.x}, Y: {self.control.y}'


class Dropdown(Widget):
    """Click to open, pick an item to select it."""

    kind_name = 'dropdown'

    def __init__(self, control: DiscreteControl, bus: Optional[PointerBus] = None) -> None:
        super().__init__(control, bus)
        self.menu_open = False

    @gesture
    def press(self, x: float = 0.0, y: float = 0.0) -> None:
        self.menu_open = not self.menu_open

    @gesture
    def choose(self, index: int) -> None:
        self.control.set_value(index)
        self.menu_open = False

    def dismiss(self) -> None:
        self.menu_open = False

    def display_text(self) -> str:
        return self.control.label


class ScrollList(Widget):
    """Vertical drag or wheel steps through the options."""

    kind_name = 'scroll-list'

    @gesture
    def press(self, x: float, y: float) -> None:
        start_y = y
        start_value = self.control.value

        def on_move(_x: float, move_y: float) -> None:
            items = round((start_y - move_y) / config.scroll_list_pixels_per_item)
            new_value = start_value + items
            if new_value != self.control.value:
                self.control.set_value(new_value)

        self._begin_drag(on_move)

    @gesture
    def leave(self) -> None:
        self.release()

    @gesture
    def wheel(self, delta_y: float) -> None:
        if abs(delta_y) > config.scroll_list_wheel_threshold:
            direction = 1 if delta_y > 0 else -1
            self.control.set_value(self.control.value + direction)

    @gesture
    def double_click(self) -> None:
        self.control.reset()

    def display_text(self) -> str:
        return self.control.label


WIDGET_KINDS = {
    cls.kind_name: cls
    for cls in (Knob, Slider, HorizontalSlider, ToggleSlider, ToggleButton,
                MomentaryButton, XYPad, Dropdown, ScrollList)
}


__all__ = [
    'DragSession',
    'Dropdown',
    'HorizontalSlider',
    'Knob',
    'MomentaryButton',
    'PointerBus',
    'ScrollList',
    'Slider',
    'ToggleButton',
    'ToggleSlider',
    'WIDGET_KINDS',
    'Widget',
    'XYPad',
    'gesture',
]
