"""Value model shared by every control on the Motorik surface.

A control owns a value inside a fixed domain, an enabled flag and an ordered
list of change listeners. Rendering layers never hold model truth; they read
the current value through the getters and repaint from redraw hooks.
"""

from __future__ import annotations

import bisect
import itertools
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from motorik_surface import config

LOGGER = logging.getLogger(__name__)

# Listener priorities, lowest runs first
PRIORITY_CONSTRAINT = 0
PRIORITY_MODEL = 10
PRIORITY_ENGINE = 20
PRIORITY_DISPLAY = 30


class ConfigurationError(Exception):
    """Exception raised when a control declaration cannot be built."""
    pass


class ControlKind(Enum):
    """Value domains a control can have."""

    UNIPOLAR = 'continuous-unipolar'
    BIPOLAR = 'continuous-bipolar'
    DISCRETE = 'discrete-index'
    BOOLEAN = 'boolean'
    POINT = 'point2D'


ChangeListener = Callable[['Control', Any], None]
RedrawHook = Callable[['Control'], None]


@dataclass(order=True)
class _Listener:
    priority: int
    sequence: int
    callback: Callable = field(compare=False)


class Subscription:
    """Handle returned by :meth:`Control.subscribe`; cancelling detaches the callback."""

    def __init__(self, owner: List[_Listener], entry: _Listener) -> None:
        self._owner = owner
        self._entry = entry

    @property
    def active(self) -> bool:
        return self._entry in self._owner

    def cancel(self) -> None:
        try:
            self._owner.remove(self._entry)
        except ValueError:
            pass


class Control:
    """Base class for all control value models."""

    kind: ControlKind

    _sequence = itertools.count()

    def __init__(self, control_id: str, default: Any, *, enabled: bool = True) -> None:
        if not control_id:
            raise ConfigurationError('control id is required')

        self.control_id = control_id
        self._enabled = bool(enabled)
        self._listeners: List[_Listener] = []
        self._redraw_hooks: List[_Listener] = []
        self._redraw_holds = 0
        self._redraw_pending = False
        self.released = False

        self.default = self._coerce(default)
        self._value = self.default

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.control_id!r}, value={self._value!r})'

    # Getters used by renderers and savers

    @property
    def value(self) -> Any:
        return self._value

    def current_value(self) -> Any:
        return self._value

    def is_enabled(self) -> bool:
        return self._enabled

    # Mutation

    def set_value(self, value: Any) -> Any:
        """Clamp ``value`` to the domain, store it and notify listeners once.

        A disabled control ignores the call and returns its unchanged value.
        """
        if not self._enabled:
            LOGGER.debug('Ignoring input for disabled control %s', self.control_id)
            return self._value

        self._value = self._coerce(value)
        self._request_redraw()
        self.notify()
        return self._value

    def reset(self) -> Any:
        """Return to the declared default value."""
        return self.set_value(self.default)

    def set_enabled(self, flag: bool) -> None:
        """Gate input mutation; the stored value is preserved."""
        self._enabled = bool(flag)
        self._request_redraw()

    def sync(self, value: Any) -> Any:
        """Store ``value`` without notifying listeners (display realignment)."""
        self._value = self._coerce(value)
        self._request_redraw()
        return self._value

    def notify(self) -> None:
        """Invoke every change listener with the current value, in priority order."""
        for entry in list(self._listeners):
            entry.callback(self, self._value)

    # Observers

    def subscribe(self, callback: ChangeListener, priority: int = PRIORITY_DISPLAY) -> Subscription:
        if not callable(callback):
            raise TypeError('callback must be callable')
        entry = _Listener(priority, next(Control._sequence), callback)
        bisect.insort(self._listeners, entry)
        return Subscription(self._listeners, entry)

    def add_redraw_hook(self, hook: RedrawHook) -> Subscription:
        if not callable(hook):
            raise TypeError('hook must be callable')
        entry = _Listener(0, next(Control._sequence), hook)
        self._redraw_hooks.append(entry)
        return Subscription(self._redraw_hooks, entry)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def release(self) -> None:
        """Detach every listener and hook; called once at surface teardown."""
        self._listeners.clear()
        self._redraw_hooks.clear()
        self.released = True

    # Internals

    def _request_redraw(self) -> None:
        if self._redraw_holds:
            self._redraw_pending = True
            return
        for entry in list(self._redraw_hooks):
            entry.callback(self)

    def _coerce(self, value: Any) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError


class ContinuousControl(Control):
    """Numeric control over ``[minimum, maximum]``; bipolar controls are symmetric around 0."""

    def __init__(
        self,
        control_id: str,
        minimum: float,
        maximum: float,
        default: Optional[float] = None,
        *,
        bipolar: bool = False,
        enabled: bool = True,
    ) -> None:
        try:
            self.minimum = float(minimum)
            self.maximum = float(maximum)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'{control_id}: invalid bounds: {e}') from e

        if not self.minimum < self.maximum:
            raise ConfigurationError(f'{control_id}: minimum must be below maximum')

        if bipolar and self.minimum != -self.maximum:
            raise ConfigurationError(f'{control_id}: bipolar bounds must be symmetric around 0')

        self.bipolar = bipolar
        self.kind = ControlKind.BIPOLAR if bipolar else ControlKind.UNIPOLAR

        if default is None:
            default = 0.0 if bipolar else self.minimum

        super().__init__(control_id, default, enabled=enabled)

    @property
    def span(self) -> float:
        return self.maximum - self.minimum

    @property
    def origin(self) -> float:
        """Value the display arc starts from: 0 for bipolar controls, otherwise the minimum."""
        return 0.0 if self.bipolar else self.minimum

    def normalized(self, value: Optional[float] = None) -> float:
        if value is None:
            value = self._value
        return (value - self.minimum) / self.span

    def from_normalized(self, t: float) -> float:
        return self.minimum + max(0.0, min(1.0, t)) * self.span

    def _coerce(self, value: Any) -> float:
        number = float(value)
        if math.isnan(number):
            LOGGER.debug('NaN for %s; keeping %s', self.control_id, getattr(self, '_value', None))
            return getattr(self, '_value', self.minimum)

        clamped = max(self.minimum, min(self.maximum, number))
        if clamped != number:
            LOGGER.debug('Value %s outside [%s, %s] for %s; clamped',
                         number, self.minimum, self.maximum, self.control_id)
        return clamped


class DiscreteControl(Control):
    """Index into an ordered list of string labels."""

    kind = ControlKind.DISCRETE

    def __init__(
        self,
        control_id: str,
        options: Optional[Sequence[str]] = None,
        default: Any = 0,
        *,
        enabled: bool = True,
    ) -> None:
        if options is None:
            LOGGER.warning('%s declared without options; using placeholder list', control_id)
            options = config.placeholder_options

        self._options: List[str] = [str(option) for option in options]
        if not self._options:
            raise ConfigurationError(f'{control_id}: options must not be empty')

        super().__init__(control_id, default, enabled=enabled)

    @property
    def options(self) -> Tuple[str, ...]:
        return tuple(self._options)

    def current_options(self) -> Tuple[str, ...]:
        return tuple(self._options)

    @property
    def label(self) -> str:
        return self._options[self._value]

    def index_of(self, label: str) -> int:
        """Index of ``label`` in the current options, or -1."""
        try:
            return self._options.index(str(label))
        except ValueError:
            return -1

    def set_options(self, options: Sequence[str], index: int) -> None:
        """Install a new option list and selection without notifying.

        Used by constraint policies, which notify the control themselves
        once both are in place. Not gated by the enabled flag.
        """
        new_options = [str(option) for option in options]
        if not new_options:
            raise ValueError('options must not be empty')
        self._options = new_options
        self._value = self._coerce(index)
        self._request_redraw()

    def _coerce(self, value: Any) -> int:
        index = int(value)
        clamped = max(0, min(len(self._options) - 1, index))
        if clamped != index:
            LOGGER.debug('Index %s outside options of %s; clamped to %s', index, self.control_id, clamped)
        return clamped


class BooleanControl(Control):
    """Two-state control."""

    kind = ControlKind.BOOLEAN

    def __init__(self, control_id: str, default: bool = False, *, enabled: bool = True) -> None:
        super().__init__(control_id, default, enabled=enabled)

    def toggle(self) -> bool:
        return self.set_value(not self._value)

    def _coerce(self, value: Any) -> bool:
        return bool(value)


class PointControl(Control):
    """Two-dimensional control; both coordinates live in ``[0, maximum]``."""

    kind = ControlKind.POINT

    def __init__(
        self,
        control_id: str,
        maximum: int = config.xy_pad_max,
        default: Optional[Tuple[int, int]] = None,
        *,
        enabled: bool = True,
    ) -> None:
        if maximum <= 0:
            raise ConfigurationError(f'{control_id}: maximum must be positive')
        self.maximum = int(maximum)
        if default is None:
            default = config.xy_pad_default
        super().__init__(control_id, default, enabled=enabled)

    @property
    def x(self) -> int:
        return self._value[0]

    @property
    def y(self) -> int:
        return self._value[1]

    def _coerce(self, value: Any) -> Tuple[int, int]:
        if isinstance(value, dict):
            x, y = value['x'], value['y']
        else:
            x, y = value
        return (
            max(0, min(self.maximum, int(round(x)))),
            max(0, min(self.maximum, int(round(y)))),
        )


@contextmanager
def deferred_redraw(*controls: Control):
    """Hold redraws of ``controls`` until every update in the block is done."""
    for control in controls:
        control._redraw_holds += 1
    try:
        yield
    finally:
        for control in controls:
            control._redraw_holds -= 1
        for control in controls:
            if not control._redraw_holds and control._redraw_pending:
                control._redraw_pending = False
                control._request_redraw()


__all__ = [
    'BooleanControl',
    'ConfigurationError',
    'ContinuousControl',
    'Control',
    'ControlKind',
    'DiscreteControl',
    'PointControl',
    'PRIORITY_CONSTRAINT',
    'PRIORITY_DISPLAY',
    'PRIORITY_ENGINE',
    'PRIORITY_MODEL',
    'Subscription',
    'deferred_redraw',
]
