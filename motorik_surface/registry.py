"""Control construction and lookup for the Motorik surface."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from motorik_surface import config
from motorik_surface.controls import (
    BooleanControl,
    ConfigurationError,
    ContinuousControl,
    Control,
    DiscreteControl,
    PointControl,
)
from motorik_surface.widgets import (
    WIDGET_KINDS,
    PointerBus,
    Widget,
)

LOGGER = logging.getLogger(__name__)

Declaration = Mapping[str, Any]


class ControlFactory:
    """Build one control and its widget from a static declaration."""

    def __init__(self, bus: PointerBus) -> None:
        self.bus = bus
        self._builders: Dict[str, Callable[[str, Declaration], Widget]] = {
            'knob': self._build_knob,
            'slider': self._build_slider,
            'h-slider': self._build_slider,
            'toggle-slider': self._build_boolean,
            'toggle': self._build_boolean,
            'momentary': self._build_boolean,
            'xy-pad': self._build_xy_pad,
            'dropdown': self._build_discrete,
            'scroll-list': self._build_discrete,
        }

    @property
    def kinds(self) -> List[str]:
        return sorted(self._builders)

    def build(self, declaration: Declaration) -> Widget:
        """Return the widget for ``declaration``.

        Raises:
            ConfigurationError: If ``id`` or ``kind`` is missing or invalid
        """
        if not isinstance(declaration, Mapping):
            raise ConfigurationError(f'declaration must be a mapping, got {type(declaration).__name__}')

        control_id = declaration.get('id')
        if not control_id:
            raise ConfigurationError('control declaration is missing "id"')

        kind = declaration.get('kind')
        if not kind:
            raise ConfigurationError(f'{control_id}: declaration is missing "kind"')

        builder = self._builders.get(kind)
        if builder is None:
            raise ConfigurationError(f'{control_id}: unknown control kind {kind!r}')

        try:
            return builder(str(control_id), declaration)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'{control_id}: {e}') from e

    def _build_knob(self, control_id: str, declaration: Declaration) -> Widget:
        bipolar = bool(declaration.get('bipolar', False))
        if bipolar:
            minimum = declaration.get('min', config.bipolar_min)
            maximum = declaration.get('max', config.bipolar_max)
        else:
            minimum = declaration.get('min', config.unipolar_min)
            maximum = declaration.get('max', config.unipolar_max)

        control = ContinuousControl(control_id, minimum, maximum, declaration.get('default'), bipolar=bipolar)
        size = declaration.get('size') or config.knob_default_size
        return WIDGET_KINDS['knob'](control, self.bus, size=int(size))

    def _build_slider(self, control_id: str, declaration: Declaration) -> Widget:
        control = ContinuousControl(
            control_id,
            declaration.get('min', config.unipolar_min),
            declaration.get('max', config.unipolar_max),
            declaration.get('default'),
        )
        return WIDGET_KINDS[declaration['kind']](control, self.bus)

    def _build_boolean(self, control_id: str, declaration: Declaration) -> Widget:
        control = BooleanControl(control_id, bool(declaration.get('default', False)))
        return WIDGET_KINDS[declaration['kind']](control, self.bus)

    def _build_xy_pad(self, control_id: str, declaration: Declaration) -> Widget:
        control = PointControl(
            control_id,
            int(declaration.get('max', config.xy_pad_max)),
            declaration.get('default'),
        )
        return WIDGET_KINDS['xy-pad'](
            control,
            self.bus,
            width=float(declaration.get('width', 200.0)),
            height=float(declaration.get('height', 200.0)),
        )

    def _build_discrete(self, control_id: str, declaration: Declaration) -> Widget:
        options = declaration.get('options')
        default = declaration.get('default', 0)
        if isinstance(default, str) and options is not None:
            labels = [str(option) for option in options]
            if default not in labels:
                raise ConfigurationError(f'{control_id}: default {default!r} is not one of the options')
            default = labels.index(default)

        control = DiscreteControl(control_id, options, default)
        return WIDGET_KINDS[declaration['kind']](control, self.bus)


class ControlRegistry:
    """Owned lookup of every widget on the surface, keyed by control id.

    Populated once at initialization; after :meth:`seal` no controls can be
    added. :meth:`teardown` releases all controls together.
    """

    def __init__(self, bus: Optional[PointerBus] = None) -> None:
        self.bus = bus if bus is not None else PointerBus()
        self._widgets: Dict[str, Widget] = {}
        self.sealed = False
        self.torn_down = False

    def __contains__(self, control_id: object) -> bool:
        return control_id in self._widgets

    def __getitem__(self, control_id: str) -> Control:
        return self._widgets[control_id].control

    def __iter__(self) -> Iterator[str]:
        return iter(self._widgets)

    def __len__(self) -> int:
        return len(self._widgets)

    def get(self, control_id: str) -> Optional[Control]:
        widget = self._widgets.get(control_id)
        return widget.control if widget is not None else None

    def widget(self, control_id: str) -> Optional[Widget]:
        return self._widgets.get(control_id)

    def widgets(self) -> List[Widget]:
        return list(self._widgets.values())

    def controls(self) -> List[Control]:
        return [widget.control for widget in self._widgets.values()]

    def add(self, widget: Widget) -> None:
        if self.sealed:
            raise RuntimeError('registry is sealed; controls are only created at initialization')
        if widget.control_id in self._widgets:
            raise ConfigurationError(f'duplicate control id {widget.control_id!r}')
        self._widgets[widget.control_id] = widget

    def populate(self, declarations: Iterable[Declaration], factory: Optional[ControlFactory] = None) -> List[str]:
        """Build every declared control.

        A declaration that fails to build is logged and skipped; the rest of
        the surface is still created.

        Returns:
            Error messages for the skipped declarations
        """
        factory = factory if factory is not None else ControlFactory(self.bus)
        failures = []

        for declaration in declarations:
            try:
                self.add(factory.build(declaration))
            except ConfigurationError as e:
                LOGGER.error('Skipping control declaration: %s', e)
                failures.append(str(e))

        LOGGER.info('Registry populated with %d controls (%d skipped)', len(self._widgets), len(failures))
        return failures

    def seal(self) -> None:
        self.sealed = True

    def teardown(self) -> None:
        """Release every control, drag session and pointer listener."""
        for widget in self._widgets.values():
            widget.control.release()
            widget.release()
        self.bus.clear()
        self._widgets.clear()
        self.torn_down = True


__all__ = ['ControlFactory', 'ControlRegistry', 'Declaration']
