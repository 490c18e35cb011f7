"""Parameter-change events from the surface toward the rhythm engine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Protocol, Set

from motorik_surface import config
from motorik_surface.controls import PRIORITY_ENGINE, Control, Subscription

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterEvent:
    """One parameter change, as delivered to the engine."""

    control_id: str
    value: Any
    timestamp: float = field(default_factory=time.time)


class ParameterSink(Protocol):
    """Protocol describing the engine-side callback."""

    def __call__(self, event: ParameterEvent) -> None:  # pragma: no cover - protocol signature
        ...


class ParameterEmitter:
    """Forward changes of recognized controls to the engine sink.

    With no parameter table every non-cosmetic control is recognized.
    """

    def __init__(self, sink: ParameterSink, parameter_table: Optional[Iterable[str]] = None) -> None:
        if not callable(sink):
            raise TypeError('sink must be callable')

        self._sink = sink
        self.parameter_table: Optional[Set[str]] = set(parameter_table) if parameter_table is not None else None
        self._subscriptions: List[Subscription] = []

    def recognizes(self, control_id: str) -> bool:
        if control_id in config.cosmetic_controls:
            return False
        if self.parameter_table is None:
            return True
        return control_id in self.parameter_table

    def attach(self, control: Control) -> Optional[Subscription]:
        """Emit an event after every change of ``control`` if it is recognized."""
        if not self.recognizes(control.control_id):
            return None

        subscription = control.subscribe(self._on_change, PRIORITY_ENGINE)
        self._subscriptions.append(subscription)
        return subscription

    def detach_all(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    def _on_change(self, control: Control, value: Any) -> None:
        self.emit(control.control_id, value)

    def emit(self, control_id: str, value: Any) -> bool:
        if not self.recognizes(control_id):
            return False
        self._dispatch(ParameterEvent(control_id=control_id, value=value))
        return True

    def _dispatch(self, event: ParameterEvent) -> None:
        try:
            self._sink(event)
        except Exception:
            LOGGER.exception('Unhandled exception while dispatching parameter event: %s', event)


__all__ = ['ParameterEmitter', 'ParameterEvent', 'ParameterSink']
