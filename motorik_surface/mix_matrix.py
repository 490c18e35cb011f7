"""Mix Matrix routing policy.

Six instrument rows, each with a priority, two mute/solo pairs and two
percentages. Within a row M1 and S1 are never both on, nor are M2 and S2.
After every mutation the "all rows" indicators are recomputed from state,
then listeners receive each changed cell in write order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

from motorik_surface import config

LOGGER = logging.getLogger(__name__)

COLUMNS = ('m1', 's1', 'm2', 's2')
PERCENTAGES = ('p1', 'p2')

# Mutually exclusive partner of each flag column
EXCLUSIVE = {
    'm1': 's1',
    's1': 'm1',
    'm2': 's2',
    's2': 'm2',
}

MatrixListener = Callable[[str, int, Any], None]


@dataclass
class RoutingRow:
    """State of one instrument row."""

    priority: int = 0
    m1: bool = False
    s1: bool = False
    m2: bool = False
    s2: bool = False
    p1: int = config.mm_percentage_max
    p2: int = config.mm_percentage_max


class RoutingMatrix:
    """Routing state for every instrument plus its bulk operations."""

    def __init__(self, num_rows: int = None, num_priorities: int = None) -> None:
        self.num_rows = config.num_instruments if num_rows is None else num_rows
        self.num_priorities = config.mm_num_priorities if num_priorities is None else num_priorities
        self.rows = [RoutingRow() for _ in range(self.num_rows)]

        # Summary indicators, recomputed after each mutation
        self.all_rows: Dict[str, bool] = {}
        self.all_priority: List[bool] = []

        self._listeners: List[MatrixListener] = []
        self._pending: List[Tuple[str, int, Any]] = []
        self._update_all_rows()

    # Observers

    def subscribe(self, listener: MatrixListener) -> None:
        if not callable(listener):
            raise TypeError('listener must be callable')
        self._listeners.append(listener)

    def unsubscribe(self, listener: MatrixListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self, name: str, row: int, value: Any) -> None:
        self._pending.append((name, row, value))

    def _commit(self) -> None:
        """Recompute the indicators, then deliver the queued changes in order."""
        self._update_all_rows()
        pending, self._pending = self._pending, []
        for name, row, value in pending:
            for listener in list(self._listeners):
                listener(name, row, value)

    # Reads

    def flag(self, row: int, column: str) -> bool:
        self._check_column(column)
        return getattr(self.rows[self._check_row(row)], column)

    def column_state(self, column: str) -> List[bool]:
        self._check_column(column)
        return [getattr(row, column) for row in self.rows]

    @property
    def priorities(self) -> List[int]:
        return [row.priority for row in self.rows]

    def percentage(self, row: int, which: str) -> int:
        self._check_percentage(which)
        return getattr(self.rows[self._check_row(row)], which)

    # Single-row operations

    def set_flag(self, row: int, column: str, value: bool) -> None:
        """Set one flag; turning it on clears its exclusive partner."""
        self._check_column(column)
        self._write_flag(self._check_row(row), column, bool(value))
        self._commit()

    def set_priority(self, row: int, priority: int) -> None:
        row = self._check_row(row)
        self._write_priority(row, self._clamp_priority(priority))
        self._commit()

    def set_percentage(self, row: int, which: str, value: float) -> None:
        self._check_percentage(which)
        self._write_percentage(self._check_row(row), which, value)
        self._commit()

    # Bulk operations

    def bulk_set_column(self, column: str) -> bool:
        """Toggle a whole flag column.

        If every row has the flag on, all are turned off; otherwise all are
        turned on, clearing each row's exclusive partner.

        Returns:
            The value the column was set to
        """
        self._check_column(column)
        enable = not all(self.column_state(column))

        for row in range(self.num_rows):
            self._write_flag(row, column, enable)

        self._commit()
        return enable

    def bulk_set_priority(self, priority: int) -> bool:
        """Give every row ``priority``; a no-op when all rows already have it.

        Returns:
            True if any row changed
        """
        priority = self._clamp_priority(priority)
        if all(row.priority == priority for row in self.rows):
            self._commit()
            return False

        self._assign_priority_all(priority)
        self._commit()
        return True

    def double_activate_priority(self, row: int, priority: int) -> None:
        """Double-activating one priority cell applies that priority to every row."""
        self._check_row(row)
        self._assign_priority_all(self._clamp_priority(priority))
        self._commit()

    def set_all_percentages(self, which: str, value: int = config.mm_percentage_max) -> None:
        for row in range(self.num_rows):
            self.set_percentage(row, which, value)

    # Snapshot

    def get_state(self) -> Dict[str, List]:
        state: Dict[str, List] = {'priorities': self.priorities}
        for column in COLUMNS:
            state[column] = self.column_state(column)
        for which in PERCENTAGES:
            state[which] = [getattr(row, which) for row in self.rows]
        return state

    def apply_state(self, state: Mapping[str, List]) -> None:
        """Restore a snapshot from :meth:`get_state`; keys may be missing.

        Flags are written in column order through the exclusion policy, so a
        snapshot with both flags of a pair on keeps the later column.
        """
        for row, priority in enumerate(state.get('priorities', [])[:self.num_rows]):
            self._write_priority(row, self._clamp_priority(priority))

        for column in COLUMNS:
            for row, value in enumerate(state.get(column, [])[:self.num_rows]):
                self._write_flag(row, column, bool(value))

        for which in PERCENTAGES:
            for row, value in enumerate(state.get(which, [])[:self.num_rows]):
                self._write_percentage(row, which, value)

        self._commit()

    # Internals

    def _write_flag(self, row: int, column: str, value: bool) -> None:
        state = self.rows[row]
        setattr(state, column, value)
        self._notify(column, row, value)

        partner = EXCLUSIVE[column]
        if value and getattr(state, partner):
            setattr(state, partner, False)
            LOGGER.debug('Row %d: %s on, clearing %s', row, column, partner)
            self._notify(partner, row, False)

    def _write_percentage(self, row: int, which: str, value: float) -> None:
        clamped = int(max(0, min(config.mm_percentage_max, round(value))))
        setattr(self.rows[row], which, clamped)
        self._notify(which, row, clamped)

    def _write_priority(self, row: int, priority: int) -> None:
        self.rows[row].priority = priority
        self._notify('priority', row, priority)

    def _assign_priority_all(self, priority: int) -> None:
        for row in range(self.num_rows):
            self._write_priority(row, priority)

    def _update_all_rows(self) -> None:
        for column in COLUMNS:
            self.all_rows[column] = all(getattr(row, column) for row in self.rows)
        self.all_priority = [
            all(row.priority == priority for row in self.rows)
            for priority in range(self.num_priorities)
        ]

    def _clamp_priority(self, priority: int) -> int:
        clamped = max(0, min(self.num_priorities - 1, int(priority)))
        if clamped != priority:
            LOGGER.debug('Priority %s out of range; clamped to %d', priority, clamped)
        return clamped

    def _check_row(self, row: int) -> int:
        row = int(row)
        if not 0 <= row < self.num_rows:
            raise IndexError(f'row {row} outside 0..{self.num_rows - 1}')
        return row

    @staticmethod
    def _check_column(column: str) -> None:
        if column not in EXCLUSIVE:
            raise ValueError(f'unknown flag column {column!r}')

    @staticmethod
    def _check_percentage(which: str) -> None:
        if which not in PERCENTAGES:
            raise ValueError(f'unknown percentage {which!r}')


__all__ = ['COLUMNS', 'EXCLUSIVE', 'PERCENTAGES', 'RoutingMatrix', 'RoutingRow']
