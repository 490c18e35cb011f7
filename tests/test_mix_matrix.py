"""Tests for the Mix Matrix routing policy."""

import pytest

from motorik_surface.mix_matrix import COLUMNS, EXCLUSIVE, RoutingMatrix


@pytest.fixture
def matrix():
    return RoutingMatrix()


class TestFlags:
    """Test single-row mute/solo flags."""

    def test_defaults(self, matrix):
        assert matrix.num_rows == 6
        assert matrix.priorities == [0] * 6
        assert matrix.column_state('m1') == [False] * 6
        assert matrix.percentage(0, 'p1') == 100

    @pytest.mark.parametrize('column', COLUMNS)
    def test_turning_on_clears_partner(self, matrix, column):
        partner = EXCLUSIVE[column]
        matrix.set_flag(2, partner, True)

        matrix.set_flag(2, column, True)

        assert matrix.flag(2, column)
        assert not matrix.flag(2, partner)

    def test_pairs_are_independent(self, matrix):
        """M1 does not exclude M2."""
        matrix.set_flag(0, 'm1', True)
        matrix.set_flag(0, 'm2', True)

        assert matrix.flag(0, 'm1')
        assert matrix.flag(0, 'm2')

    def test_turning_off_leaves_partner(self, matrix):
        matrix.set_flag(0, 's1', True)

        matrix.set_flag(0, 'm1', False)

        assert matrix.flag(0, 's1')

    def test_invalid_row_and_column(self, matrix):
        with pytest.raises(IndexError):
            matrix.set_flag(6, 'm1', True)

        with pytest.raises(ValueError):
            matrix.set_flag(0, 'x1', True)


class TestBulkColumn:
    """Test whole-column toggles."""

    def test_bulk_turns_column_on_and_clears_partners(self, matrix):
        matrix.set_flag(1, 's1', True)
        matrix.set_flag(4, 's1', True)

        enabled = matrix.bulk_set_column('m1')

        assert enabled is True
        assert matrix.column_state('m1') == [True] * 6
        assert matrix.column_state('s1') == [False] * 6
        assert matrix.all_rows['m1']

    def test_bulk_twice_restores_from_all_off(self, matrix):
        matrix.bulk_set_column('s2')
        enabled = matrix.bulk_set_column('s2')

        assert enabled is False
        assert matrix.column_state('s2') == [False] * 6
        assert not matrix.all_rows['s2']

    def test_partially_on_column_turns_fully_on(self, matrix):
        matrix.set_flag(0, 'm2', True)

        assert matrix.bulk_set_column('m2') is True
        assert matrix.all_rows['m2']

    def test_exclusion_holds_after_bulk(self, matrix):
        matrix.bulk_set_column('m1')
        matrix.bulk_set_column('s1')

        for row in range(matrix.num_rows):
            assert not (matrix.flag(row, 'm1') and matrix.flag(row, 's1'))
        assert not matrix.all_rows['m1']
        assert matrix.all_rows['s1']


class TestPriorities:
    """Test priority selection and its bulk forms."""

    def test_set_priority_clamps(self, matrix):
        matrix.set_priority(0, 9)

        assert matrix.priorities[0] == 5

    def test_bulk_priority(self, matrix):
        changed = matrix.bulk_set_priority(3)

        assert changed
        assert matrix.priorities == [3] * 6
        assert matrix.all_priority[3]
        assert not matrix.all_priority[0]

    def test_bulk_priority_noop_when_already_set(self, matrix):
        matrix.bulk_set_priority(2)
        received = []
        matrix.subscribe(lambda name, row, value: received.append(name))

        changed = matrix.bulk_set_priority(2)

        assert not changed
        assert received == []

    def test_single_change_clears_all_indicator(self, matrix):
        matrix.bulk_set_priority(1)
        matrix.set_priority(4, 2)

        assert matrix.all_priority == [False] * 6

    def test_double_activation_applies_to_all_rows(self, matrix):
        matrix.set_priority(0, 4)

        matrix.double_activate_priority(3, 5)

        assert matrix.priorities == [5] * 6
        assert matrix.all_priority[5]


class TestPercentages:
    """Test P1/P2 percentages."""

    def test_set_percentage_clamps(self, matrix):
        matrix.set_percentage(0, 'p1', 150)
        matrix.set_percentage(1, 'p2', -20)

        assert matrix.percentage(0, 'p1') == 100
        assert matrix.percentage(1, 'p2') == 0

    def test_all_100(self, matrix):
        matrix.set_percentage(3, 'p2', 40)

        matrix.set_all_percentages('p2')

        assert [matrix.percentage(row, 'p2') for row in range(6)] == [100] * 6

    def test_unknown_percentage(self, matrix):
        with pytest.raises(ValueError):
            matrix.set_percentage(0, 'p3', 1)


class TestListenersAndState:
    """Test change notification and snapshots."""

    def test_listener_sees_partner_cleared(self, matrix):
        received = []
        matrix.subscribe(lambda name, row, value: received.append((name, row, value)))
        matrix.set_flag(0, 's1', True)
        received.clear()

        matrix.set_flag(0, 'm1', True)

        assert received == [('m1', 0, True), ('s1', 0, False)]

    def test_unsubscribe(self, matrix):
        received = []
        listener = lambda name, row, value: received.append(name)
        matrix.subscribe(listener)
        matrix.unsubscribe(listener)

        matrix.set_flag(0, 'm1', True)

        assert received == []

    def test_subscribe_requires_callable(self, matrix):
        with pytest.raises(TypeError):
            matrix.subscribe(None)

    def test_state_round_trip(self, matrix):
        matrix.set_flag(0, 'm1', True)
        matrix.set_flag(5, 's2', True)
        matrix.set_priority(2, 3)
        matrix.set_percentage(4, 'p1', 25)
        state = matrix.get_state()

        restored = RoutingMatrix()
        restored.apply_state(state)

        assert restored.get_state() == state

    def test_apply_state_keeps_exclusion(self, matrix):
        state = matrix.get_state()
        state['m1'] = [True] * 6
        state['s1'] = [True] * 6

        matrix.apply_state(state)

        assert matrix.column_state('m1') == [False] * 6
        assert matrix.column_state('s1') == [True] * 6
        assert matrix.all_rows['s1']
