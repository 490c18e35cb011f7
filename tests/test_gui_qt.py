"""Smoke tests for the Qt views, run on the offscreen platform."""

import pytest

pytest.importorskip('PyQt5')
pytest.importorskip('pyqtgraph')


def test_qt_arc_angles():
    from motorik_surface.gui_qt import qt_arc_angles

    assert qt_arc_angles(-135.0, 135.0) == (225 * 16, -270 * 16)
    assert qt_arc_angles(0.0, 90.0) == (90 * 16, -90 * 16)


class TestSurfaceGUI:
    """Test that the window consumes surface state."""

    def test_builds_every_tab(self, qapp, surface):
        from motorik_surface.gui_qt import DropdownView, KnobView, SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            assert isinstance(gui.views['bd-swing'], KnobView)
            assert isinstance(gui.views['midi-channel'], DropdownView)
            assert gui.bender_button.text() == 'RANDOM'
        finally:
            gui.close()

        assert surface.torn_down

    def test_bender_button_follows_action(self, qapp, surface):
        from motorik_surface.gui_qt import SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            gui.trigger_bender_action()

            assert gui.bender_button.text() == 'RESET'
        finally:
            gui.close()

    def test_matrix_buttons_follow_state(self, qapp, surface):
        from motorik_surface.gui_qt import SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            gui.on_bulk_column('m1')

            assert gui.flag_buttons[('all', 'm1')].isChecked()
            assert gui.flag_buttons[(0, 'm1')].isChecked()

            surface.matrix.set_flag(0, 's1', True)

            assert not gui.flag_buttons[(0, 'm1')].isChecked()
            assert not gui.flag_buttons[('all', 'm1')].isChecked()
        finally:
            gui.close()

    def test_dropdown_follows_control(self, qapp, surface):
        from motorik_surface.gui_qt import SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            surface.set_value('midi-channel', 4)

            assert gui.views['midi-channel'].currentIndex() == 4
        finally:
            gui.close()

    def test_scale_caption_follows_fixed(self, qapp, surface):
        from motorik_surface.gui_qt import SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            surface.set_value('bd-vel-fixed', True)

            assert gui.scale_views['bd'].caption == 'Fixed'
        finally:
            gui.close()

    def test_double_clicked_priority_cell_sets_every_row(self, qapp, surface):
        from PyQt5.QtCore import QEvent, QPointF, Qt
        from PyQt5.QtGui import QMouseEvent

        from motorik_surface.gui_qt import SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            event = QMouseEvent(QEvent.MouseButtonDblClick, QPointF(5, 5),
                                Qt.LeftButton, Qt.LeftButton, Qt.NoModifier)
            gui.priority_buttons[(2, 3)].mouseDoubleClickEvent(event)

            assert surface.matrix.priorities == [3] * surface.matrix.num_rows
            assert gui.priority_buttons[('all', 3)].isChecked()
            assert gui.priority_buttons[(0, 3)].isChecked()
        finally:
            gui.close()

    def test_deactivation_cancels_drag(self, qapp, surface):
        from PyQt5.QtCore import QEvent

        from motorik_surface.gui_qt import SurfaceGUI

        gui = SurfaceGUI(surface)
        try:
            knob = surface.widget('bd-swing')
            knob.press(0, 50)
            assert knob.is_dragging

            gui.changeEvent(QEvent(QEvent.ActivationChange))

            assert not knob.is_dragging
            assert surface.bus.listener_count() == 0
        finally:
            gui.close()
