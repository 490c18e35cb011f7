"""PyQt GUI for the Motorik surface.

Every view here is a pure consumer of the surface: it forwards pointer input
to its widget and the surface pointer bus, and repaints from the control's
redraw hook using the control's current value and display text.
"""

import logging
import signal
import sys

from PyQt5.QtCore import QEvent, QRectF, Qt, QTimer, pyqtSignal
from PyQt5.QtGui import QColor, QPainter, QPen
from PyQt5.QtWidgets import (
    QApplication, QComboBox, QGridLayout, QGroupBox, QHBoxLayout, QLabel,
    QMainWindow, QMessageBox, QPushButton, QSlider, QTabWidget, QVBoxLayout,
    QWidget,
)
import pyqtgraph as pg
import qdarkstyle

from motorik_surface import config
from motorik_surface import layout
from motorik_surface.mix_matrix import COLUMNS, PERCENTAGES
from motorik_surface.surface import MotorikSurface
from motorik_surface.waveform import WaveformFrame

LOGGER = logging.getLogger(__name__)

# Global variable to hold reference to the GUI instance
gui_instance = None

ACCENT = QColor(76, 175, 80)
TRACK = QColor(85, 85, 85)
TEXT = QColor(230, 230, 230)


def qt_arc_angles(start, end):
    """Convert clockwise-from-12-o'clock degrees to Qt's (start, span) in 1/16 degree."""
    return int((90.0 - start) * 16), int(-(end - start) * 16)


class ControlView(QWidget):
    """Base view: one surface widget, repainted on every redraw of its control."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(parent)
        self.surface = surface
        self.control_id = control_id
        self.widget = surface.widget(control_id)
        self.caption = caption or control_id
        self._hook = self.widget.control.add_redraw_hook(lambda control: self.update())
        self.setMinimumSize(60, 40)

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.widget.press(event.x(), event.y())

    def mouseMoveEvent(self, event):
        self.surface.bus.move(event.x(), event.y())

    def mouseReleaseEvent(self, event):
        self.surface.bus.up(event.x(), event.y())

    def mouseDoubleClickEvent(self, event):
        self.widget.double_click()

    def wheelEvent(self, event):
        # Qt reports wheel-away as positive; the widgets expect scroll-down positive
        self.widget.wheel(-event.angleDelta().y())

    def leaveEvent(self, event):
        leave = getattr(self.widget, 'leave', None)
        if leave is not None:
            leave()

    def detach(self):
        self._hook.cancel()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        if not self.widget.control.is_enabled():
            painter.setOpacity(0.35)
        self.paint_control(painter)
        painter.setPen(TEXT)
        painter.drawText(self.rect().adjusted(0, 0, 0, -2), Qt.AlignBottom | Qt.AlignHCenter,
                         f'{self.caption}: {self.surface.display_text(self.control_id)}')
        painter.end()

    def paint_control(self, painter):
        pass


class KnobView(ControlView):
    """Rotary knob; bipolar knobs draw from the zero angle."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(surface, control_id, caption, parent)
        size = self.widget.size
        self.setFixedSize(size + 20, size + 30)

    def paint_control(self, painter):
        size = self.widget.size
        rect = QRectF(10, 5, size, size)

        painter.setPen(QPen(TRACK, 4))
        start, span = qt_arc_angles(config.knob_min_angle, config.knob_max_angle)
        painter.drawArc(rect, start, span)

        painter.setPen(QPen(ACCENT, 4))
        for arc_start, arc_end in self.widget.arcs():
            start, span = qt_arc_angles(arc_start, arc_end)
            painter.drawArc(rect, start, span)


class SliderView(ControlView):
    """Vertical or horizontal slider track with a filled portion."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(surface, control_id, caption, parent)
        self.horizontal = self.widget.kind_name == 'h-slider'
        track = self.widget.track_offset * 2 + self.widget.track_length
        if self.horizontal:
            self.setFixedSize(track, 50)
        else:
            self.setFixedSize(60, track + 20)

    def paint_control(self, painter):
        offset = self.widget.track_offset
        length = self.widget.track_length
        fill = self.widget.fill_extent()

        if self.horizontal:
            painter.fillRect(QRectF(offset, 12, length, 6), TRACK)
            painter.fillRect(QRectF(offset, 12, fill, 6), ACCENT)
            painter.setBrush(TEXT)
            painter.drawEllipse(QRectF(self.widget.handle_position() - 7, 8, 14, 14))
        else:
            painter.fillRect(QRectF(27, offset, 6, length), TRACK)
            painter.fillRect(QRectF(27, offset + length - fill, 6, fill), ACCENT)
            painter.fillRect(QRectF(20, self.widget.handle_position() - 3, 20, 6), TEXT)


class SwitchView(ControlView):
    """Toggle slider, latching button and momentary button."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(surface, control_id, caption, parent)
        self.setFixedSize(90, 50)

    def paint_control(self, painter):
        on = bool(self.widget.control.value)
        painter.setBrush(ACCENT if on else TRACK)
        painter.setPen(Qt.NoPen)
        if self.widget.kind_name == 'toggle-slider':
            painter.drawRoundedRect(QRectF(22, 6, 44, 20), 10, 10)
            painter.setBrush(TEXT)
            painter.drawEllipse(QRectF(22 + self.widget.handle_offset(), 6, 20, 20))
        else:
            painter.drawRoundedRect(QRectF(10, 4, 70, 24), 3, 3)


class XYPadView(ControlView):
    """Two-axis pad with a round handle."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(surface, control_id, caption, parent)
        self.setFixedSize(int(self.widget.width), int(self.widget.height) + 20)

    def paint_control(self, painter):
        painter.setPen(QPen(TRACK, 1))
        painter.drawRect(QRectF(0, 0, self.widget.width - 1, self.widget.height - 1))
        hx, hy = self.widget.handle_position()
        painter.setBrush(ACCENT)
        painter.drawEllipse(QRectF(hx - 6, hy - 6, 12, 12))


class ScrollListView(ControlView):
    """Shows the selected label; drag or scroll to change it."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(surface, control_id, caption, parent)
        self.setFixedSize(90, 50)

    def paint_control(self, painter):
        painter.setPen(QPen(TRACK, 1))
        painter.drawRect(QRectF(10, 2, 70, 26))


class DropdownView(QComboBox):
    """Combo box bound to a discrete control through its dropdown widget."""

    def __init__(self, surface, control_id, caption=None, parent=None):
        super().__init__(parent)
        self.surface = surface
        self.control_id = control_id
        self.widget = surface.widget(control_id)
        self._hook = self.widget.control.add_redraw_hook(lambda control: self.refresh())
        self.refresh()
        self.activated.connect(self.widget.choose)

    def refresh(self):
        control = self.widget.control
        self.blockSignals(True)
        if [self.itemText(i) for i in range(self.count())] != list(control.current_options()):
            self.clear()
            self.addItems(control.current_options())
        self.setCurrentIndex(control.current_value())
        self.setEnabled(control.is_enabled())
        self.blockSignals(False)

    def detach(self):
        self._hook.cancel()


class PriorityCell(QPushButton):
    """Checkable priority button that also reports double clicks."""

    doubleActivated = pyqtSignal()

    def __init__(self, text, parent=None):
        super().__init__(text, parent)
        self.setCheckable(True)

    def mouseDoubleClickEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.doubleActivated.emit()
        event.accept()


VIEW_KINDS = {
    'knob': KnobView,
    'slider': SliderView,
    'h-slider': SliderView,
    'toggle-slider': SwitchView,
    'toggle': SwitchView,
    'momentary': SwitchView,
    'xy-pad': XYPadView,
    'dropdown': DropdownView,
    'scroll-list': ScrollListView,
}


class SurfaceGUI(QMainWindow):
    """Main window for the Motorik surface."""

    def __init__(self, surface):
        super().__init__()
        self.surface = surface
        self.views = {}
        self.scale_views = {}

        self.setWindowTitle("Motorik")
        self.setGeometry(100, 100, 1200, 800)

        self.setup_ui()

    def view_for(self, control_id, caption=None):
        """Create the view for ``control_id`` or a placeholder label if it is missing."""
        widget = self.surface.widget(control_id)
        if widget is None:
            return QLabel(f'{control_id}: n/a')
        view = VIEW_KINDS[widget.kind_name](self.surface, control_id, caption)
        self.views[control_id] = view
        return view

    def setup_ui(self):
        """Set up the user interface components."""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        tabs = QTabWidget()
        main_layout.addWidget(tabs)

        tabs.addTab(self.build_pattern_tab(), "Pattern")
        tabs.addTab(self.build_velocity_tab(), "Velocity")
        tabs.addTab(self.build_mix_tab(), "Mix")
        tabs.addTab(self.build_midi_tab(), "MIDI")

    # Pattern

    def build_pattern_tab(self):
        tab = QWidget()
        tab_layout = QVBoxLayout(tab)

        for row in config.rows:
            group = QGroupBox(row.upper())
            row_layout = QHBoxLayout(group)
            for suffix, caption in [('steps', 'Steps'), ('pulses', 'Pulses'), ('start-on', 'Start'),
                                    ('probability', 'Prob'), ('shift', 'Shift'), ('swing', 'Swing'),
                                    ('density', 'Density'), ('vel-fixed', 'Fixed')]:
                row_layout.addWidget(self.view_for(f'{row}-{suffix}', caption))

            scale_view = self.view_for(f'{row}-vel-scale', self.surface.scale_label(row))
            self.scale_views[row] = scale_view
            row_layout.addWidget(scale_view)

            for suffix, caption in [('vel-level', 'Level'), ('p1', 'P1'), ('p2', 'P2')]:
                row_layout.addWidget(self.view_for(f'{row}-{suffix}', caption))

            fixed = self.surface.registry.get(f'{row}-vel-fixed')
            if fixed is not None and isinstance(scale_view, ControlView):
                fixed.add_redraw_hook(lambda control, r=row: self.update_scale_caption(r))
            tab_layout.addWidget(group)

        global_group = QGroupBox("Pattern")
        global_layout = QHBoxLayout(global_group)
        global_layout.addWidget(self.view_for('master-level', 'Master'))
        global_layout.addWidget(self.view_for('pattern-morph', 'Morph'))
        global_layout.addWidget(self.view_for('pattern-fill', 'Fill'))
        global_layout.addWidget(self.view_for('pattern-reset', 'Reset'))
        tab_layout.addWidget(global_group)
        return tab

    def update_scale_caption(self, row):
        view = self.scale_views.get(row)
        if isinstance(view, ControlView):
            view.caption = self.surface.scale_label(row)
            view.update()

    # Velocity Bender

    def build_velocity_tab(self):
        tab = QWidget()
        tab_layout = QVBoxLayout(tab)

        knob_group = QGroupBox("Velocity Bender")
        knob_layout = QHBoxLayout(knob_group)
        for knob_id, caption in zip(config.vb_knob_ids, ['1/2', '1/4', '1/4T', '1/8']):
            knob_layout.addWidget(self.view_for(knob_id, caption))

        self.bender_button = QPushButton(self.surface.bender_label)
        self.bender_button.clicked.connect(self.trigger_bender_action)
        knob_layout.addWidget(self.bender_button)
        tab_layout.addWidget(knob_group)

        toggle_group = QGroupBox("Bend instruments")
        toggle_layout = QHBoxLayout(toggle_group)
        for row in config.rows:
            toggle_layout.addWidget(self.view_for(f'{row}-bender', row.upper()))
        tab_layout.addWidget(toggle_group)

        # Set up pyqtgraph plot for the bender curve
        self.bender_plot = pg.PlotWidget()
        self.bender_plot.setTitle('Velocity curve (one bar)')
        self.bender_plot.hideAxis('left')
        self.bender_plot.hideAxis('bottom')
        self.bender_plot.invertY(True)
        self.bender_plot.setMouseEnabled(x=False, y=False)
        tab_layout.addWidget(self.bender_plot)

        self.surface.waveform.add_listener(self.plot_waveform)
        frame = self.surface.waveform.frame or self.surface.waveform.draw()
        self.plot_waveform(frame)
        return tab

    def trigger_bender_action(self):
        self.surface.trigger_bender_action()
        self.bender_button.setText(self.surface.bender_label)

    def plot_waveform(self, frame: WaveformFrame):
        self.bender_plot.clear()

        for line in frame.grid:
            self.bender_plot.plot([line.x1, line.x2], [line.y1, line.y2],
                                  pen=pg.mkPen((120, 120, 120), width=line.width))

        x0, y0, x1, y1 = frame.border
        self.bender_plot.plot([x0, x1, x1, x0, x0], [y0, y0, y1, y1, y0], pen=pg.mkPen('w', width=1))

        self.bender_plot.plot(frame.points[:, 0], frame.points[:, 1], pen=pg.mkPen('g', width=2))
        self.bender_plot.setXRange(0, frame.width)
        self.bender_plot.setYRange(0, frame.height)

        if hasattr(self, 'bender_button'):
            self.bender_button.setText(self.surface.bender_label)

    # Mix Matrix

    def build_mix_tab(self):
        tab = QWidget()
        grid = QGridLayout(tab)
        matrix = self.surface.matrix

        self.flag_buttons = {}
        self.priority_buttons = {}
        self.percentage_sliders = {}

        grid.addWidget(QLabel("All"), 0, 0)
        for p in range(matrix.num_priorities):
            button = QPushButton(f'P{p}')
            button.setCheckable(True)
            button.clicked.connect(lambda checked, p=p: self.on_bulk_priority(p))
            self.priority_buttons[('all', p)] = button
            grid.addWidget(button, 0, 1 + p)

        column_offset = 1 + matrix.num_priorities
        for c, column in enumerate(COLUMNS):
            button = QPushButton(column.upper())
            button.setCheckable(True)
            button.clicked.connect(lambda checked, column=column: self.on_bulk_column(column))
            self.flag_buttons[('all', column)] = button
            grid.addWidget(button, 0, column_offset + c)

        for w, which in enumerate(PERCENTAGES):
            button = QPushButton(f'All {which.upper()} 100%')
            button.clicked.connect(lambda checked, which=which: matrix.set_all_percentages(which))
            grid.addWidget(button, 0, column_offset + len(COLUMNS) + w)

        for r in range(matrix.num_rows):
            grid.addWidget(QLabel(config.rows[r].upper() if r < len(config.rows) else str(r)), r + 1, 0)

            for p in range(matrix.num_priorities):
                button = PriorityCell(str(p))
                button.clicked.connect(lambda checked, r=r, p=p: matrix.set_priority(r, p))
                button.doubleActivated.connect(lambda r=r, p=p: matrix.double_activate_priority(r, p))
                self.priority_buttons[(r, p)] = button
                grid.addWidget(button, r + 1, 1 + p)

            for c, column in enumerate(COLUMNS):
                button = QPushButton(column.upper())
                button.setCheckable(True)
                button.clicked.connect(lambda checked, r=r, column=column: matrix.set_flag(r, column, checked))
                self.flag_buttons[(r, column)] = button
                grid.addWidget(button, r + 1, column_offset + c)

            for w, which in enumerate(PERCENTAGES):
                slider = QSlider(Qt.Horizontal)
                slider.setRange(0, config.mm_percentage_max)
                slider.valueChanged.connect(lambda value, r=r, which=which: matrix.set_percentage(r, which, value))
                self.percentage_sliders[(r, which)] = slider
                grid.addWidget(slider, r + 1, column_offset + len(COLUMNS) + w)

        matrix.subscribe(self.on_matrix_change)
        self.refresh_matrix()
        return tab

    def on_bulk_column(self, column):
        self.surface.matrix.bulk_set_column(column)
        self.refresh_matrix()

    def on_bulk_priority(self, priority):
        self.surface.matrix.bulk_set_priority(priority)
        self.refresh_matrix()

    def on_matrix_change(self, name, row, value):
        self.refresh_matrix()

    def refresh_matrix(self):
        """Align every matrix button and slider with the routing state."""
        matrix = self.surface.matrix

        for r, state in enumerate(matrix.rows):
            for p in range(matrix.num_priorities):
                self.priority_buttons[(r, p)].setChecked(state.priority == p)
            for column in COLUMNS:
                self.flag_buttons[(r, column)].setChecked(getattr(state, column))
            for which in PERCENTAGES:
                slider = self.percentage_sliders[(r, which)]
                slider.blockSignals(True)
                slider.setValue(getattr(state, which))
                slider.blockSignals(False)

        for column in COLUMNS:
            self.flag_buttons[('all', column)].setChecked(matrix.all_rows[column])
        for p, active in enumerate(matrix.all_priority):
            self.priority_buttons[('all', p)].setChecked(active)

    # MIDI

    def build_midi_tab(self):
        tab = QWidget()
        tab_layout = QHBoxLayout(tab)
        tab_layout.addWidget(self.view_for('midi-sync', 'DAW Sync'))
        tab_layout.addWidget(self.view_for('midi-bpm', 'BPM'))

        channel_layout = QVBoxLayout()
        channel_layout.addWidget(QLabel("Channel"))
        channel_layout.addWidget(self.view_for('midi-channel'))
        tab_layout.addLayout(channel_layout)
        tab_layout.addStretch(1)
        return tab

    def changeEvent(self, event):
        """End any drag in progress when the window loses activation."""
        if event.type() == QEvent.ActivationChange and not self.isActiveWindow():
            self.surface.bus.cancel()
        super().changeEvent(event)

    def closeEvent(self, event):
        """Release every view and the surface when the window is closed."""
        self.surface.waveform.remove_listener(self.plot_waveform)
        self.surface.matrix.unsubscribe(self.on_matrix_change)
        for view in self.views.values():
            view.detach()
        self.views.clear()
        self.surface.teardown()
        event.accept()


def start_gui(layout_path=None, sink=None):
    """Build the surface and run the Qt event loop."""
    declarations = None
    if layout_path:
        declarations = layout.load_declaration(layout_path)

    surface = MotorikSurface(declarations, sink=sink)

    app = QApplication(sys.argv)

    # Apply QDarkStyle dark theme
    app.setStyleSheet(qdarkstyle.load_stylesheet_pyqt5())

    # Apply dark theme for pyqtgraph
    pg.setConfigOption('background', '#353535')
    pg.setConfigOption('foreground', 'w')
    pg.setConfigOption('antialias', True)

    gui = SurfaceGUI(surface)
    gui.show()

    if surface.build_failures:
        QMessageBox.warning(gui, "Layout", "Some controls could not be created:\n" + "\n".join(surface.build_failures))

    # Store global reference to GUI for signal handling
    global gui_instance
    gui_instance = gui

    def signal_handler(sig, frame):
        LOGGER.info("Keyboard interrupt detected, exiting...")
        if gui_instance is not None:
            gui_instance.close()
        app.quit()

    signal.signal(signal.SIGINT, signal_handler)

    # Wake up the interpreter regularly so signals are processed
    timer = QTimer()
    timer.start(500)
    timer.timeout.connect(lambda: None)

    try:
        return app.exec_()
    finally:
        surface.teardown()


if __name__ == "__main__":
    sys.exit(start_gui())
