"""Pytest configuration file with shared fixtures and test setup."""

import os
import sys

import numpy as np
import pytest

# Add the parent directory to the Python path so we can import motorik_surface
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from motorik_surface import config
from motorik_surface.controls import BooleanControl, ContinuousControl, DiscreteControl
from motorik_surface.registry import ControlRegistry
from motorik_surface.layout import default_declaration
from motorik_surface.widgets import PointerBus


@pytest.fixture(autouse=True)
def reset_config():
    """Reset configuration to default values before each test."""
    original_values = {}
    for attr in dir(config):
        if not attr.startswith('_'):
            original_values[attr] = getattr(config, attr)

    config.log_level = 'WARNING'
    config.rows = ['bd', 'bdacc', 'sn', 'snacc', 'hh', 'hhacc']
    config.num_instruments = 6
    config.euclidean_steps_options = [str(n) for n in range(4, 33, 4)]
    config.euclidean_default_steps = '16'
    config.vb_display_points = 550
    config.mm_num_priorities = 6
    config.mm_percentage_max = 100
    config.cosmetic_controls = set()

    yield  # Run the test

    # Restore original values after test
    for attr, value in original_values.items():
        if hasattr(config, attr):
            setattr(config, attr, value)


@pytest.fixture
def rng():
    """Seeded generator so randomized weights are reproducible."""
    return np.random.default_rng(1234)


@pytest.fixture
def bus():
    return PointerBus()


@pytest.fixture
def registry():
    """Registry populated from the built-in layout."""
    registry = ControlRegistry()
    registry.populate(default_declaration())
    registry.seal()
    yield registry
    registry.teardown()


@pytest.fixture
def events():
    """List collecting every parameter event sent to the sink."""
    return []


@pytest.fixture
def surface(events, rng):
    """Fully wired surface recording its parameter events."""
    from motorik_surface.surface import MotorikSurface

    surface = MotorikSurface(sink=events.append, rng=rng)
    events.clear()
    yield surface
    surface.teardown()


@pytest.fixture
def steps_controls():
    """Steps driver with pulses and start-on dependents on placeholder options."""
    steps = DiscreteControl('bd-steps', config.euclidean_steps_options, 3)
    pulses = DiscreteControl('bd-pulses')
    start_on = DiscreteControl('bd-start-on')
    return steps, pulses, start_on


@pytest.fixture
def velocity_controls():
    """Fixed switch with its Scale and Level knobs."""
    fixed = BooleanControl('bd-vel-fixed', False)
    scale = ContinuousControl('bd-vel-scale', 0, 127, 127)
    level = ContinuousControl('bd-vel-level', 0, 127, 127)
    return fixed, scale, level


@pytest.fixture(scope='session')
def qapp():
    """Offscreen QApplication shared by the GUI tests."""
    os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')
    pytest.importorskip('PyQt5')
    from PyQt5.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app
