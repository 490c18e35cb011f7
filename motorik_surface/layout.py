"""Control declarations for the Motorik surface.

A layout is a list of declarations, one per control, each a mapping with at
least ``id`` and ``kind``. The built-in layout describes the full surface;
layouts can also be read from and written to YAML files.
"""

import datetime
from pathlib import Path
from typing import Any, Dict, List

import yaml

from motorik_surface import config

# Schema version for future-proofing
SCHEMA_VERSION = 1


class LayoutError(Exception):
    """Exception raised for layout file errors."""
    pass


def _row_controls(row: str) -> List[Dict[str, Any]]:
    return [
        # Euclidean pattern
        {'id': f'{row}-steps', 'kind': 'scroll-list',
         'options': list(config.euclidean_steps_options), 'default': config.euclidean_default_steps},
        {'id': f'{row}-pulses', 'kind': 'scroll-list',
         'options': [str(n) for n in range(0, 17)], 'default': '4'},
        {'id': f'{row}-start-on', 'kind': 'scroll-list',
         'options': [str(n) for n in range(1, 17)], 'default': '1'},

        # Timing and blend
        {'id': f'{row}-probability', 'kind': 'knob', 'bipolar': True, 'default': -1.0},
        {'id': f'{row}-shift', 'kind': 'knob', 'bipolar': True, 'default': 0.0},
        {'id': f'{row}-swing', 'kind': 'knob', 'bipolar': True, 'default': 0.0},
        {'id': f'{row}-density', 'kind': 'slider', 'default': 64},

        # Velocity
        {'id': f'{row}-vel-fixed', 'kind': 'toggle-slider', 'default': False},
        {'id': f'{row}-vel-scale', 'kind': 'knob', 'default': config.unipolar_max},
        {'id': f'{row}-vel-level', 'kind': 'knob', 'default': config.unipolar_max},
        {'id': f'{row}-bender', 'kind': 'toggle', 'default': True},

        # Output probabilities
        {'id': f'{row}-p1', 'kind': 'knob', 'default': config.unipolar_max},
        {'id': f'{row}-p2', 'kind': 'knob', 'default': config.unipolar_max},
    ]


def default_declaration() -> List[Dict[str, Any]]:
    """Return the built-in layout of the whole surface."""
    declarations = []
    for row in config.rows:
        declarations.extend(_row_controls(row))

    for knob_id in config.vb_knob_ids:
        declarations.append({'id': knob_id, 'kind': 'knob', 'bipolar': True, 'default': 0.0})

    declarations.extend([
        {'id': 'master-level', 'kind': 'h-slider', 'default': 100},
        {'id': 'pattern-morph', 'kind': 'xy-pad', 'default': list(config.xy_pad_default)},
        {'id': 'pattern-fill', 'kind': 'momentary'},
        {'id': 'pattern-reset', 'kind': 'momentary'},
        {'id': 'midi-sync', 'kind': 'toggle', 'default': False},
        {'id': 'midi-bpm', 'kind': 'scroll-list', 'options': list(config.bpm_options), 'default': config.bpm_default},
        {'id': 'midi-channel', 'kind': 'dropdown', 'options': [str(n) for n in range(1, 17)], 'default': 0},
    ])
    return declarations


def load_declaration(path: Path) -> List[Dict[str, Any]]:
    """Read a layout from a YAML file.

    Args:
        path: Path to the layout file

    Returns:
        List of control declarations

    Raises:
        LayoutError: If the file cannot be read or is not a valid layout
    """
    try:
        path = Path(path)

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

    except (OSError, yaml.YAMLError) as e:
        raise LayoutError(f"Failed to load layout: {str(e)}") from e

    if not isinstance(data, dict):
        raise LayoutError("Invalid layout file: expected a mapping at the top level")

    schema_version = data.get("schema_version", 1)
    if schema_version > SCHEMA_VERSION:
        raise LayoutError(f"Layout uses newer schema version: {schema_version}")

    controls = data.get("controls")
    if not isinstance(controls, list):
        raise LayoutError("Invalid layout file: missing 'controls' list")

    return controls


def save_declaration(path: Path, declarations: List[Dict[str, Any]], name: str = "Motorik") -> Path:
    """Write ``declarations`` as a YAML layout file.

    Raises:
        LayoutError: If the file cannot be written
    """
    try:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        layout_data = {
            "schema_version": SCHEMA_VERSION,
            "name": name,
            "created": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "controls": declarations,
        }

        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(layout_data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

        return path

    except (OSError, yaml.YAMLError) as e:
        raise LayoutError(f"Failed to save layout: {str(e)}") from e
