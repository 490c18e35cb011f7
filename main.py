"""Backward-compatible entry point for running the Motorik surface GUI."""

import sys

from motorik_surface.entry import main as _launch_gui


def main():
    """Launch the Motorik surface."""
    return _launch_gui()


if __name__ == "__main__":
    sys.exit(main())
