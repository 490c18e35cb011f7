"""Entry point for launching the Motorik surface GUI."""

import argparse
import logging
import sys

from motorik_surface import config
from motorik_surface.layout import LayoutError


def main(argv=None):
    """Parse command-line arguments and start the surface GUI."""
    parser = argparse.ArgumentParser(description='Motorik - Rhythm engine control surface')
    parser.add_argument('--layout', help='YAML layout file to build the surface from')
    parser.add_argument('--log-level', default=config.log_level,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging verbosity')
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    config.log_level = args.log_level

    # Qt is only imported once arguments are parsed
    from motorik_surface import gui_qt as gui

    try:
        return gui.start_gui(layout_path=args.layout)
    except LayoutError as e:
        logging.getLogger(__name__).error('%s', e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
