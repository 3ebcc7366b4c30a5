"""
The app entry point.

``spawn`` starts the application function to be visually debugged, either
next to a local GUI window or serving a remote viewer.
"""

from __future__ import annotations

import argparse
import enum
import logging
import queue
import sys
import threading
from typing import Callable, List, Optional

from .gui import GuiLoop
from .manager import Manager
from .utils import get_config, merge_config, resolve_config, save_config, setup_logging, validate_config

LOGGER = logging.getLogger(__name__)


class VVizMode(enum.Enum):
    """Visualization mode."""

    LOCAL = "local"  # GUI window and render loop in this process
    REMOTE = "remote"  # serve a remote viewer over a websocket

    def __str__(self) -> str:
        return self.value


def spawn(mode: VVizMode, f: Callable[[Manager], None], config=None, frontend=None):
    """
    Run ``f(manager)``, the application to be debugged.

    In local mode ``f`` runs on a daemon thread while the calling (main)
    thread runs the GUI loop; the call returns once the GUI is closed, and
    re-raises an exception ``f`` raised. In remote mode ``f`` runs on the
    calling thread once a viewer has connected.
    """
    config = resolve_config(config)

    if mode == VVizMode.REMOTE:
        manager = Manager.new_remote(config)
        try:
            f(manager)
        finally:
            manager.close()
        return

    to_gui_loop: queue.Queue = queue.Queue()
    from_gui_loop: queue.Queue = queue.Queue()
    errors: List[BaseException] = []

    def run_app():
        try:
            f(Manager.new_local(to_gui_loop, from_gui_loop, config))
        except Exception as e:
            LOGGER.exception("Application error: %s", e)
            errors.append(e)

    app_thread = threading.Thread(target=run_app, name="vviz-app", daemon=True)
    app_thread.start()

    GuiLoop(to_gui_loop, from_gui_loop, config, frontend).run()

    if errors:
        raise errors[0]


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="vviz application")
    parser.add_argument(
        "--mode", "-m",
        type=VVizMode,
        choices=list(VVizMode),
        default=VVizMode.LOCAL,
        help="Visualization mode: 'local' opens a window, 'remote' waits for vviz-viewer",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to a JSON configuration file",
    )
    parser.add_argument(
        "--save-config",
        default=None,
        metavar="PATH",
        help="Write the effective configuration to PATH before starting",
    )
    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    return parser.parse_args(argv)


def run(f: Callable[[Manager], None], argv=None, config: Optional[dict] = None):
    """Parse the command line, set up logging and spawn ``f``."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    settings = get_config(args.config)
    if config:
        merge_config(settings, config)
    if not validate_config(settings):
        sys.exit(1)
    if args.save_config and not save_config(settings, args.save_config):
        sys.exit(1)
    spawn(args.mode, f, settings)
