"""
Remote visualization over a websocket.

The application side runs a websocket server; a viewer process connects to
it and shows the GUI. Both ends run the same lockstep loop: the viewer sends
a frame with its pending from-GUI messages, the server forwards them to the
manager and answers with all queued to-GUI messages.

Usage:
    vviz-viewer                          # connect to ws://127.0.0.1:9001
    vviz-viewer --url ws://host:9001     # connect to another host
"""

from __future__ import annotations

import argparse
import logging
import queue
import sys
import threading
import time
from typing import List, Optional

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.frames import CloseCode
from websockets.sync.client import connect
from websockets.sync.server import serve

from .errors import MessageError, ViewerConnectionError
from .gui import GuiData, GuiLoop
from .messages import (
    FromGuiLoopMessage,
    Message,
    ToGuiLoopMessage,
    decode_messages,
    encode_messages,
)
from .utils import get_config, resolve_config, setup_logging

LOGGER = logging.getLogger(__name__)


def _drain(messages: queue.Queue) -> List[Message]:
    drained = []
    while True:
        try:
            drained.append(messages.get_nowait())
        except queue.Empty:
            return drained


class WebsocketServerConnection:
    """
    Application-side endpoint serving one viewer at a time.

    Every message passing through is also applied to a headless mirror of
    the GUI state, so a viewer that connects late first receives a snapshot
    of the current scene.
    """

    def __init__(self, to_gui_loop: queue.Queue, from_gui_loop: queue.Queue, config=None):
        self.config = resolve_config(config)
        self.to_gui_loop = to_gui_loop
        self.from_gui_loop = from_gui_loop
        self.host = self.config.get('remote_host', '127.0.0.1')
        self.port = int(self.config.get('remote_port', 9001))
        self.sync_interval = self.config.get('sync_interval_ms', 15) / 1000.0

        self.mirror = GuiData(self.config)
        self._server = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._websocket = None
        self._viewer_connected = threading.Event()

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    def start(self):
        """Bind the server socket and serve in a background thread."""
        try:
            self._server = serve(self._handler, self.host, self.port)
        except OSError as e:
            raise ViewerConnectionError(f"Cannot listen on {self.url}: {e}") from e

        # Port 0 binds an ephemeral port.
        self.port = self._server.socket.getsockname()[1]
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="vviz-websocket-server", daemon=True
        )
        self._thread.start()
        LOGGER.info("Waiting for a viewer on %s", self.url)

    def wait_for_viewer(self, timeout: Optional[float] = None) -> bool:
        """Block until a viewer is connected; False on timeout."""
        return self._viewer_connected.wait(timeout)

    @property
    def viewer_connected(self) -> bool:
        return self._viewer_connected.is_set()

    def _handler(self, websocket):
        with self._lock:
            if self._websocket is not None:
                LOGGER.warning("Refusing viewer %s: another viewer is connected", websocket.remote_address)
                websocket.close(CloseCode.TRY_AGAIN_LATER, "another viewer is connected")
                return
            self._websocket = websocket

        LOGGER.info("Viewer connected from %s", websocket.remote_address)
        self._viewer_connected.set()
        pending = self.mirror.snapshot()
        try:
            while True:
                incoming = decode_messages(websocket.recv(), FromGuiLoopMessage)
                for message in incoming:
                    self._mirror_update(message)
                    self.from_gui_loop.put(message)

                for message in _drain(self.to_gui_loop):
                    self._mirror_apply(message)
                    pending.append(message)

                websocket.send(encode_messages(pending))
                pending = []
                time.sleep(self.sync_interval)
        except ConnectionClosed as e:
            LOGGER.info("Viewer disconnected: %s", e)
        except MessageError as e:
            LOGGER.error("Protocol error from viewer: %s", e)
            websocket.close(CloseCode.INVALID_DATA, "malformed frame")
        finally:
            with self._lock:
                self._websocket = None
                self._viewer_connected.clear()

    def _mirror_apply(self, message: ToGuiLoopMessage):
        try:
            self.mirror.apply(message)
        except (MessageError, ValueError) as e:
            LOGGER.warning("Mirror dropped %s: %s", type(message).__name__, e)

    def _mirror_update(self, message: FromGuiLoopMessage):
        try:
            message.update(self.mirror.components)
        except MessageError as e:
            LOGGER.debug("Mirror dropped %s: %s", type(message).__name__, e)

    def close(self):
        """Disconnect the viewer and stop the server."""
        with self._lock:
            websocket = self._websocket
        if websocket is not None:
            websocket.close(CloseCode.GOING_AWAY, "application exiting")
        if self._server is not None:
            self._server.shutdown()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        LOGGER.info("Websocket server stopped")


class RemoteViewer:
    """Viewer-side endpoint: mirrors the lockstep loop and runs the GUI loop."""

    def __init__(self, url: Optional[str] = None, config=None, frontend=None):
        self.config = resolve_config(config)
        self.url = url or f"ws://{self.config['remote_host']}:{self.config['remote_port']}"
        self.sync_interval = self.config.get('sync_interval_ms', 15) / 1000.0
        self.to_gui_loop: queue.Queue = queue.Queue()
        self.from_gui_loop: queue.Queue = queue.Queue()
        self.gui_loop = GuiLoop(self.to_gui_loop, self.from_gui_loop, self.config, frontend)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def connect(self, timeout: Optional[float] = 10.0):
        try:
            return connect(self.url, open_timeout=timeout)
        except (OSError, WebSocketException) as e:
            raise ViewerConnectionError(f"Cannot connect to {self.url}: {e}") from e

    def exchange(self, websocket) -> int:
        """One lockstep step; return the number of to-GUI messages received."""
        websocket.send(encode_messages(_drain(self.from_gui_loop)))
        messages = decode_messages(websocket.recv(), ToGuiLoopMessage)
        for message in messages:
            self.to_gui_loop.put(message)
        return len(messages)

    def _sync_forever(self, websocket):
        try:
            with websocket:
                while not self._stop.is_set():
                    self.exchange(websocket)
                    time.sleep(self.sync_interval)
        except ConnectionClosed as e:
            LOGGER.info("Connection to application closed: %s", e)
        except MessageError as e:
            LOGGER.error("Protocol error from application: %s", e)
        finally:
            self.gui_loop.stop()

    def start(self, timeout: Optional[float] = 10.0):
        """Connect and start the synchronization thread."""
        websocket = self.connect(timeout)
        LOGGER.info("Connected to %s", self.url)
        self._thread = threading.Thread(
            target=self._sync_forever, args=(websocket,), name="vviz-viewer-sync", daemon=True
        )
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    def run(self):
        """Connect, then block on the GUI loop until the window closes."""
        self.start()
        try:
            self.gui_loop.run()
        finally:
            self.stop()


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="vviz remote viewer")
    parser.add_argument(
        "--url",
        default=None,
        help="Websocket URL of the application (default: ws://<remote_host>:<remote_port>)",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to a JSON configuration file",
    )
    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Entry point of the ``vviz-viewer`` command."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    viewer = RemoteViewer(args.url, get_config(args.config))
    try:
        viewer.run()
    except ViewerConnectionError as e:
        LOGGER.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
