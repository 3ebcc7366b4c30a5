"""
GUI loop.

The GUI loop owns the presentation-side copy of all controls and widgets
(``GuiData``). Each frame it applies the messages queued by the manager,
renders the widgets into one canvas and hands it to a frontend. The OpenCV
HighGUI frontend presents controls as trackbars in a separate window and
turns user edits into messages back to the manager.
"""

from __future__ import annotations

import logging
import queue
from functools import partial
from typing import Dict, List, Optional

import cv2
import numpy as np

from .components import Button, Component
from .errors import MessageError
from .messages import (
    AddWidget2,
    AddWidget3,
    PlaceEntity3,
    ToGuiLoopMessage,
    add_message_for,
    update_message_for,
)
from .utils import resolve_config
from .widgets import Rect, Widget2, Widget3, layout_widgets, widget_at

LOGGER = logging.getLogger(__name__)

CANVAS_COLOR = (77, 77, 77)
LABEL_COLOR = (230, 230, 230)
PANEL_COLOR = (40, 40, 40)
PANEL_TEXT_COLOR = (220, 220, 220)
PANEL_LINE_HEIGHT = 22


class GuiData:
    """Controls of the side panel and widgets of the main panel, in insertion order."""

    def __init__(self, config: Optional[Dict] = None):
        self.config = resolve_config(config)
        self.components: Dict[str, Component] = {}
        self.widgets: Dict[str, object] = {}
        self.ranged_float_steps = int(self.config.get('ranged_float_steps', 1000))

    def new_widget2(self, image: np.ndarray) -> Widget2:
        return Widget2(image)

    def new_widget3(self) -> Widget3:
        return Widget3(self.config.get('widget3'))

    def apply(self, message: ToGuiLoopMessage):
        message.update_gui(self)

    def snapshot(self) -> List[ToGuiLoopMessage]:
        """Messages that rebuild the current state on an empty ``GuiData``."""
        messages: List[ToGuiLoopMessage] = [
            add_message_for(label, component) for label, component in self.components.items()
        ]
        for label, widget in self.widgets.items():
            if widget.kind == Widget2.kind:
                messages.append(AddWidget2(label, widget.image))
                continue
            messages.append(AddWidget3(label))
            for named_entity in widget.entities.values():
                messages.append(PlaceEntity3(label, named_entity))
        return messages


class GuiLoop:
    """Message pump and frame composition for one presentation session."""

    def __init__(self, to_gui_loop: queue.Queue, from_gui_loop: queue.Queue, config=None, frontend=None):
        """Initialize the GUI loop.

        Args:
            to_gui_loop: Queue of ``ToGuiLoopMessage`` from the manager
            from_gui_loop: Queue receiving ``FromGuiLoopMessage`` for the manager
            config: Configuration dictionary
            frontend: Presentation frontend; ``HighGuiFrontend`` by default
        """
        self.config = resolve_config(config)
        self.to_gui_loop = to_gui_loop
        self.from_gui_loop = from_gui_loop
        self.data = GuiData(self.config)
        self.frontend = frontend
        self.rects: List[Rect] = []
        self.running = False

    def process_messages(self) -> int:
        """Apply all queued to-GUI messages in order; return how many were applied."""
        count = 0
        while True:
            try:
                message = self.to_gui_loop.get_nowait()
            except queue.Empty:
                break
            try:
                self.data.apply(message)
                count += 1
            except (MessageError, ValueError, cv2.error) as e:
                LOGGER.warning("Dropping %s: %s", type(message).__name__, e)
        return count

    def on_control_changed(self, label: str):
        """Report the current value of an edited control to the manager."""
        component = self.data.components.get(label)
        if component is None:
            LOGGER.debug("Change for removed control '%s' ignored", label)
            return
        self.from_gui_loop.put(update_message_for(label, component))

    def compose(self, width: int, height: int) -> np.ndarray:
        """Render all widgets into one tiled BGR canvas."""
        canvas = np.empty((height, width, 3), dtype=np.uint8)
        canvas[:] = CANVAS_COLOR

        widgets = list(self.data.widgets.items())
        self.rects = layout_widgets([w.aspect_ratio for _, w in widgets], width, height)

        for (label, widget), rect in zip(widgets, self.rects):
            image = widget.render()
            tile = cv2.resize(image, (rect.width, rect.height), interpolation=cv2.INTER_AREA)
            h = min(rect.height, height - rect.y)
            w = min(rect.width, width - rect.x)
            canvas[rect.y:rect.y + h, rect.x:rect.x + w] = tile[:h, :w]
            cv2.putText(canvas, label, (rect.x, max(rect.y - 4, 12)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.4, LABEL_COLOR, 1, cv2.LINE_AA)

        return canvas

    def widget_at(self, x: int, y: int):
        """Widget shown at canvas pixel ``(x, y)`` in the last composed frame."""
        index = widget_at(self.rects, x, y)
        if index is None:
            return None
        widgets = list(self.data.widgets.values())
        return widgets[index] if index < len(widgets) else None

    def reset_views(self):
        for widget in self.data.widgets.values():
            if widget.kind == Widget3.kind:
                widget.reset_view()

    def run(self):
        """Run until the frontend is closed."""
        if self.frontend is None:
            self.frontend = HighGuiFrontend(self.config)

        self.frontend.open(self)
        self.running = True
        LOGGER.info("GUI loop started")
        try:
            while self.running:
                self.process_messages()
                self.frontend.sync_controls(self.data)
                canvas = self.compose(self.frontend.width, self.frontend.height)
                if not self.frontend.show(canvas, self.data):
                    break
        finally:
            self.running = False
            self.frontend.close()
            LOGGER.info("GUI loop stopped")

    def stop(self):
        self.running = False


class HighGuiFrontend:
    """OpenCV HighGUI windows: a main canvas and a controls window with trackbars."""

    def __init__(self, config=None):
        self.config = resolve_config(config)
        self.window_name = self.config.get('window_name', 'vviz')
        self.controls_window_name = self.config.get('controls_window_name', 'vviz controls')
        self.width = int(self.config.get('display_width', 1280))
        self.height = int(self.config.get('display_height', 720))
        self.panel_width = int(self.config.get('controls_panel_width', 360))

        self.loop: Optional[GuiLoop] = None
        self._trackbars: Dict[str, Component] = {}
        self._drag_widget = None
        self._drag_origin = None

    def open(self, loop: GuiLoop):
        self.loop = loop
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.window_name, self.width, self.height)
        cv2.setMouseCallback(self.window_name, self._on_mouse)
        self._open_controls_window()
        LOGGER.info("UI initialized: %dx%d", self.width, self.height)

    def _open_controls_window(self):
        cv2.namedWindow(self.controls_window_name, cv2.WINDOW_AUTOSIZE)
        self._trackbars = {}

    # ------------------------------------------------------------------ #
    # Controls
    # ------------------------------------------------------------------ #
    def sync_controls(self, data: GuiData):
        """Create trackbars for new controls; rebuild the window when one was removed or replaced."""
        interactive = {
            label: component for label, component in data.components.items()
            if component.trackbar_count() is not None
        }
        if any(interactive.get(label) is not component for label, component in self._trackbars.items()):
            # HighGUI cannot delete a single trackbar.
            cv2.destroyWindow(self.controls_window_name)
            self._open_controls_window()

        for label, component in interactive.items():
            if label in self._trackbars:
                continue
            cv2.createTrackbar(
                label,
                self.controls_window_name,
                component.trackbar_position(),
                component.trackbar_count(),
                partial(self._on_trackbar, label),
            )
            self._trackbars[label] = component

    def _on_trackbar(self, label: str, position: int):
        component = self.loop.data.components.get(label)
        if component is None:
            return
        if component.on_trackbar(position):
            self.loop.on_control_changed(label)
        if isinstance(component, Button) and position != 0:
            cv2.setTrackbarPos(label, self.controls_window_name, 0)

    def render_controls_panel(self, data: GuiData) -> np.ndarray:
        """Text panel listing every control with its current value."""
        height = max(PANEL_LINE_HEIGHT * (len(data.components) + 1), 2 * PANEL_LINE_HEIGHT)
        panel = np.empty((height, self.panel_width, 3), dtype=np.uint8)
        panel[:] = PANEL_COLOR
        for row, (label, component) in enumerate(data.components.items(), start=1):
            cv2.putText(panel, component.describe(label), (8, row * PANEL_LINE_HEIGHT - 6),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, PANEL_TEXT_COLOR, 1, cv2.LINE_AA)
        return panel

    # ------------------------------------------------------------------ #
    # Display and events
    # ------------------------------------------------------------------ #
    def show(self, canvas: np.ndarray, data: GuiData) -> bool:
        """Display one frame; return False when the user asked to quit."""
        cv2.imshow(self.window_name, canvas)
        cv2.imshow(self.controls_window_name, self.render_controls_panel(data))

        key = cv2.waitKey(1) & 0xFF
        if key == ord('q') or key == 27:  # 'q' or ESC to quit
            LOGGER.info("User requested exit")
            return False
        if key == ord('r'):
            self.loop.reset_views()

        if cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 1:
            LOGGER.info("Main window closed")
            return False
        return True

    def _on_mouse(self, event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDOWN:
            widget = self.loop.widget_at(x, y)
            if widget is not None and widget.kind == Widget3.kind:
                self._drag_widget = widget
                self._drag_origin = (x, y)
        elif event == cv2.EVENT_MOUSEMOVE and self._drag_widget is not None:
            self._drag_widget.orbit(x - self._drag_origin[0], y - self._drag_origin[1])
            self._drag_origin = (x, y)
        elif event == cv2.EVENT_LBUTTONUP:
            self._drag_widget = None
            self._drag_origin = None
        elif event == cv2.EVENT_MOUSEWHEEL:
            widget = self.loop.widget_at(x, y)
            if widget is not None and widget.kind == Widget3.kind:
                widget.zoom_by(1 if cv2.getMouseWheelDelta(flags) > 0 else -1)

    def close(self):
        cv2.destroyAllWindows()
        LOGGER.info("UI cleaned up")
