"""
User API for UI interaction.

The application adds controls and widgets through a ``Manager`` and keeps
the returned handles. Handles only touch the manager's local state; nothing
reaches the GUI until ``Manager.sync_with_gui`` flushes the queued messages
and applies the user's edits.
"""

from __future__ import annotations

import enum
import logging
import queue
import time
from typing import Dict, List, Tuple, Type

import numpy as np

from .components import Button, Component, EnumStringRepr, Number, RangedVar, Var, is_integer_number
from .entities import Entity3, NamedEntity3
from .errors import DuplicateLabelError, MessageError, UnknownLabelError, ViewerConnectionError
from .messages import (
    AddButton,
    AddEnumStringRepr,
    AddRangedVar,
    AddVar,
    AddWidget2,
    AddWidget3,
    DeleteComponent,
    PlaceEntity3,
    ToGuiLoopMessage,
    UpdateScenePoseEntity3,
)
from .pose import Isometry3
from .remote import WebsocketServerConnection
from .utils import resolve_config
from .widgets import check_image

LOGGER = logging.getLogger(__name__)


class Shared:
    """State shared between the manager and the handles it hands out."""

    def __init__(self):
        self.components: Dict[str, Component] = {}
        self.widget_labels: List[str] = []
        self.message_queue: List[ToGuiLoopMessage] = []

    def component(self, label: str, expected: Type[Component]):
        component = self.components.get(label)
        if component is None or not isinstance(component, expected):
            raise UnknownLabelError(expected.kind, label)
        return component


class UiButton:
    """Represents a button in the side panel."""

    def __init__(self, shared: Shared, label: str):
        self._shared = shared
        self.label = label

    def was_pressed(self) -> bool:
        """True once per press; reading clears the flag."""
        button = self._shared.component(self.label, Button)
        pressed = button.pressed
        button.pressed = False
        return pressed


class _UiValue:
    """Cached view of a control value."""

    component_type: Type[Component] = Var

    def __init__(self, shared: Shared, label: str, value):
        self._shared = shared
        self.label = label
        self._cache = value

    def _current(self):
        return self._shared.component(self.label, self.component_type).value

    def get_value(self):
        """Current value."""
        self._cache = self._current()
        return self._cache

    def get_new_value(self):
        """Current value if it changed since the last read, otherwise None."""
        value = self._current()
        if value == self._cache:
            return None
        self._cache = value
        return value


class UiVar(_UiValue):
    """A bool (checkbox) or a number (read-only text)."""


class UiRangedVar(_UiValue):
    """A number within ``[min, max]``, shown as a slider.

    Values returned are guaranteed to be within the bounds.
    """

    component_type = RangedVar


class UiEnum(_UiValue):
    """An ``enum.Enum`` member, shown as a selector over all members."""

    component_type = EnumStringRepr

    def __init__(self, shared: Shared, label: str, value: enum.Enum):
        super().__init__(shared, label, value)
        self.enum_type = type(value)

    def _current(self):
        return self.enum_type[super()._current()]


class UiWidget2:
    """2D (image) widget."""

    def __init__(self, shared: Shared, label: str):
        self._shared = shared
        self.label = label

    def set_image(self, image: np.ndarray):
        """Replace the shown image.

        Raises ValueError for images ``add_widget2`` would reject.
        """
        self._shared.message_queue.append(AddWidget2(self.label, check_image(image).copy()))


class UiWidget3:
    """3D widget."""

    def __init__(self, shared: Shared, label: str):
        self._shared = shared
        self.label = label

    def place_entity(self, label: str, entity: Entity3):
        """Adds an entity at the scene origin; an entity with the same label is replaced."""
        self.place_entity_at(label, entity, Isometry3.identity())

    def place_entity_at(self, label: str, entity: Entity3, scene_pose_entity: Isometry3):
        """Adds an entity at ``scene_pose_entity``; an entity with the same label is replaced.

        ``scene_pose_entity`` is the pose of the entity in the scene reference frame.
        """
        named_entity = NamedEntity3(label, entity, scene_pose_entity.copy())
        self._shared.message_queue.append(PlaceEntity3(self.label, named_entity))

    def update_scene_pose_entity(self, label: str, scene_pose_entity: Isometry3):
        """Moves the entity named ``label``; no-op if no such entity exists."""
        self._shared.message_queue.append(
            UpdateScenePoseEntity3(self.label, label, scene_pose_entity.copy())
        )


class Manager:
    """
    Adds controls and widgets to the GUI and receives state updates.

    It communicates with the GUI loop through two queues: to-GUI messages
    are flushed and from-GUI updates applied in ``sync_with_gui``.
    """

    def __init__(self, to_gui_loop: queue.Queue, from_gui_loop: queue.Queue, config=None, connection=None):
        self.config = resolve_config(config)
        self.to_gui_loop = to_gui_loop
        self.from_gui_loop = from_gui_loop
        self.connection = connection
        self.shared = Shared()
        self.sync_interval = self.config.get('sync_interval_ms', 15) / 1000.0

    @staticmethod
    def new_local(to_gui_loop: queue.Queue, from_gui_loop: queue.Queue, config=None) -> Manager:
        """Manager talking to a GUI loop in the same process."""
        return Manager(to_gui_loop, from_gui_loop, config)

    @staticmethod
    def new_remote(config=None) -> Manager:
        """Manager serving a remote viewer over a websocket.

        Blocks until a viewer connects, or raises ``ViewerConnectionError``
        after ``remote_connect_timeout`` seconds.
        """
        config = resolve_config(config)
        to_gui_loop: queue.Queue = queue.Queue()
        from_gui_loop: queue.Queue = queue.Queue()

        connection = WebsocketServerConnection(to_gui_loop, from_gui_loop, config)
        connection.start()
        timeout = config.get('remote_connect_timeout')
        if not connection.wait_for_viewer(timeout):
            connection.close()
            raise ViewerConnectionError(f"No viewer connected to {connection.url} within {timeout}s")
        return Manager(to_gui_loop, from_gui_loop, config, connection)

    # ------------------------------------------------------------------ #
    # Controls
    # ------------------------------------------------------------------ #
    def _add_component(self, label: str, component: Component, message: ToGuiLoopMessage):
        if label in self.shared.components:
            raise DuplicateLabelError("control", label)
        self.shared.components[label] = component
        self.shared.message_queue.append(message)

    def add_button(self, label: str) -> UiButton:
        """Adds a button to the side panel."""
        self._add_component(label, Button(), AddButton(label))
        return UiButton(self.shared, label)

    def add_bool(self, label: str, value: bool) -> UiVar:
        """Adds a boolean as a checkbox to the side panel."""
        value = bool(value)
        self._add_component(label, Var(value), AddVar(label, value))
        return UiVar(self.shared, label, value)

    def add_number(self, label: str, value: Number) -> UiVar:
        """Adds a number as a read-only text to the side panel."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"add_number expects an int or float, got {type(value).__name__}")
        self._add_component(label, Var(value), AddVar(label, value))
        return UiVar(self.shared, label, value)

    def add_ranged_value(self, label: str, value: Number, min_max: Tuple[Number, Number]) -> UiRangedVar:
        """Adds a number as a slider over ``[min, max]`` to the side panel.

        The slider is integer-valued when value, min and max are all ints.
        """
        min_value, max_value = min_max
        if not all(is_integer_number(v) for v in (value, min_value, max_value)):
            value, min_value, max_value = float(value), float(min_value), float(max_value)
        component = RangedVar(value, min_value, max_value, steps=self.config.get('ranged_float_steps', 1000))
        self._add_component(label, component, AddRangedVar(label, value, min_value, max_value))
        return UiRangedVar(self.shared, label, value)

    def add_enum(self, label: str, value: enum.Enum) -> UiEnum:
        """Adds an enum member as a selector over all members of its type."""
        if not isinstance(value, enum.Enum):
            raise TypeError(f"add_enum expects an enum member, got {type(value).__name__}")
        names = [member.name for member in type(value)]
        self._add_component(
            label,
            EnumStringRepr(value.name, names),
            AddEnumStringRepr(label, value.name, names),
        )
        return UiEnum(self.shared, label, value)

    def remove_component(self, label: str):
        """Removes a control from the side panel."""
        if self.shared.components.pop(label, None) is None:
            raise UnknownLabelError("control", label)
        self.shared.message_queue.append(DeleteComponent(label))

    # ------------------------------------------------------------------ #
    # Widgets
    # ------------------------------------------------------------------ #
    def _add_widget(self, label: str, message: ToGuiLoopMessage):
        if label in self.shared.widget_labels:
            raise DuplicateLabelError("widget", label)
        self.shared.widget_labels.append(label)
        self.shared.message_queue.append(message)

    def add_widget2(self, label: str, image: np.ndarray) -> UiWidget2:
        """Adds a 2D widget showing ``image`` (non-empty uint8 HxW, HxWx3 BGR or HxWx4 BGRA)."""
        image = check_image(image)
        self._add_widget(label, AddWidget2(label, image.copy()))
        return UiWidget2(self.shared, label)

    def add_widget3(self, label: str) -> UiWidget3:
        """Adds a 3D widget to the main panel."""
        self._add_widget(label, AddWidget3(label))
        return UiWidget3(self.shared, label)

    # ------------------------------------------------------------------ #
    # Synchronization
    # ------------------------------------------------------------------ #
    def sync_with_gui(self):
        """
        Reconcile with the GUI. Should be called repeatedly, e.g. once per loop.

        Queued messages are sent in the order they were issued; then all
        pending user edits are applied to the local controls.
        """
        messages, self.shared.message_queue = self.shared.message_queue, []
        for message in messages:
            self.to_gui_loop.put(message)

        while True:
            try:
                message = self.from_gui_loop.get_nowait()
            except queue.Empty:
                break
            try:
                message.update(self.shared.components)
            except MessageError as e:
                LOGGER.warning("Dropping %s: %s", type(message).__name__, e)

        if self.sync_interval > 0:
            time.sleep(self.sync_interval)

    def close(self):
        """Stop the remote connection, if any."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None
