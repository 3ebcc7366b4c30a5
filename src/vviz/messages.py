"""
Messages exchanged between the manager and the GUI loop.

To-GUI messages carry scene and control mutations from the application to
the presentation layer; from-GUI messages carry user edits back. Both
directions share one JSON wire format: a frame is an array of objects, each
with a ``"type"`` discriminator and the message fields.
"""

from __future__ import annotations

import base64
import json
import logging
import math
from dataclasses import dataclass, fields
from typing import Dict, List, Sequence, Type, Union

import cv2
import numpy as np

from .components import Button, Component, EnumStringRepr, Number, RangedVar, Var
from .entities import NamedEntity3
from .errors import MessageError
from .pose import Isometry3

LOGGER = logging.getLogger(__name__)

_REGISTRY: Dict[str, Type] = {}


def _register(cls):
    _REGISTRY[cls.__name__] = cls
    return cls


class Message:
    """Common serialization for all messages."""

    def to_dict(self) -> Dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["type"] = type(self).__name__
        return data

    @classmethod
    def from_dict(cls, data: Dict):
        return cls(**{f.name: data[f.name] for f in fields(cls)})


class ToGuiLoopMessage(Message):
    """Application -> presentation."""

    def update_gui(self, data) -> None:
        raise NotImplementedError


class FromGuiLoopMessage(Message):
    """Presentation -> application."""

    def update(self, components: Dict[str, Component]) -> None:
        raise NotImplementedError


def _lookup(components: Dict[str, Component], label: str, expected: Type[Component]):
    component = components.get(label)
    if component is None:
        raise MessageError(f"Update for unknown component '{label}'")
    if not isinstance(component, expected):
        raise MessageError(
            f"Component '{label}' is a {type(component).__name__}, expected {expected.__name__}"
        )
    return component


def _check_number(label: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MessageError(f"Value {value!r} for '{label}' is not a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise MessageError(f"Value {value!r} for '{label}' is not a finite number")


def _lookup_widget(data, label: str, expected_kind: str):
    widget = data.widgets.get(label)
    if widget is None:
        raise MessageError(f"Unknown widget '{label}'")
    if widget.kind != expected_kind:
        raise MessageError(f"Widget '{label}' is a {widget.kind} widget, expected {expected_kind}")
    return widget


# ---------------------------------------------------------------------- #
# To GUI loop
# ---------------------------------------------------------------------- #
@_register
@dataclass
class AddButton(ToGuiLoopMessage):
    label: str

    def update_gui(self, data) -> None:
        data.components[self.label] = Button()


@_register
@dataclass
class AddVar(ToGuiLoopMessage):
    label: str
    value: Union[bool, Number]

    def update_gui(self, data) -> None:
        data.components[self.label] = Var(self.value)


@_register
@dataclass
class AddRangedVar(ToGuiLoopMessage):
    label: str
    value: Number
    min_value: Number
    max_value: Number

    def update_gui(self, data) -> None:
        data.components[self.label] = RangedVar(
            self.value, self.min_value, self.max_value, steps=data.ranged_float_steps
        )


@_register
@dataclass
class AddEnumStringRepr(ToGuiLoopMessage):
    label: str
    value: str
    values: List[str]

    def update_gui(self, data) -> None:
        data.components[self.label] = EnumStringRepr(self.value, list(self.values))


@_register
@dataclass
class DeleteComponent(ToGuiLoopMessage):
    label: str

    def update_gui(self, data) -> None:
        data.components.pop(self.label, None)


def encode_image(image: np.ndarray) -> str:
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise MessageError("Failed to PNG-encode image")
    return base64.b64encode(buffer.tobytes()).decode("ascii")


def decode_image(payload: str) -> np.ndarray:
    try:
        buffer = np.frombuffer(base64.b64decode(payload), dtype=np.uint8)
    except (ValueError, TypeError) as e:
        raise MessageError(f"Invalid image payload: {e}") from e
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise MessageError("Image payload is not a decodable PNG")
    return image


@_register
@dataclass(eq=False)
class AddWidget2(ToGuiLoopMessage):
    """Adds a 2D (image) widget, or replaces the image of an existing one."""

    label: str
    image: np.ndarray

    def update_gui(self, data) -> None:
        widget = data.widgets.get(self.label)
        if widget is None:
            data.widgets[self.label] = data.new_widget2(self.image)
        elif widget.kind == "widget2":
            widget.set_image(self.image)
        else:
            raise MessageError(f"Widget '{self.label}' is a {widget.kind} widget, expected widget2")

    def __eq__(self, other) -> bool:
        if not isinstance(other, AddWidget2):
            return NotImplemented
        return self.label == other.label and np.array_equal(self.image, other.image)

    def to_dict(self) -> Dict:
        height, width = self.image.shape[:2]
        return {
            "type": type(self).__name__,
            "label": self.label,
            "width": width,
            "height": height,
            "png": encode_image(self.image),
        }

    @classmethod
    def from_dict(cls, data: Dict):
        return cls(label=data["label"], image=decode_image(data["png"]))


@_register
@dataclass
class AddWidget3(ToGuiLoopMessage):
    label: str

    def update_gui(self, data) -> None:
        if self.label not in data.widgets:
            data.widgets[self.label] = data.new_widget3()


@_register
@dataclass
class PlaceEntity3(ToGuiLoopMessage):
    """Inserts an entity into a 3D widget, replacing one with the same label."""

    widget_label: str
    named_entity: NamedEntity3

    def update_gui(self, data) -> None:
        widget = _lookup_widget(data, self.widget_label, "widget3")
        widget.entities[self.named_entity.label] = self.named_entity

    def to_dict(self) -> Dict:
        return {
            "type": type(self).__name__,
            "widget_label": self.widget_label,
            "named_entity": self.named_entity.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict):
        return cls(
            widget_label=data["widget_label"],
            named_entity=NamedEntity3.from_dict(data["named_entity"]),
        )


@_register
@dataclass
class UpdateScenePoseEntity3(ToGuiLoopMessage):
    """Moves an existing entity; no-op if the widget holds no such entity."""

    widget_label: str
    entity_label: str
    scene_pose_entity: Isometry3

    def update_gui(self, data) -> None:
        widget = _lookup_widget(data, self.widget_label, "widget3")
        named_entity = widget.entities.get(self.entity_label)
        if named_entity is None:
            LOGGER.debug(
                "Pose update for unknown entity '%s' in widget '%s' ignored",
                self.entity_label,
                self.widget_label,
            )
            return
        named_entity.scene_pose_entity = self.scene_pose_entity

    def to_dict(self) -> Dict:
        return {
            "type": type(self).__name__,
            "widget_label": self.widget_label,
            "entity_label": self.entity_label,
            "scene_pose_entity": self.scene_pose_entity.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict):
        return cls(
            widget_label=data["widget_label"],
            entity_label=data["entity_label"],
            scene_pose_entity=Isometry3.from_dict(data["scene_pose_entity"]),
        )


# ---------------------------------------------------------------------- #
# From GUI loop
# ---------------------------------------------------------------------- #
@_register
@dataclass
class UpdateButton(FromGuiLoopMessage):
    label: str

    def update(self, components: Dict[str, Component]) -> None:
        _lookup(components, self.label, Button).pressed = True


@_register
@dataclass
class UpdateValue(FromGuiLoopMessage):
    label: str
    value: Union[bool, Number]

    def update(self, components: Dict[str, Component]) -> None:
        component = _lookup(components, self.label, Var)
        if isinstance(component.value, bool):
            if not isinstance(self.value, bool):
                raise MessageError(f"Value {self.value!r} for checkbox '{self.label}' is not a bool")
        else:
            _check_number(self.label, self.value)
        component.value = self.value


@_register
@dataclass
class UpdateRangedValue(FromGuiLoopMessage):
    label: str
    value: Number

    def update(self, components: Dict[str, Component]) -> None:
        component = _lookup(components, self.label, RangedVar)
        _check_number(self.label, self.value)
        component.value = component.clamp(self.value)


@_register
@dataclass
class UpdateEnumStringRepr(FromGuiLoopMessage):
    label: str
    value: str

    def update(self, components: Dict[str, Component]) -> None:
        component = _lookup(components, self.label, EnumStringRepr)
        if self.value not in component.values:
            raise MessageError(f"'{self.value}' is not a valid value for enum '{self.label}'")
        component.value = self.value


def update_message_for(label: str, component: Component) -> FromGuiLoopMessage:
    """The from-GUI message reporting the current state of an edited component."""
    if isinstance(component, Button):
        return UpdateButton(label)
    if isinstance(component, RangedVar):
        return UpdateRangedValue(label, component.value)
    if isinstance(component, EnumStringRepr):
        return UpdateEnumStringRepr(label, component.value)
    if isinstance(component, Var):
        return UpdateValue(label, component.value)
    raise MessageError(f"No update message for component type {type(component).__name__}")


def add_message_for(label: str, component: Component) -> ToGuiLoopMessage:
    """The to-GUI message recreating a component with its current value."""
    if isinstance(component, Button):
        return AddButton(label)
    if isinstance(component, RangedVar):
        return AddRangedVar(label, component.value, component.min_value, component.max_value)
    if isinstance(component, EnumStringRepr):
        return AddEnumStringRepr(label, component.value, list(component.values))
    if isinstance(component, Var):
        return AddVar(label, component.value)
    raise MessageError(f"No add message for component type {type(component).__name__}")


# ---------------------------------------------------------------------- #
# Wire codec
# ---------------------------------------------------------------------- #
def encode_messages(messages: Sequence[Message]) -> str:
    """Serialize a list of messages into one JSON text frame."""
    return json.dumps([m.to_dict() for m in messages])


def decode_messages(text: Union[str, bytes], expected: Type[Message] = Message) -> List[Message]:
    """Parse a JSON text frame into messages of type ``expected``."""
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MessageError(f"Malformed frame: {e}") from e
    if not isinstance(payload, list):
        raise MessageError("Frame must be a JSON array of messages")

    messages = []
    for item in payload:
        if not isinstance(item, dict):
            raise MessageError(f"Message must be an object, got {type(item).__name__}")
        type_name = item.get("type")
        cls = _REGISTRY.get(type_name) if isinstance(type_name, str) else None
        if cls is None:
            raise MessageError(f"Unknown message type: {item.get('type')!r}")
        if not issubclass(cls, expected):
            raise MessageError(f"Unexpected {cls.__name__} in a {expected.__name__} frame")
        try:
            messages.append(cls.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            raise MessageError(f"Invalid {cls.__name__}: {e}") from e
    return messages
