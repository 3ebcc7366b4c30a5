"""
Control components.

The same component types hold control state on both sides of the
synchronization boundary: the manager keeps the values the application
reads, the GUI keeps the values the user edits. On the GUI side every
interactive component is presented as an OpenCV trackbar, so each one knows
how to map its value to and from an integer trackbar position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

Number = Union[int, float]


def is_integer_number(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class Component:
    """Base class for side-panel controls."""

    kind = "component"

    def trackbar_count(self) -> Optional[int]:
        """Maximum trackbar position, or None for display-only components."""
        return None

    def trackbar_position(self) -> int:
        return 0

    def on_trackbar(self, position: int) -> bool:
        """Apply a trackbar position; return True if the value changed."""
        return False

    def describe(self, label: str) -> str:
        return label


@dataclass
class Button(Component):
    """Push button; ``pressed`` is latched until the application reads it."""

    pressed: bool = False

    kind = "button"

    def trackbar_count(self) -> Optional[int]:
        return 1

    def on_trackbar(self, position: int) -> bool:
        # A button trackbar snaps back to 0; reaching 1 is a click.
        return position >= 1

    def describe(self, label: str) -> str:
        return f"[{label}]"


@dataclass
class Var(Component):
    """A boolean (checkbox) or a number (read-only display)."""

    value: Union[bool, Number]

    kind = "var"

    def trackbar_count(self) -> Optional[int]:
        if isinstance(self.value, bool):
            return 1
        return None

    def trackbar_position(self) -> int:
        return int(bool(self.value)) if isinstance(self.value, bool) else 0

    def on_trackbar(self, position: int) -> bool:
        if not isinstance(self.value, bool):
            return False
        new_value = position >= 1
        changed = new_value != self.value
        self.value = new_value
        return changed

    def describe(self, label: str) -> str:
        if isinstance(self.value, bool):
            return f"{label}: {'on' if self.value else 'off'}"
        return f"{label}: {self.value}"


@dataclass
class RangedVar(Component):
    """A number within ``[min_value, max_value]``, shown as a slider.

    Integer ranges map one-to-one onto trackbar positions; float ranges are
    discretized into ``steps`` positions.
    """

    value: Number
    min_value: Number
    max_value: Number
    steps: int = 1000

    kind = "ranged_var"

    def __post_init__(self):
        if self.min_value > self.max_value:
            raise ValueError(f"Invalid range: min {self.min_value} > max {self.max_value}")
        if not self.min_value <= self.value <= self.max_value:
            raise ValueError(
                f"Value {self.value} outside of range [{self.min_value}, {self.max_value}]"
            )

    @property
    def is_integer(self) -> bool:
        return (
            is_integer_number(self.value)
            and is_integer_number(self.min_value)
            and is_integer_number(self.max_value)
        )

    def clamp(self, value: Number) -> Number:
        clamped = min(max(value, self.min_value), self.max_value)
        return int(clamped) if self.is_integer else float(clamped)

    def trackbar_count(self) -> Optional[int]:
        if self.is_integer:
            return int(self.max_value - self.min_value)
        return self.steps

    def trackbar_position(self) -> int:
        if self.is_integer:
            return int(self.value - self.min_value)
        span = self.max_value - self.min_value
        if span == 0:
            return 0
        return int(round((self.value - self.min_value) / span * self.steps))

    def value_at(self, position: int) -> Number:
        if self.is_integer:
            return self.clamp(self.min_value + position)
        return self.clamp(self.min_value + position * (self.max_value - self.min_value) / self.steps)

    def on_trackbar(self, position: int) -> bool:
        new_value = self.value_at(position)
        changed = new_value != self.value
        self.value = new_value
        return changed

    def describe(self, label: str) -> str:
        if self.is_integer:
            return f"{label}: {self.value}  [{self.min_value}, {self.max_value}]"
        return f"{label}: {self.value:.4g}  [{self.min_value:g}, {self.max_value:g}]"


@dataclass
class EnumStringRepr(Component):
    """An enum value by name, with the list of possible names (combo box)."""

    value: str
    values: List[str] = field(default_factory=list)

    kind = "enum"

    def __post_init__(self):
        if self.value not in self.values:
            raise ValueError(f"Enum value {self.value!r} not in {self.values}")

    def trackbar_count(self) -> Optional[int]:
        return max(len(self.values) - 1, 0)

    def trackbar_position(self) -> int:
        return self.values.index(self.value)

    def on_trackbar(self, position: int) -> bool:
        position = min(max(position, 0), len(self.values) - 1)
        new_value = self.values[position]
        changed = new_value != self.value
        self.value = new_value
        return changed

    def describe(self, label: str) -> str:
        return f"{label}: {self.value}"
