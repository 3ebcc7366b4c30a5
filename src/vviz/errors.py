"""
Exception types raised by vviz.
"""


class VVizError(Exception):
    """Base class for all vviz errors."""


class DuplicateLabelError(VVizError, ValueError):
    """A control or widget with the same label already exists."""

    def __init__(self, kind: str, label: str):
        super().__init__(f"{kind} with label '{label}' already exists")
        self.kind = kind
        self.label = label


class UnknownLabelError(VVizError, KeyError):
    """No control or widget is registered under the given label."""

    def __init__(self, kind: str, label: str):
        super().__init__(f"no {kind} with label '{label}'")
        self.kind = kind
        self.label = label

    def __str__(self) -> str:
        return self.args[0]


class MessageError(VVizError):
    """A message could not be decoded or applied."""


class EntityError(VVizError, ValueError):
    """Entity geometry is malformed."""


class ViewerConnectionError(VVizError):
    """The remote viewer could not be reached or did not connect in time."""
