"""
vviz - Visualization and debugging GUI toolkit for computer vision.

This package provides functionality for:
- 2D (image) and 3D (scene) widgets
- Entities such as cubes, triangles, points and coordinate axes
- Controls (sliders, checkboxes, enums, buttons) bound to application values
- Local OpenCV GUI or a remote viewer connected over a websocket
"""

from .app import VVizMode, run, spawn
from .components import Button, EnumStringRepr, RangedVar, Var
from .entities import (
    Axis3,
    Color,
    ColoredPoints3,
    ColoredTriangle,
    LineSegments3,
    Mesh3,
    NamedEntity3,
    colored_cube,
    colored_triangles,
    load_obj,
)
from .errors import (
    DuplicateLabelError,
    EntityError,
    MessageError,
    UnknownLabelError,
    ViewerConnectionError,
    VVizError,
)
from .gui import GuiData, GuiLoop, HighGuiFrontend
from .manager import Manager, UiButton, UiEnum, UiRangedVar, UiVar, UiWidget2, UiWidget3
from .pose import CalibrationData, Isometry3, rot_x, rot_y, rot_z
from .remote import RemoteViewer, WebsocketServerConnection
from .utils import get_config, load_image_from_url, setup_logging
from .widgets import Widget2, Widget3, compute_grid_layout

__version__ = "0.5.0"

__all__ = [
    # App
    "VVizMode",
    "run",
    "spawn",
    # Manager
    "Manager",
    "UiButton",
    "UiEnum",
    "UiRangedVar",
    "UiVar",
    "UiWidget2",
    "UiWidget3",
    # Entities & math
    "Axis3",
    "Color",
    "ColoredPoints3",
    "ColoredTriangle",
    "LineSegments3",
    "Mesh3",
    "NamedEntity3",
    "colored_cube",
    "colored_triangles",
    "load_obj",
    "CalibrationData",
    "Isometry3",
    "rot_x",
    "rot_y",
    "rot_z",
    # Controls
    "Button",
    "EnumStringRepr",
    "RangedVar",
    "Var",
    # GUI
    "GuiData",
    "GuiLoop",
    "HighGuiFrontend",
    "Widget2",
    "Widget3",
    "compute_grid_layout",
    # Remote
    "RemoteViewer",
    "WebsocketServerConnection",
    # Utilities
    "get_config",
    "load_image_from_url",
    "setup_logging",
    # Errors
    "VVizError",
    "DuplicateLabelError",
    "EntityError",
    "MessageError",
    "UnknownLabelError",
    "ViewerConnectionError",
]
