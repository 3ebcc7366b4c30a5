"""
Main entry point for the vviz showcase demo.

Shows a cube which can be moved and rotated with the sliders, a coordinate
frame with a few points and a generated image.

Usage:
    python -m vviz                      # Run locally
    python -m vviz --mode remote        # Wait for vviz-viewer to connect
    python -m vviz --verbose            # Enable debug logging
"""

from __future__ import annotations

import enum
import logging

import cv2
import numpy as np

from .app import run
from .entities import Axis3, Color, ColoredPoints3, LineSegments3, colored_cube
from .manager import Manager
from .pose import Isometry3, rot_x

LOGGER = logging.getLogger(__name__)


class Manipulation(enum.Enum):
    POSITION = 1
    ORIENTATION = 2


def gradient_image(width: int = 320, height: int = 240) -> np.ndarray:
    """BGR test pattern: horizontal hue sweep with a vertical brightness ramp."""
    hue = np.tile(np.linspace(0, 179, width, dtype=np.uint8), (height, 1))
    value = np.tile(np.linspace(255, 64, height, dtype=np.uint8)[:, np.newaxis], (1, width))
    hsv = np.dstack([hue, np.full_like(hue, 255), value])
    return cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)


def showcase(manager: Manager):
    w3d = manager.add_widget3("w3d")
    w3d.place_entity("cube", colored_cube(0.5))
    w3d.place_entity_at("axis", Axis3.from_scale(1.0).to_entity(), rot_x(0.7))
    w3d.place_entity_at(
        "points",
        ColoredPoints3.from_arrays_and_color(
            [[0.50, 0.50, 0.5], [0.25, 0.50, 0.5], [0.50, 0.25, 0.5], [0.25, 0.25, 0.5]],
            Color(1.0, 0.0, 0.0),
        ).to_entity(),
        rot_x(0.7),
    )
    manager.add_widget2("image", gradient_image())

    ui_delta = manager.add_ranged_value("delta", 0.0, (-1.0, 1.0))
    ui_dim = manager.add_ranged_value("dimension", 0, (0, 2))
    ui_manipulation = manager.add_enum("manipulation", Manipulation.POSITION)
    ui_show_axis = manager.add_bool("show axis", True)
    ui_reset = manager.add_button("reset")
    manager.add_number("cube scale", 0.5)

    scene_pose_cube = Isometry3.identity()
    while True:
        changed = (
            ui_delta.get_new_value() is not None
            or ui_dim.get_new_value() is not None
            or ui_manipulation.get_new_value() is not None
        )
        if ui_reset.was_pressed():
            LOGGER.info("Cube pose reset")
            scene_pose_cube = Isometry3.identity()
            w3d.update_scene_pose_entity("cube", scene_pose_cube)
        elif changed:
            delta = ui_delta.get_value()
            dim = ui_dim.get_value()
            if ui_manipulation.get_value() == Manipulation.POSITION:
                scene_pose_cube.translation[dim] = delta
            else:
                scaled_axis = np.zeros(3)
                scaled_axis[dim] = delta
                scene_pose_cube = Isometry3.from_rotation_vector(scaled_axis, scene_pose_cube.translation)
            w3d.update_scene_pose_entity("cube", scene_pose_cube)

        show_axis = ui_show_axis.get_new_value()
        if show_axis is True:
            w3d.place_entity_at("axis", Axis3.from_scale(1.0).to_entity(), rot_x(0.7))
        elif show_axis is False:
            w3d.place_entity("axis", LineSegments3([], [], []))

        manager.sync_with_gui()


def main(argv=None):
    """Main entry point."""
    run(showcase, argv)
    LOGGER.info("vviz showcase exited normally")


if __name__ == "__main__":
    main()
