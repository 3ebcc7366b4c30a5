#!/usr/bin/env python3
"""
Demo: moving a cube with controls.

The "delta" slider sets the position or the rotation (see "manipulation")
of the cube along the axis selected by "dimension".

Usage:
    python examples/interaction.py
"""

import enum

import numpy as np

import vviz


class Manipulation(enum.Enum):
    POSITION = 1
    ORIENTATION = 2


def app(manager: vviz.Manager):
    w3d = manager.add_widget3("w3d")
    w3d.place_entity("cube", vviz.colored_cube(1.0))
    scene_pose_entity = vviz.Isometry3.identity()

    ui_delta = manager.add_ranged_value("delta", 0.0, (-1.0, 1.0))
    ui_dim = manager.add_ranged_value("dimension", 0, (0, 2))
    ui_manipulation = manager.add_enum("manipulation", Manipulation.POSITION)

    while True:
        if (
            ui_delta.get_new_value() is not None
            or ui_dim.get_new_value() is not None
            or ui_manipulation.get_new_value() is not None
        ):
            delta = ui_delta.get_value()
            dim = ui_dim.get_value()
            if ui_manipulation.get_value() == Manipulation.POSITION:
                scene_pose_entity.translation[dim] = delta
            else:
                scaled_axis = np.zeros(3)
                scaled_axis[dim] = delta
                scene_pose_entity = vviz.Isometry3.from_scaled_axis(
                    scaled_axis, scene_pose_entity.translation
                )
            w3d.update_scene_pose_entity("cube", scene_pose_entity)
        manager.sync_with_gui()


if __name__ == "__main__":
    vviz.run(app)
