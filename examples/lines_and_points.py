#!/usr/bin/env python3
"""
Demo: a coordinate frame and a small point cloud.

Usage:
    python examples/lines_and_points.py
"""

import vviz


def app(manager: vviz.Manager):
    w3d = manager.add_widget3("w3d")
    w3d.place_entity_at("axis", vviz.Axis3.from_scale(1.0).to_entity(), vviz.rot_x(0.7))
    w3d.place_entity_at(
        "points",
        vviz.ColoredPoints3.from_arrays_and_color(
            [[0.50, 0.50, 0.5], [0.25, 0.50, 0.5], [0.50, 0.25, 0.5], [0.25, 0.25, 0.5]],
            vviz.Color(1.0, 0.0, 0.0),
        ).to_entity(),
        vviz.rot_x(0.7),
    )
    while True:
        manager.sync_with_gui()


if __name__ == "__main__":
    vviz.run(app)
