#!/usr/bin/env python3
"""
Demo: several 3D widgets side by side, and a button.

Usage:
    python examples/multi_widgets.py
"""

import logging

import vviz

LOGGER = logging.getLogger(__name__)


def app(manager: vviz.Manager):
    w3d = manager.add_widget3("w3d")
    w3d.place_entity_at("cube", vviz.colored_cube(0.5), vviz.Isometry3.from_translation(0.0, 0.75, 0.0))
    w3d.place_entity_at("cube2", vviz.colored_cube(0.5), vviz.Isometry3.from_translation(0.0, -0.75, 0.0))

    w2 = manager.add_widget3("w2")
    triangles = [
        vviz.ColoredTriangle(
            face=[[2.0, -2.0, 0.0], [2.0, 1.0, 0.0], [0.0, 1.0, 0.0]],
            color=vviz.Color(1.0, 0.0, 0.0),
        )
    ]
    w2.place_entity("triangles", vviz.colored_triangles(triangles))
    manager.add_widget3("empty")

    ui_a_button = manager.add_button("a button")
    while True:
        if ui_a_button.was_pressed():
            LOGGER.info("a button pressed")
        manager.sync_with_gui()


if __name__ == "__main__":
    vviz.run(app)
