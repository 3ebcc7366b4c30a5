#!/usr/bin/env python3
"""
Demo: a single cube.

Usage:
    python examples/simple.py
    python examples/simple.py --mode remote
"""

import vviz


def app(manager: vviz.Manager):
    w3d = manager.add_widget3("w3d")
    w3d.place_entity("cube", vviz.colored_cube(1.0))
    while True:
        manager.sync_with_gui()


if __name__ == "__main__":
    vviz.run(app)
