#!/usr/bin/env python3
"""
Demo: showing an image downloaded from the web.

Usage:
    python examples/widget2.py
    python examples/widget2.py --url https://example.com/image.png
"""

import argparse
import sys

import vviz

DEFAULT_URL = "https://rustacean.net/assets/rustacean-orig-noshadow.png"


def main():
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--url", default=DEFAULT_URL)
    args, remaining = parser.parse_known_args()

    def app(manager: vviz.Manager):
        image = vviz.load_image_from_url(args.url)
        manager.add_widget2("img", image)
        while True:
            manager.sync_with_gui()

    vviz.run(app, remaining)


if __name__ == "__main__":
    sys.exit(main())
