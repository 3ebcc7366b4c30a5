"""
Shared helper functions and utilities.

Logging setup, configuration handling and image loading used across vviz.
"""

import copy
import json
import logging
import os

import cv2
import numpy as np
import requests

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    # Synchronization
    'sync_interval_ms': 15,

    # Remote transport
    'remote_host': '127.0.0.1',
    'remote_port': 9001,
    'remote_connect_timeout': None,  # seconds, None waits forever

    # Windows
    'window_name': 'vviz',
    'controls_window_name': 'vviz controls',
    'display_width': 1280,
    'display_height': 720,
    'controls_panel_width': 360,

    # Controls
    'ranged_float_steps': 1000,  # slider resolution for float ranges

    # 3D widgets
    'widget3': {
        'width': 640,
        'height': 480,
        'field_of_view': 60.0,  # vertical, degrees
        'near': 0.01,
        'far': 10.0,
        'eye': [0.0, 1.5, 3.0],
        'target': [0.0, 0.0, 0.0],
        'background': [255, 255, 255],  # BGR
        'lighting': True,
        'line_thickness': 2,
        'antialiasing': True,
        'orbit_sensitivity': 0.01,  # radians per pixel
        'zoom_step': 0.1,
    },
}


def setup_logging(level=logging.INFO):
    """Configure root logging for a vviz process.

    Records carry the thread name, since the application function and the
    GUI loop run on separate threads. Frame-level chatter of the
    ``websockets`` library is only shown at DEBUG.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(threadName)s] %(name)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )
    if level > logging.DEBUG:
        logging.getLogger("websockets").setLevel(logging.WARNING)
    LOGGER.debug("Logging initialized at level %s", logging.getLevelName(level))


def get_config(config_path=None):
    """Load configuration from file or return defaults.

    Nested sections (such as ``widget3``) are merged key by key, so a file
    only needs to list the values it overrides.

    Args:
        config_path: Path to a JSON configuration file (optional)

    Returns:
        dict: Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            LOGGER.warning("Failed to load config from %s: %s", config_path, e)
        else:
            merge_config(config, loaded_config)
            LOGGER.info("Configuration loaded from %s", config_path)
    elif config_path:
        LOGGER.warning("Config file %s does not exist, using defaults", config_path)

    return config


def merge_config(base, overrides):
    """Recursively merge ``overrides`` into ``base`` in place and return it."""
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base


def resolve_config(config=None):
    """Return defaults merged with a (possibly partial) configuration dict."""
    return merge_config(copy.deepcopy(DEFAULT_CONFIG), config)


def save_config(config, config_path):
    """Write the effective configuration as JSON, readable by ``get_config``.

    Returns:
        bool: False if the file could not be written
    """
    payload = json.dumps(config, indent=4, sort_keys=True)
    try:
        with open(config_path, 'w') as f:
            f.write(payload + "\n")
    except OSError as e:
        LOGGER.error("Cannot write config %s: %s", config_path, e)
        return False
    LOGGER.info("Wrote configuration to %s", config_path)
    return True


def validate_config(config):
    """Validate configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        bool: True if valid, False otherwise
    """
    required_keys = ['sync_interval_ms', 'remote_host', 'remote_port', 'widget3']

    for key in required_keys:
        if key not in config:
            LOGGER.error("Missing required config key: %s", key)
            return False

    if config['sync_interval_ms'] < 0:
        LOGGER.error("sync_interval_ms must not be negative")
        return False

    if not 0 <= config['remote_port'] <= 65535:
        LOGGER.error("remote_port out of range: %s", config['remote_port'])
        return False

    widget3 = config['widget3']
    if widget3.get('width', 0) <= 0 or widget3.get('height', 0) <= 0:
        LOGGER.error("3D widget dimensions must be positive")
        return False

    if not 0 < widget3.get('near', 0) < widget3.get('far', 0):
        LOGGER.error("3D widget clip planes must satisfy 0 < near < far")
        return False

    if config.get('ranged_float_steps', 1) < 1:
        LOGGER.error("ranged_float_steps must be at least 1")
        return False

    LOGGER.debug("Configuration validated successfully")
    return True


def load_image_from_url(url, timeout=10.0):
    """Download an image and decode it into a BGR(A) numpy array.

    Args:
        url: Image URL
        timeout: Request timeout in seconds

    Returns:
        np.ndarray: Decoded image, alpha channel preserved when present

    Raises:
        requests.RequestException: Download failed
        ValueError: Payload is not a decodable image
    """
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    buffer = np.frombuffer(response.content, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Could not decode image from {url}")

    LOGGER.info("Loaded %dx%d image from %s", image.shape[1], image.shape[0], url)
    return image
