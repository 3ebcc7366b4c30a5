"""
Presentation-side widgets.

A 3D widget owns a set of named entities and rasterizes them with OpenCV:
vertices are moved into the camera frame, projected with the widget's
pinhole calibration and drawn back to front (painter's algorithm). A 2D
widget shows an image. The layout helpers tile all widgets into the main
window.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .entities import LineSegments3, Mesh3, NamedEntity3, rgba_to_bgr
from .pose import CalibrationData, Isometry3, look_at, rot_x, rot_y

LOGGER = logging.getLogger(__name__)

LIGHT_DIRECTION = np.array([0.0, 0.0, -1.0])  # towards the camera
MIN_LIGHT_INTENSITY = 0.3
MIN_ZOOM = 0.05
MAX_ZOOM = 20.0


@dataclass
class _Primitive:
    depth: float
    points: np.ndarray  # camera-frame vertices, 3x3 for faces, 2x3 for segments
    color: Tuple[int, int, int]
    is_face: bool


def check_image(image) -> np.ndarray:
    """Return ``image`` as an array, or raise ValueError if it cannot be shown.

    Accepted: non-empty uint8 HxW, HxWx1, HxWx3 (BGR) or HxWx4 (BGRA).
    """
    image = np.asarray(image)
    if image.dtype != np.uint8:
        raise ValueError(f"Widget images must be uint8, got {image.dtype}")
    if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] not in (1, 3, 4)):
        raise ValueError(f"Unsupported image shape {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError(f"Empty image of shape {image.shape}")
    return image


class Widget2:
    """Image panel."""

    kind = "widget2"

    def __init__(self, image: np.ndarray):
        self.image: np.ndarray = None
        self.set_image(image)

    def set_image(self, image: np.ndarray):
        """Replace the shown image; grayscale and BGRA inputs are converted to BGR."""
        image = check_image(image)
        if image.ndim == 2 or image.shape[2] == 1:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
        self.image = image

    @property
    def aspect_ratio(self) -> float:
        height, width = self.image.shape[:2]
        return width / height

    def render(self) -> np.ndarray:
        return self.image


class Widget3:
    """
    3D scene viewport.

    The camera looks from ``eye`` at ``target`` with y up; the user can orbit
    the scene around the target and zoom along the viewing direction.
    """

    kind = "widget3"

    def __init__(self, config: Optional[Dict] = None):
        cfg = config or {}
        self.width = int(cfg.get("width", 640))
        self.height = int(cfg.get("height", 480))
        self.near = float(cfg.get("near", 0.01))
        self.far = float(cfg.get("far", 10.0))
        self.eye = np.asarray(cfg.get("eye", (0.0, 1.5, 3.0)), dtype=np.float64)
        self.target = np.asarray(cfg.get("target", (0.0, 0.0, 0.0)), dtype=np.float64)
        self.background = tuple(int(c) for c in cfg.get("background", (255, 255, 255)))
        self.lighting = cfg.get("lighting", True)
        self.line_thickness = int(cfg.get("line_thickness", 2))
        self.antialiasing = cfg.get("antialiasing", True)
        self.orbit_sensitivity = float(cfg.get("orbit_sensitivity", 0.01))
        self.zoom_step = float(cfg.get("zoom_step", 0.1))

        self.calibration = CalibrationData.from_field_of_view(
            self.width, self.height, float(cfg.get("field_of_view", 60.0))
        )
        self.entities: Dict[str, NamedEntity3] = {}

        self.orbit_rx = 0.0
        self.orbit_ry = 0.0
        self.zoom = 1.0

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    # ------------------------------------------------------------------ #
    # Camera
    # ------------------------------------------------------------------ #
    def camera_pose_scene(self) -> Isometry3:
        eye = self.target + (self.eye - self.target) * self.zoom
        return look_at(eye, self.target) @ rot_x(self.orbit_rx) @ rot_y(self.orbit_ry)

    def orbit(self, dx: float, dy: float):
        """Rotate the scene by a mouse drag of ``(dx, dy)`` pixels."""
        self.orbit_ry += dx * self.orbit_sensitivity
        self.orbit_rx += dy * self.orbit_sensitivity

    def zoom_by(self, steps: float):
        """Positive steps move the camera towards the target."""
        self.zoom = min(max(self.zoom * (1.0 - self.zoom_step) ** steps, MIN_ZOOM), MAX_ZOOM)

    def reset_view(self):
        self.orbit_rx = 0.0
        self.orbit_ry = 0.0
        self.zoom = 1.0

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #
    def render(self) -> np.ndarray:
        """Rasterize all entities into a BGR image of the widget's size."""
        frame = np.empty((self.height, self.width, 3), dtype=np.uint8)
        frame[:] = self.background

        camera_pose_scene = self.camera_pose_scene()
        primitives: List[_Primitive] = []
        for named_entity in self.entities.values():
            try:
                primitives.extend(self._collect(named_entity, camera_pose_scene))
            except (ValueError, IndexError) as e:
                LOGGER.warning("Failed to prepare entity '%s': %s", named_entity.label, e)

        # Back to front
        primitives.sort(key=lambda p: p.depth, reverse=True)
        line_type = cv2.LINE_AA if self.antialiasing else cv2.LINE_8

        for primitive in primitives:
            pts_2d = self._project(primitive.points)
            if pts_2d is None:
                continue
            try:
                if primitive.is_face:
                    cv2.fillConvexPoly(frame, pts_2d.reshape(-1, 1, 2), primitive.color, line_type)
                else:
                    cv2.line(
                        frame,
                        tuple(int(v) for v in pts_2d[0]),
                        tuple(int(v) for v in pts_2d[1]),
                        primitive.color,
                        self.line_thickness,
                        line_type,
                    )
            except cv2.error as e:
                LOGGER.warning("Failed to draw primitive: %s", e)

        return frame

    def _project(self, points_cam: np.ndarray) -> Optional[np.ndarray]:
        """Project camera-frame points to integer pixel coordinates."""
        try:
            image_points, _ = cv2.projectPoints(
                points_cam.astype(np.float64),
                np.zeros(3),
                np.zeros(3),
                self.calibration.camera_matrix,
                self.calibration.dist_coeffs,
            )
        except cv2.error as e:
            LOGGER.debug("Projection failed: %s", e)
            return None
        return np.round(image_points.reshape(-1, 2)).astype(np.int32)

    def _collect(self, named_entity: NamedEntity3, camera_pose_scene: Isometry3) -> List[_Primitive]:
        entity = named_entity.entity
        camera_pose_entity = camera_pose_scene @ named_entity.scene_pose_entity
        points_cam = camera_pose_entity.transform_points(entity.positions)

        if isinstance(entity, Mesh3):
            return self._collect_faces(points_cam, entity)
        if isinstance(entity, LineSegments3):
            return self._collect_segments(points_cam, entity)
        raise ValueError(f"Unsupported entity type {type(entity).__name__}")

    def _collect_faces(self, points_cam: np.ndarray, mesh: Mesh3) -> List[_Primitive]:
        primitives = []
        for face in mesh.faces:
            triangle = points_cam[face]
            depths = triangle[:, 2]
            if np.any(depths <= self.near) or np.all(depths >= self.far):
                continue

            rgba = mesh.colors[face].mean(axis=0)
            color = rgba_to_bgr(rgba)

            if self.lighting:
                normal = np.cross(triangle[1] - triangle[0], triangle[2] - triangle[0])
                normal = normal / (np.linalg.norm(normal) + 1e-8)
                intensity = max(MIN_LIGHT_INTENSITY, abs(float(np.dot(normal, LIGHT_DIRECTION))))
                color = tuple(int(c * intensity) for c in color)

            primitives.append(_Primitive(float(depths.mean()), triangle, color, True))
        return primitives

    def _collect_segments(self, points_cam: np.ndarray, segments: LineSegments3) -> List[_Primitive]:
        primitives = []
        for i, j in segments.segments:
            clipped = self._clip_segment(points_cam[i], points_cam[j])
            if clipped is None:
                continue
            rgba = 0.5 * (segments.colors[i] + segments.colors[j])
            primitives.append(_Primitive(float(clipped[:, 2].mean()), clipped, rgba_to_bgr(rgba), False))
        return primitives

    def _clip_segment(self, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
        """Clip a camera-frame segment against the near plane."""
        if a[2] <= self.near and b[2] <= self.near:
            return None
        if a[2] >= self.far and b[2] >= self.far:
            return None
        if a[2] < self.near or b[2] < self.near:
            t = (self.near - a[2]) / (b[2] - a[2])
            crossing = a + t * (b - a)
            if a[2] < self.near:
                a = crossing
            else:
                b = crossing
        return np.vstack([a, b])


# ---------------------------------------------------------------------- #
# Layout
# ---------------------------------------------------------------------- #
@dataclass
class Rect:
    x: int
    y: int
    width: int
    height: int

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


def compute_grid_layout(
    aspect_ratios: Sequence[float],
    available_width: float,
    available_height: float,
    margin: float = 0.95,
) -> Tuple[int, float, float]:
    """
    Choose a grid for the given widgets.

    All tiles share the median aspect ratio; the column count is the one
    giving the widest tiles that still fit into ``margin`` of the available
    area.

    Returns:
        (num_cols, tile_width, tile_height); (0, 0, 0) without widgets
    """
    n = len(aspect_ratios)
    if n == 0:
        return 0, 0.0, 0.0

    width = margin * available_width
    height = margin * available_height
    median_aspect_ratio = float(np.median(aspect_ratios))

    best_cols, best_width, best_height = 1, 0.0, 0.0
    for num_cols in range(1, n + 1):
        num_rows = math.ceil(n / num_cols)
        w = width / num_cols
        h = min(w / median_aspect_ratio, height / num_rows)
        w = median_aspect_ratio * h
        if w > best_width:
            best_cols, best_width, best_height = num_cols, w, h

    return best_cols, best_width, best_height


def layout_widgets(
    aspect_ratios: Sequence[float],
    available_width: int,
    available_height: int,
    margin: float = 0.95,
) -> List[Rect]:
    """Tile rectangles (one per widget, in order), each fitted to its aspect ratio."""
    num_cols, tile_width, tile_height = compute_grid_layout(
        aspect_ratios, available_width, available_height, margin
    )
    if num_cols == 0:
        return []

    gap_x = (available_width - num_cols * tile_width) / (num_cols + 1)
    num_rows = math.ceil(len(aspect_ratios) / num_cols)
    gap_y = (available_height - num_rows * tile_height) / (num_rows + 1)

    rects = []
    for index, aspect_ratio in enumerate(aspect_ratios):
        row, col = divmod(index, num_cols)
        w = min(aspect_ratio * tile_height, tile_width)
        h = w / aspect_ratio
        x = gap_x + col * (tile_width + gap_x) + 0.5 * (tile_width - w)
        y = gap_y + row * (tile_height + gap_y) + 0.5 * (tile_height - h)
        rects.append(Rect(int(x), int(y), max(int(w), 1), max(int(h), 1)))
    return rects


def widget_at(rects: Sequence[Rect], x: int, y: int) -> Optional[int]:
    """Index of the tile under pixel ``(x, y)``, if any."""
    for index, rect in enumerate(rects):
        if rect.contains(x, y):
            return index
    return None
