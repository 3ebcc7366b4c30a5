"""
3D entities to be placed into a 3D widget.

Entities are plain vertex/index containers: triangle meshes and line
segments, each vertex carrying a position and an RGBA color. Factory
helpers build the common debugging primitives (colored cube, triangles,
coordinate axes, point clouds).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .errors import EntityError
from .pose import Isometry3

LOGGER = logging.getLogger(__name__)


@dataclass
class Color:
    """RGBA color, each channel in [0, 1]."""

    r: float
    g: float
    b: float
    alpha: float = 1.0

    def as_array(self) -> np.ndarray:
        return np.array([self.r, self.g, self.b, self.alpha], dtype=np.float32)

    def to_bgr(self):
        """OpenCV BGR tuple with 0-255 integer channels."""
        return rgba_to_bgr(self.as_array())


def rgba_to_bgr(rgba: np.ndarray):
    """Convert one RGBA float color to an OpenCV BGR integer tuple."""
    r, g, b = np.clip(np.asarray(rgba, dtype=np.float64)[:3], 0.0, 1.0) * 255.0
    return (int(round(b)), int(round(g)), int(round(r)))


def _as_positions(positions) -> np.ndarray:
    arr = np.asarray(positions, dtype=np.float32)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.float32)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise EntityError(f"positions must be Nx3, got shape {arr.shape}")
    return arr


def _as_colors(colors, count: int) -> np.ndarray:
    arr = np.asarray(colors, dtype=np.float32)
    if arr.size == 0 and count == 0:
        return np.zeros((0, 4), dtype=np.float32)
    if arr.ndim != 2 or arr.shape != (count, 4):
        raise EntityError(f"colors must be {count}x4 RGBA, got shape {arr.shape}")
    return arr


def _as_indices(indices, width: int, vertex_count: int) -> np.ndarray:
    arr = np.asarray(indices, dtype=np.int32)
    if arr.size == 0:
        return np.zeros((0, width), dtype=np.int32)
    if arr.ndim != 2 or arr.shape[1] != width:
        raise EntityError(f"indices must be Mx{width}, got shape {arr.shape}")
    if arr.min() < 0 or arr.max() >= vertex_count:
        raise EntityError(
            f"indices out of range for {vertex_count} vertices "
            f"(min {arr.min()}, max {arr.max()})"
        )
    return arr


@dataclass(eq=False)
class Mesh3:
    """Triangle mesh with per-vertex colors."""

    positions: np.ndarray  # Nx3
    colors: np.ndarray  # Nx4 RGBA
    faces: np.ndarray  # Mx3 vertex indices

    kind = "mesh"

    def __post_init__(self):
        self.positions = _as_positions(self.positions)
        self.colors = _as_colors(self.colors, len(self.positions))
        self.faces = _as_indices(self.faces, 3, len(self.positions))

    @property
    def indices(self) -> np.ndarray:
        return self.faces

    def __eq__(self, other) -> bool:
        return _entities_equal(self, other)


@dataclass(eq=False)
class LineSegments3:
    """Line segments; two vertex indices make up a segment."""

    positions: np.ndarray  # Nx3
    colors: np.ndarray  # Nx4 RGBA
    segments: np.ndarray  # Mx2 vertex indices

    kind = "line_segments"

    def __post_init__(self):
        self.positions = _as_positions(self.positions)
        self.colors = _as_colors(self.colors, len(self.positions))
        self.segments = _as_indices(self.segments, 2, len(self.positions))

    @property
    def indices(self) -> np.ndarray:
        return self.segments

    def __eq__(self, other) -> bool:
        return _entities_equal(self, other)


Entity3 = Union[Mesh3, LineSegments3]


def _entities_equal(a, b) -> bool:
    if type(a) is not type(b):
        return NotImplemented
    return (
        np.array_equal(a.positions, b.positions)
        and np.array_equal(a.colors, b.colors)
        and np.array_equal(a.indices, b.indices)
    )


def entity_to_dict(entity: Entity3) -> Dict:
    return {
        "kind": entity.kind,
        "positions": entity.positions.tolist(),
        "colors": entity.colors.tolist(),
        "indices": entity.indices.tolist(),
    }


def entity_from_dict(data: Dict) -> Entity3:
    kind = data.get("kind")
    if kind == Mesh3.kind:
        return Mesh3(data["positions"], data["colors"], data["indices"])
    if kind == LineSegments3.kind:
        return LineSegments3(data["positions"], data["colors"], data["indices"])
    raise EntityError(f"Unknown entity kind: {kind!r}")


@dataclass
class NamedEntity3:
    """A named entity has a label, a pose in the scene and an entity."""

    label: str
    entity: Entity3
    scene_pose_entity: Isometry3 = field(default_factory=Isometry3.identity)

    def to_dict(self) -> Dict:
        return {
            "label": self.label,
            "entity": entity_to_dict(self.entity),
            "scene_pose_entity": self.scene_pose_entity.to_dict(),
        }

    @staticmethod
    def from_dict(data: Dict) -> NamedEntity3:
        return NamedEntity3(
            label=data["label"],
            entity=entity_from_dict(data["entity"]),
            scene_pose_entity=Isometry3.from_dict(data["scene_pose_entity"]),
        )


# ---------------------------------------------------------------------- #
# Factories
# ---------------------------------------------------------------------- #
_CUBE_FACE_COLORS = [
    (1.0, 0.5, 0.5, 1.0),  # -z
    (0.5, 1.0, 0.5, 1.0),  # +z
    (0.5, 0.5, 1.0, 1.0),  # -x
    (1.0, 0.5, 0.0, 1.0),  # +x
    (0.0, 0.5, 1.0, 1.0),  # -y
    (1.0, 0.0, 0.5, 1.0),  # +y
]


def colored_cube(scale: float) -> Mesh3:
    """Cube centered at the origin with half-extent ``scale``, one color per side."""
    s = scale
    positions = np.array([
        [-s, -s, -s], [s, -s, -s], [s, s, -s], [-s, s, -s],
        [-s, -s, s], [s, -s, s], [s, s, s], [-s, s, s],
        [-s, -s, -s], [-s, s, -s], [-s, s, s], [-s, -s, s],
        [s, -s, -s], [s, s, -s], [s, s, s], [s, -s, s],
        [-s, -s, -s], [-s, -s, s], [s, -s, s], [s, -s, -s],
        [-s, s, -s], [-s, s, s], [s, s, s], [s, s, -s],
    ], dtype=np.float32)

    colors = np.repeat(np.array(_CUBE_FACE_COLORS, dtype=np.float32), 4, axis=0)

    faces = np.array([
        [0, 1, 2], [0, 2, 3],
        [6, 5, 4], [7, 6, 4],
        [8, 9, 10], [8, 10, 11],
        [14, 13, 12], [15, 14, 12],
        [16, 17, 18], [16, 18, 19],
        [22, 21, 20], [23, 22, 20],
    ], dtype=np.int32)

    return Mesh3(positions, colors, faces)


@dataclass
class ColoredTriangle:
    """A triangle face (three vertices) with a single color."""

    face: Sequence[Sequence[float]]
    color: Color


def colored_triangles(triangles: List[ColoredTriangle]) -> Mesh3:
    """Mesh with three dedicated vertices per triangle."""
    positions = np.array([vertex for t in triangles for vertex in t.face], dtype=np.float32).reshape(-1, 3)
    colors = np.array([t.color.as_array() for t in triangles for _ in range(3)], dtype=np.float32).reshape(-1, 4)
    faces = np.arange(3 * len(triangles), dtype=np.int32).reshape(-1, 3)
    return Mesh3(positions, colors, faces)


class Axis3:
    """Coordinate axes representing a 3D frame (x red, y green, z blue)."""

    def __init__(self, scale: float = 1.0):
        self.scale = scale

    @staticmethod
    def from_scale(scale: float) -> Axis3:
        return Axis3(scale)

    def to_entity(self) -> LineSegments3:
        s = self.scale
        positions = np.array([
            [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0],
            [s, 0.0, 0.0], [0.0, s, 0.0], [0.0, 0.0, s],
        ], dtype=np.float32)
        colors = np.array([
            [1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 1.0], [0.0, 0.0, 1.0, 1.0],
            [1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 1.0], [0.0, 0.0, 1.0, 1.0],
        ], dtype=np.float32)
        return LineSegments3(positions, colors, [[0, 3], [1, 4], [2, 5]])


class ColoredPoints3:
    """Colored point cloud.

    Points are drawn as tiny triangles, offset by ``point_size`` along each
    axis.
    """

    def __init__(self, points: Optional[np.ndarray] = None, colors: Optional[np.ndarray] = None,
                 point_size: float = 0.01):
        self.points = _as_positions(points if points is not None else [])
        if colors is None:
            colors = np.ones((len(self.points), 4), dtype=np.float32)
        self.colors = _as_colors(colors, len(self.points))
        self.point_size = point_size

    @staticmethod
    def from_arrays_and_color(arrays: Sequence[Sequence[float]], color: Color,
                              point_size: float = 0.01) -> ColoredPoints3:
        points = np.asarray(arrays, dtype=np.float32).reshape(-1, 3)
        colors = np.tile(color.as_array(), (len(points), 1))
        return ColoredPoints3(points, colors, point_size)

    def to_entity(self) -> Mesh3:
        offsets = np.eye(3, dtype=np.float32) * self.point_size
        positions = (self.points[:, np.newaxis, :] + offsets[np.newaxis, :, :]).reshape(-1, 3)
        colors = np.repeat(self.colors, 3, axis=0)
        faces = np.arange(len(positions), dtype=np.int32).reshape(-1, 3)
        return Mesh3(positions, colors, faces)


def load_obj(filepath: str, color: Optional[Color] = None) -> Mesh3:
    """
    Load a triangle mesh from a Wavefront OBJ file.

    Polygons are fan-triangulated; texture coordinates and normals are
    ignored. Every vertex gets ``color`` (light gray by default).

    Args:
        filepath: Path to OBJ file
        color: Vertex color

    Returns:
        Loaded mesh
    """
    vertices = []
    faces = []

    with open(filepath, 'r') as f:
        for line in f:
            parts = line.split()
            if not parts or parts[0].startswith('#'):
                continue

            if parts[0] == 'v':
                vertices.append([float(parts[1]), float(parts[2]), float(parts[3])])

            elif parts[0] == 'f':
                # "v", "v/vt", "v/vt/vn" or "v//vn"; OBJ is 1-indexed
                face_verts = [int(p.split('/')[0]) - 1 for p in parts[1:]]
                for i in range(1, len(face_verts) - 1):
                    faces.append([face_verts[0], face_verts[i], face_verts[i + 1]])

    color = color or Color(0.7, 0.7, 0.7)
    colors = np.tile(color.as_array(), (len(vertices), 1))
    LOGGER.info("Loaded OBJ %s: %d vertices, %d faces", filepath, len(vertices), len(faces))
    return Mesh3(np.array(vertices, dtype=np.float32).reshape(-1, 3), colors, faces)
