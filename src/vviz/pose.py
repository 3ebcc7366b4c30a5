"""
Rigid poses and camera intrinsics.

Provides the ``Isometry3`` pose type used to place entities in a scene, the
canonical axis rotations and the pinhole calibration used by 3D widgets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)


@dataclass
class Isometry3:
    """Rigid 3D transform: rotation followed by translation.

    ``a_pose_b`` maps points expressed in frame ``b`` into frame ``a``.
    """

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.rotation = np.asarray(self.rotation, dtype=np.float64).reshape(3, 3)
        self.translation = np.asarray(self.translation, dtype=np.float64).reshape(3)

    @staticmethod
    def identity() -> Isometry3:
        return Isometry3()

    @staticmethod
    def from_translation(x: float, y: float, z: float) -> Isometry3:
        """Pure translation."""
        return Isometry3(translation=np.array([x, y, z], dtype=np.float64))

    @staticmethod
    def from_rotation_vector(
        rotation_vector: Sequence[float],
        translation: Sequence[float] = (0.0, 0.0, 0.0),
    ) -> Isometry3:
        """Pose from an axis-angle vector (direction = axis, norm = angle)."""
        rvec = np.asarray(rotation_vector, dtype=np.float64).reshape(3, 1)
        rotation, _ = cv2.Rodrigues(rvec)
        return Isometry3(rotation=rotation, translation=translation)

    from_scaled_axis = from_rotation_vector

    @staticmethod
    def from_matrix(matrix: np.ndarray) -> Isometry3:
        """Pose from a 4x4 homogeneous transform."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix, got shape {matrix.shape}")
        return Isometry3(rotation=matrix[:3, :3], translation=matrix[:3, 3])

    def rotation_vector(self) -> np.ndarray:
        """Axis-angle representation of the rotation part."""
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec.reshape(3)

    def as_matrix(self) -> np.ndarray:
        """Return the 4x4 transformation matrix."""
        transform = np.eye(4, dtype=np.float64)
        transform[:3, :3] = self.rotation
        transform[:3, 3] = self.translation
        return transform

    def inverse(self) -> Isometry3:
        rotation_t = self.rotation.T
        return Isometry3(rotation=rotation_t, translation=-rotation_t @ self.translation)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Apply the transform to an Nx3 array of points."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return points @ self.rotation.T + self.translation

    def __matmul__(self, other: Isometry3) -> Isometry3:
        if not isinstance(other, Isometry3):
            return NotImplemented
        return Isometry3(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Isometry3):
            return NotImplemented
        return bool(
            np.allclose(self.rotation, other.rotation)
            and np.allclose(self.translation, other.translation)
        )

    def copy(self) -> Isometry3:
        return Isometry3(rotation=self.rotation.copy(), translation=self.translation.copy())

    def to_dict(self) -> Dict:
        return {
            "rotation": self.rotation.tolist(),
            "translation": self.translation.tolist(),
        }

    @staticmethod
    def from_dict(data: Dict) -> Isometry3:
        return Isometry3(rotation=data["rotation"], translation=data["translation"])


def _axis_rotation(axis: int, angle: float) -> Isometry3:
    scaled_axis = np.zeros(3)
    scaled_axis[axis] = angle
    return Isometry3.from_rotation_vector(scaled_axis)


def rot_x(angle: float) -> Isometry3:
    """Canonical rotation about the x-axis, zero translation."""
    return _axis_rotation(0, angle)


def rot_y(angle: float) -> Isometry3:
    """Canonical rotation about the y-axis, zero translation."""
    return _axis_rotation(1, angle)


def rot_z(angle: float) -> Isometry3:
    """Canonical rotation about the z-axis, zero translation."""
    return _axis_rotation(2, angle)


def look_at(eye: Sequence[float], target: Sequence[float], up: Sequence[float] = (0.0, 1.0, 0.0)) -> Isometry3:
    """Return ``camera_pose_scene`` for a camera at ``eye`` looking at ``target``.

    The camera frame follows the OpenCV convention: x right, y down, z forward.
    """
    eye = np.asarray(eye, dtype=np.float64)
    forward = np.asarray(target, dtype=np.float64) - eye
    norm = np.linalg.norm(forward)
    if norm < 1e-12:
        raise ValueError("look_at requires distinct eye and target")
    forward /= norm

    right = np.cross(forward, np.asarray(up, dtype=np.float64))
    norm = np.linalg.norm(right)
    if norm < 1e-12:
        raise ValueError("look_at up vector is parallel to the viewing direction")
    right /= norm
    down = np.cross(forward, right)

    rotation = np.vstack([right, down, forward])
    return Isometry3(rotation=rotation, translation=-rotation @ eye)


@dataclass
class CalibrationData:
    """Container for camera calibration parameters."""

    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray

    @staticmethod
    def from_field_of_view(width: int, height: int, fov_y_degrees: float) -> CalibrationData:
        """Distortion-free pinhole intrinsics for an image of the given size."""
        focal = 0.5 * height / np.tan(0.5 * np.radians(fov_y_degrees))
        camera_matrix = np.array([
            [focal, 0.0, width / 2.0],
            [0.0, focal, height / 2.0],
            [0.0, 0.0, 1.0],
        ], dtype=np.float64)
        return CalibrationData(camera_matrix=camera_matrix, dist_coeffs=np.zeros(5))
