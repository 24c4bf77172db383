import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
import cv2


@dataclass(frozen=True)
class RangePoint:
    x: float          # forward, meters
    y: float          # left, meters
    z: float          # up, meters
    r: float = 0.0    # reflectivity


def points_to_array(points) -> np.ndarray:
    """
    Return an (N, 3) float64 array of x, y, z for a list of RangePoint
    or for an (N, 3+) array.
    """
    if isinstance(points, np.ndarray):
        if points.size == 0:
            return np.empty((0, 3), dtype=np.float64)
        if points.ndim != 2 or points.shape[1] < 3:
            raise ValueError(f"expected an (N, 3) point array, got shape {points.shape}")
        return points[:, :3].astype(np.float64)
    if len(points) == 0:
        return np.empty((0, 3), dtype=np.float64)
    return np.array([[p.x, p.y, p.z] for p in points], dtype=np.float64)


def keypoint_coords(keypoints) -> np.ndarray:
    """(N, 2) pixel coordinates from cv2.KeyPoint objects or an (N, 2) array."""
    if isinstance(keypoints, np.ndarray):
        return keypoints.reshape(-1, 2).astype(np.float64)
    if len(keypoints) == 0:
        return np.empty((0, 2), dtype=np.float64)
    return np.array([kp.pt for kp in keypoints], dtype=np.float64)


@dataclass
class BoundingBox:
    box_id: int
    roi: Tuple[float, float, float, float]   # x, y, width, height (pixels)
    class_id: int = -1
    confidence: float = 0.0
    lidar_points: List[RangePoint] = field(default_factory=list)
    kpt_matches: List[cv2.DMatch] = field(default_factory=list)

    @classmethod
    def from_xyxy(cls, box_id, bbox, class_id=-1, confidence=0.0):
        x1, y1, x2, y2 = map(float, bbox[:4])
        return cls(box_id, (x1, y1, x2 - x1, y2 - y1), class_id, confidence)

    @property
    def area(self) -> float:
        return float(self.roi[2] * self.roi[3])

    def shrunk_roi(self, shrink_factor: float) -> Tuple[float, float, float, float]:
        x, y, w, h = self.roi
        return (x + shrink_factor * w / 2.0,
                y + shrink_factor * h / 2.0,
                w * (1.0 - shrink_factor),
                h * (1.0 - shrink_factor))

    def contains(self, uv, shrink_factor: float = 0.0) -> np.ndarray:
        """Half-open containment test for an (N, 2) array (or one (u, v) pair)."""
        x, y, w, h = self.shrunk_roi(shrink_factor) if shrink_factor else self.roi
        uv = np.asarray(uv, dtype=np.float64)
        u, v = uv[..., 0], uv[..., 1]
        return (u >= x) & (u < x + w) & (v >= y) & (v < y + h)

    def clear(self):
        """Drop the lidar points and keypoint matches assigned to this box."""
        self.lidar_points = []
        self.kpt_matches = []


@dataclass
class DataFrame:
    """All per-frame state: keypoints, matches to the previous frame, boxes, lidar points."""
    keypoints: Sequence = field(default_factory=list)
    kpt_matches: List[cv2.DMatch] = field(default_factory=list)
    boxes: List[BoundingBox] = field(default_factory=list)
    lidar_points: Sequence[RangePoint] = field(default_factory=list)

    def box(self, box_id: int) -> BoundingBox:
        for b in self.boxes:
            if b.box_id == box_id:
                return b
        raise KeyError(box_id)

    @property
    def box_ids(self) -> List[int]:
        return [b.box_id for b in self.boxes]


class TTCStatus(Enum):
    VALID = "valid"
    EMPTY_INPUT = "empty_input"
    DEGENERATE_GEOMETRY = "degenerate_geometry"


@dataclass(frozen=True)
class TTCResult:
    value: Optional[float]
    status: TTCStatus = TTCStatus.VALID
    detail: str = ""

    @classmethod
    def valid(cls, value):
        return cls(float(value), TTCStatus.VALID)

    @classmethod
    def empty(cls, detail=""):
        return cls(None, TTCStatus.EMPTY_INPUT, detail)

    @classmethod
    def degenerate(cls, detail=""):
        return cls(None, TTCStatus.DEGENERATE_GEOMETRY, detail)

    @property
    def is_valid(self) -> bool:
        return self.status is TTCStatus.VALID

    @property
    def is_approaching(self) -> bool:
        # negative TTC means the object is moving away
        return self.is_valid and self.value > 0

    def as_float(self) -> float:
        return self.value if self.is_valid else math.nan

    def __str__(self):
        if self.is_valid:
            return f"{self.value:.2f} s"
        return f"undefined ({self.status.value})"


@dataclass(frozen=True)
class BoxTTC:
    curr_id: int
    prev_id: int
    ttc_camera: TTCResult
    ttc_lidar: TTCResult
    n_matches: int = 0
    n_lidar_curr: int = 0
    n_lidar_prev: int = 0
    n_shared: int = 0        # matches linking the two boxes; 0 means a fallback pairing
