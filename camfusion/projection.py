import logging

import numpy as np

from .calib import compose_projection
from .configs import MIN_DEPTH
from .structures import RangePoint, points_to_array

logger = logging.getLogger(__name__)


def project_lidar_to_image(lidar_points, P):
    """
    Project lidar points to pixel coordinates.

    Args:
        lidar_points: list of RangePoint or Nx3 array, sensor frame
        P: 3x4 composed projection P_rect @ R_rect @ RT

    Returns:
        uv: Nx2 array of pixel coordinates (NaN where depth <= 0)
        depth: N array, third homogeneous component (camera-frame depth)
    """
    pts = points_to_array(lidar_points)
    P = np.asarray(P, dtype=np.float64)
    if P.shape != (3, 4):
        raise ValueError(f"projection matrix must be 3x4, got {P.shape}")
    if len(pts) == 0:
        return np.empty((0, 2)), np.empty(0)

    X = np.hstack([pts, np.ones((len(pts), 1))])  # Nx4 homogeneous
    Y = (P @ X.T).T                               # Nx3

    depth = Y[:, 2]
    uv = np.full((len(pts), 2), np.nan)
    front = depth > 0
    uv[front] = Y[front, :2] / depth[front, None]
    return uv, depth


def enclosing_boxes(boxes, uv, shrink_factor=0.0):
    """N x B boolean matrix: point i inside (shrunk) rectangle of box j."""
    if not boxes:
        return np.zeros((len(uv), 0), dtype=bool)
    return np.stack([b.contains(uv, shrink_factor) for b in boxes], axis=1)


def cluster_lidar_with_roi(boxes, lidar_points, shrink_factor, P_rect, R_rect, RT,
                           min_depth=MIN_DEPTH):
    """
    Append every lidar point whose projection falls into exactly one shrunk
    bounding box to that box's lidar_points. Points in no box or in several
    boxes are dropped. Returns the number of points assigned.
    """
    if not 0.0 <= shrink_factor < 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1), got {shrink_factor}")
    n = len(lidar_points)
    if n == 0 or not boxes:
        return 0

    uv, depth = project_lidar_to_image(lidar_points, compose_projection(P_rect, R_rect, RT))
    front = depth > min_depth

    inside = enclosing_boxes(boxes, uv, shrink_factor) & front[:, None]
    hits = inside.sum(axis=1)
    unique = np.flatnonzero(hits == 1)
    owner = inside[unique].argmax(axis=1)

    for i, j in zip(unique, owner):
        p = lidar_points[i]
        if isinstance(lidar_points, np.ndarray):
            p = RangePoint(*map(float, p[:4]))
        boxes[j].lidar_points.append(p)

    logger.debug("lidar clustering: %d pts, %d behind camera, %d ambiguous, %d assigned",
                 n, int((~front).sum()), int((hits > 1).sum()), len(unique))
    return int(len(unique))
