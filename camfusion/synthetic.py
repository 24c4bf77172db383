"""
Synthetic two-frame scenes for demos and tests.

A fronto-parallel vehicle rear seen by a pinhole camera scales exactly by
d_prev / d_curr between frames, so the camera and lidar TTC of the target
agree: both equal d_curr * dT / (d_prev - d_curr).
"""
import numpy as np
import cv2

from .calib import Calibration
from .structures import BoundingBox, DataFrame, RangePoint

# KITTI-like camera 00
FOCAL = 721.5377
CX, CY = 609.5593, 172.854
IMG_SIZE = (1242, 375)

# lidar (x fwd, y left, z up) -> camera (x right, y down, z fwd)
LIDAR_TO_CAM = np.array([[0.0, -1.0, 0.0, 0.0],
                         [0.0, 0.0, -1.0, 0.0],
                         [1.0, 0.0, 0.0, 0.0],
                         [0.0, 0.0, 0.0, 1.0]])


def synthetic_calibration(focal=FOCAL, cx=CX, cy=CY):
    P = np.array([[focal, 0.0, cx, 0.0],
                  [0.0, focal, cy, 0.0],
                  [0.0, 0.0, 1.0, 0.0]])
    return Calibration(P, np.eye(3), LIDAR_TO_CAM.copy())


def _project(calib, xyz):
    X = np.hstack([xyz, np.ones((len(xyz), 1))])
    Y = (calib.projection_matrix() @ X.T).T
    return Y[:, :2] / Y[:, 2:3]


def _rear_box(calib, box_id, dist, y_center, width, height):
    corners = np.array([[dist, y_center + width / 2, height / 2],
                        [dist, y_center - width / 2, -height / 2]])
    (u1, v1), (u2, v2) = _project(calib, corners)
    return BoundingBox.from_xyxy(box_id, (min(u1, u2), min(v1, v2), max(u1, u2), max(v1, v2)))


def _rear_lidar(dist, y_center, n, half_span):
    ys = y_center + np.linspace(-half_span, half_span, n)
    return [RangePoint(float(dist), float(y), 0.0, 0.5) for y in ys]


def _rear_features(y_center, nx=5, nz=2, half_w=0.8, half_h=0.4):
    ys, zs = np.meshgrid(y_center + np.linspace(-half_w, half_w, nx), np.linspace(-half_h, half_h, nz))
    return np.column_stack([ys.ravel(), zs.ravel()])


def make_closing_scene(dist_prev=10.0, closing=1.0, n_lidar=5, n_outliers=2,
                       with_neighbor=True, seed=0):
    """
    Two frames of a target vehicle straight ahead, closing by `closing`
    meters between frames. The target keeps 10 well-matched features (match
    distance 10) plus `n_outliers` random matches (distance 100) that the
    distance filter removes. With `with_neighbor`, a static vehicle in the
    adjacent lane (outside the ego corridor) is added.

    Box ids are renumbered in the current frame (target 0 -> 1, neighbor
    1 -> 0) so that association has to recover them.

    Returns (prev_frame, curr_frame, calib).
    """
    rng = np.random.default_rng(seed)
    calib = synthetic_calibration()
    dist_curr = dist_prev - closing
    frames = []
    for dist, target_id, neighbor_id in ((dist_prev, 0, 1), (dist_curr, 1, 0)):
        frame = DataFrame(keypoints=[], kpt_matches=[], boxes=[], lidar_points=[])
        frame.boxes.append(_rear_box(calib, target_id, dist, 0.0, 1.8, 1.2))
        frame.lidar_points.extend(_rear_lidar(dist, 0.0, n_lidar, 0.6))
        if with_neighbor:
            frame.boxes.append(_rear_box(calib, neighbor_id, 12.0, 3.5, 1.8, 1.2))
            frame.lidar_points.extend(_rear_lidar(12.0, 3.5, n_lidar, 0.6))
        frames.append(frame)
    prev, curr = frames

    def add_features(dist_p, dist_c, yz, distance):
        for y, z in yz:
            (up, vp), = _project(calib, np.array([[dist_p, y, z]]))
            (uc, vc), = _project(calib, np.array([[dist_c, y, z]]))
            k = len(curr.keypoints)
            prev.keypoints.append(cv2.KeyPoint(float(up), float(vp), 7.0))
            curr.keypoints.append(cv2.KeyPoint(float(uc), float(vc), 7.0))
            curr.kpt_matches.append(cv2.DMatch(k, k, float(distance)))

    add_features(dist_prev, dist_curr, _rear_features(0.0), 10.0)
    if with_neighbor:
        add_features(12.0, 12.0, _rear_features(3.5), 10.0)

    # mismatched features: random, unrelated positions on the target rear
    box_p, box_c = prev.box(0), curr.box(1)
    for _ in range(n_outliers):
        k = len(curr.keypoints)
        for frame, box in ((prev, box_p), (curr, box_c)):
            x, y, w, h = box.roi
            u, v = rng.uniform(x + 1, x + w - 1), rng.uniform(y + 1, y + h - 1)
            frame.keypoints.append(cv2.KeyPoint(float(u), float(v), 7.0))
        curr.kpt_matches.append(cv2.DMatch(k, k, 100.0))
    return prev, curr, calib
