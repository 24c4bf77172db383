import numpy as np
import pytest
import cv2

from camfusion.structures import BoundingBox
from camfusion.synthetic import synthetic_calibration


def kp(u, v):
    return cv2.KeyPoint(float(u), float(v), 7.0)


def dm(query_idx, train_idx, distance):
    return cv2.DMatch(int(query_idx), int(train_idx), float(distance))


@pytest.fixture
def calib():
    return synthetic_calibration()


@pytest.fixture
def identity_projection():
    """P_rect, R_rect, RT with u = x / z, v = y / z (camera-frame points)."""
    P = np.hstack([np.eye(3), np.zeros((3, 1))])
    return P, np.eye(3), np.eye(4)


@pytest.fixture
def two_boxes():
    return [BoundingBox(0, (0.0, 0.0, 100.0, 100.0)),
            BoundingBox(1, (200.0, 0.0, 100.0, 100.0))]
