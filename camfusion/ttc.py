import numpy as np

from .configs import EPS, LANE_HALF_WIDTH, MIN_KPT_DIST_PX, RANGE_REDUCER
from .structures import TTCResult, keypoint_coords, points_to_array

RANGE_REDUCERS = {"mean": np.mean, "median": np.median, "min": np.min}


def _check_frame_rate(frame_rate):
    if not frame_rate > 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")


def distance_ratios(kpts_prev, kpts_curr, kpt_matches, min_dist=MIN_KPT_DIST_PX):
    """
    dist_curr / dist_prev over every unordered pair of distinct matches.
    Pairs with dist_prev ~ 0 or dist_curr < min_dist are skipped.
    """
    if len(kpt_matches) < 2:
        return np.empty(0)
    curr = keypoint_coords(kpts_curr)[[m.trainIdx for m in kpt_matches]]
    prev = keypoint_coords(kpts_prev)[[m.queryIdx for m in kpt_matches]]

    i, j = np.triu_indices(len(kpt_matches), k=1)
    dist_curr = np.linalg.norm(curr[i] - curr[j], axis=1)
    dist_prev = np.linalg.norm(prev[i] - prev[j], axis=1)

    ok = (dist_prev > np.finfo(np.float64).eps) & (dist_curr >= min_dist)
    return dist_curr[ok] / dist_prev[ok]


def compute_ttc_camera(kpts_prev, kpts_curr, kpt_matches, frame_rate, min_dist=MIN_KPT_DIST_PX):
    """
    TTC from the median scale change of keypoint pair distances:
    TTC = -dT / (1 - median_ratio). Positive when the object grows (approaching).
    """
    _check_frame_rate(frame_rate)
    ratios = distance_ratios(kpts_prev, kpts_curr, kpt_matches, min_dist)
    if ratios.size == 0:
        return TTCResult.empty(f"no keypoint pairs among {len(kpt_matches)} matches")

    ratios = np.sort(ratios)
    median_ratio = ratios[ratios.size // 2]   # upper middle element for even sizes
    if abs(1.0 - median_ratio) <= EPS:
        return TTCResult.degenerate("no scale change between frames")

    dT = 1.0 / frame_rate
    return TTCResult.valid(-dT / (1.0 - median_ratio))


def lane_ranges(lidar_points, lane_half_width=LANE_HALF_WIDTH):
    """Forward (x) coordinates of the points inside the ego lane |y| <= half width."""
    if lane_half_width <= 0:
        raise ValueError(f"lane_half_width must be positive, got {lane_half_width}")
    pts = points_to_array(lidar_points)
    return pts[np.abs(pts[:, 1]) <= lane_half_width, 0]


def compute_ttc_lidar(lidar_points_prev, lidar_points_curr, frame_rate,
                      lane_half_width=LANE_HALF_WIDTH, reducer=RANGE_REDUCER):
    """
    TTC from the closing rate of the lane points' forward range under a
    constant velocity model: TTC = d_curr * dT / (d_prev - d_curr).
    The range per frame is the mean of the lane points by default.
    """
    _check_frame_rate(frame_rate)
    if reducer not in RANGE_REDUCERS:
        raise ValueError(f"unknown range reducer {reducer!r}, expected one of {sorted(RANGE_REDUCERS)}")
    x_prev = lane_ranges(lidar_points_prev, lane_half_width)
    x_curr = lane_ranges(lidar_points_curr, lane_half_width)
    if x_prev.size == 0 or x_curr.size == 0:
        return TTCResult.empty(f"lane points prev={x_prev.size} curr={x_curr.size}")

    d_prev = float(RANGE_REDUCERS[reducer](x_prev))
    d_curr = float(RANGE_REDUCERS[reducer](x_curr))
    if abs(d_prev - d_curr) <= EPS:
        return TTCResult.degenerate("range unchanged between frames")

    dT = 1.0 / frame_rate
    return TTCResult.valid(d_curr * dT / (d_prev - d_curr))
