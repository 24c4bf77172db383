import logging
from dataclasses import dataclass, field
from typing import Dict

from .association import count_box_matches, match_bounding_boxes
from .matches import cluster_kpt_matches_all
from .params import FusionParams
from .projection import cluster_lidar_with_roi
from .structures import BoxTTC
from .ttc import compute_ttc_camera, compute_ttc_lidar

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    bb_best_matches: Dict[int, int] = field(default_factory=dict)   # curr id -> prev id
    ttc: Dict[int, BoxTTC] = field(default_factory=dict)            # curr id -> estimates


def cluster_frame_lidar(frame, calib, params=None):
    """Fill frame.boxes[*].lidar_points from frame.lidar_points."""
    p = params or FusionParams()
    return cluster_lidar_with_roi(frame.boxes, frame.lidar_points, p.shrink_factor,
                                  calib.P_rect, calib.R_rect, calib.RT, min_depth=p.min_depth)


def process_frame_pair(prev_frame, curr_frame, calib, params=None):
    """
    Run one fusion step. prev_frame boxes must already hold their lidar
    points (from when that frame was current). Populates curr_frame boxes
    with lidar points and keypoint matches, associates boxes across frames
    and computes camera and lidar TTC per associated pair. Lists left on
    the current boxes by an earlier run are cleared first.
    """
    p = params or FusionParams()

    for box in curr_frame.boxes:
        box.clear()
    n_assigned = cluster_frame_lidar(curr_frame, calib, p)
    cluster_kpt_matches_all(curr_frame.boxes, prev_frame.keypoints, curr_frame.keypoints,
                            curr_frame.kpt_matches, p.match_dist_ratio, p.max_workers)

    bb_best_matches = match_bounding_boxes(curr_frame.kpt_matches, prev_frame, curr_frame,
                                           p.assoc_strategy)
    logger.info("frame pair: %d lidar pts assigned, %d/%d boxes associated",
                n_assigned, len(bb_best_matches), len(curr_frame.boxes))

    counts = count_box_matches(curr_frame.kpt_matches, prev_frame, curr_frame)
    result = FrameResult(bb_best_matches=dict(bb_best_matches))
    for curr_id, prev_id in bb_best_matches.items():
        curr_box = curr_frame.box(curr_id)
        prev_box = prev_frame.box(prev_id)
        n_shared = int(counts[curr_frame.box_ids.index(curr_id), prev_frame.box_ids.index(prev_id)])
        if n_shared == 0:
            logger.warning("box %d -> %d: no shared keypoint matches, fallback pairing", curr_id, prev_id)

        ttc_lidar = compute_ttc_lidar(prev_box.lidar_points, curr_box.lidar_points, p.frame_rate,
                                      p.lane_half_width, p.range_reducer)
        ttc_camera = compute_ttc_camera(prev_frame.keypoints, curr_frame.keypoints,
                                        curr_box.kpt_matches, p.frame_rate, p.min_kpt_dist)
        for name, r in (("lidar", ttc_lidar), ("camera", ttc_camera)):
            if not r.is_valid:
                logger.warning("box %d -> %d: %s TTC %s %s", curr_id, prev_id, name, r, r.detail)

        result.ttc[curr_id] = BoxTTC(curr_id, prev_id, ttc_camera, ttc_lidar,
                                     n_matches=len(curr_box.kpt_matches),
                                     n_lidar_curr=len(curr_box.lidar_points),
                                     n_lidar_prev=len(prev_box.lidar_points),
                                     n_shared=n_shared)
    return result
