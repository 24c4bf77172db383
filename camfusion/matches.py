import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .configs import MATCH_DIST_RATIO
from .structures import keypoint_coords

logger = logging.getLogger(__name__)


def matches_in_roi(box, kpts_curr, kpt_matches):
    """Matches whose current-frame keypoint (trainIdx) lies inside the box rectangle."""
    if not kpt_matches:
        return []
    pts = keypoint_coords(kpts_curr)
    train_idx = np.array([m.trainIdx for m in kpt_matches], dtype=int)
    inside = box.contains(pts[train_idx])
    return [m for m, ok in zip(kpt_matches, inside) if ok]


def filter_by_mean_distance(kpt_matches, ratio=MATCH_DIST_RATIO):
    """Keep matches with descriptor distance strictly below ratio * mean distance."""
    if not kpt_matches:
        return []
    dist = np.array([m.distance for m in kpt_matches], dtype=np.float64)
    threshold = ratio * dist.mean()
    return [m for m, d in zip(kpt_matches, dist) if d < threshold]


def cluster_kpt_matches_with_roi(box, kpts_prev, kpts_curr, kpt_matches, ratio=MATCH_DIST_RATIO):
    """
    Associate a bounding box with the keypoint matches it contains and drop
    outliers by descriptor distance. Appends to box.kpt_matches and returns
    the number of matches kept. A box without matches keeps an empty list.
    """
    roi_matches = matches_in_roi(box, kpts_curr, kpt_matches)
    kept = filter_by_mean_distance(roi_matches, ratio)
    box.kpt_matches.extend(kept)
    logger.debug("box %d: %d matches in roi, %d kept", box.box_id, len(roi_matches), len(kept))
    return len(kept)


def cluster_kpt_matches_all(boxes, kpts_prev, kpts_curr, kpt_matches,
                            ratio=MATCH_DIST_RATIO, max_workers=0):
    """Run cluster_kpt_matches_with_roi for every box, optionally one task per box."""
    if max_workers and max_workers > 1 and len(boxes) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(cluster_kpt_matches_with_roi, b, kpts_prev, kpts_curr,
                                   kpt_matches, ratio) for b in boxes]
            return [f.result() for f in futures]
    return [cluster_kpt_matches_with_roi(b, kpts_prev, kpts_curr, kpt_matches, ratio)
            for b in boxes]
