import logging
from enum import Enum

import numpy as np
from scipy.optimize import linear_sum_assignment

from .structures import keypoint_coords

logger = logging.getLogger(__name__)


class AssociationStrategy(Enum):
    GREEDY = "greedy"         # per current box argmax, may map two boxes to one
    HUNGARIAN = "hungarian"   # one-to-one maximum-weight assignment


def _owner_index(boxes, pts):
    """
    Index of the box owning each point, -1 if none. A point inside several
    overlapping rectangles goes to the smallest one, then the lowest box_id.
    """
    owner = np.full(len(pts), -1, dtype=int)
    if not boxes or len(pts) == 0:
        return owner
    order = sorted(range(len(boxes)), key=lambda j: (boxes[j].area, boxes[j].box_id))
    for j in reversed(order):
        owner[boxes[j].contains(pts)] = j
    return owner


def count_box_matches(kpt_matches, prev_frame, curr_frame):
    """
    Tally matrix of shape (n_curr, n_prev) over the frames' box lists: entry
    [i, j] counts matches with the current keypoint in curr box i and the
    previous keypoint in prev box j.
    """
    counts = np.zeros((len(curr_frame.boxes), len(prev_frame.boxes)), dtype=int)
    if not kpt_matches or counts.size == 0:
        return counts
    pts_curr = keypoint_coords(curr_frame.keypoints)
    pts_prev = keypoint_coords(prev_frame.keypoints)
    train_idx = np.array([m.trainIdx for m in kpt_matches], dtype=int)
    query_idx = np.array([m.queryIdx for m in kpt_matches], dtype=int)

    ci = _owner_index(curr_frame.boxes, pts_curr[train_idx])
    pj = _owner_index(prev_frame.boxes, pts_prev[query_idx])
    both = (ci >= 0) & (pj >= 0)
    np.add.at(counts, (ci[both], pj[both]), 1)
    return counts


def _greedy(counts, prev_ids):
    # stable order so that argmax picks the lowest previous id on ties
    order = np.argsort(prev_ids, kind="stable")
    best = order[np.argmax(counts[:, order], axis=1)]
    return {i: int(best[i]) for i in range(counts.shape[0])}


def _hungarian(counts):
    rows, cols = linear_sum_assignment(counts, maximize=True)
    return {int(i): int(j) for i, j in zip(rows, cols) if counts[i, j] > 0}


def match_bounding_boxes(kpt_matches, prev_frame, curr_frame, strategy=AssociationStrategy.GREEDY):
    """
    Associate current-frame boxes with previous-frame boxes by counting the
    keypoint matches they share. Returns {curr box_id: prev box_id}.
    """
    strategy = AssociationStrategy(strategy)
    if not curr_frame.boxes or not prev_frame.boxes:
        return {}
    counts = count_box_matches(kpt_matches, prev_frame, curr_frame)
    prev_ids = np.array(prev_frame.box_ids)

    if strategy is AssociationStrategy.GREEDY:
        pairs = _greedy(counts, prev_ids)
    else:
        pairs = _hungarian(counts)

    bb_best_matches = {curr_frame.boxes[i].box_id: int(prev_ids[j]) for i, j in pairs.items()}
    logger.debug("box association (%s): %s", strategy.value, bb_best_matches)
    return bb_best_matches
