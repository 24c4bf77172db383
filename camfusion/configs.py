SHRINK_FACTOR = 0.10        # fraction of box width/height trimmed before point tests
MATCH_DIST_RATIO = 0.7      # keep matches with distance < ratio * mean distance
MIN_KPT_DIST_PX = 100.0     # min. current-frame distance of a keypoint pair
LANE_HALF_WIDTH = 2.0       # meters, ego lane is |y| <= half width
FRAME_RATE = 10.0           # Hz
MIN_DEPTH = 0.1             # meters in camera frame, drop points behind the lens
RANGE_REDUCER = "mean"      # "mean" | "median" | "min"
ASSOC_STRATEGY = "greedy"   # "greedy" | "hungarian"
EPS = 1e-9
