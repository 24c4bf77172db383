import os
from dataclasses import dataclass, fields, replace

import yaml

from .association import AssociationStrategy
from .configs import (SHRINK_FACTOR, MATCH_DIST_RATIO, MIN_KPT_DIST_PX, LANE_HALF_WIDTH,
                      FRAME_RATE, MIN_DEPTH, RANGE_REDUCER, ASSOC_STRATEGY)
from .ttc import RANGE_REDUCERS


@dataclass
class FusionParams:
    shrink_factor: float = SHRINK_FACTOR       # box inset for lidar clustering (0..1)
    match_dist_ratio: float = MATCH_DIST_RATIO # outlier threshold relative to mean distance
    min_kpt_dist: float = MIN_KPT_DIST_PX      # px, ignore keypoint pairs closer than this
    lane_half_width: float = LANE_HALF_WIDTH   # m
    frame_rate: float = FRAME_RATE             # Hz
    min_depth: float = MIN_DEPTH               # m, camera-frame depth cut
    range_reducer: str = RANGE_REDUCER
    assoc_strategy: str = ASSOC_STRATEGY
    max_workers: int = 0                       # >1 filters matches on a thread pool

    def __post_init__(self):
        if not 0.0 <= self.shrink_factor < 1.0:
            raise ValueError(f"shrink_factor must be in [0, 1), got {self.shrink_factor}")
        if self.match_dist_ratio <= 0:
            raise ValueError(f"match_dist_ratio must be positive, got {self.match_dist_ratio}")
        if self.frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {self.frame_rate}")
        if self.lane_half_width <= 0:
            raise ValueError(f"lane_half_width must be positive, got {self.lane_half_width}")
        if self.range_reducer not in RANGE_REDUCERS:
            raise ValueError(f"unknown range_reducer {self.range_reducer!r}, "
                             f"expected one of {sorted(RANGE_REDUCERS)}")
        try:
            AssociationStrategy(self.assoc_strategy)
        except ValueError:
            raise ValueError(f"unknown assoc_strategy {self.assoc_strategy!r}, expected one of "
                             f"{[s.value for s in AssociationStrategy]}") from None

    def updated(self, **overrides):
        return replace(self, **overrides)


def load_params(params_yaml, base=None):
    """Read FusionParams overrides from a YAML mapping."""
    if not os.path.exists(params_yaml):
        raise FileNotFoundError(params_yaml)
    with open(params_yaml, "r") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{params_yaml}: expected a mapping at top level")
    known = {f.name for f in fields(FusionParams)}
    unknown = sorted(set(cfg) - known)
    if unknown:
        raise ValueError(f"{params_yaml}: unknown parameters {unknown}")
    return replace(base or FusionParams(), **cfg)
