from .structures import RangePoint, BoundingBox, DataFrame, TTCResult, TTCStatus, BoxTTC
from .calib import Calibration, load_calib, load_kitti_calib
from .params import FusionParams, load_params
from .projection import cluster_lidar_with_roi, project_lidar_to_image
from .matches import cluster_kpt_matches_with_roi, cluster_kpt_matches_all
from .association import AssociationStrategy, match_bounding_boxes
from .ttc import compute_ttc_camera, compute_ttc_lidar
from .pipeline import FrameResult, cluster_frame_lidar, process_frame_pair

__version__ = "0.1.0"
