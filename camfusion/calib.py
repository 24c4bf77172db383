import os
from dataclasses import dataclass

import numpy as np
import cv2
import yaml


def _as_homogeneous_4x4(M, name):
    M = np.asarray(M, dtype=np.float64)
    if M.shape == (4, 4):
        return M
    if M.shape == (3, 3):
        H = np.eye(4)
        H[:3, :3] = M
        return H
    if M.shape == (3, 4):
        H = np.eye(4)
        H[:3, :] = M
        return H
    raise ValueError(f"{name} must be 3x3, 3x4 or 4x4, got {M.shape}")


def _as_projection_3x4(P):
    P = np.asarray(P, dtype=np.float64)
    if P.shape == (3, 4):
        return P
    if P.shape == (3, 3):
        return np.hstack([P, np.zeros((3, 1))])
    raise ValueError(f"P_rect must be 3x3 or 3x4, got {P.shape}")


@dataclass
class Calibration:
    """
    Camera projection P_rect (3x3 or 3x4), rectifying rotation R_rect (3x3 or 4x4)
    and lidar-to-camera extrinsics RT (4x4 or 3x4).
    """
    P_rect: np.ndarray
    R_rect: np.ndarray
    RT: np.ndarray

    def __post_init__(self):
        self.P_rect = _as_projection_3x4(self.P_rect)
        self.R_rect = _as_homogeneous_4x4(self.R_rect, "R_rect")
        self.RT = _as_homogeneous_4x4(self.RT, "RT")

    def projection_matrix(self) -> np.ndarray:
        """3x4 matrix mapping homogeneous lidar points to homogeneous pixels."""
        return self.P_rect @ self.R_rect @ self.RT


def compose_projection(P_rect, R_rect, RT) -> np.ndarray:
    return Calibration(P_rect, R_rect, RT).projection_matrix()


def extrinsics_from_rt(R, t) -> np.ndarray:
    RT = np.eye(4)
    RT[:3, :3] = np.asarray(R, dtype=np.float64).reshape(3, 3)
    RT[:3, 3] = np.asarray(t, dtype=np.float64).reshape(3)
    return RT


def load_calib(calib_yaml):
    """
    Load a Calibration from YAML. Keys:
      P_rect (or K)          camera matrix, 3x3 or 3x4
      R_rect                 rectification, optional (identity)
      RT                     4x4 extrinsics, or
      R / rvec + t           rotation matrix or Rodrigues vector plus translation
    """
    if not os.path.exists(calib_yaml):
        raise FileNotFoundError(calib_yaml)
    with open(calib_yaml, "r") as f:
        cal = yaml.safe_load(f) or {}

    P = cal.get("P_rect", cal.get("K"))
    if P is None:
        raise ValueError(f"{calib_yaml}: missing 'P_rect' (or 'K')")
    P = np.array(P, dtype=np.float64).reshape(3, -1)

    R_rect = np.array(cal.get("R_rect", np.eye(3).tolist()), dtype=np.float64)
    R_rect = R_rect.reshape(4, 4) if R_rect.size == 16 else R_rect.reshape(3, 3)

    if "RT" in cal:
        RT = np.array(cal["RT"], dtype=np.float64)
        RT = RT.reshape(4, 4) if RT.size == 16 else RT.reshape(3, 4)
    elif "t" in cal and ("R" in cal or "rvec" in cal):
        if "R" in cal:
            R = np.array(cal["R"], dtype=np.float64).reshape(3, 3)
        else:
            R, _ = cv2.Rodrigues(np.array(cal["rvec"], dtype=np.float64).reshape(3, 1))
        RT = extrinsics_from_rt(R, cal["t"])
    else:
        raise ValueError(f"{calib_yaml}: need 'RT' or 'R'/'rvec' plus 't'")
    return Calibration(P, R_rect, RT)


def _read_kitti_txt(path):
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    values = {}
    with open(path, "r") as f:
        for line in f:
            if ":" not in line:
                continue
            key, rest = line.split(":", 1)
            try:
                values[key.strip()] = np.array([float(v) for v in rest.split()], dtype=np.float64)
            except ValueError:
                continue  # e.g. calib_time
    return values


def load_kitti_calib(cam_to_cam_txt, velo_to_cam_txt, cam="00"):
    """Calibration from KITTI raw-data calib_cam_to_cam.txt / calib_velo_to_cam.txt."""
    c2c = _read_kitti_txt(cam_to_cam_txt)
    v2c = _read_kitti_txt(velo_to_cam_txt)
    try:
        P = c2c[f"P_rect_{cam}"].reshape(3, 4)
        R_rect = c2c[f"R_rect_{cam}"].reshape(3, 3)
        R = v2c["R"].reshape(3, 3)
        t = v2c["T"].reshape(3)
    except KeyError as e:
        raise ValueError(f"missing KITTI calibration entry {e}") from e
    return Calibration(P, R_rect, extrinsics_from_rt(R, t))
