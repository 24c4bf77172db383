"""
Tests for calibration and parameter loading
pytest tests/test_config.py -v
"""
import numpy as np
import pytest
import yaml

from camfusion.calib import Calibration, compose_projection, load_calib, load_kitti_calib
from camfusion.params import FusionParams, load_params
from camfusion.synthetic import LIDAR_TO_CAM


def write_yaml(path, data):
    with open(path, "w") as f:
        yaml.safe_dump(data, f)
    return str(path)


class TestCalibration:
    def test_pads_matrices(self):
        c = Calibration(np.eye(3), np.eye(3), np.eye(4)[:3])
        assert c.P_rect.shape == (3, 4)
        assert c.R_rect.shape == (4, 4)
        assert c.RT.shape == (4, 4)
        assert c.projection_matrix().shape == (3, 4)

    def test_rejects_bad_shapes(self):
        with pytest.raises(ValueError):
            Calibration(np.eye(4), np.eye(3), np.eye(4))
        with pytest.raises(ValueError):
            Calibration(np.eye(3), np.eye(2), np.eye(4))

    def test_compose_order(self):
        P = np.array([[100.0, 0, 50, 0], [0, 100.0, 40, 0], [0, 0, 1, 0]])
        R_rect = np.eye(3)
        M = compose_projection(P, R_rect, LIDAR_TO_CAM)
        assert M == pytest.approx(P @ LIDAR_TO_CAM)


class TestLoadCalib:
    def test_rt_key(self, tmp_path):
        p = write_yaml(tmp_path / "calib.yaml", {"P_rect": np.eye(3, 4).tolist(),
                                                  "RT": LIDAR_TO_CAM.tolist()})
        c = load_calib(p)
        assert c.RT == pytest.approx(LIDAR_TO_CAM)
        assert c.R_rect == pytest.approx(np.eye(4))

    def test_r_and_t(self, tmp_path):
        p = write_yaml(tmp_path / "calib.yaml", {"K": np.eye(3).ravel().tolist(),
                                                  "R": np.eye(3).tolist(), "t": [0.1, -0.2, 0.3]})
        c = load_calib(p)
        assert c.RT[:3, 3] == pytest.approx([0.1, -0.2, 0.3])
        assert c.P_rect.shape == (3, 4)

    def test_rodrigues_vector(self, tmp_path):
        p = write_yaml(tmp_path / "calib.yaml", {"K": np.eye(3).tolist(),
                                                  "rvec": [0.0, 0.0, np.pi / 2], "t": [0, 0, 0]})
        R = load_calib(p).RT[:3, :3]
        assert R @ np.array([1.0, 0.0, 0.0]) == pytest.approx([0.0, 1.0, 0.0], abs=1e-9)

    def test_missing_extrinsics(self, tmp_path):
        p = write_yaml(tmp_path / "calib.yaml", {"K": np.eye(3).tolist()})
        with pytest.raises(ValueError):
            load_calib(p)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_calib(str(tmp_path / "nope.yaml"))


def test_load_kitti_calib(tmp_path):
    cam = tmp_path / "calib_cam_to_cam.txt"
    velo = tmp_path / "calib_velo_to_cam.txt"
    cam.write_text("calib_time: 09-Jan-2012 13:57:47\n"
                   "P_rect_00: 7.2e+02 0 6.0e+02 0 0 7.2e+02 1.7e+02 0 0 0 1 0\n"
                   "R_rect_00: 1 0 0 0 1 0 0 0 1\n")
    velo.write_text("calib_time: 15-Mar-2012 11:37:16\n"
                    "R: 0 -1 0 0 0 -1 1 0 0\n"
                    "T: -0.004 -0.076 -0.27\n")
    c = load_kitti_calib(str(cam), str(velo))
    assert c.P_rect[0, 0] == pytest.approx(720.0)
    assert c.RT[:3, :3] == pytest.approx(LIDAR_TO_CAM[:3, :3])
    assert c.RT[:3, 3] == pytest.approx([-0.004, -0.076, -0.27])


class TestFusionParams:
    def test_defaults(self):
        p = FusionParams()
        assert p.match_dist_ratio == 0.7
        assert p.min_kpt_dist == 100.0
        assert p.lane_half_width == 2.0
        assert p.range_reducer == "mean"
        assert p.assoc_strategy == "greedy"

    @pytest.mark.parametrize("kw", [{"shrink_factor": 1.0}, {"frame_rate": 0.0},
                                    {"lane_half_width": -1.0}, {"match_dist_ratio": 0.0}])
    def test_validation(self, kw):
        with pytest.raises(ValueError):
            FusionParams(**kw)

    @pytest.mark.parametrize("kw", [{"assoc_strategy": "nearst"}, {"range_reducer": "mode"}])
    def test_rejects_unknown_names(self, kw):
        with pytest.raises(ValueError, match=next(iter(kw))):
            FusionParams(**kw)

    def test_accepts_every_reducer(self):
        for name in ("mean", "median", "min"):
            assert FusionParams(range_reducer=name).range_reducer == name

    def test_updated_validates(self):
        with pytest.raises(ValueError):
            FusionParams().updated(frame_rate=-1.0)

    def test_load_params(self, tmp_path):
        p = load_params(write_yaml(tmp_path / "p.yaml", {"frame_rate": 20.0, "assoc_strategy": "hungarian"}))
        assert p.frame_rate == 20.0
        assert p.assoc_strategy == "hungarian"
        assert p.shrink_factor == FusionParams().shrink_factor

    def test_load_params_unknown_key(self, tmp_path):
        with pytest.raises(ValueError):
            load_params(write_yaml(tmp_path / "p.yaml", {"fps": 20.0}))

    def test_load_params_misspelled_strategy(self, tmp_path):
        with pytest.raises(ValueError, match="nearst"):
            load_params(write_yaml(tmp_path / "p.yaml", {"assoc_strategy": "nearst"}))

    def test_load_params_empty_file(self, tmp_path):
        path = tmp_path / "p.yaml"
        path.write_text("")
        assert load_params(str(path)) == FusionParams()


def test_shipped_config_files():
    import os
    root = os.path.join(os.path.dirname(__file__), "..", "config")
    assert load_params(os.path.join(root, "params.yaml")) == FusionParams()
    c = load_calib(os.path.join(root, "calib_kitti_00.yaml"))
    # a point 10 m straight ahead lands near the principal point
    M = c.projection_matrix()
    y = M @ np.array([10.0, 0.0, 0.0, 1.0])
    assert y[2] > 0
    assert abs(y[0] / y[2] - c.P_rect[0, 2]) < 50
