import logging
import pathlib
import tempfile
import unittest

from depthscan.config.app_config import AppConfig, AppPaths, app_config_from_mapping, load_app_config
from depthscan.config.calibration import CameraIntrinsics, load_intrinsics, save_intrinsics
from depthscan.config.logging_config import LOG_FILENAME, setup_logging
from depthscan.gui.application import _parse_cli_args, build_app_config


class AppConfigTest(unittest.TestCase):
    def test_missing_file_gives_defaults(self):
        cfg = load_app_config("/nonexistent/depthscan.yaml")
        self.assertEqual(cfg.sensor_backend, "synthetic")
        self.assertEqual(cfg.settle_delay_s, 1.0)

    def test_nested_app_section_and_unknown_keys(self):
        cfg = app_config_from_mapping(
            {"app": {"sensor_backend": "OpenNI2", "settle_delay_s": -3}, "colour": "red"}
        )
        self.assertEqual(cfg.sensor_backend, "openni")
        self.assertEqual(cfg.settle_delay_s, 0.0)

    def test_non_mapping_yaml_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "cfg.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_app_config(path)

    def test_cli_flags_override_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "cfg.yaml"
            path.write_text("sensor_backend: openni\nlog_level: debug\n", encoding="utf-8")
            args, qt_argv = _parse_cli_args(
                ["depthscan", "--config", str(path), "--settle-delay", "0", "-style", "fusion"]
            )
            cfg = build_app_config(args)
        self.assertEqual(cfg.sensor_backend, "openni")
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.settle_delay_s, 0.0)
        self.assertEqual(qt_argv, ["depthscan", "-style", "fusion"])


def test_env_overrides_paths(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("DEPTHSCAN_TEMPLATE_DIR", str(tmp_path / "tpl"))
    monkeypatch.setenv("DEPTHSCAN_LOG_DIR", str(tmp_path / "logs"))
    paths = AppPaths()
    assert paths.template_dir == tmp_path / "tpl"
    assert paths.logs == tmp_path / "logs"
    assert AppConfig().template_dir == tmp_path / "tpl"


def test_setup_logging_writes_log_file(tmp_path) -> None:
    setup_logging("debug", tmp_path)
    logging.getLogger("depthscan.test").debug("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in (tmp_path / LOG_FILENAME).read_text(encoding="utf-8")
    setup_logging("WARNING")


def test_intrinsics_file_round_trip_and_fallback(tmp_path, caplog) -> None:
    intr = CameraIntrinsics(width=320, height=240, fx=285.0, fy=285.0, cx=159.5, cy=119.5, k1=0.01)
    save_intrinsics(tmp_path, intr)
    assert load_intrinsics(tmp_path) == intr

    with caplog.at_level(logging.WARNING):
        assert load_intrinsics(tmp_path / "missing") == CameraIntrinsics()
    assert "No camera calibration" in caplog.text


def test_malformed_intrinsics_fall_back_to_defaults(tmp_path) -> None:
    (tmp_path / "intrinsics.yaml").write_text("intrinsics: {fx: [1, 2]}\n", encoding="utf-8")
    assert load_intrinsics(tmp_path) == CameraIntrinsics()
