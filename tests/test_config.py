"""
Smoke tests for configuration loading, validation and the command line.
"""

from unittest.mock import Mock

import pytest

import main
from main import apply_cli_overrides, build_parser, load_config, validate_config
from pipeline.engine import Termination, TerminationReason


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["source", "inference", "artifacts", "log_level"])
    def test_missing_required_section(self, valid_config, section):
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error

    def test_detection_and_pipeline_sections_optional(self, valid_config):
        del valid_config["detection"]
        del valid_config["pipeline"]

        assert validate_config(valid_config) == (True, None)

    def test_invalid_source_backend(self, valid_config):
        valid_config["source"]["backend"] = "carrier_pigeon"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "source.backend" in error

    def test_http_source_requires_url(self, valid_config):
        valid_config["source"]["url"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "source.url" in error

    def test_directory_source_requires_directory(self, valid_config):
        valid_config["source"] = {"backend": "directory"}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "source.directory" in error

    def test_opencv_rtsp_device_valid(self, valid_config):
        valid_config["source"] = {"backend": "opencv", "device_id": "rtsp://192.168.1.1/stream"}

        assert validate_config(valid_config) == (True, None)

    @pytest.mark.parametrize("value", [0, -640, "640", 1.5])
    def test_invalid_width(self, valid_config, value):
        valid_config["source"]["width"] = value

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "source.width" in error

    @pytest.mark.parametrize("section", ["source", "inference"])
    def test_invalid_timeout(self, valid_config, section):
        valid_config[section]["timeout"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert f"{section}.timeout" in error

    def test_null_timeout_valid(self, valid_config):
        valid_config["inference"]["timeout"] = None

        assert validate_config(valid_config) == (True, None)

    def test_invalid_inference_backend(self, valid_config):
        valid_config["inference"]["backend"] = "onnx"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "inference.backend" in error

    def test_empty_output_name(self, valid_config):
        valid_config["inference"]["boxes_output"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "boxes_output" in error

    def test_invalid_model_version(self, valid_config):
        valid_config["inference"]["model_version"] = "latest"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "model_version" in error

    def test_invalid_score_threshold(self, valid_config):
        valid_config["detection"]["score_threshold"] = "high"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "score_threshold" in error

    def test_invalid_box_format(self, valid_config):
        valid_config["detection"]["box_format"] = "xyxy"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "box_format" in error

    @pytest.mark.parametrize("pattern", ["image.jpg", "image%05d_%d.jpg", "image%5d.jpg"])
    def test_invalid_filename_pattern(self, valid_config, pattern):
        valid_config["artifacts"]["filename_pattern"] = pattern

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "filename_pattern" in error

    def test_invalid_jpeg_quality(self, valid_config):
        valid_config["artifacts"]["jpeg_quality"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "jpeg_quality" in error

    def test_negative_throttle(self, valid_config):
        valid_config["pipeline"]["throttle"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "throttle" in error

    def test_zero_throttle_valid(self, valid_config):
        valid_config["pipeline"]["throttle"] = 0

        assert validate_config(valid_config) == (True, None)

    def test_invalid_max_frames(self, valid_config):
        valid_config["pipeline"]["max_frames"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "max_frames" in error

    def test_invalid_log_level(self, valid_config):
        """Invalid log level fails."""
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config = load_config(str(temp_config_dir / "config.yaml"))

        assert config["source"]["backend"] == "http"
        assert config["inference"]["address"] == "localhost:8500"
        assert config["detection"]["score_threshold"] == 0.6

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
inference:
  address: "serving:8500"
  num_output: "num_detections"
""")

        config = load_config(str(config_yaml))

        assert config["inference"]["address"] == "serving:8500"
        assert config["inference"]["num_output"] == "num_detections"
        assert config["inference"]["model_name"] == "face_detection"
        assert config["source"]["width"] == 1640

    def test_explicit_config_applied_last(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("pipeline:\n  throttle: 2.0\n")
        explicit = temp_config_dir / "site.yaml"
        explicit.write_text("pipeline:\n  throttle: 0.5\nlog_level: DEBUG\n")

        config = load_config(str(explicit))

        assert config["pipeline"]["throttle"] == 0.5
        assert config["log_level"] == "DEBUG"
        assert config["artifacts"]["filename_pattern"] == "image%05d.jpg"

    def test_invalid_yaml_exits(self, temp_config_dir):
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("source: [unclosed\n")

        with pytest.raises(SystemExit):
            load_config(str(config_yaml))


class TestCliOverrides:
    def test_flags_override_config(self, valid_config):
        args = build_parser().parse_args([
            "--servinggrpc", "ts:9000",
            "--modelversion", "4",
            "--numoutput", "num_detections",
            "--framesurl", "http://cam/frame.jpg",
            "--throttle", "0",
            "--output-dir", "/data/faces",
            "--log-level", "DEBUG",
        ])

        config = apply_cli_overrides(valid_config, args)

        assert config["inference"]["address"] == "ts:9000"
        assert config["inference"]["model_version"] == 4
        assert config["inference"]["num_output"] == "num_detections"
        assert config["source"]["url"] == "http://cam/frame.jpg"
        assert config["pipeline"]["throttle"] == 0.0
        assert config["artifacts"]["output_dir"] == "/data/faces"
        assert config["log_level"] == "DEBUG"

    def test_absent_flags_keep_config(self, valid_config):
        args = build_parser().parse_args([])

        config = apply_cli_overrides(valid_config, args)

        assert config["inference"]["address"] == "localhost:8501"
        assert config["pipeline"]["throttle"] == 1.0

    def test_missing_section_created(self):
        args = build_parser().parse_args(["--max-frames", "5"])

        config = apply_cli_overrides({}, args)

        assert config["pipeline"] == {"max_frames": 5}


class TestMain:
    @pytest.fixture
    def config_path(self, temp_config_dir):
        return str(temp_config_dir / "config.yaml")

    def _patch_engine(self, monkeypatch, reason):
        engine = Mock()
        engine.run.return_value = Termination(reason=reason)
        monkeypatch.setattr(main, "create_engine_from_config", Mock(return_value=engine))
        monkeypatch.setattr(main.signal, "signal", Mock())
        return engine

    def test_invalid_config_returns_1(self, config_path):
        assert main.main(["--config", config_path, "--log-level", "VERBOSE"]) == 1

    def test_clean_termination_returns_0(self, monkeypatch, config_path):
        engine = self._patch_engine(monkeypatch, TerminationReason.FRAME_LIMIT)

        assert main.main(["--config", config_path, "--max-frames", "1"]) == 0
        engine.run.assert_called_once()
        main.signal.signal.assert_called_once()

    def test_error_termination_returns_1(self, monkeypatch, config_path):
        self._patch_engine(monkeypatch, TerminationReason.INFERENCE_ERROR)

        assert main.main(["--config", config_path]) == 1

    def test_engine_setup_failure_returns_1(self, monkeypatch, config_path):
        monkeypatch.setattr(
            main, "create_engine_from_config", Mock(side_effect=ImportError("grpc missing"))
        )

        assert main.main(["--config", config_path]) == 1
