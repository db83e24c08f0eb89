"""
Face capture service.

Pulls frames from the configured frame source, runs them through the face
detection model on TensorFlow Serving and saves every confident face as a
numbered JPEG crop.

Usage:
    python src/main.py --config config/config.yaml
    python src/main.py --framesurl http://mirror.local:5555/frame.jpg --servinggrpc localhost:8500

Arguments:
    --config: Path to configuration file
    Other flags override single configuration values (see --help).
"""

import argparse
import logging
import os
import signal
import sys
from typing import Any, Dict, Optional, Tuple

import yaml

from inference import INFERENCE_BACKENDS
from models.config import Config
from observation import SOURCE_BACKENDS
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from pipeline.stages.artifacts import is_valid_pattern
from pipeline.stages.boxes import BoxFormat


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_timeout(section: Dict[str, Any], name: str) -> Optional[str]:
    timeout = section.get("timeout")
    if timeout is not None and (not _is_number(timeout) or timeout <= 0):
        return f"{name}.timeout must be a positive number or null"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Only types and allowed values are checked; the names are not checked
    against the served model's signature.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['source', 'inference', 'artifacts', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate frame source settings
    source = config.get('source') or {}
    backend = source.get('backend', 'http')
    if backend not in SOURCE_BACKENDS:
        return False, f"source.backend must be one of: {', '.join(SOURCE_BACKENDS)}"
    if backend == 'http' and (not isinstance(source.get('url'), str) or not source.get('url')):
        return False, "source.url is required when source.backend is 'http'"
    if backend == 'opencv' and not isinstance(source.get('device_id', 0), (int, str)):
        return False, "source.device_id must be an integer (index) or string (URL/path)"
    if backend == 'directory' and not source.get('directory'):
        return False, "source.directory is required when source.backend is 'directory'"
    for key in ('width', 'height'):
        if key in source and source[key] is not None:
            if not isinstance(source[key], int) or isinstance(source[key], bool) or source[key] <= 0:
                return False, f"source.{key} must be a positive integer"
    error = _check_timeout(source, 'source')
    if error:
        return False, error

    # Validate inference settings
    inference = config.get('inference') or {}
    if inference.get('backend', 'grpc') not in INFERENCE_BACKENDS:
        return False, f"inference.backend must be one of: {', '.join(INFERENCE_BACKENDS)}"
    for key in ('address', 'model_name', 'signature_name', 'input_name',
                'scores_output', 'classes_output', 'boxes_output'):
        if key in inference and (not isinstance(inference[key], str) or not inference[key]):
            return False, f"inference.{key} must be a non-empty string"
    if 'model_version' in inference:
        version = inference['model_version']
        if not isinstance(version, int) or isinstance(version, bool) or version < 0:
            return False, "inference.model_version must be a non-negative integer"
    if inference.get('num_output') is not None and not isinstance(inference['num_output'], str):
        return False, "inference.num_output must be a string or null"
    error = _check_timeout(inference, 'inference')
    if error:
        return False, error

    # Validate detection settings
    detection = config.get('detection') or {}
    for key in ('class_threshold', 'score_threshold'):
        if key in detection and not _is_number(detection[key]):
            return False, f"detection.{key} must be a number"
    if 'max_slots' in detection:
        if not isinstance(detection['max_slots'], int) or detection['max_slots'] <= 0:
            return False, "detection.max_slots must be a positive integer"
    valid_formats = [f.value for f in BoxFormat]
    if detection.get('box_format', 'legacy') not in valid_formats:
        return False, f"detection.box_format must be one of: {', '.join(valid_formats)}"

    # Validate artifact settings
    artifacts = config.get('artifacts') or {}
    if not isinstance(artifacts.get('output_dir', '.'), str):
        return False, "artifacts.output_dir must be a string"
    pattern = artifacts.get('filename_pattern', 'image%05d.jpg')
    if not isinstance(pattern, str) or not is_valid_pattern(pattern):
        return False, "artifacts.filename_pattern must contain exactly one %d or %0Nd field"
    quality = artifacts.get('jpeg_quality')
    if quality is not None and (not isinstance(quality, int) or not (1 <= quality <= 100)):
        return False, "artifacts.jpeg_quality must be an integer between 1 and 100"

    # Validate loop settings
    pipeline = config.get('pipeline') or {}
    if 'throttle' in pipeline and (not _is_number(pipeline['throttle']) or pipeline['throttle'] < 0):
        return False, "pipeline.throttle must be a non-negative number"
    max_frames = pipeline.get('max_frames')
    if max_frames is not None and (not isinstance(max_frames, int) or max_frames <= 0):
        return False, "pipeline.max_frames must be a positive integer or null"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


# flag -> (section, key); section None means top level
CLI_OVERRIDES = {
    'throttle': ('pipeline', 'throttle'),
    'servinggrpc': ('inference', 'address'),
    'model': ('inference', 'model_name'),
    'signature': ('inference', 'signature_name'),
    'modelversion': ('inference', 'model_version'),
    'modelinput': ('inference', 'input_name'),
    'boxesoutput': ('inference', 'boxes_output'),
    'scoresoutput': ('inference', 'scores_output'),
    'classesoutput': ('inference', 'classes_output'),
    'numoutput': ('inference', 'num_output'),
    'framesurl': ('source', 'url'),
    'width': ('source', 'width'),
    'height': ('source', 'height'),
    'output_dir': ('artifacts', 'output_dir'),
    'max_frames': ('pipeline', 'max_frames'),
    'log_level': (None, 'log_level'),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Face Capture Service')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--throttle', type=float,
                        help='Minimum seconds per frame to save CPU')
    parser.add_argument('--servinggrpc', type=str,
                        help='Address of TensorFlow Serving for face detection')
    parser.add_argument('--model', type=str, help='TensorFlow Serving model name')
    parser.add_argument('--signature', type=str, help='TensorFlow Serving model signature name')
    parser.add_argument('--modelversion', type=int, help='TensorFlow Serving model version')
    parser.add_argument('--modelinput', type=str, help='Model input tensor name')
    parser.add_argument('--boxesoutput', type=str, help='Model output name for boxes')
    parser.add_argument('--scoresoutput', type=str, help='Model output name for scores')
    parser.add_argument('--classesoutput', type=str, help='Model output name for classes')
    parser.add_argument('--numoutput', type=str, help='Model output name for number of detections')
    parser.add_argument('--framesurl', type=str, help='URL of the frame snapshot endpoint')
    parser.add_argument('--width', type=int, help='Expected frame width')
    parser.add_argument('--height', type=int, help='Expected frame height')
    parser.add_argument('--output-dir', type=str, help='Directory for face crops')
    parser.add_argument('--max-frames', type=int, help='Stop after this many frames')
    parser.add_argument('--log-level', type=str, help='Logging level')
    return parser


def apply_cli_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Copy every flag that was given on the command line into config."""
    for flag, (section, key) in CLI_OVERRIDES.items():
        value = getattr(args, flag, None)
        if value is None:
            continue
        if section is None:
            config[key] = value
        else:
            target = config.get(section)
            if not isinstance(target, dict):
                target = config[section] = {}
            target[key] = value
    return config


def main(argv=None) -> int:
    """Main application function."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    apply_cli_overrides(config, args)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    setup_logging(config.get('log_path'), config['log_level'])
    logging.info("Starting Face Capture Service")
    logging.debug(f"Effective configuration: {Config.from_dict(config).to_dict()}")

    try:
        engine = create_engine_from_config(config)
    except (ImportError, ValueError) as e:
        logging.error(f"Failed to initialize pipeline: {e}")
        return 1

    def handle_sigterm(signum, frame):
        logging.info("SIGTERM received, stopping after the current frame")
        engine.stop()

    signal.signal(signal.SIGTERM, handle_sigterm)

    termination = engine.run()
    logging.info(f"closing... ({termination.reason.value})")
    return 1 if termination.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
