"""
Desk monitor: webcam presence sessions with alerts.

Polls a webcam, runs YOLO on each tick, and tracks two sessions: the target
object (a phone) being in view, and the subject (a person) being away from
the desk. Session events go to the log and to the read-only status API.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-web: Do not start the status API
    --override-minutes: Start with absence detection suppressed for N minutes
"""

import os
import sys
import argparse
import asyncio
import logging
import threading
import time
from typing import Dict, Any, Tuple, Optional

import uvicorn
import yaml

from models.config import (
    DEFAULT_SUBJECT_CATEGORY,
    DEFAULT_TARGET_CATEGORY,
    Config,
    DetectorConfig,
    default_categories,
)
from monitoring import (
    FanoutEventSink,
    LoggingEventSink,
    ManualOverrideSource,
    MemoryEventSink,
    create_monitor_from_config,
)
from ops.logging import setup_logging
from pipeline.engine import create_driver_from_config
from web.app import create_app
from web.state import state as web_state


VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_BACKENDS = ('onnx', 'yolo')


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
        config_dir = os.path.dirname(config_path)
        base_path = os.path.join(config_dir, "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not one of the files above
        explicit = os.path.abspath(config_path)
        if (
            os.path.exists(config_path)
            and explicit != os.path.abspath(local_overrides_path)
            and explicit != os.path.abspath(base_path)
        ):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_unit_interval(value: Any, name: str) -> Optional[str]:
    if not _is_number(value) or not (0 <= value <= 1):
        return f"{name} must be a number between 0 and 1"
    return None


def _check_non_negative(value: Any, name: str) -> Optional[str]:
    if not _is_number(value) or value < 0:
        return f"{name} must be a non-negative number"
    return None


def _validate_session(session: Dict[str, Any], name: str) -> Optional[str]:
    for key in ('alert_threshold_seconds', 'alert_cooldown_ms', 'clear_stable_window_ms'):
        if key in session:
            err = _check_non_negative(session[key], f"{name}.{key}")
            if err:
                return err
    for key in ('alert_enabled', 'rearm_on_close'):
        if key in session and not isinstance(session[key], bool):
            return f"{name}.{key} must be true or false"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Values are checked here once at load time; the hot path never clamps.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['camera', 'detection', 'monitor', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings
    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2 or not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution must be a list of two positive integers"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"

    # Validate detection settings
    detection = config.get('detection') or {}
    backend = detection.get('backend', 'onnx')
    if backend not in VALID_BACKENDS:
        return False, f"detection.backend must be one of: {', '.join(VALID_BACKENDS)}"
    if not isinstance(detection.get('model'), str) or not detection.get('model'):
        return False, "detection.model is required"
    input_size = detection.get('input_size', 640)
    if not isinstance(input_size, int) or input_size <= 0:
        return False, "detection.input_size must be a positive integer"
    for key in ('confidence_threshold', 'iou_threshold'):
        if key in detection:
            err = _check_unit_interval(detection[key], f"detection.{key}")
            if err:
                return False, err
    class_names = detection.get('class_names')
    if class_names is not None and (
        not isinstance(class_names, list) or not all(isinstance(n, str) for n in class_names)
    ):
        return False, "detection.class_names must be a list of strings"
    enabled = detection.get('enabled_categories')
    if enabled is not None and (not isinstance(enabled, list) or not all(isinstance(n, str) for n in enabled)):
        return False, "detection.enabled_categories must be a list of strings"

    # Validate monitor settings
    monitor = config.get('monitor') or {}
    known_categories = set(default_categories()) | set(monitor.get('categories') or {})
    if enabled is None:
        enabled = DetectorConfig().enabled_categories
    for role, default in (('target_category', DEFAULT_TARGET_CATEGORY), ('subject_category', DEFAULT_SUBJECT_CATEGORY)):
        name = monitor.get(role, default)
        if not isinstance(name, str) or not name:
            return False, f"monitor.{role} must be a non-empty string"
        if name not in known_categories:
            return False, f"monitor.{role} '{name}' has no entry under monitor.categories"
        if name not in enabled:
            return False, f"monitor.{role} '{name}' is not listed in detection.enabled_categories"
    for name, cat in (monitor.get('categories') or {}).items():
        cat = cat or {}
        if 'confidence_threshold' in cat:
            err = _check_unit_interval(cat['confidence_threshold'], f"monitor.categories.{name}.confidence_threshold")
            if err:
                return False, err
        if 'interpolation_window_ms' in cat:
            err = _check_non_negative(cat['interpolation_window_ms'], f"monitor.categories.{name}.interpolation_window_ms")
            if err:
                return False, err
    for kind, session in (monitor.get('sessions') or {}).items():
        if kind not in ('target_present', 'subject_absent'):
            return False, f"monitor.sessions.{kind} is not a known session kind"
        err = _validate_session(session or {}, f"monitor.sessions.{kind}")
        if err:
            return False, err
    if 'detection_stale_ms' in monitor:
        err = _check_non_negative(monitor['detection_stale_ms'], "monitor.detection_stale_ms")
        if err:
            return False, err

    # Validate driver settings
    driver = config.get('driver') or {}
    tick = driver.get('tick_interval_ms', 500)
    if not _is_number(tick) or tick <= 0:
        return False, "driver.tick_interval_ms must be a positive number"

    # Validate web settings
    web = config.get('web') or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be an integer between 1 and 65535"

    # Validate log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def start_web_server(host: str, port: int) -> threading.Thread:
    """Run the status API in a daemon thread."""
    def run_web_app():
        uvicorn.run(
            create_app(),
            host=host,
            port=port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on port {port}")
    return web_thread


def main():
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='Desk Monitor - webcam presence sessions')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the status API')
    parser.add_argument('--override-minutes', type=float, default=None,
                        help='Start with absence detection suppressed for N minutes')
    parser.add_argument('--override-reason', type=str, default='manual',
                        help='Reason recorded with --override-minutes')
    args = parser.parse_args()

    # Load configuration
    raw_config = load_config(args.config)

    # Validate configuration
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    # Setup logging
    setup_logging(raw_config['log_path'], raw_config['log_level'])
    config = Config.from_dict(raw_config)

    logging.info("Starting Desk Monitor")

    event_log = MemoryEventSink(maxlen=200)
    sink = FanoutEventSink([LoggingEventSink(), event_log])
    try:
        monitor = create_monitor_from_config(
            config.monitor,
            sink=sink,
            enabled_categories=config.detection.enabled_categories,
        )
    except ValueError as e:
        logging.error(f"Failed to initialize session monitor: {e}")
        sys.exit(1)

    override_source = ManualOverrideSource()
    if args.override_minutes:
        override_source.activate(
            reason=args.override_reason,
            expires_at=time.time() + args.override_minutes * 60.0,
        )

    try:
        driver = create_driver_from_config(config, monitor, override_source=override_source)
    except (FileNotFoundError, ImportError, ValueError) as e:
        logging.error(f"Failed to initialize inference: {e}")
        sys.exit(1)

    web_state.attach(
        monitor=monitor,
        driver=driver,
        override_source=override_source,
        event_log=event_log,
        config=config,
    )
    if config.web.enabled and not args.no_web:
        start_web_server(config.web.host, config.web.port)

    try:
        asyncio.run(driver.run())
    except KeyboardInterrupt:
        logging.info("Desk monitor interrupted by user")
    except RuntimeError as e:
        logging.error(f"Desk monitor error: {e}")
        sys.exit(1)

    logging.info("Desk monitor stopped")


if __name__ == "__main__":
    main()
