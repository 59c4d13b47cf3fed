"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


DEFAULT_TARGET_CATEGORY = "cell phone"
DEFAULT_SUBJECT_CATEGORY = "person"


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    flip_horizontal: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            flip_horizontal=d.get("flip_horizontal", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "flip_horizontal": self.flip_horizontal,
        }


@dataclass
class DetectorConfig:
    """Object detector configuration."""
    backend: str = "onnx"
    model: str = "models/yolo11n.onnx"
    input_size: int = 640
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_names: Optional[List[str]] = None
    enabled_categories: List[str] = field(default_factory=lambda: [
        DEFAULT_SUBJECT_CATEGORY,
        DEFAULT_TARGET_CATEGORY,
    ])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            backend=d.get("backend", "onnx"),
            model=d.get("model", "models/yolo11n.onnx"),
            input_size=d.get("input_size", 640),
            confidence_threshold=d.get("confidence_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            class_names=d.get("class_names"),
            enabled_categories=d.get(
                "enabled_categories",
                [DEFAULT_SUBJECT_CATEGORY, DEFAULT_TARGET_CATEGORY],
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "backend": self.backend,
            "model": self.model,
            "input_size": self.input_size,
            "confidence_threshold": self.confidence_threshold,
            "iou_threshold": self.iou_threshold,
            "enabled_categories": self.enabled_categories,
        }
        if self.class_names is not None:
            d["class_names"] = self.class_names
        return d


@dataclass
class CategoryConfig:
    """Per-category presence settings."""
    confidence_threshold: float = 0.5
    interpolation_window_ms: int = 500

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CategoryConfig":
        return cls(
            confidence_threshold=d.get("confidence_threshold", 0.5),
            interpolation_window_ms=d.get("interpolation_window_ms", 500),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence_threshold": self.confidence_threshold,
            "interpolation_window_ms": self.interpolation_window_ms,
        }


@dataclass
class SessionConfig:
    """
    Per-kind session settings.

    Attributes:
        alert_threshold_seconds: Elapsed session time before the alert fires.
        alert_cooldown_ms: Minimum spacing between two alerts of this kind.
        clear_stable_window_ms: How long the condition must stay false to close.
        alert_enabled: Whether alerts are raised at all.
        rearm_on_close: Clear the alert cooldown when a session closes.
    """
    alert_threshold_seconds: float = 10
    alert_cooldown_ms: int = 120000
    clear_stable_window_ms: int = 2000
    alert_enabled: bool = True
    rearm_on_close: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any], defaults: Optional["SessionConfig"] = None) -> "SessionConfig":
        base = defaults or cls()
        return cls(
            alert_threshold_seconds=d.get("alert_threshold_seconds", base.alert_threshold_seconds),
            alert_cooldown_ms=d.get("alert_cooldown_ms", base.alert_cooldown_ms),
            clear_stable_window_ms=d.get("clear_stable_window_ms", base.clear_stable_window_ms),
            alert_enabled=d.get("alert_enabled", base.alert_enabled),
            rearm_on_close=d.get("rearm_on_close", base.rearm_on_close),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_threshold_seconds": self.alert_threshold_seconds,
            "alert_cooldown_ms": self.alert_cooldown_ms,
            "clear_stable_window_ms": self.clear_stable_window_ms,
            "alert_enabled": self.alert_enabled,
            "rearm_on_close": self.rearm_on_close,
        }


def default_target_session() -> SessionConfig:
    return SessionConfig(
        alert_threshold_seconds=10,
        alert_cooldown_ms=120000,
        clear_stable_window_ms=2000,
    )


def default_absence_session() -> SessionConfig:
    return SessionConfig(
        alert_threshold_seconds=30,
        alert_cooldown_ms=300000,
        clear_stable_window_ms=2000,
    )


def default_categories() -> Dict[str, CategoryConfig]:
    # The target window is wider: a phone flickers more than a person does.
    return {
        DEFAULT_SUBJECT_CATEGORY: CategoryConfig(confidence_threshold=0.5, interpolation_window_ms=500),
        DEFAULT_TARGET_CATEGORY: CategoryConfig(confidence_threshold=0.5, interpolation_window_ms=2000),
    }


@dataclass
class MonitorConfig:
    """Presence and session configuration."""
    target_category: str = DEFAULT_TARGET_CATEGORY
    subject_category: str = DEFAULT_SUBJECT_CATEGORY
    categories: Dict[str, CategoryConfig] = field(default_factory=default_categories)
    target_present: SessionConfig = field(default_factory=default_target_session)
    subject_absent: SessionConfig = field(default_factory=default_absence_session)
    detection_stale_ms: int = 1000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MonitorConfig":
        categories = default_categories()
        for name, cat in (d.get("categories") or {}).items():
            categories[name] = CategoryConfig.from_dict(cat or {})
        sessions = d.get("sessions") or {}
        return cls(
            target_category=d.get("target_category", DEFAULT_TARGET_CATEGORY),
            subject_category=d.get("subject_category", DEFAULT_SUBJECT_CATEGORY),
            categories=categories,
            target_present=SessionConfig.from_dict(
                sessions.get("target_present") or {}, defaults=default_target_session()
            ),
            subject_absent=SessionConfig.from_dict(
                sessions.get("subject_absent") or {}, defaults=default_absence_session()
            ),
            detection_stale_ms=d.get("detection_stale_ms", 1000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_category": self.target_category,
            "subject_category": self.subject_category,
            "categories": {name: c.to_dict() for name, c in self.categories.items()},
            "sessions": {
                "target_present": self.target_present.to_dict(),
                "subject_absent": self.subject_absent.to_dict(),
            },
            "detection_stale_ms": self.detection_stale_ms,
        }


@dataclass
class DriverConfig:
    """
    Polling driver configuration.

    Attributes:
        tick_interval_ms: Spacing between ticks.
        stats_log_interval: Seconds between driver stats log lines.
    """
    tick_interval_ms: int = 500
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DriverConfig":
        return cls(
            tick_interval_ms=d.get("tick_interval_ms", 500),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_interval_ms": self.tick_interval_ms,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class WebConfig:
    """Status API configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectorConfig = field(default_factory=DetectorConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    driver: DriverConfig = field(default_factory=DriverConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/desk_monitor.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectorConfig.from_dict(d.get("detection", {}) or {}),
            monitor=MonitorConfig.from_dict(d.get("monitor", {}) or {}),
            driver=DriverConfig.from_dict(d.get("driver", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/desk_monitor.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "monitor": self.monitor.to_dict(),
            "driver": self.driver.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
