"""
Frame-interpolated presence tracking.

YOLO flickers: an object that is really there is missed for a frame now and
then. Each monitored category remembers only the last time it was seen with
enough confidence, and counts as present for a short window after that hit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from models.config import CategoryConfig
from models.detection import Detection


@dataclass
class PresenceSignal:
    """
    Debounced presence for one category.

    Attributes:
        category: Detection category this signal follows.
        confidence_threshold: Minimum confidence for a raw hit.
        window: Interpolation window in seconds.
        last_raw_hit_at: When the category was last seen, None if never.
    """
    category: str
    confidence_threshold: float
    window: float
    last_raw_hit_at: Optional[float] = None

    def is_present(self, now: float) -> bool:
        if self.last_raw_hit_at is None:
            return False
        return now - self.last_raw_hit_at < self.window

    def clear(self) -> None:
        self.last_raw_hit_at = None


class PresenceTracker:
    """
    Tracks debounced presence for a fixed set of categories.

    Example:
        tracker = PresenceTracker({"person": CategoryConfig(0.5, 500)})
        present = tracker.update(detections, now=time.time())
        if not present["person"]:
            ...
    """

    def __init__(self, categories: Mapping[str, CategoryConfig]):
        self._signals: Dict[str, PresenceSignal] = {
            name: PresenceSignal(
                category=name,
                confidence_threshold=cfg.confidence_threshold,
                window=cfg.interpolation_window_ms / 1000.0,
            )
            for name, cfg in categories.items()
        }
        logging.info(f"Presence tracker initialized for categories: {sorted(self._signals)}")

    @property
    def categories(self) -> Iterable[str]:
        return self._signals.keys()

    def signal(self, category: str) -> PresenceSignal:
        return self._signals[category]

    def update(self, detections: Iterable[Detection], now: float) -> Dict[str, bool]:
        """
        Fold one tick of detections into the presence state.

        Args:
            detections: Retained detections for this tick (may be empty).
            now: Tick timestamp.

        Returns:
            Mapping of category -> is_present after this tick.
        """
        for det in detections:
            signal = self._signals.get(det.category)
            if signal is not None and det.confidence >= signal.confidence_threshold:
                signal.last_raw_hit_at = now

        return self.snapshot(now)

    def is_present(self, category: str, now: float) -> bool:
        return self._signals[category].is_present(now)

    def snapshot(self, now: float) -> Dict[str, bool]:
        return {name: signal.is_present(now) for name, signal in self._signals.items()}

    def reset(self) -> None:
        for signal in self._signals.values():
            signal.clear()
