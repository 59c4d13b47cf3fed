from __future__ import annotations

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from models.override import OverrideSignal
from models.session import SessionKind

from ..api_models import (
    DetectionsResponse,
    EventsResponse,
    OverrideResponse,
    SessionSnapshotModel,
    SessionsResponse,
    StatusResponse,
)
from ..state import state

router = APIRouter()

# Ticks older than this mean the camera or backend has stalled
STALE_TICK_SECONDS = 5.0


def _require_monitor():
    monitor, driver, override_source, event_log = state.get_refs()
    if monitor is None:
        raise HTTPException(status_code=503, detail="Monitor not running")
    return monitor, driver, override_source, event_log


def _compute_warnings(last_tick_age_s: Optional[float], running: bool, stats: Optional[dict]) -> List[str]:
    """
    Warning codes for /api/status.

    - driver_stopped: driver is not ticking
    - no_ticks: driver running but nothing processed yet, or last tick is stale
    - inference_failing: more failed than processed inferences so far
    """
    warnings: List[str] = []
    if not running:
        warnings.append("driver_stopped")
    elif last_tick_age_s is None or last_tick_age_s > STALE_TICK_SECONDS:
        warnings.append("no_ticks")

    if stats:
        failures = stats.get("inference_failures", 0)
        if failures and failures > stats.get("processed", 0) - failures:
            warnings.append("inference_failing")
    return warnings


def _override_payload(signal: OverrideSignal, now: float) -> dict:
    remaining = None
    if signal.active and signal.expires_at is not None:
        remaining = max(0.0, signal.expires_at - now)
    return {
        "active": signal.active,
        "reason": signal.reason,
        "expires_at": signal.expires_at,
        "remaining_seconds": remaining,
    }


def _current_override(monitor, override_source, now: float) -> OverrideSignal:
    # The source is the live truth; the monitor only knows the last tick.
    if override_source is not None:
        try:
            return override_source.snapshot(now)
        except Exception as e:
            logging.warning(f"Override source failed in status request: {e}")
    return monitor.get_override()


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Aggregate status for the UI: driver liveness, presence, sessions, override.
    """
    now = time.time()
    monitor, driver, override_source, _ = _require_monitor()

    running = bool(driver is not None and driver.is_running)
    stats = driver.stats.to_dict() if driver is not None else {}
    last_tick_at = monitor.get_last_detection_timestamp()
    last_tick_age = now - last_tick_at if last_tick_at is not None else None
    uptime = now - state.start_time if state.start_time else None

    return {
        "running": running,
        "uptime_seconds": int(uptime) if uptime is not None else None,
        "last_tick_age_s": last_tick_age,
        "presence": monitor.get_presence(now),
        "sessions": [s.to_dict() for s in monitor.get_session_snapshots(now).values()],
        "override": _override_payload(_current_override(monitor, override_source, now), now),
        "driver": stats,
        "warnings": _compute_warnings(last_tick_age, running, stats),
        "timestamp": now,
    }


@router.get("/detections", response_model=DetectionsResponse)
def detections():
    """Latest detections; empty once they go stale."""
    now = time.time()
    monitor, _, _, _ = _require_monitor()
    fresh = monitor.get_fresh_detections(now)
    timestamp = monitor.get_last_detection_timestamp()
    return {
        "detections": [d.to_dict() for d in fresh],
        "timestamp": timestamp,
        "stale": timestamp is not None and (now - timestamp) * 1000.0 > monitor.config.detection_stale_ms,
    }


@router.get("/sessions", response_model=SessionsResponse)
def sessions():
    now = time.time()
    monitor, _, _, _ = _require_monitor()
    return {
        "sessions": [s.to_dict() for s in monitor.get_session_snapshots(now).values()],
        "timestamp": now,
    }


@router.get("/sessions/{kind}", response_model=SessionSnapshotModel)
def session(kind: str):
    try:
        session_kind = SessionKind(kind)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown session kind '{kind}'")
    monitor, _, _, _ = _require_monitor()
    return monitor.get_session_snapshot(session_kind, time.time()).to_dict()


@router.get("/override", response_model=OverrideResponse)
def override():
    now = time.time()
    monitor, _, override_source, _ = _require_monitor()
    return _override_payload(_current_override(monitor, override_source, now), now)


@router.get("/events", response_model=EventsResponse)
def events(limit: int = 50):
    """Most recent session events, newest last."""
    _, _, _, event_log = _require_monitor()
    if event_log is None:
        return {"events": []}
    recent = event_log.events[-limit:] if limit > 0 else []
    return {"events": [e.to_dict() for e in recent]}
