from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DetectionModel(BaseModel):
    category: str
    confidence: float
    bbox: List[float] = Field(..., description="[x, y, width, height] in frame pixels")
    class_id: Optional[int] = None


class DetectionsResponse(BaseModel):
    detections: List[DetectionModel]
    timestamp: Optional[float] = Field(None, description="Tick time of the detections")
    stale: bool = Field(..., description="True once the detections are older than detection_stale_ms")


class SessionSnapshotModel(BaseModel):
    kind: str
    state: str = Field(..., description="idle|active|alerted|clear_pending")
    elapsed_seconds: int
    is_alerted: bool
    started_at: Optional[float] = None


class SessionsResponse(BaseModel):
    sessions: List[SessionSnapshotModel]
    timestamp: float


class OverrideResponse(BaseModel):
    active: bool
    reason: Optional[str] = None
    expires_at: Optional[float] = None
    remaining_seconds: Optional[float] = None


class SessionEventModel(BaseModel):
    name: str
    kind: str
    type: str
    occurred_at: float
    duration_seconds: Optional[int] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class EventsResponse(BaseModel):
    events: List[SessionEventModel]


class StatusResponse(BaseModel):
    """
    Compact status for dashboard polling.
    """
    running: bool = Field(..., description="True while the driver is ticking")
    uptime_seconds: Optional[int] = None
    last_tick_age_s: Optional[float] = Field(None, description="Seconds since the last processed tick")
    presence: Dict[str, bool] = Field(default_factory=dict)
    sessions: List[SessionSnapshotModel] = Field(default_factory=list)
    override: OverrideResponse
    driver: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    timestamp: float
