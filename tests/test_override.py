"""
Tests for the absence override gate and override sources.
"""

from unittest.mock import MagicMock

from models.config import SessionConfig
from models.override import OverrideSignal
from models.session import SessionKind, SessionState
from models.session_event import SessionEventType
from monitoring.override import (
    ManualOverrideSource,
    NullOverrideSource,
    OverrideGate,
    read_override,
)
from monitoring.session import SessionStateMachine


INACTIVE = OverrideSignal.inactive()


def make_gate(threshold=30, clear_ms=2000):
    machine = SessionStateMachine(
        SessionKind.SUBJECT_ABSENT,
        SessionConfig(alert_threshold_seconds=threshold, alert_cooldown_ms=300000, clear_stable_window_ms=clear_ms),
    )
    return OverrideGate(machine)


def types(events):
    return [e.type for e in events]


class TestOverrideGate:
    def test_inactive_override_passes_through(self):
        gate = make_gate()

        events = gate.evaluate(True, INACTIVE, 0.0)

        assert types(events) == [SessionEventType.START]

    def test_suppresses_open_session_without_end(self):
        """Absence open for 12 s, then an override -> SUPPRESSED{12}, no END, machine idle."""
        gate = make_gate()
        gate.evaluate(True, INACTIVE, 0.0)
        override = OverrideSignal(active=True, reason="meeting", expires_at=3600.0)

        events = gate.evaluate(True, override, 12.0)

        assert types(events) == [SessionEventType.SUPPRESSED, SessionEventType.OVERRIDE_ACTIVE]
        suppressed = events[0]
        assert suppressed.duration_seconds == 12
        assert suppressed.meta == {"absence_override": True, "reason": "meeting", "expires_at": 3600.0}
        assert SessionEventType.END not in types(events)
        assert gate.machine.state == SessionState.IDLE

    def test_activation_while_idle_emits_only_override_active(self):
        gate = make_gate()

        events = gate.evaluate(False, OverrideSignal(active=True, reason="lunch"), 0.0)

        assert types(events) == [SessionEventType.OVERRIDE_ACTIVE]
        assert events[0].meta["reason"] == "lunch"

    def test_machine_frozen_while_active(self):
        gate = make_gate(threshold=1)
        override = OverrideSignal(active=True, reason="meeting")
        gate.evaluate(True, override, 0.0)

        events = []
        for i in range(1, 100):
            events.extend(gate.evaluate(True, override, float(i)))

        assert events == []
        assert gate.machine.state == SessionState.IDLE
        assert gate.is_suppressing is True

    def test_extension_emits_extended(self):
        gate = make_gate()
        gate.evaluate(False, OverrideSignal(active=True, reason="meeting", expires_at=100.0), 0.0)

        same = gate.evaluate(False, OverrideSignal(active=True, reason="meeting", expires_at=100.0), 1.0)
        extended = gate.evaluate(False, OverrideSignal(active=True, reason="meeting", expires_at=200.0), 2.0)

        assert same == []
        assert types(extended) == [SessionEventType.OVERRIDE_EXTENDED]
        assert extended[0].meta["expires_at"] == 200.0

    def test_release_resumes_from_idle_same_tick(self):
        gate = make_gate()
        override = OverrideSignal(active=True, reason="meeting")
        gate.evaluate(True, override, 0.0)
        gate.evaluate(True, override, 50.0)

        events = gate.evaluate(True, INACTIVE, 60.0)

        assert types(events) == [SessionEventType.OVERRIDE_INACTIVE, SessionEventType.START]
        assert events[0].meta["reason"] == "meeting"
        # No backfill: the session starts at release time
        assert gate.machine.session.started_at == 60.0

    def test_no_alert_during_override(self):
        gate = make_gate(threshold=0)
        override = OverrideSignal(active=True)

        events = gate.evaluate(True, override, 0.0)
        events += gate.evaluate(True, override, 10.0)

        assert SessionEventType.ALERT not in types(events)
        assert SessionEventType.START not in types(events)

    def test_reset(self):
        gate = make_gate()
        gate.evaluate(True, OverrideSignal(active=True), 0.0)

        gate.reset()

        assert gate.override.active is False
        assert gate.machine.state == SessionState.IDLE


class TestManualOverrideSource:
    def test_starts_inactive(self):
        assert ManualOverrideSource().snapshot(0.0).active is False

    def test_activate(self):
        source = ManualOverrideSource()
        source.activate(reason="meeting", expires_at=100.0)

        signal = source.snapshot(50.0)

        assert signal == OverrideSignal(active=True, reason="meeting", expires_at=100.0)

    def test_expired_reports_inactive(self):
        source = ManualOverrideSource()
        source.activate(reason="meeting", expires_at=100.0)

        assert source.snapshot(100.0).active is False

    def test_open_ended(self):
        source = ManualOverrideSource()
        source.activate(reason="focus")

        assert source.snapshot(1e12).active is True

    def test_extend(self):
        source = ManualOverrideSource()
        source.activate(reason="meeting", expires_at=100.0)
        source.extend(200.0)

        assert source.snapshot(150.0).expires_at == 200.0

    def test_extend_inactive_is_noop(self):
        source = ManualOverrideSource()
        source.extend(200.0)

        assert source.snapshot(0.0).active is False

    def test_clear(self):
        source = ManualOverrideSource()
        source.activate(reason="meeting")
        source.clear()

        assert source.snapshot(0.0).active is False


class TestReadOverride:
    def test_null_source(self):
        assert read_override(NullOverrideSource(), 0.0).active is False

    def test_missing_source(self):
        assert read_override(None, 0.0).active is False

    def test_failing_source_is_inactive(self):
        source = MagicMock()
        source.snapshot.side_effect = RuntimeError("config store unavailable")

        assert read_override(source, 0.0) == OverrideSignal.inactive()
