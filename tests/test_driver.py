"""
Tests for the asyncio polling driver.
"""

import asyncio
import threading
from typing import Optional
from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import make_detection
from detection.postprocess import BoxDecoder, DecoderConfig
from models.config import Config, DriverConfig, MonitorConfig
from models.frame import FrameData
from models.override import OverrideSignal
from monitoring.monitor import SessionMonitor
from monitoring.override import ManualOverrideSource
from observation.base import FrameSource, SourceConfig
from pipeline.engine import DriverStats, PollingDriver, create_driver_from_config


PERSON = make_detection("person", 0.9, 10, 10, 100, 200)
PHONE = make_detection("cell phone", 0.8, 40, 60, 20, 40)


class MockFrameSource(FrameSource):
    """Returns a blank frame on every read, or None when `fail` is set."""

    def __init__(self, fail: bool = False):
        super().__init__(SourceConfig(source_id="test"))
        self.fail = fail
        self.closed = False

    def open(self) -> None:
        self._is_open = True

    def read(self) -> Optional[FrameData]:
        if self.fail:
            return None
        self._frame_index += 1
        image = np.zeros((480, 640, 3), dtype=np.uint8)
        return FrameData.from_numpy(image, captured_at=0.0, index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        self._is_open = False
        self.closed = True


class BlockingFrameSource(MockFrameSource):
    """Holds read() on a worker thread until `release` is set."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def read(self) -> Optional[FrameData]:
        self.entered.set()
        self.release.wait(timeout=5.0)
        return super().read()


class MockBackend:
    """Backend returning a fixed result, optionally held until released."""

    name = "mock"

    def __init__(self, result=None, error: Optional[Exception] = None, gated: bool = False):
        self.result = result if result is not None else []
        self.error = error
        self.gated = gated
        self.calls = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def infer(self, frame):
        self.calls += 1
        self.entered.set()
        if self.gated:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


class Clock:
    def __init__(self, start: float = 1000.0, step: float = 0.5):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


def make_driver(backend, source=None, override_source=None, decoder=None, tick_ms=500):
    monitor = SessionMonitor(MonitorConfig(), enabled_categories=["person", "cell phone"])
    return PollingDriver(
        source=source or MockFrameSource(),
        backend=backend,
        decoder=decoder,
        monitor=monitor,
        config=DriverConfig(tick_interval_ms=tick_ms),
        override_source=override_source,
        clock=Clock(),
    )


class TestTick:
    def test_processes_decoded_detections(self):
        driver = make_driver(MockBackend(result=[PERSON, PHONE]))

        events = asyncio.run(driver.tick())

        assert [e.name for e in events] == ["target_present_start"]
        assert driver.monitor.get_last_detections() == [PERSON, PHONE]
        assert driver.stats.processed == 1
        assert driver.stats.events == 1

    def test_backend_list_sorted_by_confidence(self):
        driver = make_driver(MockBackend(result=[PHONE, PERSON]))

        asyncio.run(driver.tick())

        assert driver.monitor.get_last_detections() == [PERSON, PHONE]

    def test_raw_tensor_decoded(self):
        output = np.zeros((1, 6, 3), dtype=np.float32)
        output[0, 0:4, 0] = [320, 320, 100, 200]
        output[0, 4, 0] = 0.9
        decoder = BoxDecoder(DecoderConfig(input_size=640, class_names=["person", "cell phone"]))
        driver = make_driver(MockBackend(result=output), decoder=decoder)

        events = asyncio.run(driver.tick())

        assert events == []
        dets = driver.monitor.get_last_detections()
        assert [d.category for d in dets] == ["person"]
        # 640x480 frame from a 640x640 input
        assert dets[0].bbox.height == pytest.approx(150.0)

    def test_raw_tensor_without_decoder_aborts(self):
        driver = make_driver(MockBackend(result=np.zeros((1, 6, 3), dtype=np.float32)))

        assert asyncio.run(driver.tick()) is None
        assert driver.stats.contract_violations == 1

    def test_inference_failure_is_empty_tick(self):
        driver = make_driver(MockBackend(error=RuntimeError("model crashed")))

        events = asyncio.run(driver.tick())

        assert [e.name for e in events] == ["subject_absent_start"]
        assert driver.stats.inference_failures == 1
        assert driver.stats.processed == 1

    def test_malformed_output_leaves_state_unchanged(self):
        decoder = BoxDecoder(DecoderConfig(class_names=["person", "cell phone"]))
        driver = make_driver(MockBackend(result=np.zeros((2, 6, 3), dtype=np.float32)), decoder=decoder)

        result = asyncio.run(driver.tick())

        assert result is None
        assert driver.stats.contract_violations == 1
        assert driver.stats.processed == 0
        assert driver.monitor.get_last_detection_timestamp() is None

    def test_missing_frame_skips_tick(self):
        backend = MockBackend(result=[PERSON])
        driver = make_driver(backend, source=MockFrameSource(fail=True))

        assert asyncio.run(driver.tick()) is None
        assert driver.stats.frame_failures == 1
        assert backend.calls == 0
        assert driver.monitor.get_last_detection_timestamp() is None

    def test_frame_read_exception_counts_as_missing(self):
        source = MockFrameSource()
        source.read = MagicMock(side_effect=OSError("device unplugged"))
        driver = make_driver(MockBackend(result=[PERSON]), source=source)

        assert asyncio.run(driver.tick()) is None
        assert driver.stats.frame_failures == 1

    def test_override_read_each_tick(self):
        override = ManualOverrideSource()
        override.activate(reason="meeting")
        driver = make_driver(MockBackend(result=[]), override_source=override)

        events = asyncio.run(driver.tick())

        assert [e.name for e in events] == ["subject_absent_override_active"]

    def test_failing_override_source_is_inactive(self):
        override = MagicMock()
        override.snapshot.side_effect = RuntimeError("store down")
        driver = make_driver(MockBackend(result=[]), override_source=override)

        events = asyncio.run(driver.tick())

        assert [e.name for e in events] == ["subject_absent_start"]

    def test_callbacks_receive_detections_and_events(self):
        driver = make_driver(MockBackend(result=[PERSON, PHONE]))
        received = []
        driver.add_callback(lambda dets, events: received.append((dets, events)))

        asyncio.run(driver.tick())

        assert len(received) == 1
        dets, events = received[0]
        assert dets == [PERSON, PHONE]
        assert [e.name for e in events] == ["target_present_start"]

    def test_callback_error_does_not_abort(self):
        driver = make_driver(MockBackend(result=[PERSON]))
        bad = MagicMock(side_effect=ValueError("bad callback"))
        good = MagicMock()
        driver.add_callback(bad)
        driver.add_callback(good)

        asyncio.run(driver.tick())

        good.assert_called_once()
        assert driver.stats.processed == 1

    def test_non_detection_items_abort_tick(self):
        driver = make_driver(MockBackend(result=[PERSON, {"category": "person"}]))

        assert asyncio.run(driver.tick()) is None
        assert driver.stats.contract_violations == 1
        assert driver.stats.processed == 0
        assert driver.monitor.get_last_detection_timestamp() is None


class TestInFlightGuard:
    def test_tick_skipped_while_inference_in_flight(self):
        async def scenario():
            backend = MockBackend(result=[PERSON], gated=True)
            driver = make_driver(backend)

            first = asyncio.create_task(driver.tick())
            await asyncio.wait_for(backend.entered.wait(), timeout=1.0)
            assert driver.in_flight is True

            skipped = await driver.tick()

            backend.release.set()
            events = await first
            return driver, backend, skipped, events

        driver, backend, skipped, events = asyncio.run(scenario())

        assert skipped is None
        assert events == []
        assert backend.calls == 1
        assert driver.stats.ticks == 2
        assert driver.stats.skipped == 1
        assert driver.stats.processed == 1
        assert driver.in_flight is False

    def test_result_after_stop_is_discarded(self):
        async def scenario():
            backend = MockBackend(result=[PHONE], gated=True)
            driver = make_driver(backend)

            pending = asyncio.create_task(driver.tick())
            await asyncio.wait_for(backend.entered.wait(), timeout=1.0)

            driver.stop()
            backend.release.set()
            result = await pending
            return driver, result

        driver, result = asyncio.run(scenario())

        assert result is None
        assert driver.stats.discarded == 1
        assert driver.stats.processed == 0
        assert driver.monitor.get_last_detections() == []

    def test_stop_during_frame_read_skips_inference(self):
        source = BlockingFrameSource()

        async def scenario():
            backend = MockBackend(result=[PHONE])
            driver = make_driver(backend, source=source)

            pending = asyncio.create_task(driver.tick())
            assert await asyncio.to_thread(source.entered.wait, 1.0)

            driver.stop()
            source.release.set()
            result = await pending
            return driver, backend, result

        driver, backend, result = asyncio.run(scenario())

        assert result is None
        assert backend.calls == 0
        assert driver.stats.discarded == 1
        assert driver.stats.processed == 0
        assert driver.in_flight is False

    def test_failed_inference_releases_guard(self):
        async def scenario():
            driver = make_driver(MockBackend(error=RuntimeError("boom")))
            await driver.tick()
            return driver

        driver = asyncio.run(scenario())

        assert driver.in_flight is False


class TestTimerLoop:
    def test_run_ticks_until_stopped(self):
        async def scenario():
            source = MockFrameSource()
            driver = make_driver(MockBackend(result=[PERSON]), source=source, tick_ms=10)
            stop_event = asyncio.Event()

            runner = asyncio.create_task(driver.run(stop_event))
            await asyncio.sleep(0.2)
            stats_while_running = driver.stats.processed
            stop_event.set()
            await runner
            return driver, source, stats_while_running

        driver, source, processed = asyncio.run(scenario())

        assert processed >= 2
        assert driver.is_running is False
        assert source.closed is True
        assert driver.generation == 1

    def test_stop_resets_monitor(self):
        async def scenario():
            driver = make_driver(MockBackend(result=[PHONE]))
            await driver.start()
            await driver.tick()
            driver.stop()
            return driver

        driver = asyncio.run(scenario())

        assert driver.monitor.get_last_detections() == []


class TestDriverStats:
    def test_to_dict_keys(self):
        d = DriverStats().to_dict()

        for key in ("ticks", "processed", "skipped", "discarded", "inference_failures",
                    "contract_violations", "frame_failures", "events"):
            assert d[key] == 0


class TestCreateDriverFromConfig:
    def test_builds_with_injected_collaborators(self):
        config = Config()
        monitor = SessionMonitor(config.monitor)
        source = MockFrameSource()
        backend = MockBackend()

        driver = create_driver_from_config(config, monitor, source=source, backend=backend)

        assert driver.source is source
        assert driver.backend is backend
        assert driver.decoder.input_size == (640, 640)
        assert driver.config.tick_interval_ms == 500

    def test_unknown_backend_rejected(self):
        config = Config()
        config.detection.backend = "tensorrt"

        with pytest.raises(ValueError, match="tensorrt"):
            create_driver_from_config(config, SessionMonitor(config.monitor), source=MockFrameSource())
