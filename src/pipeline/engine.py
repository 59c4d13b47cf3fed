"""
Polling driver for the desk monitor.

This module owns the only suspension point in the system: awaiting the
inference backend. Everything after inference (decode, presence, sessions)
runs synchronously inside the tick, so tick ordering is the only
serialization needed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from detection.postprocess import BoxDecoder, DecoderConfig, MalformedOutputError
from detection.labels import resolve_class_names
from inference.backend import InferenceBackend, InferenceResult, is_raw_output
from models.config import Config, DriverConfig
from models.detection import Detection
from models.frame import FrameData
from models.session_event import SessionEvent
from monitoring.monitor import SessionMonitor
from monitoring.override import OverrideSource, read_override
from observation import FrameSource


TickCallback = Callable[[List[Detection], List[SessionEvent]], None]


@dataclass
class DriverStats:
    """
    Runtime statistics for the driver.

    Attributes:
        ticks: Timer fires (including skipped ones).
        processed: Ticks that reached the monitor.
        skipped: Ticks dropped because an inference was still in flight.
        discarded: Inference results dropped because the driver stopped.
        inference_failures: Backend errors turned into empty ticks.
        contract_violations: Malformed outputs that aborted a tick.
        frame_failures: Ticks with no frame to process.
        events: Session events produced.
    """
    ticks: int = 0
    processed: int = 0
    skipped: int = 0
    discarded: int = 0
    inference_failures: int = 0
    contract_violations: int = 0
    frame_failures: int = 0
    events: int = 0
    start_time: float = field(default_factory=time.time)
    last_tick_at: Optional[float] = None
    last_stats_log_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "processed": self.processed,
            "skipped": self.skipped,
            "discarded": self.discarded,
            "inference_failures": self.inference_failures,
            "contract_violations": self.contract_violations,
            "frame_failures": self.frame_failures,
            "events": self.events,
            "start_time": self.start_time,
            "last_tick_at": self.last_tick_at,
        }


class PollingDriver:
    """
    Timer-driven tick loop with a single in-flight inference.

    Each tick: read a frame, await inference, decode, hand detections to the
    monitor. A tick that fires while the previous inference is unresolved is
    skipped and counted, never queued.

    Example:
        driver = PollingDriver(source, backend, decoder, monitor, DriverConfig())
        source.open()
        await driver.start()
        ...
        driver.stop()
    """

    def __init__(
        self,
        source: FrameSource,
        backend: InferenceBackend,
        decoder: Optional[BoxDecoder],
        monitor: SessionMonitor,
        config: Optional[DriverConfig] = None,
        override_source: Optional[OverrideSource] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.backend = backend
        self.decoder = decoder
        self.monitor = monitor
        self.config = config or DriverConfig()
        self.override_source = override_source
        self.stats = DriverStats()
        self._clock = clock
        self._callbacks: List[TickCallback] = []
        self._in_flight = False
        self._generation = 0
        self._running = False
        self._timer_task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def generation(self) -> int:
        return self._generation

    def add_callback(self, callback: TickCallback) -> None:
        """
        Add a callback to be called after each processed tick.

        Args:
            callback: Function taking (detections, events) as arguments.
        """
        self._callbacks.append(callback)

    async def start(self) -> None:
        """Start the repeating timer. Must be called from a running event loop."""
        if self._running:
            return
        self._running = True
        self.stats = DriverStats()
        self._timer_task = asyncio.create_task(self._timer_loop())
        logging.info(
            f"Driver started: backend={getattr(self.backend, 'name', type(self.backend).__name__)}, "
            f"tick={self.config.tick_interval_ms}ms"
        )

    def stop(self) -> None:
        """
        Stop ticking.

        Cancels the timer but does not await an in-flight inference. Its
        result is discarded when it arrives. Monitor state is reset.
        """
        self._running = False
        self._generation += 1
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        self.monitor.reset()
        logging.info(
            f"Driver stopped: ticks={self.stats.ticks}, processed={self.stats.processed}, "
            f"skipped={self.stats.skipped}, events={self.stats.events}"
        )

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Open the source, tick until `stop_event` is set, then clean up.

        Without a stop_event this runs until cancelled.
        """
        self.source.open()
        try:
            await self.start()
            if stop_event is None:
                stop_event = asyncio.Event()
            await stop_event.wait()
        finally:
            self.stop()
            try:
                self.source.close()
            except Exception as e:
                logging.warning(f"Error closing source: {e}")

    async def _timer_loop(self) -> None:
        interval = self.config.tick_interval_ms / 1000.0
        while self._running:
            task = asyncio.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)
            await asyncio.sleep(interval)

    async def tick(self) -> Optional[List[SessionEvent]]:
        """
        Run one tick.

        Returns:
            The events the monitor produced, or None if the tick was skipped,
            aborted or discarded.
        """
        self.stats.ticks += 1
        if self._in_flight:
            self.stats.skipped += 1
            logging.debug("Previous inference still in flight, skipping tick")
            return None

        self._in_flight = True
        generation = self._generation
        try:
            return await self._run_tick(generation)
        finally:
            self._in_flight = False

    async def _run_tick(self, generation: int) -> Optional[List[SessionEvent]]:
        frame_data = await self._read_frame()
        if frame_data is None:
            self.stats.frame_failures += 1
            logging.warning(f"No frame available ({self.stats.frame_failures} total)")
            return None

        if generation != self._generation:
            self.stats.discarded += 1
            logging.info("Driver stopped during frame read, skipping inference")
            return None

        result = await self._infer(frame_data)

        if generation != self._generation:
            self.stats.discarded += 1
            logging.info("Discarding inference result that arrived after stop")
            return None

        now = self._clock()
        try:
            detections = self._decode(result, frame_data)
        except MalformedOutputError as e:
            self.stats.contract_violations += 1
            logging.error(f"Malformed inference output, tick aborted: {e}")
            return None
        except Exception as e:
            self.stats.contract_violations += 1
            logging.error(f"Could not decode inference output, tick aborted: {e}")
            return None

        override = read_override(self.override_source, now)
        events = self.monitor.process(detections, now, override)

        self.stats.processed += 1
        self.stats.events += len(events)
        self.stats.last_tick_at = now

        for callback in self._callbacks:
            try:
                callback(detections, events)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        self._handle_periodic_tasks(now)
        return events

    async def _read_frame(self) -> Optional[FrameData]:
        try:
            return await asyncio.to_thread(self.source.read)
        except Exception as e:
            logging.warning(f"Frame read failed: {e}")
            return None

    async def _infer(self, frame_data: FrameData) -> InferenceResult:
        try:
            return await self.backend.infer(frame_data.image)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stats.inference_failures += 1
            logging.warning(f"Inference failed, treating tick as empty: {e}")
            return []

    def _decode(self, result: InferenceResult, frame_data: FrameData) -> List[Detection]:
        if is_raw_output(result):
            if self.decoder is None:
                raise MalformedOutputError("backend returned a raw tensor but no decoder is configured")
            return self.decoder.decode(result, frame_data.width, frame_data.height)
        if isinstance(result, (list, tuple)):
            stray = [d for d in result if not isinstance(d, Detection)]
            if stray:
                raise MalformedOutputError(f"backend returned {type(stray[0]).__name__} instead of Detection")
            return sorted(result, key=lambda d: d.confidence, reverse=True)
        raise MalformedOutputError(f"unexpected inference result type {type(result).__name__}")

    def _handle_periodic_tasks(self, now: float) -> None:
        if now - self.stats.last_stats_log_time < self.config.stats_log_interval:
            return
        logging.info(
            f"Driver stats: ticks={self.stats.ticks}, processed={self.stats.processed}, "
            f"skipped={self.stats.skipped}, failures={self.stats.inference_failures}, "
            f"events={self.stats.events}"
        )
        self.stats.last_stats_log_time = now


def create_decoder_from_config(config: Config) -> BoxDecoder:
    det = config.detection
    return BoxDecoder(
        DecoderConfig(
            input_size=det.input_size,
            confidence_threshold=det.confidence_threshold,
            iou_threshold=det.iou_threshold,
            class_names=resolve_class_names(det.class_names),
        )
    )


def create_driver_from_config(
    config: Config,
    monitor: SessionMonitor,
    override_source: Optional[OverrideSource] = None,
    source: Optional[FrameSource] = None,
    backend: Optional[InferenceBackend] = None,
) -> PollingDriver:
    """
    Factory function to create a PollingDriver from the typed config.

    `source` and `backend` default to the ones the config describes.
    """
    if source is None:
        from observation import create_source_from_config
        source = create_source_from_config(config.camera, source_id="desk-cam")
    if backend is None:
        from inference import create_backend_from_config
        backend = create_backend_from_config(config.detection)

    return PollingDriver(
        source=source,
        backend=backend,
        decoder=create_decoder_from_config(config),
        monitor=monitor,
        config=config.driver,
        override_source=override_source,
    )
