"""
Pipeline module for the desk monitor.

The pipeline drives the full processing flow once per tick:
- Frame acquisition from a frame source
- Inference and box decoding
- Presence and session evaluation (via SessionMonitor)
"""

from .engine import (
    DriverStats,
    PollingDriver,
    create_decoder_from_config,
    create_driver_from_config,
)

__all__ = [
    "DriverStats",
    "PollingDriver",
    "create_decoder_from_config",
    "create_driver_from_config",
]
