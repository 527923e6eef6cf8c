"""
Plain immutable containers for what we pull off the modem.

A DeviceState is one point-in-time scrape. Nothing here is cached or shared between scrapes.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Session:
    """Short-lived login material; only good for the scrape that created it."""

    session_id: str
    # repr=False; no reason for the token to end up in logs
    csrf_token: str = field(repr=False)


@dataclass(frozen=True)
class DownstreamChannel:
    channel_id: str
    locked: bool
    modulation: str
    # Left as the raw string, e.g. '363000000 Hz'
    frequency: str
    power_dbmv: float
    snr_db: float
    # Counters; reset to 0 when the modem reboots
    corrected: float
    uncorrectable: float


@dataclass(frozen=True)
class UpstreamChannel:
    # Row index the modem shows in the first column
    channel: str
    channel_id: str
    locked: bool
    channel_type: str
    frequency: str
    width: str
    power_dbmv: float


@dataclass(frozen=True)
class DeviceState:
    host: str
    connected: bool
    uptime_seconds: float
    hardware_version: str = ""
    software_version: str = ""
    mac_address: str = ""
    serial_number: str = ""
    docsis_version: str = ""
    system_time: datetime | None = None
    downstream: tuple[DownstreamChannel, ...] = ()
    upstream: tuple[UpstreamChannel, ...] = ()
