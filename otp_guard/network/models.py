"""
Network Models
==============
Ephemeral connectivity snapshot returned by a probe.
"""

from dataclasses import dataclass
from enum import Enum


class TransportType(str, Enum):
    """Transport reported by the device."""
    WIFI = "wifi"
    CELLULAR = "cellular"
    NONE = "none"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class NetworkState:
    """Connectivity at the moment of the probe call."""
    connected: bool
    internet_reachable: bool
    transport: TransportType = TransportType.UNKNOWN

    @property
    def is_online(self) -> bool:
        return self.connected and self.internet_reachable

    @classmethod
    def offline(cls) -> "NetworkState":
        return cls(connected=False, internet_reachable=False, transport=TransportType.NONE)
