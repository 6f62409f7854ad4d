"""
Network State
=============
Connectivity snapshots, probes and the reconnect watcher.
"""

from .models import NetworkState, TransportType
from .probes import NetworkProbe, StaticNetworkProbe, HttpReachabilityProbe
from .watcher import ConnectivityWatcher

__all__ = [
    # Models
    "NetworkState",
    "TransportType",
    # Probes
    "NetworkProbe",
    "StaticNetworkProbe",
    "HttpReachabilityProbe",
    # Watcher
    "ConnectivityWatcher",
]
