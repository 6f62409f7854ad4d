"""
Network Probes
==============
Sources of :class:`NetworkState` snapshots.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog

from .models import NetworkState, TransportType

logger = structlog.get_logger(__name__)


class NetworkProbe(ABC):
    """Side-effect free connectivity query, safe to call at high frequency."""

    @abstractmethod
    async def current(self) -> NetworkState:
        ...


class StaticNetworkProbe(NetworkProbe):
    """
    Probe returning whatever state was last set.

    Lets the host application push platform connectivity events in, and
    lets tests flip connectivity on and off.
    """

    def __init__(self, state: Optional[NetworkState] = None):
        self.state = state or NetworkState(
            connected=True,
            internet_reachable=True,
            transport=TransportType.WIFI,
        )
        self.calls = 0

    async def current(self) -> NetworkState:
        self.calls += 1
        return self.state

    def set_online(self, transport: TransportType = TransportType.WIFI) -> None:
        self.state = NetworkState(connected=True, internet_reachable=True, transport=transport)

    def set_offline(self) -> None:
        self.state = NetworkState.offline()


class HttpReachabilityProbe(NetworkProbe):
    """
    Probe that checks reachability with a lightweight HTTP request.

    Any HTTP response means the internet is reachable; transport-level
    failures mean it is not.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 3.0,
        transport: TransportType = TransportType.UNKNOWN,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport
        self._client = client

    async def current(self) -> NetworkState:
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            await client.head(self.url, timeout=self.timeout)
            return NetworkState(connected=True, internet_reachable=True, transport=self.transport)
        except httpx.TransportError as e:
            logger.debug("reachability_probe_failed", url=self.url, error=str(e))
            return NetworkState.offline()
        finally:
            if self._client is None:
                await client.aclose()
