"""
Tracks whether remote providers should be contacted at all.
"""

import logging

import aiohttp

log = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Online/offline flag shared by the services.

    The flag starts online and can be forced offline (e.g. from the CLI). A probe
    against a known URL updates it from a real request.
    """

    def __init__(self, online: bool = True, probe_timeout: float = 5.0):
        self._online = online
        self._forced_offline = False
        self.probe_timeout = probe_timeout

    @property
    def is_online(self) -> bool:
        return self._online and not self._forced_offline

    def set_online(self, online: bool) -> None:
        if online != self._online:
            log.info(
                "[green]Back online.[/green]"
                if online
                else "[yellow]Offline: using cached data only.[/yellow]"
            )
        self._online = online

    def force_offline(self, forced: bool = True) -> None:
        self._forced_offline = forced

    async def probe(self, url: str) -> bool:
        """Issues a lightweight GET and records whether it succeeded."""
        if self._forced_offline:
            return False
        try:
            timeout = aiohttp.ClientTimeout(total=self.probe_timeout)
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.get(url) as resp,
            ):
                reachable = resp.status < 500
        except (aiohttp.ClientError, TimeoutError) as e:
            log.debug(f"Connectivity probe to {url} failed: {e}")
            reachable = False
        self.set_online(reachable)
        return reachable
