"""
Lifecycle Sweeper - Background expiry and keep-alive loops

@.architecture
Incoming: app.py (startup/shutdown), config/settings.py --- {sweep interval, keep-alive interval, keep-alive flag}
Processing: start(), stop(), run_sweep(), run_keepalive(), _expiry_loop(), _keepalive_loop() --- {3 jobs: session_expiry, keepalive_broadcast, task_lifecycle}
Outgoing: core/sessions/store.py, ws/hub.py --- {sweep() calls, keep-alive broadcasts}
"""

import asyncio
import logging
from typing import List, Optional

from core.sessions import SessionStore
from monitoring import get_relay_metrics
from ws.hub import WebSocketHub
from ws.protocols import KEEPALIVE_INTERVAL

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 10 * 60


class LifecycleSweeper:
    """
    Runs the TTL sweep and the keep-alive broadcast on the event loop.

    Each tick touches shared state synchronously, so ticks never interleave
    with a frame's state transition.
    """

    def __init__(
        self,
        store: SessionStore,
        hub: WebSocketHub,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        keepalive_interval: float = KEEPALIVE_INTERVAL,
        keepalive_enabled: bool = True,
    ):
        self.store = store
        self.hub = hub
        self.sweep_interval = sweep_interval
        self.keepalive_interval = keepalive_interval
        self.keepalive_enabled = keepalive_enabled
        self.metrics = get_relay_metrics()

        self._running = False
        self._expiry_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None

    async def start(self):
        """Start background tasks."""
        if self._running:
            return

        self._running = True
        self._expiry_task = asyncio.create_task(self._expiry_loop())
        if self.keepalive_enabled:
            self._keepalive_task = asyncio.create_task(self._keepalive_loop())

        logger.info(
            f"Lifecycle sweeper started (sweep every {self.sweep_interval}s, "
            f"keep-alive {'every ' + str(self.keepalive_interval) + 's' if self.keepalive_enabled else 'disabled'})"
        )

    async def stop(self):
        """Cancel background tasks and wait for them to finish."""
        self._running = False

        for task in (self._expiry_task, self._keepalive_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._expiry_task = None
        self._keepalive_task = None
        logger.info("Lifecycle sweeper stopped")

    def is_running(self) -> bool:
        return self._running and self._expiry_task is not None and not self._expiry_task.done()

    def run_sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Delete expired sessions.

        Connections bound to a swept session keep their binding; their next
        relay attempt fails with session_not_found.

        Returns:
            Ids of deleted sessions
        """
        expired = self.store.sweep(now)
        if expired:
            self.metrics.sessions_expired.inc(len(expired))
        self.metrics.sessions_active.set(len(self.store))
        return expired

    async def run_keepalive(self) -> int:
        """
        Ping every open connection.

        Returns:
            Number of connections pinged
        """
        logger.info(
            f"Keep-alive: {len(self.store)} active sessions, "
            f"{self.hub.get_connection_count()} connections"
        )
        return await self.hub.broadcast_keepalive()

    async def _expiry_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self.sweep_interval)
                self.run_sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in session sweep: {e}")

    async def _keepalive_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self.keepalive_interval)
                await self.run_keepalive()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in keep-alive broadcast: {e}")
