"""Background daemon that re-runs rules when the monitor topology changes."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from .display import DisplayError, detect_backend
from .runner import Runner

if TYPE_CHECKING:
    from .display import Backend

log = logging.getLogger(__name__)

DEBOUNCE_MS = 500
RETRY_S = 5


class AffinityDaemon:
    """Watches display server events and refreshes the runner's rules."""

    def __init__(self, runner: Runner) -> None:
        self._runner = runner
        self._debounce_handle: asyncio.TimerHandle | None = None

    async def run(self) -> None:
        log.info("Starting monitor-affinity daemon")

        while True:
            try:
                backend = detect_backend()
                if backend is None:
                    log.warning("No supported display server detected. Retrying in %ds...", RETRY_S)
                    await asyncio.sleep(RETRY_S)
                    continue

                log.info("Detected %s display server", backend.name)
                await self._listen(backend)
                log.warning("%s event stream closed. Reconnecting in %ds...", backend.name, RETRY_S)
                await asyncio.sleep(RETRY_S)
            except (ConnectionError, FileNotFoundError, asyncio.IncompleteReadError) as e:
                log.warning("Cannot connect to display server: %s. Retrying in %ds...", e, RETRY_S)
                await asyncio.sleep(RETRY_S)
            except Exception as e:
                log.error("Unexpected error: %s. Retrying in %ds...", e, RETRY_S)
                await asyncio.sleep(RETRY_S)
            finally:
                if self._debounce_handle:
                    self._debounce_handle.cancel()
                    self._debounce_handle = None

    async def _listen(self, backend: Backend) -> None:
        # The topology may have changed while we were disconnected
        self.refresh(backend)
        async for event in backend.connect_event_socket():
            log.info("Monitor event: %s", event)
            self._schedule_refresh(backend)

    def _schedule_refresh(self, backend: Backend) -> None:
        """Debounce monitor events before refreshing."""
        loop = asyncio.get_running_loop()
        if self._debounce_handle:
            self._debounce_handle.cancel()
        self._debounce_handle = loop.call_later(
            DEBOUNCE_MS / 1000.0,
            self.refresh,
            backend,
        )

    def refresh(self, backend: Backend) -> None:
        """Take a fresh snapshot and restart rules whose targets changed."""
        self._debounce_handle = None
        try:
            monitors = backend.get_monitors()
        except DisplayError as e:
            log.error("Failed to query monitors: %s", e)
            return

        log.info("Current monitors: %s", ", ".join(str(m) for m in monitors) or "(none)")
        self._runner.refresh(monitors)


def serve(runner: Runner, *, kill_on_exit: bool = False) -> None:
    """Run the daemon until SIGTERM/SIGINT."""
    daemon = AffinityDaemon(runner)
    loop = asyncio.new_event_loop()
    task = loop.create_task(daemon.run())

    # Handle signals for clean shutdown
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, task.cancel)

    try:
        loop.run_until_complete(task)
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    finally:
        if kill_on_exit:
            runner.stop()
        # Let event streams close their sockets and udev readers
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        log.info("Daemon stopped")
