"""Expired record sweeper.

Runs ``LinkLifecycleManager.sweep`` on a timer inside the API process, accepts
fire-and-forget triggers from request handling, and can run standalone as a
worker process::

    python -m shortlinks.sweeper

The sweeper shares nothing with request handling except the durable store's
bulk delete; it never holds a lock and at most one triggered sweep is in
flight at a time.
"""

import asyncio
import logging
import signal
import sys

from shortlinks.lifecycle import LinkLifecycleManager

__all__ = ["ExpiredLinkSweeper", "main"]


class ExpiredLinkSweeper:
    """Background task that periodically removes durably expired records."""

    def __init__(
        self,
        lifecycle: LinkLifecycleManager,
        interval_seconds: float,
        logger: logging.Logger | None = None,
    ):
        self._lifecycle = lifecycle
        self._interval_seconds = interval_seconds
        self._logger = logger or logging.getLogger("shortlinks")
        self._loop_task: asyncio.Task | None = None
        self._triggered: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def run_once(self) -> int:
        return await self._lifecycle.sweep()

    def trigger(self) -> None:
        """Start a sweep without waiting for it, unless one is already in flight."""
        if self._triggered is not None and not self._triggered.done():
            return
        self._triggered = asyncio.create_task(self.run_once())
        self._triggered.add_done_callback(self._log_failure)

    async def run_forever(self) -> None:
        self._logger.info(f"Starting expired link sweep every {self._interval_seconds}s")
        while True:
            try:
                await self.run_once()
            except Exception as e:
                self._logger.error(f"Expired link sweep error: {e}")
            await asyncio.sleep(self._interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        for task in (self._loop_task, self._triggered):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._triggered = None

    def _log_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(f"Triggered sweep failed: {exc}")


async def run_worker() -> None:
    """Sweep worker entry point: sweep on the configured interval until stopped."""
    from shortlinks.dependencies import ServiceManager

    services = ServiceManager()
    await services.initialize()
    services.logger.info("Starting expired link sweep worker")

    interval = services.settings.SWEEP_INTERVAL_SECONDS or 300
    sweeper = ExpiredLinkSweeper(services.lifecycle, interval, services.logger)
    try:
        await sweeper.run_forever()
    finally:
        await services.cleanup()


def signal_handler(signum, frame):
    """Handle shutdown signals."""
    print(f"\nReceived signal {signum}, shutting down...")
    sys.exit(0)


def main() -> None:
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
