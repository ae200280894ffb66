"""
ec2tester/utils/cancel.py

A single cancellation token for long-running loops. Several sources can feed
it: an explicit cancel() call (operational stop), any upstream asyncio.Event,
and process signals (SIGINT/SIGTERM). Loops only ever observe the token.

Usage example:
    async with CancelToken() as token:
        token.install_signal_handlers()
        token.link_event(stop_event)
        await apply_auth_configmap(cfg, token)
"""

from __future__ import annotations

import asyncio
import logging
import signal
from types import TracebackType
from typing import List, Optional, Sequence, Type

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancelToken:
    """Cancellation signal merged from any number of upstream sources."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._watchers: List[asyncio.Task[None]] = []
        self._signals: List[signal.Signals] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "stopped") -> None:
        """Fire the token. Only the first reason is kept."""
        if self._event.is_set():
            return
        self._reason = reason
        logger.info("cancellation requested: %s", reason)
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to `seconds`, waking early on cancellation.

        Returns:
            bool: True if the token fired before or during the sleep.
        """
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0.0))
        except asyncio.TimeoutError:
            return False
        return True

    def link_event(self, event: asyncio.Event, reason: str = "stop event set") -> None:
        """Fire this token once `event` is set. Requires a running event loop."""

        async def _watch() -> None:
            await event.wait()
            self.cancel(reason)

        self._watchers.append(asyncio.get_running_loop().create_task(_watch()))

    def install_signal_handlers(
        self, signals: Sequence[signal.Signals] = DEFAULT_SIGNALS
    ) -> None:
        """Fire this token when the process receives one of `signals`.

        Only supported on event loops with add_signal_handler (Unix).
        """
        loop = asyncio.get_running_loop()
        for sig in signals:
            loop.add_signal_handler(sig, self.cancel, f"received {sig.name}")
            self._signals.append(sig)

    def close(self) -> None:
        """Detach from all upstream sources."""
        for task in self._watchers:
            task.cancel()
        self._watchers = []
        if self._signals:
            loop = asyncio.get_running_loop()
            for sig in self._signals:
                loop.remove_signal_handler(sig)
            self._signals = []

    async def __aenter__(self) -> CancelToken:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
