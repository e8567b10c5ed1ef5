"""Periodic, read-only refresh of a user's token balance for display."""

import asyncio
import logging
from collections.abc import Callable

from .auth import AuthState
from .ledger import QuotaLedger
from .models import UserTokens

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class UsageMonitor:
    """Re-reads the ledger on a timer and hands the balance to a callback.

    Polling uses ``QuotaLedger.peek``, so it never creates or changes a
    record and is safe to run alongside sends. Nothing is reported while no
    user is signed in or the user has no record yet.
    """

    def __init__(
        self,
        ledger: QuotaLedger,
        auth: AuthState,
        on_update: Callable[[UserTokens], None],
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.ledger = ledger
        self.auth = auth
        self.on_update = on_update
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def refresh(self) -> UserTokens | None:
        """Read the balance once and report it."""
        user_id = self.auth.user_id
        if user_id is None:
            return None
        tokens = self.ledger.peek(user_id)
        if tokens is None:
            return None
        self.on_update(tokens)
        return tokens

    async def _poll_loop(self) -> None:
        """Background task for periodic refresh."""
        while True:
            try:
                self.refresh()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Token refresh failed")
                await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling. Does nothing if already running."""
        if not self.running:
            self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
