"""App Initializer.

Pure orchestration: kicks off ``initialize()`` once on mount and forwards
every authenticated flip of the session to the engine. Nothing here waits
for the network, so the caller can render right away and pick the cart
up from change notifications.
"""

import asyncio
from typing import Callable

from storefront.cart.reconciliation import CartReconciliationEngine
from storefront.logging import get_logger
from storefront.session import SessionState, SessionTokenHolder

logger = get_logger(__name__)


class AppInitializer:
    """Drives the reconciliation engine from session events."""

    def __init__(self, session: SessionTokenHolder, engine: CartReconciliationEngine) -> None:
        self.session = session
        self.engine = engine
        self._mounted = False
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self) -> None:
        """Subscribe to the session and schedule initialization. Must run inside an event loop."""
        if self._mounted:
            logger.debug("AppInitializer already mounted")
            return
        self._mounted = True
        self._unsubscribe = self.session.subscribe(self._on_session_change)
        self._spawn(self.engine.initialize(), "initialize")

    async def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.wait_idle()
        self._mounted = False

    async def wait_idle(self) -> None:
        """Wait until every scheduled engine call (and any it triggered) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_session_change(self, state: SessionState) -> None:
        logger.debug("Session authenticated=%s", state.authenticated)
        self._spawn(self.engine.on_auth_state_changed(state.authenticated), "auth change")

    def _spawn(self, coro, label: str) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finish(t, label))

    def _finish(self, task: asyncio.Task, label: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Cart %s failed: %s", label, error, exc_info=error)
