"""Session Token Holder.

Persists the bearer credential and derives the session state from it.
``token_present`` follows the stored credential; ``authenticated`` is only
set once the backend has confirmed the identity (or a login just issued
the token). Listeners hear about every ``authenticated`` flip and nothing
else.
"""

from dataclasses import dataclass
from typing import Callable

from storefront.config import TOKEN_KEY
from storefront.logging import get_logger, mask_credential
from storefront.observers import Subject
from storefront.storage import KeyValueStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the credential/identity flags."""

    token_present: bool = False
    authenticated: bool = False

    def __post_init__(self) -> None:
        if self.authenticated and not self.token_present:
            raise ValueError("authenticated session requires a token")


class SessionTokenHolder:
    """Stored credential plus the derived authenticated flag."""

    def __init__(self, store: KeyValueStore, key: str = TOKEN_KEY) -> None:
        self._store = store
        self.key = key
        self._token: str | None = None
        self._state = SessionState()
        self._changes: Subject[SessionState] = Subject("session")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def token(self) -> str | None:
        return self._token

    def subscribe(self, listener: Callable[[SessionState], None]) -> Callable[[], None]:
        """Listen for authenticated flips; returns the unsubscribe callable."""
        return self._changes.subscribe(listener)

    async def load(self) -> SessionState:
        """Pick up a credential persisted by an earlier run. It is unverified until confirmed."""
        raw = await self._store.get(self.key)
        self._token = raw.decode("utf-8").strip() if raw else None
        if not self._token:
            self._token = None
        self._set_state(SessionState(token_present=self._token is not None, authenticated=False))
        return self._state

    async def login(self, token: str) -> None:
        """Store a freshly issued credential; the login response already proved the identity."""
        if not token:
            raise ValueError("token must be a non-empty string")
        await self._store.set(self.key, token.encode("utf-8"))
        self._token = token
        logger.info("Session started with %s", mask_credential(token))
        self._set_state(SessionState(token_present=True, authenticated=True))

    def mark_authenticated(self) -> None:
        """Record that the backend confirmed the stored credential."""
        if self._token is None:
            raise ValueError("cannot confirm a session without a token")
        self._set_state(SessionState(token_present=True, authenticated=True))

    async def clear(self) -> None:
        """Forget the credential (logout, or the backend rejected it)."""
        await self._store.delete(self.key)
        self._token = None
        self._set_state(SessionState())

    async def logout(self) -> None:
        logger.info("Session ended")
        await self.clear()

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self._state
        self._state = new_state
        if old_state.authenticated != new_state.authenticated:
            self._changes.notify(new_state)
