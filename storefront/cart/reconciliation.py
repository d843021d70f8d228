"""
Cart Reconciliation Engine

Decides whether the effective cart/wishlist come from the guest cart on
this device or from the authenticated account, and merges the former into
the latter on login.

Concurrency rules:
- Every account sequence is stamped with a generation; logout bumps it, so
  results that arrive after a logout are dropped instead of committed.
- At most one account sequence runs per generation. A second trigger while
  one is in flight awaits it instead of calling the backend again.
- A sequence of an older generation still in flight is awaited before a new
  one merges, so two merge calls are never outstanding together.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, Tuple

from storefront.errors import InvalidCredential, MergeConflict, NetworkFailure, StorefrontError
from storefront.logging import get_logger
from storefront.observers import Subject

from .models import CartSnapshot, CartSource, LineItem, WishlistSnapshot
from .storage import LocalCartStore

logger = get_logger(__name__)


class ReconciliationState(str, Enum):
    UNSTARTED = "unstarted"
    GUEST_LOADED = "guest_loaded"
    AUTHENTICATING = "authenticating"
    MERGING = "merging"
    ACCOUNT_READY = "account_ready"
    MERGE_FAILED = "merge_failed"
    LOGGED_OUT = "logged_out"


S = ReconciliationState

# LOGGED_OUT is reachable from every state (logout or a 401 at any point).
# ACCOUNT_READY/MERGE_FAILED -> AUTHENTICATING is the retry path.
_TRANSITIONS = {
    S.UNSTARTED: {S.GUEST_LOADED, S.AUTHENTICATING},
    S.GUEST_LOADED: {S.AUTHENTICATING},
    S.AUTHENTICATING: {S.MERGING, S.GUEST_LOADED},
    S.MERGING: {S.ACCOUNT_READY, S.MERGE_FAILED},
    S.ACCOUNT_READY: {S.AUTHENTICATING},
    S.MERGE_FAILED: {S.AUTHENTICATING},
    S.LOGGED_OUT: {S.GUEST_LOADED},
}


class MergeOutcome(str, Enum):
    MERGED = "merged"
    SKIPPED_EMPTY_GUEST_CART = "skipped-empty-guest-cart"
    FAILED = "failed"


@dataclass(frozen=True)
class MergeOperation:
    """One reconciliation attempt. Lives only as long as someone holds it."""
    guest_cart: CartSnapshot
    account_cart: Optional[CartSnapshot]
    merged_items: Tuple[LineItem, ...]
    outcome: MergeOutcome
    generation: int
    error: Optional[StorefrontError] = None


class SessionSource(Protocol):
    @property
    def state(self): ...

    def mark_authenticated(self) -> None: ...

    async def clear(self) -> None: ...


class CartGateway(Protocol):
    async def get_cart(self) -> CartSnapshot: ...

    async def merge(self, items) -> CartSnapshot: ...

    async def add_item(self, product_id: str, quantity: int = 1, color=None, size=None) -> CartSnapshot: ...


class WishlistGateway(Protocol):
    async def get_wishlist(self) -> WishlistSnapshot: ...


class IdentityConfirmer(Protocol):
    async def confirm(self) -> dict: ...


class CartReconciliationEngine:
    """Owns the effective cart and wishlist and every transition between guest and account."""

    def __init__(
        self,
        session: SessionSource,
        local_cart: LocalCartStore,
        cart_gateway: CartGateway,
        wishlist_gateway: WishlistGateway,
        identity_gateway: IdentityConfirmer,
    ):
        self._session = session
        self._local_cart = local_cart
        self._cart_gateway = cart_gateway
        self._wishlist_gateway = wishlist_gateway
        self._identity = identity_gateway

        self._state = S.UNSTARTED
        self._cart = CartSnapshot.empty()
        self._wishlist = WishlistSnapshot.empty()
        self._generation = 0
        self._inflight: Optional[asyncio.Future] = None
        self._inflight_generation = -1
        self._last_merge: Optional[MergeOperation] = None

        self._cart_changes: Subject[CartSnapshot] = Subject("cart")
        self._wishlist_changes: Subject[WishlistSnapshot] = Subject("wishlist")

    # ==================== READ API ====================

    @property
    def state(self) -> ReconciliationState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_merge(self) -> Optional[MergeOperation]:
        return self._last_merge

    def get_effective_cart(self) -> CartSnapshot:
        return self._cart

    def get_effective_wishlist(self) -> WishlistSnapshot:
        return self._wishlist

    def subscribe_cart(self, listener: Callable[[CartSnapshot], None]) -> Callable[[], None]:
        return self._cart_changes.subscribe(listener)

    def subscribe_wishlist(self, listener: Callable[[WishlistSnapshot], None]) -> Callable[[], None]:
        return self._wishlist_changes.subscribe(listener)

    # ==================== TRIGGERS ====================

    async def initialize(self) -> None:
        """Settle the initial cart from whatever session state was persisted."""
        session = self._session.state
        if session.authenticated:
            await self._reconcile_account()
            return

        generation = self._generation
        if not session.token_present:
            await self._enter_guest(generation)
            return

        self._set_state(S.AUTHENTICATING)
        try:
            await self._identity.confirm()
        except (InvalidCredential, NetworkFailure) as e:
            if not self._is_current(generation):
                return
            logger.info("Stored credential not confirmed (%s); continuing as guest", e.code)
            await self._session.clear()
            await self._enter_guest(generation)
            return

        if not self._is_current(generation):
            logger.info("Session changed while confirming identity; dropping confirmation")
            return
        if not self._session.state.token_present:
            # Logged out mid-confirmation; no authenticated flip fires for that, so settle here
            logger.info("Credential removed while confirming identity; continuing as guest")
            await self._enter_guest(generation)
            return
        self._session.mark_authenticated()
        await self._reconcile_account()

    async def on_auth_state_changed(self, new_authenticated: bool) -> None:
        if new_authenticated:
            await self._reconcile_account()
        else:
            await self._sign_out()

    async def merge_guest_into_account(self) -> Optional[MergeOperation]:
        """
        Merge the guest cart into the account cart and adopt the result.

        Joins an attempt already in flight. Returns None when the session
        ended before the attempt could start.
        """
        return await self._reconcile_account()

    async def resync(self) -> Optional[MergeOperation]:
        """Retry reconciliation (e.g. after MERGE_FAILED). No-op for guests."""
        if not self._session.state.authenticated:
            return None
        return await self._reconcile_account()

    async def add_to_cart(
        self,
        product_id: str,
        quantity: int = 1,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> CartSnapshot:
        """Add to whichever cart is effective; waits out a reconciliation in flight."""
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait([self._inflight])

        generation = self._generation
        if self._cart.source is CartSource.ACCOUNT:
            cart = await self._cart_gateway.add_item(product_id, quantity, color, size)
        else:
            cart = await self._local_cart.add_item(product_id, quantity, color, size)

        if self._is_current(generation) and self._cart.source in (cart.source, CartSource.NONE):
            self._publish_cart(cart)
        return cart

    # ==================== SEQUENCES ====================

    async def _reconcile_account(self) -> Optional[MergeOperation]:
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            if self._inflight_generation == self._generation:
                logger.info("Reconciliation already in flight (generation %d); joining it", self._generation)
                return await asyncio.shield(inflight)

        self._generation += 1
        generation = self._generation
        self._set_state(S.AUTHENTICATING)

        task = asyncio.ensure_future(self._account_sequence(generation, previous=inflight))
        self._inflight = task
        self._inflight_generation = generation
        task.add_done_callback(self._clear_inflight)
        return await asyncio.shield(task)

    def _clear_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _account_sequence(
        self,
        generation: int,
        previous: Optional[asyncio.Future],
    ) -> Optional[MergeOperation]:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        if not self._is_current(generation):
            return None

        self._set_state(S.MERGING)
        try:
            operation = await self._merge(generation)
        except InvalidCredential:
            if self._is_current(generation):
                logger.info("Credential rejected during reconciliation; signing out")
                await self._expire_session()
            return None

        if not self._is_current(generation):
            logger.info(
                "Discarding stale reconciliation result (generation %d, current %d)",
                generation, self._generation,
            )
            # Guest lines went to the account after all; the guest view must not keep showing them
            if operation.outcome is MergeOutcome.MERGED and self._state is S.GUEST_LOADED:
                await self._enter_guest(self._generation)
            return operation

        self._last_merge = operation
        self._set_state(S.MERGE_FAILED if operation.outcome is MergeOutcome.FAILED else S.ACCOUNT_READY)
        self._publish_cart(CartSnapshot(operation.merged_items, CartSource.ACCOUNT))
        await self._load_wishlist(generation)
        return operation

    async def _merge(self, generation: int) -> MergeOperation:
        guest = await self._local_cart.load()

        try:
            account = await self._cart_gateway.get_cart()
        except NetworkFailure as e:
            logger.warning("Could not fetch account cart: %s", e)
            return MergeOperation(guest, None, (), MergeOutcome.FAILED, generation, e)

        if guest.is_empty:
            return MergeOperation(guest, account, account.items, MergeOutcome.SKIPPED_EMPTY_GUEST_CART, generation)

        try:
            merged = await self._cart_gateway.merge(guest.items)
        except (NetworkFailure, MergeConflict) as e:
            logger.warning(
                "Guest cart merge failed (%s); keeping %d guest item(s) for a later retry",
                e.code, guest.item_count,
            )
            return MergeOperation(guest, account, account.items, MergeOutcome.FAILED, generation, e)

        # The backend has absorbed these lines even if this attempt is now stale
        await self._local_cart.discard_merged(guest.items)
        logger.info("Merged %d guest item(s) into account cart", guest.item_count)
        return MergeOperation(guest, account, merged.items, MergeOutcome.MERGED, generation)

    async def _load_wishlist(self, generation: int) -> None:
        try:
            wishlist = await self._wishlist_gateway.get_wishlist()
        except InvalidCredential:
            if self._is_current(generation):
                await self._expire_session()
            return
        except NetworkFailure as e:
            logger.warning("Could not fetch wishlist: %s", e)
            return
        if self._is_current(generation):
            self._publish_wishlist(wishlist)

    async def _sign_out(self) -> None:
        self._generation += 1
        generation = self._generation
        self._set_state(S.LOGGED_OUT)
        # Drop account data right away so no reader sees it after logout
        self._cart = CartSnapshot.empty()
        self._last_merge = None
        if len(self._wishlist):
            self._publish_wishlist(WishlistSnapshot.empty())
        await self._enter_guest(generation)

    async def _expire_session(self) -> None:
        await self._sign_out()
        await self._session.clear()

    async def _enter_guest(self, generation: int) -> None:
        guest = await self._local_cart.load()
        if not self._is_current(generation):
            return
        self._set_state(S.GUEST_LOADED)
        self._publish_cart(guest)

    # ==================== HELPERS ====================

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, new_state: ReconciliationState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        if new_state is not S.LOGGED_OUT and new_state not in _TRANSITIONS[old_state]:
            logger.warning("Unexpected cart state transition %s -> %s", old_state.value, new_state.value)
        logger.debug("Cart state %s -> %s", old_state.value, new_state.value)
        self._state = new_state

    def _publish_cart(self, cart: CartSnapshot) -> None:
        self._cart = cart
        self._cart_changes.notify(cart)

    def _publish_wishlist(self, wishlist: WishlistSnapshot) -> None:
        self._wishlist = wishlist
        self._wishlist_changes.notify(wishlist)
