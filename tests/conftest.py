"""Pytest configuration and fixtures"""
import asyncio
from typing import Iterable, List, Optional

import pytest

from storefront.cart import (
    CartReconciliationEngine,
    CartSnapshot,
    CartSource,
    LineItem,
    LocalCartStore,
    WishlistItem,
    WishlistSnapshot,
    make_variant_key,
    merge_line_items,
)
from storefront.errors import InvalidCredential
from storefront.session import SessionTokenHolder
from storefront.storage import MemoryStore


class FakeCartGateway:
    """In-memory account cart that merges the way the backend does."""

    def __init__(self, items: Iterable[LineItem] = ()):
        self.items: List[LineItem] = list(items)
        self.get_calls = 0
        self.merge_calls: List[tuple] = []
        self.add_calls: List[tuple] = []
        self.get_error: Optional[Exception] = None
        self.merge_error: Optional[Exception] = None
        # When set, get_cart blocks until the event fires
        self.get_gate: Optional[asyncio.Event] = None
        self.merge_gate: Optional[asyncio.Event] = None

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(tuple(self.items), CartSource.ACCOUNT)

    async def get_cart(self) -> CartSnapshot:
        self.get_calls += 1
        if self.get_gate is not None:
            await self.get_gate.wait()
        if self.get_error is not None:
            raise self.get_error
        return self.snapshot()

    async def merge(self, items) -> CartSnapshot:
        items = tuple(items)
        self.merge_calls.append(items)
        if self.merge_gate is not None:
            await self.merge_gate.wait()
        if self.merge_error is not None:
            raise self.merge_error
        self.items = list(merge_line_items(self.items, items))
        return self.snapshot()

    async def add_item(self, product_id, quantity=1, color=None, size=None) -> CartSnapshot:
        self.add_calls.append((product_id, quantity, color, size))
        self.items = list(merge_line_items(self.items, [LineItem(product_id, make_variant_key(color, size), quantity)]))
        return self.snapshot()


class FakeWishlistGateway:
    def __init__(self, product_ids: Iterable[str] = ()):
        self.product_ids = list(product_ids)
        self.calls = 0
        self.error: Optional[Exception] = None

    async def get_wishlist(self) -> WishlistSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return WishlistSnapshot(tuple(WishlistItem(pid) for pid in self.product_ids))


class FakeIdentityGateway:
    def __init__(self, valid: bool = True):
        self.valid = valid
        self.calls = 0
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def confirm(self) -> dict:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if not self.valid:
            raise InvalidCredential()
        return {"id": "user-123", "email": "shopper@example.com"}


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def session(store):
    return SessionTokenHolder(store)


@pytest.fixture
def local_cart(store):
    return LocalCartStore(store)


@pytest.fixture
def cart_gateway():
    return FakeCartGateway()


@pytest.fixture
def wishlist_gateway():
    return FakeWishlistGateway(["W1", "W2"])


@pytest.fixture
def identity_gateway():
    return FakeIdentityGateway()


@pytest.fixture
def engine(session, local_cart, cart_gateway, wishlist_gateway, identity_gateway):
    return CartReconciliationEngine(
        session=session,
        local_cart=local_cart,
        cart_gateway=cart_gateway,
        wishlist_gateway=wishlist_gateway,
        identity_gateway=identity_gateway,
    )
