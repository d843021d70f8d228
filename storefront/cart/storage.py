"""Guest cart persisted in the local key/value store."""
import json
from typing import Iterable, Optional

from storefront.config import GUEST_CART_KEY
from storefront.logging import get_logger
from storefront.storage import KeyValueStore

from .models import CartSnapshot, CartSource, LineItem, make_variant_key, merge_line_items, subtract_line_items

logger = get_logger(__name__)


class LocalCartStore:
    """
    Anonymous cart kept on this device, keyed by no user identity.

    Stored as a JSON list of ``{productId, variantKey, quantity}`` under a
    single fixed key. Corrupted data is dropped rather than surfaced.
    """

    def __init__(self, store: KeyValueStore, key: str = GUEST_CART_KEY):
        self._store = store
        self.key = key

    async def load(self) -> CartSnapshot:
        """Read the guest cart; a missing or unreadable entry is an empty cart."""
        data = await self._store.get(self.key)
        if not data:
            return CartSnapshot.empty(CartSource.GUEST)

        try:
            raw = json.loads(data)
            items = tuple(LineItem.from_dict(entry) for entry in raw)
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Corrupted guest cart data, discarding: %s", e)
            await self._store.delete(self.key)
            return CartSnapshot.empty(CartSource.GUEST)

        return CartSnapshot(items, CartSource.GUEST)

    async def save(self, items: Iterable[LineItem]) -> CartSnapshot:
        """Persist ``items`` (deduplicated by key); an empty cart removes the entry."""
        snapshot = CartSnapshot(tuple(items), CartSource.GUEST)
        if snapshot.is_empty:
            await self.clear()
        else:
            payload = json.dumps(snapshot.to_list()).encode("utf-8")
            await self._store.set(self.key, payload)
        return snapshot

    async def clear(self) -> None:
        await self._store.delete(self.key)

    async def add_item(
        self,
        product_id: str,
        quantity: int = 1,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> CartSnapshot:
        """Add units of a product/variant; an existing line gets its quantity increased."""
        if not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")
        item = LineItem(product_id, make_variant_key(color, size), quantity)
        cart = await self.load()
        return await self.save(merge_line_items(cart.items, [item]))

    async def update_quantity(
        self,
        product_id: str,
        variant_key: Optional[str],
        quantity: int,
    ) -> CartSnapshot:
        """Set the quantity of one line; zero or less removes it."""
        if not isinstance(quantity, int):
            raise ValueError("quantity must be an integer")
        key = (product_id, variant_key or None)
        cart = await self.load()
        items = []
        for item in cart.items:
            if item.key != key:
                items.append(item)
            elif quantity > 0:
                items.append(item.with_quantity(quantity))
        return await self.save(items)

    async def remove_item(self, product_id: str, variant_key: Optional[str] = None) -> CartSnapshot:
        return await self.update_quantity(product_id, variant_key, 0)

    async def discard_merged(self, merged: Iterable[LineItem]) -> CartSnapshot:
        """
        Drop what the backend has already absorbed.

        Lines added while the merge was in flight survive; with no concurrent
        edits this leaves the store empty.
        """
        cart = await self.load()
        return await self.save(subtract_line_items(cart.items, merged))
