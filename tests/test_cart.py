"""
Tests for cart models and the guest cart store
"""

import json

import pytest

from storefront.cart import CartSnapshot, CartSource, LineItem, LocalCartStore, make_variant_key, merge_line_items
from storefront.cart.models import subtract_line_items
from storefront.config import GUEST_CART_KEY
from storefront.storage import MemoryStore


class TestLineItem:
    """Tests for LineItem dataclass."""

    def test_create_line_item(self):
        item = LineItem("prod-123", "red/M", 2)

        assert item.product_id == "prod-123"
        assert item.key == ("prod-123", "red/M")
        assert item.quantity == 2

    def test_empty_variant_is_none(self):
        assert LineItem("prod-123", "", 1).variant_key is None

    @pytest.mark.parametrize("quantity", [0, -1, 1.5])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(ValueError):
            LineItem("prod-123", None, quantity)

    def test_rejects_missing_product(self):
        with pytest.raises(ValueError):
            LineItem("", None, 1)

    def test_wire_form(self):
        item = LineItem("prod-123", None, 3)

        assert item.to_dict() == {"productId": "prod-123", "variantKey": None, "quantity": 3}
        assert LineItem.from_dict({"productId": "prod-123", "quantity": "3"}) == item


class TestVariantKey:
    def test_no_selection(self):
        assert make_variant_key(None, None) is None
        assert make_variant_key("  ", "") is None

    def test_color_and_size(self):
        assert make_variant_key("red", "M") == "red/M"
        assert make_variant_key("red") == "red"
        assert make_variant_key(None, "M") == "/M"

    def test_slash_in_color_does_not_collide(self):
        assert make_variant_key("Black/White") == "Black%2FWhite"
        assert make_variant_key("Black/White") != make_variant_key("Black", "White")
        assert make_variant_key("50%") != make_variant_key("50%25")


class TestMerge:
    """Quantity summation per (product, variant)."""

    def test_sums_shared_keys(self):
        guest = [LineItem("P1", None, 2), LineItem("P2", "red", 1)]
        account = [LineItem("P1", None, 1), LineItem("P3", None, 4)]

        merged = CartSnapshot(merge_line_items(account, guest))

        assert merged.quantity_of("P1") == 3
        assert merged.quantity_of("P2", "red") == 1
        assert merged.quantity_of("P3") == 4
        assert len(merged.items) == 3

    def test_variants_are_distinct_lines(self):
        merged = merge_line_items([LineItem("P1", "red", 1)], [LineItem("P1", "blue", 1), LineItem("P1", None, 1)])

        assert len(merged) == 3

    def test_account_order_is_kept(self):
        merged = merge_line_items([LineItem("A"), LineItem("B")], [LineItem("C"), LineItem("A")])

        assert [item.product_id for item in merged] == ["A", "B", "C"]

    def test_empty_guest_leaves_account_unchanged(self):
        account = (LineItem("P2", None, 5),)

        assert merge_line_items(account, ()) == account

    def test_subtract(self):
        left = subtract_line_items([LineItem("P1", None, 3), LineItem("P2", None, 1)], [LineItem("P1", None, 2), LineItem("P2", None, 1)])

        assert left == (LineItem("P1", None, 1),)


class TestCartSnapshot:
    def test_empty(self):
        cart = CartSnapshot.empty(CartSource.GUEST)

        assert cart.is_empty
        assert cart.item_count == 0
        assert cart.source is CartSource.GUEST

    def test_never_duplicates_keys(self):
        cart = CartSnapshot((LineItem("P1", None, 1), LineItem("P1", None, 2)))

        assert cart.items == (LineItem("P1", None, 3),)
        assert cart.item_count == 3


class TestLocalCartStore:
    """Tests for the persisted guest cart."""

    @pytest.mark.asyncio
    async def test_load_missing_is_empty(self):
        cart = await LocalCartStore(MemoryStore()).load()

        assert cart.is_empty
        assert cart.source is CartSource.GUEST

    @pytest.mark.asyncio
    async def test_add_item_sums_quantities(self):
        store = MemoryStore()
        local = LocalCartStore(store)

        await local.add_item("P1", 1, color="red", size="M")
        await local.add_item("P1", 2, color="red", size="M")
        cart = await local.add_item("P1", 1)

        assert cart.quantity_of("P1", "red/M") == 3
        assert cart.quantity_of("P1") == 1
        persisted = json.loads(await store.get(GUEST_CART_KEY))
        assert persisted == [
            {"productId": "P1", "variantKey": "red/M", "quantity": 3},
            {"productId": "P1", "variantKey": None, "quantity": 1},
        ]

    @pytest.mark.asyncio
    async def test_two_tone_color_is_its_own_line(self):
        local = LocalCartStore(MemoryStore())

        await local.add_item("P1", 1, color="Black/White")
        cart = await local.add_item("P1", 2, color="Black", size="White")

        assert len(cart.items) == 2
        assert cart.quantity_of("P1", "Black%2FWhite") == 1
        assert cart.quantity_of("P1", "Black/White") == 2

    @pytest.mark.asyncio
    async def test_add_item_rejects_zero(self):
        with pytest.raises(ValueError):
            await LocalCartStore(MemoryStore()).add_item("P1", 0)

    @pytest.mark.asyncio
    async def test_update_and_remove(self):
        local = LocalCartStore(MemoryStore())
        await local.add_item("P1", 2)
        await local.add_item("P2", 1)

        cart = await local.update_quantity("P1", None, 5)
        assert cart.quantity_of("P1") == 5

        cart = await local.remove_item("P2")
        assert cart.items == (LineItem("P1", None, 5),)

        cart = await local.update_quantity("P1", None, 0)
        assert cart.is_empty

    @pytest.mark.asyncio
    async def test_empty_save_removes_key(self):
        store = MemoryStore()
        local = LocalCartStore(store)
        await local.add_item("P1")

        await local.save([])

        assert await store.get(GUEST_CART_KEY) is None

    @pytest.mark.asyncio
    async def test_corrupted_data_is_discarded(self):
        store = MemoryStore({GUEST_CART_KEY: b"{not json"})

        cart = await LocalCartStore(store).load()

        assert cart.is_empty
        assert await store.get(GUEST_CART_KEY) is None

    @pytest.mark.asyncio
    async def test_discard_merged_keeps_concurrent_additions(self):
        local = LocalCartStore(MemoryStore())
        await local.add_item("P1", 2)
        sent = (await local.load()).items
        await local.add_item("P9", 1)

        cart = await local.discard_merged(sent)

        assert cart.items == (LineItem("P9", None, 1),)

    @pytest.mark.asyncio
    async def test_discard_merged_clears_when_unchanged(self):
        store = MemoryStore()
        local = LocalCartStore(store)
        await local.add_item("P1", 2)

        await local.discard_merged((await local.load()).items)

        assert await store.get(GUEST_CART_KEY) is None
