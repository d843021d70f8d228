"""Pydantic models for backend cart/wishlist payloads."""
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from storefront.cart.models import CartSnapshot, CartSource, LineItem, WishlistItem, WishlistSnapshot, make_variant_key


def _product_id(product: Union[dict, str, None]) -> Optional[str]:
    if isinstance(product, dict):
        value = product.get("_id") or product.get("id")
        return str(value) if value else None
    if product:
        return str(product)
    return None


class ApiCartItem(BaseModel):
    """Cart line as returned by the backend.

    Accepts both the compact ``{productId, variantKey, quantity}`` shape and
    the populated ``{_id, product: {...}, selectedColor, selectedSize}`` shape.
    """
    product_id: Optional[str] = Field(default=None, alias="productId")
    variant_key: Optional[str] = Field(default=None, alias="variantKey")
    product: Union[dict, str, None] = None
    quantity: int = 1
    selected_color: Optional[str] = Field(default=None, alias="selectedColor")
    selected_size: Optional[str] = Field(default=None, alias="selectedSize")

    class Config:
        extra = "ignore"
        populate_by_name = True

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v):
        return str(v) if v is not None else None

    def to_line_item(self) -> Optional[LineItem]:
        product_id = self.product_id or _product_id(self.product)
        # Lines whose product was deleted server-side come back unpopulated
        if not product_id or self.quantity < 1:
            return None
        variant_key = self.variant_key or make_variant_key(self.selected_color, self.selected_size)
        return LineItem(product_id, variant_key, self.quantity)


class ApiCart(BaseModel):
    items: list[ApiCartItem] = []
    summary: Optional[dict[str, Any]] = None

    class Config:
        extra = "ignore"

    def to_snapshot(self) -> CartSnapshot:
        lines = [item.to_line_item() for item in self.items]
        return CartSnapshot(tuple(line for line in lines if line is not None), CartSource.ACCOUNT)


class ApiWishlistItem(BaseModel):
    product_id: Optional[str] = Field(default=None, alias="productId")
    product: Union[dict, str, None] = None

    class Config:
        extra = "ignore"
        populate_by_name = True

    def to_wishlist_item(self) -> Optional[WishlistItem]:
        product_id = self.product_id or _product_id(self.product)
        if not product_id:
            return None
        name = self.product.get("name", "") if isinstance(self.product, dict) else ""
        return WishlistItem(product_id=product_id, name=name or "")


class ApiWishlist(BaseModel):
    items: list[ApiWishlistItem] = []
    count: Optional[int] = None

    class Config:
        extra = "ignore"

    def to_snapshot(self) -> WishlistSnapshot:
        seen = set()
        items = []
        for entry in self.items:
            item = entry.to_wishlist_item()
            if item is None or item.product_id in seen:
                continue
            seen.add(item.product_id)
            items.append(item)
        return WishlistSnapshot(tuple(items))


def unwrap(payload: Any) -> Any:
    """Strip the ``{success, data}`` envelope the backend wraps responses in."""
    if isinstance(payload, dict) and "data" in payload and isinstance(payload["data"], (dict, list)):
        return payload["data"]
    return payload
