"""Cart and wishlist value objects."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple


def _escape_variant_part(value: Optional[str]) -> str:
    # "/" separates color from size, so it may not appear unescaped in either
    return (value or "").strip().replace("%", "%25").replace("/", "%2F")


def make_variant_key(color: Optional[str] = None, size: Optional[str] = None) -> Optional[str]:
    """
    Build the variant part of a line item's identity from the selected color/size.

    ``"red/M"``, ``"red"``, ``"/M"`` or None. A slash inside a color or size is
    percent-escaped, so ``("Black/White", None)`` and ``("Black", "White")``
    stay distinct.
    """
    color = _escape_variant_part(color)
    size = _escape_variant_part(size)
    if not color and not size:
        return None
    if not size:
        return color
    return f"{color}/{size}"


@dataclass(frozen=True)
class LineItem:
    """One product/variant line with its quantity."""
    product_id: str
    variant_key: Optional[str] = None
    quantity: int = 1

    def __post_init__(self):
        if not self.product_id or not isinstance(self.product_id, str):
            raise ValueError("product_id must be a non-empty string")
        if not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError("quantity must be a positive integer")
        # Empty string and None are the same "no variant"
        if self.variant_key == "":
            object.__setattr__(self, "variant_key", None)

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        """Identity of the line: (product_id, variant_key)."""
        return (self.product_id, self.variant_key)

    def with_quantity(self, quantity: int) -> "LineItem":
        return LineItem(self.product_id, self.variant_key, quantity)

    def to_dict(self) -> dict:
        """Wire/persisted form."""
        return {
            "productId": self.product_id,
            "variantKey": self.variant_key,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            product_id=str(data["productId"]),
            variant_key=data.get("variantKey"),
            quantity=int(data["quantity"]),
        )


def merge_line_items(*sources: Iterable[LineItem]) -> Tuple[LineItem, ...]:
    """
    Union of several item sequences with quantities summed per key.

    Order is first appearance across the sources, so an account cart passed
    first keeps its ordering and guest-only lines are appended.
    """
    totals: dict = {}
    for items in sources:
        for item in items:
            totals[item.key] = totals.get(item.key, 0) + item.quantity
    return tuple(
        LineItem(product_id, variant_key, quantity)
        for (product_id, variant_key), quantity in totals.items()
    )


def subtract_line_items(items: Iterable[LineItem], removed: Iterable[LineItem]) -> Tuple[LineItem, ...]:
    """Subtract ``removed`` quantities per key; lines that reach zero are dropped."""
    taken: dict = {}
    for item in removed:
        taken[item.key] = taken.get(item.key, 0) + item.quantity
    remaining = []
    for item in items:
        left = item.quantity - taken.pop(item.key, 0)
        if left > 0:
            remaining.append(item.with_quantity(left))
    return tuple(remaining)


class CartSource(str, Enum):
    """Where the effective cart comes from."""
    NONE = "none"
    GUEST = "guest"
    ACCOUNT = "account"


@dataclass(frozen=True)
class CartSnapshot:
    """Immutable view of a cart handed to listeners and readers."""
    items: Tuple[LineItem, ...] = ()
    source: CartSource = CartSource.NONE

    def __post_init__(self):
        # Never hold two lines for the same key
        object.__setattr__(self, "items", merge_line_items(self.items))

    @classmethod
    def empty(cls, source: CartSource = CartSource.NONE) -> "CartSnapshot":
        return cls((), source)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        """Total number of units in the cart."""
        return sum(item.quantity for item in self.items)

    def quantity_of(self, product_id: str, variant_key: Optional[str] = None) -> int:
        for item in self.items:
            if item.key == (product_id, variant_key or None):
                return item.quantity
        return 0

    def to_list(self) -> list:
        return [item.to_dict() for item in self.items]


@dataclass(frozen=True)
class WishlistItem:
    """Saved product on the account wishlist."""
    product_id: str
    name: str = ""


@dataclass(frozen=True)
class WishlistSnapshot:
    items: Tuple[WishlistItem, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "WishlistSnapshot":
        return cls(())

    @property
    def product_ids(self) -> Tuple[str, ...]:
        return tuple(item.product_id for item in self.items)

    def __len__(self) -> int:
        return len(self.items)
