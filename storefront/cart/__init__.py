"""Cart package: models, guest storage, and the reconciliation engine."""
from .models import CartSnapshot, CartSource, LineItem, WishlistItem, WishlistSnapshot, make_variant_key, merge_line_items
from .reconciliation import CartReconciliationEngine, MergeOperation, MergeOutcome, ReconciliationState
from .storage import LocalCartStore

__all__ = [
    "CartSnapshot",
    "CartSource",
    "LineItem",
    "WishlistItem",
    "WishlistSnapshot",
    "make_variant_key",
    "merge_line_items",
    "LocalCartStore",
    "CartReconciliationEngine",
    "MergeOperation",
    "MergeOutcome",
    "ReconciliationState",
]
