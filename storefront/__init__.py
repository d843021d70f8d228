"""Storefront client: guest/account cart and wishlist reconciliation."""

__version__ = "0.1.0"
