"""Backend gateways for cart, wishlist and identity."""
from .auth import IdentityGateway
from .base import ApiClient
from .cart import RemoteCartGateway, parse_cart
from .wishlist import RemoteWishlistGateway

__all__ = [
    "ApiClient",
    "IdentityGateway",
    "RemoteCartGateway",
    "RemoteWishlistGateway",
    "parse_cart",
]
