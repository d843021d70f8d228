"""Remote Wishlist Gateway: GET /wishlist."""

from storefront.cart.models import WishlistSnapshot
from storefront.errors import NetworkFailure

from .base import ApiClient
from .models import ApiWishlist, unwrap


class RemoteWishlistGateway:
    """Account wishlist endpoint."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def get_wishlist(self) -> WishlistSnapshot:
        body = unwrap(await self.client.get("/wishlist"))
        if isinstance(body, list):
            body = {"items": body}
        try:
            return ApiWishlist.model_validate(body).to_snapshot()
        except ValueError as e:
            raise NetworkFailure(f"Malformed wishlist response: {e}", raw_error=e)
