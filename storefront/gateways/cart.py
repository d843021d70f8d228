"""Remote Cart Gateway: GET /cart, POST /cart/merge, POST /cart/add."""
from typing import Any, Iterable, Optional

from storefront.cart.models import CartSnapshot, LineItem
from storefront.errors import MergeConflict, NetworkFailure
from storefront.logging import get_logger

from .base import ApiClient
from .models import ApiCart, unwrap

logger = get_logger(__name__)

# Merge-specific refusals from the backend
MERGE_STATUS_ERRORS = {409: MergeConflict, 422: MergeConflict}


def parse_cart(payload: Any) -> CartSnapshot:
    """Decode a cart response body into an account snapshot."""
    body = unwrap(payload)
    if isinstance(body, list):
        body = {"items": body}
    if not isinstance(body, dict):
        raise NetworkFailure("Cart response is not an object")
    try:
        return ApiCart.model_validate(body).to_snapshot()
    except ValueError as e:
        raise NetworkFailure(f"Malformed cart response: {e}", raw_error=e)


class RemoteCartGateway:
    """Account cart endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_cart(self) -> CartSnapshot:
        return parse_cart(await self.client.get("/cart"))

    async def merge(self, items: Iterable[LineItem]) -> CartSnapshot:
        """Send guest lines to the backend, which sums quantities per (product, variant)."""
        body = {"items": [item.to_dict() for item in items]}
        payload = await self.client.post("/cart/merge", json=body, status_errors=MERGE_STATUS_ERRORS)
        if isinstance(payload, dict) and payload.get("success") is False:
            raise MergeConflict(payload.get("message") or "Cart merge rejected")
        return parse_cart(payload)

    async def add_item(self, product_id: str, quantity: int = 1, color: Optional[str] = None, size: Optional[str] = None) -> CartSnapshot:
        """Add to the account cart, then re-read it (the add response carries no full cart)."""
        await self.client.post(
            "/cart/add",
            json={"productId": product_id, "quantity": quantity, "selectedColor": color, "selectedSize": size},
        )
        return await self.get_cart()
