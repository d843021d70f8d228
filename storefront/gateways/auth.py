"""Identity Gateway: GET /auth/me."""
from typing import Any

from .base import ApiClient
from .models import unwrap


class IdentityGateway:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def confirm(self) -> dict[str, Any]:
        """Confirm the presented credential. Raises InvalidCredential on 401."""
        body = unwrap(await self.client.get("/auth/me"))
        if isinstance(body, dict) and isinstance(body.get("user"), dict):
            return body["user"]
        return body if isinstance(body, dict) else {}
