"""Wiring of the reconciliation subsystem."""

from dataclasses import dataclass

import httpx

from storefront.cart.reconciliation import CartReconciliationEngine
from storefront.cart.storage import LocalCartStore
from storefront.config import Settings
from storefront.gateways import ApiClient, IdentityGateway, RemoteCartGateway, RemoteWishlistGateway
from storefront.initializer import AppInitializer
from storefront.session import SessionTokenHolder
from storefront.storage import KeyValueStore, create_store


@dataclass
class Storefront:
    """All collaborators of one client instance."""

    settings: Settings
    store: KeyValueStore
    session: SessionTokenHolder
    local_cart: LocalCartStore
    api: ApiClient
    engine: CartReconciliationEngine
    initializer: AppInitializer

    async def start(self) -> None:
        """Read the persisted session and mount the initializer (does not wait for the network)."""
        await self.session.load()
        self.initializer.mount()

    async def close(self) -> None:
        await self.initializer.unmount()
        await self.api.aclose()


def create_storefront(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Storefront:
    settings = settings or Settings.from_env()
    store = store if store is not None else create_store(settings)
    session = SessionTokenHolder(store)
    local_cart = LocalCartStore(store)
    api = ApiClient(settings, lambda: session.token, transport=transport)
    engine = CartReconciliationEngine(
        session=session,
        local_cart=local_cart,
        cart_gateway=RemoteCartGateway(api),
        wishlist_gateway=RemoteWishlistGateway(api),
        identity_gateway=IdentityGateway(api),
    )
    return Storefront(
        settings=settings,
        store=store,
        session=session,
        local_cart=local_cart,
        api=api,
        engine=engine,
        initializer=AppInitializer(session, engine),
    )
