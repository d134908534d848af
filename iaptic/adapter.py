"""Stripe adapter: cached products, access token and purchase refreshes."""

import logging
from typing import Callable

from .api_client import ApiClient
from .auth.token_store import AccessTokenStore
from .config import Settings
from .errors import ConfigurationError, MissingAccessTokenError
from .models import Order, PlanChange, Product, Purchase
from .product_cache import ProductCache
from .refresh_scheduler import RefreshScheduler
from .storage import KeyValueStore, Storage, open_store
from .timers import Timer
from .utils import now_ms

log = logging.getLogger(__name__)

SUPPORTED_TYPES = ("stripe",)


class IapticStripe:
    """Client for iaptic's Stripe integration.

    Products are cached in the key-value store and refetched at most once a
    minute. Every purchase list the backend returns is handed to the refresh
    scheduler so that subscription state is revalidated around expiration.
    Checkout and portal operations return the Stripe URL; navigating to it
    is left to ``on_redirect`` or the caller.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: KeyValueStore | None = None,
        timer: Timer | None = None,
        clock: Callable[[], int] = now_ms,
        api_client: ApiClient | None = None,
        on_redirect: Callable[[str], None] | None = None,
    ):
        if settings.type not in SUPPORTED_TYPES:
            raise ConfigurationError("Unsupported adapter type")
        if not settings.app_name or not settings.api_key:
            raise ConfigurationError("Missing required Iaptic configuration")

        self._settings = settings
        self._clock = clock
        self._on_redirect = on_redirect
        self._storage = Storage(
            store if store is not None else open_store(settings.storage_path),
            prefix=settings.storage_prefix,
        )
        self._tokens = AccessTokenStore(self._storage)
        self._products = ProductCache(self._storage, clock=clock)
        self._api = api_client or ApiClient(
            settings.base_url, settings.app_name, settings.api_key,
        )
        self._scheduler = RefreshScheduler(self.get_purchases, timer=timer, clock=clock)

    @property
    def iaptic_url(self) -> str:
        return self._settings.base_url

    @property
    def refresh_scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def storage(self) -> Storage:
        return self._storage

    async def close(self):
        await self._api.close()

    # ── Products ───────────────────────────────────────────

    async def get_products(self) -> list[Product]:
        """Cached products if any are stored, otherwise a fresh fetch."""
        cached = self._products.load()
        if cached is not None:
            return cached.products
        return await self.refresh_products()

    async def refresh_products(self) -> list[Product]:
        """Fetch products, unless the cache was filled less than a minute ago.

        On failure the error propagates and the previous cache stays.
        """
        cached = self._products.load()
        if cached is not None and self._products.is_fresh(cached):
            return cached.products

        try:
            response = await self._api.fetch_products()
        except Exception:
            log.exception("Error fetching prices")
            raise

        self._products.save(response.products)
        log.info("Fetched %d products", len(response.products))
        return response.products

    # ── Access token ───────────────────────────────────────

    def get_access_token(self) -> str | None:
        return self._tokens.access_token

    def _require_token(self, access_token: str | None) -> str:
        token = access_token or self._tokens.access_token
        if not token:
            raise MissingAccessTokenError()
        return token

    # ── Purchases ──────────────────────────────────────────

    async def get_purchases(self, access_token: str | None = None) -> list[Purchase]:
        """Purchases for the given or stored token; ``[]`` when there is none.

        Schedules expiration refreshes for every returned purchase.
        """
        token = access_token or self._tokens.access_token
        if not token:
            return []

        try:
            response = await self._api.fetch_purchases(token)
        except Exception:
            log.exception("Error fetching purchases")
            raise

        for purchase in response.purchases:
            self._scheduler.schedule_purchase_refreshes(purchase)
        self._tokens.rotate(response.new_access_token)
        return response.purchases

    async def order(self, order: Order) -> str:
        """Create a Stripe Checkout session and return its URL."""
        if not order.access_token:
            order = order.model_copy(update={"access_token": self._tokens.access_token})

        try:
            response = await self._api.create_checkout(order)
        except Exception:
            log.exception("Error creating checkout session")
            raise

        self._tokens.rotate(response.access_token)
        self._redirect(response.url)
        return response.url

    async def customer_portal_url(self, return_url: str, access_token: str | None = None) -> str:
        token = self._require_token(access_token)
        try:
            response = await self._api.create_portal_session(return_url, token)
        except Exception:
            log.exception("Error creating customer portal session")
            raise

        self._redirect(response.url)
        return response.url

    async def change_plan(self, plan_change: PlanChange) -> Purchase:
        """Switch a subscription to another offer without the customer portal."""
        token = self._require_token(plan_change.access_token)
        plan_change = plan_change.model_copy(update={"access_token": token})

        try:
            response = await self._api.change_plan(plan_change)
        except Exception:
            log.exception("Error changing plan")
            raise

        self._tokens.rotate(response.new_access_token)
        purchase = response.purchase
        self._scheduler.schedule_purchase_refreshes(purchase)
        # Catch quick backend-side changes following the switch
        self._scheduler.schedule_post_change_verification(purchase.purchase_id)
        return purchase

    def _redirect(self, url: str):
        if self._on_redirect is not None:
            self._on_redirect(url)

    # ── Storage ────────────────────────────────────────────

    def clear_stored_data(self):
        """Forget the access token, product cache and pending refreshes."""
        self._tokens.clear()
        self._products.clear()
        self._scheduler.clear_schedules()


def create_adapter(settings: Settings | None = None, **kwargs) -> IapticStripe:
    """Build the adapter for ``settings.type``.

    Keyword arguments other than the adapter options override settings
    fields, e.g. ``create_adapter(app_name="demo", api_key="...")``.
    """
    adapter_opts = {
        k: kwargs.pop(k) for k in ("store", "timer", "clock", "api_client", "on_redirect")
        if k in kwargs
    }
    if settings is None:
        settings = Settings(**kwargs)
    elif kwargs:
        settings = settings.model_copy(update=kwargs)

    if settings.type == "stripe":
        return IapticStripe(settings, **adapter_opts)
    raise ConfigurationError("Unsupported adapter type")
