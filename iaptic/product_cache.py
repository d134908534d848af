"""Locally persisted product catalogue with a refresh debounce."""

import logging
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import Product
from .storage import Storage
from .utils import now_ms

log = logging.getLogger(__name__)

_KEY = "products"

# Refresh requests within this window of a successful fetch reuse the cache
FRESHNESS_WINDOW_MS = 60_000


class CachedProducts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    products: list[Product]
    fetched_at: int = Field(alias="fetchedAt")


class ProductCache:
    def __init__(self, storage: Storage, clock: Callable[[], int] = now_ms):
        self._storage = storage
        self._clock = clock

    def load(self) -> CachedProducts | None:
        """Cached entry, or ``None`` when unknown (missing or unreadable)."""
        data = self._storage.get_json(_KEY)
        if data is None:
            return None
        try:
            return CachedProducts.model_validate(data)
        except ValidationError:
            log.warning("Ignoring malformed product cache entry")
            return None

    def is_fresh(self, cached: CachedProducts) -> bool:
        return cached.fetched_at > self._clock() - FRESHNESS_WINDOW_MS

    def save(self, products: list[Product]) -> bool:
        entry = CachedProducts(products=products, fetched_at=self._clock())
        return self._storage.set_json(
            _KEY, entry.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    def clear(self):
        self._storage.remove(_KEY)
