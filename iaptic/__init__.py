"""Client library for iaptic's Stripe integration."""

from .adapter import IapticStripe, create_adapter
from .api_client import ApiClient
from .config import Settings, get_settings
from .errors import ApiError, ConfigurationError, IapticError, MissingAccessTokenError, StorageError
from .models import Offer, Order, PlanChange, PricingPhase, Product, Purchase
from .refresh_scheduler import RefreshScheduler, ScheduledRefresh
from .storage import JsonFileStore, MemoryStore, Storage
from .timers import LoopTimer
from .version import __version__

__all__ = [
    "ApiClient",
    "ApiError",
    "ConfigurationError",
    "IapticError",
    "IapticStripe",
    "JsonFileStore",
    "LoopTimer",
    "MemoryStore",
    "MissingAccessTokenError",
    "Offer",
    "Order",
    "PlanChange",
    "PricingPhase",
    "Product",
    "Purchase",
    "RefreshScheduler",
    "ScheduledRefresh",
    "Settings",
    "Storage",
    "StorageError",
    "create_adapter",
    "get_settings",
    "__version__",
]
