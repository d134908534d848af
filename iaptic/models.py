"""Wire models for the iaptic Stripe API. Field names are camelCase on the wire."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PricingPhase(_WireModel):
    price_micros: int
    currency: str
    billing_period: str | None = None
    recurrence_mode: str | None = None   # INFINITE_RECURRING / NON_RECURRING / FINITE_RECURRING
    payment_mode: str | None = None      # PayAsYouGo / PayUpFront


class Offer(_WireModel):
    id: str
    platform: str | None = None
    offer_type: str | None = None
    pricing_phases: list[PricingPhase] = []


class Product(_WireModel):
    id: str
    type: str | None = None
    title: str | None = None
    description: str | None = None
    offers: list[Offer] = []
    metadata: dict[str, Any] | None = None
    platform: str | None = None


class Purchase(_WireModel):
    purchase_id: str
    transaction_id: str | None = None
    product_id: str | None = None
    platform: str = "stripe"
    purchase_date: datetime | None = None
    last_renewal_date: datetime | None = None
    expiration_date: datetime | None = None
    renewal_intent: str | None = None    # Renew / Cancel
    is_trial_period: bool = False
    amount_micros: int | None = None
    currency: str | None = None


class Order(_WireModel):
    offer_id: str
    application_username: str
    success_url: str
    cancel_url: str
    access_token: str | None = None


class PlanChange(_WireModel):
    purchase_id: str | None = None  # None → backend picks the best-suited subscription
    offer_id: str
    access_token: str | None = None


# ── Response envelopes ─────────────────────────────────────

class GetProductsResponse(_WireModel):
    ok: bool
    products: list[Product] | None = None


class GetPurchasesResponse(_WireModel):
    ok: bool
    purchases: list[Purchase] = []
    new_access_token: str | None = None


class CheckoutSessionResponse(_WireModel):
    ok: bool
    url: str | None = None
    access_token: str | None = None


class ChangePlanResponse(_WireModel):
    ok: bool
    purchase: Purchase | None = None
    new_access_token: str | None = None


class PortalSessionResponse(_WireModel):
    ok: bool
    url: str | None = None
