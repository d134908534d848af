"""HTTP client for the iaptic Stripe endpoints. Basic auth from app identity."""

import json
import logging

import aiohttp
from pydantic import ValidationError

from .errors import ApiError
from .models import (
    ChangePlanResponse,
    CheckoutSessionResponse,
    GetProductsResponse,
    GetPurchasesResponse,
    Order,
    PlanChange,
    PortalSessionResponse,
)
from .utils import base64_encode

log = logging.getLogger(__name__)


class ApiClient:
    def __init__(self, base_url: str, app_name: str, api_key: str):
        self._base = base_url.rstrip("/")
        self._authorization = f"Basic {base64_encode(f'{app_name}:{api_key}')}"
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request(
        self, method: str, path: str, *, json=None, params=None, error: str,
    ) -> dict:
        await self._ensure_session()
        url = f"{self._base}{path}"
        headers = {"Authorization": self._authorization}

        try:
            async with self._session.request(
                method, url, json=json, params=params, headers=headers,
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    log.error("API %s %s → %d: %s", method, path, resp.status, body[:200])
                    raise ApiError(_error_message(body, error), status=resp.status)
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise ApiError(f"Invalid JSON from {path}", status=resp.status) from e
        except aiohttp.ClientError as e:
            log.error("API %s %s error: %s", method, path, e)
            raise ApiError(f"{error}: {e}") from e

        if not isinstance(data, dict):
            raise ApiError(f"Invalid response from {path}", status=resp.status)
        return data

    # ── Products ───────────────────────────────────────────

    async def fetch_products(self) -> GetProductsResponse:
        data = await self._request(
            "GET", "/v3/stripe/prices", error="Failed to fetch prices from Iaptic",
        )
        result = _parse(GetProductsResponse, data, "products")
        if not result.ok or result.products is None:
            raise ApiError("Invalid response from Iaptic", payload=data)
        return result

    # ── Purchases ──────────────────────────────────────────

    async def fetch_purchases(self, access_token: str) -> GetPurchasesResponse:
        data = await self._request(
            "GET", "/v3/stripe/purchases",
            params={"accessToken": access_token},
            error="Failed to fetch purchases",
        )
        result = _parse(GetPurchasesResponse, data, "purchases")
        if not result.ok:
            raise ApiError("Invalid purchases response", payload=data)
        return result

    # ── Checkout & plans ───────────────────────────────────

    async def create_checkout(self, order: Order) -> CheckoutSessionResponse:
        data = await self._request(
            "POST", "/v3/stripe/checkout",
            json=order.to_wire(),
            error="Failed to create checkout session",
        )
        result = _parse(CheckoutSessionResponse, data, "checkout session")
        if not result.ok or not result.url:
            raise ApiError("Invalid checkout session response", payload=data)
        return result

    async def change_plan(self, plan_change: PlanChange) -> ChangePlanResponse:
        data = await self._request(
            "POST", "/v3/stripe/change-plan",
            json=plan_change.to_wire(),
            error="Failed to change plan",
        )
        result = _parse(ChangePlanResponse, data, "change plan")
        if not result.ok or result.purchase is None:
            raise ApiError("Invalid change plan response", payload=data)
        return result

    async def create_portal_session(self, return_url: str, access_token: str) -> PortalSessionResponse:
        data = await self._request(
            "POST", "/v3/stripe/portal",
            json={"returnUrl": return_url, "accessToken": access_token},
            error="Failed to create portal session",
        )
        result = _parse(PortalSessionResponse, data, "portal session")
        if not result.ok or not result.url:
            raise ApiError("Invalid portal session response", payload=data)
        return result


def _parse(model, data: dict, what: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ApiError(f"Invalid {what} response: {e.error_count()} field error(s)", payload=data) from e


def _error_message(body: str, default: str) -> str:
    """Prefer the backend's ``message`` field when the error body is JSON."""
    try:
        data = json.loads(body)
    except ValueError:
        return default
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return default
