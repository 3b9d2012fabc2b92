import time
from typing import Any, Optional

import httpx
import structlog

from checkout_gateway.backends import (
    BackendIntent,
    ConfirmResult,
    PaymentBackend,
    default_order_id,
    new_request_id,
    to_minor_units,
)
from checkout_gateway.errors import AuthError, MissingRedirectError, UpstreamError

logger = structlog.get_logger(component="airwallex")

LOGIN_PATH = "/api/v1/authentication/login"
CREATE_INTENT_PATH = "/api/v1/pa/payment_intents/create"
CONFIRM_INTENT_PATH = "/api/v1/pa/payment_intents/{intent_id}/confirm"
# login tokens live 30 minutes; refresh a little early
TOKEN_TTL_SECONDS = 25 * 60


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def extract_token(data: Any) -> Optional[str]:
    return _dig(data, "token") or _dig(data, "access_token") or _dig(data, "data", "token")


def extract_redirect_url(data: Any) -> Optional[str]:
    return _dig(data, "next_action", "redirect_url") or _dig(data, "next_action", "redirect", "url")


def extract_status(data: Any) -> Optional[str]:
    return (
        _dig(data, "status")
        or _dig(data, "payment_status")
        or _dig(data, "latest_payment_attempt", "status")
    )


def extract_decline_code(data: Any) -> Optional[str]:
    return (
        _dig(data, "decline_code")
        or _dig(data, "latest_payment_attempt", "failure_code")
        or _dig(data, "failure_code")
    )


def _parse(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        logger.error("non_json_response", status=response.status_code, body=response.text[:200])
        return None


class AirwallexBackend(PaymentBackend):
    """Live backend talking to the Airwallex payment acceptance API."""
    name = "airwallex"

    def __init__(self, base_url: str, api_key: str, client_id: Optional[str] = None,
                 minor_units: bool = True, timeout: float = 15.0,
                 token_ttl: float = TOKEN_TTL_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.api_key = api_key
        self.client_id = client_id
        self.minor_units = minor_units
        self.token_ttl = token_ttl
        self._token: Optional[str] = None
        self._token_expires = 0.0
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self):
        await self._client.aclose()

    async def get_token(self) -> str:
        """Exchange the client id / API key pair for a bearer token."""
        try:
            response = await self._client.post(
                LOGIN_PATH,
                headers={"x-client-id": self.client_id or "", "x-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Airwallex login request failed: {e}") from e

        data = _parse(response)
        if not response.is_success:
            logger.error("login_failed", status=response.status_code)
            raise AuthError("Airwallex login failed", details=data)
        token = extract_token(data)
        if not token:
            raise AuthError("Airwallex login returned no token", details=data)
        return token

    async def _bearer(self) -> str:
        if not self.client_id:
            return self.api_key
        if self._token is None or time.monotonic() >= self._token_expires:
            self._token = await self.get_token()
            self._token_expires = time.monotonic() + self.token_ttl
        return self._token

    async def _headers(self) -> dict:
        token = await self._bearer()
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def _post(self, path: str, body: dict, action: str) -> dict:
        headers = await self._headers()
        try:
            response = await self._client.post(path, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("request_failed", action=action, error=str(e))
            raise UpstreamError(f"Airwallex {action} request failed: {e}") from e

        if response.status_code == 401:
            # token revoked or expired early; log in again on the next call
            self._token = None
        data = _parse(response)
        if not response.is_success or not isinstance(data, dict):
            logger.error("upstream_rejected", action=action, status=response.status_code, details=data)
            raise UpstreamError(
                f"Airwallex {action} failed",
                status=response.status_code,
                details=data if data is not None else "Non-JSON response received",
            )
        return data

    def _intent_body(self, request) -> dict:
        amount = to_minor_units(request.amount) if self.minor_units else request.amount
        return {
            "amount": amount,
            "currency": request.currency,
            "merchant_order_id": request.order_id or default_order_id(),
            "customer": {
                "email": request.customer.email,
                "first_name": request.customer.first_name,
                "last_name": request.customer.last_name,
            },
            "metadata": request.metadata,
            "request_id": new_request_id(),
            "payment_method": {"type": "card"},
        }

    @staticmethod
    def _to_intent(data: dict) -> BackendIntent:
        intent_id = data.get("id") or data.get("payment_intent_id")
        if not intent_id:
            raise UpstreamError("Airwallex response carried no intent id", details=data)
        return BackendIntent(
            id=intent_id,
            status=(extract_status(data) or "requires_payment_method").lower(),
            client_secret=data.get("client_secret"),
            raw=data,
        )

    async def create_intent(self, request):
        body = self._intent_body(request)
        logger.info("creating_intent", order_id=request.order_id, amount=body["amount"],
                    currency=request.currency)
        data = await self._post(CREATE_INTENT_PATH, body, "create intent")
        return self._to_intent(data)

    async def create_hosted_session(self, request):
        body = self._intent_body(request)
        body["next_action"] = {"type": "redirect", "return_url": request.return_url}
        logger.info("creating_hpp_session", order_id=request.order_id, amount=body["amount"])
        data = await self._post(CREATE_INTENT_PATH, body, "create HPP session")

        intent = self._to_intent(data)
        intent.redirect_url = extract_redirect_url(data)
        if not intent.redirect_url:
            logger.warning("no_redirect_url", intent_id=intent.id)
            raise MissingRedirectError("No redirect URL received from Airwallex", details=data)
        return intent

    async def confirm(self, intent, card, billing):
        body = {
            "request_id": new_request_id(),
            "payment_method": {
                "type": "card",
                "card": {
                    "number": card.number,
                    "expiry_month": f"{card.exp_month:02d}",
                    "expiry_year": str(card.exp_year),
                    "cvc": card.cvc,
                    "name": card.holder_name,
                },
                "billing": {
                    "first_name": (billing.first_name if billing else None) or "",
                    "last_name": (billing.last_name if billing else None) or "",
                    "email": (billing.email if billing else None) or intent.customer.email,
                },
            },
        }
        path = CONFIRM_INTENT_PATH.format(intent_id=intent.id)
        data = await self._post(path, body, "confirm intent")
        return ConfirmResult(
            status=extract_status(data),
            decline_code=extract_decline_code(data),
            raw=data,
        )
