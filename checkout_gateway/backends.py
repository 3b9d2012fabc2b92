"""Payment backends the gateway can be configured with.

A backend is chosen once at startup. ``SimulatedBackend`` stands in for the
processor when no credentials are configured; the live backends live in
``airwallex.py`` and ``stripe_service.py``.
"""
import asyncio
import random
import string
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from urllib.parse import urlencode

from checkout_gateway.cards import ValidatedCard
from checkout_gateway.schemas import Amount, BillingIn, Customer, PaymentIntent

SIMULATED_INTENT_STATUS = "requires_payment_method"


@dataclass
class IntentRequest:
    amount: Amount
    currency: str
    customer: Customer
    order_id: Optional[str] = None
    plan: Optional[str] = None
    vin: Optional[str] = None
    return_url: Optional[str] = None

    @property
    def metadata(self) -> dict:
        return {"plan": self.plan, "vin": self.vin, "order_id": self.order_id}


@dataclass
class BackendIntent:
    id: str
    status: str
    client_secret: Optional[str] = None
    redirect_url: Optional[str] = None
    raw: Any = None


@dataclass
class ConfirmResult:
    status: Optional[str]
    decline_code: Optional[str] = None
    raw: Any = field(default=None, repr=False)


def to_minor_units(amount: Amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: Amount) -> Amount:
    value = Decimal(str(amount)) / 100
    return int(value) if value == value.to_integral_value() else float(value)


def new_request_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def default_order_id() -> str:
    return f"order_{int(time.time() * 1000)}"


class PaymentBackend(ABC):
    name = "abstract"
    simulated = False
    minor_units = False

    @abstractmethod
    async def create_intent(self, request: IntentRequest) -> BackendIntent: ...

    @abstractmethod
    async def create_hosted_session(self, request: IntentRequest) -> BackendIntent:
        """Create an intent whose ``redirect_url`` points at a hosted payment page."""

    @abstractmethod
    async def confirm(self, intent: PaymentIntent, card: ValidatedCard,
                      billing: Optional[BillingIn]) -> ConfirmResult: ...

    async def aclose(self) -> None:
        pass


class SimulatedBackend(PaymentBackend):
    """Local stand-in for the processor. Never performs network I/O."""
    name = "simulation"
    simulated = True

    def __init__(self, confirm_delay: float = 0.0):
        self.confirm_delay = confirm_delay

    @staticmethod
    def _new_intent() -> BackendIntent:
        intent_id = f"sim_pi_{uuid.uuid4().hex[:16]}"
        return BackendIntent(
            id=intent_id,
            status=SIMULATED_INTENT_STATUS,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:12]}",
        )

    async def create_intent(self, request):
        return self._new_intent()

    async def create_hosted_session(self, request):
        intent = self._new_intent()
        query = urlencode({"payment_intent_id": intent.id, "simulated": "true"})
        separator = "&" if "?" in (request.return_url or "") else "?"
        intent.redirect_url = f"{request.return_url}{separator}{query}"
        return intent

    async def confirm(self, intent, card, billing):
        if self.confirm_delay > 0:
            await asyncio.sleep(self.confirm_delay)
        return ConfirmResult(status="succeeded")
