from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Amount = Union[int, float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- inbound requests -------------------------------------------------------
# Fields are optional so that missing values surface as ValidationError (400)
# from the service layer instead of FastAPI's 422.

class CustomerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Amount] = None
    currency: str = "USD"
    customer: Optional[CustomerIn] = None
    plan: Optional[str] = None
    vin: Optional[str] = None
    order_id: Optional[str] = Field(default=None, alias="orderId")
    return_url: Optional[str] = Field(default=None, alias="returnUrl")


class CardIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    number: Optional[str] = None
    exp_month: Optional[int] = Field(default=None, alias="expiry_month")
    exp_year: Optional[int] = Field(default=None, alias="expiry_year")
    cvc: Optional[str] = None


class BillingIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None


class PaymentMethodIn(BaseModel):
    card: Optional[CardIn] = None
    billing: Optional[BillingIn] = None


class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: Optional[str] = Field(default=None, alias="paymentIntentId")
    payment_method: Optional[PaymentMethodIn] = Field(default=None, alias="paymentMethod")


# --- ledger records ---------------------------------------------------------

class Customer(BaseModel):
    email: str
    first_name: str = ""
    last_name: str = ""


class PaymentIntent(BaseModel):
    id: str
    client_secret: Optional[str] = None
    amount: Amount
    currency: str
    status: str
    order_id: Optional[str] = None
    customer: Customer
    plan_metadata: Optional[dict] = None
    redirect_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    simulated: bool = False


class Payment(BaseModel):
    id: str
    payment_intent_id: str
    status: str
    amount: Optional[Amount] = None
    currency: Optional[str] = None
    card_last4: Optional[str] = None
    customer_email: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    simulated: bool = False
    source: str = "confirmation"


# --- responses --------------------------------------------------------------

class HostedSessionResponse(BaseModel):
    # storefronts read the camelCase intentId key
    intent_id: str = Field(serialization_alias="intentId")
    redirect_url: str
    simulated: bool = False
    raw: Optional[Any] = None


class PaymentList(BaseModel):
    total: int
    items: List[Payment]


class PaymentIntentList(BaseModel):
    total: int
    items: List[PaymentIntent]
