import uuid
from datetime import date
from typing import Optional

import structlog

from checkout_gateway.backends import (
    IntentRequest,
    PaymentBackend,
    SimulatedBackend,
    from_minor_units,
)
from checkout_gateway.cards import validate_card
from checkout_gateway.config import DEFAULT_RETURN_URL
from checkout_gateway.errors import (
    AuthError,
    NotFoundError,
    PaymentDeclinedError,
    UpstreamError,
    ValidationError,
)
from checkout_gateway.ledger import Ledger
from checkout_gateway.schemas import (
    CheckoutRequest,
    ConfirmRequest,
    Customer,
    HostedSessionResponse,
    Payment,
    PaymentIntent,
)
from checkout_gateway.status import classify_status

logger = structlog.get_logger(component="gateway")


def new_payment_id() -> str:
    return f"pay_{uuid.uuid4().hex[:16]}"


class PaymentGateway:
    """Creates and confirms intents against one backend and records the results.

    With ``fallback_to_simulation`` set, auth and upstream failures during
    intent creation are served by a simulated backend instead of surfacing.
    """

    def __init__(self, backend: PaymentBackend, ledger: Ledger,
                 fallback_to_simulation: bool = False,
                 default_return_url: str = DEFAULT_RETURN_URL,
                 simulator: Optional[SimulatedBackend] = None):
        self.backend = backend
        self.ledger = ledger
        self.fallback_to_simulation = fallback_to_simulation
        self.default_return_url = default_return_url
        self.simulator = simulator or (backend if backend.simulated else SimulatedBackend())

    async def aclose(self):
        await self.backend.aclose()

    def _intent_request(self, request: CheckoutRequest) -> IntentRequest:
        if not request.amount:
            raise ValidationError("Missing amount or customer email in request")
        if request.customer is None or not request.customer.email:
            raise ValidationError("Missing amount or customer email in request")
        if request.amount < 0:
            raise ValidationError("Amount must be positive")
        return IntentRequest(
            amount=request.amount,
            currency=(request.currency or "USD").upper(),
            customer=Customer(
                email=request.customer.email,
                first_name=request.customer.first_name or "",
                last_name=request.customer.last_name or "",
            ),
            order_id=request.order_id,
            plan=request.plan,
            vin=request.vin,
            return_url=request.return_url or self.default_return_url,
        )

    async def _with_fallback(self, action: str, intent_request: IntentRequest, hosted: bool):
        backend = self.backend
        try:
            if hosted:
                return await backend.create_hosted_session(intent_request), backend
            return await backend.create_intent(intent_request), backend
        except (AuthError, UpstreamError) as e:
            if not self.fallback_to_simulation or backend.simulated:
                raise
            logger.warning("falling_back_to_simulation", action=action,
                           backend=backend.name, error=e.message)
        if hosted:
            return await self.simulator.create_hosted_session(intent_request), self.simulator
        return await self.simulator.create_intent(intent_request), self.simulator

    def _record_intent(self, created, backend, intent_request: IntentRequest) -> PaymentIntent:
        intent = PaymentIntent(
            id=created.id,
            client_secret=created.client_secret,
            amount=intent_request.amount,
            currency=intent_request.currency,
            status=created.status,
            order_id=intent_request.order_id,
            customer=intent_request.customer,
            plan_metadata=intent_request.metadata,
            redirect_url=created.redirect_url,
            simulated=backend.simulated,
        )
        self.ledger.put_intent(intent)
        logger.info("intent_created", intent_id=intent.id, order_id=intent.order_id,
                    simulated=intent.simulated)
        return intent

    async def create_intent(self, request: CheckoutRequest) -> PaymentIntent:
        intent_request = self._intent_request(request)
        created, backend = await self._with_fallback("create intent", intent_request, hosted=False)
        return self._record_intent(created, backend, intent_request)

    async def create_hosted_session(self, request: CheckoutRequest) -> HostedSessionResponse:
        intent_request = self._intent_request(request)
        created, backend = await self._with_fallback("create HPP session", intent_request, hosted=True)
        intent = self._record_intent(created, backend, intent_request)
        return HostedSessionResponse(
            intent_id=intent.id,
            redirect_url=intent.redirect_url,
            simulated=intent.simulated,
            raw=created.raw if isinstance(created.raw, dict) else None,
        )

    async def confirm(self, request: ConfirmRequest, today: Optional[date] = None) -> Payment:
        if not request.payment_intent_id or request.payment_method is None:
            raise ValidationError("Missing paymentIntentId or paymentMethod")

        intent = self.ledger.get_intent(request.payment_intent_id)
        if intent is None:
            raise NotFoundError(f"Payment intent {request.payment_intent_id} not found")

        billing = request.payment_method.billing
        card = validate_card(request.payment_method.card, billing, today=today)

        backend = self.simulator if intent.simulated else self.backend
        result = await backend.confirm(intent, card, billing)
        status = classify_status(result.status)

        if not status.succeeded:
            if result.status:
                self.ledger.update_intent_status(intent.id, result.status.lower())
            logger.info("payment_declined", intent_id=intent.id, status=result.status,
                        outcome=status.outcome.value, decline_code=result.decline_code)
            raise PaymentDeclinedError(
                "Payment was not successful",
                status=status.outcome.value,
                decline_code=result.decline_code,
            )

        self.ledger.update_intent_status(intent.id, "succeeded")
        # amount and currency come from the stored intent, not the confirm response
        payment = Payment(
            id=new_payment_id(),
            payment_intent_id=intent.id,
            status="succeeded",
            amount=intent.amount,
            currency=intent.currency,
            card_last4=card.last4,
            customer_email=(billing.email if billing and billing.email else intent.customer.email),
            simulated=intent.simulated,
            source="confirmation",
        )
        self.ledger.put_payment(payment)
        logger.info("payment_succeeded", payment_id=payment.id, intent_id=intent.id,
                    simulated=payment.simulated)
        return payment

    # --- ledger queries -----------------------------------------------------

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.ledger.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def get_payment_by_order_id(self, order_id: str) -> Payment:
        payment = self.ledger.get_payment_by_order_id(order_id)
        if payment is None:
            raise NotFoundError(f"No payment found for order {order_id}")
        return payment

    def get_intent(self, intent_id: str) -> PaymentIntent:
        intent = self.ledger.get_intent(intent_id)
        if intent is None:
            raise NotFoundError(f"Payment intent {intent_id} not found")
        return intent


SUCCEEDED_EVENTS = ("payment_intent.succeeded", "payment_intent.captured")
LOGGED_EVENTS = ("payment_intent.failed", "payment_intent.canceled", "payment_intent.cancelled")


class WebhookReceiver:
    """Applies processor event notifications to the ledger.

    Signatures are not verified; AIRWALLEX_WEBHOOK_SECRET is read into settings
    but not used here. ``minor_units`` tells whether event amounts
    are in the processor's minor currency units.
    """

    def __init__(self, ledger: Ledger, minor_units: bool = False):
        self.ledger = ledger
        self.minor_units = minor_units

    @staticmethod
    def parse(payload) -> dict:
        if not isinstance(payload, dict):
            raise ValidationError("Webhook payload must be a JSON object")
        event_type = payload.get("type") or payload.get("name")
        if not isinstance(event_type, str) or not event_type:
            raise ValidationError("Webhook payload has no event type")
        data = payload.get("data")
        if data is not None and not isinstance(data, dict):
            raise ValidationError("Webhook data must be an object")
        data = data or {}
        obj = data.get("object") if isinstance(data.get("object"), dict) else data
        return {"type": event_type, "id": payload.get("id"), "object": obj}

    def handle(self, payload) -> Optional[Payment]:
        event = self.parse(payload)
        event_type, obj = event["type"], event["object"]
        log = logger.bind(event_type=event_type, event_id=event["id"], intent_id=obj.get("id"))

        if event_type in SUCCEEDED_EVENTS:
            return self._record_success(obj, log)
        if event_type in LOGGED_EVENTS:
            log.info("webhook_payment_not_completed")
            return None
        log.info("webhook_ignored")
        return None

    @staticmethod
    def _check_fields(obj: dict) -> None:
        intent_id = obj.get("id")
        if intent_id is not None and not isinstance(intent_id, str):
            raise ValidationError("Webhook intent id must be a string")
        amount = obj.get("amount")
        if amount is not None and (isinstance(amount, bool) or not isinstance(amount, (int, float))):
            raise ValidationError("Webhook amount must be a number")
        currency = obj.get("currency")
        if currency is not None and not isinstance(currency, str):
            raise ValidationError("Webhook currency must be a string")
        if obj.get("metadata") is not None and not isinstance(obj.get("metadata"), dict):
            raise ValidationError("Webhook metadata must be an object")
        # stripe sends the customer as an id string
        if obj.get("customer") is not None and not isinstance(obj.get("customer"), (dict, str)):
            raise ValidationError("Webhook customer must be an object or id")

    def _record_success(self, obj: dict, log) -> Optional[Payment]:
        self._check_fields(obj)
        intent_id = obj.get("id")
        if not intent_id:
            log.warning("webhook_success_without_intent_id")
            return None
        intent = self.ledger.get_intent(intent_id)
        metadata = obj.get("metadata") or {}
        customer = obj.get("customer") if isinstance(obj.get("customer"), dict) else {}
        email = metadata.get("customer_email") or customer.get("email")
        if not isinstance(email, str):
            email = intent.customer.email if intent else None

        if intent is not None:
            # the stored intent holds the storefront's amount; event amounts may be minor units
            amount, currency = intent.amount, intent.currency
        else:
            amount = obj.get("amount")
            if amount is not None and self.minor_units:
                amount = from_minor_units(amount)
            currency = obj.get("currency")
            currency = currency.upper() if currency else None

        payment = Payment(
            id=new_payment_id(),
            payment_intent_id=intent_id,
            status="succeeded",
            amount=amount,
            currency=currency,
            customer_email=email,
            simulated=intent.simulated if intent else False,
            source="webhook",
        )
        self.ledger.put_payment(payment)
        if intent is not None:
            self.ledger.update_intent_status(intent_id, "succeeded")
        log.info("webhook_payment_recorded", payment_id=payment.id)
        return payment
