import stripe
import structlog
from fastapi.concurrency import run_in_threadpool

from checkout_gateway.backends import (
    BackendIntent,
    ConfirmResult,
    PaymentBackend,
    new_request_id,
    to_minor_units,
)
from checkout_gateway.errors import AuthError, MissingRedirectError, UpstreamError

logger = structlog.get_logger(component="stripe")


def _clean(metadata: dict) -> dict:
    # stripe rejects null metadata values
    return {k: v for k, v in metadata.items() if v is not None}


class StripeBackend(PaymentBackend):
    """Live backend on the Stripe SDK. SDK calls are blocking, so they run in the threadpool."""
    name = "stripe"
    minor_units = True

    def __init__(self, secret_key: str):
        stripe.api_key = secret_key

    async def _call(self, action: str, fn, *args, **kwargs):
        try:
            return await run_in_threadpool(fn, *args, **kwargs)
        except stripe.AuthenticationError as e:
            logger.error("stripe_auth_failed", action=action)
            raise AuthError("Stripe rejected the API key", details=getattr(e, "user_message", None)) from e
        except stripe.StripeError as e:
            logger.error("stripe_error", action=action, error=str(e))
            raise UpstreamError(
                f"Stripe {action} failed",
                status=getattr(e, "http_status", None),
                details=getattr(e, "user_message", None) or str(e),
            ) from e

    async def create_intent(self, request):
        intent = await self._call(
            "create intent",
            stripe.PaymentIntent.create,
            amount=to_minor_units(request.amount),
            currency=request.currency.lower(),
            receipt_email=request.customer.email,
            metadata=_clean(request.metadata),
            idempotency_key=new_request_id(),
        )
        return BackendIntent(
            id=intent.id,
            status=intent.status,
            client_secret=intent.client_secret,
            raw=intent,
        )

    async def create_hosted_session(self, request):
        session = await self._call(
            "create checkout session",
            stripe.checkout.Session.create,
            mode="payment",
            customer_email=request.customer.email,
            success_url=request.return_url,
            client_reference_id=request.order_id,
            line_items=[{
                "quantity": 1,
                "price_data": {
                    "currency": request.currency.lower(),
                    "unit_amount": to_minor_units(request.amount),
                    "product_data": {"name": request.plan or "Order"},
                },
            }],
            payment_intent_data={"metadata": _clean(request.metadata)},
            metadata=_clean(request.metadata),
        )
        if not session.url:
            raise MissingRedirectError("No redirect URL received from Stripe")
        return BackendIntent(
            id=session.payment_intent or session.id,
            status="requires_payment_method",
            redirect_url=session.url,
            raw=session,
        )

    async def confirm(self, intent, card, billing):
        billing_details = {"email": intent.customer.email}
        if billing is not None:
            billing_details["email"] = billing.email or intent.customer.email
        if card.holder_name:
            billing_details["name"] = card.holder_name
        try:
            result = await run_in_threadpool(
                stripe.PaymentIntent.confirm,
                intent.id,
                payment_method_data={
                    "type": "card",
                    "card": {
                        "number": card.number,
                        "exp_month": card.exp_month,
                        "exp_year": card.exp_year,
                        "cvc": card.cvc,
                    },
                    "billing_details": billing_details,
                },
            )
        except stripe.CardError as e:
            logger.info("card_declined", intent_id=intent.id, decline_code=e.code)
            return ConfirmResult(status="failed", decline_code=getattr(e, "decline_code", None) or e.code)
        except stripe.AuthenticationError as e:
            raise AuthError("Stripe rejected the API key") from e
        except stripe.StripeError as e:
            logger.error("stripe_error", action="confirm intent", error=str(e))
            raise UpstreamError(
                "Stripe confirm intent failed",
                status=getattr(e, "http_status", None),
                details=getattr(e, "user_message", None) or str(e),
            ) from e
        return ConfirmResult(status=result.status, raw=result)
