from fastapi import APIRouter, Depends

from checkout_gateway.auth import verify_token
from checkout_gateway.dependencies import get_gateway
from checkout_gateway.schemas import (
    CheckoutRequest,
    ConfirmRequest,
    HostedSessionResponse,
    Payment,
    PaymentIntent,
    PaymentIntentList,
    PaymentList,
)
from checkout_gateway.service import PaymentGateway

router = APIRouter(prefix="/api")


@router.post("/create-payment-intent", response_model=PaymentIntent)
async def create_payment_intent(
    request: CheckoutRequest,
    gateway: PaymentGateway = Depends(get_gateway)
):
    return await gateway.create_intent(request)


@router.post("/create-hpp-session", response_model=HostedSessionResponse)
async def create_hpp_session(
    request: CheckoutRequest,
    gateway: PaymentGateway = Depends(get_gateway)
):
    return await gateway.create_hosted_session(request)


@router.post("/confirm-payment", response_model=Payment)
async def confirm_payment(
    request: ConfirmRequest,
    gateway: PaymentGateway = Depends(get_gateway)
):
    return await gateway.confirm(request)


@router.get("/payment/order/{order_id}", response_model=Payment)
def get_payment_by_order(order_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    return gateway.get_payment_by_order_id(order_id)


@router.get("/payment/{payment_id}", response_model=Payment)
def get_payment(payment_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    return gateway.get_payment(payment_id)


@router.get("/payment-intent/{intent_id}", response_model=PaymentIntent)
def get_payment_intent(intent_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    return gateway.get_intent(intent_id)


@router.get("/payments", response_model=PaymentList)
def list_payments(
    gateway: PaymentGateway = Depends(get_gateway),
    auth=Depends(verify_token)
):
    items = gateway.ledger.list_payments()
    return {"total": len(items), "items": items}


@router.get("/payment-intents", response_model=PaymentIntentList)
def list_payment_intents(
    gateway: PaymentGateway = Depends(get_gateway),
    auth=Depends(verify_token)
):
    items = gateway.ledger.list_intents()
    return {"total": len(items), "items": items}
