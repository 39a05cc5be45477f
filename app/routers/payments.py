# app/routers/payments.py
from fastapi import APIRouter, Depends, Header, Request
from sqlmodel import Session

from app.core.auth import require_auth
from app.core.notifications import NotifyFn, get_order_notify
from app.core.payment_gateway import RazorpayGateway, get_payment_gateway
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.payment import (
    PaymentOrderCreate,
    PaymentOrderRead,
    PaymentVerify,
    PaymentVerifyRead,
    WebhookAck,
)
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/payment", tags=["Payments"])

service = PaymentService(OrderRepository(), ProductRepository())

# NOTE: dependencies resolve in declaration order; the gateway comes
# before auth so an unconfigured gateway always answers 503.


async def raw_body(request: Request) -> bytes:
    """Unparsed request body, as signed by the gateway."""
    return await request.body()


@router.post("/create-order", response_model=PaymentOrderRead)
def create_payment_order(
    payload: PaymentOrderCreate,
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(require_auth),
    session: Session = Depends(get_session),
):
    """
    Open a gateway order for the given amount (rupees).

    The response carries the public key id the checkout widget needs.
    """
    return service.create_payment_order(session, gateway, current_user, payload)


@router.post("/verify", response_model=PaymentVerifyRead)
def verify_payment(
    payload: PaymentVerify,
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(require_auth),
    session: Session = Depends(get_session),
    notify: NotifyFn = Depends(get_order_notify),
):
    """
    Verify the checkout signature and mark the order paid.
    """
    return service.verify_payment(session, gateway, current_user, payload, notify)


@router.post("/webhook", response_model=WebhookAck)
def payment_webhook(
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    body: bytes = Depends(raw_body),
    x_razorpay_signature: str | None = Header(default=None),
    session: Session = Depends(get_session),
    notify: NotifyFn = Depends(get_order_notify),
):
    """
    Gateway webhook. Authenticated by the HMAC of the raw body, not by
    a user token.
    """
    return service.handle_webhook(session, gateway, body, x_razorpay_signature, notify)
