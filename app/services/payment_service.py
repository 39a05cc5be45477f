# app/services/payment_service.py
import json
import logging
import time
import uuid
from typing import Any

from sqlmodel import Session

from app.core.errors import (
    InvalidSignatureError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
)
from app.core.notifications import ORDER_CONFIRMED, NotifyFn, OrderNotice
from app.core.payment_gateway import RazorpayGateway, to_subunits
from app.core.time_utils import utcnow
from app.models.order import Order
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
from app.services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

GATEWAY_METHOD = "razorpay"

VERIFY_FIELDS = ("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")


class PaymentService:
    """
    Payment reconciliation between the gateway and our orders.

    Responsibilities:
      - Open gateway orders for checkout
      - Verify checkout signatures and mark orders paid
      - Apply signed webhook events (captured, order paid, failed, refunded)
    """

    def __init__(self, order_repo: OrderRepository, product_repo: ProductRepository):
        self.order_repo = order_repo
        self.reservations = ReservationService(order_repo, product_repo)

    def create_payment_order(
        self,
        session: Session,
        gateway: RazorpayGateway,
        user: User,
        payload: PaymentOrderCreate,
    ) -> PaymentOrderRead:
        if payload.amount is None or payload.amount <= 0:
            raise ValidationError("Invalid amount")

        order = None
        if payload.order_id:
            order = self.order_repo.get_for_user(session, payload.order_id, user.id)
            if not order:
                raise NotFoundError("Order")

        receipt = payload.receipt or f"order_{int(time.time() * 1000)}"
        remote = gateway.create_order(
            amount=to_subunits(payload.amount),
            currency=payload.currency,
            receipt=receipt,
            notes={**payload.notes, "userId": str(user.id)},
        )

        if order:
            order.gateway_order_id = remote["id"]
            self.order_repo.update_order(session, order)
            session.commit()

        logger.info(
            "Gateway order %s created for user %s (%s %s)",
            remote["id"],
            user.id,
            remote.get("amount"),
            remote.get("currency"),
        )

        return PaymentOrderRead(
            order_id=remote["id"],
            amount=remote["amount"],
            currency=remote["currency"],
            key_id=gateway.key_id,
        )

    def verify_payment(
        self,
        session: Session,
        gateway: RazorpayGateway,
        user: User,
        payload: PaymentVerify,
        notify: NotifyFn | None = None,
    ) -> PaymentVerifyRead:
        """
        Check the checkout signature and, when our order can be found,
        mark it paid and confirmed.

        Raises:
            MissingFieldsError: a gateway identifier is absent.
            InvalidSignatureError: the HMAC does not match.
        """
        missing = [name for name in VERIFY_FIELDS if not getattr(payload, name)]
        if missing:
            raise MissingFieldsError(missing)

        if not gateway.verify_payment_signature(
            payload.razorpay_order_id,
            payload.razorpay_payment_id,
            payload.razorpay_signature,
        ):
            logger.warning(
                "Rejected payment signature for gateway order %s",
                payload.razorpay_order_id,
            )
            raise InvalidSignatureError()

        order = self._resolve_order(session, user, payload.order_id)
        if order is None:
            logger.info(
                "Payment %s verified without a matching order (%s)",
                payload.razorpay_payment_id,
                payload.order_id,
            )
        elif self.mark_paid(
            session,
            order,
            gateway_order_id=payload.razorpay_order_id,
            gateway_payment_id=payload.razorpay_payment_id,
            signature=payload.razorpay_signature,
        ):
            if notify:
                notify(
                    ORDER_CONFIRMED,
                    OrderNotice.from_order(order, self.order_repo.count_items(session, order.id)),
                )

        return PaymentVerifyRead(
            payment_id=payload.razorpay_payment_id,
            order_id=payload.razorpay_order_id,
        )

    def mark_paid(
        self,
        session: Session,
        order: Order,
        gateway_order_id: str | None,
        gateway_payment_id: str | None,
        signature: str | None = None,
        message: str = "Payment received successfully via Razorpay",
    ) -> bool:
        """
        Record a successful payment once. Returns False if the order was
        already paid (details are left as first recorded).

        A payment landing on an order whose stock was released (it was
        cancelled meanwhile) reserves the stock again. When that is no
        longer possible the payment is still recorded and the shortfall
        is logged for manual follow-up.
        """
        if order.payment_status == "paid":
            logger.info("Order %s already paid, ignoring repeat", order.order_number)
            return False

        if not order.stock_reserved:
            try:
                self.reservations.reserve(session, order)
            except ValidationError as exc:
                logger.warning(
                    "Order %s paid after its stock was released, could not reserve again: %s",
                    order.order_number,
                    exc.message,
                )

        order.payment_status = "paid"
        order.gateway_order_id = gateway_order_id or order.gateway_order_id
        order.gateway_payment_id = gateway_payment_id
        order.gateway_signature = signature
        order.payment_details_method = GATEWAY_METHOD
        order.paid_at = utcnow()

        self.order_repo.set_status(session, order, "confirmed", message)
        session.commit()
        session.refresh(order)

        logger.info("Order %s paid (payment %s)", order.order_number, gateway_payment_id)
        return True

    # -------- Webhooks --------

    def handle_webhook(
        self,
        session: Session,
        gateway: RazorpayGateway,
        body: bytes,
        signature: str | None,
        notify: NotifyFn | None = None,
    ) -> WebhookAck:
        if not signature:
            raise ValidationError("No signature")

        if not gateway.verify_webhook(body, signature):
            logger.warning("Rejected webhook with invalid signature")
            raise InvalidSignatureError("Invalid signature")

        try:
            event = json.loads(body)
        except ValueError:
            raise ValidationError("Invalid webhook payload")

        name = event.get("event")
        payload = event.get("payload") or {}

        if name == "payment.captured":
            self._on_captured(session, _entity(payload, "payment"), notify)
        elif name == "order.paid":
            self._on_order_paid(session, payload, notify)
        elif name == "payment.failed":
            self._on_failed(session, _entity(payload, "payment"))
        elif name == "refund.created":
            self._on_refund(session, _entity(payload, "refund"))
        else:
            logger.info("Unhandled webhook event: %s", name)

        return WebhookAck()

    def _on_captured(
        self,
        session: Session,
        payment: dict[str, Any],
        notify: NotifyFn | None,
    ) -> None:
        order = self._order_for_payment(session, payment)
        if not order:
            logger.info("Captured payment %s has no matching order", payment.get("id"))
            return

        self._settle(session, order, payment.get("order_id"), payment.get("id"), notify)

    def _on_order_paid(
        self,
        session: Session,
        payload: dict[str, Any],
        notify: NotifyFn | None,
    ) -> None:
        """
        order.paid names the gateway order in its own entity; the payment
        entity, when present, is the fallback.
        """
        remote_order = _entity(payload, "order")
        payment = _entity(payload, "payment")

        order = None
        if remote_order.get("id"):
            order = self.order_repo.get_by_gateway_order_id(session, remote_order["id"])
        if order is None:
            order = self._order_for_payment(session, payment)
        if not order:
            logger.info(
                "Paid gateway order %s has no matching order",
                remote_order.get("id") or payment.get("order_id"),
            )
            return

        self._settle(
            session,
            order,
            remote_order.get("id") or payment.get("order_id"),
            payment.get("id"),
            notify,
        )

    def _settle(
        self,
        session: Session,
        order: Order,
        gateway_order_id: str | None,
        gateway_payment_id: str | None,
        notify: NotifyFn | None,
    ) -> None:
        if self.mark_paid(
            session,
            order,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
        ) and notify:
            notify(
                ORDER_CONFIRMED,
                OrderNotice.from_order(order, self.order_repo.count_items(session, order.id)),
            )

    def _on_failed(self, session: Session, payment: dict[str, Any]) -> None:
        order = self._order_for_payment(session, payment)
        if not order:
            return

        # Leaves status (and therefore the timeline) alone
        order.payment_status = "failed"
        self.order_repo.update_order(session, order)
        session.commit()
        logger.info("Payment failed for order %s", order.order_number)

    def _on_refund(self, session: Session, refund: dict[str, Any]) -> None:
        payment_id = refund.get("payment_id")
        if not payment_id:
            return

        order = self.order_repo.get_by_gateway_payment_id(session, payment_id)
        if not order or order.payment_status == "refunded":
            return

        order.payment_status = "refunded"
        self.order_repo.set_status(session, order, "refunded", "Payment refunded")
        session.commit()
        logger.info("Order %s refunded (payment %s)", order.order_number, payment_id)

    def _order_for_payment(self, session: Session, payment: dict[str, Any]) -> Order | None:
        if payment.get("order_id"):
            order = self.order_repo.get_by_gateway_order_id(session, payment["order_id"])
            if order:
                return order
        if payment.get("id"):
            return self.order_repo.get_by_gateway_payment_id(session, payment["id"])
        return None

    def _resolve_order(
        self,
        session: Session,
        user: User,
        order_ref: str | None,
    ) -> Order | None:
        if not order_ref:
            return None
        try:
            order_id = uuid.UUID(order_ref)
        except ValueError:
            return self.order_repo.get_for_user_by_number(
                session, order_ref.strip().upper(), user.id
            )
        return self.order_repo.get_for_user(session, order_id, user.id)


def _entity(payload: dict[str, Any], key: str) -> dict[str, Any]:
    """Unwrap payload[key]["entity"] as sent in gateway webhooks."""
    return (payload.get(key) or {}).get("entity") or {}
