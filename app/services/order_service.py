# app/services/order_service.py
import logging
import re
import secrets
import string
import time
import uuid
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.config import Settings
from app.core.errors import (
    ConflictError,
    CouponError,
    InvalidTransitionError,
    NotFoundError,
    PhoneMismatchError,
    StorefrontError,
    ValidationError,
)
from app.core.notifications import (
    ORDER_CANCELLED,
    ORDER_PLACED,
    ORDER_STATUS_CHANGED,
    NotifyFn,
    OrderNotice,
)
from app.core.time_utils import as_utc
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.user import User
from app.repositories.order_repo import SORTABLE_FIELDS, OrderQuery, OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.common import Pagination
from app.schemas.order import (
    AdminOrderList,
    AdminOrderUpdate,
    InvoiceCompany,
    InvoiceCustomer,
    InvoiceLine,
    InvoiceRead,
    OrderAction,
    OrderCreate,
    OrderDetailRead,
    OrderItemRead,
    OrderRead,
    OrderTrackingRead,
    PaymentDetailsRead,
    ShippingAddressRead,
    TimelineEntryRead,
    TrackingRead,
    VariantSelection,
)
from app.services.coupon_service import CouponService
from app.services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

# Owners may only cancel before the order is processed
CANCELLABLE_STATUSES = {"pending", "confirmed"}

# Statuses in which an order holds its stock
STOCK_HOLDING_STATUSES = {"pending", "confirmed", "processing", "shipped", "delivered"}

# No delivery estimate once an order has reached one of these
FINAL_STATUSES = {"delivered", "cancelled", "refunded"}

# Expected forward moves; admins may still go elsewhere (logged)
FORWARD_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "processing", "cancelled"},
    "confirmed": {"processing", "shipped", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": {"refunded"},
    "cancelled": {"refunded"},
    "refunded": set(),
}

ORDER_NUMBER_ATTEMPTS = 3

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number(prefix: str) -> str:
    """
    "{prefix}-{base36 epoch millis}-{4 random base36 chars}", uppercase.
    """
    stamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}-{stamp}-{suffix}".upper()


def phone_last4(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")[-4:]


def phones_match(order_phone: str, supplied: str) -> bool:
    """Compare the last four digits, ignoring spaces, dashes and prefixes."""
    supplied_digits = phone_last4(supplied)
    return bool(supplied_digits) and phone_last4(order_phone) == supplied_digits


def estimated_delivery(status: str, order_date: datetime, days: int = 7) -> datetime | None:
    if status in FINAL_STATUSES:
        return None
    return as_utc(order_date) + timedelta(days=days)


def is_forward_transition(current: str, target: str) -> bool:
    return target in FORWARD_TRANSITIONS.get(current, set())


def parse_sort(sort: str | None) -> tuple[str, bool]:
    """
    "-total" -> ("total", True). Only SORTABLE_FIELDS are accepted.
    """
    if not sort:
        return "created_at", True

    descending = sort.startswith("-")
    field = sort.lstrip("-")
    if field not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by '{field}'")
    return field, descending


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create orders from a cart snapshot (prices, coupon, shipping, stock)
      - Keep status and timeline in step on every transition
      - Owner cancellation and admin updates
      - Public tracking and invoices
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        coupon_service: CouponService,
        settings: Settings,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.coupon_service = coupon_service
        self.settings = settings
        self.reservations = ReservationService(order_repo, product_repo)

    # -------- User-facing operations --------

    def create_order(
        self,
        session: Session,
        user: User,
        payload: OrderCreate,
        notify: NotifyFn | None = None,
    ) -> OrderDetailRead:
        """
        Place an order for `user`.

        Steps:
          1. Snapshot every item at the live product price.
          2. Apply the coupon (if any) and compute shipping, tax, total.
          3. Reserve stock and consume the coupon atomically.
          4. Insert the order, its items and the first timeline entry.
          5. Commit once, then queue the order_placed notification.
        """
        if not payload.items:
            raise ValidationError("No items in order")

        # 1) Item snapshots
        lines: list[tuple[Product, OrderItem]] = []
        for item in payload.items:
            product = self.product_repo.get_by_id(session, item.product_id)
            if not product or not product.is_active:
                raise ValidationError(f"Product not found: {item.product_id}")

            lines.append(
                (
                    product,
                    OrderItem(
                        product_id=product.id,
                        name=product.name,
                        slug=product.slug,
                        image=product.image_url or "",
                        price=product.price,
                        quantity=item.quantity,
                        variant_name=item.variant.name if item.variant else None,
                        variant_option=item.variant.option if item.variant else None,
                        customization=item.customization,
                    ),
                )
            )

        # 2) Totals
        subtotal = round(sum(line.price * line.quantity for _, line in lines), 2)

        coupon = None
        discount = 0.0
        if payload.coupon_code:
            coupon, discount = self.coupon_service.resolve(
                session, payload.coupon_code, subtotal
            )

        shipping_cost = self.shipping_cost(subtotal)
        tax = round((subtotal - discount) * self.settings.TAX_RATE, 2)
        total = round(subtotal + shipping_cost - discount + tax, 2)

        address = payload.shipping_address

        try:
            # 3) Stock and coupon usage
            for product, line in lines:
                if not product.track_inventory:
                    continue
                if not self.product_repo.reserve_stock(session, product.id, line.quantity):
                    raise ValidationError(f"Insufficient stock for {product.name}")

            if coupon and not self.coupon_service.repo.consume_usage(session, coupon.id):
                raise CouponError("This coupon has reached its usage limit")

            # 4) Order rows
            order = Order(
                order_number=self._unused_order_number(session),
                user_id=user.id,
                shipping_name=address.name,
                shipping_phone=address.phone,
                shipping_email=address.email or user.email,
                shipping_address=address.address,
                shipping_city=address.city,
                shipping_state=address.state,
                shipping_pincode=address.pincode,
                shipping_landmark=address.landmark,
                subtotal=subtotal,
                shipping_cost=shipping_cost,
                discount=discount,
                tax=tax,
                total=total,
                coupon_code=coupon.code if coupon else None,
                payment_method=payload.payment_method,
                notes=payload.notes,
                stock_reserved=True,
            )
            order = self.order_repo.create_order(session, order)

            items = [line for _, line in lines]
            for line in items:
                line.order_id = order.id
            self.order_repo.create_items(session, items)

            self.order_repo.set_status(session, order, "pending", "Order placed")
            if order.payment_method == "cod":
                self.order_repo.set_status(
                    session, order, "confirmed", "Order confirmed (Cash on Delivery)"
                )

            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning("Order number collision while placing order for user %s", user.id)
            raise ConflictError("Could not allocate an order number, please retry")
        except StorefrontError:
            session.rollback()
            raise

        session.refresh(order)
        logger.info(
            "Order %s placed by user %s (total %.2f, %s)",
            order.order_number,
            user.id,
            order.total,
            order.payment_method,
        )

        if notify:
            notify(ORDER_PLACED, OrderNotice.from_order(order, len(items)))

        return self.build_detail(session, order)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_user(session, user_id, skip=skip, limit=limit)
        return [OrderRead.model_validate(o, from_attributes=True) for o in orders]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_ref: str,
    ) -> OrderDetailRead:
        order = self._owned_order(session, user_id, order_ref)
        return self.build_detail(session, order)

    def cancel_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_ref: str,
        payload: OrderAction,
        notify: NotifyFn | None = None,
    ) -> OrderDetailRead:
        """
        Owner cancellation. Only pending or confirmed orders qualify;
        anything else leaves the order and its timeline untouched.
        """
        order = self._owned_order(session, user_id, order_ref)

        if payload.action != "cancel":
            raise ValidationError("Invalid action")

        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(
                order.status,
                "cancelled",
                "Order cannot be cancelled at this stage",
            )

        self.order_repo.set_status(session, order, "cancelled", "Order cancelled by customer")
        self.reservations.release(session, order)
        session.commit()
        session.refresh(order)

        logger.info("Order %s cancelled by customer %s", order.order_number, user_id)

        if notify:
            notice = OrderNotice.from_order(
                order,
                self.order_repo.count_items(session, order.id),
                note=payload.reason,
            )
            notify(ORDER_CANCELLED, notice)

        return self.build_detail(session, order)

    def get_invoice(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_ref: str,
    ) -> InvoiceRead:
        order = self._owned_order(session, user_id, order_ref)
        items = self.order_repo.list_items_for_order(session, order.id)

        address = ", ".join(
            part
            for part in (
                order.shipping_address,
                order.shipping_landmark,
                order.shipping_city,
                f"{order.shipping_state} - {order.shipping_pincode}",
            )
            if part
        )

        return InvoiceRead(
            invoice_number=f"INV-{order.order_number}",
            invoice_date=as_utc(order.created_at),
            company=InvoiceCompany(
                name=self.settings.COMPANY_NAME,
                address=self.settings.COMPANY_ADDRESS,
                phone=self.settings.COMPANY_PHONE,
                email=self.settings.COMPANY_EMAIL,
                gstin=self.settings.COMPANY_GSTIN,
            ),
            customer=InvoiceCustomer(
                name=order.shipping_name,
                phone=order.shipping_phone,
                address=address,
            ),
            order_number=order.order_number,
            order_date=as_utc(order.created_at),
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            items=[
                InvoiceLine(
                    name=item.name,
                    quantity=item.quantity,
                    price=item.price,
                    total=round(item.price * item.quantity, 2),
                    variant=_variant(item),
                )
                for item in items
            ],
            subtotal=order.subtotal,
            shipping=order.shipping_cost,
            discount=order.discount,
            tax=order.tax,
            total=order.total,
        )

    # -------- Public tracking --------

    def track_order(
        self,
        session: Session,
        order_number: str | None,
        phone: str | None = None,
    ) -> OrderTrackingRead:
        """
        Unauthenticated lookup by order number, optionally gated by the
        last four digits of the shipping phone.
        """
        if not order_number or not order_number.strip():
            raise ValidationError("Order number is required")

        order = self.order_repo.get_by_number(session, order_number.strip().upper())
        if not order:
            raise NotFoundError("Order")

        if phone and not phones_match(order.shipping_phone, phone):
            raise PhoneMismatchError()

        first_name = order.shipping_name.split()[0] if order.shipping_name.strip() else ""

        return OrderTrackingRead(
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            customer_name=first_name or "Customer",
            city=order.shipping_city,
            order_date=as_utc(order.created_at),
            tracking=self._tracking(order),
            timeline=self._timeline(session, order.id),
            estimated_delivery=estimated_delivery(
                order.status,
                order.created_at,
                self.settings.ESTIMATED_DELIVERY_DAYS,
            ),
        )

    # -------- Admin operations --------

    def admin_list_orders(
        self,
        session: Session,
        status: str | None = None,
        payment_status: str | None = None,
        search: str | None = None,
        sort: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> AdminOrderList:
        sort_field, descending = parse_sort(sort)
        query = OrderQuery(
            status=status,
            payment_status=payment_status,
            search=search.strip() if search else None,
            sort_field=sort_field,
            descending=descending,
        )

        orders = self.order_repo.list_all(session, query, skip=(page - 1) * limit, limit=limit)
        total = self.order_repo.count_all(session, query)

        return AdminOrderList(
            orders=[OrderRead.model_validate(o, from_attributes=True) for o in orders],
            pagination=Pagination.build(page, limit, total),
        )

    def admin_get_order(self, session: Session, order_id: uuid.UUID) -> OrderDetailRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order")
        return self.build_detail(session, order)

    def admin_update_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: AdminOrderUpdate,
        admin: User,
        notify: NotifyFn | None = None,
    ) -> OrderDetailRead:
        """
        Admin update. Any status may be set; moves outside
        FORWARD_TRANSITIONS are accepted but logged.

        Cancelling releases the order's stock. Moving a cancelled order
        back into a stock-holding status reserves it again, and is
        rejected with a ValidationError when a product is short.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order")

        previous = order.status
        status_changed = payload.status is not None and payload.status != previous

        if status_changed:
            if not is_forward_transition(previous, payload.status):
                logger.warning(
                    "Unusual status change on order %s: %s -> %s by admin %s",
                    order.order_number,
                    previous,
                    payload.status,
                    admin.id,
                )

            # Reopening a cancelled order takes its stock back first
            if payload.status in STOCK_HOLDING_STATUSES and not order.stock_reserved:
                try:
                    self.reservations.reserve(session, order)
                except StorefrontError:
                    session.rollback()
                    raise

            self.order_repo.set_status(
                session,
                order,
                payload.status,
                payload.notes or f"Order status updated to {payload.status}",
            )

            if payload.status == "cancelled":
                self.reservations.release(session, order)

        if payload.payment_status is not None:
            order.payment_status = payload.payment_status
        if payload.tracking_number is not None:
            order.tracking_number = payload.tracking_number
        if payload.tracking_url is not None:
            order.tracking_url = payload.tracking_url
        if payload.carrier is not None:
            order.carrier = payload.carrier
        if payload.estimated_delivery is not None:
            order.tracking_estimated_delivery = payload.estimated_delivery
        if payload.admin_notes is not None:
            order.admin_notes = payload.admin_notes

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        if status_changed:
            logger.info(
                "Order %s status %s -> %s by admin %s",
                order.order_number,
                previous,
                order.status,
                admin.id,
            )
            if payload.send_email and notify:
                notice = OrderNotice.from_order(
                    order,
                    self.order_repo.count_items(session, order.id),
                    note=payload.notes,
                )
                notify(ORDER_STATUS_CHANGED, notice)

        return self.build_detail(session, order)

    # -------- Helpers --------

    def shipping_cost(self, subtotal: float) -> float:
        if subtotal >= self.settings.FREE_SHIPPING_THRESHOLD:
            return 0.0
        return self.settings.SHIPPING_FLAT_RATE

    def build_detail(self, session: Session, order: Order) -> OrderDetailRead:
        items = self.order_repo.list_items_for_order(session, order.id)

        payment_details = None
        if order.gateway_payment_id or order.paid_at:
            payment_details = PaymentDetailsRead(
                gateway_order_id=order.gateway_order_id,
                gateway_payment_id=order.gateway_payment_id,
                gateway_signature=order.gateway_signature,
                method=order.payment_details_method,
                paid_at=as_utc(order.paid_at),
            )

        return OrderDetailRead(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            discount=order.discount,
            tax=order.tax,
            total=order.total,
            coupon_code=order.coupon_code,
            created_at=as_utc(order.created_at),
            updated_at=as_utc(order.updated_at),
            items=[
                OrderItemRead(
                    id=item.id,
                    product_id=item.product_id,
                    name=item.name,
                    slug=item.slug,
                    image=item.image,
                    price=item.price,
                    quantity=item.quantity,
                    variant=_variant(item),
                    customization=item.customization,
                    line_total=round(item.price * item.quantity, 2),
                )
                for item in items
            ],
            shipping_address=ShippingAddressRead(
                name=order.shipping_name,
                phone=order.shipping_phone,
                address=order.shipping_address,
                city=order.shipping_city,
                state=order.shipping_state,
                pincode=order.shipping_pincode,
                email=order.shipping_email,
                landmark=order.shipping_landmark,
            ),
            tracking=self._tracking(order),
            payment_details=payment_details,
            timeline=self._timeline(session, order.id),
            notes=order.notes,
            admin_notes=order.admin_notes,
        )

    def _owned_order(self, session: Session, user_id: uuid.UUID, order_ref: str) -> Order:
        """
        Resolve an order by UUID or order number, scoped to its owner.
        """
        try:
            order_id = uuid.UUID(order_ref)
        except ValueError:
            order = self.order_repo.get_for_user_by_number(
                session, order_ref.strip().upper(), user_id
            )
        else:
            order = self.order_repo.get_for_user(session, order_id, user_id)

        if not order:
            raise NotFoundError("Order")
        return order

    def _unused_order_number(self, session: Session) -> str:
        prefix = self.settings.ORDER_NUMBER_PREFIX
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number(prefix)
            if self.order_repo.get_by_number(session, candidate) is None:
                return candidate
        raise ConflictError("Could not allocate an order number, please retry")

    def _timeline(self, session: Session, order_id: uuid.UUID) -> list[TimelineEntryRead]:
        return [
            TimelineEntryRead(
                status=entry.status,
                message=entry.message,
                timestamp=as_utc(entry.timestamp),
            )
            for entry in self.order_repo.list_timeline(session, order_id)
        ]

    @staticmethod
    def _tracking(order: Order) -> TrackingRead | None:
        if not (order.tracking_number or order.tracking_url or order.carrier):
            return None
        return TrackingRead(
            tracking_number=order.tracking_number,
            tracking_url=order.tracking_url,
            carrier=order.carrier,
            estimated_delivery=as_utc(order.tracking_estimated_delivery),
        )


def _variant(item: OrderItem) -> VariantSelection | None:
    if not item.variant_name:
        return None
    return VariantSelection(name=item.variant_name, option=item.variant_option or "")
