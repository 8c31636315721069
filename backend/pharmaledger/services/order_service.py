"""
B2B order fulfillment state machine.

    PENDING --> ACCEPTED --> PACKED --> SHIPPED --> DELIVERED
       \
        +-----> REJECTED

- ACCEPTED generates the 6-digit delivery OTP handed to the pharmacy.
- DELIVERED requires that OTP; the stock transfer runs before the status is
  written, in the same unit of work. If the transfer fails the order stays
  SHIPPED and no ledger row changes.
- Delivery agent (un)assignment is allowed in ACCEPTED and PACKED only and
  is recorded as an ASSIGNED/UNASSIGNED timeline entry.

Every successful transition appends exactly one timeline entry and queues a
notification request for the pharmacy. The order row is locked for update
and versioned, so two concurrent confirmations cannot both succeed.
"""
import hmac
import logging
import secrets
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from pharmaledger.core.audit import AuditLog
from pharmaledger.core.clock import utcnow
from pharmaledger.core.config import TransferPolicy
from pharmaledger.core.exceptions import (
    InvalidOtpError, InvalidTransitionError, NotConnectedError, NotFoundError, ValidationError,
)
from pharmaledger.db.unit_of_work import unit_of_work
from pharmaledger.models.notification import NotificationType
from pharmaledger.models.order import Order, OrderEvent, OrderItem, OrderStatus, TimelineEvent
from pharmaledger.models.tenant import TenantRole
from pharmaledger.schemas.orders import OrderLineCreate
from pharmaledger.services.connection_service import is_connected
from pharmaledger.services.ledger_service import get_product, get_tenant
from pharmaledger.services.notification_service import notify
from pharmaledger.services.transfer_service import execute_transfer

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.REJECTED},
    OrderStatus.ACCEPTED: {OrderStatus.PACKED},
    OrderStatus.PACKED: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
}

ASSIGNABLE_STATUSES = {OrderStatus.ACCEPTED, OrderStatus.PACKED}

DEFAULT_REMARKS = {
    OrderStatus.PENDING: "Order placed by pharmacy.",
    OrderStatus.ACCEPTED: "Order accepted by distributor.",
    OrderStatus.REJECTED: "Order rejected by distributor.",
    OrderStatus.PACKED: "Order packed by distributor.",
    OrderStatus.SHIPPED: "Order shipped by distributor.",
    OrderStatus.DELIVERED: "Order delivered and confirmed with OTP.",
}


def generate_otp() -> str:
    """Random 6-digit delivery code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def otp_matches(stored: Optional[str], supplied: Optional[str]) -> bool:
    """Exact match after trimming whitespace on both sides. Empty never matches."""
    expected = str(stored or "").strip()
    given = str(supplied or "").strip()
    if not expected or not given:
        return False
    return hmac.compare_digest(expected.encode(), given.encode())


def _append_event(order: Order, status: str, remark: str):
    order.timeline.append(OrderEvent(status=status, remark=remark, timestamp=utcnow()))


def _load_for_update(db: Session, order_id: int) -> Order:
    order = (
        db.query(Order)
        .filter(Order.id == order_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not order:
        raise NotFoundError("Order", order_id)
    return order


def _require_seller(order: Order, actor_tenant_id: Optional[int], action: str):
    """Only the distributor drives fulfillment. Anyone else gets a plain not-found."""
    if actor_tenant_id is not None and actor_tenant_id != order.distributor_id:
        AuditLog.log_access_denied(action, "order", order.id, actor_tenant_id, "Not the seller")
        raise NotFoundError("Order", order.id)


def place_order(
    db: Session,
    buyer_tenant_id: int,
    seller_tenant_id: int,
    lines: Iterable[OrderLineCreate],
    remarks: Optional[str] = None,
) -> Order:
    """
    Create a PENDING order from a pharmacy to a connected distributor.

    Raises:
        NotFoundError: unknown tenant, or a line references a product the seller does not own
        ValidationError: wrong tenant roles, empty order, bad quantity/price
        NotConnectedError: no APPROVED connection between buyer and seller
    """
    lines = list(lines)
    buyer = get_tenant(db, buyer_tenant_id)
    seller = get_tenant(db, seller_tenant_id)

    if buyer.id == seller.id:
        raise ValidationError("A tenant cannot order from itself")
    if buyer.role != TenantRole.PHARMACY.value:
        raise ValidationError("Only pharmacies can place distributor orders")
    if seller.role != TenantRole.DISTRIBUTOR.value:
        raise ValidationError("Orders can only be placed with a distributor")
    if not lines:
        raise ValidationError("Order must contain at least one item")
    if not is_connected(db, buyer.id, seller.id):
        logger.info(f"[Orders] Pharmacy {buyer.id} not connected to distributor {seller.id}")
        raise NotConnectedError(buyer.id, seller.id)

    with unit_of_work(db):
        order = Order(
            pharmacy_id=buyer.id,
            distributor_id=seller.id,
            status=OrderStatus.PENDING.value,
            remarks=remarks,
        )
        total = Decimal("0")
        for line_no, line in enumerate(lines, start=1):
            if line.quantity is None or line.quantity < 1:
                raise ValidationError(f"Line {line_no}: quantity must be at least 1")
            unit_price = Decimal(str(line.unit_price or 0))
            if unit_price < 0:
                raise ValidationError(f"Line {line_no}: unit price cannot be negative")

            product = get_product(db, seller.id, line.product_id)
            name = (line.name or "").strip() or product.name
            line_total = unit_price * line.quantity
            total += line_total
            order.items.append(OrderItem(
                line_no=line_no,
                product_id=product.id,
                name=name,
                quantity=line.quantity,
                unit_price=unit_price,
                total_price=line_total,
            ))

        order.total_amount = total
        _append_event(order, OrderStatus.PENDING.value, DEFAULT_REMARKS[OrderStatus.PENDING])
        db.add(order)
        db.flush()

        order.order_number = f"PO-{order.created_at.year}-{order.id:05d}"
        notify(
            db,
            seller.id,
            NotificationType.ORDER_REQ,
            f"New B2B Order: {order.order_number}",
            f"New order request {order.order_number} received from {buyer.name}.",
            order_id=order.id,
        )

    logger.info(f"[Orders] {order.order_number} placed: pharmacy {buyer.id} -> distributor {seller.id}, total {total}")
    AuditLog.log_order_placed(order.id, order.order_number, buyer.id, seller.id, total)
    return order


def transition_order(
    db: Session,
    order_id: int,
    target_status,
    remark: Optional[str] = None,
    otp: Optional[str] = None,
    actor_tenant_id: Optional[int] = None,
    policy: Optional[TransferPolicy] = None,
) -> Order:
    """
    Move an order one step along the state machine.

    Raises:
        ValidationError: unknown target status
        NotFoundError: unknown order, or actor is not the seller
        InvalidTransitionError: target not reachable from the current status
        InvalidOtpError: DELIVERED with a missing or wrong OTP (order unchanged)
        InsufficientStockError: DELIVERED but the seller cannot cover a line (order unchanged)
        ConcurrentUpdateError: another request changed the order or a batch first
    """
    try:
        target = OrderStatus(target_status)
    except ValueError:
        raise ValidationError(f"Unknown order status '{target_status}'")

    with unit_of_work(db):
        order = _load_for_update(db, order_id)
        _require_seller(order, actor_tenant_id, f"transition:{target.value}")

        current = OrderStatus(order.status)
        if target not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(
                f"Order {order.order_number} cannot move from {current.value} to {target.value}"
            )

        if target == OrderStatus.DELIVERED:
            if not otp_matches(order.delivery_otp, otp):
                logger.warning(f"[Orders] Delivery OTP mismatch for {order.order_number}")
                AuditLog.log_otp_failure(order.id, actor_tenant_id)
                raise InvalidOtpError()
            # Bump the order version before any stock is read, so a racing
            # confirmation fails here with ConcurrentUpdateError
            order.delivered_at = utcnow()
            db.flush()
            execute_transfer(db, order, policy)

        if target == OrderStatus.ACCEPTED:
            order.delivery_otp = generate_otp()
            logger.info(f"[Orders] Delivery OTP generated for {order.order_number}")

        order.status = target.value
        if remark:
            order.remarks = remark
        _append_event(order, target.value, remark or DEFAULT_REMARKS[target])

        message = f"Your order {order.order_number} has been {target.value}."
        if remark:
            message += f" Remark: {remark}"
        notify(
            db,
            order.pharmacy_id,
            NotificationType.ORDER_UPDATE,
            f"Order {target.value}",
            message,
            order_id=order.id,
        )

    logger.info(f"[Orders] {order.order_number}: {current.value} -> {target.value}")
    AuditLog.log_order_transition(order.id, current.value, target.value, actor_tenant_id)
    return order


def assign_agent(
    db: Session,
    order_id: int,
    agent_id: Optional[str],
    actor_tenant_id: Optional[int] = None,
) -> Order:
    """Set or clear the delivery agent. Re-assigning the same agent is a no-op."""
    agent = str(agent_id).strip() if agent_id is not None else ""
    agent = agent or None

    with unit_of_work(db):
        order = _load_for_update(db, order_id)
        _require_seller(order, actor_tenant_id, "assign")

        if OrderStatus(order.status) not in ASSIGNABLE_STATUSES:
            raise InvalidTransitionError(
                f"Order {order.order_number} cannot be (un)assigned while {order.status}"
            )
        if agent == order.assigned_to:
            return order

        order.assigned_to = agent
        if agent:
            _append_event(order, TimelineEvent.ASSIGNED.value, f"Order assigned to delivery agent {agent}.")
        else:
            _append_event(order, TimelineEvent.UNASSIGNED.value, "Order unassigned from delivery agent.")

    AuditLog.log_assignment(order.id, agent, actor_tenant_id)
    return order


def get_order(db: Session, order_id: int, tenant_id: Optional[int] = None) -> Order:
    """Order visible to its buyer or seller; anyone else gets not-found."""
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("Order", order_id)
    if tenant_id is not None and tenant_id not in (order.pharmacy_id, order.distributor_id):
        AuditLog.log_access_denied("read", "order", order_id, tenant_id, "Not a party to the order")
        raise NotFoundError("Order", order_id)
    return order


def list_orders(db: Session, tenant_id: int, role: Optional[str] = None) -> List[Order]:
    """Orders where the tenant is the buyer ("buyer"), the seller ("seller"), or either."""
    q = db.query(Order)
    if role == "buyer":
        q = q.filter(Order.pharmacy_id == tenant_id)
    elif role == "seller":
        q = q.filter(Order.distributor_id == tenant_id)
    elif role is None:
        q = q.filter((Order.pharmacy_id == tenant_id) | (Order.distributor_id == tenant_id))
    else:
        raise ValidationError(f"Unknown role '{role}'")
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()
