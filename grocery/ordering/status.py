# grocery/ordering/status.py
"""
Order status machine.

    pending -> accepted -> preparing -> out_for_delivery -> delivered
       \\-> rejected

Every transition appends one history row; the order row is updated with a
conditional ``WHERE status = <current>`` so two cashiers racing on the same
order cannot both win.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import AuthorizationError, ConflictError, InternalError, NotFoundError, ValidationError
from ..models import STAFF_ROLES, Order, OrderStatusHistory, utcnow

logger = structlog.get_logger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
PREPARING = "preparing"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERED = "delivered"

INITIAL_STATUS = PENDING
ALL_STATUSES = (PENDING, ACCEPTED, REJECTED, PREPARING, OUT_FOR_DELIVERY, DELIVERED)
TARGET_STATUSES = (ACCEPTED, REJECTED, PREPARING, OUT_FOR_DELIVERY, DELIVERED)
TERMINAL: FrozenSet[str] = frozenset({DELIVERED, REJECTED})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    PENDING: frozenset({ACCEPTED, REJECTED}),
    ACCEPTED: frozenset({PREPARING}),
    PREPARING: frozenset({OUT_FOR_DELIVERY}),
    OUT_FOR_DELIVERY: frozenset({DELIVERED}),
    DELIVERED: frozenset(),
    REJECTED: frozenset(),
}


def allowed_next(status: str) -> FrozenSet[str]:
    return TRANSITIONS.get(status, frozenset())


def is_terminal(status: str) -> bool:
    return status in TERMINAL


def transition(
    db: Session,
    order_id: int,
    new_status: str,
    actor_id: int,
    actor_role: str,
    reason: Optional[str] = None,
) -> Order:
    if actor_role not in STAFF_ROLES:
        raise AuthorizationError("Only cashiers and admins can change order status")

    if new_status not in TARGET_STATUSES:
        raise ValidationError("Invalid status")

    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    current = order.status
    if new_status not in allowed_next(current):
        raise ValidationError(f"Cannot move order from {current} to {new_status}")

    now = utcnow()
    values = {"status": new_status, "updated_at": now}
    if new_status == ACCEPTED:
        values.update(accepted_by=actor_id, accepted_at=now)
    elif new_status == REJECTED:
        values.update(rejected_by=actor_id, rejected_at=now, rejection_reason=reason or "")

    try:
        result = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ConflictError("Order was updated by someone else, refresh and try again")

        db.add(OrderStatusHistory(order_id=order_id, status=new_status, changed_by=actor_id, created_at=now))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("order_transition_failed", order_id=order_id, status=new_status)
        raise InternalError("Could not update the order") from None

    # the in-session row is stale after the Core-style UPDATE
    db.expire(order)
    logger.info("order_status_changed", order_id=order_id, old=current, new=new_status, actor=actor_id)
    return order
