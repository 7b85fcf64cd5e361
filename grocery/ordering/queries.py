# grocery/ordering/queries.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..errors import AuthorizationError, NotFoundError
from ..models import Order


def _with_children(q):
    return q.options(
        selectinload(Order.items),
        selectinload(Order.history),
        selectinload(Order.user),
    )


def orders_for_user(db: Session, user_id: int) -> List[Order]:
    """A customer's own orders, newest first."""
    q = db.query(Order).filter(Order.user_id == user_id)
    return _with_children(q).order_by(Order.created_at.desc(), Order.id.desc()).all()


def all_orders(db: Session, status: Optional[str] = None, limit: Optional[int] = None) -> List[Order]:
    q = db.query(Order)
    if status:
        q = q.filter(Order.status == status)
    q = _with_children(q).order_by(Order.created_at.desc(), Order.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def get_order_for(db: Session, order_id: int, principal: Principal) -> Order:
    """Owner or staff only."""
    order = _with_children(db.query(Order).filter(Order.id == order_id)).first()
    if order is None:
        raise NotFoundError("Order not found")
    if order.user_id != principal.user_id and not principal.is_staff:
        raise AuthorizationError()
    return order
