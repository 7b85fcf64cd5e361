# grocery/ordering/intake.py
"""
Order intake: turn a cart + address into a persisted order.

Prices are never taken from the client. Unit prices come from
``product_units`` and the delivery fee from ``delivery_zones``, read in the
same request that writes the order.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InternalError, ValidationError
from ..models import DeliveryZone, Order, OrderItem, OrderStatusHistory, Product, ProductUnit, utcnow
from .cart import MAX_QTY, Cart, CartLine, DeliveryAddress, money
from .status import INITIAL_STATUS

logger = structlog.get_logger(__name__)


def _parse_qty(raw: Any) -> int:
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("Invalid quantity")
    try:
        q = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid quantity") from None
    if not q.is_finite():
        raise ValidationError("Invalid quantity")
    if q != q.to_integral_value() or q <= 0 or q > MAX_QTY:
        raise ValidationError("Invalid quantity")
    return int(q)


def _verify_line(db: Session, line: CartLine) -> Dict[str, Any]:
    product = db.get(Product, line.product_id) if line.product_id else None
    if product is None or not product.active:
        raise ValidationError("Product not found or inactive")

    unit = (
        db.query(ProductUnit)
        .filter(ProductUnit.product_id == product.id, ProductUnit.unit == line.unit)
        .first()
    )
    if unit is None:
        raise ValidationError(f"Unit '{line.unit}' is not available for {product.name_en or product.name_ar}")

    qty = _parse_qty(line.qty)
    price = money(unit.price)
    return {
        "product_id": product.id,
        "name_ar": product.name_ar,
        "name_en": product.name_en,
        "unit": unit.unit,
        "price": price,
        "qty": qty,
        "line_total": money(price * qty),
        "image_url": product.image_url,
    }


def create_order(db: Session, user_id: int, cart: Cart, address: DeliveryAddress) -> Order:
    """Validate, price and persist an order. All-or-nothing."""
    if cart.is_empty:
        raise ValidationError("Cart is empty")
    if not address.is_complete():
        raise ValidationError("Delivery address is incomplete")

    verified: List[Dict[str, Any]] = [_verify_line(db, line) for line in cart]

    zone = db.get(DeliveryZone, address.zone_id)
    if zone is None:
        raise ValidationError("Unknown delivery zone")

    subtotal = sum((v["line_total"] for v in verified), Decimal("0.00"))
    delivery_fee = money(zone.fee)
    total = subtotal + delivery_fee

    now = utcnow()
    order = Order(
        user_id=user_id,
        zone_id=zone.id,
        zone_name=zone.name_ar,
        street=address.street.strip(),
        building=address.building.strip(),
        address_details=address.details or None,
        location_link=address.location_link or None,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total=total,
        payment_method="COD",
        status=INITIAL_STATUS,
        created_at=now,
        updated_at=now,
    )
    order.items = [OrderItem(**v) for v in verified]
    order.history = [OrderStatusHistory(status=INITIAL_STATUS, changed_by=user_id, created_at=now)]

    try:
        db.add(order)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("order_create_failed", user_id=user_id)
        raise InternalError("Could not create the order") from None

    logger.info("order_created", order_id=order.id, user_id=user_id, total=str(total), lines=len(verified))
    return order
