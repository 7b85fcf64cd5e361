# grocery/admin.py
"""Back office: cashier order board, reporting and catalog maintenance."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Type

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .auth import Principal, require_admin, require_staff
from .catalog import (
    category_dict,
    list_categories,
    list_offers,
    list_products,
    list_zones,
    offer_dict,
    product_dict,
    zone_dict,
)
from .db import Base, get_db
from .errors import NotFoundError, ValidationError
from .models import Category, DeliveryZone, Offer, Order, Product, ProductUnit, User, utcnow
from .ordering.cart import fmt_money, money
from .ordering.queries import all_orders
from .ordering.serialize import order_dict, order_summary_dict
from .ordering.status import ALL_STATUSES, DELIVERED
from .schemas import CategoryIn, OfferIn, ProductIn, UnitIn, ZoneIn

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_or_404(db: Session, model: Type[Base], obj_id: int, label: str):
    obj = db.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def _day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


# -------------------
# Orders board (cashier + admin)
# -------------------
@router.get("/orders")
def board_orders(
    status: Optional[str] = None,
    _staff: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if status and status not in ALL_STATUSES:
        raise ValidationError("Invalid status")
    return [order_dict(o) for o in all_orders(db, status=status)]


@router.get("/stats")
def stats(
    range_: str = Query(default="today", alias="range"),
    _staff: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    since = _day_start(utcnow())
    if range_ == "week":
        since -= timedelta(days=7)
    elif range_ == "month":
        since -= timedelta(days=30)
    elif range_ != "today":
        raise ValidationError("range must be today, week or month")

    count, revenue = (
        db.query(func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        .filter(Order.created_at >= since)
        .one()
    )
    by_status = dict(
        db.query(Order.status, func.count(Order.id))
        .filter(Order.created_at >= since)
        .group_by(Order.status)
        .all()
    )

    return {
        "orders": {"total": count, "revenue": fmt_money(revenue), "byStatus": by_status},
        "users": db.query(func.count(User.id)).scalar(),
        "recentOrders": [order_summary_dict(o) for o in all_orders(db, limit=10)],
    }


@router.get("/accounting")
def accounting(
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = None,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Totals over delivered orders only, optionally bounded by created_at."""
    filters = [Order.status == DELIVERED]
    if from_ is not None:
        filters.append(Order.created_at >= from_)
    if to is not None:
        filters.append(Order.created_at <= to)

    row = (
        db.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0),
            func.coalesce(func.sum(Order.delivery_fee), 0),
            func.coalesce(func.sum(Order.subtotal), 0),
        )
        .filter(*filters)
        .one()
    )
    recent = (
        db.query(Order)
        .options(selectinload(Order.user))
        .filter(*filters)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(50)
        .all()
    )

    return {
        "stats": {
            "totalOrders": row[0],
            "totalRevenue": fmt_money(row[1]),
            "totalDeliveryFees": fmt_money(row[2]),
            "totalSubtotals": fmt_money(row[3]),
        },
        "orders": [order_summary_dict(o) for o in recent],
    }


# -------------------
# Categories
# -------------------
@router.get("/categories")
def admin_categories(_admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return [category_dict(c) for c in list_categories(db, active_only=False)]


@router.post("/categories")
def create_category(payload: CategoryIn, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    c = Category(**payload.model_dump())
    db.add(c)
    db.commit()
    return category_dict(c)


@router.put("/categories/{category_id}")
def update_category(
    category_id: int,
    payload: CategoryIn,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    c = _get_or_404(db, Category, category_id, "Category")
    for k, v in payload.model_dump().items():
        setattr(c, k, v)
    db.commit()
    return category_dict(c)


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    db.delete(_get_or_404(db, Category, category_id, "Category"))
    db.commit()
    return {"ok": True}


# -------------------
# Delivery zones
# -------------------
@router.get("/zones")
def admin_zones(_admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return [zone_dict(z) for z in list_zones(db, active_only=False)]


@router.post("/zones")
def create_zone(payload: ZoneIn, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    data = payload.model_dump()
    data["fee"] = money(data["fee"])
    z = DeliveryZone(**data)
    db.add(z)
    db.commit()
    return zone_dict(z)


@router.put("/zones/{zone_id}")
def update_zone(
    zone_id: int,
    payload: ZoneIn,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    z = _get_or_404(db, DeliveryZone, zone_id, "Zone")
    data = payload.model_dump()
    data["fee"] = money(data["fee"])
    for k, v in data.items():
        setattr(z, k, v)
    db.commit()
    return zone_dict(z)


@router.delete("/zones/{zone_id}")
def delete_zone(zone_id: int, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    db.delete(_get_or_404(db, DeliveryZone, zone_id, "Zone"))
    db.commit()
    return {"ok": True}


# -------------------
# Offers
# -------------------
@router.get("/offers")
def admin_offers(_admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return [offer_dict(o) for o in list_offers(db, active_only=False)]


@router.post("/offers")
def create_offer(payload: OfferIn, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    o = Offer(**payload.model_dump())
    db.add(o)
    db.commit()
    return offer_dict(o)


@router.put("/offers/{offer_id}")
def update_offer(
    offer_id: int,
    payload: OfferIn,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    o = _get_or_404(db, Offer, offer_id, "Offer")
    for k, v in payload.model_dump().items():
        setattr(o, k, v)
    db.commit()
    return offer_dict(o)


@router.delete("/offers/{offer_id}")
def delete_offer(offer_id: int, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    db.delete(_get_or_404(db, Offer, offer_id, "Offer"))
    db.commit()
    return {"ok": True}


# -------------------
# Products
# -------------------
def _build_units(units: List[UnitIn]) -> List[ProductUnit]:
    if not units:
        raise ValidationError("Add at least one unit")
    names = [u.unit.strip() for u in units]
    if len(set(names)) != len(names):
        raise ValidationError("Duplicate unit")
    # first unit is the default one shown in the storefront
    return [
        ProductUnit(unit=name, price=money(u.price), is_default=(i == 0))
        for i, (name, u) in enumerate(zip(names, units))
    ]


@router.get("/products")
def admin_products(_admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return {
        "products": [product_dict(p) for p in list_products(db, active=None)],
        "categories": [category_dict(c) for c in list_categories(db, active_only=False)],
    }


@router.post("/products")
def create_product(payload: ProductIn, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"units"})
    p = Product(**data)
    p.units = _build_units(payload.units)
    db.add(p)
    db.commit()
    logger.info("product_created", product_id=p.id)
    return product_dict(p)


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    payload: ProductIn,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    p = _get_or_404(db, Product, product_id, "Product")
    units = _build_units(payload.units)
    for k, v in payload.model_dump(exclude={"units"}).items():
        setattr(p, k, v)
    p.updated_at = utcnow()

    # replace the unit set; existing orders keep their frozen prices
    p.units = []
    db.flush()
    p.units = units
    db.commit()
    logger.info("product_updated", product_id=p.id)
    return product_dict(p)


@router.delete("/products/{product_id}")
def delete_product(product_id: int, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    db.delete(_get_or_404(db, Product, product_id, "Product"))
    db.commit()
    return {"ok": True}
