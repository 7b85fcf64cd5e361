# grocery/catalog.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session, selectinload

from .models import Category, DeliveryZone, Offer, Product
from .ordering.cart import fmt_money


def list_categories(db: Session, active_only: bool = True) -> list[Category]:
    q = db.query(Category)
    if active_only:
        q = q.filter(Category.active.is_(True))
    return q.order_by(Category.sort_order, Category.id).all()


def list_products(
    db: Session,
    active: Optional[bool] = True,
    category_id: Optional[int] = None,
) -> list[Product]:
    """Products with their unit prices. ``active=None`` returns everything."""
    q = db.query(Product).options(selectinload(Product.units))
    if active is not None:
        q = q.filter(Product.active.is_(active))
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)
    return q.order_by(Product.id).all()


def list_zones(db: Session, active_only: bool = True) -> list[DeliveryZone]:
    q = db.query(DeliveryZone)
    if active_only:
        q = q.filter(DeliveryZone.active.is_(True))
    return q.order_by(DeliveryZone.sort_order, DeliveryZone.id).all()


def list_offers(db: Session, active_only: bool = True) -> list[Offer]:
    q = db.query(Offer)
    if active_only:
        q = q.filter(Offer.active.is_(True))
    return q.order_by(Offer.priority, Offer.id).all()


# -------------------
# JSON shapes
# -------------------
def category_dict(c: Category) -> dict[str, Any]:
    return {
        "id": c.id,
        "nameAr": c.name_ar,
        "nameEn": c.name_en,
        "sortOrder": c.sort_order,
        "active": c.active,
    }


def product_dict(p: Product) -> dict[str, Any]:
    # default unit first, then insertion order
    units = sorted(p.units, key=lambda u: (not u.is_default, u.id))
    return {
        "id": p.id,
        "nameAr": p.name_ar,
        "nameEn": p.name_en,
        "descriptionAr": p.description_ar,
        "descriptionEn": p.description_en,
        "categoryId": p.category_id,
        "imageUrl": p.image_url,
        "active": p.active,
        "units": [
            {"id": u.id, "unit": u.unit, "price": fmt_money(u.price), "isDefault": u.is_default}
            for u in units
        ],
        "createdAt": p.created_at.isoformat() if p.created_at else None,
        "updatedAt": p.updated_at.isoformat() if p.updated_at else None,
    }


def zone_dict(z: DeliveryZone) -> dict[str, Any]:
    return {
        "id": z.id,
        "nameAr": z.name_ar,
        "nameEn": z.name_en,
        "fee": fmt_money(z.fee),
        "active": z.active,
        "sortOrder": z.sort_order,
    }


def offer_dict(o: Offer) -> dict[str, Any]:
    return {
        "id": o.id,
        "titleAr": o.title_ar,
        "titleEn": o.title_en,
        "subtitleAr": o.subtitle_ar,
        "subtitleEn": o.subtitle_en,
        "imageUrl": o.image_url,
        "priority": o.priority,
        "active": o.active,
        "createdAt": o.created_at.isoformat() if o.created_at else None,
    }
