# grocery/ordering/serialize.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from ..models import Order, User
from .cart import fmt_money


def _iso(v: Optional[datetime]) -> Optional[str]:
    return v.isoformat() if v else None


def customer_dict(u: Optional[User]) -> Dict[str, str]:
    if u is None:
        return {"name": "", "email": "", "phone": ""}
    return {
        "name": u.display_name or u.username or u.email,
        "email": u.email or "",
        "phone": u.phone or "",
    }


def order_summary_dict(o: Order) -> Dict[str, Any]:
    """Order header, address and customer; no line items or history."""
    return {
        "id": o.id,
        "userId": o.user_id,
        "status": o.status,
        "paymentMethod": o.payment_method,
        "subtotal": fmt_money(o.subtotal),
        "deliveryFee": fmt_money(o.delivery_fee),
        "total": fmt_money(o.total),
        "rejectionReason": o.rejection_reason,
        "acceptedBy": o.accepted_by,
        "acceptedAt": _iso(o.accepted_at),
        "rejectedBy": o.rejected_by,
        "rejectedAt": _iso(o.rejected_at),
        "createdAt": _iso(o.created_at),
        "updatedAt": _iso(o.updated_at),
        "address": {
            "zoneId": o.zone_id,
            "zoneName": o.zone_name,
            "street": o.street,
            "building": o.building,
            "details": o.address_details,
            "locationLink": o.location_link,
        },
        "customer": customer_dict(o.user),
    }


def order_dict(o: Order) -> Dict[str, Any]:
    out = order_summary_dict(o)
    out["items"] = [
        {
            "id": i.id,
            "productId": i.product_id,
            "nameAr": i.name_ar,
            "nameEn": i.name_en,
            "unit": i.unit,
            "price": fmt_money(i.price),
            "qty": i.qty,
            "lineTotal": fmt_money(i.line_total),
            "imageUrl": i.image_url,
        }
        for i in o.items
    ]
    out["statusHistory"] = [
        {"id": h.id, "status": h.status, "changedBy": h.changed_by, "createdAt": _iso(h.created_at)}
        for h in o.history
    ]
    return out
