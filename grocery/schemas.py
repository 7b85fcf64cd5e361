# grocery/schemas.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .ordering.cart import Cart, CartLine, DeliveryAddress


class CamelModel(BaseModel):
    # JSON bodies are camelCase; python side stays snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------------------
# Auth
# -------------------
class RegisterIn(CamelModel):
    username: str = Field(min_length=3, max_length=40)
    password: str = Field(min_length=6)
    display_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None


class LoginIn(CamelModel):
    username: str
    password: str


# -------------------
# Orders
# -------------------
class CartLineIn(CamelModel):
    # anything else the client sends (price, name, ...) is ignored
    product_id: Optional[int] = None
    unit: str = ""
    qty: Any = None


class AddressIn(CamelModel):
    zone_id: Optional[int] = None
    street: Optional[str] = None
    building: Optional[str] = None
    details: Optional[str] = None
    location_link: Optional[str] = None


class OrderIn(CamelModel):
    items: List[CartLineIn] = []
    address: Optional[AddressIn] = None

    def to_cart(self) -> Cart:
        return Cart.of(CartLine(product_id=i.product_id, unit=i.unit, qty=i.qty) for i in self.items)

    def to_address(self) -> DeliveryAddress:
        a = self.address or AddressIn()
        return DeliveryAddress(
            zone_id=a.zone_id,
            street=a.street or "",
            building=a.building or "",
            details=a.details,
            location_link=a.location_link,
        )


class StatusIn(CamelModel):
    status: str
    rejection_reason: Optional[str] = None


# -------------------
# Admin catalog
# -------------------
class CategoryIn(CamelModel):
    name_ar: str = Field(min_length=1)
    name_en: Optional[str] = None
    sort_order: int = 0
    active: bool = True


class ZoneIn(CamelModel):
    name_ar: str = Field(min_length=1)
    name_en: Optional[str] = None
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    active: bool = True
    sort_order: int = 0


class OfferIn(CamelModel):
    title_ar: str = Field(min_length=1)
    title_en: Optional[str] = None
    subtitle_ar: Optional[str] = None
    subtitle_en: Optional[str] = None
    image_url: Optional[str] = None
    priority: int = 0
    active: bool = True


class UnitIn(CamelModel):
    unit: str = Field(min_length=1)
    price: Decimal = Field(ge=0)


class ProductIn(CamelModel):
    name_ar: str = Field(min_length=1)
    name_en: Optional[str] = None
    description_ar: Optional[str] = None
    description_en: Optional[str] = None
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    active: bool = True
    units: List[UnitIn] = []
