from __future__ import annotations

import os
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.orm import Session

from grocery.auth import hash_password
from grocery.db import Base, SessionLocal, engine
from grocery.models import Category, DeliveryZone, Offer, Product, ProductUnit, User

# Demo catalog: (category, [(name_ar, name_en, [(unit, price), ...]), ...])
CATALOG = [
    ("خضار", "Vegetables", [
        ("بندورة", "Tomatoes", [("kg", "0.75"), ("box", "6.00")]),
        ("خيار", "Cucumbers", [("kg", "0.60")]),
        ("بقدونس", "Parsley", [("bundle", "0.25")]),
    ]),
    ("فواكه", "Fruits", [
        ("موز", "Bananas", [("kg", "1.10")]),
        ("بطيخ", "Watermelon", [("piece", "3.50"), ("kg", "0.35")]),
    ]),
]

ZONES = [
    ("وسط البلد", "Downtown", "1.00"),
    ("عبدون", "Abdoun", "2.00"),
    ("صويلح", "Sweileh", "2.50"),
]

STAFF = [
    ("admin", "admin"),
    ("cashier", "cashier"),
]


def _seed_staff(db: Session, password: str) -> int:
    made = 0
    for username, role in STAFF:
        if db.query(User).filter(User.username == username).first():
            print(f"SKIP user {username} (exists)")
            continue
        db.add(User(
            uid=uuid4().hex,
            username=username,
            email=f"{username}@grocery.local",
            display_name=username.title(),
            password_hash=hash_password(password),
            role=role,
        ))
        made += 1
    return made


def _seed_catalog(db: Session) -> int:
    made = 0
    for sort_order, (cat_ar, cat_en, items) in enumerate(CATALOG):
        cat = db.query(Category).filter(Category.name_en == cat_en).first()
        if not cat:
            cat = Category(name_ar=cat_ar, name_en=cat_en, sort_order=sort_order)
            db.add(cat)
            db.flush()

        for name_ar, name_en, units in items:
            if db.query(Product).filter(Product.name_en == name_en).first():
                print(f"SKIP product {name_en} (exists)")
                continue
            p = Product(name_ar=name_ar, name_en=name_en, category_id=cat.id)
            p.units = [
                ProductUnit(unit=u, price=Decimal(price), is_default=(i == 0))
                for i, (u, price) in enumerate(units)
            ]
            db.add(p)
            made += 1

    for sort_order, (name_ar, name_en, fee) in enumerate(ZONES):
        if db.query(DeliveryZone).filter(DeliveryZone.name_en == name_en).first():
            continue
        db.add(DeliveryZone(name_ar=name_ar, name_en=name_en, fee=Decimal(fee), sort_order=sort_order))
        made += 1

    if not db.query(Offer).first():
        db.add(Offer(title_ar="توصيل مجاني", title_en="Free delivery on Fridays", priority=0))
        made += 1

    return made


def main() -> None:
    Base.metadata.create_all(bind=engine)
    password = os.getenv("SEED_STAFF_PASSWORD", "change-me-now")

    db = SessionLocal()
    try:
        users = _seed_staff(db, password)
        rows = _seed_catalog(db)
        db.commit()
    finally:
        db.close()

    print(f"\nDone. Created {users} staff users and {rows} catalog rows in: {engine.url}")


if __name__ == "__main__":
    main()
