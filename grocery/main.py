# grocery/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog
from fastapi import BackgroundTasks, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .admin import router as admin_router
from .auth import (
    Principal,
    clear_session_cookie,
    create_token,
    current_principal,
    hash_password,
    set_session_cookie,
    verify_password,
)
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
from .db import Base, engine, get_db
from .emailer import notify_order_created
from .errors import AuthenticationError, ConflictError, GroceryError
from .models import User
from .ordering.intake import create_order
from .ordering.queries import get_order_for, orders_for_user
from .ordering.serialize import order_dict
from .ordering.status import transition
from .schemas import LoginIn, OrderIn, RegisterIn, StatusIn
from .utils.logging import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Grocery Ordering API",
    lifespan=lifespan,
)
app.include_router(admin_router)


# -------------------
# Error mapping
# -------------------
@app.exception_handler(GroceryError)
async def grocery_error_handler(_request: Request, exc: GroceryError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": f"{where}: {msg}" if where else msg})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Something went wrong, please try again"})


# -------------------
# Helpers
# -------------------
def _normalize_username(raw: str) -> str:
    return (raw or "").strip().lower()


def user_dict(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "uid": u.uid,
        "username": u.username,
        "email": u.email,
        "displayName": u.display_name,
        "phone": u.phone,
        "role": u.role,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
    }


# -------------------
# Health
# -------------------
@app.get("/")
def root():
    return {"ok": True, "service": "grocery-api"}


# -------------------
# Auth
# -------------------
@app.post("/auth/register")
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    username = _normalize_username(payload.username)
    if db.query(User).filter(User.username == username).first():
        raise ConflictError("Username is already taken")

    email = str(payload.email).lower() if payload.email else f"{username}@grocery.local"
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email is already registered")

    u = User(
        uid=uuid4().hex,
        username=username,
        email=email,
        display_name=payload.display_name or username,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        role="customer",
    )
    db.add(u)
    db.commit()
    db.refresh(u)

    logger.info("user_registered", user_id=u.id)
    set_session_cookie(response, create_token(u))
    return {"user": user_dict(u)}


@app.post("/auth/login")
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    u = db.query(User).filter(User.username == _normalize_username(payload.username)).first()
    if not u or not verify_password(payload.password, u.password_hash):
        raise AuthenticationError("Wrong username or password")

    token = create_token(u)
    set_session_cookie(response, token)
    return {"user": user_dict(u), "token": token}


@app.post("/auth/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"ok": True}


@app.get("/auth/me")
def me(principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    u = db.get(User, principal.user_id)
    if not u:
        raise AuthenticationError()
    return user_dict(u)


# -------------------
# Catalog (public, active only)
# -------------------
@app.get("/categories")
def categories(db: Session = Depends(get_db)):
    return [category_dict(c) for c in list_categories(db)]


@app.get("/products")
def products(category_id: Optional[int] = None, db: Session = Depends(get_db)):
    return [product_dict(p) for p in list_products(db, active=True, category_id=category_id)]


@app.get("/zones")
def zones(db: Session = Depends(get_db)):
    return [zone_dict(z) for z in list_zones(db)]


@app.get("/offers")
def offers(db: Session = Depends(get_db)):
    return [offer_dict(o) for o in list_offers(db)]


# -------------------
# Orders
# -------------------
@app.post("/orders")
def place_order(
    payload: OrderIn,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(current_principal),
    db: Session = Depends(get_db),
):
    order = create_order(db, principal.user_id, payload.to_cart(), payload.to_address())

    background_tasks.add_task(notify_order_created, order, db.get(User, principal.user_id))

    return {"orderId": order.id, "total": f"{order.total:.2f}"}


@app.get("/orders")
def my_orders(principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    return [order_dict(o) for o in orders_for_user(db, principal.user_id)]


@app.get("/orders/{order_id}")
def order_detail(order_id: int, principal: Principal = Depends(current_principal), db: Session = Depends(get_db)):
    return order_dict(get_order_for(db, order_id, principal))


@app.patch("/orders/{order_id}")
def update_order_status(
    order_id: int,
    payload: StatusIn,
    principal: Principal = Depends(current_principal),
    db: Session = Depends(get_db),
):
    order = transition(
        db,
        order_id,
        payload.status,
        actor_id=principal.user_id,
        actor_role=principal.role,
        reason=payload.rejection_reason,
    )
    return order_dict(order)
