# grocery/ordering/cart.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional, Tuple

CENTS = Decimal("0.01")
MAX_QTY = 1000


def money(value: Any) -> Decimal:
    """Coerce a DB/JSON value into a 2-place Decimal (never via float)."""
    if isinstance(value, Decimal):
        d = value
    else:
        d = Decimal(str(value if value is not None else "0"))
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def fmt_money(value: Any) -> str:
    return f"{money(value):.2f}"


@dataclass(frozen=True)
class CartLine:
    product_id: Optional[int]
    unit: str
    qty: Any  # validated by intake, may arrive as anything the client sent


@dataclass(frozen=True)
class DeliveryAddress:
    zone_id: Optional[int]
    street: str = ""
    building: str = ""
    details: Optional[str] = None
    location_link: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.zone_id) and bool((self.street or "").strip()) and bool((self.building or "").strip())


@dataclass(frozen=True)
class Cart:
    """The customer's draft basket, handed explicitly to order intake."""

    lines: Tuple[CartLine, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, lines: Iterable[CartLine]) -> "Cart":
        return cls(lines=tuple(lines))

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def build_summary(lines: List[Any], delivery_fee: Any, currency: str = "JOD") -> Tuple[str, Decimal]:
    """Plain-text summary of frozen order lines (objects with name_ar/qty/unit/line_total)."""
    if not lines:
        return ("The basket is empty.", Decimal("0.00"))

    out: List[str] = []
    subtotal = Decimal("0.00")
    for i, line in enumerate(lines, start=1):
        lt = money(line.line_total)
        subtotal += lt
        name = line.name_en or line.name_ar
        out.append(f"{i}. x{line.qty} {line.unit} {name} = {lt:.2f} {currency}")

    fee = money(delivery_fee)
    total = subtotal + fee
    return (
        "Order summary:\n"
        + "\n".join(out)
        + f"\n\nSubtotal: {subtotal:.2f} {currency}"
        + f"\nDelivery: {fee:.2f} {currency}"
        + f"\nTotal: {total:.2f} {currency}",
        total,
    )
