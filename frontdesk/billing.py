# billing.py
"""
Invoice records <-> render-ready bill data.

BillData is what the PDF renderer consumes; it is rebuilt from a stored Invoice
verbatim (no recomputation of gst/round-off/total), so a re-downloaded bill always
matches the one handed out at the desk.
"""
from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Tuple

from django.utils import timezone

from .charges import ChargeTotals, ZERO, money2, as_int
from .models import Booking, FoodOrder, Invoice

log = logging.getLogger("frontdesk")

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"

FILENAME_PREFIX = {
    "ROOM": "invoice",
    "FOOD": "food-invoice",
    "MANUAL": "bill",
    "KITCHEN_MASTER": "kitchen-master",
}


def generate_invoice_number(prefix: str = "INV") -> str:
    """INV-<epoch ms>-<9 random base36 chars>, uppercased."""
    rand = "".join(secrets.choice(_B36) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{rand}".upper()


def pdf_filename(invoice_type: str, invoice_number: str) -> str:
    return f"{FILENAME_PREFIX.get(invoice_type, 'invoice')}-{invoice_number}.pdf"


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    timestamp: Optional[Any] = None  # datetime, ISO string or None

    @classmethod
    def from_food_order(cls, order: FoodOrder) -> "LineItem":
        return cls(
            name=order.food_item.name,
            quantity=order.quantity,
            unit_price=money2(order.unit_price),
            line_total=money2(order.line_total),
            timestamp=order.created_at,
        )

    @classmethod
    def from_payload(cls, row: Mapping[str, Any]) -> "LineItem":
        qty = as_int(row.get("quantity") or row.get("qty"), default=1, minimum=1)
        price = money2(row.get("unit_price") or row.get("unitPrice") or row.get("price") or row.get("rate"))
        total_raw = row.get("line_total") or row.get("lineTotal") or row.get("total")
        total = money2(total_raw) if total_raw not in (None, "") else money2(price * qty)
        return cls(
            name=str(row.get("name") or row.get("product") or "").strip(),
            quantity=qty,
            unit_price=price,
            line_total=total,
            timestamp=row.get("timestamp") or None,
        )

    def to_json(self) -> dict:
        ts = self.timestamp
        if isinstance(ts, datetime):
            ts = ts.isoformat()
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
            "timestamp": ts,
        }


@dataclass(frozen=True)
class BillData:
    totals: ChargeTotals
    invoice_number: str
    bill_date: datetime
    guest_name: str
    bill_number: str = ""

    guest_address: str = ""
    guest_state: str = ""
    guest_nationality: str = ""
    guest_gst_number: str = ""
    guest_mobile: str = ""
    id_type: str = ""
    id_number: str = ""

    company_name: str = ""
    company_code: str = ""
    department: str = ""
    designation: str = ""

    room_number: str = ""
    room_type: str = ""
    days: int = 0
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None

    payment_mode: str = "CASH"
    items: Tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def tax_visible(self) -> bool:
        return self.totals.tax_visible

    @property
    def rent_per_day(self) -> Decimal:
        if self.days > 0:
            return money2(self.totals.room_charges / self.days)
        return self.totals.room_charges

    @property
    def adults(self) -> int:
        return self.totals.additional_guests + 1

    @property
    def children(self) -> int:
        return 0

    @property
    def total_guests(self) -> int:
        return self.adults + self.children


def bill_from_booking(booking: Booking, totals: ChargeTotals, *, invoice_number: str,
                      payment_mode: str = "CASH", items: Iterable[LineItem] = (),
                      bill_date: Optional[datetime] = None, days: Optional[int] = None,
                      bill_number: str = "") -> BillData:
    room = booking.room
    return BillData(
        totals=totals,
        invoice_number=invoice_number,
        bill_number=bill_number,
        bill_date=bill_date or timezone.now(),
        guest_name=booking.guest_name,
        guest_address=booking.guest_address,
        guest_state=booking.guest_state,
        guest_nationality=booking.guest_nationality,
        guest_gst_number=booking.guest_gst_number,
        guest_mobile=booking.guest_mobile,
        id_type=booking.id_type,
        id_number=booking.id_number,
        company_name=booking.company_name,
        company_code=booking.company_code,
        department=booking.department,
        designation=booking.designation,
        room_number=room.room_number,
        room_type=room.room_type.name,
        days=booking.days if days is None else days,
        check_in_date=booking.check_in_date,
        check_out_date=booking.checkout_date,
        payment_mode=payment_mode,
        items=tuple(items),
    )


def persist_invoice(bill: BillData, *, invoice_type: str, booking: Optional[Booking] = None,
                    user=None, is_manual: bool = False) -> Invoice:
    t = bill.totals
    inv = Invoice.objects.create(
        booking=booking,
        invoice_number=bill.invoice_number,
        invoice_type=invoice_type,
        is_manual=is_manual,
        bill_number=bill.bill_number or "",
        bill_date=bill.bill_date,
        guest_name=bill.guest_name,
        guest_address=bill.guest_address or "",
        guest_state=bill.guest_state or "",
        guest_nationality=bill.guest_nationality or "",
        guest_gst_number=bill.guest_gst_number or "",
        guest_mobile=bill.guest_mobile or "",
        id_type=bill.id_type or "",
        id_number=bill.id_number or "",
        company_name=bill.company_name or "",
        company_code=bill.company_code or "",
        department=bill.department or "",
        designation=bill.designation or "",
        room_number=bill.room_number or "",
        room_type=bill.room_type or "",
        days=max(0, bill.days),
        check_in_date=bill.check_in_date,
        check_out_date=bill.check_out_date,
        room_charges=t.room_charges,
        tariff=t.tariff,
        food_charges=t.food_charges,
        additional_guest_charges=t.additional_guest_charge,
        additional_guests=t.additional_guests,
        discount=t.discount,
        gst_enabled=t.gst_enabled,
        show_gst=t.show_gst,
        gst_percent=t.gst_percent,
        gst_amount=t.gst_amount,
        advance_amount=t.advance_amount,
        round_off=t.round_off,
        total_amount=t.total_amount,
        payment_mode=bill.payment_mode,
        line_items=[it.to_json() for it in bill.items],
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )
    log.info("invoice persisted %s type=%s total=%s", inv.invoice_number, invoice_type, t.total_amount)
    return inv


def totals_from_invoice(inv: Invoice) -> ChargeTotals:
    """Stored components back into ChargeTotals; gst, round-off and total are taken as stored."""
    guests = inv.additional_guests or 0
    per_guest = money2(inv.additional_guest_charges)
    additional_total = per_guest * guests if guests > 0 else ZERO
    room, tariff, food, discount = (money2(inv.room_charges), money2(inv.tariff),
                                    money2(inv.food_charges), money2(inv.discount))
    return ChargeTotals(
        room_charges=room,
        tariff=tariff,
        food_charges=food,
        additional_guest_charge=per_guest,
        additional_guests=guests,
        additional_guests_total=money2(additional_total),
        discount=discount,
        base_total=money2(room + tariff + food + additional_total - discount),
        taxable_total=money2(room + tariff + additional_total - discount),
        gst_enabled=inv.gst_enabled,
        show_gst=inv.show_gst,
        gst_percent=Decimal(inv.gst_percent),
        gst_amount=money2(inv.gst_amount),
        food_gst_amount=ZERO,
        advance_amount=money2(inv.advance_amount),
        round_off=money2(inv.round_off),
        total_amount=money2(inv.total_amount),
    )


def bill_from_invoice(inv: Invoice) -> BillData:
    return BillData(
        totals=totals_from_invoice(inv),
        invoice_number=inv.invoice_number,
        bill_number=inv.bill_number,
        bill_date=inv.bill_date,
        guest_name=inv.guest_name,
        guest_address=inv.guest_address,
        guest_state=inv.guest_state,
        guest_nationality=inv.guest_nationality,
        guest_gst_number=inv.guest_gst_number,
        guest_mobile=inv.guest_mobile,
        id_type=inv.id_type,
        id_number=inv.id_number,
        company_name=inv.company_name,
        company_code=inv.company_code,
        department=inv.department,
        designation=inv.designation,
        room_number=inv.room_number,
        room_type=inv.room_type,
        days=inv.days,
        check_in_date=inv.check_in_date,
        check_out_date=inv.check_out_date,
        payment_mode=inv.payment_mode,
        items=tuple(LineItem.from_payload(row) for row in (inv.line_items or [])),
    )
