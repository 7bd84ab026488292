# charges.py
"""
Bill arithmetic shared by every billing flow (manual bill, booking checkout,
combined food bill, kitchen/food invoice).

Order of operations:

    base_total    = room + tariff + food + additional_guests_total - discount
    taxable_total = room + tariff + additional_guests_total - discount   (food is never taxed)
    gst_amount    = taxable_total * gst_percent / 100   (only if gst_enabled AND show_gst)
    total_amount  = base_total + gst_amount - advance_amount + round_off

Nothing in here raises on bad input; payload coercion falls back to 0 (or 1 for
"at least one" counts) and booleans accept the usual form spellings.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, InvalidOperation
from typing import Any, Mapping, Optional

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
DEFAULT_GST_PERCENT = Decimal("5")

_TRUE = {"1", "true", "yes", "on", "y", "t"}
_FALSE = {"0", "false", "no", "off", "n", "f", ""}


# ---------- coercion ----------

_MAX_DIGITS = 24  # integer digits kept; beyond this an amount is treated as garbage


def _usable(d: Decimal) -> bool:
    return d.is_finite() and (d.is_zero() or d.adjusted() < _MAX_DIGITS)


def D(x: Any) -> Decimal:
    """Decimal from anything; garbage (or absurdly large) -> 0."""
    if isinstance(x, Decimal):
        return x if _usable(x) else Decimal("0")
    if isinstance(x, bool):
        return Decimal(int(x))
    try:
        d = Decimal(str(x if x is not None else 0).strip() or "0")
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")
    return d if _usable(d) else Decimal("0")


def money2(x: Any) -> Decimal:
    """Half-up to paise; amounts too large to hold at cent precision -> 0."""
    try:
        return D(x).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def as_int(x: Any, default: int = 0, minimum: Optional[int] = None) -> int:
    """Integer from anything; missing or garbage -> `default`, then clamped to `minimum`."""
    if x is None or isinstance(x, bool):
        n = default
    else:
        try:
            n = int(Decimal(str(x).strip()))
        except (InvalidOperation, ValueError, TypeError, OverflowError):
            n = default
    if minimum is not None and n < minimum:
        n = minimum
    return n


def as_bool(x: Any, default: bool = False) -> bool:
    if x is None:
        return default
    if isinstance(x, bool):
        return x
    if isinstance(x, (int, float, Decimal)):
        return bool(x)
    s = str(x).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return default


def _optional_money(x: Any) -> Optional[Decimal]:
    if x is None or (isinstance(x, str) and not x.strip()):
        return None
    return money2(x)


def _gst_percent(x: Any) -> Decimal:
    if x is None or (isinstance(x, str) and not x.strip()):
        return DEFAULT_GST_PERCENT
    try:
        d = Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return DEFAULT_GST_PERCENT
    return d if _usable(d) else DEFAULT_GST_PERCENT


# ---------- types ----------

@dataclass(frozen=True)
class ChargeInputs:
    room_charges: Decimal = ZERO
    tariff: Decimal = ZERO
    food_charges: Decimal = ZERO
    additional_guest_charge: Decimal = ZERO  # per guest
    additional_guests: int = 0
    discount: Decimal = ZERO
    gst_enabled: bool = False
    show_gst: bool = True
    gst_percent: Decimal = DEFAULT_GST_PERCENT
    advance_amount: Decimal = ZERO
    round_off: Optional[Decimal] = ZERO  # None -> automatic

    # combined food bill
    combine_food_bill: bool = False
    previous_food_total: Decimal = ZERO
    unbilled_food_total: Decimal = ZERO
    complimentary: Decimal = ZERO

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], *, defaults: Optional[Mapping[str, Any]] = None,
                     auto_round_off: bool = False) -> "ChargeInputs":
        """
        Build inputs from a request body. Keys are looked up in snake_case first,
        then camelCase (what the front-desk UI posts); missing or blank keys fall back to
        `defaults`, then to the field default.

        round_off: an explicit value is used verbatim; if absent, `auto_round_off`
        decides between automatic rounding (None) and 0.
        """
        data = data or {}
        defaults = defaults or {}

        def pick(name, *aliases):
            for key in (name,) + aliases:
                v = data.get(key)
                if v is None or (isinstance(v, str) and not v.strip()):
                    continue
                return v
            return defaults.get(name)

        round_off_raw = pick("round_off", "roundOff")
        round_off = _optional_money(round_off_raw)
        if round_off is None and not auto_round_off:
            round_off = ZERO

        return cls(
            room_charges=money2(pick("room_charges", "roomCharges")),
            tariff=money2(pick("tariff")),
            food_charges=money2(pick("food_charges", "foodCharges")),
            additional_guest_charge=money2(pick("additional_guest_charges", "additionalGuestCharges",
                                                "additional_guest_charge")),
            additional_guests=as_int(pick("additional_guests", "additionalGuests"), default=0, minimum=0),
            discount=money2(pick("discount")),
            gst_enabled=as_bool(pick("gst_enabled", "gstEnabled"), default=False),
            show_gst=as_bool(pick("show_gst", "showGst"), default=True),
            gst_percent=_gst_percent(pick("gst_percent", "gstPercent")),
            advance_amount=money2(pick("advance_amount", "advanceAmount")),
            round_off=round_off,
            combine_food_bill=as_bool(pick("combine_food_bill", "combineFoodBill"), default=False),
            previous_food_total=money2(pick("previous_food_total", "previousFoodTotal")),
            unbilled_food_total=money2(pick("unbilled_food_total", "unbilledFoodTotal")),
            complimentary=money2(pick("complimentary")),
        )


@dataclass(frozen=True)
class ChargeTotals:
    room_charges: Decimal
    tariff: Decimal
    food_charges: Decimal
    additional_guest_charge: Decimal
    additional_guests: int
    additional_guests_total: Decimal
    discount: Decimal
    base_total: Decimal
    taxable_total: Decimal
    gst_enabled: bool
    show_gst: bool
    gst_percent: Decimal
    gst_amount: Decimal
    food_gst_amount: Decimal
    advance_amount: Decimal
    round_off: Decimal
    total_amount: Decimal

    @property
    def tax_visible(self) -> bool:
        return self.gst_enabled and self.show_gst

    @property
    def room_charges_before_tax(self) -> Decimal:
        return self.room_charges + self.tariff + self.additional_guests_total

    def recomputed_total(self) -> Decimal:
        """Total rebuilt from the stored components; must equal total_amount."""
        additional = self.additional_guest_charge * self.additional_guests if self.additional_guests > 0 else ZERO
        base = self.room_charges + self.tariff + self.food_charges + additional - self.discount
        return money2(base + self.gst_amount + self.food_gst_amount - self.advance_amount + self.round_off)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ---------- calculator ----------

def auto_round_off(subtotal: Decimal) -> Decimal:
    """
    Adjustment that brings `subtotal` to the nearest whole rupee, ties up.
    100.50 -> +0.50, 100.49 -> -0.49, 100.00 -> 0.
    """
    subtotal = D(subtotal)
    try:
        rem = subtotal % 1  # sign follows subtotal
        if rem >= Decimal("0.5"):
            adj = subtotal.to_integral_value(rounding=ROUND_CEILING) - subtotal
        else:
            adj = -rem
    except InvalidOperation:
        return ZERO
    return money2(adj) + ZERO  # normalises -0.00


def compute_totals(inputs: ChargeInputs) -> ChargeTotals:
    room = money2(inputs.room_charges)
    tariff = money2(inputs.tariff)
    discount = money2(inputs.discount)
    advance = money2(inputs.advance_amount)
    guests = max(0, int(inputs.additional_guests or 0))
    per_guest = money2(inputs.additional_guest_charge)

    if inputs.combine_food_bill:
        food = money2(inputs.previous_food_total) + money2(inputs.unbilled_food_total) - money2(inputs.complimentary)
    else:
        food = money2(inputs.food_charges)

    additional_total = per_guest * guests if guests > 0 else ZERO

    base_total = room + tariff + food + additional_total - discount
    taxable_total = room + tariff + additional_total - discount

    gst_percent = D(inputs.gst_percent)
    if inputs.gst_enabled and inputs.show_gst:
        gst_amount = money2(taxable_total * gst_percent / Decimal(100))
    else:
        gst_amount = ZERO
    food_gst = ZERO

    if inputs.round_off is None:
        round_off = auto_round_off(base_total + gst_amount + food_gst - advance)
    else:
        round_off = money2(inputs.round_off)

    total = money2(base_total + gst_amount + food_gst - advance + round_off)

    return ChargeTotals(
        room_charges=room,
        tariff=tariff,
        food_charges=food,
        additional_guest_charge=per_guest,
        additional_guests=guests,
        additional_guests_total=money2(additional_total),
        discount=discount,
        base_total=money2(base_total),
        taxable_total=money2(taxable_total),
        gst_enabled=bool(inputs.gst_enabled),
        show_gst=bool(inputs.show_gst),
        gst_percent=gst_percent,
        gst_amount=gst_amount,
        food_gst_amount=food_gst,
        advance_amount=advance,
        round_off=round_off,
        total_amount=total,
    )
