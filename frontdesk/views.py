# views.py
import json
import logging
from dataclasses import replace
from collections.abc import Mapping
from datetime import datetime

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime, parse_date
from rest_framework import renderers
from rest_framework.decorators import api_view, permission_classes, renderer_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .billing import (
    BillData,
    LineItem,
    bill_from_booking,
    bill_from_invoice,
    generate_invoice_number,
    pdf_filename,
    persist_invoice,
)
from .charges import ChargeInputs, ZERO, as_int, compute_totals, money2
from .formatting import mask_id_number
from .models import Booking, FoodOrder, HotelSettings, Invoice, Payment, Room
from .pdf import build_invoice_pdf, build_police_verification_pdf
from .permissions import IsFrontDesk, IsManager, KitchenAccess
from .serializers import InvoiceSerializer, UserSerializer

log = logging.getLogger("frontdesk")
auth_log = logging.getLogger("frontdesk.auth")


def _dbg(*args, **kwargs):
    """
    Compact JSON debug event:
      - _dbg("TAG", key=val, ...)
      - _dbg(key=val, ...)
    Never raises.
    """
    try:
        tag = args[0] if args else kwargs.pop("tag", None)
        payload = {"tag": tag} if tag is not None else {}
        payload.update(kwargs)
        log.debug(json.dumps(payload, default=str))
    except (TypeError, ValueError):
        log.debug("[DBG] %s %r", args, kwargs)


class PassthroughPDFRenderer(renderers.BaseRenderer):
    """
    Accepts Accept: application/pdf (and ?format=pdf) so DRF doesn't 406 before the view runs.
    Success paths return HttpResponse(pdf_bytes) directly; error dicts are emitted as JSON.
    """
    media_type = "application/pdf"
    format = "pdf"
    charset = None
    render_style = "binary"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if isinstance(data, (bytes, bytearray)):
            return data
        return json.dumps(data, default=str).encode("utf-8")


PDF_RENDERERS = [renderers.JSONRenderer, PassthroughPDFRenderer, renderers.BrowsableAPIRenderer]


# -----------------------------------
# helpers
# -----------------------------------

def _error(message: str, status: int) -> Response:
    return Response({"error": message}, status=status, content_type="application/json")


def _pick(data, *keys, default=None):
    for k in keys:
        if k in data and data[k] not in (None, ""):
            return data[k]
    return default


def _s(data, *keys) -> str:
    v = _pick(data, *keys)
    return str(v).strip() if v is not None else ""


def _parse_dt(value):
    """ISO date/datetime (or a datetime) -> aware datetime; anything else -> None."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        try:
            dt = parse_datetime(s)
            d = None if dt else parse_date(s)
        except ValueError:
            return None
        if dt is None:
            if d is None:
                return None
            dt = datetime(d.year, d.month, d.day)
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def _charge_defaults(**extra) -> dict:
    cfg = getattr(settings, "FRONTDESK", {}) or {}
    defaults = {"gst_percent": cfg.get("DEFAULT_GST_PERCENT")}
    defaults.update(extra)
    return defaults


def _payment_mode(data) -> str:
    mode = _s(data, "payment_mode", "paymentMode", "payment_method", "paymentMethod").upper()
    return mode if mode in ("CASH", "ONLINE") else "CASH"


def _pdf_response(pdf_bytes: bytes, invoice_type: str, invoice_number: str) -> HttpResponse:
    resp = HttpResponse(pdf_bytes, content_type="application/pdf")
    resp["Content-Disposition"] = f'attachment; filename="{pdf_filename(invoice_type, invoice_number)}"'
    return resp


def _render_or_none(hotel, bill: BillData, tag: str):
    try:
        return build_invoice_pdf(hotel, bill)
    except Exception:
        log.exception("%s: pdf render failed for %s", tag, bill.invoice_number)
        return None


# -----------------------------------
# health / auth
# -----------------------------------

@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    return Response({"ok": True, "time": timezone.now().isoformat()})


@api_view(["POST"])
@permission_classes([AllowAny])
def login(request):
    """
    Body: {"username": "...", "password": "..."}
    Returns a simplejwt pair plus the user (with role).
    """
    ser = TokenObtainPairSerializer(data=request.data)
    try:
        ser.is_valid(raise_exception=True)
    except AuthenticationFailed:
        auth_log.warning("login failed for %r", request.data.get("username"))
        raise
    data = dict(ser.validated_data)
    data["user"] = UserSerializer(ser.user).data
    return Response(data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)


# -----------------------------------
# Manual bill
# -----------------------------------

@api_view(["POST"])
@permission_classes([IsFrontDesk])
@renderer_classes(PDF_RENDERERS)
def generate_bill(request):
    """
    Free-form bill typed in at the desk (no booking needed).
    All charges come from the body; round-off is taken as given (default 0).
    """
    data = request.data
    _dbg("BILL:ENTRY", user_id=getattr(request.user, "id", None), keys=sorted(data.keys()))

    hotel = HotelSettings.current()
    if not hotel:
        return _error("Hotel settings not found", 404)

    guest_name = _s(data, "guest_name", "guestName")
    if not guest_name:
        return _error("Guest name is required", 400)

    totals = compute_totals(ChargeInputs.from_payload(data, defaults=_charge_defaults()))
    raw_items = _pick(data, "items", "line_items", "lineItems", default=[])
    if not isinstance(raw_items, (list, tuple)):
        raw_items = []
    items = tuple(LineItem.from_payload(r) for r in raw_items if isinstance(r, Mapping))

    bill = BillData(
        totals=totals,
        invoice_number=generate_invoice_number(),
        bill_number=_s(data, "bill_number", "billNumber"),
        bill_date=_parse_dt(_pick(data, "bill_date", "billDate")) or timezone.now(),
        guest_name=guest_name,
        guest_address=_s(data, "guest_address", "guestAddress", "address"),
        guest_state=_s(data, "guest_state", "guestState", "state"),
        guest_nationality=_s(data, "guest_nationality", "guestNationality", "nationality"),
        guest_gst_number=_s(data, "guest_gst_number", "guestGstNumber", "gstNumber"),
        guest_mobile=_s(data, "guest_mobile", "guestMobile", "mobile"),
        id_type=_s(data, "id_type", "idType"),
        id_number=_s(data, "id_number", "idNumber"),
        company_name=_s(data, "company_name", "companyName"),
        company_code=_s(data, "company_code", "companyCode"),
        department=_s(data, "department"),
        designation=_s(data, "designation"),
        room_number=_s(data, "room_number", "roomNumber"),
        room_type=_s(data, "room_type", "roomType"),
        days=as_int(_pick(data, "days"), default=1, minimum=1),
        check_in_date=_parse_dt(_pick(data, "check_in_date", "checkInDate")),
        check_out_date=_parse_dt(_pick(data, "check_out_date", "checkOutDate")),
        payment_mode=_payment_mode(data),
        items=items,
    )

    pdf_bytes = _render_or_none(hotel, bill, "BILL")
    if pdf_bytes is None:
        return _error("Could not generate bill", 500)

    with transaction.atomic():
        inv = persist_invoice(bill, invoice_type="MANUAL", user=request.user, is_manual=True)

    _dbg("BILL:SUCCESS", invoice=inv.invoice_number, total=totals.total_amount)
    return _pdf_response(pdf_bytes, "MANUAL", inv.invoice_number)


# -----------------------------------
# Booking checkout
# -----------------------------------

def _unbilled_orders(booking: Booking):
    return list(
        FoodOrder.objects.select_related("food_item")
        .filter(booking=booking, invoice__isnull=True)
        .order_by("created_at", "id")
    )


@api_view(["POST"])
@permission_classes([IsFrontDesk])
@renderer_classes(PDF_RENDERERS)
def checkout_booking(request, booking_id: int):
    """
    Close a stay and hand out the room invoice.

    Charges default to the booking (room_price x days, tariff, extra guests, advance)
    and can be overridden from the body. `complimentary` is a discount, unless
    `combine_food_bill` is set: then previous food invoices plus unbilled food
    orders are folded into the bill and `complimentary` comes off the food total.
    Round-off is automatic unless `round_off` is sent.
    """
    data = request.data
    _dbg("CHECKOUT:ENTRY", booking_id=booking_id, user_id=getattr(request.user, "id", None))

    hotel = HotelSettings.current()
    if not hotel:
        return _error("Hotel settings not found", 404)

    booking = Booking.objects.select_related("room", "room__room_type").filter(pk=booking_id).first()
    if not booking:
        return _error("Booking not found", 404)
    if booking.status == "CHECKED_OUT":
        return _error("Booking already checked out", 400)

    booking.checkout_date = _parse_dt(_pick(data, "checkout_date", "checkOutDate", "checkoutDate")) or timezone.now()
    days = booking.days

    inputs = ChargeInputs.from_payload(
        data,
        defaults=_charge_defaults(
            room_charges=booking.room_price * days,
            tariff=booking.tariff,
            additional_guest_charges=booking.additional_guest_charges,
            additional_guests=booking.additional_guests,
            advance_amount=booking.advance_amount,
        ),
        auto_round_off=True,
    )

    unbilled = []
    items = ()
    if inputs.combine_food_bill:
        unbilled = _unbilled_orders(booking)
        previous = (
            Invoice.objects.filter(booking=booking, invoice_type="FOOD")
            .aggregate(s=Sum("total_amount"))["s"] or ZERO
        )
        inputs = replace(
            inputs,
            previous_food_total=money2(previous),
            unbilled_food_total=money2(sum((o.line_total for o in unbilled), ZERO)),
        )
        items = tuple(LineItem.from_food_order(o) for o in unbilled)
    elif inputs.complimentary:
        inputs = replace(inputs, discount=inputs.discount + inputs.complimentary)

    totals = compute_totals(inputs)
    payment_mode = _payment_mode(data)
    bill = bill_from_booking(
        booking, totals,
        invoice_number=generate_invoice_number(),
        payment_mode=payment_mode,
        items=items,
        days=days,
        bill_number=_s(data, "bill_number", "billNumber"),
    )

    pdf_bytes = _render_or_none(hotel, bill, "CHECKOUT")
    if pdf_bytes is None:
        return _error("Could not generate bill", 500)

    payment_status = _s(data, "payment_status", "paymentStatus").upper()
    with transaction.atomic():
        inv = persist_invoice(bill, invoice_type="ROOM", booking=booking, user=request.user)
        if unbilled:
            FoodOrder.objects.filter(pk__in=[o.pk for o in unbilled]).update(invoice=inv)
        Payment.objects.create(
            booking=booking,
            invoice=inv,
            mode=payment_mode,
            status=payment_status if payment_status in ("PAID", "PENDING") else "PAID",
            amount=totals.total_amount,
        )
        booking.status = "CHECKED_OUT"
        booking.save(update_fields=["status", "checkout_date"])
        Room.objects.filter(pk=booking.room_id).update(status="AVAILABLE")

    _dbg("CHECKOUT:SUCCESS", booking_id=booking.id, invoice=inv.invoice_number,
         total=totals.total_amount, combined=inputs.combine_food_bill, food_orders=len(unbilled))
    return _pdf_response(pdf_bytes, "ROOM", inv.invoice_number)


# -----------------------------------
# Kitchen / food invoice
# -----------------------------------

@api_view(["POST"])
@permission_classes([IsFrontDesk])
@renderer_classes(PDF_RENDERERS)
def food_invoice(request, booking_id: int):
    """
    Food-only master bill for a booking's unbilled orders. Never taxed;
    the discount is capped at the food subtotal.
    """
    data = request.data
    _dbg("FOOD:ENTRY", booking_id=booking_id, user_id=getattr(request.user, "id", None))

    hotel = HotelSettings.current()
    if not hotel:
        return _error("Hotel settings not found", 404)

    booking = Booking.objects.select_related("room", "room__room_type").filter(pk=booking_id).first()
    if not booking:
        return _error("Booking not found", 404)

    unbilled = _unbilled_orders(booking)
    if not unbilled:
        return _error("No unbilled food orders for this booking", 400)

    subtotal = money2(sum((o.line_total for o in unbilled), ZERO))
    discount = money2(_pick(data, "discount", "complimentary", default=0))
    discount = min(max(discount, ZERO), subtotal)

    totals = compute_totals(ChargeInputs(
        combine_food_bill=True,
        unbilled_food_total=subtotal,
        complimentary=discount,
        gst_enabled=False,
        show_gst=False,
        round_off=ZERO,
    ))
    bill = bill_from_booking(
        booking, totals,
        invoice_number=generate_invoice_number("FOOD-INV"),
        payment_mode=_payment_mode(data),
        items=[LineItem.from_food_order(o) for o in unbilled],
    )

    pdf_bytes = _render_or_none(hotel, bill, "FOOD")
    if pdf_bytes is None:
        return _error("Could not generate bill", 500)

    with transaction.atomic():
        inv = persist_invoice(bill, invoice_type="FOOD", booking=booking, user=request.user)
        FoodOrder.objects.filter(pk__in=[o.pk for o in unbilled]).update(invoice=inv)

    _dbg("FOOD:SUCCESS", booking_id=booking.id, invoice=inv.invoice_number,
         subtotal=subtotal, discount=discount, total=totals.total_amount)
    return _pdf_response(pdf_bytes, "FOOD", inv.invoice_number)


@api_view(["GET", "POST"])
@permission_classes([KitchenAccess])
def kitchen_bill(request, booking_id: int):
    """
    GET: the booking's food invoices and its master bill, newest first.
    POST {"action": "finalize", "discount": ...}: one consolidated master bill over
    every food order of the stay, billed or not. At most one per booking; the
    discount is capped so the total never goes below zero.
    """
    booking = Booking.objects.select_related("room", "room__room_type").filter(pk=booking_id).first()
    if not booking:
        return _error("Booking not found", 404)

    if request.method == "GET":
        qs = (Invoice.objects.filter(booking=booking, invoice_type__in=("FOOD", "KITCHEN_MASTER"))
              .order_by("-created_at", "-id"))
        return Response({"invoices": InvoiceSerializer(qs, many=True).data})

    data = request.data
    _dbg("MASTER:ENTRY", booking_id=booking_id, user_id=getattr(request.user, "id", None))
    if _s(data, "action").lower() != "finalize":
        return _error("Unknown action", 400)

    with transaction.atomic():
        # serialises concurrent finalize calls for the same stay
        Booking.objects.select_for_update().filter(pk=booking.pk).first()
        if Invoice.objects.filter(booking=booking, invoice_type="KITCHEN_MASTER").exists():
            return _error("Master bill already finalized", 400)

        orders = list(
            FoodOrder.objects.select_related("food_item")
            .filter(booking=booking)
            .order_by("created_at", "id")
        )
        if not orders:
            return _error("No food orders found", 400)

        subtotal = money2(sum((o.line_total for o in orders), ZERO))
        discount = min(max(money2(_pick(data, "discount", default=0)), ZERO), subtotal)
        totals = compute_totals(ChargeInputs(
            food_charges=subtotal,
            discount=discount,
            gst_enabled=False,
            show_gst=False,
            round_off=ZERO,
        ))
        bill = bill_from_booking(
            booking, totals,
            invoice_number=generate_invoice_number("MST"),
            payment_mode=_payment_mode(data),
            items=[LineItem.from_food_order(o) for o in orders],
        )
        inv = persist_invoice(bill, invoice_type="KITCHEN_MASTER", booking=booking, user=request.user)

    _dbg("MASTER:SUCCESS", booking_id=booking.id, invoice=inv.invoice_number,
         subtotal=subtotal, discount=discount, total=totals.total_amount)
    return Response({"success": True, "invoice": InvoiceSerializer(inv).data}, status=201)


# -----------------------------------
# Re-download
# -----------------------------------

@api_view(["GET"])
@permission_classes([IsFrontDesk])
@renderer_classes(PDF_RENDERERS)
def download_invoice(request, invoice_id: int):
    hotel = HotelSettings.current()
    if not hotel:
        return _error("Hotel settings not found", 404)

    inv = Invoice.objects.filter(pk=invoice_id).first()
    if not inv:
        return _error("Invoice not found", 404)

    bill = bill_from_invoice(inv)
    pdf_bytes = _render_or_none(hotel, bill, "DOWNLOAD")
    if pdf_bytes is None:
        return _error("Could not generate bill", 500)

    _dbg("DOWNLOAD:SUCCESS", invoice=inv.invoice_number, user_id=getattr(request.user, "id", None))
    return _pdf_response(pdf_bytes, inv.invoice_type, inv.invoice_number)


# -----------------------------------
# Police verification
# -----------------------------------

def police_verification_rows():
    id_labels = dict(Booking.ID_TYPES)
    qs = (Booking.objects.select_related("room")
          .filter(status="CHECKED_IN")
          .order_by("check_in_date", "id"))
    return [
        {
            "s_no": i,
            "name": b.guest_name,
            "id_type": id_labels.get(b.id_type, b.id_type),
            "id_number": mask_id_number(b.id_number, b.id_type),
            "room_number": b.room.room_number,
            "check_in_date": b.check_in_date,
        }
        for i, b in enumerate(qs, start=1)
    ]


@api_view(["GET"])
@permission_classes([IsManager])
@renderer_classes(PDF_RENDERERS)
def police_verification(request):
    """
    Checked-in guests with masked ID numbers.
    JSON list by default; `?format=pdf` streams the printable report.
    """
    rows = police_verification_rows()
    if request.query_params.get("format") == "pdf":
        hotel = HotelSettings.current()
        try:
            pdf_bytes = build_police_verification_pdf(rows, hotel=hotel)
        except Exception:
            log.exception("POLICE: pdf render failed")
            return _error("Could not generate report", 500)
        resp = HttpResponse(pdf_bytes, content_type="application/pdf")
        stamp = timezone.localtime().strftime("%Y%m%d")
        resp["Content-Disposition"] = f'attachment; filename="police-verification-{stamp}.pdf"'
        return resp

    return Response(rows)
