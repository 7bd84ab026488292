# pdf.py
from __future__ import annotations

import os
from io import BytesIO
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Sequence, Tuple, Union

from django.conf import settings
from django.contrib.staticfiles import finders
from django.utils import timezone

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader

from .billing import BillData
from .formatting import money, format_date, format_datetime


# =====================================================================
# DESIGN TOKENS & LAYOUT SYSTEM
# =====================================================================

# Page + margins
PAGE_W, PAGE_H = A4
MARGIN = 8 * mm

LEFT   = MARGIN
RIGHT  = PAGE_W - MARGIN
TOP    = PAGE_H - MARGIN
BOTTOM = MARGIN

# Grid & rhythm
GRID   = 4 * mm
INSET  = 2.5 * mm   # inner padding for bordered blocks
ROW_H  = 6 * mm     # table row height
LINE_H = 4.6 * mm   # text line step inside blocks
FOOTER_H = 26 * mm

# Color palette (print friendly)
def _hex(rgb: str) -> colors.Color:
    rgb = rgb.lstrip("#")
    r, g, b = tuple(int(rgb[i:i+2], 16) / 255 for i in (0, 2, 4))
    return colors.Color(r, g, b)

RULE        = _hex("#000000")
TABLE_HEAD  = _hex("#EEEEEE")
TEXT        = _hex("#000000")
MUTE        = _hex("#4B5563")

# Type scale (pt)
T_7  = 7
T_8  = 8.5
T_9  = 9.2
T_10 = 10.5
T_11 = 11
T_16 = 16

# Built-in Times family; no font files needed
_FONT_BODY   = "Times-Roman"
_FONT_BOLD   = "Times-Bold"
_FONT_ITALIC = "Times-Italic"

DECLARATION = (
    "I agree that I am responsible for the full payment of this bill in the event if not paid "
    "by the company, organisation or person indicated."
)

PAYMENT_MODE_LABELS = {"CASH": "Cash", "ONLINE": "Online"}

Align = str  # "l" | "c" | "r"


# =====================================================================
# ASSET HELPERS
# =====================================================================

def _find_static(*filenames: str) -> Optional[str]:
    """Try multiple filenames via Django finders and common static dirs."""
    for name in filenames:
        if not name:
            continue
        if os.path.isabs(name) and os.path.exists(name):
            return name

        p = finders.find(name)
        if p:
            return p if isinstance(p, str) else p[0]

        sroot = getattr(settings, "STATIC_ROOT", None)
        if sroot:
            cand = os.path.join(sroot, name)
            if os.path.exists(cand):
                return cand

        for base in getattr(settings, "STATICFILES_DIRS", []):
            cand = os.path.join(base, name)
            if os.path.exists(cand):
                return cand
    return None


def _text_width(c: canvas.Canvas, text: str, font: str, size: float) -> float:
    return c.stringWidth(text or "", font, size)


def _wrap_text(c: canvas.Canvas, text: str, max_w: float, font: str, size: float) -> List[str]:
    """Simple word-wrap avoiding mid-word breaks."""
    words = (text or "").split()
    lines, cur = [], ""
    for w in words:
        cand = (cur + " " + w).strip()
        if _text_width(c, cand, font, size) <= max_w or not cur:
            cur = cand
        else:
            lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def _ellipsis(c: canvas.Canvas, text: str, max_w: float, font: str, size: float) -> str:
    """Truncate with '...' so the cell never spills into its neighbour."""
    txt = (text or "").strip()
    if _text_width(c, txt, font, size) <= max_w:
        return txt
    dots = "..."
    out = txt
    while out and _text_width(c, out + dots, font, size) > max_w:
        out = out[:-1]
    return out.rstrip() + dots


def _safe_img(c: canvas.Canvas, path: Optional[str], x: float, y: float, w: float, h: float) -> bool:
    if not path:
        return False
    try:
        img = ImageReader(path)
        iw, ih = img.getSize()
        r = min(w / iw, h / ih)
        rw, rh = iw * r, ih * r
        c.drawImage(img, x + (w - rw) / 2.0, y + (h - rh) / 2.0, rw, rh, mask='auto')
        return True
    except (OSError, ValueError):
        return False


def _logo_or_placeholder(c: canvas.Canvas, filename: Optional[str], x: float, y: float, w: float, h: float):
    """Draw the hotel logo; if it is not found, a bordered "LOGO" box."""
    p = _find_static(filename) if filename else None
    if _safe_img(c, p, x, y, w, h):
        return
    c.saveState()
    c.setStrokeColor(RULE)
    c.setLineWidth(0.8)
    c.rect(x, y, w, h, stroke=1, fill=0)
    c.setFont(_FONT_BOLD, T_10)
    c.setFillColor(MUTE)
    c.drawCentredString(x + w/2.0, y + h/2.0 - 3, "LOGO")
    c.restoreState()


# =====================================================================
# PRIMITIVES
# =====================================================================

def draw_h_rule(c: canvas.Canvas, x1: float, y: float, x2: float, width: float = 0.8):
    c.saveState()
    c.setStrokeColor(RULE)
    c.setLineWidth(width)
    c.line(x1, y, x2, y)
    c.restoreState()


def _draw_cell_text(c: canvas.Canvas, text: str, x0: float, x1: float, baseline: float,
                    align: Align, font: str, size: float):
    pad = 1.5 * mm
    txt = _ellipsis(c, text, (x1 - x0) - 2 * pad, font, size)
    c.setFont(font, size)
    if align == "r":
        c.drawRightString(x1 - pad, baseline, txt)
    elif align == "c":
        c.drawCentredString((x0 + x1) / 2.0, baseline, txt)
    else:
        c.drawString(x0 + pad, baseline, txt)


def _draw_table(
    c: canvas.Canvas,
    *,
    y: float,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    widths: Sequence[float],
    aligns: Optional[Sequence[Align]] = None,
) -> float:
    """
    Full-width grid table. `widths` are fractions of the printable width.
    Returns y below the block.
    """
    aligns = aligns or ["l"] * len(headers)
    total_w = RIGHT - LEFT
    xs = [LEFT]
    for f in widths:
        xs.append(xs[-1] + total_w * f)
    xs[-1] = RIGHT

    n_rows = 1 + len(rows)
    h = n_rows * ROW_H
    text_dy = (ROW_H - T_9 * 0.7) / 2.0

    c.saveState()
    # header band
    c.setFillColor(TABLE_HEAD)
    c.rect(LEFT, y - ROW_H, total_w, ROW_H, stroke=0, fill=1)
    c.setFillColor(TEXT)
    for i, head in enumerate(headers):
        _draw_cell_text(c, head, xs[i], xs[i + 1], y - ROW_H + text_dy, "c", _FONT_BOLD, T_9)

    # body
    yy = y - ROW_H
    for row in rows:
        for i, cell in enumerate(row):
            _draw_cell_text(c, str(cell or ""), xs[i], xs[i + 1], yy - ROW_H + text_dy, aligns[i], _FONT_BODY, T_9)
        yy -= ROW_H

    # grid
    c.setStrokeColor(RULE)
    c.setLineWidth(0.6)
    c.rect(LEFT, y - h, total_w, h, stroke=1, fill=0)
    for r in range(1, n_rows):
        c.line(LEFT, y - r * ROW_H, RIGHT, y - r * ROW_H)
    for x in xs[1:-1]:
        c.line(x, y - h, x, y)
    c.restoreState()

    return y - h - GRID


# =====================================================================
# INVOICE BLOCKS
# =====================================================================

def _header_block(c: canvas.Canvas, *, hotel, tax_visible: bool, logo_filename: Optional[str]) -> float:
    """Logo, centered hotel identity, rule. Returns y below this block."""
    logo_w, logo_h = 26 * mm, 18 * mm
    _logo_or_placeholder(c, logo_filename, LEFT, TOP - logo_h, logo_w, logo_h)

    cx = PAGE_W / 2.0
    text_w = (RIGHT - LEFT) - 2 * (logo_w + GRID)

    c.setFillColor(TEXT)
    c.setFont(_FONT_BOLD, T_16)
    c.drawCentredString(cx, TOP - 6 * mm, (getattr(hotel, "name", "") or "").upper())

    lines: List[str] = []
    lines += _wrap_text(c, getattr(hotel, "address", "") or "", text_w, _FONT_BODY, T_9)
    if getattr(hotel, "phone", ""):
        lines.append(f"Phone: {hotel.phone}")
    if getattr(hotel, "email", ""):
        lines.append(f"Email: {hotel.email}")
    if tax_visible and getattr(hotel, "gstin", ""):
        lines.append(f"GSTIN: {hotel.gstin}")

    c.setFont(_FONT_BODY, T_9)
    ly = TOP - 11 * mm
    for ln in lines:
        c.drawCentredString(cx, ly, ln)
        ly -= 4.2 * mm

    y = min(ly + 2 * mm, TOP - logo_h) - 2 * mm
    draw_h_rule(c, LEFT, y, RIGHT, width=1)
    return y - GRID


def _meta_block(c: canvas.Canvas, *, y: float, bill: BillData) -> float:
    baseline = y - 1 * mm
    c.setFillColor(TEXT)
    c.setFont(_FONT_BODY, T_9)
    if bill.bill_number:
        c.drawString(LEFT, baseline, f"Visitor's Register Sr. No.: {bill.bill_number}")
    c.setFont(_FONT_BOLD, T_9)
    c.drawCentredString(PAGE_W / 2.0, baseline, f"Bill No.: {bill.invoice_number}")
    c.setFont(_FONT_BODY, T_9)
    c.drawRightString(RIGHT, baseline, f"Bill Date: {format_date(bill.bill_date)}")
    return baseline - GRID


def _room_table_block(c: canvas.Canvas, *, y: float, bill: BillData) -> float:
    return _draw_table(
        c, y=y,
        headers=["Room No", "PARTICULARS", "RENT PER DAY", "NO. OF DAYS"],
        rows=[[bill.room_number, bill.room_type, money(bill.rent_per_day), str(bill.days)]],
        widths=[0.18, 0.42, 0.22, 0.18],
        aligns=["c", "l", "r", "c"],
    )


def _guest_block(c: canvas.Canvas, *, y: float, bill: BillData) -> float:
    """
    Bordered two-column block split by a vertical rule.
    Left: identity and contact. Right: stay dates and head count.
    """
    mid_x = LEFT + (RIGHT - LEFT) * 0.55
    left_label_w = 24 * mm
    right_label_w = 38 * mm

    addr_w = (mid_x - INSET) - (LEFT + INSET + left_label_w)
    addr_lines = _wrap_text(c, bill.guest_address, addr_w, _FONT_BODY, T_9) or [""]

    left: List[Tuple[str, List[str]]] = [
        ("Guest Name:", [bill.guest_name]),
        ("Address:", addr_lines),
        ("State:", [bill.guest_state]),
        ("Nationality:", [bill.guest_nationality]),
    ]
    if bill.tax_visible:
        left.append(("GST No.:", [bill.guest_gst_number]))
    left.append(("Mobile No.:", [bill.guest_mobile]))

    right: List[Tuple[str, List[str]]] = [
        ("Check In Date & Time:", [format_datetime(bill.check_in_date)]),
        ("Check Out Date & Time:", [format_datetime(bill.check_out_date)]),
        ("Adults:", [str(bill.adults)]),
        ("Children:", [str(bill.children)]),
        ("Total Guests:", [str(bill.total_guests)]),
    ]

    n_left = sum(len(v) for _, v in left)
    n_right = sum(len(v) for _, v in right)
    h = max(n_left, n_right) * LINE_H + 2 * INSET

    c.saveState()
    c.setStrokeColor(RULE)
    c.setLineWidth(0.6)
    c.rect(LEFT, y - h, RIGHT - LEFT, h, stroke=1, fill=0)
    c.line(mid_x, y - h, mid_x, y)
    c.setFillColor(TEXT)

    def _column(x0: float, x1: float, label_w: float, entries):
        ly = y - INSET - T_9 * 0.75
        for label, values in entries:
            c.setFont(_FONT_BOLD, T_9)
            c.drawString(x0, ly, label)
            c.setFont(_FONT_BODY, T_9)
            for v in values:
                c.drawString(x0 + label_w, ly, _ellipsis(c, v or "", x1 - (x0 + label_w), _FONT_BODY, T_9))
                ly -= LINE_H

    _column(LEFT + INSET, mid_x - INSET, left_label_w, left)
    _column(mid_x + INSET, RIGHT - INSET, right_label_w, right)
    c.restoreState()

    return y - h - GRID


def _company_table_block(c: canvas.Canvas, *, y: float, bill: BillData) -> float:
    # designation column is printed blank
    return _draw_table(
        c, y=y,
        headers=["Company Name", "Department", "Designation"],
        rows=[[bill.company_name, bill.department or bill.company_code, ""]],
        widths=[0.4, 0.3, 0.3],
    )


def _items_table_block(c: canvas.Canvas, *, y: float, bill: BillData) -> float:
    rows = [
        [
            format_date(it.timestamp or bill.bill_date),
            str(it.quantity),
            it.name,
            money(it.unit_price),
            money(it.line_total),
        ]
        for it in bill.items
    ] or [["", "", "", "", ""]]
    return _draw_table(
        c, y=y,
        headers=["Dt.", "Qty", "Product", "Rate", "Value"],
        rows=rows,
        widths=[0.15, 0.08, 0.41, 0.18, 0.18],
        aligns=["c", "c", "l", "r", "r"],
    )


def summary_rows(bill: BillData) -> List[Tuple[str, Union[Decimal, str]]]:
    """
    Charges summary, top to bottom, ending with the net payable.
    Amount rows carry Decimals; "Bill Cleared Through" carries the payment mode label.
    """
    t = bill.totals
    rows: List[Tuple[str, Union[Decimal, str]]] = [("Room Charges Before Tax", t.room_charges_before_tax)]
    if bill.tax_visible and t.gst_amount > 0:
        rows.append(("Add: GST on Room Charges", t.gst_amount))
    if t.food_charges != 0:
        rows.append(("Food Charges", t.food_charges))
    if bill.tax_visible and t.food_gst_amount > 0:
        rows.append(("Add: GST on Food Charges", t.food_gst_amount))
    if t.discount > 0:
        rows.append(("Less: Discount", t.discount))
    rows.append(("Bill Cleared Through", PAYMENT_MODE_LABELS.get(bill.payment_mode, bill.payment_mode or "")))
    rows.append(("Total Bill Amount", t.base_total + t.gst_amount + t.food_gst_amount))
    if t.advance_amount > 0:
        rows.append(("Less: Advance", t.advance_amount))
    if t.round_off != 0:
        rows.append(("Round Off", t.round_off))
    rows.append(("Net Payable Amount", t.total_amount))
    return rows


def _summary_block(c: canvas.Canvas, *, y: float, bill: BillData) -> float:
    rows = summary_rows(bill)
    *body, (net_label, net_value) = rows

    label_right = RIGHT - 42 * mm
    value_right = RIGHT - INSET
    step = 5 * mm

    c.setFillColor(TEXT)
    yy = y - 1 * mm
    for label, value in body:
        c.setFont(_FONT_BODY, T_9)
        c.drawRightString(label_right, yy, label)
        c.drawRightString(value_right, yy, money(value) if isinstance(value, Decimal) else str(value))
        yy -= step

    draw_h_rule(c, label_right - 50 * mm, yy + step - 2 * mm, RIGHT)
    yy -= 2 * mm
    c.setFont(_FONT_BOLD, T_11)
    c.drawRightString(label_right, yy, net_label)
    c.drawRightString(value_right, yy, money(net_value))
    return yy - GRID


def _footer_block(c: canvas.Canvas):
    """Declaration and signature lines, pinned above the bottom margin."""
    c.saveState()
    c.setFillColor(TEXT)
    decl_lines = _wrap_text(c, DECLARATION, RIGHT - LEFT, _FONT_ITALIC, T_7)
    c.setFont(_FONT_ITALIC, T_7)
    dy = BOTTOM + FOOTER_H - 4 * mm
    for ln in decl_lines:
        c.drawString(LEFT, dy, ln)
        dy -= 3.2 * mm

    sig_w = 55 * mm
    sig_y = BOTTOM + 8 * mm
    c.setStrokeColor(RULE)
    c.setLineWidth(0.6)
    c.line(LEFT, sig_y, LEFT + sig_w, sig_y)
    c.line(RIGHT - sig_w, sig_y, RIGHT, sig_y)

    c.setFont(_FONT_BODY, T_9)
    c.drawCentredString(LEFT + sig_w / 2.0, sig_y - 4 * mm, "Cashier's Signature")
    c.drawCentredString(RIGHT - sig_w / 2.0, sig_y - 4 * mm, "Guest's Signature")
    c.restoreState()


# =====================================================================
# PUBLIC API
# =====================================================================

def _logo_setting() -> Optional[str]:
    return (getattr(settings, "FRONTDESK", {}) or {}).get("LOGO_FILENAME")


def build_invoice_pdf(hotel, bill: BillData, *, logo_filename: Optional[str] = None) -> bytes:
    """
    Single A4 page, flowing top to bottom:
    header, meta line, room table, guest block, company table, items table,
    charges summary; the footer is pinned to the bottom margin.
    No pagination: long item lists run into the footer.
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Invoice {bill.invoice_number}")
    c.setAuthor(getattr(hotel, "name", "") or "")

    y = _header_block(c, hotel=hotel, tax_visible=bill.tax_visible,
                      logo_filename=logo_filename or _logo_setting())
    y = _meta_block(c, y=y, bill=bill)
    y = _room_table_block(c, y=y, bill=bill)
    y = _guest_block(c, y=y, bill=bill)
    y = _company_table_block(c, y=y, bill=bill)
    y = _items_table_block(c, y=y, bill=bill)
    _summary_block(c, y=y, bill=bill)
    _footer_block(c)

    c.showPage()
    c.save()
    return buf.getvalue()


def build_police_verification_pdf(rows: Sequence[dict], *, hotel=None,
                                  generated_at: Optional[datetime] = None) -> bytes:
    """
    Checked-in guest list for the police station. `rows` are the same dicts the
    JSON endpoint returns (id numbers already masked). Breaks onto new pages.
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle("Police Verification Report")

    headers = ["S.No.", "Guest Name", "ID Type", "ID Number", "Room", "Check In"]
    widths = [0.08, 0.3, 0.14, 0.2, 0.1, 0.18]
    aligns = ["c", "l", "l", "l", "c", "c"]
    stamp = format_datetime(generated_at or timezone.now())

    def _page_top() -> float:
        c.setFillColor(TEXT)
        c.setFont(_FONT_BOLD, T_16)
        c.drawCentredString(PAGE_W / 2.0, TOP - 6 * mm, (getattr(hotel, "name", "") or "").upper())
        c.setFont(_FONT_BOLD, T_11)
        c.drawCentredString(PAGE_W / 2.0, TOP - 12 * mm, "Police Verification Report")
        c.setFont(_FONT_BODY, T_9)
        c.drawRightString(RIGHT, TOP - 17 * mm, f"Generated: {stamp}")
        draw_h_rule(c, LEFT, TOP - 19 * mm, RIGHT)
        return TOP - 19 * mm - GRID

    body = [
        [
            str(r.get("s_no", "")),
            r.get("name", ""),
            r.get("id_type", ""),
            r.get("id_number", ""),
            r.get("room_number", ""),
            format_datetime(r.get("check_in_date")),
        ]
        for r in rows
    ]

    per_page = max(1, int((TOP - 19 * mm - GRID - BOTTOM) // ROW_H) - 1)
    chunks = [body[i:i + per_page] for i in range(0, len(body), per_page)] or [[]]
    for chunk in chunks:
        y = _page_top()
        if chunk:
            _draw_table(c, y=y, headers=headers, rows=chunk, widths=widths, aligns=aligns)
        else:
            c.setFont(_FONT_ITALIC, T_10)
            c.drawCentredString(PAGE_W / 2.0, y - GRID, "No checked-in guests.")
        c.showPage()

    c.save()
    return buf.getvalue()
