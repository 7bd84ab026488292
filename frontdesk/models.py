#models.py
import math
from decimal import Decimal

from django.db import models
from django.conf import settings
from django.utils import timezone
from django.core.validators import MinValueValidator
import builtins


ZERO = Decimal("0.00")


def _money_field(**kw):
    kw.setdefault("default", ZERO)
    return models.DecimalField(max_digits=12, decimal_places=2, **kw)


class UserProfile(models.Model):
    ROLE_CHOICES = (
        ("MANAGER", "Manager"),
        ("STAFF", "Front-desk Staff"),
        ("CHEF", "Chef"),
    )

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default="STAFF")
    full_name = models.CharField(max_length=255, blank=True, default="")
    phone_number = models.CharField(max_length=32, blank=True, default="")

    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username} ({self.role})"


class HotelSettings(models.Model):
    """
    Single-row hotel identity printed on every bill.
    Read once per request; never cached across requests.
    """
    name = models.CharField(max_length=200)
    address = models.TextField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    gstin = models.CharField(max_length=20, blank=True, default="", help_text="Printed only on tax-visible bills")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "hotel settings"

    def __str__(self):
        return self.name

    @classmethod
    def current(cls):
        return cls.objects.order_by("id").first()


class RoomType(models.Model):
    """
    Examples: 'AC', 'Non-AC', 'Deluxe', 'Single Bed', 'Double Bed'
    """
    name = models.CharField(max_length=60, unique=True)

    def __str__(self):
        return self.name


class Room(models.Model):
    STATUS = (
        ("AVAILABLE", "Available"),
        ("OCCUPIED", "Occupied"),
        ("MAINTENANCE", "Maintenance"),
    )
    room_number = models.CharField(max_length=20, unique=True)
    room_type = models.ForeignKey(RoomType, on_delete=models.PROTECT, related_name="rooms")
    status = models.CharField(max_length=20, choices=STATUS, default="AVAILABLE")

    class Meta:
        ordering = ["room_number"]

    def __str__(self):
        return f"{self.room_number} • {self.room_type.name} • {self.status}"


class Booking(models.Model):
    STATUS = (
        ("CHECKED_IN", "Checked In"),
        ("CHECKED_OUT", "Checked Out"),
        ("CANCELLED", "Cancelled"),
    )

    ID_TYPES = (
        ("AADHAAR", "Aadhaar"),
        ("PAN", "PAN Card"),
        ("PASSPORT", "Passport"),
        ("DRIVING_LICENSE", "Driving License"),
        ("VOTER_ID", "Voter ID"),
        ("OTHER", "Other"),
    )

    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name="bookings")

    # guest identity
    guest_name = models.CharField(max_length=200)
    guest_address = models.TextField(blank=True, default="")
    guest_state = models.CharField(max_length=80, blank=True, default="")
    guest_nationality = models.CharField(max_length=80, blank=True, default="Indian")
    guest_gst_number = models.CharField(max_length=20, blank=True, default="")
    guest_mobile = models.CharField(max_length=32, blank=True, default="")
    id_type = models.CharField(max_length=20, choices=ID_TYPES, default="AADHAAR")
    id_number = models.CharField(max_length=40, blank=True, default="")

    # company (corporate stays)
    company_name = models.CharField(max_length=200, blank=True, default="")
    company_code = models.CharField(max_length=60, blank=True, default="")
    department = models.CharField(max_length=120, blank=True, default="")
    designation = models.CharField(max_length=120, blank=True, default="")

    # pricing snapshot
    room_price = _money_field(help_text="Rent per day")
    tariff = _money_field()
    additional_guests = models.PositiveSmallIntegerField(default=0)
    additional_guest_charges = _money_field(help_text="Charge per additional guest")
    advance_amount = _money_field()

    check_in_date = models.DateTimeField(default=timezone.now)
    checkout_date = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS, default="CHECKED_IN")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-check_in_date"]

    def __str__(self):
        return f"Booking #{self.id} ({self.guest_name} • Room {getattr(self.room, 'room_number', '-')} • {self.status})"

    @builtins.property
    def days(self) -> int:
        """Billable days; part days count as a full day, never less than one."""
        end = self.checkout_date or timezone.now()
        seconds = (end - self.check_in_date).total_seconds()
        return max(1, math.ceil(seconds / 86400))


class FoodItem(models.Model):
    name = models.CharField(max_length=120, unique=True)
    category = models.CharField(max_length=60, blank=True, default="")
    price = _money_field()
    is_available = models.BooleanField(default=True)

    class Meta:
        ordering = ["category", "name"]

    def __str__(self):
        return f"{self.name} - Rs.{self.price}"


class Invoice(models.Model):
    TYPE_CHOICES = (
        ("ROOM", "Room"),
        ("FOOD", "Food"),
        ("MANUAL", "Manual"),
        ("KITCHEN_MASTER", "Kitchen Master"),
    )
    PAYMENT_MODES = (
        ("CASH", "Cash"),
        ("ONLINE", "Online"),
    )

    booking = models.ForeignKey(Booking, on_delete=models.SET_NULL, null=True, blank=True, related_name="invoices")
    invoice_number = models.CharField(max_length=64, unique=True)
    invoice_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default="ROOM")
    is_manual = models.BooleanField(default=False)
    bill_number = models.CharField(max_length=40, blank=True, default="", help_text="Visitor's register / manual bill no.")
    bill_date = models.DateTimeField(default=timezone.now)

    # guest snapshot
    guest_name = models.CharField(max_length=200)
    guest_address = models.TextField(blank=True, default="")
    guest_state = models.CharField(max_length=80, blank=True, default="")
    guest_nationality = models.CharField(max_length=80, blank=True, default="")
    guest_gst_number = models.CharField(max_length=20, blank=True, default="")
    guest_mobile = models.CharField(max_length=32, blank=True, default="")
    id_type = models.CharField(max_length=20, blank=True, default="")
    id_number = models.CharField(max_length=40, blank=True, default="")
    company_name = models.CharField(max_length=200, blank=True, default="")
    company_code = models.CharField(max_length=60, blank=True, default="")
    department = models.CharField(max_length=120, blank=True, default="")
    designation = models.CharField(max_length=120, blank=True, default="")

    # room snapshot
    room_number = models.CharField(max_length=20, blank=True, default="")
    room_type = models.CharField(max_length=60, blank=True, default="")
    days = models.PositiveIntegerField(default=0)
    check_in_date = models.DateTimeField(null=True, blank=True)
    check_out_date = models.DateTimeField(null=True, blank=True)

    # charge components (see charges.ChargeTotals)
    room_charges = _money_field()
    tariff = _money_field()
    food_charges = _money_field()
    additional_guest_charges = _money_field(help_text="Charge per additional guest")
    additional_guests = models.PositiveSmallIntegerField(default=0)
    discount = _money_field()
    gst_enabled = models.BooleanField(default=False)
    show_gst = models.BooleanField(default=False)
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("5.00"),
                                      validators=[MinValueValidator(0)])
    gst_amount = _money_field()
    advance_amount = _money_field()
    round_off = _money_field()
    total_amount = _money_field()

    payment_mode = models.CharField(max_length=10, choices=PAYMENT_MODES, default="CASH")

    # shape: [{"name": "...", "quantity": 2, "unit_price": "120.00", "line_total": "240.00", "timestamp": "..."}]
    line_items = models.JSONField(default=list, blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name="invoices")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["invoice_type", "booking"])]

    def __str__(self):
        return f"{self.invoice_number} ({self.invoice_type} • Rs.{self.total_amount})"


class FoodOrder(models.Model):
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="food_orders")
    food_item = models.ForeignKey(FoodItem, on_delete=models.PROTECT, related_name="orders")
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = _money_field(help_text="Price snapshot at order time")
    # set once the order has been billed (food invoice or combined checkout)
    invoice = models.ForeignKey(Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name="food_orders")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.quantity} × {self.food_item.name} -> Booking {self.booking_id}"

    def save(self, *args, **kwargs):
        if not self.unit_price and self.food_item_id:
            self.unit_price = self.food_item.price
        super().save(*args, **kwargs)

    @builtins.property
    def line_total(self) -> Decimal:
        return (self.unit_price or ZERO) * self.quantity


class Payment(models.Model):
    MODE_CHOICES = Invoice.PAYMENT_MODES
    STATUS_CHOICES = (
        ("PAID", "Paid"),
        ("PENDING", "Pending"),
    )

    booking = models.ForeignKey(Booking, on_delete=models.SET_NULL, null=True, blank=True, related_name="payments")
    invoice = models.ForeignKey(Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name="payments")
    mode = models.CharField(max_length=10, choices=MODE_CHOICES, default="CASH")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="PENDING")
    amount = _money_field()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Payment #{self.id} Rs.{self.amount} ({self.mode} • {self.status})"


class AuditLog(models.Model):
    ACTION_CHOICES = (
        ("CREATE", "Create"),
        ("UPDATE", "Update"),
        ("DELETE", "Delete"),
        ("BULK", "Bulk Action"),
    )

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="audit_logs")
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_repr = models.CharField(max_length=200, blank=True)
    changes = models.JSONField(default=dict)
    timestamp = models.DateTimeField(auto_now_add=True)
    remote_addr = models.GenericIPAddressField(null=True, blank=True)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.timestamp} - {self.actor} - {self.action} {self.model_name} #{self.object_id}"
