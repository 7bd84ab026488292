# admin.py
from django.contrib import admin, messages
from django.db import models as dj_models
from django.forms import Textarea
from django.http import HttpResponse

from .billing import bill_from_invoice, pdf_filename
from .formatting import mask_id_number
from .models import (
    UserProfile, HotelSettings,
    RoomType, Room, Booking,
    FoodItem, FoodOrder,
    Invoice, Payment, AuditLog,
)
from .pdf import build_invoice_pdf


admin.site.site_header = "Front Desk Admin Panel"
admin.site.site_title = "Front Desk Admin"
admin.site.index_title = "Welcome to Front Desk Admin"


# -------------------------
# Basic model registrations
# -------------------------
@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "full_name", "phone_number", "updated_at")
    list_filter = ("role",)
    search_fields = ("user__username", "user__email", "full_name", "phone_number")


@admin.register(HotelSettings)
class HotelSettingsAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "gstin", "updated_at")

    def has_add_permission(self, request):
        # single row
        return not HotelSettings.objects.exists()


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ("name",)
    search_fields = ("name",)


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("room_number", "room_type", "status")
    list_filter = ("room_type", "status")
    search_fields = ("room_number",)


class FoodOrderInline(admin.TabularInline):
    model = FoodOrder
    extra = 0
    fields = ("food_item", "quantity", "unit_price", "invoice", "created_at")
    readonly_fields = ("invoice", "created_at")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id", "guest_name", "room", "status",
        "check_in_date", "checkout_date",
        "room_price", "additional_guests", "advance_amount",
        "masked_id",
    )
    list_filter = ("status", "id_type", "room__room_type")
    search_fields = ("id", "guest_name", "guest_mobile", "company_name", "room__room_number")
    inlines = [FoodOrderInline]

    fieldsets = (
        ("Core", {"fields": ("room", "status", "check_in_date", "checkout_date")}),
        ("Guest", {"fields": ("guest_name", "guest_address", "guest_state", "guest_nationality",
                              "guest_gst_number", "guest_mobile", "id_type", "id_number")}),
        ("Company", {"fields": ("company_name", "company_code", "department", "designation")}),
        ("Pricing Snapshot", {
            "fields": ("room_price", "tariff", "additional_guests", "additional_guest_charges", "advance_amount"),
            "description": "Defaults used at checkout; the desk can still override them on the bill.",
        }),
    )

    @admin.display(description="ID No.")
    def masked_id(self, obj):
        return mask_id_number(obj.id_number, obj.id_type)


@admin.register(FoodItem)
class FoodItemAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "price", "is_available")
    list_filter = ("category", "is_available")
    search_fields = ("name",)


@admin.register(FoodOrder)
class FoodOrderAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "food_item", "quantity", "unit_price", "invoice", "created_at")
    list_filter = ("food_item__category",)
    search_fields = ("booking__guest_name", "food_item__name")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number", "invoice_type", "guest_name", "room_number",
        "total_amount", "payment_mode", "bill_date", "created_by",
    )
    list_filter = ("invoice_type", "payment_mode", "is_manual", "gst_enabled")
    search_fields = ("invoice_number", "guest_name", "room_number", "bill_number")
    actions = ["download_pdf"]

    formfield_overrides = {
        dj_models.JSONField: {"widget": Textarea(attrs={"rows": 6, "cols": 100})},
    }

    def get_readonly_fields(self, request, obj=None):
        # stored bills are never edited
        if obj:
            return [f.name for f in self.model._meta.fields]
        return ()

    @admin.action(description="Download selected invoice as PDF")
    def download_pdf(self, request, queryset):
        if queryset.count() != 1:
            self.message_user(request, "Select exactly one invoice.", level=messages.WARNING)
            return None
        hotel = HotelSettings.current()
        if not hotel:
            self.message_user(request, "Hotel settings not found.", level=messages.ERROR)
            return None
        inv = queryset.first()
        resp = HttpResponse(build_invoice_pdf(hotel, bill_from_invoice(inv)), content_type="application/pdf")
        resp["Content-Disposition"] = f'attachment; filename="{pdf_filename(inv.invoice_type, inv.invoice_number)}"'
        return resp


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "invoice", "mode", "status", "amount", "created_at")
    list_filter = ("mode", "status")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "actor", "action", "model_name", "object_id", "object_repr", "remote_addr")
    list_filter = ("action", "model_name")
    search_fields = ("object_repr", "actor__username")
    readonly_fields = ("actor", "action", "model_name", "object_id", "object_repr", "changes", "timestamp", "remote_addr")
