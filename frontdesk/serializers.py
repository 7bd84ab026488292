from rest_framework import serializers
from django.contrib.auth.models import User
from .models import (
    UserProfile, HotelSettings,
    RoomType, Room, Booking,
    FoodItem, FoodOrder,
    Invoice, Payment, AuditLog,
)
from .permissions import user_role

# --- Users ---

class UserProfileSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = UserProfile
        fields = ["id", "user", "username", "role", "full_name", "phone_number", "updated_at"]
        read_only_fields = ["updated_at"]


class UserSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "role", "full_name"]

    def get_role(self, obj):
        return user_role(obj)

    def get_full_name(self, obj):
        profile = getattr(obj, "profile", None)
        return getattr(profile, "full_name", "") or obj.get_full_name()


# --- Hotel / rooms ---

class HotelSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = HotelSettings
        fields = ["id", "name", "address", "phone", "email", "gstin", "updated_at"]
        read_only_fields = ["updated_at"]


class RoomTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoomType
        fields = ["id", "name"]


class RoomSerializer(serializers.ModelSerializer):
    room_type_name = serializers.CharField(source="room_type.name", read_only=True)

    class Meta:
        model = Room
        fields = ["id", "room_number", "room_type", "room_type_name", "status"]


class BookingSerializer(serializers.ModelSerializer):
    room_number = serializers.CharField(source="room.room_number", read_only=True)
    days = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id", "room", "room_number",
            "guest_name", "guest_address", "guest_state", "guest_nationality",
            "guest_gst_number", "guest_mobile", "id_type", "id_number",
            "company_name", "company_code", "department", "designation",
            "room_price", "tariff", "additional_guests", "additional_guest_charges", "advance_amount",
            "check_in_date", "checkout_date", "days", "status", "created_at",
        ]
        read_only_fields = ["created_at"]


# --- Kitchen ---

class FoodItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = FoodItem
        fields = ["id", "name", "category", "price", "is_available"]


class FoodOrderSerializer(serializers.ModelSerializer):
    food_item_name = serializers.CharField(source="food_item.name", read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = FoodOrder
        fields = ["id", "booking", "food_item", "food_item_name", "quantity", "unit_price",
                  "line_total", "invoice", "created_at"]
        read_only_fields = ["invoice", "created_at"]
        extra_kwargs = {"unit_price": {"required": False}}

    def validate_booking(self, booking):
        if booking.status != "CHECKED_IN":
            raise serializers.ValidationError("Food can only be ordered for a checked-in booking.")
        return booking


# --- Billing ---

class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = "__all__"
        read_only_fields = [f.name for f in Invoice._meta.fields]


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ["id", "booking", "invoice", "mode", "status", "amount", "created_at", "updated_at"]
        read_only_fields = ["created_at", "updated_at"]


class AuditLogSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source="actor.username", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ["id", "actor", "actor_username", "action", "model_name", "object_id",
                  "object_repr", "changes", "timestamp", "remote_addr"]
