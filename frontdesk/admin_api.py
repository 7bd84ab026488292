from django.contrib.auth.models import User
from django.db.models import Sum
from rest_framework import viewsets, mixins, serializers, routers
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import (
    UserProfile, HotelSettings,
    RoomType, Room, Booking,
    FoodItem, FoodOrder,
    Invoice, Payment, AuditLog,
)
from .serializers import (
    UserProfileSerializer,
    HotelSettingsSerializer,
    RoomTypeSerializer,
    RoomSerializer,
    BookingSerializer,
    FoodItemSerializer,
    FoodOrderSerializer,
    InvoiceSerializer,
    PaymentSerializer,
    AuditLogSerializer,
)
from .permissions import IsManager, KitchenAccess, FrontDeskEditsManagerDeletes
from .admin_mixins import AuditLogMixin, BulkActionMixin


class AdminModelViewSet(AuditLogMixin, BulkActionMixin, viewsets.ModelViewSet):
    permission_classes = [FrontDeskEditsManagerDeletes]


class ManagerModelViewSet(AdminModelViewSet):
    permission_classes = [IsManager]


class RoomTypeViewSet(AdminModelViewSet):
    queryset = RoomType.objects.all().order_by("name")
    serializer_class = RoomTypeSerializer
    search_fields = ["name"]


class RoomViewSet(AdminModelViewSet):
    queryset = Room.objects.all().select_related("room_type")
    serializer_class = RoomSerializer
    filterset_fields = ["status", "room_type"]
    search_fields = ["room_number"]
    bulk_update_fields = ("status",)

    @action(detail=False, methods=["get"])
    def available(self, request):
        qs = self.filter_queryset(self.get_queryset()).filter(status="AVAILABLE")
        return Response(self.get_serializer(qs, many=True).data)


class BookingViewSet(AdminModelViewSet):
    queryset = Booking.objects.all().select_related("room", "room__room_type")
    serializer_class = BookingSerializer
    filterset_fields = ["status", "room", "id_type"]
    search_fields = ["guest_name", "guest_mobile", "company_name", "room__room_number"]

    def perform_create(self, serializer):
        # a new stay occupies its room
        super().perform_create(serializer)
        booking = serializer.instance
        if booking.status == "CHECKED_IN":
            Room.objects.filter(pk=booking.room_id).update(status="OCCUPIED")

    @action(detail=True, methods=["get"], url_path="food-summary")
    def food_summary(self, request, pk=None):
        booking = self.get_object()
        unbilled = booking.food_orders.filter(invoice__isnull=True).select_related("food_item")
        billed = (Invoice.objects.filter(booking=booking, invoice_type="FOOD")
                  .aggregate(s=Sum("total_amount"))["s"])
        return Response({
            "booking": booking.id,
            "unbilled_orders": FoodOrderSerializer(unbilled, many=True).data,
            "unbilled_total": str(sum((o.line_total for o in unbilled), 0)),
            "previous_food_invoices_total": str(billed or "0.00"),
        })


class FoodItemViewSet(AdminModelViewSet):
    queryset = FoodItem.objects.all()
    serializer_class = FoodItemSerializer
    permission_classes = [KitchenAccess]
    filterset_fields = ["category", "is_available"]
    search_fields = ["name", "category"]
    bulk_update_fields = ("is_available", "category")


class FoodOrderViewSet(AdminModelViewSet):
    queryset = FoodOrder.objects.all().select_related("food_item", "booking")
    serializer_class = FoodOrderSerializer
    permission_classes = [KitchenAccess]
    filterset_fields = ["booking", "invoice"]


class InvoiceViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Invoices are only created by the billing flows; read-only here."""
    queryset = Invoice.objects.all().select_related("booking", "created_by")
    serializer_class = InvoiceSerializer
    permission_classes = [FrontDeskEditsManagerDeletes]
    filterset_fields = ["invoice_type", "booking", "payment_mode", "is_manual"]
    search_fields = ["invoice_number", "guest_name", "room_number"]


class PaymentViewSet(AdminModelViewSet):
    queryset = Payment.objects.all().select_related("booking", "invoice")
    serializer_class = PaymentSerializer
    filterset_fields = ["status", "mode", "booking"]
    bulk_update_fields = ("status",)


class HotelSettingsViewSet(ManagerModelViewSet):
    queryset = HotelSettings.objects.all().order_by("id")
    serializer_class = HotelSettingsSerializer


class UserProfileViewSet(ManagerModelViewSet):
    queryset = UserProfile.objects.all().select_related("user")
    serializer_class = UserProfileSerializer
    filterset_fields = ["role"]
    search_fields = ["user__username", "user__email", "full_name", "phone_number"]


class StaffUserSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False)
    role = serializers.ChoiceField(choices=UserProfile.ROLE_CHOICES, write_only=True, required=False)

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "is_active", "password", "role"]

    def create(self, validated_data):
        password = validated_data.pop("password", None)
        role = validated_data.pop("role", "STAFF")
        user = User(**validated_data)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save()
        UserProfile.objects.create(user=user, role=role)
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop("password", None)
        role = validated_data.pop("role", None)
        user = super().update(instance, validated_data)
        if password:
            user.set_password(password)
            user.save(update_fields=["password"])
        if role:
            UserProfile.objects.update_or_create(user=user, defaults={"role": role})
        return user


class UserViewSet(ManagerModelViewSet):
    queryset = User.objects.all().order_by("username")
    serializer_class = StaffUserSerializer
    search_fields = ["username", "email"]


class AuditLogViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = AuditLog.objects.all().select_related("actor")
    serializer_class = AuditLogSerializer
    permission_classes = [IsManager]
    filterset_fields = ["action", "model_name"]
    search_fields = ["object_repr", "actor__username"]


router = routers.DefaultRouter()
router.register(r"room-types", RoomTypeViewSet)
router.register(r"rooms", RoomViewSet)
router.register(r"bookings", BookingViewSet)
router.register(r"food-items", FoodItemViewSet)
router.register(r"food-orders", FoodOrderViewSet)
router.register(r"invoices", InvoiceViewSet)
router.register(r"payments", PaymentViewSet)
router.register(r"settings", HotelSettingsViewSet)
router.register(r"profiles", UserProfileViewSet)
router.register(r"users", UserViewSet)
router.register(r"audit-logs", AuditLogViewSet)
