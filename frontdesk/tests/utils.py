from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.utils import timezone

from frontdesk.models import Booking, FoodItem, FoodOrder, HotelSettings, Room, RoomType, UserProfile


def make_hotel(**kw):
    data = dict(name="Hotel Sagar", address="12 MG Road, Udaipur, Rajasthan", phone="0294 241 0000",
                email="desk@sagar.example", gstin="08ABCDE1234F1Z5")
    data.update(kw)
    return HotelSettings.objects.create(**data)


def make_user(username, role, password="pass1234"):
    user = User.objects.create_user(username=username, password=password)
    UserProfile.objects.create(user=user, role=role)
    return user


def make_booking(room_number="101", nights=2, **kw):
    room_type, _ = RoomType.objects.get_or_create(name="Deluxe")
    room = Room.objects.create(room_number=room_number, room_type=room_type, status="OCCUPIED")
    data = dict(
        room=room,
        guest_name="Asha Verma",
        guest_address="44 Lake View, Pune",
        guest_state="Maharashtra",
        guest_mobile="9876543210",
        id_type="AADHAAR",
        id_number="123456789012",
        room_price=Decimal("1500.00"),
        check_in_date=timezone.now() - timedelta(days=nights, hours=-1),
    )
    data.update(kw)
    return Booking.objects.create(**data)


def add_food(booking, name="Veg Thali", price="150.00", quantity=1):
    item, _ = FoodItem.objects.get_or_create(name=name, defaults={"price": Decimal(price), "category": "Meals"})
    return FoodOrder.objects.create(booking=booking, food_item=item, quantity=quantity)
