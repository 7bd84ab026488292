import os

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.db import transaction

from frontdesk.models import HotelSettings, RoomType, UserProfile

DEFAULT_ROOM_TYPES = ["AC", "Non-AC", "Deluxe", "Single Bed", "Double Bed"]


class Command(BaseCommand):
    help = "Create the manager account, default room types and the hotel settings row. Safe to re-run."

    def add_arguments(self, parser):
        parser.add_argument("--username", default=os.getenv("FRONTDESK_MANAGER_USERNAME", "manager"))
        parser.add_argument("--password", default=os.getenv("FRONTDESK_MANAGER_PASSWORD", "manager123"))
        parser.add_argument("--hotel-name", default=os.getenv("FRONTDESK_HOTEL_NAME", "Hotel"))

    @transaction.atomic
    def handle(self, *args, **opts):
        user, created = User.objects.get_or_create(
            username=opts["username"],
            defaults={"is_staff": True, "is_superuser": True},
        )
        if created:
            user.set_password(opts["password"])
            user.save()
            self.stdout.write(self.style.SUCCESS(f"Created manager user '{user.username}'"))
        else:
            self.stdout.write(f"Manager user '{user.username}' already exists")
        UserProfile.objects.get_or_create(user=user, defaults={"role": "MANAGER", "full_name": "Manager"})

        made = 0
        for name in DEFAULT_ROOM_TYPES:
            _, was_created = RoomType.objects.get_or_create(name=name)
            made += int(was_created)
        self.stdout.write(f"Room types: {made} created, {len(DEFAULT_ROOM_TYPES) - made} existing")

        if not HotelSettings.objects.exists():
            HotelSettings.objects.create(name=opts["hotel_name"])
            self.stdout.write(self.style.SUCCESS(f"Created hotel settings '{opts['hotel_name']}'"))
        else:
            self.stdout.write("Hotel settings already present")
