from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from frontdesk.models import AuditLog, FoodItem, FoodOrder, HotelSettings, Invoice, Payment, Room, RoomType

from .utils import add_food, make_booking, make_hotel, make_user


class _ApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.hotel = make_hotel()
        self.staff = make_user("desk", "STAFF")
        self.manager = make_user("boss", "MANAGER")
        self.chef = make_user("chef", "CHEF")
        self.client.force_authenticate(user=self.staff)

    def assertPdf(self, response, prefix):
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertRegex(response["Content-Disposition"], rf'^attachment; filename="{prefix}-.+\.pdf"$')
        self.assertTrue(response.content.startswith(b"%PDF"))


class AuthTests(_ApiTestCase):
    def test_health_is_public(self):
        self.client.force_authenticate(user=None)
        response = self.client.get("/api/health/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["ok"])

    def test_login_returns_tokens_and_role(self):
        client = APIClient()
        response = client.post("/api/auth/login", {"username": "desk", "password": "pass1234"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["user"]["role"], "STAFF")

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = client.get("/api/auth/me")
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data["username"], "desk")

    def test_login_with_bad_password(self):
        response = APIClient().post("/api/auth/login", {"username": "desk", "password": "nope"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_billing_needs_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.post("/api/bills/generate", {"guestName": "X"}, format="json")
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_chef_cannot_bill(self):
        self.client.force_authenticate(user=self.chef)
        response = self.client.post("/api/bills/generate", {"guestName": "X"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ManualBillTests(_ApiTestCase):
    def test_generate_manual_bill(self):
        payload = {
            "guestName": "Walk-in Guest",
            "roomNumber": "12",
            "roomType": "Non-AC",
            "days": "2",
            "roomCharges": "1000",
            "tariff": "0",
            "foodCharges": "200",
            "gstEnabled": False,
            "showGst": False,
            "paymentMode": "online",
            "billNumber": "VR-5",
            "items": [{"name": "Tea", "quantity": 2, "price": "10"}],
        }
        response = self.client.post("/api/bills/generate", payload, format="json")
        self.assertPdf(response, "bill")

        inv = Invoice.objects.get()
        self.assertEqual(inv.invoice_type, "MANUAL")
        self.assertTrue(inv.is_manual)
        self.assertEqual(inv.total_amount, Decimal("1200.00"))
        self.assertEqual(inv.gst_amount, Decimal("0.00"))
        self.assertEqual(inv.payment_mode, "ONLINE")
        self.assertEqual(inv.bill_number, "VR-5")
        self.assertEqual(inv.created_by, self.staff)
        self.assertEqual(inv.line_items[0]["line_total"], "20.00")
        self.assertIn(inv.invoice_number, response["Content-Disposition"])

    def test_malformed_items_are_ignored(self):
        for items in (5, "Tea x2", {"name": "Tea"}):
            with self.subTest(items=items):
                response = self.client.post("/api/bills/generate",
                                            {"guest_name": "X", "room_charges": "100", "items": items},
                                            format="json")
                self.assertPdf(response, "bill")
        self.assertEqual(Invoice.objects.count(), 3)
        self.assertTrue(all(inv.line_items == [] for inv in Invoice.objects.all()))

    def test_guest_name_required(self):
        response = self.client.post("/api/bills/generate", {"roomCharges": "100"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Guest name is required")

    def test_hotel_settings_missing(self):
        HotelSettings.objects.all().delete()
        response = self.client.post("/api/bills/generate", {"guestName": "X"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"], "Hotel settings not found")

    def test_render_failure_persists_nothing(self):
        with mock.patch("frontdesk.views.build_invoice_pdf", side_effect=RuntimeError("boom")):
            response = self.client.post("/api/bills/generate", {"guestName": "X"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data["error"], "Could not generate bill")
        self.assertFalse(Invoice.objects.exists())


class CheckoutTests(_ApiTestCase):
    def test_checkout_with_gst_and_additional_guest(self):
        booking = make_booking(nights=1, additional_guests=1, additional_guest_charges=Decimal("500"))
        response = self.client.post(
            f"/api/bookings/{booking.id}/checkout",
            {"gstEnabled": True, "showGst": True, "paymentMode": "CASH"},
            format="json",
        )
        self.assertPdf(response, "invoice")

        inv = Invoice.objects.get(booking=booking)
        self.assertEqual(inv.invoice_type, "ROOM")
        self.assertEqual(inv.room_charges, Decimal("1500.00"))
        self.assertEqual(inv.gst_amount, Decimal("100.00"))
        self.assertEqual(inv.total_amount, Decimal("2100.00"))
        self.assertEqual(inv.days, 1)

        booking.refresh_from_db()
        self.assertEqual(booking.status, "CHECKED_OUT")
        self.assertIsNotNone(booking.checkout_date)
        self.assertEqual(Room.objects.get(pk=booking.room_id).status, "AVAILABLE")
        payment = Payment.objects.get(invoice=inv)
        self.assertEqual(payment.amount, Decimal("2100.00"))
        self.assertEqual(payment.status, "PAID")

    def test_room_charges_default_to_price_times_days(self):
        booking = make_booking(nights=3, advance_amount=Decimal("1000"))
        self.client.post(f"/api/bookings/{booking.id}/checkout", {}, format="json")
        inv = Invoice.objects.get(booking=booking)
        self.assertEqual(inv.room_charges, Decimal("4500.00"))
        self.assertEqual(inv.advance_amount, Decimal("1000.00"))
        self.assertEqual(inv.total_amount, Decimal("3500.00"))

    def test_automatic_round_off(self):
        booking = make_booking(nights=1)
        self.client.post(f"/api/bookings/{booking.id}/checkout", {"roomCharges": "1000.60"}, format="json")
        inv = Invoice.objects.get(booking=booking)
        self.assertEqual(inv.round_off, Decimal("0.40"))
        self.assertEqual(inv.total_amount, Decimal("1001.00"))

    def test_complimentary_is_a_discount(self):
        booking = make_booking(nights=1)
        self.client.post(f"/api/bookings/{booking.id}/checkout", {"complimentary": "100"}, format="json")
        inv = Invoice.objects.get(booking=booking)
        self.assertEqual(inv.discount, Decimal("100.00"))
        self.assertEqual(inv.total_amount, Decimal("1400.00"))

    def test_combined_food_bill(self):
        booking = make_booking(nights=1)
        Invoice.objects.create(booking=booking, invoice_number="FOOD-INV-OLD", invoice_type="FOOD",
                               guest_name=booking.guest_name, food_charges=Decimal("450"),
                               total_amount=Decimal("450"))
        order = add_food(booking, price="150.00")
        response = self.client.post(
            f"/api/bookings/{booking.id}/checkout",
            {"combineFoodBill": True, "complimentary": "50", "gstEnabled": True, "showGst": True},
            format="json",
        )
        self.assertPdf(response, "invoice")

        inv = Invoice.objects.get(booking=booking, invoice_type="ROOM")
        self.assertEqual(inv.food_charges, Decimal("550.00"))
        self.assertEqual(inv.discount, Decimal("0.00"))
        # food is not taxed
        self.assertEqual(inv.gst_amount, Decimal("75.00"))
        self.assertEqual(inv.total_amount, Decimal("2125.00"))
        self.assertEqual(len(inv.line_items), 1)
        order.refresh_from_db()
        self.assertEqual(order.invoice, inv)

    def test_already_checked_out(self):
        booking = make_booking(status="CHECKED_OUT")
        response = self.client.post(f"/api/bookings/{booking.id}/checkout", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Booking already checked out")

    def test_unknown_booking(self):
        response = self.client.post("/api/bookings/999/checkout", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"], "Booking not found")


class FoodInvoiceTests(_ApiTestCase):
    def test_food_invoice_with_discount(self):
        booking = make_booking()
        add_food(booking, price="150.00", quantity=2)
        add_food(booking, name="Lassi", price="60.00")
        response = self.client.post(f"/api/bookings/{booking.id}/food-invoice", {"discount": "10"}, format="json")
        self.assertPdf(response, "food-invoice")

        inv = Invoice.objects.get(booking=booking)
        self.assertEqual(inv.invoice_type, "FOOD")
        self.assertTrue(inv.invoice_number.startswith("FOOD-INV-"))
        self.assertEqual(inv.food_charges, Decimal("350.00"))
        self.assertEqual(inv.gst_amount, Decimal("0.00"))
        self.assertEqual(inv.total_amount, Decimal("350.00"))
        self.assertFalse(FoodOrder.objects.filter(booking=booking, invoice__isnull=True).exists())

    def test_discount_capped_at_subtotal(self):
        booking = make_booking()
        add_food(booking, price="100.00")
        self.client.post(f"/api/bookings/{booking.id}/food-invoice", {"discount": "500"}, format="json")
        self.assertEqual(Invoice.objects.get(booking=booking).total_amount, Decimal("0.00"))

    def test_no_unbilled_orders(self):
        booking = make_booking()
        response = self.client.post(f"/api/bookings/{booking.id}/food-invoice", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "No unbilled food orders for this booking")

    def test_food_invoice_then_combined_checkout(self):
        booking = make_booking(nights=1)
        add_food(booking, price="200.00")
        self.client.post(f"/api/bookings/{booking.id}/food-invoice", {}, format="json")
        add_food(booking, name="Coffee", price="50.00")
        self.client.post(f"/api/bookings/{booking.id}/checkout", {"combineFoodBill": "true"}, format="json")
        room_inv = Invoice.objects.get(booking=booking, invoice_type="ROOM")
        self.assertEqual(room_inv.food_charges, Decimal("250.00"))
        self.assertEqual(room_inv.total_amount, Decimal("1750.00"))


class KitchenMasterBillTests(_ApiTestCase):
    def _finalize(self, booking, **body):
        return self.client.post(f"/api/bookings/{booking.id}/kitchen-bill", {"action": "finalize", **body},
                                format="json")

    def test_finalize_covers_every_order(self):
        booking = make_booking()
        add_food(booking, price="200.00")
        self.client.post(f"/api/bookings/{booking.id}/food-invoice", {}, format="json")
        add_food(booking, name="Coffee", price="50.00", quantity=2)

        response = self._finalize(booking, discount="30")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["success"])
        master = Invoice.objects.get(booking=booking, invoice_type="KITCHEN_MASTER")
        self.assertTrue(master.invoice_number.startswith("MST-"))
        self.assertEqual(master.food_charges, Decimal("300.00"))
        self.assertEqual(master.discount, Decimal("30.00"))
        self.assertEqual(master.total_amount, Decimal("270.00"))
        self.assertEqual(master.gst_amount, Decimal("0.00"))
        self.assertEqual(len(master.line_items), 2)
        # the statement does not bill the open order
        self.assertEqual(FoodOrder.objects.filter(booking=booking, invoice__isnull=True).count(), 1)

    def test_only_one_master_bill_per_booking(self):
        booking = make_booking()
        add_food(booking)
        self.assertEqual(self._finalize(booking).status_code, status.HTTP_201_CREATED)
        response = self._finalize(booking)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Master bill already finalized")
        self.assertEqual(Invoice.objects.filter(invoice_type="KITCHEN_MASTER").count(), 1)

    def test_discount_never_takes_total_below_zero(self):
        booking = make_booking()
        add_food(booking, price="120.00")
        self._finalize(booking, discount="500")
        master = Invoice.objects.get(invoice_type="KITCHEN_MASTER")
        self.assertEqual(master.discount, Decimal("120.00"))
        self.assertEqual(master.total_amount, Decimal("0.00"))

    def test_no_food_orders(self):
        booking = make_booking()
        response = self._finalize(booking)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "No food orders found")

    def test_unknown_action_and_booking(self):
        booking = make_booking()
        response = self.client.post(f"/api/bookings/{booking.id}/kitchen-bill", {"action": "void"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get("/api/bookings/999/kitchen-bill")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_kitchen_bills(self):
        booking = make_booking()
        add_food(booking)
        self.client.post(f"/api/bookings/{booking.id}/food-invoice", {}, format="json")
        self._finalize(booking)
        self.client.post(f"/api/bookings/{booking.id}/checkout", {}, format="json")

        self.client.force_authenticate(user=self.chef)
        response = self.client.get(f"/api/bookings/{booking.id}/kitchen-bill")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        types = sorted(row["invoice_type"] for row in response.data["invoices"])
        self.assertEqual(types, ["FOOD", "KITCHEN_MASTER"])

    def test_master_bill_not_counted_again_at_checkout(self):
        booking = make_booking(nights=1)
        add_food(booking, price="100.00")
        self.client.post(f"/api/bookings/{booking.id}/food-invoice", {}, format="json")
        self._finalize(booking)
        self.client.post(f"/api/bookings/{booking.id}/checkout", {"combineFoodBill": True}, format="json")
        room_inv = Invoice.objects.get(booking=booking, invoice_type="ROOM")
        self.assertEqual(room_inv.food_charges, Decimal("100.00"))

    def test_master_bill_download(self):
        booking = make_booking()
        add_food(booking)
        self._finalize(booking)
        master = Invoice.objects.get(invoice_type="KITCHEN_MASTER")
        response = self.client.get(f"/api/invoices/{master.id}/download")
        self.assertPdf(response, "kitchen-master")


class DownloadTests(_ApiTestCase):
    def test_redownload_matches_stored_invoice(self):
        booking = make_booking(nights=1)
        self.client.post(f"/api/bookings/{booking.id}/checkout", {"gstEnabled": True}, format="json")
        inv = Invoice.objects.get(booking=booking)
        response = self.client.get(f"/api/invoices/{inv.id}/download")
        self.assertPdf(response, "invoice")
        self.assertIn(inv.invoice_number, response["Content-Disposition"])

    def test_unknown_invoice(self):
        response = self.client.get("/api/invoices/999/download")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"], "Invoice not found")


class PoliceVerificationTests(_ApiTestCase):
    def test_json_list_masks_ids(self):
        make_booking(room_number="101")
        make_booking(room_number="102", guest_name="Ravi", id_type="PAN", id_number="ABCDE1234F")
        make_booking(room_number="103", status="CHECKED_OUT")
        self.client.force_authenticate(user=self.manager)
        response = self.client.get("/api/police-verification")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        by_room = {row["room_number"]: row for row in response.data}
        self.assertEqual(by_room["101"]["id_number"], "1234 XXXX XXXX 9012")
        self.assertEqual(by_room["102"]["id_number"], "ABXXXXXX4F")
        self.assertEqual(by_room["102"]["id_type"], "PAN Card")

    def test_pdf_export(self):
        make_booking()
        self.client.force_authenticate(user=self.manager)
        response = self.client.get("/api/police-verification?format=pdf")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertTrue(response.content.startswith(b"%PDF"))

    def test_staff_forbidden(self):
        response = self.client.get("/api/police-verification")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AdminCrudTests(_ApiTestCase):
    def test_create_room_writes_audit_log(self):
        room_type = RoomType.objects.create(name="AC")
        response = self.client.post("/api/admin/rooms/", {"room_number": "201", "room_type": room_type.id},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        log = AuditLog.objects.get(action="CREATE")
        self.assertEqual(log.model_name, "frontdesk.Room")
        self.assertEqual(log.actor, self.staff)

    def test_booking_create_occupies_room(self):
        room_type = RoomType.objects.create(name="AC")
        room = Room.objects.create(room_number="301", room_type=room_type)
        response = self.client.post("/api/admin/bookings/", {
            "room": room.id, "guest_name": "Meera", "room_price": "2000.00",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        room.refresh_from_db()
        self.assertEqual(room.status, "OCCUPIED")

    def test_only_manager_deletes(self):
        room_type = RoomType.objects.create(name="AC")
        response = self.client.delete(f"/api/admin/room-types/{room_type.id}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.manager)
        response = self.client.delete(f"/api/admin/room-types/{room_type.id}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action="DELETE").exists())

    def test_front_desk_edits_but_cannot_bulk(self):
        room_type = RoomType.objects.create(name="AC")
        room = Room.objects.create(room_number="401", room_type=room_type)
        response = self.client.patch(f"/api/admin/rooms/{room.id}/", {"status": "MAINTENANCE"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(AuditLog.objects.get(action="UPDATE").changes, {"status": "MAINTENANCE"})
        response = self.client.post("/api/admin/rooms/bulk/", {
            "ids": [room.id], "action": "update", "payload": {"status": "AVAILABLE"},
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_bulk_status_update(self):
        room_type = RoomType.objects.create(name="AC")
        rooms = [Room.objects.create(room_number=str(n), room_type=room_type) for n in (1, 2)]
        self.client.force_authenticate(user=self.manager)
        response = self.client.post("/api/admin/rooms/bulk/", {
            "ids": [r.id for r in rooms], "action": "update", "payload": {"status": "MAINTENANCE"},
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Room.objects.filter(status="MAINTENANCE").count(), 2)

        response = self.client.post("/api/admin/rooms/bulk/", {
            "ids": [r.id for r in rooms], "action": "update", "payload": {"room_number": "X"},
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invoices_are_read_only(self):
        response = self.client.post("/api/admin/invoices/", {"invoice_number": "X"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_chef_can_log_food_orders(self):
        booking = make_booking()
        item = FoodItem.objects.create(name="Poha", price=Decimal("40.00"))
        self.client.force_authenticate(user=self.chef)
        response = self.client.post("/api/admin/food-orders/",
                                    {"booking": booking.id, "food_item": item.id, "quantity": 2}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(FoodOrder.objects.get().unit_price, Decimal("40.00"))


class SeedCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        call_command("seed_frontdesk", verbosity=0)
        call_command("seed_frontdesk", verbosity=0)
        self.assertEqual(User.objects.filter(username="manager").count(), 1)
        self.assertEqual(RoomType.objects.count(), 5)
        self.assertEqual(HotelSettings.objects.count(), 1)
        self.assertTrue(User.objects.get(username="manager").is_superuser)
