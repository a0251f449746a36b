from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from crops.models import Crop
from hyperlocal.testing import HYDERABAD, make_crop, make_user

from . import lifecycle
from .exceptions import Conflict, NotFoundOrWrongState, Unauthorized, ValidationFailed
from .fees import (
    MANUAL_LISTING_UNIT_WEIGHTS,
    VOICE_LISTING_UNIT_WEIGHTS,
    calculate_delivery_fee,
    great_circle_km,
    split_delivery_fee,
    total_weight,
    weight_for_unit,
)
from .models import Complaint, Order

# ~11.1 km north of the farm
DELIVERY = (HYDERABAD[0] + 0.1, HYDERABAD[1])


class FeeCalculatorTests(SimpleTestCase):

    def test_known_values(self):
        self.assertEqual(calculate_delivery_fee(10, 0), 100)
        self.assertEqual(calculate_delivery_fee(2, 0), 50)
        self.assertEqual(calculate_delivery_fee(40, 10), 324)

    def test_ceiling(self):
        self.assertEqual(calculate_delivery_fee(200, 0), 500)
        self.assertEqual(calculate_delivery_fee(10, 1000), 500)

    def test_long_haul_surcharge_applies_after_weight(self):
        # (50 + 31*5 + 5*2) * 1.2 = 258
        self.assertEqual(calculate_delivery_fee(31, 5), 258)

    def test_threshold_distances_get_no_adjustment(self):
        self.assertEqual(calculate_delivery_fee(30, 0), 200)
        self.assertEqual(calculate_delivery_fee(5, 0), 75)

    def test_rounds_half_up(self):
        # 75 + 0.75*2 = 76.5
        self.assertEqual(calculate_delivery_fee(5, 0.75), 77)

    def test_missing_weight_is_ignored(self):
        self.assertEqual(calculate_delivery_fee(10, None), 100)

    def test_fee_always_within_bounds(self):
        for distance in (0, 0.5, 4.99, 5, 12.3, 30, 30.01, 75, 120, 1000):
            for weight in (0, 0.1, 3, 25, 120, 5000):
                fee = calculate_delivery_fee(distance, weight)
                self.assertGreaterEqual(fee, 50)
                self.assertLessEqual(fee, 500)
                self.assertIsInstance(fee, int)

    def test_split_is_exact_half(self):
        for fee in range(50, 501):
            farmer_share, restaurant_share = split_delivery_fee(fee)
            self.assertEqual(farmer_share, restaurant_share)
            self.assertEqual(farmer_share + restaurant_share, fee)
        self.assertEqual(split_delivery_fee(115), (57.5, 57.5))

    def test_unit_weight_tables_differ_by_call_site(self):
        self.assertEqual(weight_for_unit("dozen"), 0.12)
        self.assertEqual(weight_for_unit("dozen", VOICE_LISTING_UNIT_WEIGHTS), 0.5)
        self.assertEqual(MANUAL_LISTING_UNIT_WEIGHTS["bag"], 30)
        self.assertEqual(VOICE_LISTING_UNIT_WEIGHTS["bag"], 50)
        self.assertEqual(weight_for_unit("crate"), 1)
        self.assertEqual(weight_for_unit("crate", VOICE_LISTING_UNIT_WEIGHTS), 1)

    def test_total_weight(self):
        items = [
            {"quantity": 5, "weight_per_unit": 1},
            {"quantity": 2, "weight_per_unit": 30},
            {"quantity": 4, "weight_per_unit": None},
        ]
        self.assertEqual(total_weight(items), 65)

    def test_great_circle_distance(self):
        self.assertEqual(great_circle_km(17.385, 78.4867, 17.385, 78.4867), 0)
        self.assertEqual(great_circle_km(0, 0, 0.1, 0), 11.132)
        self.assertEqual(great_circle_km(*HYDERABAD, *DELIVERY), 11.132)


class LifecycleTestMixin:

    def setUp(self):
        self.farmer = make_user("farmer", "farmer")
        self.other_farmer = make_user("other_farmer", "farmer")
        self.restaurant = make_user("restaurant", "restaurant", latitude=DELIVERY[0], longitude=DELIVERY[1])
        self.transporter = make_user("transporter", "transporter")
        self.transporter2 = make_user("transporter_two", "transporter")
        self.crop = make_crop(self.farmer, price=40, quantity=10)

    def place(self, quantity=5, crop=None):
        crop = crop or self.crop
        return lifecycle.place_order(
            self.restaurant,
            [{"crop_id": crop.id, "quantity": quantity}],
            DELIVERY[0],
            DELIVERY[1],
            "Restaurant street",
        )

    def confirmed(self, **kwargs):
        order = self.place(**kwargs)
        return lifecycle.confirm_order(order.id, self.farmer)

    def picked_up(self, **kwargs):
        order = self.confirmed(**kwargs)
        lifecycle.accept_order(order.id, self.transporter)
        return lifecycle.mark_picked_up(order.id, self.transporter)


class PlaceOrderTests(LifecycleTestMixin, TestCase):

    def test_freezes_totals_distance_and_fees(self):
        order = self.place(quantity=5)

        self.assertEqual(order.status, "pending")
        self.assertEqual(order.payment_status, "pending")
        self.assertEqual(order.farmer, self.farmer)
        self.assertIsNone(order.transporter)
        self.assertEqual(order.total_amount, 200)
        self.assertEqual(order.distance_km, 11.132)
        # 50 + 11.132*5 + 5kg*2 = 115.66
        self.assertEqual(order.delivery_fee, 116)
        self.assertEqual(order.farmer_delivery_share, 58)
        self.assertEqual(order.restaurant_delivery_share, 58)
        self.assertEqual(order.pickup_address, "farmer street")

        item = order.line_items.get()
        self.assertEqual((item.quantity, item.unit_price, item.unit, item.weight_per_unit), (5, 40, "kg", 1))

    def test_reserves_stock(self):
        self.place(quantity=4)
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 6)
        self.assertEqual(self.crop.status, "available")

    def test_last_units_mark_crop_out_of_stock(self):
        self.place(quantity=10)
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 0)
        self.assertEqual(self.crop.status, "out_of_stock")

    def test_unit_price_is_a_snapshot(self):
        order = self.place(quantity=2)
        Crop.objects.filter(pk=self.crop.pk).update(price=99)
        order.refresh_from_db()
        self.assertEqual(order.line_items.get().unit_price, 40)
        self.assertEqual(order.total_amount, 80)

    def test_failure_leaves_stock_untouched(self):
        second = make_crop(self.farmer, name="Onion", quantity=3)

        with self.assertRaises(ValidationFailed):
            lifecycle.place_order(
                self.restaurant,
                [{"crop_id": self.crop.id, "quantity": 5}, {"crop_id": second.id, "quantity": 4}],
                *DELIVERY,
                "Restaurant street",
            )

        self.crop.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 10)
        self.assertEqual(second.available_quantity, 3)
        self.assertFalse(Order.objects.exists())

    def test_repeated_crop_is_checked_against_its_combined_quantity(self):
        Crop.objects.filter(pk=self.crop.pk).update(available_quantity=6)

        with self.assertRaises(ValidationFailed) as ctx:
            lifecycle.place_order(
                self.restaurant,
                [{"crop_id": self.crop.id, "quantity": 5}, {"crop_id": self.crop.id, "quantity": 5}],
                *DELIVERY,
                "Restaurant street",
            )

        self.assertIn("Insufficient quantity", ctx.exception.message)
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 6)
        self.assertFalse(Order.objects.exists())

    def test_repeated_crop_becomes_one_line(self):
        order = lifecycle.place_order(
            self.restaurant,
            [{"crop_id": self.crop.id, "quantity": 2}, {"crop_id": self.crop.id, "quantity": 3}],
            *DELIVERY,
            "Restaurant street",
        )

        self.assertEqual(order.line_items.get().quantity, 5)
        self.assertEqual(order.total_amount, 200)
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 5)

    def test_unavailable_crop_is_rejected(self):
        Crop.objects.filter(pk=self.crop.pk).update(status="sold")
        with self.assertRaises(ValidationFailed):
            self.place()

    def test_unknown_crop_is_not_found(self):
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.place_order(self.restaurant, [{"crop_id": 9999, "quantity": 1}], *DELIVERY, "x")

    def test_all_items_must_come_from_one_farmer(self):
        foreign = make_crop(self.other_farmer, name="Rice")
        with self.assertRaises(ValidationFailed):
            lifecycle.place_order(
                self.restaurant,
                [{"crop_id": self.crop.id, "quantity": 1}, {"crop_id": foreign.id, "quantity": 1}],
                *DELIVERY,
                "Restaurant street",
            )

    def test_only_restaurants_can_order(self):
        with self.assertRaises(Unauthorized):
            lifecycle.place_order(self.farmer, [{"crop_id": self.crop.id, "quantity": 1}], *DELIVERY, "x")

    def test_stock_taken_concurrently_is_a_conflict(self):
        onion = make_crop(self.farmer, name="Onion", quantity=10)
        # read both crops at full stock, then another order takes most of the onions
        stale = Crop.objects.in_bulk([self.crop.id, onion.id])
        Crop.objects.filter(pk=onion.pk).update(available_quantity=2)

        with patch("django.db.models.query.QuerySet.in_bulk", return_value=stale):
            with self.assertRaises(Conflict):
                lifecycle.place_order(
                    self.restaurant,
                    [{"crop_id": self.crop.id, "quantity": 5}, {"crop_id": onion.id, "quantity": 5}],
                    *DELIVERY,
                    "Restaurant street",
                )

        self.crop.refresh_from_db()
        onion.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 10)
        self.assertEqual(onion.available_quantity, 2)
        self.assertFalse(Order.objects.exists())


class TransitionTests(LifecycleTestMixin, TestCase):

    def test_happy_path(self):
        order = self.place()
        order = lifecycle.confirm_order(order.id, self.farmer)
        self.assertEqual(order.status, "confirmed")

        order = lifecycle.accept_order(order.id, self.transporter)
        self.assertEqual(order.status, "confirmed")
        self.assertEqual(order.transporter, self.transporter)

        order = lifecycle.mark_picked_up(order.id, self.transporter)
        self.assertEqual(order.status, "picked_up")

        order = lifecycle.verify_quality(order.id, self.transporter, 4.5, "Fresh and firm")
        self.assertEqual(order.quality_score, 4.5)
        self.assertEqual(order.quality_verified_by, self.transporter)
        self.assertIsNotNone(order.quality_verified_at)

        order = lifecycle.mark_in_transit(order.id, self.transporter)
        self.assertEqual(order.status, "in_transit")

        order = lifecycle.mark_delivered(order.id, self.transporter)
        self.assertEqual(order.status, "delivered")
        self.assertIsNotNone(order.actual_delivery_time)

        for user in (self.farmer, self.restaurant, self.transporter):
            user.profile.refresh_from_db()
            self.assertEqual(user.profile.total_orders, 1)
        self.transporter2.profile.refresh_from_db()
        self.assertEqual(self.transporter2.profile.total_orders, 0)

    def test_delivery_can_skip_in_transit(self):
        order = self.picked_up()
        order = lifecycle.mark_delivered(order.id, self.transporter)
        self.assertEqual(order.status, "delivered")

    def test_confirm_requires_owning_farmer(self):
        order = self.place()
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.confirm_order(order.id, self.other_farmer)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.confirm_order(987654, self.farmer)

    def test_cancel_restores_inventory(self):
        order = self.place(quantity=10)
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.status, "out_of_stock")

        order = lifecycle.cancel_order(order.id, self.farmer, "  Hailstorm damaged the crop ")

        self.assertEqual(order.status, "cancelled")
        self.assertEqual(order.notes, "Cancelled by farmer: Hailstorm damaged the crop")
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 10)
        self.assertEqual(self.crop.status, "available")

    def test_cancel_from_confirmed(self):
        order = self.confirmed(quantity=3)
        order = lifecycle.cancel_order(order.id, self.farmer, "Truck broke down")
        self.assertEqual(order.status, "cancelled")
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 10)

    def test_cancel_needs_reason(self):
        order = self.place()
        with self.assertRaises(ValidationFailed):
            lifecycle.cancel_order(order.id, self.farmer, "   ")

    def test_cancel_after_pickup_is_rejected(self):
        order = self.picked_up()
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.cancel_order(order.id, self.farmer, "Changed my mind")
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 5)

    def test_terminal_states_never_move(self):
        delivered = lifecycle.mark_delivered(self.picked_up(quantity=2).id, self.transporter)
        cancelled = lifecycle.cancel_order(self.place(quantity=2).id, self.farmer, "No stock")

        for order in (delivered, cancelled):
            attempts = [
                lambda: lifecycle.confirm_order(order.id, self.farmer),
                lambda: lifecycle.cancel_order(order.id, self.farmer, "again"),
                lambda: lifecycle.accept_order(order.id, self.transporter2),
                lambda: lifecycle.mark_picked_up(order.id, self.transporter),
                lambda: lifecycle.mark_in_transit(order.id, self.transporter),
                lambda: lifecycle.mark_delivered(order.id, self.transporter),
            ]
            for attempt in attempts:
                with self.assertRaises(NotFoundOrWrongState):
                    attempt()

        delivered.refresh_from_db()
        cancelled.refresh_from_db()
        self.assertEqual(delivered.status, "delivered")
        self.assertEqual(cancelled.status, "cancelled")

    def test_concurrent_accept_only_one_wins(self):
        order = self.confirmed()
        # both requests read the order before either writes
        stale = Order.objects.get(pk=order.pk)

        with patch("orders.lifecycle._load", return_value=stale):
            lifecycle.accept_order(order.id, self.transporter)
            with self.assertRaises(Conflict):
                lifecycle.accept_order(order.id, self.transporter2)

        order.refresh_from_db()
        self.assertEqual(order.transporter, self.transporter)

    def test_second_accept_after_assignment_is_rejected(self):
        order = self.confirmed()
        lifecycle.accept_order(order.id, self.transporter)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.accept_order(order.id, self.transporter2)

    def test_accept_requires_transporter(self):
        order = self.confirmed()
        with self.assertRaises(Unauthorized):
            lifecycle.accept_order(order.id, self.restaurant)

    def test_accept_before_confirmation_is_rejected(self):
        order = self.place()
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.accept_order(order.id, self.transporter)

    def test_only_assigned_transporter_moves_order(self):
        order = self.confirmed()
        lifecycle.accept_order(order.id, self.transporter)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.mark_picked_up(order.id, self.transporter2)

        lifecycle.mark_picked_up(order.id, self.transporter)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.mark_in_transit(order.id, self.transporter2)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.mark_delivered(order.id, self.transporter2)

    def test_delivery_before_pickup_is_rejected(self):
        order = self.confirmed()
        lifecycle.accept_order(order.id, self.transporter)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.mark_delivered(order.id, self.transporter)

    def test_quality_verified_once_while_picked_up(self):
        order = self.confirmed()
        lifecycle.accept_order(order.id, self.transporter)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.verify_quality(order.id, self.transporter, 4)

        lifecycle.mark_picked_up(order.id, self.transporter)
        with self.assertRaises(ValidationFailed):
            lifecycle.verify_quality(order.id, self.transporter, 6)

        lifecycle.verify_quality(order.id, self.transporter, 4)
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.verify_quality(order.id, self.transporter, 2)

        order.refresh_from_db()
        self.assertEqual(order.quality_score, 4)

    def test_quality_needs_assigned_transporter(self):
        order = self.picked_up()
        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.verify_quality(order.id, self.transporter2, 3)


class ComplaintTests(LifecycleTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.staff = get_user_model().objects.create_user("ops", "ops@example.com", "x", is_staff=True)

    def test_restaurant_and_assigned_transporter_can_complain(self):
        order = self.picked_up()
        first = lifecycle.raise_complaint(order.id, self.restaurant, "Tomatoes were bruised")
        second = lifecycle.raise_complaint(order.id, self.transporter, "Crates were not ready")

        self.assertEqual(first.status, "open")
        self.assertEqual(list(order.complaints.values_list("id", flat=True)), [first.id, second.id])

    def test_non_parties_cannot_complain(self):
        order = self.picked_up()
        for user in (self.farmer, self.transporter2, self.other_farmer):
            with self.assertRaises(NotFoundOrWrongState):
                lifecycle.raise_complaint(order.id, user, "Something")

    def test_empty_description_is_rejected(self):
        order = self.place()
        with self.assertRaises(ValidationFailed):
            lifecycle.raise_complaint(order.id, self.restaurant, "  ")

    def test_staff_resolves_open_complaint_once(self):
        complaint = lifecycle.raise_complaint(self.place().id, self.restaurant, "Late")

        with self.assertRaises(Unauthorized):
            lifecycle.resolve_complaint(complaint.id, self.restaurant, "resolved")
        with self.assertRaises(ValidationFailed):
            lifecycle.resolve_complaint(complaint.id, self.staff, "open")

        complaint = lifecycle.resolve_complaint(complaint.id, self.staff, "rejected")
        self.assertEqual(complaint.status, "rejected")
        self.assertIsNotNone(complaint.resolved_at)

        with self.assertRaises(NotFoundOrWrongState):
            lifecycle.resolve_complaint(complaint.id, self.staff, "resolved")


@override_settings(DEFAULT_FROM_EMAIL="noreply@example.com")
class NotificationTests(LifecycleTestMixin, TestCase):

    def test_farmer_told_about_new_order(self):
        order = self.place()
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["farmer@example.com"])
        self.assertIn(f"#{order.id}", mail.outbox[0].subject)

    def test_confirmation_reaches_restaurant_and_verified_transporters(self):
        make_user("unverified_driver", "transporter", is_verified=False)
        self.place()
        mail.outbox.clear()

        lifecycle.confirm_order(Order.objects.get().id, self.farmer)

        recipients = sorted(address for message in mail.outbox for address in message.to)
        self.assertEqual(
            recipients,
            ["restaurant@example.com", "transporter@example.com", "transporter_two@example.com"],
        )

    def test_mail_failure_does_not_fail_transition(self):
        order = self.place()
        with patch("orders.notifications.send_mail", side_effect=OSError("smtp down")):
            order = lifecycle.confirm_order(order.id, self.farmer)
        self.assertEqual(order.status, "confirmed")

    @override_settings(DEFAULT_FROM_EMAIL="")
    def test_no_sender_configured_skips_mail(self):
        self.place()
        self.assertEqual(mail.outbox, [])


class OrderApiTests(LifecycleTestMixin, TestCase):

    def post(self, user, url, body=None):
        self.client.force_login(user)
        return self.client.post(url, body or {}, content_type="application/json")

    def order_body(self, **overrides):
        body = {
            "crops": [{"crop_id": self.crop.id, "quantity": 5}],
            "delivery_latitude": DELIVERY[0],
            "delivery_longitude": DELIVERY[1],
            "delivery_address": "Restaurant street",
        }
        body.update(overrides)
        return body

    def test_place_order(self):
        response = self.post(self.restaurant, reverse("restaurant_orders"), self.order_body(notes="Back door"))

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        order = payload["data"]["order"]
        self.assertEqual(order["total_amount"], 200)
        self.assertEqual(order["delivery_fee"], 116)
        self.assertEqual(order["notes"], "Back door")
        self.assertEqual(order["line_items"][0]["crop_name"], "Tomato")

    def test_place_order_with_same_crop_twice_beyond_stock(self):
        crops = [{"crop_id": self.crop.id, "quantity": 6}, {"crop_id": self.crop.id, "quantity": 6}]
        response = self.post(self.restaurant, reverse("restaurant_orders"), self.order_body(crops=crops))

        self.assertEqual(response.status_code, 400)
        self.crop.refresh_from_db()
        self.assertEqual(self.crop.available_quantity, 10)

    def test_unknown_fields_are_rejected(self):
        response = self.post(self.restaurant, reverse("restaurant_orders"), self.order_body(discount=50))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"], {"discount": ["Unknown field."]})
        self.assertFalse(Order.objects.exists())

    def test_malformed_items_are_rejected(self):
        body = self.order_body(crops=[{"crop_id": self.crop.id, "quantity": 0}])
        response = self.post(self.restaurant, reverse("restaurant_orders"), body)
        self.assertEqual(response.status_code, 400)
        self.assertIn("crops", response.json()["errors"])

        body = self.order_body(crops=[{"crop_id": self.crop.id, "quantity": 1, "price": 1}])
        response = self.post(self.restaurant, reverse("restaurant_orders"), body)
        self.assertEqual(response.status_code, 400)

    def test_invalid_json(self):
        self.client.force_login(self.restaurant)
        response = self.client.post(reverse("restaurant_orders"), "{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_authentication_and_role(self):
        response = self.client.post(reverse("restaurant_orders"), self.order_body(), content_type="application/json")
        self.assertEqual(response.status_code, 401)

        response = self.post(self.farmer, reverse("restaurant_orders"), self.order_body())
        self.assertEqual(response.status_code, 403)

    def test_transitions_over_http(self):
        order = self.place()

        response = self.post(self.farmer, reverse("confirm_order", args=[order.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["order"]["status"], "confirmed")

        response = self.post(self.transporter, reverse("accept_order"), {"order_id": order.id})
        self.assertEqual(response.status_code, 200)

        response = self.post(self.transporter2, reverse("accept_order"), {"order_id": order.id})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Order not available or already assigned")

        response = self.post(self.transporter, reverse("mark_picked_up"), {"order_id": order.id})
        self.assertEqual(response.json()["data"]["order"]["status"], "picked_up")

        response = self.post(
            self.transporter, reverse("verify_quality"), {"order_id": order.id, "quality_score": 5, "notes": "ok"}
        )
        self.assertEqual(response.json()["data"]["order"]["quality_verification"]["score"], 5)

        response = self.post(self.transporter, reverse("mark_delivered"), {"order_id": order.id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["order"]["status"], "delivered")

    def test_cancel_over_http_requires_reason(self):
        order = self.place()
        response = self.post(self.farmer, reverse("cancel_order", args=[order.id]), {})
        self.assertEqual(response.status_code, 400)

        response = self.post(self.farmer, reverse("cancel_order", args=[order.id]), {"reason": "Rain"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["order"]["notes"], "Cancelled by farmer: Rain")

    def test_missing_order_is_404(self):
        response = self.post(self.farmer, reverse("confirm_order", args=[424242]))
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["success"])

    def test_listing_is_scoped_and_paginated(self):
        for _ in range(3):
            self.place(quantity=1)
        first = Order.objects.order_by("id").first()
        lifecycle.confirm_order(first.id, self.farmer)

        self.client.force_login(self.restaurant)
        response = self.client.get(reverse("restaurant_orders"), {"limit": 2})
        data = response.json()["data"]
        self.assertEqual(len(data["orders"]), 2)
        self.assertEqual(data["pagination"]["total"], 3)
        self.assertEqual(data["pagination"]["total_pages"], 2)
        self.assertTrue(data["pagination"]["has_next"])

        self.client.force_login(self.farmer)
        response = self.client.get(reverse("farmer_orders"), {"status": "confirmed"})
        self.assertEqual([o["id"] for o in response.json()["data"]["orders"]], [first.id])

        self.client.force_login(self.other_farmer)
        response = self.client.get(reverse("farmer_orders"))
        self.assertEqual(response.json()["data"]["orders"], [])

    def test_available_orders_for_transporters(self):
        waiting = self.confirmed(quantity=1)
        taken = self.confirmed(quantity=1)
        lifecycle.accept_order(taken.id, self.transporter2)
        self.place(quantity=1)

        self.client.force_login(self.transporter)
        response = self.client.get(reverse("available_orders"))
        self.assertEqual([o["id"] for o in response.json()["data"]["orders"]], [waiting.id])

        far_away = {"latitude": 28.6139, "longitude": 77.2090, "max_distance": 50}
        response = self.client.get(reverse("available_orders"), far_away)
        self.assertEqual(response.json()["data"]["orders"], [])

    def test_dashboards_count_paid_orders(self):
        order = self.picked_up(quantity=5)
        lifecycle.mark_delivered(order.id, self.transporter)
        Order.objects.filter(pk=order.pk).update(payment_status="paid")
        self.place(quantity=1)

        self.client.force_login(self.farmer)
        data = self.client.get(reverse("farmer_dashboard_stats")).json()["data"]
        self.assertEqual(data["orders"]["total"], 2)
        self.assertEqual(data["orders"]["delivered"], 1)
        self.assertEqual(data["earnings"]["total"], 200)
        self.assertEqual(data["crops"]["total"], 1)

        self.client.force_login(self.restaurant)
        data = self.client.get(reverse("restaurant_dashboard_stats")).json()["data"]
        self.assertEqual(data["total_spent"], 200 + 58)
        self.assertEqual(data["pending_orders"], 1)
        self.assertEqual(data["active_farmers"], 1)

        self.client.force_login(self.transporter)
        data = self.client.get(reverse("transporter_dashboard_stats")).json()["data"]
        self.assertEqual(data["completed_orders"], 1)
        self.assertEqual(data["total_earnings"], 116)

        data = self.client.get(reverse("transporter_earnings"), {"period": "week"}).json()["data"]
        self.assertEqual(data["total_orders"], 1)
        self.assertEqual(data["average_earnings"], 116)

    def test_complaint_endpoints(self):
        order = self.picked_up()
        response = self.post(
            self.restaurant, reverse("restaurant_complaint"), {"order_id": order.id, "description": "Wrong size"}
        )
        self.assertEqual(response.status_code, 200)
        complaint_id = response.json()["data"]["complaint"]["id"]

        response = self.post(self.restaurant, reverse("resolve_complaint", args=[complaint_id]), {"status": "resolved"})
        self.assertEqual(response.status_code, 403)

        staff = get_user_model().objects.create_user("ops", "ops@example.com", "x", is_staff=True)
        response = self.post(staff, reverse("resolve_complaint", args=[complaint_id]), {"status": "resolved"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Complaint.objects.get(pk=complaint_id).status, "resolved")

    def test_order_endpoints_are_not_cached(self):
        self.client.force_login(self.restaurant)
        response = self.client.get(reverse("restaurant_orders"))
        self.assertIn("no-store", response["Cache-Control"])
