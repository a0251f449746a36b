from datetime import timedelta
from io import StringIO
from unittest.mock import Mock, patch

import requests
from django.core import mail
from django.core.management import call_command
from django.db.models.query import QuerySet
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from hyperlocal.testing import HYDERABAD, make_crop, make_user
from orders import lifecycle
from orders.exceptions import Conflict, DependencyUnavailable, NotFoundOrWrongState, Unauthorized, ValidationFailed
from orders.models import Order

from . import settlement
from .models import SettlementTask
from .razorpay_utils import RazorpayGateway, to_paise

DELIVERY = (HYDERABAD[0] + 0.1, HYDERABAD[1])


def gateway_response(payload):
    response = Mock()
    response.json.return_value = payload
    return response


class RazorpayGatewayTests(SimpleTestCase):

    def setUp(self):
        self.gateway = RazorpayGateway("rzp_test_key", "shh", "https://gateway.test/v1/")

    def test_availability_needs_both_keys(self):
        self.assertTrue(self.gateway.is_available())
        self.assertFalse(RazorpayGateway("rzp_test_key", "").is_available())
        self.assertFalse(RazorpayGateway(None, None).is_available())

    @override_settings(RAZORPAY_KEY_ID="rzp_live", RAZORPAY_KEY_SECRET="secret", RAZORPAY_BASE_URL=None)
    def test_from_settings(self):
        gateway = RazorpayGateway.from_settings()
        self.assertTrue(gateway.is_available())
        self.assertEqual(gateway.base_url, RazorpayGateway.DEFAULT_BASE_URL)

    def test_signature(self):
        signature = self.gateway.signature_for("order_1", "pay_1")
        self.assertTrue(self.gateway.verify_signature("order_1", "pay_1", signature))
        self.assertFalse(self.gateway.verify_signature("order_1", "pay_2", signature))
        self.assertFalse(self.gateway.verify_signature("order_1", "pay_1", None))

    def test_amounts_are_sent_in_paise(self):
        self.assertEqual(to_paise(258), 25800)
        self.assertEqual(to_paise(57.5), 5750)

        with patch("payments.razorpay_utils.requests.post") as post:
            post.return_value = gateway_response({"id": "order_abc", "amount": 25800})
            data = self.gateway.create_order(258, "order_7", notes={"order_id": "7"})

        self.assertEqual(data["id"], "order_abc")
        url = post.call_args.args[0]
        self.assertEqual(url, "https://gateway.test/v1/orders")
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 25800)
        self.assertEqual(post.call_args.kwargs["json"]["currency"], "INR")
        self.assertEqual(post.call_args.kwargs["auth"], ("rzp_test_key", "shh"))

    def test_network_failure_is_dependency_unavailable(self):
        with patch("payments.razorpay_utils.requests.post", side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(DependencyUnavailable):
                self.gateway.refund("pay_1", 100)

    def test_unconfigured_gateway_never_calls_out(self):
        with patch("payments.razorpay_utils.requests.post") as post:
            with self.assertRaises(DependencyUnavailable):
                RazorpayGateway("", "").create_order(100, "r")
        post.assert_not_called()


class SettlementTestMixin:

    def setUp(self):
        self.farmer = make_user("farmer", "farmer")
        self.restaurant = make_user("restaurant", "restaurant", latitude=DELIVERY[0], longitude=DELIVERY[1])
        self.other_restaurant = make_user("other_restaurant", "restaurant")
        self.transporter = make_user("transporter", "transporter")
        self.crop = make_crop(self.farmer, price=40, quantity=50)
        self.gateway = RazorpayGateway("rzp_test_key", "shh")
        self.offline = RazorpayGateway("", "")

    def place(self):
        return lifecycle.place_order(
            self.restaurant, [{"crop_id": self.crop.id, "quantity": 5}], *DELIVERY, "Restaurant street"
        )

    def delivered(self):
        order = lifecycle.confirm_order(self.place().id, self.farmer)
        lifecycle.accept_order(order.id, self.transporter)
        lifecycle.mark_picked_up(order.id, self.transporter)
        return lifecycle.mark_delivered(order.id, self.transporter)

    def settled(self):
        order, task = settlement.settle(self.delivered().id, self.restaurant, "pay_1", self.gateway)
        return order, task

    def opened(self, order, gateway_order_id="order_rzp"):
        Order.objects.filter(pk=order.id).update(gateway_order_id=gateway_order_id)
        order.refresh_from_db()
        return order


class SettleTests(SettlementTestMixin, TestCase):

    def test_settle_marks_paid_and_schedules_transfers(self):
        order = self.delivered()
        before = timezone.now()

        order, task = settlement.settle(order.id, self.restaurant, "pay_1", self.gateway)

        self.assertEqual(order.payment_status, "paid")
        self.assertEqual(order.status, "delivered")
        self.assertEqual(order.external_payment_ref, "pay_1")
        self.assertEqual(order.farmer_transfer_status, "processing")
        self.assertEqual(order.transporter_transfer_status, "processing")
        self.assertIsNotNone(order.settled_at)
        self.assertEqual(task.order_id, order.id)
        self.assertIsNone(task.completed_at)
        self.assertGreaterEqual(task.run_after, before + timedelta(seconds=2))

        summary = settlement.transfer_summary(order)
        self.assertEqual(summary["farmer"], {"amount": 200, "status": "processing", "account": "***9012"})
        self.assertEqual(summary["transporter"]["amount"], 116)

    def test_settle_twice_is_rejected(self):
        order, _ = self.settled()
        with self.assertRaises(NotFoundOrWrongState):
            settlement.settle(order.id, self.restaurant, "pay_2", self.gateway)

        order.refresh_from_db()
        self.assertEqual(order.external_payment_ref, "pay_1")
        self.assertEqual(SettlementTask.objects.count(), 1)

    def test_only_ordering_restaurant_settles(self):
        order = self.delivered()
        for caller in (self.other_restaurant, self.farmer, self.transporter):
            with self.assertRaises(Unauthorized):
                settlement.settle(order.id, caller, "pay_1", self.gateway)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, "pending")

    def test_missing_order(self):
        with self.assertRaises(NotFoundOrWrongState):
            settlement.settle(31337, self.restaurant, "pay_1", self.gateway)

    def test_unconfigured_gateway(self):
        order = self.delivered()
        with self.assertRaises(DependencyUnavailable):
            settlement.settle(order.id, self.restaurant, "pay_1", self.offline)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, "pending")
        self.assertFalse(SettlementTask.objects.exists())

    def test_cancelled_order_cannot_be_paid(self):
        order = lifecycle.cancel_order(self.place().id, self.farmer, "Out of season")
        with self.assertRaises(NotFoundOrWrongState):
            settlement.settle(order.id, self.restaurant, "pay_1", self.gateway)

    def test_without_transporter_only_farmer_transfer_processes(self):
        order, _ = settlement.settle(self.place().id, self.restaurant, "pay_1", self.gateway)
        self.assertEqual(order.farmer_transfer_status, "processing")
        self.assertEqual(order.transporter_transfer_status, "completed")
        self.assertIsNone(settlement.transfer_summary(order)["transporter"])

    def test_verify_payment_checks_signature_before_settling(self):
        order = self.opened(self.delivered())
        with self.assertRaises(ValidationFailed):
            settlement.verify_payment(order.id, self.restaurant, "order_rzp", "pay_1", "forged", self.gateway)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, "pending")

        signature = self.gateway.signature_for("order_rzp", "pay_1")
        order, task = settlement.verify_payment(
            order.id, self.restaurant, "order_rzp", "pay_1", signature, self.gateway
        )
        self.assertEqual(order.payment_status, "paid")
        self.assertEqual(order.gateway_order_id, "order_rzp")
        self.assertEqual(order.status, "delivered")

    def test_verify_payment_needs_the_gateway_order_opened_for_it(self):
        victim = self.place()
        own = self.opened(self.place(), "order_own")
        signature = self.gateway.signature_for("order_own", "pay_small")

        with self.assertRaises(ValidationFailed):
            settlement.verify_payment(victim.id, self.restaurant, "order_own", "pay_small", signature, self.gateway)
        self.opened(victim, "order_victim")
        with self.assertRaises(ValidationFailed):
            settlement.verify_payment(victim.id, self.restaurant, "order_own", "pay_small", signature, self.gateway)

        victim.refresh_from_db()
        self.assertEqual(victim.payment_status, "pending")
        self.assertFalse(SettlementTask.objects.filter(order=victim).exists())

        order, _ = settlement.verify_payment(own.id, self.restaurant, "order_own", "pay_small", signature, self.gateway)
        self.assertEqual(order.payment_status, "paid")

    def test_settlement_through_a_replaced_gateway_order_is_refused(self):
        order = self.opened(self.delivered(), "order_new")
        with self.assertRaises(Conflict):
            settlement.settle(order.id, self.restaurant, "pay_1", self.gateway, gateway_order_id="order_old")
        order.refresh_from_db()
        self.assertEqual(order.payment_status, "pending")
        self.assertFalse(SettlementTask.objects.exists())

    def test_create_payment_order_for_payable_amount(self):
        order = self.delivered()
        with patch("payments.razorpay_utils.requests.post") as post:
            post.return_value = gateway_response({"id": "order_rzp", "amount": 25800, "currency": "INR"})
            result = settlement.create_payment_order(order.id, self.restaurant, self.gateway)

        self.assertEqual(post.call_args.kwargs["json"]["amount"], 25800)
        self.assertEqual(result["gateway_order_id"], "order_rzp")
        self.assertEqual(result["key_id"], "rzp_test_key")
        order.refresh_from_db()
        self.assertEqual(order.gateway_order_id, "order_rzp")

        with self.assertRaises(NotFoundOrWrongState):
            settlement.create_payment_order(order.id, self.other_restaurant, self.gateway)

    def test_create_payment_order_refuses_another_amount(self):
        order = self.delivered()
        with patch("payments.razorpay_utils.requests.post") as post:
            with self.assertRaises(ValidationFailed) as ctx:
                settlement.create_payment_order(order.id, self.restaurant, self.gateway, amount=1)
            post.assert_not_called()
            self.assertIn("amount", ctx.exception.errors)

            post.return_value = gateway_response({"id": "order_rzp", "amount": 25800, "currency": "INR"})
            settlement.create_payment_order(order.id, self.restaurant, self.gateway, amount=258)
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 25800)

    def test_splits_and_status_are_for_parties_only(self):
        order = self.delivered()
        splits = settlement.calculate_splits(order.id, self.farmer)
        self.assertEqual(splits["farmer"]["amount"], 200)
        self.assertEqual(splits["transporter"]["amount"], 116)
        self.assertEqual(splits["restaurant"]["total_amount"], 258)
        self.assertEqual(splits["farmer"]["ifsc_code"], "SBIN0000001")

        status = settlement.payment_status(order.id, self.transporter)
        self.assertEqual(status["status"], "pending")
        self.assertEqual(status["transfers"]["transporter"]["recipient"], "Transporter")

        with self.assertRaises(NotFoundOrWrongState):
            settlement.calculate_splits(order.id, self.other_restaurant)
        with self.assertRaises(NotFoundOrWrongState):
            settlement.payment_status(order.id, self.other_restaurant)


class DeferredTransferTests(SettlementTestMixin, TestCase):

    def test_transfers_complete_once_due(self):
        order, task = self.settled()

        self.assertEqual(settlement.run_due_settlements(now=timezone.now()), 0)

        later = task.run_after + timedelta(seconds=1)
        self.assertEqual(settlement.run_due_settlements(now=later), 1)
        self.assertEqual(settlement.run_due_settlements(now=later), 0)

        order.refresh_from_db()
        task.refresh_from_db()
        self.assertEqual(order.farmer_transfer_status, "completed")
        self.assertEqual(order.transporter_transfer_status, "completed")
        self.assertEqual(task.completed_at, later)
        self.assertEqual(task.attempts, 1)

    def test_completing_a_claimed_task_is_a_no_op(self):
        _, task = self.settled()
        self.assertTrue(settlement.complete_settlement(task))
        self.assertFalse(settlement.complete_settlement(task))

    @override_settings(DEFAULT_FROM_EMAIL="noreply@example.com")
    def test_payees_are_notified(self):
        _, task = self.settled()
        mail.outbox.clear()

        settlement.run_due_settlements(now=task.run_after)

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("Payment Settled", mail.outbox[0].subject)
        self.assertEqual(sorted(mail.outbox[0].to), ["farmer@example.com", "transporter@example.com"])

    def test_failed_payout_is_retried_later(self):
        order, task = self.settled()
        now = task.run_after

        with patch("payments.settlement._complete_transfers", side_effect=RuntimeError("bank timeout")):
            self.assertEqual(settlement.run_due_settlements(now=now), 0)

        task.refresh_from_db()
        order.refresh_from_db()
        self.assertIsNone(task.completed_at)
        self.assertEqual(task.attempts, 1)
        self.assertEqual(task.last_error, "bank timeout")
        self.assertEqual(task.run_after, now + timedelta(seconds=2))
        self.assertEqual(order.farmer_transfer_status, "processing")

        self.assertEqual(settlement.run_due_settlements(now=task.run_after), 1)
        order.refresh_from_db()
        self.assertEqual(order.farmer_transfer_status, "completed")

    @override_settings(SETTLEMENT_MAX_ATTEMPTS=1)
    def test_payout_marked_failed_after_last_attempt(self):
        order, task = self.settled()

        with patch("payments.settlement._complete_transfers", side_effect=RuntimeError("account closed")):
            settlement.run_due_settlements(now=task.run_after)

        task.refresh_from_db()
        order.refresh_from_db()
        self.assertIsNotNone(task.completed_at)
        self.assertEqual(order.farmer_transfer_status, "failed")
        self.assertEqual(order.transporter_transfer_status, "failed")
        self.assertEqual(order.payment_status, "paid")

    def test_management_command(self):
        order, task = self.settled()
        SettlementTask.objects.filter(pk=task.pk).update(run_after=timezone.now() - timedelta(seconds=1))
        out = StringIO()

        call_command("process_settlements", stdout=out)

        self.assertIn("Completed 1 settlement(s)", out.getvalue())
        order.refresh_from_db()
        self.assertEqual(order.farmer_transfer_status, "completed")


class RefundTests(SettlementTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.order, _ = self.settled()

    def refund(self, caller=None, **kwargs):
        with patch("payments.razorpay_utils.requests.post") as post:
            post.return_value = gateway_response({"id": "rfnd_1", "status": "processed"})
            result = settlement.refund(self.order.id, caller or self.restaurant, "Spoiled", self.gateway, **kwargs)
        return result, post

    def test_full_refund_by_default(self):
        (order, gateway_refund), post = self.refund()

        self.assertEqual(post.call_args.args[0], "https://api.razorpay.com/v1/payments/pay_1/refund")
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 25800)
        self.assertEqual(order.payment_status, "refunded")
        self.assertEqual(order.status, "delivered")
        self.assertEqual(order.refund_id, "rfnd_1")
        self.assertEqual(order.refund_amount, 258)
        self.assertEqual(order.refund_reason, "Spoiled")
        self.assertIsNotNone(order.refunded_at)
        self.assertEqual(gateway_refund["status"], "processed")

    def test_partial_refund(self):
        (order, _), post = self.refund(amount=100)
        self.assertEqual(post.call_args.kwargs["json"]["amount"], 10000)
        self.assertEqual(order.refund_amount, 100)

    def test_refund_cannot_exceed_payment(self):
        with self.assertRaises(ValidationFailed):
            self.refund(amount=259)

    def test_refund_only_once(self):
        self.refund()
        with self.assertRaises(NotFoundOrWrongState):
            self.refund()

    def test_unpaid_order(self):
        self.order = self.place()
        with self.assertRaises(NotFoundOrWrongState):
            self.refund()

    def test_other_restaurant_cannot_refund(self):
        with self.assertRaises(Unauthorized):
            self.refund(caller=self.other_restaurant)

    def test_unconfigured_gateway(self):
        with self.assertRaises(DependencyUnavailable):
            settlement.refund(self.order.id, self.restaurant, "Spoiled", self.offline)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, "paid")

    @override_settings(DEFAULT_FROM_EMAIL="noreply@example.com")
    def test_refund_cancels_transfers_not_yet_paid_out(self):
        task = SettlementTask.objects.get(order=self.order)
        self.refund()
        mail.outbox.clear()

        self.assertEqual(settlement.run_due_settlements(now=task.run_after), 0)
        self.assertFalse(settlement.complete_settlement(task))

        order = Order.objects.get(pk=self.order.id)
        task.refresh_from_db()
        self.assertEqual(order.payment_status, "refunded")
        self.assertEqual(order.farmer_transfer_status, "failed")
        self.assertEqual(order.transporter_transfer_status, "failed")
        self.assertIsNotNone(task.completed_at)
        self.assertEqual(task.last_error, "Order refunded before transfers completed")
        self.assertEqual(mail.outbox, [])

    def test_transfers_already_paid_out_stay_completed(self):
        task = SettlementTask.objects.get(order=self.order)
        settlement.run_due_settlements(now=task.run_after)

        (order, _), _ = self.refund()

        self.assertEqual(order.payment_status, "refunded")
        self.assertEqual(order.farmer_transfer_status, "completed")
        self.assertEqual(order.transporter_transfer_status, "completed")

    def test_gateway_failure_leaves_order_and_transfers_untouched(self):
        with patch("payments.razorpay_utils.requests.post", side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(DependencyUnavailable):
                settlement.refund(self.order.id, self.restaurant, "Spoiled", self.gateway)

        order = Order.objects.get(pk=self.order.id)
        self.assertEqual(order.payment_status, "paid")
        self.assertEqual(order.farmer_transfer_status, "processing")
        self.assertTrue(SettlementTask.objects.filter(order=order, completed_at__isnull=True).exists())

    def test_order_is_locked_before_the_gateway_is_called(self):
        calls = []
        real_lock = QuerySet.select_for_update

        def lock(queryset, *args, **kwargs):
            calls.append("lock")
            return real_lock(queryset, *args, **kwargs)

        def gateway_refund(*args, **kwargs):
            calls.append("gateway")
            return gateway_response({"id": "rfnd_1", "status": "processed"})

        with patch.object(QuerySet, "select_for_update", lock):
            with patch("payments.razorpay_utils.requests.post", side_effect=gateway_refund):
                settlement.refund(self.order.id, self.restaurant, "Spoiled", self.gateway)

        self.assertEqual(calls, ["lock", "gateway"])

    def test_stale_second_refund_never_reaches_the_gateway(self):
        self.refund()
        with patch("payments.razorpay_utils.requests.post") as post:
            with self.assertRaises(NotFoundOrWrongState):
                settlement.refund(self.order.id, self.restaurant, "Spoiled again", self.gateway)
        post.assert_not_called()
        self.assertEqual(Order.objects.get(pk=self.order.id).refund_reason, "Spoiled")


class PaymentApiTests(SettlementTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        patcher = patch("payments.settlement.get_gateway", return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)

    def post(self, user, name, body):
        self.client.force_login(user)
        return self.client.post(reverse(name), body, content_type="application/json")

    def test_settle_endpoint(self):
        order = self.delivered()
        response = self.post(self.restaurant, "payment_settle", {"order_id": order.id, "razorpay_payment_id": "pay_9"})

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["order"]["payment_status"], "paid")
        self.assertEqual(data["order"]["payment_details"]["external_payment_ref"], "pay_9")
        self.assertEqual(data["transfers"]["farmer"]["status"], "processing")

        response = self.post(self.restaurant, "payment_settle", {"order_id": order.id, "razorpay_payment_id": "pay_9"})
        self.assertEqual(response.status_code, 404)

    def test_settle_endpoint_errors(self):
        order = self.delivered()
        response = self.post(self.farmer, "payment_settle", {"order_id": order.id, "razorpay_payment_id": "p"})
        self.assertEqual(response.status_code, 403)

        response = self.post(self.other_restaurant, "payment_settle", {"order_id": order.id, "razorpay_payment_id": "p"})
        self.assertEqual(response.status_code, 403)

        response = self.post(self.restaurant, "payment_settle", {"order_id": order.id})
        self.assertEqual(response.status_code, 400)

        with patch("payments.settlement.get_gateway", return_value=self.offline):
            response = self.post(self.restaurant, "payment_settle", {"order_id": order.id, "razorpay_payment_id": "p"})
        self.assertEqual(response.status_code, 503)

    def test_verify_endpoint(self):
        order = self.opened(self.delivered())
        body = {
            "order_id": order.id,
            "razorpay_order_id": "order_rzp",
            "razorpay_payment_id": "pay_3",
            "razorpay_signature": self.gateway.signature_for("order_rzp", "pay_3"),
        }
        response = self.post(self.restaurant, "payment_verify", body)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Order.objects.get(pk=order.id).payment_status, "paid")

    def test_status_calculate_and_history(self):
        order, _ = self.settled()

        self.client.force_login(self.farmer)
        response = self.client.get(reverse("payment_status", args=[order.id]))
        self.assertEqual(response.json()["data"]["payment_status"]["status"], "paid")
        self.assertIn("no-store", response["Cache-Control"])

        response = self.post(self.transporter, "payment_calculate", {"order_id": order.id})
        self.assertEqual(response.json()["data"]["payment_splits"]["transporter"]["amount"], 116)

        self.client.force_login(self.other_restaurant)
        self.assertEqual(self.client.get(reverse("payment_status", args=[order.id])).status_code, 404)
        history = self.client.get(reverse("payment_history")).json()["data"]
        self.assertEqual(history["orders"], [])
        self.assertEqual(history["pagination"]["total_pages"], 0)

        self.client.force_login(self.restaurant)
        history = self.client.get(reverse("payment_history")).json()["data"]
        self.assertEqual([o["id"] for o in history["orders"]], [order.id])

    def test_refund_endpoint(self):
        order, _ = self.settled()
        with patch("payments.razorpay_utils.requests.post") as post:
            post.return_value = gateway_response({"id": "rfnd_2", "status": "processed"})
            response = self.post(self.restaurant, "payment_refund", {"order_id": order.id, "reason": "Wrong crop"})

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["refund"], {"id": "rfnd_2", "amount": 258, "status": "processed"})
        self.assertEqual(data["order"]["refund_details"]["reason"], "Wrong crop")
