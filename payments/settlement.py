# payments/settlement.py - payment splits, settlement, deferred transfers, refunds
"""
Settlement bookkeeping for delivered (or otherwise payable) orders.

``settle`` marks an order paid exactly once and writes a ``SettlementTask``
in the same transaction. The task is completed later by
``run_due_settlements`` (the ``process_settlements`` command), which moves
transfers from processing to completed and is safe to run repeatedly.
"""
import logging
import time
from datetime import timedelta

from django.apps import apps
from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from orders import notifications
from orders.exceptions import Conflict, DependencyUnavailable, NotFoundOrWrongState, Unauthorized, ValidationFailed
from orders.models import Order

from .models import SettlementTask

logger = logging.getLogger(__name__)


def get_gateway():
    return apps.get_app_config("payments").gateway


def _masked(user):
    profile = getattr(user, "profile", None) if user else None
    return profile.masked_account if profile else ""


def _load_for_party(order_id, caller):
    order = (
        Order.objects.select_related("farmer__profile", "restaurant__profile", "transporter__profile")
        .filter(pk=order_id)
        .filter(Q(farmer=caller) | Q(restaurant=caller) | Q(transporter=caller))
        .first()
    )
    if order is None:
        raise NotFoundOrWrongState("Order not found")
    return order


# ==================== SPLITS & STATUS ====================

def calculate_splits(order_id, caller):
    """Who receives what once the restaurant pays."""
    order = _load_for_party(order_id, caller)
    farmer_profile = getattr(order.farmer, "profile", None)
    transporter_profile = getattr(order.transporter, "profile", None) if order.transporter_id else None

    return {
        "farmer": {
            "amount": order.total_amount,
            "account": _masked(order.farmer),
            "ifsc_code": farmer_profile.ifsc_code if farmer_profile else "",
            "account_holder_name": farmer_profile.account_holder_name if farmer_profile else "",
        },
        "transporter": {
            "amount": order.delivery_fee,
            "account": _masked(order.transporter),
            "ifsc_code": transporter_profile.ifsc_code if transporter_profile else "",
            "account_holder_name": transporter_profile.account_holder_name if transporter_profile else "",
        },
        "restaurant": {
            "total_amount": order.restaurant_payable,
            "farmer_amount": order.total_amount,
            "delivery_share": order.restaurant_delivery_share,
        },
    }


def payment_status(order_id, caller):
    order = _load_for_party(order_id, caller)

    transporter = None
    if order.transporter_id:
        transporter = {
            "amount": order.delivery_fee,
            "status": order.transporter_transfer_status,
            "recipient": order.transporter.profile.name if hasattr(order.transporter, "profile") else "",
        }

    return {
        "order_id": order.id,
        "status": order.payment_status,
        "total_amount": order.restaurant_payable,
        "breakdown": {
            "farmer_amount": order.total_amount,
            "delivery_fee": order.delivery_fee,
            "restaurant_delivery_share": order.restaurant_delivery_share,
        },
        "transfers": {
            "farmer": {
                "amount": order.total_amount,
                "status": order.farmer_transfer_status,
                "recipient": order.farmer.profile.name if hasattr(order.farmer, "profile") else "",
            },
            "transporter": transporter,
        },
        "settled_at": order.settled_at.isoformat() if order.settled_at else None,
    }


# ==================== GATEWAY ORDERS ====================

def create_payment_order(order_id, caller, gateway, amount=None):
    """Open a Razorpay order for the restaurant's payable amount."""
    if not gateway.is_available():
        raise DependencyUnavailable("Payment gateway not configured. Please contact administrator.")

    order = Order.objects.filter(pk=order_id, restaurant=caller, payment_status="pending").exclude(
        status="cancelled"
    ).first()
    if order is None:
        raise NotFoundOrWrongState("Order not found or not payable")

    if amount is not None and round(amount, 2) != round(order.restaurant_payable, 2):
        raise ValidationFailed(
            f"Amount must equal the payable amount of ₹{order.restaurant_payable}",
            errors={"amount": ["Does not match the order total."]},
        )

    amount = order.restaurant_payable
    receipt = f"order_{order.id}_{int(time.time() * 1000)}"
    gateway_order = gateway.create_order(
        amount,
        receipt,
        notes={"order_id": str(order.id), "user_id": str(caller.id)},
    )
    Order.objects.filter(pk=order.pk).update(gateway_order_id=gateway_order["id"], updated_at=timezone.now())

    return {
        "gateway_order_id": gateway_order["id"],
        "amount": gateway_order.get("amount"),
        "currency": gateway_order.get("currency", "INR"),
        "receipt": gateway_order.get("receipt", receipt),
        "key_id": gateway.key_id,
    }


def verify_payment(order_id, caller, gateway_order_id, payment_id, signature, gateway):
    """Check the checkout signature, then settle through the same guarded path."""
    if not gateway.is_available():
        raise DependencyUnavailable("Payment gateway not configured. Cannot verify payments.")
    if not gateway.verify_signature(gateway_order_id, payment_id, signature):
        logger.warning(f"Invalid payment signature for order {order_id}")
        raise ValidationFailed("Invalid payment signature")

    # the signed gateway order must be the one opened for this order
    order = Order.objects.filter(pk=order_id, restaurant=caller).first()
    if order is not None and (not order.gateway_order_id or order.gateway_order_id != gateway_order_id):
        logger.warning(f"Gateway order {gateway_order_id} does not belong to order {order_id}")
        raise ValidationFailed("Payment does not belong to this order")

    return settle(order_id, caller, payment_id, gateway, gateway_order_id=gateway_order_id)


# ==================== SETTLEMENT ====================

def settle(order_id, caller, external_payment_ref, gateway, gateway_order_id=None):
    """
    Mark the order paid and start the farmer/transporter transfers.

    Only a pending, non-cancelled order can be settled, and only by its
    restaurant. Returns ``(order, task)``; the task completes the transfers
    after ``SETTLEMENT_DELAY_SECONDS``.
    """
    if not gateway.is_available():
        raise DependencyUnavailable("Payment gateway not configured. Cannot settle payments.")

    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFoundOrWrongState("Order not found")
    if order.restaurant_id != caller.id:
        raise Unauthorized("Unauthorized to settle this order")
    if order.payment_status != "pending" or order.status == "cancelled":
        raise NotFoundOrWrongState("Order already settled or not payable")

    now = timezone.now()
    changes = {
        "payment_status": "paid",
        "external_payment_ref": external_payment_ref,
        "farmer_transfer_status": "processing",
        "transporter_transfer_status": "processing" if order.transporter_id else "completed",
        "settled_at": now,
        "updated_at": now,
    }
    guard = {"pk": order.pk, "payment_status": "pending", "transporter_id": order.transporter_id}
    if gateway_order_id:
        guard["gateway_order_id"] = gateway_order_id

    with transaction.atomic():
        updated = (
            Order.objects.filter(**guard)
            .exclude(status="cancelled")
            .update(**changes)
        )
        if not updated:
            raise Conflict("Order was modified by another request, please retry")

        task = SettlementTask.objects.create(
            order_id=order.pk,
            run_after=now + timedelta(seconds=settings.SETTLEMENT_DELAY_SECONDS),
        )

    logger.info(
        f"Order {order.pk} settled by restaurant {caller.id} (ref {external_payment_ref}); "
        f"transfers scheduled as task {task.pk}"
    )
    return Order.objects.select_related("farmer__profile", "transporter__profile").get(pk=order.pk), task


def transfer_summary(order):
    transporter = None
    if order.transporter_id:
        transporter = {
            "amount": order.delivery_fee,
            "status": order.transporter_transfer_status,
            "account": _masked(order.transporter),
        }
    return {
        "farmer": {
            "amount": order.total_amount,
            "status": order.farmer_transfer_status,
            "account": _masked(order.farmer),
        },
        "transporter": transporter,
    }


def _complete_transfers(order_id):
    """Payout step: move transfers still processing to completed, while the order stays paid."""
    Order.objects.filter(pk=order_id, payment_status="paid", farmer_transfer_status="processing").update(
        farmer_transfer_status="completed"
    )
    Order.objects.filter(pk=order_id, payment_status="paid", transporter_transfer_status="processing").update(
        transporter_transfer_status="completed"
    )


def _fail_transfers(order_id):
    Order.objects.filter(pk=order_id, farmer_transfer_status="processing").update(
        farmer_transfer_status="failed"
    )
    Order.objects.filter(pk=order_id, transporter_transfer_status="processing").update(
        transporter_transfer_status="failed"
    )


def complete_settlement(task, now=None):
    """
    Run one deferred settlement. Returns True if this call completed it.

    The task row is claimed with a conditional update so a second worker (or
    a rerun) does nothing. On error the claim is rolled back, the error is
    recorded and the task is rescheduled; after ``SETTLEMENT_MAX_ATTEMPTS``
    the remaining transfers are marked failed.
    """
    now = now or timezone.now()
    try:
        with transaction.atomic():
            claimed = SettlementTask.objects.filter(pk=task.pk, completed_at__isnull=True).update(
                completed_at=now, attempts=F("attempts") + 1
            )
            if not claimed:
                return False
            _complete_transfers(task.order_id)

    except Exception as e:
        task.refresh_from_db()
        task.attempts += 1
        task.last_error = str(e)
        if task.attempts >= settings.SETTLEMENT_MAX_ATTEMPTS:
            _fail_transfers(task.order_id)
            task.completed_at = now
            logger.error(
                f"Settlement task {task.pk} for order {task.order_id} failed permanently: {str(e)}",
                exc_info=True,
            )
        else:
            task.run_after = now + timedelta(seconds=settings.SETTLEMENT_DELAY_SECONDS * task.attempts)
            logger.error(
                f"Settlement task {task.pk} attempt {task.attempts} failed, retrying: {str(e)}",
                exc_info=True,
            )
        task.save(update_fields=["attempts", "last_error", "completed_at", "run_after"])
        return False

    order = Order.objects.select_related("farmer", "transporter").get(pk=task.order_id)
    if order.payment_status != "paid" or order.farmer_transfer_status != "completed":
        logger.info(f"Settlement task {task.pk} closed without payout, order {order.pk} is {order.payment_status}")
        return False

    logger.info(f"Transfers completed for order {order.pk}")
    notifications.notify_payment_settled(order)
    return True


def run_due_settlements(now=None):
    """Complete every settlement task that is due. Returns the number completed."""
    now = now or timezone.now()
    due = SettlementTask.objects.filter(completed_at__isnull=True, run_after__lte=now)
    completed = 0
    for task in due:
        if complete_settlement(task, now=now):
            completed += 1
    if completed:
        logger.info(f"Completed {completed} settlement task(s)")
    return completed


# ==================== REFUNDS ====================

def refund(order_id, caller, reason, gateway, amount=None):
    """
    Refund a paid order through the gateway. The delivery status is left
    as it is; only the payment side moves to refunded.

    The order row stays locked from the paid check until the refund is
    recorded, so two refunds of one order cannot both reach the gateway.
    Transfers that have not been paid out yet are cancelled along with
    their pending settlement task.
    """
    if not gateway.is_available():
        raise DependencyUnavailable("Payment gateway not configured. Refunds not available.")

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFoundOrWrongState("Order not found")
        if order.restaurant_id != caller.id and not caller.is_staff:
            raise Unauthorized("Unauthorized to refund this order")
        if order.payment_status != "paid":
            raise NotFoundOrWrongState("Order is not paid")

        refund_amount = amount or order.restaurant_payable
        if refund_amount > order.restaurant_payable:
            raise ValidationFailed("Refund amount cannot exceed the amount paid")

        gateway_refund = gateway.refund(
            order.external_payment_ref,
            refund_amount,
            notes={"reason": reason, "order_id": str(order.pk)},
        )

        now = timezone.now()
        Order.objects.filter(pk=order.pk).update(
            payment_status="refunded",
            refund_id=gateway_refund["id"],
            refund_amount=refund_amount,
            refund_reason=reason,
            refunded_at=now,
            updated_at=now,
        )
        _fail_transfers(order.pk)
        cancelled = SettlementTask.objects.filter(order_id=order.pk, completed_at__isnull=True).update(
            completed_at=now, last_error="Order refunded before transfers completed"
        )

    logger.info(
        f"Order {order.pk} refunded ₹{refund_amount} ({gateway_refund['id']}); "
        f"{cancelled} pending settlement task(s) cancelled"
    )
    return Order.objects.get(pk=order.pk), gateway_refund
