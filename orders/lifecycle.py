# orders/lifecycle.py - order placement and status transitions
"""
Order state machine.

    pending -> confirmed -> picked_up -> in_transit -> delivered
    pending | confirmed -> cancelled

``in_transit`` may be skipped: delivery is accepted from picked_up or
in_transit. Each transition reads the order under its precondition (missing,
not owned, or wrong status all raise ``NotFoundOrWrongState``) and then
writes with a conditional UPDATE keyed on the state it read. If another
request got there first the UPDATE matches no row and ``Conflict`` is raised.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from accounts.models import Profile
from crops.models import Crop

from . import notifications
from .exceptions import Conflict, NotFoundOrWrongState, Unauthorized, ValidationFailed
from .fees import calculate_delivery_fee, great_circle_km, split_delivery_fee, total_weight
from .models import Complaint, Order, OrderLineItem

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = ("pending", "confirmed")
DELIVERABLE_STATUSES = ("picked_up", "in_transit")


def _user_type(user):
    profile = getattr(user, "profile", None)
    return profile.user_type if profile is not None else None


def _require_role(user, role):
    if _user_type(user) != role:
        raise Unauthorized(f"Only {role} accounts can perform this operation")


def _load(order_id, message=None, **preconditions):
    order = Order.objects.filter(pk=order_id, **preconditions).first()
    if order is None:
        raise NotFoundOrWrongState(message)
    return order


def _compare_and_set(order_id, expected, changes):
    """
    Apply ``changes`` only if the row still matches ``expected``.
    Raises ``Conflict`` when no row matched.
    """
    updated = Order.objects.filter(pk=order_id, **expected).update(updated_at=timezone.now(), **changes)
    if updated != 1:
        logger.warning(f"Order {order_id} changed concurrently; expected {expected}")
        raise Conflict()
    return Order.objects.get(pk=order_id)


# ==================== PLACEMENT ====================

def place_order(restaurant, items, delivery_latitude, delivery_longitude, delivery_address, notes=""):
    """
    Create an order for ``items`` (``[{"crop_id": ..., "quantity": ...}]``).

    Stock is reserved with guarded F() decrements and the totals, distance
    and delivery fee are frozen on the order. Everything happens in one
    transaction: any failure leaves stock untouched.
    """
    _require_role(restaurant, "restaurant")
    if not items:
        raise ValidationFailed("At least one crop is required")
    for item in items:
        if item["quantity"] < 1:
            raise ValidationFailed("Quantity must be at least 1")

    # one line per crop, so the stock check sees the whole requested quantity
    quantities = {}
    for item in items:
        quantities[item["crop_id"]] = quantities.get(item["crop_id"], 0) + item["quantity"]
    items = [{"crop_id": crop_id, "quantity": quantity} for crop_id, quantity in quantities.items()]

    with transaction.atomic():
        crop_ids = list(quantities)
        crops = Crop.objects.select_related("farmer__profile").in_bulk(crop_ids)

        lines = []
        total_amount = 0
        for item in items:
            crop = crops.get(item["crop_id"])
            if crop is None:
                raise NotFoundOrWrongState(f"Crop with ID {item['crop_id']} not found")
            if crop.status != "available":
                raise ValidationFailed(f"Crop {crop.name} is not available")
            if crop.available_quantity < item["quantity"]:
                raise ValidationFailed(
                    f"Insufficient quantity for {crop.name}. Available: {crop.available_quantity}"
                )
            total_amount += crop.price * item["quantity"]
            lines.append({
                "crop": crop,
                "quantity": item["quantity"],
                "unit_price": crop.price,
                "unit": crop.unit,
                "weight_per_unit": crop.weight_per_unit or 0,
            })

        farmer_ids = {line["crop"].farmer_id for line in lines}
        if len(farmer_ids) != 1:
            raise ValidationFailed("All crops in an order must come from the same farmer")

        # reserve stock; a concurrent order may have taken it since the read
        for line in lines:
            reserved = Crop.objects.filter(
                pk=line["crop"].pk,
                status="available",
                available_quantity__gte=line["quantity"],
            ).update(available_quantity=F("available_quantity") - line["quantity"])
            if not reserved:
                raise Conflict(f"Stock for {line['crop'].name} changed, please retry")

        Crop.objects.filter(pk__in=crop_ids, available_quantity__lte=0).update(status="out_of_stock")

        farmer = lines[0]["crop"].farmer
        pickup = getattr(farmer, "profile", None) or lines[0]["crop"]
        distance_km = great_circle_km(
            pickup.latitude, pickup.longitude, delivery_latitude, delivery_longitude
        )
        delivery_fee = calculate_delivery_fee(distance_km, total_weight(lines))
        farmer_share, restaurant_share = split_delivery_fee(delivery_fee)

        order = Order.objects.create(
            farmer=farmer,
            restaurant=restaurant,
            total_amount=total_amount,
            delivery_fee=delivery_fee,
            farmer_delivery_share=farmer_share,
            restaurant_delivery_share=restaurant_share,
            pickup_latitude=pickup.latitude,
            pickup_longitude=pickup.longitude,
            pickup_address=pickup.address,
            delivery_latitude=delivery_latitude,
            delivery_longitude=delivery_longitude,
            delivery_address=delivery_address,
            distance_km=distance_km,
            estimated_delivery_time=timezone.now() + timedelta(hours=settings.ORDER_ESTIMATED_DELIVERY_HOURS),
            notes=notes or "",
        )
        OrderLineItem.objects.bulk_create([
            OrderLineItem(order=order, position=position, **line)
            for position, line in enumerate(lines)
        ])

    logger.info(
        f"Order {order.id} placed by restaurant {restaurant.id}: "
        f"total ₹{total_amount}, {distance_km} km, delivery fee ₹{delivery_fee}"
    )
    notifications.notify_farmer_new_order(order)
    return order


# ==================== FARMER TRANSITIONS ====================

def confirm_order(order_id, farmer):
    order = _load(order_id, "Order not found or already processed", farmer=farmer, status="pending")
    order = _compare_and_set(order.pk, {"status": "pending"}, {"status": "confirmed"})
    logger.info(f"Order {order.id} confirmed by farmer {farmer.id}")

    notifications.notify_restaurant_order_confirmed(order)
    notifications.notify_transporters_new_delivery(order)
    return order


def cancel_order(order_id, farmer, reason):
    """Cancel a pending or confirmed order and put its stock back on sale."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("A cancellation reason is required")

    with transaction.atomic():
        order = _load(
            order_id,
            "Order not found or cannot be cancelled",
            farmer=farmer,
            status__in=CANCELLABLE_STATUSES,
        )
        order = _compare_and_set(
            order.pk,
            {"status": order.status},
            {"status": "cancelled", "notes": f"Cancelled by farmer: {reason}"},
        )
        for item in order.line_items.all():
            Crop.objects.filter(pk=item.crop_id).update(
                available_quantity=F("available_quantity") + item.quantity,
                status="available",
            )

    logger.info(f"Order {order.id} cancelled by farmer {farmer.id}")
    return order


# ==================== TRANSPORTER TRANSITIONS ====================

def accept_order(order_id, transporter):
    """Assign ``transporter``; the order stays confirmed until pickup."""
    _require_role(transporter, "transporter")
    order = _load(
        order_id,
        "Order not available or already assigned",
        status="confirmed",
        transporter__isnull=True,
    )
    order = _compare_and_set(
        order.pk,
        {"status": "confirmed", "transporter__isnull": True},
        {"transporter": transporter},
    )
    logger.info(f"Order {order.id} accepted by transporter {transporter.id}")
    return order


def mark_picked_up(order_id, transporter):
    order = _load(order_id, transporter=transporter, status="confirmed")
    order = _compare_and_set(
        order.pk,
        {"status": "confirmed", "transporter": transporter},
        {"status": "picked_up"},
    )
    logger.info(f"Order {order.id} picked up by transporter {transporter.id}")
    notifications.notify_order_picked_up(order)
    return order


def verify_quality(order_id, transporter, score, notes=""):
    """Record the pickup quality score (1-5). Only once per order."""
    if not 1 <= score <= 5:
        raise ValidationFailed("Quality score must be between 1 and 5")

    order = _load(
        order_id,
        transporter=transporter,
        status="picked_up",
        quality_verified_at__isnull=True,
    )
    order = _compare_and_set(
        order.pk,
        {"status": "picked_up", "transporter": transporter, "quality_verified_at__isnull": True},
        {
            "quality_score": score,
            "quality_notes": notes or "",
            "quality_verified_by": transporter,
            "quality_verified_at": timezone.now(),
        },
    )
    logger.info(f"Order {order.id} quality verified at {score}/5 by transporter {transporter.id}")
    return order


def mark_in_transit(order_id, transporter):
    order = _load(order_id, transporter=transporter, status="picked_up")
    order = _compare_and_set(
        order.pk,
        {"status": "picked_up", "transporter": transporter},
        {"status": "in_transit"},
    )
    logger.info(f"Order {order.id} in transit")
    return order


def mark_delivered(order_id, transporter):
    with transaction.atomic():
        order = _load(order_id, transporter=transporter, status__in=DELIVERABLE_STATUSES)
        order = _compare_and_set(
            order.pk,
            {"status": order.status, "transporter": transporter},
            {"status": "delivered", "actual_delivery_time": timezone.now()},
        )
        Profile.objects.filter(user_id__in=order.party_ids()).update(total_orders=F("total_orders") + 1)

    logger.info(f"Order {order.id} delivered by transporter {transporter.id}")
    notifications.notify_order_delivered(order)
    return order


# ==================== COMPLAINTS ====================

def raise_complaint(order_id, user, description):
    description = (description or "").strip()
    if not description:
        raise ValidationFailed("Complaint description is required")

    order = (
        Order.objects.filter(pk=order_id)
        .filter(Q(restaurant=user) | Q(transporter=user))
        .first()
    )
    if order is None:
        raise NotFoundOrWrongState("Order not found")

    complaint = Complaint.objects.create(order=order, raised_by=user, description=description)
    logger.info(f"Complaint {complaint.id} raised on order {order.id} by user {user.id}")
    return complaint


def resolve_complaint(complaint_id, staff_user, status):
    if not staff_user.is_staff:
        raise Unauthorized("Only staff can resolve complaints")
    if status not in ("resolved", "rejected"):
        raise ValidationFailed("Status must be resolved or rejected")

    updated = Complaint.objects.filter(pk=complaint_id, status="open").update(
        status=status, resolved_at=timezone.now()
    )
    if not updated:
        raise NotFoundOrWrongState("Complaint not found or already closed")

    logger.info(f"Complaint {complaint_id} marked {status} by {staff_user.id}")
    return Complaint.objects.get(pk=complaint_id)
