# orders/views.py
import logging
from datetime import timedelta

from django.db.models import Avg, Count, F, Sum
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from crops.models import Crop
from hyperlocal.api import api_endpoint, paginate, parse_body, parse_query, role_required, staff_required, success

from . import lifecycle
from .fees import great_circle_km
from .forms import (
    CancelOrderForm,
    ComplaintForm,
    EarningsQuery,
    NearbyQuery,
    OrderIdForm,
    OrderListQuery,
    PlaceOrderForm,
    ResolveComplaintForm,
    VerifyQualityForm,
)
from .models import Order
from .serializers import serialize_complaint, serialize_order

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_PICKUP_RADIUS_KM = 50


# ==================== HELPERS ====================

def _order_queryset():
    return Order.objects.select_related(
        "farmer__profile", "restaurant__profile", "transporter__profile"
    ).prefetch_related("line_items__crop", "complaints")


def _list_orders(request, **owner):
    query = parse_query(request, OrderListQuery)
    orders = _order_queryset().filter(**owner)
    if query["status"]:
        orders = orders.filter(status=query["status"])

    page, pagination = paginate(orders, query["page"] or 1, query["limit"] or DEFAULT_PAGE_SIZE)
    return success(orders=[serialize_order(o) for o in page], pagination=pagination)


def _month_start():
    return timezone.localtime().replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _total(queryset, expression):
    return queryset.aggregate(total=Sum(expression))["total"] or 0


# ==================== RESTAURANT ====================

@require_http_methods(["GET", "POST"])
@role_required("restaurant")
@api_endpoint
def restaurant_orders(request):
    """GET lists the restaurant's orders, POST places a new one."""
    if request.method == "GET":
        return _list_orders(request, restaurant=request.user)

    data = parse_body(request, PlaceOrderForm)
    order = lifecycle.place_order(
        request.user,
        data["crops"],
        data["delivery_latitude"],
        data["delivery_longitude"],
        data["delivery_address"],
        notes=data["notes"],
    )
    return success("Order placed successfully", status=201, order=serialize_order(order))


@require_POST
@role_required("restaurant")
@api_endpoint
def restaurant_complaint(request):
    data = parse_body(request, ComplaintForm)
    complaint = lifecycle.raise_complaint(data["order_id"], request.user, data["description"])
    return success("Complaint raised successfully", complaint=serialize_complaint(complaint))


@require_GET
@role_required("restaurant")
@api_endpoint
def restaurant_dashboard_stats(request):
    orders = Order.objects.filter(restaurant=request.user)
    paid = orders.filter(payment_status="paid")
    payable = F("total_amount") + F("restaurant_delivery_share")

    return success(
        total_orders=orders.count(),
        pending_orders=orders.filter(status__in=["pending", "confirmed"]).count(),
        total_spent=_total(paid, payable),
        monthly_spent=_total(paid.filter(created_at__gte=_month_start()), payable),
        active_farmers=orders.order_by().values("farmer").distinct().count(),
    )


# ==================== FARMER ====================

@require_GET
@role_required("farmer")
@api_endpoint
def farmer_orders(request):
    return _list_orders(request, farmer=request.user)


@require_POST
@role_required("farmer")
@api_endpoint
def confirm_order(request, order_id):
    order = lifecycle.confirm_order(order_id, request.user)
    return success("Order confirmed successfully", order=serialize_order(order))


@require_POST
@role_required("farmer")
@api_endpoint
def cancel_order(request, order_id):
    data = parse_body(request, CancelOrderForm)
    order = lifecycle.cancel_order(order_id, request.user, data["reason"])
    return success("Order cancelled successfully", order=serialize_order(order))


@require_GET
@role_required("farmer")
@api_endpoint
def farmer_dashboard_stats(request):
    crops = Crop.objects.filter(farmer=request.user)
    orders = Order.objects.filter(farmer=request.user)
    paid = orders.filter(payment_status="paid")
    recent = _order_queryset().filter(farmer=request.user)[:5]

    return success(
        crops={
            "total": crops.count(),
            "available": crops.filter(status="available").count(),
            "sold": crops.filter(status="sold").count(),
        },
        orders={
            "total": orders.count(),
            "pending": orders.filter(status="pending").count(),
            "confirmed": orders.filter(status="confirmed").count(),
            "delivered": orders.filter(status="delivered").count(),
        },
        earnings={
            "total": _total(paid, "total_amount"),
            "monthly": _total(paid.filter(created_at__gte=_month_start()), "total_amount"),
            "currency": "INR",
        },
        recent_orders=[serialize_order(o) for o in recent],
    )


# ==================== TRANSPORTER ====================

@require_GET
@role_required("transporter")
@api_endpoint
def available_orders(request):
    """Confirmed orders nobody has accepted, optionally near a point."""
    query = parse_query(request, NearbyQuery)
    orders = list(_order_queryset().filter(status="confirmed", transporter__isnull=True))

    if query["latitude"] is not None:
        radius = query["max_distance"] or DEFAULT_PICKUP_RADIUS_KM
        orders = [
            o for o in orders
            if great_circle_km(query["latitude"], query["longitude"], o.pickup_latitude, o.pickup_longitude) <= radius
        ]

    return success(orders=[serialize_order(o) for o in orders])


@require_GET
@role_required("transporter")
@api_endpoint
def transporter_orders(request):
    return _list_orders(request, transporter=request.user)


@require_POST
@role_required("transporter")
@api_endpoint
def accept_order(request):
    data = parse_body(request, OrderIdForm)
    order = lifecycle.accept_order(data["order_id"], request.user)
    return success("Order accepted successfully", order=serialize_order(order))


@require_POST
@role_required("transporter")
@api_endpoint
def mark_picked_up(request):
    data = parse_body(request, OrderIdForm)
    order = lifecycle.mark_picked_up(data["order_id"], request.user)
    return success("Order marked as picked up", order=serialize_order(order))


@require_POST
@role_required("transporter")
@api_endpoint
def mark_in_transit(request):
    data = parse_body(request, OrderIdForm)
    order = lifecycle.mark_in_transit(data["order_id"], request.user)
    return success("Order marked as in transit", order=serialize_order(order))


@require_POST
@role_required("transporter")
@api_endpoint
def verify_quality(request):
    data = parse_body(request, VerifyQualityForm)
    order = lifecycle.verify_quality(data["order_id"], request.user, data["quality_score"], data["notes"])
    return success("Quality verification completed", order=serialize_order(order))


@require_POST
@role_required("transporter")
@api_endpoint
def mark_delivered(request):
    data = parse_body(request, OrderIdForm)
    order = lifecycle.mark_delivered(data["order_id"], request.user)
    return success("Order marked as delivered", order=serialize_order(order))


@require_POST
@role_required("transporter")
@api_endpoint
def transporter_complaint(request):
    data = parse_body(request, ComplaintForm)
    complaint = lifecycle.raise_complaint(data["order_id"], request.user, data["description"])
    return success("Complaint raised successfully", complaint=serialize_complaint(complaint))


@require_GET
@role_required("transporter")
@api_endpoint
def transporter_earnings(request):
    period = parse_query(request, EarningsQuery)["period"] or "all"
    earned = Order.objects.filter(transporter=request.user, status="delivered", payment_status="paid")

    scoped = earned
    if period == "month":
        scoped = earned.filter(created_at__gte=_month_start())
    elif period == "week":
        scoped = earned.filter(created_at__gte=timezone.now() - timedelta(days=7))

    summary = scoped.aggregate(total=Sum("delivery_fee"), count=Count("id"), average=Avg("delivery_fee"))
    this_month = earned.filter(created_at__gte=_month_start()).aggregate(
        earnings=Sum("delivery_fee"), orders=Count("id")
    )

    return success(
        period=period,
        total_earnings=summary["total"] or 0,
        total_orders=summary["count"],
        average_earnings=summary["average"] or 0,
        monthly_earnings={"earnings": this_month["earnings"] or 0, "orders": this_month["orders"]},
    )


@require_GET
@role_required("transporter")
@api_endpoint
def transporter_dashboard_stats(request):
    orders = Order.objects.filter(transporter=request.user)
    earned = orders.filter(status="delivered", payment_status="paid")

    return success(
        total_orders=orders.count(),
        pending_orders=orders.filter(status__in=["picked_up", "in_transit"]).count(),
        completed_orders=orders.filter(status="delivered").count(),
        total_earnings=_total(earned, "delivery_fee"),
        monthly_earnings=_total(earned.filter(created_at__gte=_month_start()), "delivery_fee"),
    )


# ==================== COMPLAINT RESOLUTION ====================

@require_POST
@staff_required
@api_endpoint
def resolve_complaint(request, complaint_id):
    data = parse_body(request, ResolveComplaintForm)
    complaint = lifecycle.resolve_complaint(complaint_id, request.user, data["status"])
    return success(f"Complaint {complaint.status}", complaint=serialize_complaint(complaint))
