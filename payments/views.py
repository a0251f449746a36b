# payments/views.py
import logging

from django.db.models import Q
from django.views.decorators.http import require_GET, require_POST

from hyperlocal.api import api_endpoint, paginate, parse_body, parse_query, role_required, success
from orders.models import Order
from orders.serializers import serialize_order

from . import settlement
from .forms import CreatePaymentOrderForm, HistoryQuery, OrderIdForm, RefundForm, SettleForm, VerifyPaymentForm

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


# ==================== SPLITS ====================

@require_POST
@role_required()
@api_endpoint
def calculate(request):
    data = parse_body(request, OrderIdForm)
    splits = settlement.calculate_splits(data["order_id"], request.user)
    return success(payment_splits=splits)


# ==================== GATEWAY CHECKOUT ====================

@require_POST
@role_required("restaurant")
@api_endpoint
def create_order(request):
    data = parse_body(request, CreatePaymentOrderForm)
    payment_order = settlement.create_payment_order(
        data["order_id"], request.user, settlement.get_gateway(), amount=data["amount"]
    )
    return success(**payment_order)


@require_POST
@role_required("restaurant")
@api_endpoint
def verify(request):
    data = parse_body(request, VerifyPaymentForm)
    order, task = settlement.verify_payment(
        data["order_id"],
        request.user,
        data["razorpay_order_id"],
        data["razorpay_payment_id"],
        data["razorpay_signature"],
        settlement.get_gateway(),
    )
    return success(
        "Payment verified successfully",
        order=serialize_order(order),
        transfers=settlement.transfer_summary(order),
    )


# ==================== SETTLEMENT ====================

@require_POST
@role_required("restaurant")
@api_endpoint
def settle(request):
    data = parse_body(request, SettleForm)
    order, task = settlement.settle(
        data["order_id"], request.user, data["razorpay_payment_id"], settlement.get_gateway()
    )
    return success(
        "Payment settlement initiated successfully",
        order=serialize_order(order),
        transfers=settlement.transfer_summary(order),
    )


@require_POST
@role_required()
@api_endpoint
def refund(request):
    data = parse_body(request, RefundForm)
    order, gateway_refund = settlement.refund(
        data["order_id"], request.user, data["reason"], settlement.get_gateway(), amount=data["amount"]
    )
    return success(
        "Refund processed successfully",
        refund={"id": gateway_refund["id"], "amount": order.refund_amount, "status": gateway_refund.get("status")},
        order=serialize_order(order),
    )


# ==================== STATUS & HISTORY ====================

@require_GET
@role_required()
@api_endpoint
def status(request, order_id):
    return success(payment_status=settlement.payment_status(order_id, request.user))


@require_GET
@role_required()
@api_endpoint
def history(request):
    query = parse_query(request, HistoryQuery)
    user = request.user
    orders = (
        Order.objects.select_related("farmer__profile", "restaurant__profile", "transporter__profile")
        .prefetch_related("line_items__crop", "complaints")
        .filter(Q(farmer=user) | Q(restaurant=user) | Q(transporter=user))
    )
    page, pagination = paginate(orders, query["page"] or 1, query["limit"] or DEFAULT_PAGE_SIZE)
    return success(orders=[serialize_order(o) for o in page], pagination=pagination)
