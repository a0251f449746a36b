# orders/serializers.py - plain dict renderings for JsonResponse
def _iso(value):
    return value.isoformat() if value else None


def party(user):
    if user is None:
        return None
    profile = getattr(user, "profile", None)
    return {
        "id": user.id,
        "name": profile.name if profile else user.get_username(),
        "user_type": profile.user_type if profile else None,
    }


def serialize_line_item(item):
    return {
        "crop_id": item.crop_id,
        "crop_name": item.crop.name,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "unit": item.unit,
        "weight_per_unit": item.weight_per_unit,
        "line_total": item.line_total,
    }


def serialize_complaint(complaint):
    return {
        "id": complaint.id,
        "order_id": complaint.order_id,
        "raised_by": complaint.raised_by_id,
        "description": complaint.description,
        "status": complaint.status,
        "created_at": _iso(complaint.created_at),
        "resolved_at": _iso(complaint.resolved_at),
    }


def serialize_order(order):
    quality = None
    if order.has_quality_verification:
        quality = {
            "score": order.quality_score,
            "notes": order.quality_notes,
            "verified_by": order.quality_verified_by_id,
            "verified_at": _iso(order.quality_verified_at),
        }

    payment = None
    if order.settled_at:
        payment = {
            "external_payment_ref": order.external_payment_ref,
            "farmer_transfer_status": order.farmer_transfer_status,
            "transporter_transfer_status": order.transporter_transfer_status,
            "settled_at": _iso(order.settled_at),
        }

    refund = None
    if order.refunded_at:
        refund = {
            "refund_id": order.refund_id,
            "amount": order.refund_amount,
            "reason": order.refund_reason,
            "refunded_at": _iso(order.refunded_at),
        }

    return {
        "id": order.id,
        "farmer": party(order.farmer),
        "restaurant": party(order.restaurant),
        "transporter": party(order.transporter),
        "line_items": [serialize_line_item(item) for item in order.line_items.select_related("crop")],
        "total_amount": order.total_amount,
        "delivery_fee": order.delivery_fee,
        "farmer_delivery_share": order.farmer_delivery_share,
        "restaurant_delivery_share": order.restaurant_delivery_share,
        "status": order.status,
        "payment_status": order.payment_status,
        "pickup_location": {
            "latitude": order.pickup_latitude,
            "longitude": order.pickup_longitude,
            "address": order.pickup_address,
        },
        "delivery_location": {
            "latitude": order.delivery_latitude,
            "longitude": order.delivery_longitude,
            "address": order.delivery_address,
        },
        "distance_km": order.distance_km,
        "estimated_delivery_time": _iso(order.estimated_delivery_time),
        "actual_delivery_time": _iso(order.actual_delivery_time),
        "notes": order.notes,
        "quality_verification": quality,
        "complaints": [serialize_complaint(c) for c in order.complaints.all()],
        "payment_details": payment,
        "refund_details": refund,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }
