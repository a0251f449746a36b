# crops/views.py
import logging

from django.db import transaction
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from accounts.models import Profile
from hyperlocal.api import api_endpoint, paginate, parse_body, parse_query, role_required, success
from orders.exceptions import NotFoundOrWrongState, ValidationFailed
from orders.fees import MANUAL_LISTING_UNIT_WEIGHTS, great_circle_km, weight_for_unit

from .forms import AddCropForm, BrowseCropsQuery, NearbyFarmersQuery, UpdateCropForm, VoiceCropForm
from .models import Crop
from .voice import parse_voice_listing

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_SEARCH_RADIUS_KM = 40


def crop_to_dict(crop, distance_km=None):
    data = {
        "id": crop.id,
        "farmer_id": crop.farmer_id,
        "name": crop.name,
        "description": crop.description,
        "price": crop.price,
        "unit": crop.unit,
        "category": crop.category,
        "location": {"latitude": crop.latitude, "longitude": crop.longitude, "address": crop.address},
        "status": crop.status,
        "quantity": crop.quantity,
        "available_quantity": crop.available_quantity,
        "harvest_date": crop.harvest_date.isoformat(),
        "organic": crop.organic,
        "quality": crop.quality,
        "weight_per_unit": crop.weight_per_unit,
        "rating": crop.rating,
        "total_orders": crop.total_orders,
        "created_at": crop.created_at.isoformat() if crop.created_at else None,
    }
    if distance_km is not None:
        data["distance_km"] = distance_km
    return data


def _own_crop(request, crop_id):
    crop = Crop.objects.filter(pk=crop_id, farmer=request.user).first()
    if crop is None:
        raise NotFoundOrWrongState("Crop not found")
    return crop


# ==================== FARMER LISTINGS ====================

@require_http_methods(["GET", "POST"])
@role_required("farmer")
@api_endpoint
def farmer_crops(request):
    """GET lists the farmer's crops, POST adds one."""
    if request.method == "GET":
        crops = Crop.objects.filter(farmer=request.user)
        return success(crops=[crop_to_dict(c) for c in crops])

    data = parse_body(request, AddCropForm)
    weight = data["weight_per_unit"] or weight_for_unit(data["unit"], MANUAL_LISTING_UNIT_WEIGHTS)
    crop = Crop.objects.create(
        farmer=request.user,
        name=data["name"],
        description=data["description"],
        price=data["price"],
        unit=data["unit"],
        category=data["category"],
        quantity=data["quantity"],
        available_quantity=data["quantity"],
        harvest_date=data["harvest_date"],
        latitude=data["latitude"],
        longitude=data["longitude"],
        address=data["address"],
        organic=data["organic"],
        quality=data["quality"] or "good",
        weight_per_unit=weight,
    )
    logger.info(f"Crop {crop.id} ({crop.name}) listed by farmer {request.user.id}")
    return success("Crop added successfully", status=201, crop=crop_to_dict(crop))


@require_http_methods(["PUT", "PATCH", "DELETE"])
@role_required("farmer")
@api_endpoint
def farmer_crop_detail(request, crop_id):
    crop = _own_crop(request, crop_id)

    if request.method == "DELETE":
        if crop.order_items.exists():
            raise ValidationFailed("Crop has orders and cannot be deleted; mark it sold instead")
        crop.delete()
        logger.info(f"Crop {crop_id} deleted by farmer {request.user.id}")
        return success("Crop deleted successfully")

    changes = parse_body(request, UpdateCropForm)
    quantity = changes.get("quantity", crop.quantity)
    available = changes.get("available_quantity", crop.available_quantity)
    if available > quantity:
        raise ValidationFailed("available_quantity cannot exceed quantity")

    for field, value in changes.items():
        setattr(crop, field, value)
    crop.save(update_fields=list(changes) + ["updated_at"])

    logger.info(f"Crop {crop.id} updated by farmer {request.user.id}: {sorted(changes)}")
    return success("Crop updated successfully", crop=crop_to_dict(crop))


@require_POST
@role_required("farmer")
@api_endpoint
def voice_crops(request):
    """Create listings from a voice transcript (keyword matching only)."""
    data = parse_body(request, VoiceCropForm)
    parsed = parse_voice_listing(data["voice_text"], data["language"] or "en")
    if not parsed["crops"]:
        raise ValidationFailed("No crops found in voice input. Please try again with clearer speech.")

    with transaction.atomic():
        created = [
            Crop.objects.create(
                farmer=request.user,
                latitude=data["latitude"],
                longitude=data["longitude"],
                address=data["address"],
                **listing,
            )
            for listing in parsed["crops"]
        ]

    logger.info(f"{len(created)} crop(s) listed by voice for farmer {request.user.id}")
    return success(
        f"Successfully added {len(created)} crops via voice input",
        status=201,
        crops=[crop_to_dict(c) for c in created],
        original_text=data["voice_text"],
        total_value=parsed["total_value"],
    )


# ==================== RESTAURANT BROWSING ====================

@require_GET
@role_required("restaurant")
@api_endpoint
def browse_crops(request):
    query = parse_query(request, BrowseCropsQuery)
    crops = Crop.objects.filter(status="available")

    if query["category"]:
        crops = crops.filter(category=query["category"])
    if query["quality"]:
        crops = crops.filter(quality=query["quality"])
    if query["organic"]:
        crops = crops.filter(organic=query["organic"] == "true")
    if query["min_price"] is not None:
        crops = crops.filter(price__gte=query["min_price"])
    if query["max_price"] is not None:
        crops = crops.filter(price__lte=query["max_price"])

    distances = {}
    if query["latitude"] is not None:
        radius = query["max_distance"] or DEFAULT_SEARCH_RADIUS_KM
        nearby = []
        for crop in crops:
            distance = great_circle_km(query["latitude"], query["longitude"], crop.latitude, crop.longitude)
            if distance <= radius:
                distances[crop.id] = distance
                nearby.append(crop)
        crops = nearby

    page, pagination = paginate(crops, query["page"] or 1, query["limit"] or DEFAULT_PAGE_SIZE)
    return success(
        crops=[crop_to_dict(c, distances.get(c.id)) for c in page],
        pagination=pagination,
    )


@require_GET
@role_required("restaurant")
@api_endpoint
def nearby_farmers(request):
    query = parse_query(request, NearbyFarmersQuery)
    radius = query["max_distance"] or DEFAULT_SEARCH_RADIUS_KM

    farmers = []
    for profile in Profile.objects.filter(user_type="farmer"):
        distance = great_circle_km(query["latitude"], query["longitude"], profile.latitude, profile.longitude)
        if distance <= radius:
            farmers.append({
                "id": profile.user_id,
                "name": profile.name,
                "location": {"latitude": profile.latitude, "longitude": profile.longitude, "address": profile.address},
                "rating": profile.rating,
                "total_orders": profile.total_orders,
                "distance_km": distance,
            })

    farmers.sort(key=lambda f: f["distance_km"])
    return success(farmers=farmers)
