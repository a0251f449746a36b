# orders/fees.py - delivery fee, weight and distance helpers
import math

BASE_DELIVERY_FEE = 50
PER_KM_RATE = 5
PER_KG_RATE = 2
LONG_HAUL_KM = 30
LONG_HAUL_MULTIPLIER = 1.2
SHORT_HAUL_KM = 5
SHORT_HAUL_MULTIPLIER = 0.8
MIN_DELIVERY_FEE = 50
MAX_DELIVERY_FEE = 500

EARTH_RADIUS_KM = 6378.137

# Default kg per unit when a farmer lists a crop by hand without a weight.
MANUAL_LISTING_UNIT_WEIGHTS = {
    "kg": 1,
    "dozen": 0.12,
    "piece": 0.1,
    "quintal": 100,
    "ton": 1000,
    "bunch": 0.5,
    "bag": 30,
}

# Default kg per unit for crops created from voice text.
# Differs from the manual table for dozen/piece/bunch/bag; both are in use.
VOICE_LISTING_UNIT_WEIGHTS = {
    "kg": 1,
    "dozen": 0.5,
    "piece": 0.3,
    "quintal": 100,
    "ton": 1000,
    "bunch": 0.2,
    "bag": 50,
}


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def calculate_delivery_fee(distance_km, total_weight_kg):
    """
    Delivery fee in whole rupees for a route of ``distance_km`` carrying
    ``total_weight_kg``.

    Steps run in a fixed order: base + distance, + weight, then the
    long-haul surcharge or short-haul discount, then rounding, then the
    50..500 clamp.
    """
    fee = BASE_DELIVERY_FEE + distance_km * PER_KM_RATE

    if total_weight_kg:
        fee = fee + total_weight_kg * PER_KG_RATE

    if distance_km > LONG_HAUL_KM:
        fee = fee * LONG_HAUL_MULTIPLIER
    if distance_km < SHORT_HAUL_KM:
        fee = fee * SHORT_HAUL_MULTIPLIER

    fee = _round_half_up(fee)
    return max(MIN_DELIVERY_FEE, min(MAX_DELIVERY_FEE, fee))


def split_delivery_fee(fee):
    """Return ``(farmer_share, restaurant_share)``; always an even split."""
    return fee / 2, fee / 2


def weight_for_unit(unit, table=MANUAL_LISTING_UNIT_WEIGHTS):
    return table.get(unit) or 1


def total_weight(line_items):
    """Sum of quantity x weight_per_unit over dicts or OrderLineItem rows."""
    total = 0
    for item in line_items:
        if isinstance(item, dict):
            quantity, weight = item["quantity"], item.get("weight_per_unit") or 0
        else:
            quantity, weight = item.quantity, item.weight_per_unit or 0
        total += weight * quantity
    return total


def great_circle_km(lat1, lon1, lat2, lon2):
    """Haversine distance in km, rounded to whole metres."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.asin(min(1.0, math.sqrt(a)))
    metres = _round_half_up(EARTH_RADIUS_KM * 1000 * c)
    return metres / 1000
