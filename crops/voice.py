# crops/voice.py - keyword parser for spoken crop listings
import re
from datetime import date

from orders.fees import VOICE_LISTING_UNIT_WEIGHTS, weight_for_unit

DEFAULT_QUANTITY = 10
DEFAULT_PRICE = 50

CROP_KEYWORDS = {
    "tomato": {"name": "Tomato", "category": "vegetables", "unit": "kg"},
    "onion": {"name": "Onion", "category": "vegetables", "unit": "kg"},
    "potato": {"name": "Potato", "category": "vegetables", "unit": "kg"},
    "rice": {"name": "Rice", "category": "grains", "unit": "kg"},
    "wheat": {"name": "Wheat", "category": "grains", "unit": "kg"},
    "mango": {"name": "Mango", "category": "fruits", "unit": "dozen"},
    "banana": {"name": "Banana", "category": "fruits", "unit": "bunch"},
    "carrot": {"name": "Carrot", "category": "vegetables", "unit": "kg"},
    "cabbage": {"name": "Cabbage", "category": "vegetables", "unit": "piece"},
    "spinach": {"name": "Spinach", "category": "vegetables", "unit": "bunch"},
}

QUANTITY_PATTERNS = {
    "en": [
        re.compile(r"(\d+)\s*(kg|kilo|kilogram|kilograms)\b", re.IGNORECASE),
        re.compile(r"(\d+)\s*(dozen|dozens)\b", re.IGNORECASE),
        re.compile(r"(\d+)\s*(piece|pieces)\b", re.IGNORECASE),
        re.compile(r"(\d+)\s*(quintal|quintals)\b", re.IGNORECASE),
        re.compile(r"(\d+)\s*(ton|tons)\b", re.IGNORECASE),
        re.compile(r"(\d+)\s*(bunch|bunches)\b", re.IGNORECASE),
        re.compile(r"(\d+)\s*(bag|bags)\b", re.IGNORECASE),
    ],
    "te": [
        re.compile(r"(\d+)\s*(కిలో|kg)", re.IGNORECASE),
        re.compile(r"(\d+)\s*(డజను|dozen)", re.IGNORECASE),
        re.compile(r"(\d+)\s*(ముక్క|piece)", re.IGNORECASE),
    ],
}

PRICE_PATTERNS = [
    re.compile(r"₹\s*(\d+)"),
    re.compile(r"(\d+)\s*(?:rupees?|rs\.?)(?!\w)", re.IGNORECASE),
    re.compile(r"(\d+)\s*రూపాయలు"),
]


def extract_quantity(text, language="en"):
    for pattern in QUANTITY_PATTERNS.get(language, QUANTITY_PATTERNS["en"]):
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


def extract_price(text):
    for pattern in PRICE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


def parse_voice_listing(voice_text, language="en"):
    """
    Turn transcribed speech into crop listings by keyword matching.

    Every matched crop gets the same quantity and price (the first ones
    mentioned); missing values fall back to 10 units at ₹50. Default
    weights come from the voice listing table.
    """
    text = voice_text.lower()
    quantity = extract_quantity(text, language) or DEFAULT_QUANTITY
    price = extract_price(text) or DEFAULT_PRICE

    crops = []
    for keyword, crop in CROP_KEYWORDS.items():
        if keyword not in text:
            continue
        crops.append({
            **crop,
            "description": f"Fresh {crop['name']} from farm",
            "price": price,
            "quantity": quantity,
            "available_quantity": quantity,
            "harvest_date": date.today(),
            "organic": "organic" in text,
            "quality": "premium" if "premium" in text else "good",
            "weight_per_unit": weight_for_unit(crop["unit"], VOICE_LISTING_UNIT_WEIGHTS),
        })

    return {
        "crops": crops,
        "total_crops": len(crops),
        "total_value": sum(c["price"] * c["quantity"] for c in crops),
    }
