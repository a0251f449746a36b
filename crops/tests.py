from datetime import date

from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from hyperlocal.testing import HYDERABAD, make_crop, make_user
from orders import lifecycle

from .models import Crop
from .voice import extract_price, extract_quantity, parse_voice_listing

DELHI = (28.6139, 77.2090)


class VoiceParsingTests(SimpleTestCase):

    def test_english_listing(self):
        parsed = parse_voice_listing("I have 20 kg tomatoes and onions at ₹30 per kg", "en")

        self.assertEqual([c["name"] for c in parsed["crops"]], ["Tomato", "Onion"])
        self.assertEqual(parsed["total_crops"], 2)
        self.assertEqual(parsed["total_value"], 1200)
        tomato = parsed["crops"][0]
        self.assertEqual((tomato["quantity"], tomato["available_quantity"], tomato["price"]), (20, 20, 30))
        self.assertEqual(tomato["category"], "vegetables")
        self.assertEqual(tomato["harvest_date"], date.today())

    def test_defaults_when_numbers_missing(self):
        parsed = parse_voice_listing("fresh spinach today")
        spinach = parsed["crops"][0]
        self.assertEqual((spinach["quantity"], spinach["price"]), (10, 50))
        self.assertEqual(spinach["unit"], "bunch")
        self.assertEqual(spinach["weight_per_unit"], 0.2)

    def test_bare_number_is_not_a_price(self):
        self.assertIsNone(extract_price("5 dozen mangoes"))
        self.assertEqual(extract_price("mangoes 200 rupees"), 200)
        self.assertEqual(extract_price("mangoes 150 rs"), 150)

    def test_voice_weights_and_flags(self):
        parsed = parse_voice_listing("premium organic mango 3 dozen at 400 rupees")
        mango = parsed["crops"][0]
        self.assertEqual(mango["quantity"], 3)
        self.assertEqual(mango["price"], 400)
        self.assertEqual(mango["weight_per_unit"], 0.5)
        self.assertTrue(mango["organic"])
        self.assertEqual(mango["quality"], "premium")

    def test_telugu_units(self):
        self.assertEqual(extract_quantity("tomato 15 కిలో", "te"), 15)
        self.assertEqual(extract_price("tomato 15 కిలో 25 రూపాయలు"), 25)
        parsed = parse_voice_listing("tomato 15 కిలో 25 రూపాయలు", "te")
        self.assertEqual(parsed["total_value"], 375)

    def test_no_known_crop(self):
        self.assertEqual(parse_voice_listing("20 kg of dragonfruit")["crops"], [])


class FarmerCropApiTests(TestCase):

    def setUp(self):
        self.farmer = make_user("farmer", "farmer")
        self.other_farmer = make_user("other_farmer", "farmer")
        self.restaurant = make_user("restaurant", "restaurant")
        self.client.force_login(self.farmer)

    def add_body(self, **overrides):
        body = {
            "name": "Banana",
            "description": "Robusta bananas",
            "price": 60,
            "unit": "dozen",
            "category": "fruits",
            "quantity": 30,
            "harvest_date": "2024-02-01",
            "latitude": HYDERABAD[0],
            "longitude": HYDERABAD[1],
            "address": "Farm road",
        }
        body.update(overrides)
        return body

    def send(self, method, url, body):
        return getattr(self.client, method)(url, body, content_type="application/json")

    def test_add_crop_with_default_weight(self):
        response = self.send("post", reverse("farmer_crops"), self.add_body())

        self.assertEqual(response.status_code, 201)
        crop = response.json()["data"]["crop"]
        self.assertEqual(crop["weight_per_unit"], 0.12)
        self.assertEqual(crop["available_quantity"], 30)
        self.assertEqual(crop["status"], "available")
        self.assertEqual(crop["quality"], "good")

    def test_add_crop_with_explicit_weight(self):
        response = self.send("post", reverse("farmer_crops"), self.add_body(unit="bag", weight_per_unit=25))
        self.assertEqual(response.json()["data"]["crop"]["weight_per_unit"], 25)

    def test_add_crop_validation(self):
        response = self.send("post", reverse("farmer_crops"), self.add_body(unit="crate", price=-1))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()["errors"]), {"unit", "price"})

    def test_restaurants_cannot_list_crops(self):
        self.client.force_login(self.restaurant)
        response = self.send("post", reverse("farmer_crops"), self.add_body())
        self.assertEqual(response.status_code, 403)

    def test_list_own_crops(self):
        mine = make_crop(self.farmer)
        make_crop(self.other_farmer, name="Rice")
        response = self.client.get(reverse("farmer_crops"))
        self.assertEqual([c["id"] for c in response.json()["data"]["crops"]], [mine.id])

    def test_partial_update(self):
        crop = make_crop(self.farmer, quantity=100)
        response = self.send("patch", reverse("farmer_crop_detail", args=[crop.id]), {"price": 45, "organic": True})

        self.assertEqual(response.status_code, 200)
        crop.refresh_from_db()
        self.assertEqual(crop.price, 45)
        self.assertTrue(crop.organic)
        self.assertEqual(crop.name, "Tomato")
        self.assertEqual(crop.quality, "good")

    def test_update_rules(self):
        crop = make_crop(self.farmer, quantity=100)
        url = reverse("farmer_crop_detail", args=[crop.id])

        self.assertEqual(self.send("put", url, {"available_quantity": 120}).status_code, 400)
        self.assertEqual(self.send("put", url, {}).status_code, 400)
        self.assertEqual(self.send("put", url, {"name": ""}).status_code, 400)
        self.assertEqual(self.send("put", url, {"farmer": self.other_farmer.id}).status_code, 400)

        response = self.send("put", url, {"quantity": 150, "available_quantity": 120})
        self.assertEqual(response.status_code, 200)
        crop.refresh_from_db()
        self.assertEqual((crop.quantity, crop.available_quantity), (150, 120))

    def test_cannot_touch_another_farmers_crop(self):
        crop = make_crop(self.other_farmer)
        url = reverse("farmer_crop_detail", args=[crop.id])
        self.assertEqual(self.send("patch", url, {"price": 1}).status_code, 404)
        self.assertEqual(self.client.delete(url).status_code, 404)
        self.assertTrue(Crop.objects.filter(pk=crop.pk).exists())

    def test_delete(self):
        crop = make_crop(self.farmer)
        response = self.client.delete(reverse("farmer_crop_detail", args=[crop.id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Crop.objects.filter(pk=crop.pk).exists())

    def test_delete_blocked_once_ordered(self):
        crop = make_crop(self.farmer)
        lifecycle.place_order(self.restaurant, [{"crop_id": crop.id, "quantity": 1}], *HYDERABAD, "Kitchen")

        response = self.client.delete(reverse("farmer_crop_detail", args=[crop.id]))
        self.assertEqual(response.status_code, 400)
        self.assertTrue(Crop.objects.filter(pk=crop.pk).exists())

    def test_voice_listing(self):
        body = {
            "voice_text": "I have 20 kg tomatoes and onions at ₹30 per kg",
            "language": "en",
            "latitude": HYDERABAD[0],
            "longitude": HYDERABAD[1],
            "address": "Farm road",
        }
        response = self.send("post", reverse("voice_crops"), body)

        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(len(data["crops"]), 2)
        self.assertEqual(data["total_value"], 1200)
        self.assertEqual(Crop.objects.filter(farmer=self.farmer).count(), 2)

    def test_voice_listing_without_crops(self):
        body = {"voice_text": "hello there", "latitude": 17, "longitude": 78, "address": "Farm road"}
        response = self.send("post", reverse("voice_crops"), body)
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Crop.objects.exists())


class BrowseCropsApiTests(TestCase):

    def setUp(self):
        self.near_farmer = make_user("near_farmer", "farmer")
        self.far_farmer = make_user("far_farmer", "farmer", latitude=DELHI[0], longitude=DELHI[1])
        self.restaurant = make_user("restaurant", "restaurant")

        self.tomato = make_crop(self.near_farmer, name="Tomato", price=40)
        self.mango = make_crop(self.near_farmer, name="Mango", price=300, category="fruits", organic=True)
        self.wheat = make_crop(self.far_farmer, name="Wheat", price=30, category="grains")
        make_crop(self.near_farmer, name="Onion", status="sold")

        self.client.force_login(self.restaurant)

    def browse(self, **params):
        response = self.client.get(reverse("browse_crops"), params)
        self.assertEqual(response.status_code, 200)
        return response.json()["data"]

    def names(self, data):
        return sorted(c["name"] for c in data["crops"])

    def test_lists_available_crops_only(self):
        self.assertEqual(self.names(self.browse()), ["Mango", "Tomato", "Wheat"])

    def test_filters(self):
        self.assertEqual(self.names(self.browse(category="fruits")), ["Mango"])
        self.assertEqual(self.names(self.browse(organic="true")), ["Mango"])
        self.assertEqual(self.names(self.browse(organic="false")), ["Tomato", "Wheat"])
        self.assertEqual(self.names(self.browse(min_price=35, max_price=100)), ["Tomato"])

    def test_distance_filter(self):
        data = self.browse(latitude=HYDERABAD[0], longitude=HYDERABAD[1])
        self.assertEqual(self.names(data), ["Mango", "Tomato"])
        self.assertEqual({c["distance_km"] for c in data["crops"]}, {0})

        data = self.browse(latitude=HYDERABAD[0], longitude=HYDERABAD[1], max_distance=5000)
        self.assertEqual(self.names(data), ["Mango", "Tomato", "Wheat"])

    def test_pagination(self):
        data = self.browse(limit=2, page=2)
        self.assertEqual(len(data["crops"]), 1)
        self.assertEqual(data["pagination"]["total"], 3)
        self.assertFalse(data["pagination"]["has_next"])

        self.assertEqual(self.browse(limit=2, page=9)["crops"], [])

    def test_bad_query(self):
        response = self.client.get(reverse("browse_crops"), {"latitude": 17})
        self.assertEqual(response.status_code, 400)

    def test_farmers_cannot_browse(self):
        self.client.force_login(self.near_farmer)
        self.assertEqual(self.client.get(reverse("browse_crops")).status_code, 403)

    def test_nearby_farmers_sorted_by_distance(self):
        make_user("edge_farmer", "farmer", latitude=HYDERABAD[0] + 0.1, longitude=HYDERABAD[1])

        response = self.client.get(reverse("nearby_farmers"), {"latitude": HYDERABAD[0], "longitude": HYDERABAD[1]})

        farmers = response.json()["data"]["farmers"]
        self.assertEqual([f["name"] for f in farmers], ["Near Farmer", "Edge Farmer"])
        self.assertEqual(farmers[1]["distance_km"], 11.132)

    def test_nearby_farmers_requires_location(self):
        response = self.client.get(reverse("nearby_farmers"))
        self.assertEqual(response.status_code, 400)
