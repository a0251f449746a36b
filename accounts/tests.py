from django.test import TestCase
from django.urls import reverse

from hyperlocal.testing import make_crop, make_user
from orders import lifecycle
from orders.exceptions import NotFoundOrWrongState, Unauthorized, ValidationFailed

from .models import Profile, Review
from .views import create_review, refresh_rating


class ReviewSetupMixin:

    def setUp(self):
        self.farmer = make_user("farmer", "farmer")
        self.restaurant = make_user("restaurant", "restaurant")
        self.other_restaurant = make_user("other_restaurant", "restaurant")
        self.transporter = make_user("transporter", "transporter")
        self.crop = make_crop(self.farmer, quantity=100)

    def order(self, transporter=None):
        order = lifecycle.place_order(
            self.restaurant, [{"crop_id": self.crop.id, "quantity": 1}], 17.4, 78.5, "Kitchen"
        )
        if transporter:
            lifecycle.confirm_order(order.id, self.farmer)
            order = lifecycle.accept_order(order.id, transporter)
        return order


class ReviewTests(ReviewSetupMixin, TestCase):

    def test_review_updates_profile_rating(self):
        first, second = self.order(), self.order()
        create_review(self.restaurant, first.id, self.farmer.id, "farmer", 4, "Good produce")
        create_review(self.restaurant, second.id, self.farmer.id, "farmer", 5)

        self.farmer.profile.refresh_from_db()
        self.assertEqual(self.farmer.profile.rating, 4.5)

    def test_review_leaves_order_count_alone(self):
        Profile.objects.filter(user=self.farmer).update(total_orders=7)
        create_review(self.restaurant, self.order().id, self.farmer.id, "farmer", 3)
        self.farmer.profile.refresh_from_db()
        self.assertEqual(self.farmer.profile.total_orders, 7)

    def test_transporter_review(self):
        order = self.order(transporter=self.transporter)
        review = create_review(self.restaurant, order.id, self.transporter.id, "transporter", 2, "Late")
        self.assertEqual(review.reviewer_type, "restaurant")
        self.transporter.profile.refresh_from_db()
        self.assertEqual(self.transporter.profile.rating, 2)

    def test_one_review_per_user_per_order(self):
        order = self.order()
        create_review(self.restaurant, order.id, self.farmer.id, "farmer", 4)
        with self.assertRaises(ValidationFailed):
            create_review(self.restaurant, order.id, self.farmer.id, "farmer", 1)
        self.assertEqual(Review.objects.count(), 1)

    def test_only_ordering_restaurant_reviews(self):
        order = self.order()
        with self.assertRaises(Unauthorized):
            create_review(self.other_restaurant, order.id, self.farmer.id, "farmer", 1)
        with self.assertRaises(NotFoundOrWrongState):
            create_review(self.restaurant, 404404, self.farmer.id, "farmer", 1)

    def test_rated_user_must_be_party_of_that_type(self):
        order = self.order()
        with self.assertRaises(ValidationFailed):
            create_review(self.restaurant, order.id, self.transporter.id, "farmer", 5)
        with self.assertRaises(ValidationFailed):
            create_review(self.restaurant, order.id, self.farmer.id, "transporter", 5)
        # no transporter assigned yet
        with self.assertRaises(ValidationFailed):
            create_review(self.restaurant, order.id, self.transporter.id, "transporter", 5)

    def test_rating_rounds_half_up(self):
        for score in (4, 4, 4, 5):
            create_review(self.restaurant, self.order().id, self.farmer.id, "farmer", score)
        self.assertEqual(refresh_rating(self.farmer.id), 4.3)

    def test_rating_without_reviews(self):
        self.assertEqual(refresh_rating(self.farmer.id), 0)


class ReviewApiTests(ReviewSetupMixin, TestCase):

    def body(self, order, **overrides):
        body = {
            "order_id": order.id,
            "rated_user_id": self.farmer.id,
            "rated_user_type": "farmer",
            "rating": 5,
            "comment": "Crisp and fresh",
        }
        body.update(overrides)
        return body

    def submit(self, user, body):
        self.client.force_login(user)
        return self.client.post(reverse("reviews"), body, content_type="application/json")

    def test_submit_and_list(self):
        order = self.order()
        response = self.submit(self.restaurant, self.body(order))

        self.assertEqual(response.status_code, 201)
        review = response.json()["data"]["review"]
        self.assertEqual(review["rating"], 5)
        self.assertEqual(review["reviewer"]["name"], "Restaurant")

        self.client.force_login(self.farmer)
        response = self.client.get(reverse("user_reviews", args=[self.farmer.id]))
        self.assertEqual([r["id"] for r in response.json()["data"]["reviews"]], [review["id"]])

    def test_submit_errors(self):
        order = self.order()
        self.assertEqual(self.submit(self.farmer, self.body(order)).status_code, 403)
        self.assertEqual(self.submit(self.other_restaurant, self.body(order)).status_code, 403)
        self.assertEqual(self.submit(self.restaurant, self.body(order, rating=6)).status_code, 400)
        self.assertEqual(self.submit(self.restaurant, self.body(order, rated_user_type="restaurant")).status_code, 400)

        self.assertEqual(self.submit(self.restaurant, self.body(order)).status_code, 201)
        self.assertEqual(self.submit(self.restaurant, self.body(order)).status_code, 400)

    def test_reviews_for_unknown_user(self):
        self.client.force_login(self.restaurant)
        self.assertEqual(self.client.get(reverse("user_reviews", args=[999999])).status_code, 404)

    def test_listing_requires_login(self):
        self.assertEqual(self.client.get(reverse("user_reviews", args=[self.farmer.id])).status_code, 401)


class ProfileApiTests(TestCase):

    def setUp(self):
        self.farmer = make_user("farmer", "farmer")
        self.client.force_login(self.farmer)

    def put(self, body):
        return self.client.put(reverse("profile"), body, content_type="application/json")

    def test_read_own_profile(self):
        response = self.client.get(reverse("profile"))

        self.assertEqual(response.status_code, 200)
        self.assertIn("no-store", response["Cache-Control"])
        profile = response.json()["data"]["profile"]
        self.assertEqual(profile["name"], "Farmer")
        self.assertEqual(profile["user_type"], "farmer")
        self.assertEqual(profile["email"], "farmer@example.com")
        self.assertEqual(profile["bank_details"], {
            "account": "***9012",
            "ifsc_code": "SBIN0000001",
            "account_holder_name": "Farmer",
        })
        self.assertNotIn("123456789012", response.content.decode())

    def test_partial_update(self):
        response = self.put({"city": "Warangal", "latitude": 17.9689, "longitude": 79.5941, "language": "te"})

        self.assertEqual(response.status_code, 200)
        profile = Profile.objects.get(user=self.farmer)
        self.assertEqual(profile.city, "Warangal")
        self.assertEqual((profile.latitude, profile.longitude), (17.9689, 79.5941))
        self.assertEqual(profile.language, "te")
        self.assertEqual(profile.address, "farmer street")
        self.assertEqual(response.json()["data"]["profile"]["location"]["city"], "Warangal")

    def test_bank_details_update(self):
        response = self.put({
            "account_number": "987654321098",
            "ifsc_code": "HDFC0001234",
            "account_holder_name": "Farmer Family",
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["profile"]["bank_details"]["account"], "***1098")
        profile = Profile.objects.get(user=self.farmer)
        self.assertEqual((profile.account_number, profile.ifsc_code), ("987654321098", "HDFC0001234"))

    def test_update_validation(self):
        self.assertEqual(self.put({}).status_code, 400)
        self.assertEqual(self.put({"name": ""}).status_code, 400)
        self.assertEqual(self.put({"ifsc_code": "sbin1"}).status_code, 400)
        self.assertEqual(self.put({"account_number": "12ab"}).status_code, 400)
        self.assertEqual(self.put({"latitude": 120}).status_code, 400)

        profile = Profile.objects.get(user=self.farmer)
        self.assertEqual(profile.ifsc_code, "SBIN0000001")

    def test_role_and_standing_are_not_editable(self):
        not_editable = (
            {"user_type": "restaurant"},
            {"phone": "9876543210"},
            {"is_verified": False},
            {"rating": 5},
            {"total_orders": 99},
        )
        for body in not_editable:
            response = self.put(body)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(list(response.json()["errors"]), list(body))

        profile = Profile.objects.get(user=self.farmer)
        self.assertEqual(profile.user_type, "farmer")
        self.assertTrue(profile.is_verified)

    def test_requires_login(self):
        self.client.logout()
        self.assertEqual(self.client.get(reverse("profile")).status_code, 401)
        self.assertEqual(self.put({"city": "Warangal"}).status_code, 401)
