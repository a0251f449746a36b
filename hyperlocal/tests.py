from django import forms
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.urls import reverse

from orders.exceptions import ValidationFailed

from .api import paginate, parse_body


class PingForm(forms.Form):
    name = forms.CharField()
    count = forms.IntegerField(required=False)


class ParseBodyTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def request(self, body):
        return self.factory.post("/", body, content_type="application/json")

    def test_valid_body(self):
        data = parse_body(self.request({"name": "x", "count": "3"}), PingForm)
        self.assertEqual(data, {"name": "x", "count": 3})

    def test_unknown_keys_are_rejected(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_body(self.request({"name": "x", "admin": True, "zone": 1}), PingForm)
        self.assertEqual(ctx.exception.errors, {"admin": ["Unknown field."], "zone": ["Unknown field."]})

    def test_non_object_body(self):
        with self.assertRaises(ValidationFailed):
            parse_body(self.request("[1, 2]"), PingForm)
        with self.assertRaises(ValidationFailed):
            parse_body(self.request("{oops"), PingForm)

    def test_field_errors(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_body(self.request({"count": "many"}), PingForm)
        self.assertEqual(set(ctx.exception.errors), {"name", "count"})


class PaginateTests(SimpleTestCase):

    def test_pages(self):
        items, meta = paginate(list(range(45)), 2, 20)
        self.assertEqual(items, list(range(20, 40)))
        self.assertEqual(meta, {"current_page": 2, "total_pages": 3, "total": 45, "has_next": True, "has_prev": True})

    def test_past_the_end_is_empty(self):
        items, meta = paginate(list(range(5)), 4, 2)
        self.assertEqual(items, [])
        self.assertFalse(meta["has_next"])

    def test_nothing_to_page(self):
        items, meta = paginate([], 1, 20)
        self.assertEqual(items, [])
        self.assertEqual(meta["total_pages"], 0)
        self.assertFalse(meta["has_prev"])


class HealthzTests(TestCase):

    def test_reports_database_and_gateway(self):
        response = self.client.get(reverse("healthz"))
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "ok")
        self.assertTrue(payload["database"])
        self.assertIn("payment_gateway", payload)
        self.assertEqual(response["X-Frame-Options"], "DENY")
        self.assertEqual(response["X-Content-Type-Options"], "nosniff")
        self.assertNotIn("Cache-Control", response)
        self.assertNotIn("Strict-Transport-Security", response)
