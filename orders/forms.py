# orders/forms.py - request schemas for the order endpoints
from django import forms
from django.core.exceptions import ValidationError

from .models import Order

ORDER_ITEM_KEYS = {"crop_id", "quantity"}


class PlaceOrderForm(forms.Form):
    crops = forms.JSONField()
    delivery_latitude = forms.FloatField(min_value=-90, max_value=90)
    delivery_longitude = forms.FloatField(min_value=-180, max_value=180)
    delivery_address = forms.CharField(max_length=500)
    notes = forms.CharField(required=False, max_length=1000)

    def clean_crops(self):
        crops = self.cleaned_data["crops"]
        if not isinstance(crops, list) or not crops:
            raise ValidationError("Provide at least one crop.")

        items = []
        for index, entry in enumerate(crops):
            if not isinstance(entry, dict) or set(entry) != ORDER_ITEM_KEYS:
                raise ValidationError(f"Item {index} must have exactly crop_id and quantity.")
            crop_id, quantity = entry["crop_id"], entry["quantity"]
            if isinstance(crop_id, bool) or not isinstance(crop_id, int):
                raise ValidationError(f"Item {index}: crop_id must be an integer.")
            if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity < 1:
                raise ValidationError(f"Item {index}: quantity must be a number of at least 1.")
            items.append({"crop_id": crop_id, "quantity": float(quantity)})
        return items


class OrderIdForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)


class CancelOrderForm(forms.Form):
    reason = forms.CharField(max_length=500)


class VerifyQualityForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    quality_score = forms.FloatField(min_value=1, max_value=5)
    notes = forms.CharField(required=False, max_length=1000)


class ComplaintForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    description = forms.CharField(max_length=2000)


class ResolveComplaintForm(forms.Form):
    status = forms.ChoiceField(choices=[("resolved", "Resolved"), ("rejected", "Rejected")])


class OrderListQuery(forms.Form):
    status = forms.ChoiceField(choices=[("", "Any")] + Order.STATUS_CHOICES, required=False)
    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, max_value=100, required=False)


class NearbyQuery(forms.Form):
    latitude = forms.FloatField(min_value=-90, max_value=90, required=False)
    longitude = forms.FloatField(min_value=-180, max_value=180, required=False)
    max_distance = forms.FloatField(min_value=0, required=False)

    def clean(self):
        cleaned = super().clean()
        if (cleaned.get("latitude") is None) != (cleaned.get("longitude") is None):
            raise ValidationError("latitude and longitude must be given together.")
        return cleaned


class EarningsQuery(forms.Form):
    period = forms.ChoiceField(
        choices=[("all", "All time"), ("month", "This month"), ("week", "Last 7 days")],
        required=False,
    )
