# crops/forms.py - request schemas for crop listing and browsing
from django import forms
from django.core.exceptions import ValidationError

from .models import Crop


class AddCropForm(forms.Form):
    name = forms.CharField(max_length=200)
    description = forms.CharField()
    price = forms.FloatField(min_value=0)
    unit = forms.ChoiceField(choices=Crop.UNIT_CHOICES)
    category = forms.ChoiceField(choices=Crop.CATEGORY_CHOICES)
    quantity = forms.FloatField(min_value=0)
    harvest_date = forms.DateField()
    latitude = forms.FloatField(min_value=-90, max_value=90)
    longitude = forms.FloatField(min_value=-180, max_value=180)
    address = forms.CharField()
    organic = forms.BooleanField(required=False)
    quality = forms.ChoiceField(choices=Crop.QUALITY_CHOICES, required=False)
    weight_per_unit = forms.FloatField(min_value=0, required=False)


class UpdateCropForm(forms.Form):
    """Partial update; only keys present in the body are applied."""

    name = forms.CharField(max_length=200, required=False)
    description = forms.CharField(required=False)
    price = forms.FloatField(min_value=0, required=False)
    quantity = forms.FloatField(min_value=0, required=False)
    available_quantity = forms.FloatField(min_value=0, required=False)
    status = forms.ChoiceField(choices=Crop.STATUS_CHOICES, required=False)
    quality = forms.ChoiceField(choices=Crop.QUALITY_CHOICES, required=False)
    organic = forms.BooleanField(required=False)
    harvest_date = forms.DateField(required=False)
    weight_per_unit = forms.FloatField(min_value=0, required=False)

    def clean(self):
        cleaned = super().clean()
        changes = {key: value for key, value in cleaned.items() if key in self.data}
        for key, value in changes.items():
            if key != "organic" and value in (None, ""):
                raise ValidationError({key: "This field cannot be empty."})
        if not changes:
            raise ValidationError("No fields to update.")
        return changes


class VoiceCropForm(forms.Form):
    voice_text = forms.CharField(max_length=2000)
    language = forms.ChoiceField(choices=[("en", "English"), ("te", "Telugu")], required=False)
    latitude = forms.FloatField(min_value=-90, max_value=90)
    longitude = forms.FloatField(min_value=-180, max_value=180)
    address = forms.CharField()


class BrowseCropsQuery(forms.Form):
    category = forms.ChoiceField(choices=[("", "Any")] + Crop.CATEGORY_CHOICES, required=False)
    quality = forms.ChoiceField(choices=[("", "Any")] + Crop.QUALITY_CHOICES, required=False)
    organic = forms.ChoiceField(choices=[("", "Any"), ("true", "Yes"), ("false", "No")], required=False)
    min_price = forms.FloatField(min_value=0, required=False)
    max_price = forms.FloatField(min_value=0, required=False)
    latitude = forms.FloatField(min_value=-90, max_value=90, required=False)
    longitude = forms.FloatField(min_value=-180, max_value=180, required=False)
    max_distance = forms.FloatField(min_value=0, required=False)
    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, max_value=100, required=False)

    def clean(self):
        cleaned = super().clean()
        if (cleaned.get("latitude") is None) != (cleaned.get("longitude") is None):
            raise ValidationError("latitude and longitude must be given together.")
        return cleaned


class NearbyFarmersQuery(forms.Form):
    latitude = forms.FloatField(min_value=-90, max_value=90)
    longitude = forms.FloatField(min_value=-180, max_value=180)
    max_distance = forms.FloatField(min_value=0, required=False)
