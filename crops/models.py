# crops/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Crop(models.Model):
    UNIT_CHOICES = [
        ("kg", "Kilogram"),
        ("dozen", "Dozen"),
        ("piece", "Piece"),
        ("quintal", "Quintal"),
        ("ton", "Ton"),
        ("bunch", "Bunch"),
        ("bag", "Bag"),
    ]
    CATEGORY_CHOICES = [
        ("vegetables", "Vegetables"),
        ("fruits", "Fruits"),
        ("grains", "Grains"),
        ("spices", "Spices"),
        ("herbs", "Herbs"),
        ("flowers", "Flowers"),
        ("other", "Other"),
    ]
    STATUS_CHOICES = [
        ("available", "Available"),
        ("sold", "Sold"),
        ("out_of_stock", "Out of stock"),
    ]
    QUALITY_CHOICES = [
        ("premium", "Premium"),
        ("good", "Good"),
        ("average", "Average"),
    ]

    farmer = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="crops", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    description = models.TextField()
    price = models.FloatField(validators=[MinValueValidator(0)])
    unit = models.CharField(max_length=10, choices=UNIT_CHOICES)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)

    # Location
    latitude = models.FloatField()
    longitude = models.FloatField()
    address = models.TextField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="available")
    quantity = models.FloatField(validators=[MinValueValidator(0)])
    available_quantity = models.FloatField(validators=[MinValueValidator(0)])
    harvest_date = models.DateField()
    organic = models.BooleanField(default=False)
    quality = models.CharField(max_length=10, choices=QUALITY_CHOICES, default="good")
    weight_per_unit = models.FloatField(validators=[MinValueValidator(0)], help_text="Weight per unit in kg")
    rating = models.FloatField(default=0, validators=[MinValueValidator(0), MaxValueValidator(5)])
    total_orders = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "category"], name="crop_status_category_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.available_quantity} {self.unit})"
