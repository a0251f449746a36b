# orders/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Order(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("confirmed", "Confirmed"),
        ("picked_up", "Picked up"),
        ("in_transit", "In transit"),
        ("delivered", "Delivered"),
        ("cancelled", "Cancelled"),
    ]
    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("disputed", "Disputed"),
        ("refunded", "Refunded"),
    ]
    TRANSFER_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("processing", "Processing"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]

    # Parties
    farmer = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="farmer_orders", on_delete=models.PROTECT)
    restaurant = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="restaurant_orders", on_delete=models.PROTECT)
    transporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="transporter_orders", on_delete=models.PROTECT, null=True, blank=True
    )

    # Pricing (frozen at placement)
    total_amount = models.FloatField(validators=[MinValueValidator(0)])
    delivery_fee = models.FloatField(validators=[MinValueValidator(0)])
    farmer_delivery_share = models.FloatField(validators=[MinValueValidator(0)])
    restaurant_delivery_share = models.FloatField(validators=[MinValueValidator(0)])

    # Status
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending", db_index=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="pending", db_index=True)

    # Route
    pickup_latitude = models.FloatField()
    pickup_longitude = models.FloatField()
    pickup_address = models.TextField()
    delivery_latitude = models.FloatField()
    delivery_longitude = models.FloatField()
    delivery_address = models.TextField()
    distance_km = models.FloatField(validators=[MinValueValidator(0)])
    estimated_delivery_time = models.DateTimeField()
    actual_delivery_time = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")

    # Quality verification (set once, at pickup)
    quality_score = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    quality_notes = models.TextField(blank=True, default="")
    quality_verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="quality_verifications", on_delete=models.PROTECT, null=True, blank=True
    )
    quality_verified_at = models.DateTimeField(null=True, blank=True)

    # Payment details (set when settlement begins)
    gateway_order_id = models.CharField(max_length=100, blank=True, default="")
    external_payment_ref = models.CharField(max_length=100, blank=True, default="", db_index=True)
    farmer_transfer_status = models.CharField(max_length=20, choices=TRANSFER_STATUS_CHOICES, default="pending")
    transporter_transfer_status = models.CharField(max_length=20, choices=TRANSFER_STATUS_CHOICES, default="pending")
    settled_at = models.DateTimeField(null=True, blank=True)

    # Refund details
    refund_id = models.CharField(max_length=100, blank=True, default="")
    refund_amount = models.FloatField(null=True, blank=True)
    refund_reason = models.TextField(blank=True, default="")
    refunded_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "payment_status"], name="order_status_payment_idx"),
            models.Index(fields=["created_at"], name="order_created_at_idx"),
        ]

    def __str__(self):
        return f"Order #{self.id} ({self.status})"

    @property
    def restaurant_payable(self):
        return self.total_amount + self.restaurant_delivery_share

    @property
    def total_weight_kg(self):
        return sum(item.quantity * item.weight_per_unit for item in self.line_items.all())

    @property
    def has_quality_verification(self):
        return self.quality_verified_at is not None

    def party_ids(self):
        ids = {self.farmer_id, self.restaurant_id}
        if self.transporter_id:
            ids.add(self.transporter_id)
        return ids


class OrderLineItem(models.Model):
    order = models.ForeignKey(Order, related_name="line_items", on_delete=models.CASCADE)
    crop = models.ForeignKey("crops.Crop", related_name="order_items", on_delete=models.PROTECT)
    position = models.PositiveIntegerField(default=0)
    quantity = models.FloatField(validators=[MinValueValidator(1)])
    # snapshot of the crop at order time
    unit_price = models.FloatField(validators=[MinValueValidator(0)])
    unit = models.CharField(max_length=10)
    weight_per_unit = models.FloatField(validators=[MinValueValidator(0)])

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.quantity} {self.unit} of crop #{self.crop_id} on order #{self.order_id}"

    @property
    def line_total(self):
        return self.quantity * self.unit_price


class Complaint(models.Model):
    STATUS_CHOICES = [
        ("open", "Open"),
        ("resolved", "Resolved"),
        ("rejected", "Rejected"),
    ]

    order = models.ForeignKey(Order, related_name="complaints", on_delete=models.CASCADE)
    raised_by = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="complaints", on_delete=models.PROTECT)
    description = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="open", db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Complaint #{self.id} on order #{self.order_id} ({self.status})"
