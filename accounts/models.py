# accounts/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Profile(models.Model):
    USER_TYPE_CHOICES = [
        ("farmer", "Farmer"),
        ("restaurant", "Restaurant"),
        ("transporter", "Transporter"),
    ]
    LANGUAGE_CHOICES = [
        ("en", "English"),
        ("te", "Telugu"),
    ]

    user = models.OneToOneField(settings.AUTH_USER_MODEL, related_name="profile", on_delete=models.CASCADE)
    user_type = models.CharField(max_length=20, choices=USER_TYPE_CHOICES, db_index=True)
    phone = models.CharField(max_length=20)
    name = models.CharField(max_length=200)

    # Location
    latitude = models.FloatField()
    longitude = models.FloatField()
    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)

    # Bank details (payout target)
    account_number = models.CharField(max_length=30)
    ifsc_code = models.CharField(max_length=15)
    account_holder_name = models.CharField(max_length=200)

    language = models.CharField(max_length=2, choices=LANGUAGE_CHOICES, default="en")
    is_verified = models.BooleanField(default=False)
    rating = models.FloatField(default=0, validators=[MinValueValidator(0), MaxValueValidator(5)])
    total_orders = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.get_user_type_display()})"

    @property
    def masked_account(self):
        return f"***{self.account_number[-4:]}" if self.account_number else ""


class Review(models.Model):
    REVIEWER_TYPE_CHOICES = Profile.USER_TYPE_CHOICES
    REVIEWED_TYPE_CHOICES = [
        ("farmer", "Farmer"),
        ("transporter", "Transporter"),
    ]

    reviewer = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="reviews_given", on_delete=models.CASCADE)
    reviewer_type = models.CharField(max_length=20, choices=REVIEWER_TYPE_CHOICES)
    reviewed_user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="reviews_received", on_delete=models.CASCADE)
    reviewed_user_type = models.CharField(max_length=20, choices=REVIEWED_TYPE_CHOICES)
    order = models.ForeignKey("orders.Order", related_name="reviews", on_delete=models.CASCADE)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.CharField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["reviewed_user"], name="review_reviewed_user_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["reviewer", "order", "reviewed_user"], name="unique_review_per_order_user"),
        ]

    def __str__(self):
        return f"{self.rating}/5 for {self.reviewed_user} on order #{self.order_id}"
