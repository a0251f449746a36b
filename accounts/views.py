# accounts/views.py - own profile, restaurant reviews of farmers and transporters
import logging
import math

from django import forms
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Avg
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from hyperlocal.api import api_endpoint, parse_body, role_required, success
from orders.exceptions import NotFoundOrWrongState, Unauthorized, ValidationFailed
from orders.models import Order

from .models import Profile, Review

logger = logging.getLogger(__name__)

REVIEW_LIST_LIMIT = 50


class ProfileForm(forms.Form):
    """Partial update of the caller's own profile; role, phone, rating and verification are not editable."""

    name = forms.CharField(max_length=200, required=False)
    latitude = forms.FloatField(min_value=-90, max_value=90, required=False)
    longitude = forms.FloatField(min_value=-180, max_value=180, required=False)
    address = forms.CharField(required=False)
    city = forms.CharField(max_length=100, required=False)
    state = forms.CharField(max_length=100, required=False)
    language = forms.ChoiceField(choices=Profile.LANGUAGE_CHOICES, required=False)
    account_number = forms.RegexField(r"^\d{9,18}$", required=False, error_messages={"invalid": "Enter 9 to 18 digits."})
    ifsc_code = forms.RegexField(r"^[A-Z]{4}0[A-Z0-9]{6}$", required=False, error_messages={"invalid": "Enter a valid IFSC code."})
    account_holder_name = forms.CharField(max_length=200, required=False)

    def clean(self):
        cleaned = super().clean()
        changes = {key: value for key, value in cleaned.items() if key in self.data}
        for key, value in changes.items():
            if value in (None, ""):
                raise ValidationError({key: "This field cannot be empty."})
        if not changes:
            raise ValidationError("No fields to update.")
        return changes


def profile_to_dict(profile):
    return {
        "id": profile.user_id,
        "user_type": profile.user_type,
        "name": profile.name,
        "email": profile.user.email,
        "phone": profile.phone,
        "location": {
            "latitude": profile.latitude,
            "longitude": profile.longitude,
            "address": profile.address,
            "city": profile.city,
            "state": profile.state,
        },
        "bank_details": {
            "account": profile.masked_account,
            "ifsc_code": profile.ifsc_code,
            "account_holder_name": profile.account_holder_name,
        },
        "language": profile.language,
        "is_verified": profile.is_verified,
        "rating": profile.rating,
        "total_orders": profile.total_orders,
    }


class ReviewForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    rated_user_id = forms.IntegerField(min_value=1)
    rated_user_type = forms.ChoiceField(choices=Review.REVIEWED_TYPE_CHOICES)
    rating = forms.IntegerField(min_value=1, max_value=5)
    comment = forms.CharField(max_length=500, required=False)


def review_to_dict(review):
    reviewer_profile = getattr(review.reviewer, "profile", None)
    return {
        "id": review.id,
        "order_id": review.order_id,
        "reviewer": {
            "id": review.reviewer_id,
            "name": reviewer_profile.name if reviewer_profile else review.reviewer.get_username(),
            "user_type": review.reviewer_type,
        },
        "reviewed_user_id": review.reviewed_user_id,
        "reviewed_user_type": review.reviewed_user_type,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": review.created_at.isoformat(),
    }


def refresh_rating(user_id):
    """Store the average review rating, to one decimal, on the user's profile."""
    average = Review.objects.filter(reviewed_user_id=user_id).aggregate(avg=Avg("rating"))["avg"] or 0
    rating = math.floor(average * 10 + 0.5) / 10
    Profile.objects.filter(user_id=user_id).update(rating=rating)
    return rating


def create_review(reviewer, order_id, rated_user_id, rated_user_type, rating, comment=""):
    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFoundOrWrongState("Order not found")
    if order.restaurant_id != reviewer.id:
        raise Unauthorized("Only the ordering restaurant can rate this order's farmer and transporter")

    party_for_type = {"farmer": order.farmer_id, "transporter": order.transporter_id}
    if party_for_type.get(rated_user_type) != rated_user_id:
        raise ValidationFailed("User being rated must be the order's " + rated_user_type)

    try:
        with transaction.atomic():
            review = Review.objects.create(
                reviewer=reviewer,
                reviewer_type="restaurant",
                reviewed_user_id=rated_user_id,
                reviewed_user_type=rated_user_type,
                order=order,
                rating=rating,
                comment=comment or "",
            )
    except IntegrityError:
        raise ValidationFailed("You have already reviewed this user for this order")

    new_rating = refresh_rating(rated_user_id)
    logger.info(f"Review {review.id} by {reviewer.id} for {rated_user_type} {rated_user_id}; rating now {new_rating}")
    return review


# ==================== PROFILE ====================

@require_http_methods(["GET", "PUT"])
@role_required("farmer", "restaurant", "transporter")
@api_endpoint
def profile(request):
    profile = request.user.profile
    if request.method == "GET":
        return success(profile=profile_to_dict(profile))

    changes = parse_body(request, ProfileForm)
    for field, value in changes.items():
        setattr(profile, field, value)
    profile.save(update_fields=list(changes) + ["updated_at"])

    logger.info(f"Profile of user {request.user.id} updated: {sorted(changes)}")
    return success("Profile updated successfully", profile=profile_to_dict(profile))


# ==================== REVIEWS ====================

@require_POST
@role_required("restaurant")
@api_endpoint
def reviews(request):
    data = parse_body(request, ReviewForm)
    review = create_review(
        request.user,
        data["order_id"],
        data["rated_user_id"],
        data["rated_user_type"],
        data["rating"],
        data["comment"],
    )
    return success("Review submitted successfully", status=201, review=review_to_dict(review))


@require_GET
@role_required()
@api_endpoint
def user_reviews(request, user_id):
    if not get_user_model().objects.filter(pk=user_id).exists():
        raise NotFoundOrWrongState("User not found")

    latest = (
        Review.objects.filter(reviewed_user_id=user_id)
        .select_related("reviewer__profile")
        .order_by("-created_at", "-id")[:REVIEW_LIST_LIMIT]
    )
    return success(reviews=[review_to_dict(r) for r in latest])
