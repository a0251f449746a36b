# hyperlocal/testing.py - factories shared by the app test suites
from datetime import date

from django.contrib.auth import get_user_model

from accounts.models import Profile
from crops.models import Crop

HYDERABAD = (17.3850, 78.4867)


def make_user(username, user_type, latitude=HYDERABAD[0], longitude=HYDERABAD[1], is_verified=True, **extra):
    user = get_user_model().objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="not-used-in-tests",
    )
    Profile.objects.create(
        user=user,
        user_type=user_type,
        phone="9000000000",
        name=username.replace("_", " ").title(),
        latitude=latitude,
        longitude=longitude,
        address=f"{username} street",
        city="Hyderabad",
        state="Telangana",
        account_number="123456789012",
        ifsc_code="SBIN0000001",
        account_holder_name=username.title(),
        is_verified=is_verified,
        **extra,
    )
    return user


def make_crop(farmer, name="Tomato", price=40, quantity=100, unit="kg", weight_per_unit=1, **fields):
    profile = farmer.profile
    fields.setdefault("available_quantity", quantity)
    fields.setdefault("category", "vegetables")
    return Crop.objects.create(
        farmer=farmer,
        name=name,
        description=f"Fresh {name}",
        price=price,
        unit=unit,
        quantity=quantity,
        harvest_date=date(2024, 1, 15),
        latitude=profile.latitude,
        longitude=profile.longitude,
        address=profile.address,
        weight_per_unit=weight_per_unit,
        **fields,
    )
