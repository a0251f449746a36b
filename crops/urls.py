from django.urls import path
from . import views

urlpatterns = [
    # ==================== FARMER ====================
    path("api/farmer/crops/", views.farmer_crops, name="farmer_crops"),
    path("api/farmer/crops/voice/", views.voice_crops, name="voice_crops"),
    path("api/farmer/crops/<int:crop_id>/", views.farmer_crop_detail, name="farmer_crop_detail"),

    # ==================== RESTAURANT ====================
    path("api/restaurant/crops/", views.browse_crops, name="browse_crops"),
    path("api/restaurant/nearby-farmers/", views.nearby_farmers, name="nearby_farmers"),
]
