from django.urls import path
from . import views

urlpatterns = [
    path("api/profile/", views.profile, name="profile"),
    path("api/reviews/", views.reviews, name="reviews"),
    path("api/reviews/user/<int:user_id>/", views.user_reviews, name="user_reviews"),
]
