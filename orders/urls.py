from django.urls import path
from . import views

urlpatterns = [
    # ==================== RESTAURANT ====================
    path("api/restaurant/orders/", views.restaurant_orders, name="restaurant_orders"),
    path("api/restaurant/complaints/", views.restaurant_complaint, name="restaurant_complaint"),
    path("api/restaurant/dashboard-stats/", views.restaurant_dashboard_stats, name="restaurant_dashboard_stats"),

    # ==================== FARMER ====================
    path("api/farmer/orders/", views.farmer_orders, name="farmer_orders"),
    path("api/farmer/orders/<int:order_id>/confirm/", views.confirm_order, name="confirm_order"),
    path("api/farmer/orders/<int:order_id>/cancel/", views.cancel_order, name="cancel_order"),
    path("api/farmer/dashboard-stats/", views.farmer_dashboard_stats, name="farmer_dashboard_stats"),

    # ==================== TRANSPORTER ====================
    path("api/transporter/available-orders/", views.available_orders, name="available_orders"),
    path("api/transporter/orders/", views.transporter_orders, name="transporter_orders"),
    path("api/transporter/accept-order/", views.accept_order, name="accept_order"),
    path("api/transporter/mark-picked-up/", views.mark_picked_up, name="mark_picked_up"),
    path("api/transporter/mark-in-transit/", views.mark_in_transit, name="mark_in_transit"),
    path("api/transporter/verify-quality/", views.verify_quality, name="verify_quality"),
    path("api/transporter/mark-delivered/", views.mark_delivered, name="mark_delivered"),
    path("api/transporter/complaints/", views.transporter_complaint, name="transporter_complaint"),
    path("api/transporter/earnings/", views.transporter_earnings, name="transporter_earnings"),
    path("api/transporter/dashboard-stats/", views.transporter_dashboard_stats, name="transporter_dashboard_stats"),

    # ==================== ADMIN ====================
    path("api/complaints/<int:complaint_id>/resolve/", views.resolve_complaint, name="resolve_complaint"),
]
