from django.contrib import admin
from django.urls import path, include
from . import views as hyperlocal_views

urlpatterns = [
    path("healthz/", hyperlocal_views.healthz, name="healthz"),

    # ============ CROPS (farmer listings, restaurant browsing) ============
    path("", include("crops.urls")),

    # ============ ORDERS (placement, lifecycle, complaints, dashboards) ============
    path("", include("orders.urls")),

    # ============ PAYMENTS (settlement, refunds, status) ============
    path("api/payment/", include("payments.urls")),

    # ============ ACCOUNTS (profile, reviews) ============
    path("", include("accounts.urls")),

    # ============ ADMIN ============
    path("admin/", admin.site.urls),
]
