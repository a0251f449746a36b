from django.urls import path
from . import views

urlpatterns = [
    path("calculate/", views.calculate, name="payment_calculate"),
    path("create-order/", views.create_order, name="payment_create_order"),
    path("verify/", views.verify, name="payment_verify"),
    path("settle/", views.settle, name="payment_settle"),
    path("refund/", views.refund, name="payment_refund"),
    path("status/<int:order_id>/", views.status, name="payment_status"),
    path("history/", views.history, name="payment_history"),
]
