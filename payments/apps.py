from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    gateway = None

    def ready(self):
        from .razorpay_utils import RazorpayGateway

        self.gateway = RazorpayGateway.from_settings()
