# payments/forms.py - request schemas for the payment endpoints
from django import forms


class OrderIdForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)


class CreatePaymentOrderForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    amount = forms.FloatField(min_value=1, required=False)


class VerifyPaymentForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    razorpay_order_id = forms.CharField(max_length=100)
    razorpay_payment_id = forms.CharField(max_length=100)
    razorpay_signature = forms.CharField(max_length=200)


class SettleForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    razorpay_payment_id = forms.CharField(max_length=100)


class RefundForm(forms.Form):
    order_id = forms.IntegerField(min_value=1)
    amount = forms.FloatField(min_value=1, required=False)
    reason = forms.CharField(max_length=500)


class HistoryQuery(forms.Form):
    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, max_value=100, required=False)
