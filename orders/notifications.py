# orders/notifications.py - plain-text email notices for order events
import logging
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

SITE_NAME = "Hyperlocal Supply Chain Connector"


def _display_name(user):
    profile = getattr(user, "profile", None)
    if profile is not None and profile.name:
        return profile.name
    return user.get_full_name() or user.get_username()


def _items_text(order):
    return "\n".join(
        f"• {item.crop.name} (Qty: {item.quantity} {item.unit}, Price: ₹{item.unit_price})"
        for item in order.line_items.select_related("crop")
    )


def _send(subject, message, recipients, label):
    """Send one notice; failures are logged and reported, never raised."""
    recipients = [email for email in recipients if email]
    if not settings.DEFAULT_FROM_EMAIL:
        logger.info(f"{label} skipped: email sender not configured")
        return False, "Email not configured"
    if not recipients:
        logger.info(f"{label} skipped: no recipient address")
        return False, "No recipient"

    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=recipients,
            fail_silently=False,
        )
        logger.info(f"{label} sent to {len(recipients)} recipient(s)")
        return True, "Email sent successfully"

    except Exception as e:
        logger.error(f"{label} failed: {str(e)}", exc_info=True)
        return False, str(e)


def notify_farmer_new_order(order):
    """Tell the farmer a restaurant placed an order."""
    message = f"""
Hello {_display_name(order.farmer)},

You have received a new order from {_display_name(order.restaurant)}.

Order ID: #{order.id}
Items:
{_items_text(order)}

Total: ₹{order.total_amount}
Delivery fee: ₹{order.delivery_fee} (your share: ₹{order.farmer_delivery_share})
Delivery address: {order.delivery_address}

Please confirm or cancel the order from your dashboard.

{SITE_NAME}
    """.strip()

    return _send(
        f"New Order Received - #{order.id} - {SITE_NAME}",
        message,
        [order.farmer.email],
        f"New order notice for Order #{order.id}",
    )


def notify_restaurant_order_confirmed(order):
    message = f"""
Hello {_display_name(order.restaurant)},

{_display_name(order.farmer)} has confirmed your order #{order.id}.

Total payable: ₹{order.restaurant_payable}
Estimated delivery: {order.estimated_delivery_time:%d-%b-%Y %I:%M %p}

{SITE_NAME}
    """.strip()

    return _send(
        f"Order Confirmed - #{order.id} - {SITE_NAME}",
        message,
        [order.restaurant.email],
        f"Confirmation notice for Order #{order.id}",
    )


def notify_transporters_new_delivery(order):
    """Tell every verified transporter that a confirmed order needs a driver."""
    User = get_user_model()
    emails = list(
        User.objects.filter(profile__user_type="transporter", profile__is_verified=True, is_active=True)
        .exclude(email="")
        .values_list("email", flat=True)
    )

    message = f"""
A new delivery is available.

Order ID: #{order.id}
Pickup: {order.pickup_address}
Drop: {order.delivery_address}
Distance: {order.distance_km} km
Delivery fee: ₹{order.delivery_fee}

Accept it from your dashboard before another transporter does.

{SITE_NAME}
    """.strip()

    # one message per transporter so addresses are not shared
    sent = 0
    for email in emails:
        ok, _ = _send(
            f"New Delivery Opportunity - #{order.id} - {SITE_NAME}",
            message,
            [email],
            f"Delivery opportunity notice for Order #{order.id}",
        )
        sent += int(ok)
    return sent > 0, f"{sent} of {len(emails)} transporters notified"


def notify_order_picked_up(order):
    message = f"""
Order #{order.id} has been picked up by {_display_name(order.transporter)}
and is on its way to {order.delivery_address}.

{SITE_NAME}
    """.strip()

    return _send(
        f"Order Picked Up - #{order.id} - {SITE_NAME}",
        message,
        [order.restaurant.email, order.farmer.email],
        f"Pickup notice for Order #{order.id}",
    )


def notify_order_delivered(order):
    message = f"""
Order #{order.id} was delivered on {order.actual_delivery_time:%d-%b-%Y %I:%M %p}.

Amount due to farmer: ₹{order.total_amount}
Delivery fee: ₹{order.delivery_fee}

Restaurants can now settle the payment from the dashboard.

{SITE_NAME}
    """.strip()

    return _send(
        f"Order Delivered - #{order.id} - {SITE_NAME}",
        message,
        [order.restaurant.email, order.farmer.email],
        f"Delivery notice for Order #{order.id}",
    )


def notify_payment_settled(order):
    """Tell the payees their transfers have completed."""
    recipients = [order.farmer.email]
    lines = [f"Farmer payout: ₹{order.total_amount} ({order.farmer_transfer_status})"]
    if order.transporter_id:
        recipients.append(order.transporter.email)
        lines.append(f"Transporter payout: ₹{order.delivery_fee} ({order.transporter_transfer_status})")

    newline = "\n"
    message = f"""
Payment for order #{order.id} has been settled.

{newline.join(lines)}
Payment reference: {order.external_payment_ref}

{SITE_NAME}
    """.strip()

    return _send(
        f"Payment Settled - #{order.id} - {SITE_NAME}",
        message,
        recipients,
        f"Settlement notice for Order #{order.id}",
    )
