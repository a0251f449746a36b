from django.contrib import admin
from .models import Complaint, Order, OrderLineItem


class OrderLineItemInline(admin.TabularInline):
    model = OrderLineItem
    extra = 0
    # frozen at placement
    readonly_fields = ('crop', 'quantity', 'unit_price', 'unit', 'weight_per_unit')
    fields = ('position', 'crop', 'quantity', 'unit_price', 'unit', 'weight_per_unit')
    can_delete = False


class ComplaintInline(admin.TabularInline):
    model = Complaint
    extra = 0
    readonly_fields = ('raised_by', 'description', 'created_at', 'resolved_at')
    fields = ('raised_by', 'description', 'status', 'created_at', 'resolved_at')
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "farmer",
        "restaurant",
        "transporter",
        "status",
        "payment_status",
        "total_amount",
        "delivery_fee",
        "distance_km",
        "created_at",
    )

    list_filter = (
        "status",
        "payment_status",
        "farmer_transfer_status",
        "transporter_transfer_status",
        "created_at",
    )

    search_fields = (
        "id",
        "farmer__profile__name",
        "restaurant__profile__name",
        "transporter__profile__name",
        "external_payment_ref",
        "gateway_order_id",
    )

    # Pricing and route are frozen at placement; payment fields are written by settlement
    readonly_fields = (
        'total_amount',
        'delivery_fee',
        'farmer_delivery_share',
        'restaurant_delivery_share',
        'distance_km',
        'external_payment_ref',
        'gateway_order_id',
        'settled_at',
        'refund_id',
        'refund_amount',
        'refunded_at',
        'created_at',
        'updated_at',
    )

    inlines = [OrderLineItemInline, ComplaintInline]

    fieldsets = (
        ("Parties", {
            "fields": (
                "farmer",
                "restaurant",
                "transporter",
            )
        }),
        ("Status", {
            "fields": (
                "status",
                "payment_status",
                "notes",
            )
        }),
        ("Pricing", {
            "fields": (
                "total_amount",
                "delivery_fee",
                "farmer_delivery_share",
                "restaurant_delivery_share",
            )
        }),
        ("Route", {
            "fields": (
                ("pickup_latitude", "pickup_longitude"),
                "pickup_address",
                ("delivery_latitude", "delivery_longitude"),
                "delivery_address",
                "distance_km",
                "estimated_delivery_time",
                "actual_delivery_time",
            )
        }),
        ("Quality Verification", {
            "classes": ("collapse",),
            "fields": (
                "quality_score",
                "quality_notes",
                "quality_verified_by",
                "quality_verified_at",
            )
        }),
        ("Settlement", {
            "fields": (
                "gateway_order_id",
                "external_payment_ref",
                "farmer_transfer_status",
                "transporter_transfer_status",
                "settled_at",
            )
        }),
        ("Refund", {
            "classes": ("collapse",),
            "fields": (
                "refund_id",
                "refund_amount",
                "refund_reason",
                "refunded_at",
            )
        }),
        ("Timestamps", {
            "fields": (
                "created_at",
                "updated_at",
            )
        }),
    )


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "raised_by", "status", "created_at", "resolved_at")
    list_filter = ("status", "created_at")
    search_fields = ("order__id", "description")
    readonly_fields = ("order", "raised_by", "description", "created_at")
