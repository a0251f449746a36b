from django.contrib import admin
from .models import Profile, Review


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('name', 'user', 'user_type', 'city', 'is_verified', 'rating', 'total_orders', 'created_at')
    list_filter = ('user_type', 'is_verified', 'language', 'state')
    search_fields = ('name', 'phone', 'user__email', 'city')

    fieldsets = (
        ('Account', {
            'fields': ('user', 'user_type', 'name', 'phone', 'language', 'is_verified')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude', 'address', 'city', 'state')
        }),
        ('Bank Details', {
            'classes': ('collapse',),
            'fields': ('account_number', 'ifsc_code', 'account_holder_name')
        }),
        ('Activity', {
            'fields': ('rating', 'total_orders', 'created_at', 'updated_at'),
        }),
    )

    # maintained by reviews and deliveries
    readonly_fields = ('rating', 'total_orders', 'created_at', 'updated_at')


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'reviewer', 'reviewed_user', 'reviewed_user_type', 'rating', 'order', 'created_at')
    list_filter = ('reviewed_user_type', 'rating')
    search_fields = ('comment', 'reviewer__profile__name', 'reviewed_user__profile__name')
    readonly_fields = ('created_at',)
