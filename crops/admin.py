from django.contrib import admin
from .models import Crop


@admin.register(Crop)
class CropAdmin(admin.ModelAdmin):
    list_display = ('name', 'farmer', 'category', 'price', 'unit', 'available_quantity', 'status', 'created_at')
    list_filter = ('category', 'status', 'organic', 'quality')
    search_fields = ('name', 'farmer__profile__name')
    ordering = ('-created_at',)

    fieldsets = (
        ('Crop Details', {
            'fields': ('farmer', 'name', 'description', 'category', 'quality', 'organic', 'harvest_date')
        }),
        ('Pricing & Stock', {
            'fields': ('price', 'unit', 'weight_per_unit', 'quantity', 'available_quantity', 'status')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude', 'address')
        }),
        ('Date Information', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    readonly_fields = ('created_at', 'updated_at')
