from django.contrib import admin
from .models import SettlementTask


@admin.register(SettlementTask)
class SettlementTaskAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "run_after", "attempts", "completed_at", "created_at")
    list_filter = ("completed_at", "created_at")
    search_fields = ("order__id", "last_error")
    # written by settle() and the process_settlements worker
    readonly_fields = ("order", "attempts", "last_error", "completed_at", "created_at")
