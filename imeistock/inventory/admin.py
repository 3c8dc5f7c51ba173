from django.contrib import admin
from .models import Entry


@admin.register(Entry)
class EntryAdmin(admin.ModelAdmin):
    list_display = ['imei', 'brand', 'model', 'user', 'inward_date', 'outward_date', 'is_deleted']
    list_filter = ['is_deleted', 'inward_date', 'outward_date', 'brand']
    search_fields = ['imei', 'buyer', 'user__username', 'model__name', 'brand__name']
    raw_id_fields = ['user', 'brand', 'model', 'seller', 'booking_person']
    date_hierarchy = 'inward_date'
    ordering = ['-created_at']
