from django.contrib import admin
from .models import Brand, DeviceModel, Seller, BookingPerson


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ['name', 'user', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'created_at']
    search_fields = ['name', 'user__username']
    ordering = ['name']


@admin.register(DeviceModel)
class DeviceModelAdmin(admin.ModelAdmin):
    list_display = ['name', 'brand_name', 'user', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'created_at']
    search_fields = ['name', 'brand_name', 'user__username']
    ordering = ['brand_name', 'name']


@admin.register(Seller)
class SellerAdmin(admin.ModelAdmin):
    list_display = ['name', 'user', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'created_at']
    search_fields = ['name', 'user__username']
    ordering = ['name']


@admin.register(BookingPerson)
class BookingPersonAdmin(admin.ModelAdmin):
    list_display = ['name', 'user', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'created_at']
    search_fields = ['name', 'user__username']
    ordering = ['name']
