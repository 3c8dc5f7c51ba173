import django_filters
from .models import DeviceModel


class DeviceModelFilter(django_filters.FilterSet):
    """Filter models by brand id or by brand name (case-insensitive)"""
    brand = django_filters.NumberFilter(field_name='brand_id')
    brand_name = django_filters.CharFilter(field_name='brand_name', lookup_expr='iexact')

    class Meta:
        model = DeviceModel
        fields = ['brand', 'brand_name']
