import django_filters
from django.db.models import CharField, Q, Value
from django.db.models.functions import Cast, Concat, ExtractDay, ExtractMonth, ExtractYear, LPad
from .models import Entry


def display_date(field):
    """SQL expression rendering a date column as dd/mm/yyyy"""
    return Concat(
        LPad(Cast(ExtractDay(field), CharField()), 2, Value('0')),
        Value('/'),
        LPad(Cast(ExtractMonth(field), CharField()), 2, Value('0')),
        Value('/'),
        Cast(ExtractYear(field), CharField()),
        output_field=CharField(),
    )


class EntryFilter(django_filters.FilterSet):
    """
    Entry search box filters.

    The three free-text filters match case-insensitive substrings and are
    combined with AND; brand, model and booking_person match names exactly.
    """
    imei_or_date = django_filters.CharFilter(method='filter_imei_or_date')
    brand_or_model = django_filters.CharFilter(method='filter_brand_or_model')
    person_or_buyer = django_filters.CharFilter(method='filter_person_or_buyer')
    brand = django_filters.CharFilter(field_name='brand__name', lookup_expr='iexact')
    model = django_filters.CharFilter(field_name='model__name', lookup_expr='iexact')
    booking_person = django_filters.CharFilter(field_name='booking_person__name', lookup_expr='iexact')
    status = django_filters.ChoiceFilter(
        method='filter_status',
        choices=[(Entry.STATUS_IN_STOCK, 'In stock'), (Entry.STATUS_SOLD, 'Sold')],
    )

    class Meta:
        model = Entry
        fields = ['imei_or_date', 'brand_or_model', 'person_or_buyer', 'brand', 'model', 'booking_person', 'status']

    def filter_imei_or_date(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        queryset = queryset.annotate(
            inward_display=display_date('inward_date'),
            outward_display=display_date('outward_date'),
        )
        return queryset.filter(
            Q(imei__icontains=value)
            | Q(inward_display__icontains=value)
            | Q(outward_display__icontains=value)
        )

    def filter_brand_or_model(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(brand__name__icontains=value) | Q(model__name__icontains=value))

    def filter_person_or_buyer(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(booking_person__name__icontains=value) | Q(buyer__icontains=value))

    def filter_status(self, queryset, name, value):
        if value == Entry.STATUS_IN_STOCK:
            return queryset.in_stock()
        if value == Entry.STATUS_SOLD:
            return queryset.sold()
        return queryset
