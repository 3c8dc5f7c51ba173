"""
Stock summary: per-model stock counts and overall totals for one user
"""
from django.db.models import Count, Q

from imeistock.catalog.services import get_reference_service

IN_STOCK = Q(inward_date__isnull=False, outward_date__isnull=True)
SOLD = Q(inward_date__isnull=False, outward_date__isnull=False)


def _model_rows(counts):
    """Only models with stock on hand, sorted by model name"""
    items = [
        {'model': model, 'in_stock': c['in_stock'], 'sold': c['sold'], 'total': c['total']}
        for model, c in counts.items()
        if c['in_stock'] > 0
    ]
    return sorted(items, key=lambda item: item['model'].lower())


def database_stock_summary(queryset, brand=None, model=None, booking_person=None):
    """Summary over an Entry queryset already limited to the user's own entries"""
    filtered = queryset.exclude(imei='').filter(model__isnull=False)
    if brand:
        filtered = filtered.filter(brand__name__iexact=brand)
    if model:
        filtered = filtered.filter(model__name__iexact=model)
    if booking_person:
        filtered = filtered.filter(booking_person__name__iexact=booking_person)

    per_model = filtered.order_by().values('model__name').annotate(
        in_stock=Count('id', filter=IN_STOCK),
        sold=Count('id', filter=SOLD),
        total=Count('id'),
    )
    counts = {}
    for row in per_model:
        # Models sharing a name under different brands are reported together
        current = counts.setdefault(row['model__name'], {'in_stock': 0, 'sold': 0, 'total': 0})
        current['in_stock'] += row['in_stock']
        current['sold'] += row['sold']
        current['total'] += row['total']

    totals = queryset.aggregate(
        total_unit_stock=Count('id', filter=IN_STOCK),
        total_sold_stock=Count('id', filter=SOLD),
        total_items=Count('id', filter=Q(inward_date__isnull=False)),
    )
    return {'items': _model_rows(counts), **totals}


def summarize_rows(rows, brand=None, model=None, booking_person=None):
    """Same summary over plain entry rows (dicts keyed by entry field)"""
    def matches(value, wanted):
        return not wanted or (value or '').lower() == wanted.lower()

    counts = {}
    for row in rows:
        if not row.get('imei') or not row.get('model'):
            continue
        if not (matches(row.get('brand'), brand) and matches(row.get('model'), model)
                and matches(row.get('booking_person'), booking_person)):
            continue
        current = counts.setdefault(row['model'], {'in_stock': 0, 'sold': 0, 'total': 0})
        if row.get('inward_date') and not row.get('outward_date'):
            current['in_stock'] += 1
        elif row.get('inward_date') and row.get('outward_date'):
            current['sold'] += 1
        current['total'] += 1

    return {
        'items': _model_rows(counts),
        'total_unit_stock': sum(1 for r in rows if r.get('inward_date') and not r.get('outward_date')),
        'total_sold_stock': sum(1 for r in rows if r.get('inward_date') and r.get('outward_date')),
        'total_items': sum(1 for r in rows if r.get('inward_date')),
    }


def filter_options(user, brand=None):
    """Brand, model and booking person names offered by the stock filters"""
    references = get_reference_service(user)
    model_filters = {'brand_name': brand} if brand else None
    return {
        'brands': [row['name'] for row in references.list('brand')],
        'models': sorted({row['name'] for row in references.list('model', model_filters)}, key=str.lower),
        'booking_persons': [row['name'] for row in references.list('booking_person')],
    }
