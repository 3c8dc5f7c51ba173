from django.urls import path
from .views import (
    entry_list_create, entry_detail, entry_bulk_create, entry_reset,
    entry_import, entry_export, extract_imei,
    stock_summary, stock_filter_options,
    orphan_data_counts, orphan_data_assign,
)

urlpatterns = [
    # Entry endpoints
    path('entries/', entry_list_create, name='entry-list-create'),
    path('entries/bulk/', entry_bulk_create, name='entry-bulk-create'),
    path('entries/reset/', entry_reset, name='entry-reset'),
    path('entries/import/', entry_import, name='entry-import'),
    path('entries/export/', entry_export, name='entry-export'),
    path('entries/extract-imei/', extract_imei, name='entry-extract-imei'),
    path('entries/<str:imei>/', entry_detail, name='entry-detail'),

    # Stock endpoints
    path('stock/summary/', stock_summary, name='stock-summary'),
    path('stock/filter-options/', stock_filter_options, name='stock-filter-options'),

    # Data assignment (admin)
    path('data-assignment/', orphan_data_counts, name='orphan-data-counts'),
    path('data-assignment/assign/', orphan_data_assign, name='orphan-data-assign'),
]
