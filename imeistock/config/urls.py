"""
URL configuration for the IMEI stock project.

Every app mounts its API under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "IMEI Stock Admin Panel"
admin.site.site_title = "IMEI Stock Admin Portal"
admin.site.index_title = "Welcome to the IMEI Stock Admin Panel"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('imeistock.core.urls')),
    path('api/v1/', include('imeistock.catalog.urls')),
    path('api/v1/', include('imeistock.inventory.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
