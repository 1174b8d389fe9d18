"""donorregistry URL Configuration

The emergency-request API lives in the ``blood`` app and donor profiles in
the ``donor`` app; the Django admin is used for record management.
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('blood.urls')),
    path('api/', include('donor.urls')),
]
