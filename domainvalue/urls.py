"""
URL configuration for the domainvalue project.

Everything public lives under /api/ (see predictor/urls.py); the Django admin
is mounted separately.
"""
from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('predictor.urls')),
]
