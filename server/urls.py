"""
Main URL mapping configuration file.

The asset library exposes its operations through the logic layer;
only the admin is routed here.
"""

from django.contrib import admin
from django.urls import path

admin.autodiscover()

urlpatterns = [
    # django-admin:
    path('admin/', admin.site.urls),
]
