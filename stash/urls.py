"""
URL configuration for stash project.

Django admin is the back office; everything else lives in the deals app.
"""
from django.contrib import admin as django_admin
from django.urls import include, path


urlpatterns = [
    path("django-admin/", django_admin.site.urls),
    path("", include(("deals.urls", "deals"), namespace="deals")),
]
