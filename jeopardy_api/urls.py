"""
URL configuration for jeopardy_api project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django_prometheus import exports

from django.urls import path

import jeopardy_app.views
from jeopardy_app.auth import basic_auth_required

from .api import api


# Secured versions of the django-prometheus endpoints
@basic_auth_required
def secured_metrics_view(request):
    return exports.ExportToDjangoView(request)


urlpatterns = [
    path("", jeopardy_app.views.index, name="index"),
    path("api/", api.urls),
    path("metrics/", jeopardy_app.views.metrics_view, name="metrics"),
    path("django_metrics", secured_metrics_view, name="django-metrics"),
    path("prometheus/metrics", secured_metrics_view, name="prometheus-django-metrics"),
]
