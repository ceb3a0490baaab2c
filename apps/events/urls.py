"""
URL configuration for the events app.
"""

from django.urls import path

from apps.events.views import IngestView

app_name = "events"

urlpatterns = [
    path("ingest/", IngestView.as_view(), name="ingest"),
]
