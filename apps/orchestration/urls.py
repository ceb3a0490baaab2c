"""
URL configuration for the orchestration app.
"""

from django.urls import path

from apps.orchestration.views import StatsView, TickRunView, TickView

app_name = "orchestration"

urlpatterns = [
    path("tick/", TickView.as_view(), name="tick"),
    path("runs/<str:run_id>/", TickRunView.as_view(), name="run"),
    path("stats/", StatsView.as_view(), name="stats"),
]
