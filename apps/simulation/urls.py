"""
URL configuration for the simulation app.
"""

from django.urls import path

from apps.simulation.views import SimulateView, SimulationRunView

app_name = "simulation"

urlpatterns = [
    path("", SimulateView.as_view(), name="simulate"),
    path("<str:run_id>/", SimulationRunView.as_view(), name="run"),
]
