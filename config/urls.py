from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/events/", include("apps.events.urls")),
    path("api/decisions/", include("apps.decisions.urls")),
    path("api/simulation/", include("apps.simulation.urls")),
    path("api/pipeline/", include("apps.orchestration.urls")),
]
