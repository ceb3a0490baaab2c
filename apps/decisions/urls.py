"""
URL configuration for the decisions app.
"""

from django.urls import path

from apps.decisions.views import PendingApprovalsView, ProposalView

app_name = "decisions"

urlpatterns = [
    path("pending/", PendingApprovalsView.as_view(), name="pending"),
    path("proposals/<int:proposal_id>/", ProposalView.as_view(), name="proposal"),
]
