"""
Action channel configuration.

An ActionChannel routes one action kind to a driver with its stored config.
Execution results live on decisions.ActionProposal.
"""

from django.db import models

from apps.decisions.models import ActionKind


class ActionChannel(models.Model):
    """
    Configuration for a downstream tool (e.g. PagerDuty service, tracker webhook).
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique name for this channel (e.g., 'oncall-pagerduty', 'eng-tracker').",
    )
    action_kind = models.CharField(
        max_length=30,
        choices=ActionKind.choices,
        db_index=True,
        help_text="Action kind this channel serves.",
    )
    driver = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Driver type (e.g., 'pagerduty', 'ticket', 'email', 'local').",
    )
    config = models.JSONField(
        default=dict,
        blank=True,
        help_text="Driver-specific configuration (e.g., routing key, endpoint URL).",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this channel may receive actions.",
    )
    priority = models.PositiveIntegerField(
        default=100,
        help_text="Lower wins when several active channels serve the same kind.",
    )
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["action_kind", "priority", "name"]

    def __str__(self):
        status = "active" if self.is_active else "inactive"
        return f"{self.name} ({self.action_kind} -> {self.driver}) [{status}]"
