import pytest
from django.contrib import admin
from django.test import override_settings

from apps.decisions._tests.factories import make_decision
from apps.decisions.models import DecisionStatus
from apps.orchestration._tests.helpers import ingest_webhooks
from apps.orchestration.models import (
    Learning,
    PipelineRun,
    PipelineStage,
    PipelineStatus,
    StageExecution,
    StageStatus,
)


@pytest.mark.django_db
class TestPipelineAdminSite:
    def test_custom_site_is_active(self):
        from config.admin import PipelineAdminSite

        assert isinstance(admin.site, PipelineAdminSite)

    def test_site_header(self):
        assert admin.site.site_header == "Signal Pipeline"

    def test_admin_index_loads(self, admin_client):
        response = admin_client.get("/admin/")
        assert response.status_code == 200


@pytest.fixture
def dashboard_data(db):
    ingest_webhooks(3)
    PipelineRun.objects.create(status=PipelineStatus.COMPLETED)
    PipelineRun.objects.create(status=PipelineStatus.COMPLETED)
    PipelineRun.objects.create(status=PipelineStatus.FAILED, last_error_message="store down")
    make_decision(requires_approval=True, status=DecisionStatus.EXPIRED)


@pytest.mark.django_db
class TestDashboardContext:
    def test_dashboard_contains_live_stats(self, admin_client, dashboard_data):
        response = admin_client.get("/admin/")
        stats = response.context["pipeline_stats"]
        assert stats["eventsIngested"] == 3
        assert stats["decisions"] == 1

    def test_dashboard_contains_tick_health(self, admin_client, dashboard_data):
        response = admin_client.get("/admin/")
        health = response.context["tick_health"]
        assert health["total"] == 3
        assert health["completed"] == 2
        assert health["failed"] == 1

    def test_dashboard_lists_failures_and_expired(self, admin_client, dashboard_data):
        response = admin_client.get("/admin/")
        assert len(response.context["failed_runs"]) == 1
        assert len(response.context["expired_decisions"]) == 1
        content = response.content.decode()
        assert "Pipeline (live)" in content
        assert "store down" in content


@pytest.mark.django_db
class TestOrchestrationAdminPages:
    @pytest.mark.parametrize(
        "url",
        [
            "/admin/orchestration/pipelinerun/",
            "/admin/orchestration/stageexecution/",
            "/admin/orchestration/learning/",
        ],
    )
    def test_changelists_load(self, admin_client, url):
        assert admin_client.get(url).status_code == 200

    def test_pipeline_run_detail_shows_flow(self, admin_client):
        run = PipelineRun.objects.create(status=PipelineStatus.RUNNING)
        StageExecution.objects.create(
            pipeline_run=run, stage=PipelineStage.CLAIM, status=StageStatus.SUCCEEDED
        )
        StageExecution.objects.create(
            pipeline_run=run, stage=PipelineStage.ASSESS, status=StageStatus.FAILED
        )

        response = admin_client.get(f"/admin/orchestration/pipelinerun/{run.pk}/change/")

        assert response.status_code == 200
        content = response.content.decode()
        for label in ("CLAIM", "FOLD", "HYPOTHESIZE", "ASSESS", "DECIDE", "ACT", "LEARN"):
            assert label in content


@pytest.mark.django_db
class TestRunTickAction:
    @override_settings(REASONING_PROVIDER="")
    def test_run_tick_button(self, admin_client):
        ingest_webhooks(5)

        response = admin_client.post("/admin/orchestration/pipelinerun/actions/run_tick/")

        assert response.status_code == 302
        run = PipelineRun.objects.get()
        assert run.status == PipelineStatus.COMPLETED
        assert run.events_claimed == 5
        assert Learning.objects.filter(pipeline_run=run).count() == 1
