import pytest
from fleet_rollout.models import ServiceSpec
from fleet_rollout.config import RunConfig
from fleet_rollout.engine import RolloutOrchestrator
from fleet_rollout.failure import ScriptedCluster, PrerequisiteMissing


def fleet(*names):
    return [ServiceSpec(name, "test-cluster") for name in names]


class TestPrerequisites:
    """Missing tooling or cluster aborts before any service is touched."""

    @pytest.mark.asyncio
    async def test_missing_cluster_aborts_run(self):
        cluster = ScriptedCluster(missing_cluster=True)
        engine = RolloutOrchestrator(cluster, RunConfig())

        with pytest.raises(PrerequisiteMissing, match="test-cluster"):
            await engine.run(fleet("auth", "users"))
        assert cluster.operations("trigger_redeploy") == []
        assert cluster.calls == [("check_prerequisites", "test-cluster")]

    @pytest.mark.asyncio
    async def test_each_cluster_checked_once(self):
        cluster = ScriptedCluster()
        engine = RolloutOrchestrator(cluster, RunConfig())
        services = [
            ServiceSpec("auth", "a-cluster"),
            ServiceSpec("users", "b-cluster"),
            ServiceSpec("tasks", "a-cluster"),
        ]

        await engine.run(services)
        assert cluster.operations("check_prerequisites") == ["a-cluster", "b-cluster"]


class TestDryRun:

    @pytest.mark.asyncio
    async def test_dry_run_makes_no_calls(self):
        cluster = ScriptedCluster(missing_cluster=True)
        engine = RolloutOrchestrator(cluster, RunConfig(dry_run=True))

        report = await engine.run(fleet("auth", "users"))
        assert cluster.calls == []
        assert report.dry_run is True
        assert report.exit_code == 0
        assert report.outcomes == []
        assert report.history == [{"event": "dry_run", "services_planned": 2}]
