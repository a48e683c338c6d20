import logging
import pytest
from fleet_rollout.models import ServiceSpec, HealthState, HealthSnapshot, WaitState
from fleet_rollout.config import RunConfig
from fleet_rollout.engine import RolloutOrchestrator
from fleet_rollout.failure import ScriptedCluster


def fleet(*names):
    return [ServiceSpec(name, "test-cluster") for name in names]


class TestHealthAudit:
    """Health is reported but never decides the verdict."""

    @pytest.mark.asyncio
    async def test_failed_audit_does_not_fail_run(self, caplog):
        cluster = ScriptedCluster(health_errors={"auth"})
        engine = RolloutOrchestrator(cluster, RunConfig())

        with caplog.at_level(logging.WARNING):
            report = await engine.run(fleet("auth", "users"))
        assert report.exit_code == 0
        assert report.succeeded_services == ["auth", "users"]
        assert report.outcomes[0].health_state == HealthState.UNKNOWN
        assert report.outcomes[1].health_state == HealthState.HEALTHY
        assert "Could not audit auth service" in caplog.text

    @pytest.mark.asyncio
    async def test_degraded_service_still_succeeds(self):
        cluster = ScriptedCluster(counts={"auth": (1, 3)})
        engine = RolloutOrchestrator(cluster, RunConfig())

        report = await engine.run(fleet("auth"))
        outcome = report.outcomes[0]
        assert report.exit_code == 0
        assert outcome.health_state == HealthState.DEGRADED
        assert outcome.health.running_count == 1
        assert outcome.health.desired_count == 3
        assert outcome.health.deployments[0].rollout_state == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_audit_runs_even_when_wait_failed(self):
        cluster = ScriptedCluster(wait_errors={"auth"})
        engine = RolloutOrchestrator(cluster, RunConfig())

        report = await engine.run(fleet("auth"))
        assert cluster.operations("describe_health") == ["auth"]
        assert report.outcomes[0].wait_state == WaitState.TIMED_OUT_OR_UNSTABLE
        assert report.outcomes[0].health_state == HealthState.HEALTHY
        assert report.exit_code == 1

    @pytest.mark.asyncio
    async def test_audit_happens_after_every_wait(self):
        cluster = ScriptedCluster()
        engine = RolloutOrchestrator(cluster, RunConfig(parallel=True))

        await engine.run(fleet("auth", "users", "tasks"))
        ops = [op for op, _ in cluster.calls]
        last_wait = max(i for i, op in enumerate(ops) if op == "wait_until_stable")
        first_audit = ops.index("describe_health")
        assert last_wait < first_audit

    @pytest.mark.asyncio
    async def test_deployment_table_logged(self, caplog):
        cluster = ScriptedCluster(counts={"auth": (2, 2)})
        engine = RolloutOrchestrator(cluster, RunConfig())

        with caplog.at_level(logging.INFO):
            await engine.run(fleet("auth"))
        assert "Running tasks: 2/2" in caplog.text
        assert "ecs-svc/auth  PRIMARY  2/2  COMPLETED" in caplog.text


class TestHealthSnapshot:

    def test_equal_counts_are_healthy(self):
        assert HealthSnapshot(2, 2).health_state == HealthState.HEALTHY

    def test_under_capacity_is_degraded(self):
        assert HealthSnapshot(1, 2).health_state == HealthState.DEGRADED

    def test_over_capacity_is_degraded(self):
        # Old and new tasks overlap while a rollout drains
        assert HealthSnapshot(4, 2).health_state == HealthState.DEGRADED
