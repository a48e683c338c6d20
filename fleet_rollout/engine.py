import asyncio

from .aggregator import ResultAggregator
from .config import RunConfig
from .failure import ServiceNotActive
from .logger import get_logger, log_step
from .models import HealthState, TriggerState, WaitState

BANNER = "=" * 42


class RolloutOrchestrator:
    """Forced redeploy of a fleet: trigger, wait for convergence, audit, report"""

    def __init__(self, client, config=None):
        self.client = client
        self.config = config if config else RunConfig()
        self.logger = get_logger("engine")

    def _header(self, title):
        self.logger.info(BANNER)
        self.logger.info(f"  {title}")
        self.logger.info(BANNER)

    async def _call(self, fn, *args):
        # Client calls block (subprocess, polling); keep them off the event loop
        return await asyncio.to_thread(fn, *args)

    async def _run_phase(self, services, step):
        """Run ``step`` for every service; results come back in input order"""
        if self.config.parallel:
            return await asyncio.gather(*(step(s) for s in services))
        results = []
        for service in services:
            results.append(await step(service))
        return results

    async def check_prerequisites(self, services):
        log_step(self.logger, "Checking prerequisites...")
        for cluster_ref in dict.fromkeys(s.cluster_ref for s in services):
            await self._call(self.client.check_prerequisites, cluster_ref)
        self.logger.info("Prerequisites check passed")

    async def _trigger_one(self, service):
        log_step(self.logger, f"Updating {service.name} service...")
        try:
            await self._call(self.client.trigger_redeploy, service.cluster_ref, service.service_name)
        except ServiceNotActive as e:
            self.logger.error(f"Service '{service.service_name}' not found or not active: {e}")
            return TriggerState.REJECTED_NOT_ACTIVE, str(e)
        except Exception as e:
            self.logger.error(f"Failed to update {service.name} service: {e}")
            return TriggerState.REJECTED_OTHER, str(e)
        self.logger.info(f"Deployment initiated for {service.name} service")
        return TriggerState.TRIGGERED, None

    async def trigger_phase(self, services, aggregator):
        results = await self._run_phase(services, self._trigger_one)
        for service, (state, error) in zip(services, results):
            aggregator.record_trigger(service, state, error)
        triggered = aggregator.triggered()
        self.logger.info(f"Triggered {len(triggered)}/{len(services)} services")
        return triggered

    async def _wait_one(self, service):
        log_step(self.logger, f"Waiting for {service.name} service to stabilize...")
        try:
            await self._call(self.client.wait_until_stable, service.cluster_ref, service.service_name)
        except Exception as e:
            self.logger.error(f"{service.name} service failed to stabilize: {e}")
            self.logger.error(
                f"Check CloudWatch Logs for details: aws logs tail /ecs/{self.config.environment} "
                f"--follow --filter-pattern \"{service.name}\""
            )
            return WaitState.TIMED_OUT_OR_UNSTABLE, str(e)
        self.logger.info(f"{service.name} service is now stable")
        return WaitState.STABLE, None

    async def wait_phase(self, triggered, aggregator):
        # Nothing left to wait on counts as an abort even in best-effort mode
        if aggregator.failed and (self.config.fail_fast or not triggered):
            reason = "trigger failures: " + ", ".join(aggregator.failed)
            self.logger.error(f"Failed to update services: {' '.join(aggregator.failed)}")
            aggregator.abort_wait(reason)
            return
        if not self.config.wait_for_stable:
            self.logger.info("Not waiting for services to stabilize")
            for service in triggered:
                aggregator.record_wait(service, WaitState.SKIPPED)
            return
        if aggregator.failed:
            self.logger.warning(f"Best effort: waiting for {len(triggered)} triggered services only")

        self._header("Waiting for Deployments to Complete")
        results = await self._run_phase(triggered, self._wait_one)
        for service, (state, error) in zip(triggered, results):
            aggregator.record_wait(service, state, error)

    async def audit_phase(self, triggered, aggregator):
        """Observational only; a failed audit never fails the run"""
        self._header("Final Health Check")
        for service in triggered:
            log_step(self.logger, f"Checking {service.name} service health...")
            try:
                snapshot = await self._call(self.client.describe_health, service.cluster_ref, service.service_name)
            except Exception as e:
                self.logger.warning(f"Could not audit {service.name} service: {e}")
                aggregator.record_health(service, HealthState.UNKNOWN, error=str(e))
                continue

            state = snapshot.health_state
            self.logger.info(f"Running tasks: {snapshot.running_count}/{snapshot.desired_count}")
            if state == HealthState.HEALTHY:
                self.logger.info(f"{service.name} service is healthy")
            else:
                self.logger.warning(f"{service.name} service is not at desired capacity")
            for d in snapshot.deployments:
                self.logger.info(
                    f"  {d.id}  {d.status}  {d.running_count}/{d.desired_count}  {d.rollout_state or '-'}"
                )
            aggregator.record_health(service, state, snapshot)

    async def run(self, services):
        """Main entry point. Raises PrerequisiteMissing before any service is touched."""
        services = list(services)
        if not services:
            raise ValueError("no services to roll out")

        aggregator = ResultAggregator(services)
        if self.config.dry_run:
            self.logger.info(f"DRY RUN: Would redeploy {len(services)} services: "
                             f"{' '.join(s.service_name for s in services)}")
            aggregator.history.append({"event": "dry_run", "services_planned": len(services)})
            return aggregator.build_report(dry_run=True)

        await self.check_prerequisites(services)

        triggered = await self.trigger_phase(services, aggregator)
        await self.wait_phase(triggered, aggregator)
        await self.audit_phase(triggered, aggregator)

        report = aggregator.build_report()
        if report.success:
            self.logger.info(f"SUCCESS: {len(report.succeeded_services)} services redeployed")
        else:
            self.logger.warning(f"FAILED: {len(report.failed_services)} failed, "
                                f"{len(report.succeeded_services)} succeeded")
        return report
