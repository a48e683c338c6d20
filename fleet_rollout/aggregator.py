from .models import DeploymentOutcome, RunReport, TriggerState, WaitState
from .logger import get_logger


class ResultAggregator:
    """Owns the per-run outcome table and folds phase results into a RunReport.

    Only trigger and wait failures count against the run. Health results are
    stored for reporting but never touch the failed set.
    """

    def __init__(self, services):
        self.services = list(services)
        self.outcomes = {}  # service name -> DeploymentOutcome, insertion = input order
        self.failed = []
        self.history = []
        self.aborted_reason = None
        self.logger = get_logger("aggregator")

    def _mark_failed(self, name):
        if name not in self.failed:
            self.failed.append(name)

    def triggered(self):
        """Services whose redeploy was accepted, in input order"""
        return [s for s in self.services
                if s.name in self.outcomes
                and self.outcomes[s.name].trigger_state == TriggerState.TRIGGERED]

    def record_trigger(self, service, state, error=None):
        outcome = DeploymentOutcome(service=service.name, trigger_state=state, error=error)
        self.outcomes[service.name] = outcome
        event = {"event": "trigger", "service": service.name, "state": state.value}
        if state != TriggerState.TRIGGERED:
            self._mark_failed(service.name)
            event["error"] = error
        self.history.append(event)
        return outcome

    def record_wait(self, service, state, error=None):
        outcome = self.outcomes[service.name]
        if state == WaitState.STABLE and outcome.trigger_state != TriggerState.TRIGGERED:
            raise ValueError(f"{service.name} cannot be stable without a successful trigger")
        outcome.wait_state = state
        event = {"event": "wait", "service": service.name, "state": state.value}
        if state == WaitState.TIMED_OUT_OR_UNSTABLE:
            outcome.error = error
            self._mark_failed(service.name)
            event["error"] = error
        self.history.append(event)
        return outcome

    def record_health(self, service, state, snapshot=None, error=None):
        outcome = self.outcomes[service.name]
        outcome.health_state = state
        outcome.health = snapshot
        event = {"event": "audit", "service": service.name, "state": state.value}
        if snapshot is not None:
            event["running"] = snapshot.running_count
            event["desired"] = snapshot.desired_count
        if error:
            event["error"] = error
        self.history.append(event)
        return outcome

    def abort_wait(self, reason):
        """Trigger failures stop the run before waiting; nothing triggered gets waited on"""
        self.aborted_reason = reason
        self.history.append({"event": "abort", "reason": reason, "failed": list(self.failed)})
        for service in self.triggered():
            self.outcomes[service.name].wait_state = WaitState.SKIPPED

    def build_report(self, dry_run=False):
        outcomes = [self.outcomes[s.name] for s in self.services if s.name in self.outcomes]
        succeeded = [o.service for o in outcomes if o.succeeded and o.service not in self.failed]
        failed = [s.name for s in self.services if s.name in self.failed]
        success = not failed
        report = RunReport(
            success=success,
            exit_code=0 if success else 1,
            succeeded_services=succeeded,
            failed_services=failed,
            outcomes=outcomes,
            aborted_reason=self.aborted_reason,
            dry_run=dry_run,
            history=list(self.history),
        )
        if success:
            self.logger.debug(f"Run succeeded for {len(succeeded)} services")
        else:
            self.logger.debug(f"Run failed: {len(failed)} failed, {len(succeeded)} succeeded")
        return report
