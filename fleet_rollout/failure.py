import time

from .models import DeploymentStatus, HealthSnapshot


class RolloutError(Exception):
    """Base class for everything the orchestrator knows how to classify"""

    def __init__(self, message, service=None):
        super().__init__(message)
        self.service = service


class PrerequisiteMissing(RolloutError):
    """Tooling unavailable or the cluster could not be found"""


class ServiceNotActive(RolloutError):
    """Service is missing or not in an ACTIVE lifecycle state"""


class TransportError(RolloutError):
    """Any other failed call against the cluster"""


class ConvergenceFailure(RolloutError):
    """The service did not reach its desired task count in time"""


class ScriptedCluster:
    """In-memory cluster with per-service failure injection.

    Every call is recorded in ``calls`` as ``(operation, service_name)`` so tests
    can assert on ordering and on which phases were entered.
    """

    def __init__(self, not_active=None, trigger_errors=None, wait_errors=None,
                 health_errors=None, counts=None, missing_cluster=False, delay=0):
        self.not_active = set(not_active or [])
        self.trigger_errors = set(trigger_errors or [])
        self.wait_errors = set(wait_errors or [])
        self.health_errors = set(health_errors or [])
        self.counts = counts or {}  # service_name -> (running, desired)
        self.missing_cluster = missing_cluster
        self.delay = delay
        self.calls = []

    def _pause(self):
        if self.delay > 0:
            time.sleep(self.delay)

    def check_prerequisites(self, cluster_ref):
        self.calls.append(("check_prerequisites", cluster_ref))
        if self.missing_cluster:
            raise PrerequisiteMissing(f"cluster '{cluster_ref}' not found")

    def trigger_redeploy(self, cluster_ref, service_name):
        self.calls.append(("trigger_redeploy", service_name))
        self._pause()
        if service_name in self.not_active:
            raise ServiceNotActive(f"service '{service_name}' not found or not active", service_name)
        if service_name in self.trigger_errors:
            raise TransportError(f"update-service failed for '{service_name}'", service_name)
        return True

    def wait_until_stable(self, cluster_ref, service_name):
        self.calls.append(("wait_until_stable", service_name))
        self._pause()
        if service_name in self.wait_errors:
            raise ConvergenceFailure(f"service '{service_name}' failed to stabilize", service_name)

    def describe_health(self, cluster_ref, service_name):
        self.calls.append(("describe_health", service_name))
        if service_name in self.health_errors:
            raise TransportError(f"describe-services failed for '{service_name}'", service_name)
        running, desired = self.counts.get(service_name, (1, 1))
        deployment = DeploymentStatus(
            id=f"ecs-svc/{service_name}",
            status="PRIMARY",
            running_count=running,
            desired_count=desired,
            rollout_state="COMPLETED" if running == desired else "IN_PROGRESS",
        )
        return HealthSnapshot(running, desired, [deployment])

    def operations(self, operation):
        return [name for op, name in self.calls if op == operation]
