import json
import shutil
import subprocess

from .failure import ConvergenceFailure, PrerequisiteMissing, ServiceNotActive, TransportError
from .logger import get_logger
from .models import DeploymentStatus, HealthSnapshot

STDERR_TAIL_CHARS = 2000


class ClusterClient:
    """Calls the orchestrator needs from the cluster platform.

    Every operation is safe to retry, but nothing here retries on its own: a failed
    call surfaces as one of the errors in ``failure.py``.
    """

    def check_prerequisites(self, cluster_ref):
        raise NotImplementedError

    def trigger_redeploy(self, cluster_ref, service_name):
        raise NotImplementedError

    def wait_until_stable(self, cluster_ref, service_name):
        raise NotImplementedError

    def describe_health(self, cluster_ref, service_name):
        raise NotImplementedError


class AwsCliClusterClient(ClusterClient):
    """ECS client driven through the ``aws`` command line tool"""

    def __init__(self, region, aws_bin="aws"):
        self.region = region
        self.aws_bin = aws_bin
        self.logger = get_logger("cluster")

    def _run(self, args, service=None):
        cmd = [self.aws_bin, *args, "--region", self.region, "--output", "json"]
        self.logger.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise TransportError(f"could not run {self.aws_bin}: {e}", service) from e
        return proc

    def _json(self, args, service=None):
        proc = self._run(args, service)
        if proc.returncode != 0:
            raise TransportError(
                f"{' '.join(args[:2])} failed (rc={proc.returncode}): {proc.stderr[-STDERR_TAIL_CHARS:].strip()}",
                service,
            )
        try:
            return json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            raise TransportError(f"unreadable output from {' '.join(args[:2])}: {e}", service) from e

    def _describe_service(self, cluster_ref, service_name):
        data = self._json(
            ["ecs", "describe-services", "--cluster", cluster_ref, "--services", service_name],
            service_name,
        )
        services = data.get("services") or []
        return services[0] if services else None

    def check_prerequisites(self, cluster_ref):
        if shutil.which(self.aws_bin) is None:
            raise PrerequisiteMissing(f"{self.aws_bin} CLI is not installed")
        try:
            data = self._json(["ecs", "describe-clusters", "--clusters", cluster_ref])
        except TransportError as e:
            raise PrerequisiteMissing(f"cluster '{cluster_ref}' not reachable in {self.region}: {e}") from e
        clusters = [c for c in data.get("clusters") or [] if c.get("status") == "ACTIVE"]
        if not clusters:
            raise PrerequisiteMissing(f"ECS cluster '{cluster_ref}' not found in region {self.region}")

    def trigger_redeploy(self, cluster_ref, service_name):
        service = self._describe_service(cluster_ref, service_name)
        status = service.get("status") if service else None
        if status != "ACTIVE":
            raise ServiceNotActive(
                f"service '{service_name}' not found or not active (status={status})", service_name
            )
        self._json(
            ["ecs", "update-service", "--cluster", cluster_ref, "--service", service_name,
             "--force-new-deployment"],
            service_name,
        )
        return True

    def wait_until_stable(self, cluster_ref, service_name):
        # The waiter polls on its own schedule and gives up after its own limit
        proc = self._run(
            ["ecs", "wait", "services-stable", "--cluster", cluster_ref, "--services", service_name],
            service_name,
        )
        if proc.returncode == 0:
            return
        stderr = proc.stderr[-STDERR_TAIL_CHARS:].strip()
        if "Waiter" in stderr:
            raise ConvergenceFailure(f"service '{service_name}' failed to stabilize: {stderr}", service_name)
        raise TransportError(f"wait services-stable failed (rc={proc.returncode}): {stderr}", service_name)

    def describe_health(self, cluster_ref, service_name):
        service = self._describe_service(cluster_ref, service_name)
        if service is None:
            raise TransportError(f"service '{service_name}' missing from describe-services", service_name)
        return parse_health(service)


def parse_health(service):
    """Build a HealthSnapshot from one entry of describe-services output"""
    deployments = [
        DeploymentStatus(
            id=d.get("id"),
            status=d.get("status"),
            running_count=d.get("runningCount", 0),
            desired_count=d.get("desiredCount", 0),
            rollout_state=d.get("rolloutState"),
        )
        for d in service.get("deployments") or []
    ]
    return HealthSnapshot(
        running_count=service.get("runningCount", 0),
        desired_count=service.get("desiredCount", 0),
        deployments=deployments,
    )
