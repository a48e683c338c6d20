from .models import (
    ServiceSpec, TriggerState, WaitState, HealthState,
    DeploymentStatus, HealthSnapshot, DeploymentOutcome, RunReport
)
from .config import RunConfig, build_fleet
from .failure import (
    RolloutError, PrerequisiteMissing, ServiceNotActive, TransportError,
    ConvergenceFailure, ScriptedCluster
)
from .cluster import ClusterClient, AwsCliClusterClient
from .aggregator import ResultAggregator
from .engine import RolloutOrchestrator

__all__ = [
    "ServiceSpec", "TriggerState", "WaitState", "HealthState",
    "DeploymentStatus", "HealthSnapshot", "DeploymentOutcome", "RunReport",
    "RunConfig", "build_fleet",
    "RolloutError", "PrerequisiteMissing", "ServiceNotActive", "TransportError",
    "ConvergenceFailure", "ScriptedCluster",
    "ClusterClient", "AwsCliClusterClient",
    "ResultAggregator", "RolloutOrchestrator"
]
