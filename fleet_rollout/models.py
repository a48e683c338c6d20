from dataclasses import dataclass, field
from enum import Enum


class TriggerState(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    TRIGGERED = "triggered"
    REJECTED_NOT_ACTIVE = "rejected_not_active"
    REJECTED_OTHER = "rejected_other"


class WaitState(str, Enum):
    SKIPPED = "skipped"
    STABLE = "stable"
    TIMED_OUT_OR_UNSTABLE = "timed_out_or_unstable"


class HealthState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ServiceSpec:
    """A deployable unit: short fleet name plus where it lives"""
    name: str  # Short name used in the fleet list, e.g. "auth"
    cluster_ref: str  # Cluster the service runs in
    platform_name: str = None  # Full service name on the cluster

    @property
    def service_name(self):
        return self.platform_name or self.name


@dataclass
class DeploymentStatus:
    """One deployment revision as reported by the cluster"""
    id: str
    status: str
    running_count: int = 0
    desired_count: int = 0
    rollout_state: str = None


@dataclass
class HealthSnapshot:
    running_count: int
    desired_count: int
    deployments: list = field(default_factory=list)

    @property
    def health_state(self):
        if self.running_count == self.desired_count:
            return HealthState.HEALTHY
        return HealthState.DEGRADED


@dataclass
class DeploymentOutcome:
    """Per-service record, filled in as each phase completes"""
    service: str
    trigger_state: TriggerState = TriggerState.NOT_ATTEMPTED
    wait_state: WaitState = None  # None until the wait phase has been decided
    health_state: HealthState = None  # None until audited
    error: str = None  # Last trigger/wait error message
    health: HealthSnapshot = None

    @property
    def succeeded(self):
        return (self.trigger_state == TriggerState.TRIGGERED
                and self.wait_state in (WaitState.SKIPPED, WaitState.STABLE))


@dataclass
class RunReport:
    """Results from a rollout run"""
    success: bool
    exit_code: int = 1
    succeeded_services: list = field(default_factory=list)  # Input order
    failed_services: list = field(default_factory=list)  # Input order
    outcomes: list = field(default_factory=list)  # DeploymentOutcome per service
    aborted_reason: str = None  # Why the wait phase was skipped (if it was)
    dry_run: bool = False
    history: list = field(default_factory=list)  # Run events in order
