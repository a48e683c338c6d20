import os
from dataclasses import dataclass

from .models import ServiceSpec

DEFAULT_REGION = "eu-west-1"
DEFAULT_ENVIRONMENT = "ecs-trial"
DEFAULT_SERVICES = ("auth", "users", "tasks", "frontend")

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value, name="value"):
    """Parse an environment-style boolean switch"""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be true or false, got {value!r}")


@dataclass
class RunConfig:
    """Configuration for a rollout run"""
    region: str = DEFAULT_REGION
    environment: str = DEFAULT_ENVIRONMENT
    wait_for_stable: bool = True  # Block until each service converges
    fail_fast: bool = True  # Skip the wait phase if any trigger failed
    parallel: bool = False  # Run trigger and wait calls concurrently
    dry_run: bool = False

    @property
    def cluster_ref(self):
        return f"{self.environment}-cluster"

    def service_name(self, service):
        return f"{self.environment}-{service}-service"

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        return cls(
            region=env.get("AWS_REGION") or DEFAULT_REGION,
            environment=env.get("ENVIRONMENT_NAME") or DEFAULT_ENVIRONMENT,
            wait_for_stable=parse_bool(env.get("WAIT_FOR_STABLE", "true"), "WAIT_FOR_STABLE"),
            fail_fast=parse_bool(env.get("FAIL_FAST", "true"), "FAIL_FAST"),
            parallel=parse_bool(env.get("PARALLEL", "false"), "PARALLEL"),
        )


def build_fleet(config, service=None):
    """Return the ordered services for this run: one named service or the default fleet"""
    names = [service] if service else list(DEFAULT_SERVICES)
    return [
        ServiceSpec(name=name, cluster_ref=config.cluster_ref,
                    platform_name=config.service_name(name))
        for name in names
    ]
