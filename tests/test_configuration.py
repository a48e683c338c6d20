import pytest
from fleet_rollout.config import RunConfig, build_fleet, parse_bool, DEFAULT_SERVICES


class TestRunConfig:
    """Environment-driven configuration."""

    def test_defaults_from_empty_environment(self):
        config = RunConfig.from_env({})
        assert config.region == "eu-west-1"
        assert config.environment == "ecs-trial"
        assert config.wait_for_stable is True
        assert config.fail_fast is True
        assert config.parallel is False
        assert config.cluster_ref == "ecs-trial-cluster"

    def test_environment_overrides(self):
        config = RunConfig.from_env({
            "AWS_REGION": "us-east-2",
            "ENVIRONMENT_NAME": "prod",
            "WAIT_FOR_STABLE": "false",
            "FAIL_FAST": "no",
            "PARALLEL": "1",
        })
        assert config.region == "us-east-2"
        assert config.cluster_ref == "prod-cluster"
        assert config.wait_for_stable is False
        assert config.fail_fast is False
        assert config.parallel is True

    def test_empty_values_fall_back_to_defaults(self):
        config = RunConfig.from_env({"AWS_REGION": "", "ENVIRONMENT_NAME": ""})
        assert config.region == "eu-west-1"
        assert config.environment == "ecs-trial"

    def test_invalid_switch_rejected(self):
        with pytest.raises(ValueError, match="WAIT_FOR_STABLE"):
            RunConfig.from_env({"WAIT_FOR_STABLE": "maybe"})

    def test_service_name_derivation(self):
        assert RunConfig(environment="staging").service_name("auth") == "staging-auth-service"


class TestParseBool:

    @pytest.mark.parametrize("value", ["true", "TRUE", " yes ", "1", "on", True])
    def test_true_values(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "False", "0", "no", "off", False])
    def test_false_values(self, value):
        assert parse_bool(value) is False


class TestBuildFleet:

    def test_default_fleet_in_order(self):
        services = build_fleet(RunConfig())
        assert [s.name for s in services] == list(DEFAULT_SERVICES)
        assert [s.name for s in services] == ["auth", "users", "tasks", "frontend"]
        assert all(s.cluster_ref == "ecs-trial-cluster" for s in services)

    def test_single_named_service(self):
        services = build_fleet(RunConfig(environment="dev"), "users")
        assert len(services) == 1
        assert services[0].name == "users"
        assert services[0].service_name == "dev-users-service"
        assert services[0].cluster_ref == "dev-cluster"

    def test_service_spec_is_immutable(self):
        service = build_fleet(RunConfig(), "auth")[0]
        with pytest.raises(AttributeError):
            service.name = "other"
