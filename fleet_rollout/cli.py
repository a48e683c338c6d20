import argparse
import asyncio
import json
import sys
from dataclasses import asdict, replace

from .cluster import AwsCliClusterClient
from .config import RunConfig, build_fleet
from .engine import BANNER, RolloutOrchestrator
from .failure import PrerequisiteMissing
from .logger import setup_logging, get_logger

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser():
    parser = argparse.ArgumentParser(
        prog="fleet-rollout",
        description="Force a redeployment of ECS services and wait for them to stabilize",
    )
    parser.add_argument("service", nargs="?", help="Service to update (default: the whole fleet)")
    parser.add_argument("--log-level", default="INFO", choices=LOG_LEVELS, type=str.upper)
    parser.add_argument("--region", help="AWS region (env AWS_REGION)")
    parser.add_argument("--environment", help="Environment name (env ENVIRONMENT_NAME)")
    wait = parser.add_mutually_exclusive_group()
    wait.add_argument("--wait", dest="wait_for_stable", action="store_true", default=None,
                      help="Wait for services to stabilize (env WAIT_FOR_STABLE)")
    wait.add_argument("--no-wait", dest="wait_for_stable", action="store_false",
                      help="Return as soon as every redeploy is accepted")
    policy = parser.add_mutually_exclusive_group()
    policy.add_argument("--fail-fast", dest="fail_fast", action="store_true", default=None,
                        help="Skip waiting if any service failed to trigger (env FAIL_FAST)")
    policy.add_argument("--best-effort", dest="fail_fast", action="store_false",
                        help="Wait for the services that did trigger even if others failed")
    parallel = parser.add_mutually_exclusive_group()
    parallel.add_argument("--parallel", dest="parallel", action="store_true", default=None,
                          help="Trigger and wait on services concurrently (env PARALLEL)")
    parallel.add_argument("--no-parallel", dest="parallel", action="store_false",
                          help="Handle services one at a time")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--json", action="store_true", help="Print the run report as JSON")
    return parser


def resolve_config(args, environ=None):
    """Environment first, then command line flags on top"""
    config = RunConfig.from_env(environ)
    overrides = {}
    if args.region:
        overrides["region"] = args.region
    if args.environment:
        overrides["environment"] = args.environment
    if args.wait_for_stable is not None:
        overrides["wait_for_stable"] = args.wait_for_stable
    if args.fail_fast is not None:
        overrides["fail_fast"] = args.fail_fast
    if args.parallel is not None:
        overrides["parallel"] = args.parallel
    if args.dry_run:
        overrides["dry_run"] = True
    return replace(config, **overrides)


def print_summary(report, config, out=None):
    out = out or sys.stdout
    logger = get_logger("cli")
    logger.info(BANNER)
    logger.info("  Update Summary")
    logger.info(BANNER)

    if report.dry_run:
        logger.info("Dry run: no services were touched")
        return

    if report.success:
        logger.info("All services updated successfully!")
        logger.info("Updated services:")
        for name in report.succeeded_services:
            print(f"  • {name}-service", file=out)
        logger.info("Monitor your deployment:")
        first = report.succeeded_services[0] if report.succeeded_services else "auth"
        print(f"  aws ecs describe-services --cluster {config.cluster_ref} "
              f"--services {config.service_name(first)} --region {config.region}", file=out)
        print(f"  aws logs tail /ecs/{config.environment} --follow", file=out)
        return

    if report.succeeded_services:
        logger.info("Updated services:")
        for name in report.succeeded_services:
            print(f"  • {name}-service", file=out)
    logger.error(f"The following services failed: {' '.join(report.failed_services)}")
    logger.error(f"Check logs with: aws logs tail /ecs/{config.environment} --follow")


def run(argv=None, client=None, environ=None):
    """Parse arguments, run the rollout and return the process exit code"""
    args = build_parser().parse_args(argv)
    # With --json, stdout carries only the report document
    log_stream = sys.stderr if args.json else sys.stdout
    setup_logging(args.log_level, stream=log_stream)
    logger = get_logger("cli")

    try:
        config = resolve_config(args, environ)
        services = build_fleet(config, args.service)
    except ValueError as e:
        logger.error(str(e))
        return 1

    logger.info(BANNER)
    logger.info("  ECS Service Update")
    logger.info(BANNER)
    logger.info(f"Environment: {config.environment}")
    logger.info(f"Cluster: {config.cluster_ref}")
    logger.info(f"Region: {config.region}")
    logger.info(f"Services: {' '.join(s.name for s in services)}")
    logger.info(f"Wait for stable: {str(config.wait_for_stable).lower()}")

    client = client if client else AwsCliClusterClient(config.region)
    orchestrator = RolloutOrchestrator(client, config)
    try:
        report = asyncio.run(orchestrator.run(services))
    except PrerequisiteMissing as e:
        logger.error(str(e))
        return 1

    print_summary(report, config, out=log_stream)
    if args.json:
        print(json.dumps(asdict(report), indent=2))
    return report.exit_code


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
