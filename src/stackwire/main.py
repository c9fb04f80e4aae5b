#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from stackwire.app import PROVIDERS, deploy_stack_async, plan_stack, seed_stack
from stackwire.config import ConfigurationError, configure_logging, get_deployment_config
from stackwire.domain.errors import GraphError, OperationCancelledError
from stackwire.domain.reconciliation import CancellationToken

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stackwire.app import DeploymentResult
    from stackwire.domain.graph import ResourceGraph
    from stackwire.domain.reconciliation import ReconciliationReport
    from stackwire.domain.seeding import SeedResult


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision and seed the application stack")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("plan", help="Print the reconciliation order without calling any service")

    deploy = commands.add_parser("deploy", help="Reconcile every resource and seed the tables")
    deploy.add_argument(
        "--provider",
        choices=PROVIDERS,
        default="local",
        help="Service backend to deploy against (default: %(default)s)",
    )
    deploy.add_argument(
        "--max-concurrency",
        type=_positive_int,
        help="Maximum number of resources reconciled at the same time",
    )
    deploy.add_argument("--skip-seed", action="store_true", help="Do not seed the data tables")

    seed = commands.add_parser("seed", help="Seed the companies and jobs tables only")
    seed.add_argument("--provider", choices=PROVIDERS, default="local")
    seed.add_argument("--companies-table", help="Override the companies table name")
    seed.add_argument("--jobs-table", help="Override the jobs table name")

    return parser.parse_args(list(argv))


def _print_plan(graph: ResourceGraph) -> None:
    for position, name in enumerate(graph.topological_order(), start=1):
        spec = graph.spec(name)
        dependencies = ", ".join(graph.dependencies(name)) or "-"
        print(f"{position:>2}. {name} [{spec.kind}] <- {dependencies}")


def _print_report(report: ReconciliationReport) -> None:
    for name, resource in report.resources.items():
        line = f"{resource.status:<12} {name}"
        if name in report.failures:
            line += f": {report.failures[name].cause}"
        elif name in report.skipped:
            line += f" (skipped, upstream {report.skipped[name]} failed)"
        print(line)


def _print_seed(result: SeedResult) -> None:
    print(
        f"Seeded {len(result.companies)} companies and {len(result.jobs)} jobs "
        f"({result.generated} new ids, {result.reused} reused)"
    )


def _print_result(result: DeploymentResult) -> None:
    _print_report(result.report)
    if result.seed is not None:
        _print_seed(result.seed)
    if result.seed_error is not None:
        print(f"Seeding failed: {result.seed_error}")
    for name, value in result.exports.items():
        print(f"{name}: {value}")


def _run_deploy(args: argparse.Namespace) -> DeploymentResult:
    config = get_deployment_config()
    token = CancellationToken()

    async def run() -> DeploymentResult:
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        try:
            return await deploy_stack_async(
                config,
                provider=args.provider,
                max_concurrency=args.max_concurrency,
                cancellation=token,
                seed_tables=not args.skip_seed,
            )
        finally:
            loop.remove_signal_handler(signal.SIGINT)

    return asyncio.run(run())


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    try:
        args = _parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO, force=True)

    try:
        if args.command == "plan":
            _print_plan(plan_stack())
        elif args.command == "deploy":
            result = _run_deploy(args)
            _print_result(result)
            result.raise_for_status()
        else:
            _print_seed(
                seed_stack(
                    provider=args.provider,
                    companies_table=args.companies_table,
                    jobs_table=args.jobs_table,
                )
            )
    except (ConfigurationError, GraphError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except OperationCancelledError as exc:
        if exc.report is not None:
            _print_report(exc.report)
        print("\nCancelled by user (Ctrl+C)", file=sys.stderr)
        sys.exit(1)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
