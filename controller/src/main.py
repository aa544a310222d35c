"""
Gatekeeper Controller - Main entry point.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional, Sequence

from controller.src.config import get_settings
from controller.src.errors import PipelineDefinitionError
from controller.src.models.pipeline import EventKind, PipelineVerdict, Trigger
from controller.src.services.definition import load_definition
from controller.src.services.invokers import get_invoker
from controller.src.services.orchestrator import PipelineOrchestrator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gatekeeper", description="Gatekeeper CI controller")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("worker", help="Run the queue worker (default)")

    run = sub.add_parser("run", help="Run a pipeline definition once in-process")
    run.add_argument("--file", default=".pipeline.yml", help="Pipeline definition file")
    run.add_argument("--event", choices=[e.value for e in EventKind], default=EventKind.PUSH.value)
    run.add_argument("--branch", default="main")
    run.add_argument("--commit", default="")
    run.add_argument("--clone-url", default="")
    run.add_argument("--backend", choices=["local", "kubernetes"], default=None)

    report = sub.add_parser("report", help="Show the recorded diagnostics of a finished run")
    report.add_argument("run_id")

    return parser

def print_verdict(verdict: PipelineVerdict):
    for result in verdict.results:
        print(f"{result.environment} ({result.platform.value}): {result.status.value}")
        for outcome in result.steps:
            print(f"  [{outcome.status.value}] {outcome.stage}/{outcome.name}")
        if result.failed_stage:
            failed = result.steps[-1]
            print(f"  failed at stage '{result.failed_stage}', step '{result.failed_step}'")
            if failed.output:
                print(failed.output.rstrip())
        elif result.error:
            print(f"  error: {result.error}")
    print(f"pipeline: {verdict.status.value}")

def run_once(args: argparse.Namespace) -> int:
    settings = get_settings()

    try:
        definition = load_definition(args.file)
    except PipelineDefinitionError as e:
        logger.error(str(e))
        return 2

    trigger = Trigger(
        event=EventKind(args.event),
        branch=args.branch,
        commit_sha=args.commit,
        clone_url=args.clone_url,
        triggered_by="cli",
    )
    orchestrator = PipelineOrchestrator(
        definition,
        invoker=get_invoker(args.backend),
        max_parallel=settings.max_parallel_environments,
        step_timeout=settings.step_timeout,
    )

    verdict = asyncio.run(orchestrator.run(trigger))
    if verdict is None:
        print(f"Skipped: {trigger.event.value} on '{trigger.branch}' is not watched")
        return 0

    print_verdict(verdict)
    return 0 if verdict.allowed_to_proceed else 1

def show_report(args: argparse.Namespace) -> int:
    from controller.src.services import status_reporter

    status_reporter.init_db()
    report = status_reporter.get_run_report(args.run_id)
    if report is None:
        logger.error(f"Run {args.run_id} not found")
        return 1

    print(json.dumps(report, indent=2))
    return 0 if report["status"] == "succeeded" else 1

def start_worker() -> int:
    from controller.src.services import status_reporter
    from controller.src.worker import run_worker

    settings = get_settings()

    logger.info("Starting Gatekeeper Controller")
    logger.info(f"Executor backend: {settings.executor_backend}")
    logger.info(f"Redis URL: {settings.redis_url}")

    if settings.executor_backend == "kubernetes":
        from controller.src.k8s.client import init_k8s_client, ensure_namespace

        if not init_k8s_client():
            logger.error("Failed to initialize Kubernetes client")
            return 1

        try:
            ensure_namespace()
        except Exception as e:
            logger.error(f"Failed to ensure namespace: {e}")
            return 1

    status_reporter.init_db()

    logger.info("Starting worker...")
    run_worker()
    return 0

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "run":
        return run_once(args)
    if args.command == "report":
        return show_report(args)
    return start_worker()

if __name__ == "__main__":
    sys.exit(main())
