"""
Pipeline executor - runs one environment's stages and steps.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from controller.src.config import get_settings
from controller.src.errors import EnvironmentTimeout, StepExecutionFailure, StepLaunchError
from controller.src.models.pipeline import Environment, RunResult, RunStatus, Stage, Trigger
from controller.src.models.step import FailureKind, StepConfig, StepOutcome, StepStatus
from controller.src.services.invokers import Invoker, StepContext, scoped_environment

logger = logging.getLogger(__name__)

def _now() -> datetime:
    return datetime.now(timezone.utc)

async def execute_step(
    step: StepConfig,
    context: StepContext,
    invoker: Invoker,
    env: Optional[Dict[str, str]] = None,
) -> StepOutcome:
    """
    Execute a single step exactly once.
    Exit code 0 is success; a non-zero exit, a launch failure or a timeout is a failure.
    """
    step_env = scoped_environment(env, step.env, {
        "GATEKEEPER_STAGE": context.stage,
        "GATEKEEPER_STEP_NAME": step.name,
    })
    started_at = _now()
    exit_code = None
    error = None

    try:
        result = await invoker.invoke(step.run, step_env, context)
        exit_code = result.exit_code
        output = result.output
        if exit_code != 0:
            error = FailureKind.EXIT_CODE
    except StepLaunchError as e:
        output = str(e)
        error = FailureKind.LAUNCH
    except EnvironmentTimeout as e:
        output = e.output or str(e)
        error = FailureKind.TIMEOUT

    return StepOutcome(
        stage=context.stage,
        name=step.name,
        order=context.order,
        status=StepStatus.FAILED if error else StepStatus.SUCCEEDED,
        exit_code=exit_code,
        output=output,
        error=error,
        started_at=started_at,
        finished_at=_now(),
    )

async def run_stage(
    stage: Stage,
    run_id: str,
    environment: Environment,
    invoker: Invoker,
    outcomes: List[StepOutcome],
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
    trigger: Optional[Trigger] = None,
    timeout: Optional[int] = None,
):
    """
    Run a stage's steps strictly in order, appending each outcome to `outcomes`.
    Raises StepExecutionFailure on the first failed step; later steps never run.
    """
    default_timeout = timeout or get_settings().step_timeout

    for step in stage.steps:
        order = len(outcomes)
        logger.info(f"[{environment.id}] Executing step {order}: {stage.name}/{step.name}")

        context = StepContext(
            run_id=run_id,
            environment=environment,
            stage=stage.name,
            step=step,
            order=order,
            cwd=cwd,
            timeout=step.timeout or default_timeout,
            trigger=trigger,
        )
        outcome = await execute_step(step, context, invoker, env)
        outcomes.append(outcome)

        if not outcome.succeeded:
            logger.error(
                f"[{environment.id}] Step {order} ({stage.name}/{step.name}) failed: "
                f"{outcome.error.value}, exit code {outcome.exit_code}"
            )
            raise StepExecutionFailure(outcome)

        logger.info(f"[{environment.id}] Step {order} ({stage.name}/{step.name}) succeeded")

async def run_environment(
    environment: Environment,
    run_id: str,
    trigger: Trigger,
    invoker: Invoker,
    pipeline_env: Optional[Dict[str, str]] = None,
    base_env: Optional[Dict[str, str]] = None,
    timeout: Optional[int] = None,
) -> RunResult:
    """
    Run an environment's stages in declared order, stopping at the first failed stage.
    Returns the finalized RunResult.
    """
    if base_env is None and not getattr(invoker, "inherits_environment", True):
        base_env = {}
    env = scoped_environment(base_env, pipeline_env or {}, environment.env, {
        "CI": "true",
        "GATEKEEPER_RUN_ID": run_id,
        "GATEKEEPER_ENVIRONMENT": environment.id,
        "GATEKEEPER_PLATFORM": environment.platform.value,
        "GATEKEEPER_TOOLCHAIN": environment.toolchain,
        "GATEKEEPER_EVENT": trigger.event.value,
        "GATEKEEPER_BRANCH": trigger.branch,
        "GATEKEEPER_COMMIT_SHA": trigger.commit_sha,
    })
    outcomes: List[StepOutcome] = []

    logger.info(f"[{environment.id}] Starting {len(environment.stages)} stages on {environment.platform.value}")

    try:
        async with invoker.workspace(trigger, environment) as cwd:
            for stage in environment.stages:
                await run_stage(
                    stage,
                    run_id=run_id,
                    environment=environment,
                    invoker=invoker,
                    outcomes=outcomes,
                    env=env,
                    cwd=cwd,
                    trigger=trigger,
                    timeout=timeout,
                )
    except StepExecutionFailure as e:
        logger.error(f"[{environment.id}] Stage '{e.outcome.stage}' failed")
        return RunResult(
            environment=environment.id,
            platform=environment.platform,
            status=RunStatus.FAILED,
            steps=outcomes,
            failed_stage=e.outcome.stage,
            failed_step=e.outcome.name,
        )
    except StepLaunchError as e:
        logger.error(f"[{environment.id}] Could not prepare workspace: {e}")
        return RunResult(
            environment=environment.id,
            platform=environment.platform,
            status=RunStatus.FAILED,
            steps=outcomes,
            error=str(e),
        )

    logger.info(f"[{environment.id}] All stages succeeded")
    return RunResult(
        environment=environment.id,
        platform=environment.platform,
        status=RunStatus.SUCCEEDED,
        steps=outcomes,
    )
