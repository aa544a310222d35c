"""
Pipeline orchestrator - drives every selected environment to completion and
aggregates their RunResults into one verdict.
"""

import asyncio
import logging
import uuid
from typing import Dict, Optional

from controller.src.errors import TriggerMismatch
from controller.src.models.pipeline import (
    Environment,
    EnvironmentState,
    OrchestratorState,
    PipelineDefinition,
    PipelineVerdict,
    RunResult,
    RunStatus,
    Trigger,
    aggregate_status,
)
from controller.src.services.executor import run_environment
from controller.src.services.invokers import Invoker
from controller.src.services.matrix import EnvironmentMatrix

logger = logging.getLogger(__name__)

class PipelineOrchestrator:
    """
    Idle -> Triggered -> Running -> Finalized.

    A trigger outside the watch-list goes straight back to Idle without
    starting any environment. Environments run concurrently and never affect
    each other; each writes its RunResult exactly once into its own slot.
    """

    def __init__(
        self,
        definition: PipelineDefinition,
        invoker: Invoker,
        max_parallel: int = 0,
        step_timeout: Optional[int] = None,
    ):
        self.definition = definition
        self.matrix = EnvironmentMatrix.from_definition(definition)
        self.invoker = invoker
        self.max_parallel = max_parallel
        self.step_timeout = step_timeout

        self.state = OrchestratorState.IDLE
        self.environment_states: Dict[str, EnvironmentState] = {}
        self.results: Dict[str, Optional[RunResult]] = {}

    def accept(self, trigger: Trigger):
        """Validate a trigger against the watch-list. Raises TriggerMismatch."""
        self.state = OrchestratorState.TRIGGERED
        self.environment_states = {}
        self.results = {}
        if not self.matrix.matches(trigger):
            self.state = OrchestratorState.IDLE
            raise TriggerMismatch(trigger.event.value, trigger.branch)

    async def run(self, trigger: Trigger, run_id: Optional[str] = None) -> Optional[PipelineVerdict]:
        """
        Run the pipeline for a trigger.
        Returns the verdict, or None when the trigger is not watched.
        """
        try:
            self.accept(trigger)
        except TriggerMismatch as e:
            logger.info(f"Pipeline skipped: {e}")
            return None

        run_id = run_id or str(uuid.uuid4())
        environments = self.matrix.select(trigger)

        self.environment_states = {env.id: EnvironmentState.PENDING for env in environments}
        self.results = {env.id: None for env in environments}
        self.state = OrchestratorState.RUNNING

        logger.info(
            f"Pipeline run {run_id} started for {trigger.event.value} on '{trigger.branch}' "
            f"across {len(environments)} environments"
        )

        semaphore = asyncio.Semaphore(self.max_parallel) if self.max_parallel > 0 else None

        async def drive(environment: Environment):
            if semaphore is None:
                await self._run_environment(environment, run_id, trigger)
                return
            async with semaphore:
                await self._run_environment(environment, run_id, trigger)

        await asyncio.gather(*(drive(env) for env in environments))

        ordered = [self.results[env.id] for env in environments]
        status = aggregate_status(ordered)
        self.state = OrchestratorState.FINALIZED

        logger.info(f"Pipeline run {run_id} finished with status: {status.value}")
        return PipelineVerdict(run_id=run_id, trigger=trigger, status=status, results=ordered)

    async def _run_environment(self, environment: Environment, run_id: str, trigger: Trigger):
        self.environment_states[environment.id] = EnvironmentState.EXECUTING
        try:
            result = await run_environment(
                environment,
                run_id=run_id,
                trigger=trigger,
                invoker=self.invoker,
                pipeline_env=self.definition.env,
                timeout=self.step_timeout,
            )
        except Exception as e:
            logger.exception(f"[{environment.id}] Environment run crashed")
            result = RunResult(
                environment=environment.id,
                platform=environment.platform,
                status=RunStatus.FAILED,
                error=str(e) or type(e).__name__,
            )

        self.results[environment.id] = result
        self.environment_states[environment.id] = EnvironmentState.COMPLETED
