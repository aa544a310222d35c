"""
Run a queued pipeline job end to end and record its verdict.
"""

import logging
from typing import Any, Dict, Optional

from controller.src.config import get_settings
from controller.src.errors import PipelineDefinitionError
from controller.src.models.pipeline import PipelineVerdict, Trigger
from controller.src.services.definition import build_definition
from controller.src.services.invokers import Invoker, get_invoker
from controller.src.services.orchestrator import PipelineOrchestrator
from controller.src.services import status_reporter

logger = logging.getLogger(__name__)

async def execute_pipeline(job_data: Dict[str, Any], invoker: Optional[Invoker] = None) -> Optional[PipelineVerdict]:
    """
    Execute a pipeline run.
    Returns the verdict, or None if the trigger was not watched.
    """
    settings = get_settings()
    run_id = job_data["run_id"]
    trigger = Trigger(**job_data["trigger"])

    try:
        definition = build_definition(job_data["config"])
    except PipelineDefinitionError as e:
        logger.error(f"Run {run_id} has an invalid pipeline definition: {e}")
        raise

    orchestrator = PipelineOrchestrator(
        definition,
        invoker=invoker or get_invoker(),
        max_parallel=settings.max_parallel_environments,
        step_timeout=settings.step_timeout,
    )

    if not orchestrator.matrix.matches(trigger):
        logger.info(f"Run {run_id} skipped: {trigger.event.value} on '{trigger.branch}' is not watched")
        return None

    status_reporter.create_run(run_id, trigger, config=job_data["config"])
    try:
        verdict = await orchestrator.run(trigger, run_id=run_id)
        status_reporter.record_verdict(verdict)
    except Exception:
        logger.error(f"Run {run_id} errored before its verdict was recorded")
        status_reporter.update_run_status(run_id, "error")
        raise
    return verdict
