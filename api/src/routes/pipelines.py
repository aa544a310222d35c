from fastapi import APIRouter, HTTPException

from api.src.models.run import ManualTriggerRequest, RunStatusResponse, VerdictResponse
from api.src.routes.webhooks import queue_triggered_run
from api.src.services.pipeline_parser import parse_pipeline_config, parse_pipeline_dict, PipelineConfigError
from api.src.services.queue import get_run_status, get_run_result

router = APIRouter(prefix="/pipelines", tags=["pipelines"])

@router.post("/trigger")
async def trigger_run(request: ManualTriggerRequest):
    """Queue a run with an inline pipeline definition."""
    try:
        if isinstance(request.pipeline, str):
            config = parse_pipeline_config(request.pipeline)
        else:
            config = parse_pipeline_dict(request.pipeline)
    except PipelineConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    
    webhook_data = request.model_dump(exclude={"pipeline"})
    webhook_data["event"] = request.event.value
    return await queue_triggered_run(webhook_data, config)

@router.get("/runs/{run_id}", response_model=RunStatusResponse)
async def get_run(run_id: str):
    """Get status and, once finalized, per-environment results of a run."""
    status = await get_run_status(run_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Pipeline run not found")
    
    return RunStatusResponse(run_id=run_id, status=status, verdict=await get_run_result(run_id))

@router.get("/runs/{run_id}/verdict", response_model=VerdictResponse)
async def get_run_verdict(run_id: str):
    """Boolean gate for branch protection: may the change proceed?"""
    status = await get_run_status(run_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Pipeline run not found")
    
    result = await get_run_result(run_id)
    failed = []
    if result:
        failed = [r["environment"] for r in result.get("results", []) if r.get("status") != "succeeded"]
    
    return VerdictResponse(
        run_id=run_id,
        status=status,
        finalized=result is not None,
        allowed_to_proceed=status == "succeeded",
        failed_environments=failed,
    )
