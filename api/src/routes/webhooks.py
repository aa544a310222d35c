"""
GitHub webhook endpoints.
"""

from fastapi import APIRouter, Request, HTTPException, Header
from typing import Optional, Dict, Any
import httpx
import logging
import uuid

from api.src.services.github import (
    verify_signature,
    parse_webhook_payload,
    parse_pull_request_payload,
    fetch_pipeline_config,
)
from api.src.services.pipeline_parser import PipelineConfigError, trigger_matches
from api.src.services.queue import enqueue_pipeline_run

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

async def queue_triggered_run(webhook_data: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
    """Enqueue a run if the trigger is on the watch-list."""
    event = webhook_data["event"]
    branch = webhook_data["branch"]
    
    if not trigger_matches(config, event, branch):
        logger.info(f"Ignoring {event} on '{branch}': branch not watched")
        return {"status": "skipped", "reason": f"Branch '{branch}' not watched for {event}"}
    
    run_id = str(uuid.uuid4())
    await enqueue_pipeline_run(run_id=run_id, trigger=webhook_data, config=config)
    
    logger.info(f"Pipeline run {run_id} queued for {event} on '{branch}'")
    
    return {
        "status": "queued",
        "run_id": run_id,
        "environments": [env["id"] for env in config["environments"]],
    }

async def process_event(webhook_data: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch the repository's pipeline definition and queue a run."""
    if not webhook_data["commit_sha"]:
        logger.warning("No commit SHA in webhook payload")
        return {"status": "skipped", "reason": "No commit SHA"}
    
    try:
        config = await fetch_pipeline_config(
            webhook_data["repo_full_name"],
            webhook_data["commit_sha"],
        )
    except PipelineConfigError as e:
        logger.error(f"Invalid pipeline config: {e}")
        return {"status": "error", "reason": str(e)}
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch pipeline config: {e}")
        return {"status": "error", "reason": str(e)}
    
    if not config:
        logger.info(f"No pipeline config found in {webhook_data['repo_full_name']}")
        return {"status": "skipped", "reason": "No pipeline configuration found"}
    
    return await queue_triggered_run(webhook_data, config)

@router.post("/github")
async def github_webhook(
    request: Request,
    x_hub_signature_256: Optional[str] = Header(None),
    x_github_event: Optional[str] = Header(None),
):
    """
    Receive GitHub webhook events.
    """
    # Get raw body for signature verification
    body = await request.body()
    
    if not verify_signature(body, x_hub_signature_256):
        raise HTTPException(status_code=401, detail="Invalid signature")
    
    try:
        payload = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    
    if x_github_event == "ping":
        return {"status": "pong", "message": "Webhook configured successfully"}
    
    if x_github_event == "push":
        return await process_event(parse_webhook_payload(payload))
    
    if x_github_event == "pull_request":
        webhook_data = parse_pull_request_payload(payload)
        if webhook_data is None:
            return {"status": "ignored", "reason": f"Action '{payload.get('action')}' not handled"}
        return await process_event(webhook_data)
    
    return {
        "status": "ignored",
        "event": x_github_event,
        "message": f"Event type '{x_github_event}' not handled"
    }
