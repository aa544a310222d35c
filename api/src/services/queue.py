"""
Redis queue service for pipeline jobs.
"""

import redis.asyncio as redis
import json
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from api.src.config import get_settings

settings = get_settings()

PIPELINE_QUEUE = "gatekeeper:jobs"
PIPELINE_STATUS = "gatekeeper:status"
PIPELINE_RESULTS = "gatekeeper:results"

async def get_redis_client() -> redis.Redis:
    """Get async Redis client."""
    return redis.from_url(settings.redis_url, decode_responses=True)

async def enqueue_pipeline_run(run_id: str, trigger: Dict[str, Any], config: Dict[str, Any]):
    """Add pipeline run to processing queue."""
    client = await get_redis_client()
    
    job = {
        "run_id": run_id,
        "trigger": trigger,
        "config": config,
        "queued_at": datetime.now(timezone.utc).isoformat(),
    }
    
    try:
        await client.lpush(PIPELINE_QUEUE, json.dumps(job))
        await client.hset(PIPELINE_STATUS, run_id, "queued")
    finally:
        await client.aclose()

async def get_run_status(run_id: str) -> Optional[str]:
    """Get pipeline run status from Redis."""
    client = await get_redis_client()
    
    try:
        return await client.hget(PIPELINE_STATUS, run_id)
    finally:
        await client.aclose()

async def get_run_result(run_id: str) -> Optional[Dict[str, Any]]:
    """Get the finalized verdict of a pipeline run, if any."""
    client = await get_redis_client()
    
    try:
        data = await client.hget(PIPELINE_RESULTS, run_id)
        return json.loads(data) if data else None
    finally:
        await client.aclose()

async def get_queue_length() -> int:
    """Get number of jobs in queue."""
    client = await get_redis_client()
    
    try:
        return await client.llen(PIPELINE_QUEUE)
    finally:
        await client.aclose()
