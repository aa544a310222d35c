"""
Queue worker - pulls pipeline runs from Redis and executes them.
"""

import asyncio
import logging
import redis
import json
from typing import Optional, Dict, Any

from controller.src.config import get_settings
from controller.src.models.pipeline import PipelineVerdict
from controller.src.services.pipeline_runner import execute_pipeline

logger = logging.getLogger(__name__)
settings = get_settings()

PIPELINE_QUEUE = "gatekeeper:jobs"
PIPELINE_STATUS = "gatekeeper:status"
PIPELINE_RESULTS = "gatekeeper:results"

async def get_next_job(client: redis.Redis) -> Optional[Dict[str, Any]]:
    """Pull next job from Redis queue."""
    result = await asyncio.to_thread(client.brpop, PIPELINE_QUEUE, 5)
    if result:
        _, job_data = result
        return json.loads(job_data)
    return None

def publish_status(client: redis.Redis, run_id: str, status: str, verdict: Optional[PipelineVerdict] = None):
    """Publish run status, and the verdict once finalized, for the API."""
    client.hset(PIPELINE_STATUS, run_id, status)
    if verdict is not None:
        client.hset(PIPELINE_RESULTS, run_id, verdict.model_dump_json())

async def handle_job(client: redis.Redis, job: Dict[str, Any]):
    run_id = job.get("run_id", "unknown")
    logger.info(f"Received job for run {run_id}")
    publish_status(client, run_id, "running")
    
    try:
        verdict = await execute_pipeline(job)
    except Exception as e:
        logger.exception(f"Failed to execute pipeline {run_id}: {e}")
        publish_status(client, run_id, "error")
        return
    
    if verdict is None:
        publish_status(client, run_id, "skipped")
    else:
        publish_status(client, run_id, verdict.status.value, verdict)

async def worker_loop():
    """Main worker loop."""
    logger.info("Worker started, waiting for jobs...")
    client = redis.from_url(settings.redis_url, decode_responses=True)
    
    try:
        while True:
            try:
                job = await get_next_job(client)
                if job:
                    await handle_job(client, job)
            except redis.RedisError as e:
                logger.exception(f"Worker error: {e}")
                await asyncio.sleep(5)
    finally:
        client.close()

def run_worker():
    """Entry point for worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down...")
