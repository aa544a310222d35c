"""
Collect logs and exit codes from Kubernetes step pods.
"""

import asyncio
import logging
from typing import Optional
from kubernetes.client.rest import ApiException

from controller.src.k8s.client import get_core_api
from controller.src.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

def _get_job_pod(job_name: str):
    core_v1 = get_core_api()
    
    try:
        pods = core_v1.list_namespaced_pod(
            namespace=settings.k8s_namespace,
            label_selector=f"job-name={job_name}",
        )
        
        if pods.items:
            return pods.items[0]
        return None
    except ApiException as e:
        logger.error(f"Failed to get pod for job {job_name}: {e}")
        return None

async def get_job_pod_name(job_name: str) -> Optional[str]:
    """Get the pod name for a job."""
    pod = await asyncio.to_thread(_get_job_pod, job_name)
    return pod.metadata.name if pod else None

async def get_job_exit_code(job_name: str) -> Optional[int]:
    """Exit code of the job's step container, None if it never terminated."""
    pod = await asyncio.to_thread(_get_job_pod, job_name)
    if pod is None or pod.status is None:
        return None
    
    for status in pod.status.container_statuses or []:
        if status.name == "step" and status.state and status.state.terminated:
            return status.state.terminated.exit_code
    return None

async def collect_logs(job_name: str) -> str:
    """Collect logs from a job's pod."""
    core_v1 = get_core_api()
    
    pod_name = await get_job_pod_name(job_name)
    if not pod_name:
        return "No pod found for job"
    
    try:
        return await asyncio.to_thread(
            core_v1.read_namespaced_pod_log,
            name=pod_name,
            namespace=settings.k8s_namespace,
            tail_lines=settings.log_tail_lines,
        )
    except ApiException as e:
        if e.status == 400:
            # Pod never started
            return "Pod did not start"
        logger.error(f"Failed to collect logs for {pod_name}: {e}")
        return f"Error collecting logs: {e.reason}"
