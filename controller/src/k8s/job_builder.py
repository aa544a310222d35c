"""
Kubernetes Job builder for pipeline steps.
"""

from kubernetes import client
from typing import Dict, Optional
import hashlib

from controller.src.config import get_settings
from controller.src.models.pipeline import Platform

settings = get_settings()

SHELLS = {
    Platform.LINUX: ["/bin/sh", "-c"],
    Platform.WINDOWS: ["cmd", "/c"],
}

def _safe(value: str, limit: int) -> str:
    safe = value.lower().replace(" ", "-").replace("_", "-")
    safe = "".join(c for c in safe if c.isalnum() or c == "-")
    return safe[:limit].strip("-")

def build_job_name(run_id: str, environment_id: str, step_order: int, step_name: str) -> str:
    """Generate a unique job name."""
    # K8s names must be lowercase, alphanumeric, max 63 chars
    run_hash = hashlib.md5(f"{run_id}/{environment_id}".encode()).hexdigest()[:8]
    
    return f"gk-{run_hash}-{step_order}-{_safe(step_name, 20)}"

def build_job(
    run_id: str,
    environment_id: str,
    platform: Platform,
    step_order: int,
    step_name: str,
    image: str,
    script: str,
    env_vars: Optional[Dict[str, str]] = None,
    timeout: int = 1800,
) -> client.V1Job:
    """
    Build a Kubernetes Job for a pipeline step, pinned to nodes of the given platform.
    """
    job_name = build_job_name(run_id, environment_id, step_order, step_name)
    labels = {
        "app": "gatekeeper",
        "run-id": _safe(run_id, 63),
        "environment": _safe(environment_id, 63),
        "step-order": str(step_order),
    }
    
    variables = {
        "GATEKEEPER_RUN_ID": run_id,
        "GATEKEEPER_ENVIRONMENT": environment_id,
        "GATEKEEPER_STEP_ORDER": str(step_order),
        "GATEKEEPER_STEP_NAME": step_name,
    }
    variables.update(env_vars or {})
    env = [client.V1EnvVar(name=key, value=value) for key, value in variables.items()]
    
    container = client.V1Container(
        name="step",
        image=image,
        command=SHELLS.get(platform, SHELLS[Platform.LINUX]),
        args=[script],
        env=env,
    )
    
    pod_spec = client.V1PodSpec(
        containers=[container],
        restart_policy="Never",
        node_selector={"kubernetes.io/os": platform.value},
    )
    
    template = client.V1PodTemplateSpec(
        metadata=client.V1ObjectMeta(labels=labels),
        spec=pod_spec,
    )
    
    job_spec = client.V1JobSpec(
        template=template,
        backoff_limit=0,  # Don't retry failed steps
        active_deadline_seconds=timeout,
        ttl_seconds_after_finished=settings.job_ttl_after_finished,
    )
    
    return client.V1Job(
        api_version="batch/v1",
        kind="Job",
        metadata=client.V1ObjectMeta(
            name=job_name,
            namespace=settings.k8s_namespace,
            labels=labels,
        ),
        spec=job_spec,
    )

def get_job_status(job: client.V1Job) -> str:
    """
    Determine job status from Kubernetes Job object.
    Returns: 'pending', 'running', 'succeeded', 'failed'
    """
    if job.status is None:
        return "pending"
    
    if job.status.succeeded and job.status.succeeded > 0:
        return "succeeded"
    
    if job.status.failed and job.status.failed > 0:
        return "failed"
    
    if job.status.active and job.status.active > 0:
        return "running"
    
    return "pending"
