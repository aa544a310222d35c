"""
GitHub service for webhook validation and pipeline config retrieval.
"""

import hmac
import hashlib
import logging
from typing import Optional, Dict, Any

import httpx

from api.src.config import get_settings
from api.src.services.pipeline_parser import parse_pipeline_config

logger = logging.getLogger(__name__)
settings = get_settings()

PULL_REQUEST_ACTIONS = ("opened", "synchronize", "reopened")

def verify_signature(payload: bytes, signature: str) -> bool:
    """Verify GitHub webhook signature."""
    if not settings.github_webhook_secret:
        # Skip verification if no secret configured (development)
        return True
    
    expected = "sha256=" + hmac.new(
        settings.github_webhook_secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected, signature or "")

def _branch_from_ref(ref: str) -> str:
    # refs/heads/main -> main
    return ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref

def parse_webhook_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Extract relevant info from a GitHub push payload."""
    repo = payload.get("repository", {})
    head_commit = payload.get("head_commit") or {}
    
    return {
        "event": "push",
        "repo_name": repo.get("name", ""),
        "repo_full_name": repo.get("full_name", ""),
        "clone_url": repo.get("clone_url", ""),
        "commit_sha": head_commit.get("id", payload.get("after", "")),
        "branch": _branch_from_ref(payload.get("ref", "")),
        "commit_message": head_commit.get("message", ""),
        "triggered_by": payload.get("pusher", {}).get("name", ""),
    }

def parse_pull_request_payload(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Extract relevant info from a GitHub pull_request payload.
    The target branch is the PR base. Returns None for actions that don't change code.
    """
    if payload.get("action") not in PULL_REQUEST_ACTIONS:
        return None
    
    repo = payload.get("repository", {})
    pull_request = payload.get("pull_request", {})
    head = pull_request.get("head", {})
    base = pull_request.get("base", {})
    head_repo = head.get("repo") or {}
    
    return {
        "event": "pull_request",
        "repo_name": repo.get("name", ""),
        "repo_full_name": repo.get("full_name", ""),
        "clone_url": head_repo.get("clone_url", repo.get("clone_url", "")),
        "commit_sha": head.get("sha", ""),
        "branch": base.get("ref", ""),
        "commit_message": pull_request.get("title", ""),
        "triggered_by": pull_request.get("user", {}).get("login", ""),
    }

async def fetch_pipeline_config(repo_full_name: str, ref: str) -> Optional[Dict[str, Any]]:
    """
    Fetch and validate the pipeline definition from the repository at `ref`.
    Returns the validated config or None if no definition exists.
    """
    headers = {"Accept": "application/vnd.github.raw+json"}
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    
    async with httpx.AsyncClient(base_url=settings.github_api_url, headers=headers, timeout=30) as client:
        for path in settings.pipeline_config_paths:
            response = await client.get(
                f"/repos/{repo_full_name}/contents/{path}",
                params={"ref": ref} if ref else None,
            )
            if response.status_code == 404:
                continue
            response.raise_for_status()
            logger.info(f"Found pipeline definition {path} in {repo_full_name}")
            return parse_pipeline_config(response.text)
    
    return None
