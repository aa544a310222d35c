from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Union
from enum import Enum

class EventKind(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"

class ManualTriggerRequest(BaseModel):
    event: EventKind = EventKind.PUSH
    branch: str = "main"
    commit_sha: str = ""
    repo_full_name: str = ""
    clone_url: str = ""
    triggered_by: str = "manual"
    pipeline: Union[str, Dict[str, Any]]

class RunStatusResponse(BaseModel):
    run_id: str
    status: str
    verdict: Optional[Dict[str, Any]] = None

class VerdictResponse(BaseModel):
    run_id: str
    status: str
    finalized: bool
    allowed_to_proceed: bool
    failed_environments: List[str] = []
