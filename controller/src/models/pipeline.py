"""
Pipeline definition and run result models.
"""

from pydantic import BaseModel
from typing import List, Dict, Optional, Iterable
from enum import Enum

from controller.src.models.step import StepConfig, StepOutcome

class EventKind(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"

class Platform(str, Enum):
    LINUX = "linux"
    WINDOWS = "windows"
    MACOS = "macos"

class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class OrchestratorState(str, Enum):
    IDLE = "idle"
    TRIGGERED = "triggered"
    RUNNING = "running"
    FINALIZED = "finalized"

class EnvironmentState(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"

DEFAULT_WATCH = {
    EventKind.PUSH: ["main"],
    EventKind.PULL_REQUEST: ["main"],
}

class Trigger(BaseModel):
    event: EventKind
    branch: str
    commit_sha: str = ""
    repo_full_name: str = ""
    clone_url: str = ""
    triggered_by: str = ""

    class Config:
        frozen = True

class Stage(BaseModel):
    name: str
    steps: List[StepConfig]

    class Config:
        frozen = True

class Environment(BaseModel):
    id: str
    platform: Platform
    toolchain: str = "default"
    image: Optional[str] = None
    env: Dict[str, str] = {}
    stages: List[Stage]

    class Config:
        frozen = True

class PipelineDefinition(BaseModel):
    name: str = "Unnamed Pipeline"
    watch: Dict[EventKind, List[str]] = DEFAULT_WATCH
    env: Dict[str, str] = {}
    environments: List[Environment]

    class Config:
        frozen = True

class RunResult(BaseModel):
    environment: str
    platform: Platform
    status: RunStatus
    steps: List[StepOutcome] = []
    failed_stage: Optional[str] = None
    failed_step: Optional[str] = None
    error: Optional[str] = None

    class Config:
        frozen = True

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

def aggregate_status(results: Iterable[RunResult]) -> RunStatus:
    """Succeeded only if every environment succeeded."""
    results = list(results)
    if results and all(r.succeeded for r in results):
        return RunStatus.SUCCEEDED
    return RunStatus.FAILED

class PipelineVerdict(BaseModel):
    run_id: str
    trigger: Trigger
    status: RunStatus
    results: List[RunResult]

    class Config:
        frozen = True

    @property
    def allowed_to_proceed(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

    def result_for(self, environment_id: str) -> Optional[RunResult]:
        for result in self.results:
            if result.environment == environment_id:
                return result
        return None
