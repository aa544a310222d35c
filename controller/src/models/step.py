"""
Step execution models.
"""

from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime
from enum import Enum

class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class FailureKind(str, Enum):
    EXIT_CODE = "exit_code"
    LAUNCH = "launch"
    TIMEOUT = "timeout"

class StepConfig(BaseModel):
    name: str
    run: str
    env: Dict[str, str] = {}
    timeout: Optional[int] = None
    image: Optional[str] = None

    class Config:
        frozen = True

class CommandResult(BaseModel):
    exit_code: int
    output: str = ""

class StepOutcome(BaseModel):
    stage: str
    name: str
    order: int
    status: StepStatus
    exit_code: Optional[int] = None
    output: str = ""
    error: Optional[FailureKind] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    class Config:
        frozen = True

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCEEDED
