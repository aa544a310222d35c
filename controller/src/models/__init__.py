from controller.src.models.step import (
    StepStatus,
    FailureKind,
    StepConfig,
    CommandResult,
    StepOutcome,
)
from controller.src.models.pipeline import (
    EventKind,
    Platform,
    RunStatus,
    OrchestratorState,
    EnvironmentState,
    DEFAULT_WATCH,
    Trigger,
    Stage,
    Environment,
    PipelineDefinition,
    RunResult,
    PipelineVerdict,
    aggregate_status,
)

__all__ = [
    "StepStatus",
    "FailureKind",
    "StepConfig",
    "CommandResult",
    "StepOutcome",
    "EventKind",
    "Platform",
    "RunStatus",
    "OrchestratorState",
    "EnvironmentState",
    "DEFAULT_WATCH",
    "Trigger",
    "Stage",
    "Environment",
    "PipelineDefinition",
    "RunResult",
    "PipelineVerdict",
    "aggregate_status",
]
