from api.src.models.run import (
    EventKind,
    ManualTriggerRequest,
    RunStatusResponse,
    VerdictResponse,
)

__all__ = [
    "EventKind",
    "ManualTriggerRequest",
    "RunStatusResponse",
    "VerdictResponse",
]
