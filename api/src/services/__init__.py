from api.src.services.github import (
    verify_signature,
    parse_webhook_payload,
    parse_pull_request_payload,
    fetch_pipeline_config,
)
from api.src.services.pipeline_parser import (
    parse_pipeline_config,
    parse_pipeline_dict,
    trigger_matches,
    PipelineConfigError,
)
from api.src.services.queue import (
    enqueue_pipeline_run,
    get_run_status,
    get_run_result,
    get_queue_length,
)

__all__ = [
    "verify_signature",
    "parse_webhook_payload",
    "parse_pull_request_payload",
    "fetch_pipeline_config",
    "parse_pipeline_config",
    "parse_pipeline_dict",
    "trigger_matches",
    "PipelineConfigError",
    "enqueue_pipeline_run",
    "get_run_status",
    "get_run_result",
    "get_queue_length",
]
