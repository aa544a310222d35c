from controller.src.services.executor import execute_step, run_stage, run_environment
from controller.src.services.invokers import (
    LocalInvoker,
    KubernetesInvoker,
    StepContext,
    get_invoker,
    scoped_environment,
)
from controller.src.services.matrix import EnvironmentMatrix
from controller.src.services.orchestrator import PipelineOrchestrator
from controller.src.services.definition import build_definition, load_definition

__all__ = [
    "execute_step",
    "run_stage",
    "run_environment",
    "LocalInvoker",
    "KubernetesInvoker",
    "StepContext",
    "get_invoker",
    "scoped_environment",
    "EnvironmentMatrix",
    "PipelineOrchestrator",
    "build_definition",
    "load_definition",
]
