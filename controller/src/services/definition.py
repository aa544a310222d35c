"""
Build PipelineDefinition models from pipeline YAML or validated dicts.
"""

import yaml
from pydantic import ValidationError
from typing import Any, Dict, List

from controller.src.errors import PipelineDefinitionError
from controller.src.models.pipeline import DEFAULT_WATCH, PipelineDefinition

def _normalize_watch(trigger: Any) -> Dict[str, List[str]]:
    if trigger is None:
        return {event.value: list(branches) for event, branches in DEFAULT_WATCH.items()}
    
    if not isinstance(trigger, dict):
        raise PipelineDefinitionError("'trigger' must map event kinds to branch lists")
    
    watch = {}
    for event, branches in trigger.items():
        # Accept both `push: [main]` and `push: {branches: [main]}`
        if isinstance(branches, dict):
            branches = branches.get("branches", [])
        if isinstance(branches, str):
            branches = [branches]
        watch[event] = list(branches or [])
    return watch

def _normalize_env(env: Any) -> Any:
    # YAML turns `CI: true` into a bool
    if not isinstance(env, dict):
        return env
    return {str(k): str(v).lower() if isinstance(v, bool) else str(v) for k, v in env.items()}

def _normalize_environments(environments: Any) -> Any:
    if not isinstance(environments, list):
        return environments
    
    normalized = []
    for environment in environments:
        if isinstance(environment, dict):
            environment = dict(environment, env=_normalize_env(environment.get("env") or {}))
            if isinstance(environment.get("stages"), list):
                stages = []
                for stage in environment["stages"]:
                    if isinstance(stage, dict) and isinstance(stage.get("steps"), list):
                        stage = dict(stage, steps=[
                            dict(step, env=_normalize_env(step.get("env") or {})) if isinstance(step, dict) else step
                            for step in stage["steps"]
                        ])
                    stages.append(stage)
                environment["stages"] = stages
        normalized.append(environment)
    return normalized

def build_definition(config: Dict[str, Any]) -> PipelineDefinition:
    """Turn a pipeline config dict into an immutable PipelineDefinition."""
    if not config or not isinstance(config, dict):
        raise PipelineDefinitionError("Empty pipeline configuration")
    
    try:
        definition = PipelineDefinition(
            name=config.get("name", "Unnamed Pipeline"),
            watch=_normalize_watch(config.get("trigger")),
            env=_normalize_env(config.get("env") or {}),
            environments=_normalize_environments(config.get("environments") or []),
        )
    except ValidationError as e:
        raise PipelineDefinitionError(f"Invalid pipeline definition: {e}")
    
    if not definition.environments:
        raise PipelineDefinitionError("Pipeline must declare at least one environment")
    return definition

def load_definition(path: str) -> PipelineDefinition:
    """Read a pipeline definition from a YAML file."""
    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise PipelineDefinitionError(f"Cannot read {path}: {e}")
    except yaml.YAMLError as e:
        raise PipelineDefinitionError(f"Invalid YAML: {e}")
    
    return build_definition(config)
