"""
Pipeline YAML parser and validator.
"""

import yaml
from typing import List, Dict, Any, Optional

EVENT_KINDS = ("push", "pull_request")
PLATFORMS = ("linux", "windows", "macos")
DEFAULT_TRIGGER = {"push": ["main"], "pull_request": ["main"]}

class PipelineConfigError(Exception):
    """Raised when pipeline configuration is invalid."""
    pass

def parse_pipeline_config(yaml_content: str) -> Dict[str, Any]:
    """Parse pipeline YAML configuration from string."""
    try:
        config = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise PipelineConfigError(f"Invalid YAML: {e}")
    
    return validate_config(config)

def parse_pipeline_dict(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate pipeline configuration from dict."""
    return validate_config(config)

def trigger_matches(config: Dict[str, Any], event: str, branch: str) -> bool:
    """Exact branch match against the validated watch-list for an event kind."""
    return branch in config.get("trigger", {}).get(event, [])

def validate_env(env: Any, where: str) -> Dict[str, str]:
    if env is None:
        return {}
    if not isinstance(env, dict):
        raise PipelineConfigError(f"{where} 'env' must be a dictionary")
    # YAML turns `CI: true` into a bool
    return {str(k): str(v).lower() if isinstance(v, bool) else str(v) for k, v in env.items()}

def validate_trigger(trigger: Any) -> Dict[str, List[str]]:
    """Validate the branch watch-list."""
    if trigger is None:
        return {event: list(branches) for event, branches in DEFAULT_TRIGGER.items()}
    
    if not isinstance(trigger, dict):
        raise PipelineConfigError("Pipeline 'trigger' must be a dictionary")
    
    validated = {}
    for event, branches in trigger.items():
        if event not in EVENT_KINDS:
            raise PipelineConfigError(f"Unknown trigger event '{event}'")
        
        if isinstance(branches, dict):
            branches = branches.get("branches", [])
        if isinstance(branches, str):
            branches = [branches]
        if not isinstance(branches, list) or not all(isinstance(b, str) for b in branches):
            raise PipelineConfigError(f"Trigger '{event}' branches must be a list of strings")
        
        validated[event] = branches
    
    return validated

def validate_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate pipeline configuration structure."""
    if not config:
        raise PipelineConfigError("Empty pipeline configuration")
    
    if not isinstance(config, dict):
        raise PipelineConfigError("Pipeline configuration must be a dictionary")
    
    name = config.get("name", "Unnamed Pipeline")
    if not isinstance(name, str):
        raise PipelineConfigError("Pipeline 'name' must be a string")
    
    if "environments" not in config:
        raise PipelineConfigError("Pipeline must have 'environments' defined")
    
    environments = config["environments"]
    if not isinstance(environments, list):
        raise PipelineConfigError("Pipeline 'environments' must be a list")
    
    if len(environments) == 0:
        raise PipelineConfigError("Pipeline must have at least one environment")
    
    validated_environments = [validate_environment(env, i) for i, env in enumerate(environments)]
    
    ids = [env["id"] for env in validated_environments]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise PipelineConfigError(f"Duplicate environment ids: {', '.join(duplicates)}")
    
    return {
        "name": name,
        "trigger": validate_trigger(config.get("trigger")),
        "env": validate_env(config.get("env"), "Pipeline"),
        "environments": validated_environments,
    }

def validate_environment(environment: Dict[str, Any], index: int) -> Dict[str, Any]:
    """Validate a single environment and its stages."""
    if not isinstance(environment, dict):
        raise PipelineConfigError(f"Environment {index} must be a dictionary")
    
    for field in ("id", "platform", "stages"):
        if field not in environment:
            raise PipelineConfigError(f"Environment {index} missing '{field}'")
    
    if not isinstance(environment["id"], str):
        raise PipelineConfigError(f"Environment {index} 'id' must be a string")
    
    env_id = environment["id"]
    
    if environment["platform"] not in PLATFORMS:
        raise PipelineConfigError(
            f"Environment '{env_id}' platform must be one of {', '.join(PLATFORMS)}"
        )
    
    stages = environment["stages"]
    if not isinstance(stages, list) or len(stages) == 0:
        raise PipelineConfigError(f"Environment '{env_id}' must have at least one stage")
    
    validated = {
        "id": env_id,
        "platform": environment["platform"],
        "toolchain": str(environment.get("toolchain", "default")),
        "env": validate_env(environment.get("env"), f"Environment '{env_id}'"),
        "stages": [validate_stage(stage, env_id, i) for i, stage in enumerate(stages)],
    }
    if environment.get("image"):
        validated["image"] = str(environment["image"])
    return validated

def validate_stage(stage: Dict[str, Any], env_id: str, index: int) -> Dict[str, Any]:
    """Validate a single stage."""
    if not isinstance(stage, dict):
        raise PipelineConfigError(f"Environment '{env_id}' stage {index} must be a dictionary")
    
    if "name" not in stage:
        raise PipelineConfigError(f"Environment '{env_id}' stage {index} missing 'name'")
    
    if not isinstance(stage.get("steps"), list) or len(stage["steps"]) == 0:
        raise PipelineConfigError(f"Stage '{stage['name']}' in '{env_id}' must have at least one step")
    
    return {
        "name": str(stage["name"]),
        "steps": [validate_step(step, stage["name"], i) for i, step in enumerate(stage["steps"])],
    }

def validate_step(step: Dict[str, Any], stage_name: str, index: int) -> Dict[str, Any]:
    """Validate a single pipeline step."""
    where = f"Stage '{stage_name}' step {index}"
    
    if not isinstance(step, dict):
        raise PipelineConfigError(f"{where} must be a dictionary")
    
    if "name" not in step:
        raise PipelineConfigError(f"{where} missing 'name'")
    
    if "run" not in step:
        raise PipelineConfigError(f"{where} missing 'run'")
    
    if not isinstance(step["name"], str):
        raise PipelineConfigError(f"{where} 'name' must be a string")
    
    run = step["run"]
    if isinstance(run, list):
        # Multi-line commands run as one fail-fast shell command
        if not all(isinstance(cmd, str) for cmd in run):
            raise PipelineConfigError(f"{where} commands must be strings")
        run = " && ".join(run)
    
    if not isinstance(run, str) or not run.strip():
        raise PipelineConfigError(f"{where} 'run' must be a non-empty string")
    
    timeout = step.get("timeout")
    if timeout is not None and (not isinstance(timeout, int) or timeout <= 0):
        raise PipelineConfigError(f"{where} 'timeout' must be a positive integer")
    
    validated = {
        "name": step["name"],
        "run": run.strip(),
        "env": validate_env(step.get("env"), where),
    }
    if timeout is not None:
        validated["timeout"] = timeout
    if step.get("image"):
        validated["image"] = str(step["image"])
    return validated
