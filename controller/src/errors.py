"""
Error taxonomy for pipeline execution.
"""

from typing import Optional

class GatekeeperError(Exception):
    """Base class for controller errors."""
    pass

class PipelineDefinitionError(GatekeeperError):
    """Raised when a pipeline definition cannot be turned into environments."""
    pass

class TriggerMismatch(GatekeeperError):
    """Raised when an event does not match the watch-list. Not a failure."""
    
    def __init__(self, event: str, branch: str):
        super().__init__(f"{event} on '{branch}' is not watched")
        self.event = event
        self.branch = branch

class StepLaunchError(GatekeeperError):
    """Raised when a step's process could not be started."""
    pass

class EnvironmentTimeout(GatekeeperError):
    """Raised when a step exceeds its wall-clock bound."""
    
    def __init__(self, command: str, timeout: float, output: str = ""):
        super().__init__(f"Command timed out after {timeout}s: {command}")
        self.command = command
        self.timeout = timeout
        self.output = output

class StepExecutionFailure(GatekeeperError):
    """A step finished with a failed outcome."""
    
    def __init__(self, outcome, message: Optional[str] = None):
        super().__init__(message or f"Step '{outcome.name}' failed in stage '{outcome.stage}'")
        self.outcome = outcome
