"""
Environment matrix - declared environments plus the branch watch-list.
"""

import logging
from typing import Dict, List, Optional

from controller.src.models.pipeline import DEFAULT_WATCH, Environment, EventKind, PipelineDefinition, Trigger

logger = logging.getLogger(__name__)

class EnvironmentMatrix:
    """Selects which environments run for a trigger."""

    def __init__(self, environments: List[Environment], watch: Optional[Dict[EventKind, List[str]]] = None):
        ids = [environment.id for environment in environments]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate environment ids: {ids}")

        self.environments = tuple(environments)
        self.watch = {EventKind(event): tuple(branches) for event, branches in (watch or DEFAULT_WATCH).items()}

    @classmethod
    def from_definition(cls, definition: PipelineDefinition) -> "EnvironmentMatrix":
        return cls(definition.environments, definition.watch)

    def matches(self, trigger: Trigger) -> bool:
        """Exact branch match against the watch-list for the trigger's event kind."""
        return trigger.branch in self.watch.get(trigger.event, ())

    def select(self, trigger: Trigger) -> List[Environment]:
        """Every declared environment runs on a matching trigger, none otherwise."""
        if not self.matches(trigger):
            logger.info(f"Ignoring {trigger.event.value} on '{trigger.branch}': branch not watched")
            return []
        return list(self.environments)
