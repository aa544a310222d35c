"""Tests for the environment matrix."""

import pytest

from controller.src.models.pipeline import Environment, EventKind, Platform, Stage, Trigger
from controller.src.models.step import StepConfig
from controller.src.services.matrix import EnvironmentMatrix

def environment(env_id: str, platform: Platform) -> Environment:
    return Environment(
        id=env_id,
        platform=platform,
        stages=[Stage(name="test", steps=[StepConfig(name="test", run="make tests")])],
    )

@pytest.fixture
def matrix():
    return EnvironmentMatrix(
        [environment("linux-default", Platform.LINUX), environment("windows-stable", Platform.WINDOWS)],
        {EventKind.PUSH: ["main"], EventKind.PULL_REQUEST: ["main", "release"]},
    )

def test_matching_trigger_selects_every_environment(matrix):
    selected = matrix.select(Trigger(event=EventKind.PUSH, branch="main"))
    assert [env.id for env in selected] == ["linux-default", "windows-stable"]

@pytest.mark.parametrize("event,branch", [
    (EventKind.PUSH, "develop"),
    (EventKind.PUSH, "release"),
    (EventKind.PUSH, "main-backup"),
    (EventKind.PULL_REQUEST, "Main"),
])
def test_non_matching_trigger_selects_nothing(matrix, event, branch):
    trigger = Trigger(event=event, branch=branch)
    assert not matrix.matches(trigger)
    assert matrix.select(trigger) == []

def test_watch_list_is_per_event(matrix):
    assert matrix.matches(Trigger(event=EventKind.PULL_REQUEST, branch="release"))

def test_event_without_watch_list_never_matches():
    matrix = EnvironmentMatrix([environment("linux", Platform.LINUX)], {"push": ["main"]})
    assert not matrix.matches(Trigger(event=EventKind.PULL_REQUEST, branch="main"))

def test_default_watch_list_is_main():
    matrix = EnvironmentMatrix([environment("linux", Platform.LINUX)])
    assert matrix.matches(Trigger(event=EventKind.PUSH, branch="main"))
    assert matrix.matches(Trigger(event=EventKind.PULL_REQUEST, branch="main"))
    assert not matrix.matches(Trigger(event=EventKind.PUSH, branch="develop"))

def test_duplicate_environment_ids_rejected():
    with pytest.raises(ValueError, match="Duplicate"):
        EnvironmentMatrix([environment("linux", Platform.LINUX), environment("linux", Platform.WINDOWS)])
