"""Shared fixtures for controller tests."""

from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from controller.src.models.step import CommandResult
from controller.src.services import status_reporter
from controller.src.services.definition import load_definition

PIPELINE_FILE = Path(__file__).resolve().parents[2] / ".pipeline.yml"

class ScriptedInvoker:
    """
    Invoker that records calls instead of running commands.

    `script` maps (environment id, stage, step name) to an exit code or an
    exception instance to raise; anything unlisted exits 0.
    """

    def __init__(self, script=None, workspace_error=None):
        self.script = script or {}
        self.workspace_error = workspace_error
        self.calls = []
        self.envs = []

    @asynccontextmanager
    async def workspace(self, trigger, environment):
        if self.workspace_error is not None:
            raise self.workspace_error
        yield None

    async def invoke(self, command, env, context):
        key = (context.environment.id, context.stage, context.step.name)
        self.calls.append(key)
        self.envs.append(env)

        action = self.script.get(key, 0)
        if isinstance(action, BaseException):
            raise action
        return CommandResult(exit_code=action, output=f"ran {command}")

    def calls_for(self, environment_id):
        return [(stage, step) for env, stage, step in self.calls if env == environment_id]

@pytest.fixture
def definition():
    return load_definition(str(PIPELINE_FILE))

@pytest.fixture
def invoker():
    return ScriptedInvoker()

@pytest.fixture
def db(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(status_reporter, "SessionLocal", sessionmaker(bind=engine))
    status_reporter.init_db()
    return engine

@pytest.fixture
def make_invoker():
    return ScriptedInvoker
