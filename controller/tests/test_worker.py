"""Tests for the queue worker and pipeline runner."""

import asyncio
import json

import pytest

from controller.src import worker
from controller.src.models.pipeline import RunStatus
from controller.src.services import status_reporter
from controller.src.services.pipeline_runner import execute_pipeline

CONFIG = {
    "name": "ci",
    "trigger": {"push": ["main"]},
    "environments": [
        {"id": "linux-default", "platform": "linux", "stages": [
            {"name": "test", "steps": [{"name": "test", "run": "make tests"}]}
        ]},
        {"id": "windows-stable", "platform": "windows", "toolchain": "stable", "stages": [
            {"name": "test", "steps": [{"name": "test", "run": "cargo test --all"}]}
        ]},
    ],
}

def job(branch="main", run_id="run-1"):
    return {
        "run_id": run_id,
        "trigger": {"event": "push", "branch": branch, "commit_sha": "abc", "repo_name": "repo"},
        "config": CONFIG,
    }

class FakeRedis:
    def __init__(self, queued=None):
        self.hashes = {}
        self.queued = list(queued or [])

    def hset(self, name, key, value):
        self.hashes.setdefault(name, {})[key] = value

    def brpop(self, key, timeout):
        if self.queued:
            return key, json.dumps(self.queued.pop())
        return None

def test_execute_pipeline_records_verdict(db, make_invoker):
    invoker = make_invoker({("windows-stable", "test", "test"): 1})
    
    verdict = asyncio.run(execute_pipeline(job(), invoker=invoker))
    
    assert verdict.status == RunStatus.FAILED
    report = status_reporter.get_run_report("run-1")
    assert report["status"] == "failed"
    assert {e["environment"]: e["status"] for e in report["environments"]} == {
        "linux-default": "succeeded",
        "windows-stable": "failed",
    }

def test_execute_pipeline_skips_unwatched_branch(db, make_invoker):
    invoker = make_invoker()
    
    assert asyncio.run(execute_pipeline(job(branch="develop"), invoker=invoker)) is None
    assert invoker.calls == []
    assert status_reporter.get_run_report("run-1") is None

def test_execute_pipeline_marks_run_as_error_when_recording_fails(monkeypatch, db, make_invoker):
    def broken_record(verdict):
        raise RuntimeError("disk full")
    
    monkeypatch.setattr(status_reporter, "record_verdict", broken_record)
    
    with pytest.raises(RuntimeError, match="disk full"):
        asyncio.run(execute_pipeline(job(), invoker=make_invoker()))
    
    assert status_reporter.get_run_report("run-1")["status"] == "error"

def test_handle_job_publishes_verdict(monkeypatch, db, make_invoker):
    invoker = make_invoker()
    
    async def fake_execute(job_data):
        return await execute_pipeline(job_data, invoker=invoker)
    
    monkeypatch.setattr(worker, "execute_pipeline", fake_execute)
    client = FakeRedis()
    
    asyncio.run(worker.handle_job(client, job()))
    
    assert client.hashes[worker.PIPELINE_STATUS]["run-1"] == "succeeded"
    result = json.loads(client.hashes[worker.PIPELINE_RESULTS]["run-1"])
    assert [r["environment"] for r in result["results"]] == ["linux-default", "windows-stable"]

def test_handle_job_marks_skipped(monkeypatch):
    async def fake_execute(job_data):
        return None
    
    monkeypatch.setattr(worker, "execute_pipeline", fake_execute)
    client = FakeRedis()
    
    asyncio.run(worker.handle_job(client, job(branch="develop")))
    
    assert client.hashes[worker.PIPELINE_STATUS]["run-1"] == "skipped"
    assert worker.PIPELINE_RESULTS not in client.hashes

def test_handle_job_survives_errors(monkeypatch):
    async def fake_execute(job_data):
        raise RuntimeError("database unavailable")
    
    monkeypatch.setattr(worker, "execute_pipeline", fake_execute)
    client = FakeRedis()
    
    asyncio.run(worker.handle_job(client, job()))
    
    assert client.hashes[worker.PIPELINE_STATUS]["run-1"] == "error"

def test_get_next_job():
    client = FakeRedis(queued=[job(run_id="run-9")])
    
    assert asyncio.run(worker.get_next_job(client))["run_id"] == "run-9"
    assert asyncio.run(worker.get_next_job(client)) is None
