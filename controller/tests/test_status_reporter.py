"""Tests for run persistence."""

from datetime import datetime, timezone

from controller.src.models.pipeline import EventKind, Platform, PipelineVerdict, RunResult, RunStatus, Trigger
from controller.src.models.step import FailureKind, StepOutcome, StepStatus
from controller.src.services import status_reporter

TRIGGER = Trigger(event=EventKind.PUSH, branch="main", commit_sha="abc123", repo_full_name="user/repo")

def outcome(stage, name, order, status=StepStatus.SUCCEEDED, exit_code=0, output="", error=None):
    now = datetime.now(timezone.utc)
    return StepOutcome(
        stage=stage,
        name=name,
        order=order,
        status=status,
        exit_code=exit_code,
        output=output,
        error=error,
        started_at=now,
        finished_at=now,
    )

def test_failed_step_diagnostics_survive_the_run(db):
    status_reporter.create_run("run-1", TRIGGER, config={"name": "ci"})
    verdict = PipelineVerdict(
        run_id="run-1",
        trigger=TRIGGER,
        status=RunStatus.FAILED,
        results=[
            RunResult(
                environment="linux-default",
                platform=Platform.LINUX,
                status=RunStatus.SUCCEEDED,
                steps=[outcome("lint-check", "clippy", 0)],
            ),
            RunResult(
                environment="windows-stable",
                platform=Platform.WINDOWS,
                status=RunStatus.FAILED,
                steps=[
                    outcome("build-check", "check", 0),
                    outcome("test", "test", 1, StepStatus.FAILED, 101, "thread 'main' panicked", FailureKind.EXIT_CODE),
                ],
                failed_stage="test",
                failed_step="test",
            ),
        ],
    )
    
    status_reporter.record_verdict(verdict)
    report = status_reporter.get_run_report("run-1")
    
    assert report["status"] == "failed"
    assert report["commit_sha"] == "abc123"
    linux, windows = report["environments"]
    assert linux["status"] == "succeeded"
    assert windows["failed_stage"] == "test"
    assert [s["name"] for s in windows["steps"]] == ["check", "test"]
    failed = windows["steps"][1]
    assert failed["exit_code"] == 101
    assert failed["error"] == "exit_code"
    assert "panicked" in failed["logs"]

def test_update_run_status(db):
    status_reporter.create_run("run-2", TRIGGER)
    assert status_reporter.get_run_report("run-2")["status"] == "running"
    
    status_reporter.update_run_status("run-2", "error")
    assert status_reporter.get_run_report("run-2")["status"] == "error"

def test_unknown_run(db):
    assert status_reporter.get_run_report("missing") is None
