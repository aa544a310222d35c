"""Tests for the one-shot CLI."""

import json
import sys

import yaml

from controller.src.main import main
from controller.src.models.pipeline import EventKind, Trigger
from controller.src.services import status_reporter

def write_pipeline(tmp_path, exit_code: int):
    command = f'"{sys.executable}" -c "import sys; sys.exit({exit_code})"'
    path = tmp_path / "pipeline.yml"
    path.write_text(yaml.safe_dump({
        "name": "local",
        "trigger": {"push": ["main"]},
        "environments": [
            {"id": "first", "platform": "linux", "stages": [
                {"name": "check", "steps": [{"name": "check", "run": command}]}
            ]},
            {"id": "second", "platform": "linux", "stages": [
                {"name": "check", "steps": [{"name": "check", "run": f'"{sys.executable}" -c "pass"'}]}
            ]},
        ],
    }))
    return str(path)

def test_run_succeeds(tmp_path, capsys):
    path = write_pipeline(tmp_path, 0)
    
    assert main(["run", "--file", path, "--backend", "local"]) == 0
    assert "pipeline: succeeded" in capsys.readouterr().out

def test_run_fails_when_any_environment_fails(tmp_path, capsys):
    path = write_pipeline(tmp_path, 4)
    
    assert main(["run", "--file", path, "--backend", "local"]) == 1
    out = capsys.readouterr().out
    assert "first (linux): failed" in out
    assert "second (linux): succeeded" in out
    assert "failed at stage 'check', step 'check'" in out

def test_unwatched_branch_is_skipped(tmp_path, capsys):
    path = write_pipeline(tmp_path, 4)
    
    assert main(["run", "--file", path, "--branch", "develop"]) == 0
    assert "Skipped" in capsys.readouterr().out

def test_missing_definition(tmp_path):
    assert main(["run", "--file", str(tmp_path / "none.yml")]) == 2

def test_report_prints_recorded_diagnostics(db, capsys):
    trigger = Trigger(event=EventKind.PUSH, branch="main", commit_sha="abc")
    status_reporter.create_run("run-7", trigger)
    status_reporter.update_run_status("run-7", "error")
    
    assert main(["report", "run-7"]) == 1
    out = capsys.readouterr().out
    report = json.loads(out[out.index("{"):])
    assert report["run_id"] == "run-7"
    assert report["status"] == "error"
    assert report["environments"] == []

def test_report_unknown_run(db):
    assert main(["report", "missing"]) == 1
