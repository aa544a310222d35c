"""Tests for pipeline parser."""

import pytest
from pathlib import Path

from api.src.services.pipeline_parser import (
    parse_pipeline_config,
    parse_pipeline_dict,
    trigger_matches,
    PipelineConfigError,
)

def test_valid_pipeline():
    config = """
name: ci
trigger:
  push: [main]
  pull_request:
    branches: [main]
environments:
  - id: linux-default
    platform: linux
    stages:
      - name: lint-check
        steps:
          - name: clippy
            run: cargo clippy --all
      - name: test
        steps:
          - name: test
            run: make tests
            env:
              CI: true
  - id: windows-stable
    platform: windows
    toolchain: stable
    stages:
      - name: test
        steps:
          - name: test
            run: cargo test --all
"""
    result = parse_pipeline_config(config)
    assert result["name"] == "ci"
    assert result["trigger"] == {"push": ["main"], "pull_request": ["main"]}
    assert [env["id"] for env in result["environments"]] == ["linux-default", "windows-stable"]
    linux = result["environments"][0]
    assert linux["toolchain"] == "default"
    assert [stage["name"] for stage in linux["stages"]] == ["lint-check", "test"]
    assert linux["stages"][1]["steps"][0]["env"] == {"CI": "true"}
    assert result["environments"][1]["toolchain"] == "stable"

def test_default_trigger_watches_main():
    result = parse_pipeline_dict({
        "environments": [
            {"id": "linux", "platform": "linux", "stages": [
                {"name": "test", "steps": [{"name": "t", "run": "true"}]}
            ]}
        ]
    })
    assert result["name"] == "Unnamed Pipeline"
    assert trigger_matches(result, "push", "main")
    assert trigger_matches(result, "pull_request", "main")
    assert not trigger_matches(result, "push", "develop")

def test_command_list_joined_fail_fast():
    result = parse_pipeline_dict({
        "environments": [
            {"id": "linux", "platform": "linux", "stages": [
                {"name": "build", "steps": [{"name": "b", "run": ["make", "make install"]}]}
            ]}
        ]
    })
    assert result["environments"][0]["stages"][0]["steps"][0]["run"] == "make && make install"

def test_missing_environments():
    config = """
name: Bad Pipeline
"""
    with pytest.raises(PipelineConfigError, match="must have 'environments'"):
        parse_pipeline_config(config)

def test_unknown_platform():
    config = """
environments:
  - id: bsd
    platform: freebsd
    stages:
      - name: test
        steps:
          - name: t
            run: make
"""
    with pytest.raises(PipelineConfigError, match="platform must be one of"):
        parse_pipeline_config(config)

def test_missing_step_run():
    config = """
environments:
  - id: linux
    platform: linux
    stages:
      - name: test
        steps:
          - name: t
"""
    with pytest.raises(PipelineConfigError, match="missing 'run'"):
        parse_pipeline_config(config)

def test_empty_stage():
    config = """
environments:
  - id: linux
    platform: linux
    stages:
      - name: test
        steps: []
"""
    with pytest.raises(PipelineConfigError, match="at least one step"):
        parse_pipeline_config(config)

def test_duplicate_environment_ids():
    stage = {"name": "test", "steps": [{"name": "t", "run": "make"}]}
    config = {
        "environments": [
            {"id": "linux", "platform": "linux", "stages": [stage]},
            {"id": "linux", "platform": "windows", "stages": [stage]},
        ]
    }
    with pytest.raises(PipelineConfigError, match="Duplicate environment ids: linux"):
        parse_pipeline_dict(config)

def test_unknown_trigger_event():
    config = """
trigger:
  tag: [v1]
environments:
  - id: linux
    platform: linux
    stages:
      - name: test
        steps:
          - name: t
            run: make
"""
    with pytest.raises(PipelineConfigError, match="Unknown trigger event 'tag'"):
        parse_pipeline_config(config)

def test_empty_config():
    with pytest.raises(PipelineConfigError, match="Empty"):
        parse_pipeline_config("")

def test_invalid_yaml():
    with pytest.raises(PipelineConfigError, match="Invalid YAML"):
        parse_pipeline_config("environments: [")

def test_repository_pipeline_definition():
    path = Path(__file__).resolve().parents[2] / ".pipeline.yml"
    result = parse_pipeline_config(path.read_text())
    
    linux, windows = result["environments"]
    assert [s["name"] for s in linux["stages"]] == [
        "lint-check", "format-check", "test", "doc-build", "stress-check", "package-size-check",
    ]
    assert [s["name"] for s in windows["stages"]] == ["build-check", "test"]
