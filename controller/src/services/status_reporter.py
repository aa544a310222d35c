"""
Report pipeline runs, environment results and step outcomes to database.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker, selectinload

from controller.src.config import get_settings
from controller.src.models.db import Base, PipelineRun, EnvironmentRun, StepRecord
from controller.src.models.pipeline import PipelineVerdict, Trigger

logger = logging.getLogger(__name__)
settings = get_settings()

engine = create_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine)

def init_db():
    """Create tables if they do not exist."""
    Base.metadata.create_all(bind=SessionLocal.kw["bind"])

def create_run(run_id: str, trigger: Trigger, config: Optional[Dict[str, Any]] = None):
    """Record a new pipeline run as running."""
    with SessionLocal() as session:
        session.add(PipelineRun(
            id=run_id,
            event=trigger.event.value,
            branch=trigger.branch,
            commit_sha=trigger.commit_sha,
            repo_full_name=trigger.repo_full_name,
            triggered_by=trigger.triggered_by,
            status="running",
            config=config,
            started_at=datetime.now(timezone.utc),
        ))
        session.commit()
        logger.info(f"Recorded run {run_id}")

def update_run_status(run_id: str, status: str):
    """Update pipeline run status without touching its results."""
    with SessionLocal() as session:
        session.execute(
            update(PipelineRun)
            .where(PipelineRun.id == run_id)
            .values(status=status, finished_at=datetime.now(timezone.utc))
        )
        session.commit()
        logger.info(f"Updated run {run_id} status to {status}")

def record_verdict(verdict: PipelineVerdict):
    """Persist every RunResult of a finalized pipeline run."""
    with SessionLocal() as session:
        for result in verdict.results:
            environment_run = EnvironmentRun(
                run_id=verdict.run_id,
                environment=result.environment,
                platform=result.platform.value,
                status=result.status.value,
                failed_stage=result.failed_stage,
                failed_step=result.failed_step,
                error=result.error,
            )
            session.add(environment_run)
            session.flush()

            for outcome in result.steps:
                session.add(StepRecord(
                    environment_run_id=environment_run.id,
                    stage=outcome.stage,
                    name=outcome.name,
                    step_order=outcome.order,
                    status=outcome.status.value,
                    exit_code=outcome.exit_code,
                    error=outcome.error.value if outcome.error else None,
                    logs=outcome.output,
                    started_at=outcome.started_at,
                    finished_at=outcome.finished_at,
                ))

        session.execute(
            update(PipelineRun)
            .where(PipelineRun.id == verdict.run_id)
            .values(status=verdict.status.value, finished_at=datetime.now(timezone.utc))
        )
        session.commit()
        logger.info(f"Recorded verdict {verdict.status.value} for run {verdict.run_id}")

def get_run_report(run_id: str) -> Optional[Dict[str, Any]]:
    """Get a run with its per-environment and per-step diagnostics."""
    with SessionLocal() as session:
        run = session.query(PipelineRun).options(
            selectinload(PipelineRun.environments).selectinload(EnvironmentRun.steps)
        ).filter(PipelineRun.id == run_id).one_or_none()

        if run is None:
            return None

        return {
            "run_id": run.id,
            "event": run.event,
            "branch": run.branch,
            "commit_sha": run.commit_sha,
            "status": run.status,
            "environments": [
                {
                    "environment": e.environment,
                    "platform": e.platform,
                    "status": e.status,
                    "failed_stage": e.failed_stage,
                    "failed_step": e.failed_step,
                    "error": e.error,
                    "steps": [
                        {
                            "order": s.step_order,
                            "stage": s.stage,
                            "name": s.name,
                            "status": s.status,
                            "exit_code": s.exit_code,
                            "error": s.error,
                            "logs": s.logs,
                        }
                        for s in e.steps
                    ],
                }
                for e in sorted(run.environments, key=lambda e: e.environment)
            ],
        }
