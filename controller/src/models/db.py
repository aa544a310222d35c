"""
Database models for run diagnostics.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import uuid

Base = declarative_base()

def _uuid() -> str:
    return str(uuid.uuid4())

class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id = Column(String(36), primary_key=True, default=_uuid)
    event = Column(String(50), nullable=False)
    branch = Column(String(255), nullable=False)
    commit_sha = Column(String(40), default="")
    repo_full_name = Column(String(255), default="")
    status = Column(String(50), default="pending")
    triggered_by = Column(String(255))
    config = Column(JSON)
    started_at = Column(DateTime)
    finished_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    environments = relationship("EnvironmentRun", back_populates="run")

class EnvironmentRun(Base):
    __tablename__ = "environment_runs"

    id = Column(String(36), primary_key=True, default=_uuid)
    run_id = Column(String(36), ForeignKey("pipeline_runs.id", ondelete="CASCADE"))
    environment = Column(String(255), nullable=False)
    platform = Column(String(50), nullable=False)
    status = Column(String(50), default="pending")
    failed_stage = Column(String(255))
    failed_step = Column(String(255))
    error = Column(Text)
    created_at = Column(DateTime, server_default=func.now())

    run = relationship("PipelineRun", back_populates="environments")
    steps = relationship("StepRecord", back_populates="environment_run", order_by="StepRecord.step_order")

class StepRecord(Base):
    __tablename__ = "step_records"

    id = Column(String(36), primary_key=True, default=_uuid)
    environment_run_id = Column(String(36), ForeignKey("environment_runs.id", ondelete="CASCADE"))
    stage = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    step_order = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False)
    exit_code = Column(Integer)
    error = Column(String(50))
    logs = Column(Text)
    started_at = Column(DateTime)
    finished_at = Column(DateTime)

    environment_run = relationship("EnvironmentRun", back_populates="steps")
