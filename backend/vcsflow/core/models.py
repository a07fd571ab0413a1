"""
VCSFlow - Database Models
=========================

SQLAlchemy models for all entities.

Projects own databases; databases live on instances; instances belong to
environments. A repository links a project to a VCS project and carries the
webhook configuration. Issues own a pipeline of stages and tasks, and every
push outcome is recorded as a project activity.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vcsflow.core.database import Base


# ==========================================================================
# Enums
# ==========================================================================

class VCSType(str, enum.Enum):
    """Supported version control hosting providers."""
    GITLAB_SELF_HOST = "GITLAB_SELF_HOST"


class TaskStatus(str, enum.Enum):
    """Task lifecycle status."""
    PENDING = "PENDING"                      # Runnable by the scheduler
    PENDING_APPROVAL = "PENDING_APPROVAL"    # Waiting for manual approval
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


class TaskType(str, enum.Enum):
    """Kind of work a task performs."""
    GENERAL = "bb.task.general"
    DATABASE_SCHEMA_UPDATE = "bb.task.database.schema.update"


class IssueType(str, enum.Enum):
    """Kind of issue."""
    GENERAL = "bb.issue.general"
    DATABASE_CREATE = "bb.issue.database.create"
    DATABASE_SCHEMA_UPDATE = "bb.issue.database.schema.update"


class IssueStatus(str, enum.Enum):
    OPEN = "OPEN"
    DONE = "DONE"
    CANCELED = "CANCELED"


class PipelineStatus(str, enum.Enum):
    OPEN = "OPEN"
    DONE = "DONE"
    CANCELED = "CANCELED"


class ActivityLevel(str, enum.Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class ActivityType(str, enum.Enum):
    PROJECT_REPOSITORY_PUSH = "bb.project.repository.push"


class PolicyType(str, enum.Enum):
    PIPELINE_APPROVAL = "bb.policy.pipeline-approval"


class PipelineApprovalValue(str, enum.Enum):
    """Pipeline approval policy values."""
    MANUAL_NEVER = "MANUAL_APPROVAL_NEVER"     # Tasks run without approval
    MANUAL_ALWAYS = "MANUAL_APPROVAL_ALWAYS"   # Tasks wait for approval


class MigrationType(str, enum.Enum):
    """Migration marker parsed from the committed file path."""
    MIGRATE = "MIGRATE"
    BASELINE = "BASELINE"


# ==========================================================================
# Mixins
# ==========================================================================

class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ==========================================================================
# Inventory
# ==========================================================================

class Project(Base, TimestampMixin):
    """Project owning databases and (at most) one repository."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(String(32), nullable=False)

    databases: Mapped[list["Database"]] = relationship(back_populates="project")

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class Environment(Base, TimestampMixin):
    """Deployment environment (dev, staging, prod...)."""

    __tablename__ = "environments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Environment {self.name}>"


class Instance(Base, TimestampMixin):
    """Database server instance, pinned to one environment."""

    __tablename__ = "instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    environment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("environments.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    engine: Mapped[str] = mapped_column(String(32), default="MYSQL", nullable=False)
    host: Mapped[str] = mapped_column(String(255), default="localhost", nullable=False)

    environment: Mapped["Environment"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Instance {self.name}>"


class Database(Base, TimestampMixin):
    """
    A database on an instance, owned by a project.

    Names may repeat across environments within a project.
    """

    __tablename__ = "databases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )
    instance_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("instances.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    project: Mapped["Project"] = relationship(back_populates="databases")
    instance: Mapped["Instance"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Database {self.name}>"


# ==========================================================================
# Version Control
# ==========================================================================

class VCS(Base, TimestampMixin):
    """A version control hosting provider installation."""

    __tablename__ = "vcs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[VCSType] = mapped_column(
        Enum(VCSType),
        default=VCSType.GITLAB_SELF_HOST,
        nullable=False,
    )
    instance_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    api_url: Mapped[str] = mapped_column(String(2000), nullable=False)

    def __repr__(self) -> str:
        return f"<VCS {self.name}>"


class Repository(Base, TimestampMixin):
    """
    Link between a project and a VCS project.

    The webhook endpoint id maps to exactly one repository.
    """

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vcs_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("vcs.id"),
        nullable=False,
    )
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
        unique=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_path: Mapped[str] = mapped_column(String(2000), default="", nullable=False)
    web_url: Mapped[str] = mapped_column(String(2000), default="", nullable=False)

    # Push behaviour
    branch_filter: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    base_directory: Mapped[str] = mapped_column(String(1000), default="", nullable=False)
    file_path_template: Mapped[str] = mapped_column(String(1000), nullable=False)
    schema_path_template: Mapped[str] = mapped_column(String(1000), default="", nullable=False)

    # Provider binding
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    webhook_endpoint_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    webhook_secret_token: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    # Loaded by RepositoryService.compose_relationship
    vcs: Mapped[Optional["VCS"]] = relationship()
    project: Mapped[Optional["Project"]] = relationship()

    def __repr__(self) -> str:
        return f"<Repository {self.name}>"


# ==========================================================================
# Policy
# ==========================================================================

class Policy(Base, TimestampMixin):
    """Per-environment policy; payload shape depends on type."""

    __tablename__ = "policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    environment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("environments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<Policy {self.type} env={self.environment_id}>"


# ==========================================================================
# Issue / Pipeline
# ==========================================================================

class Pipeline(Base, TimestampMixin):
    """Ordered collection of stages."""

    __tablename__ = "pipelines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    creator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[PipelineStatus] = mapped_column(
        Enum(PipelineStatus),
        default=PipelineStatus.OPEN,
        nullable=False,
    )

    stages: Mapped[list["Stage"]] = relationship(
        back_populates="pipeline",
        order_by="Stage.position",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Pipeline {self.name}>"


class Stage(Base, TimestampMixin):
    """One environment's phase of a pipeline."""

    __tablename__ = "stages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pipeline_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    environment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("environments.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    pipeline: Mapped["Pipeline"] = relationship(back_populates="stages")
    tasks: Mapped[list["Task"]] = relationship(
        back_populates="stage",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Stage {self.name}>"


class Task(Base, TimestampMixin):
    """
    Unit of pending work inside a stage.

    Kind-specific data (statement, migration type, push event provenance
    for schema updates) lives in payload.
    """

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pipeline_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stage_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("stages.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    instance_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("instances.id"),
        nullable=False,
    )
    database_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("databases.id"),
        nullable=True,
    )
    creator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[TaskStatus] = mapped_column(Enum(TaskStatus), nullable=False)
    type: Mapped[TaskType] = mapped_column(Enum(TaskType), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    pipeline: Mapped["Pipeline"] = relationship()
    stage: Mapped[Optional["Stage"]] = relationship(back_populates="tasks")

    def __repr__(self) -> str:
        return f"<Task {self.name} {self.status.value}>"


class Issue(Base, TimestampMixin):
    """Top-level tracked record owning exactly one pipeline."""

    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )
    pipeline_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("pipelines.id"),
        nullable=False,
        unique=True,
    )
    creator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    assignee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[IssueStatus] = mapped_column(
        Enum(IssueStatus),
        default=IssueStatus.OPEN,
        nullable=False,
    )
    type: Mapped[IssueType] = mapped_column(Enum(IssueType), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    pipeline: Mapped["Pipeline"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<Issue {self.name[:50]}>"


# ==========================================================================
# Activity
# ==========================================================================

class Activity(Base, TimestampMixin):
    """Immutable audit entry attached to a container (here: a project)."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    container_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    creator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[ActivityType] = mapped_column(Enum(ActivityType), nullable=False)
    level: Mapped[ActivityLevel] = mapped_column(Enum(ActivityLevel), nullable=False)
    comment: Mapped[str] = mapped_column(Text, default="", nullable=False)
    payload: Mapped[str] = mapped_column(Text, default="", nullable=False)

    def __repr__(self) -> str:
        return f"<Activity {self.level.value} {self.comment[:50]}>"
