"""
VCSFlow - Pydantic Schemas
==========================

Inbound webhook payloads, the push-event provenance recorded on tasks and
activities, and the create requests handed to the store services.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vcsflow.core.models import (
    ActivityLevel,
    ActivityType,
    IssueType,
    MigrationType,
    TaskStatus,
    TaskType,
    VCSType,
)


# ==========================================================================
# Base Schemas
# ==========================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class PayloadSchema(BaseModel):
    """Schema serialized into JSON payload columns (camelCase keys)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ==========================================================================
# GitLab Webhook
# ==========================================================================

WEBHOOK_PUSH = "push"


class WebhookCommitAuthor(BaseSchema):
    name: str = ""
    email: str = ""


class WebhookCommit(BaseSchema):
    """A commit entry of a GitLab push event."""

    id: str
    title: str = ""
    message: str = ""
    timestamp: str = ""
    url: str = ""
    author: WebhookCommitAuthor = Field(default_factory=WebhookCommitAuthor)
    added_list: list[str] = Field(default_factory=list, alias="added")
    modified_list: list[str] = Field(default_factory=list, alias="modified")
    removed_list: list[str] = Field(default_factory=list, alias="removed")


class WebhookProject(BaseSchema):
    id: int
    web_url: str = ""
    full_path: str = Field("", alias="path_with_namespace")


class WebhookPushEvent(BaseSchema):
    """GitLab push hook body."""

    object_kind: str
    ref: str = ""
    author_name: str = Field("", alias="user_name")
    project: WebhookProject
    commit_list: list[WebhookCommit] = Field(default_factory=list, alias="commits")


# ==========================================================================
# Push Event Provenance
# ==========================================================================

class VCSFileCommit(PayloadSchema):
    """The commit that added one file."""

    id: str
    title: str
    message: str
    created_ts: int
    url: str
    author_name: str
    added: str


class VCSPushEvent(PayloadSchema):
    """Provider-neutral detail of the push that triggered a task or activity."""

    vcs_type: VCSType
    base_directory: str
    ref: str
    repository_id: str
    repository_url: str
    repository_full_path: str
    author_name: str
    file_commit: VCSFileCommit


class ActivityProjectRepositoryPushPayload(PayloadSchema):
    push_event: VCSPushEvent
    issue_id: Optional[int] = None
    issue_name: Optional[str] = None


# ==========================================================================
# Pipeline Creation
# ==========================================================================

class TaskCreateBase(BaseSchema):
    """Fields shared by every task kind."""

    name: str
    status: TaskStatus
    instance_id: int
    database_id: Optional[int] = None

    def payload(self) -> dict:
        """Kind-specific data stored on the task row."""
        return {}


class GeneralTaskCreate(TaskCreateBase):
    type: Literal[TaskType.GENERAL] = TaskType.GENERAL
    statement: str = ""

    def payload(self) -> dict:
        return {"statement": self.statement}


class SchemaUpdateTaskCreate(TaskCreateBase):
    """Apply one committed migration file to one database."""

    type: Literal[TaskType.DATABASE_SCHEMA_UPDATE] = TaskType.DATABASE_SCHEMA_UPDATE
    statement: str
    migration_type: MigrationType = MigrationType.MIGRATE
    schema_version: str = ""
    push_event: VCSPushEvent

    def payload(self) -> dict:
        return {
            "statement": self.statement,
            "migrationType": self.migration_type.value,
            "schemaVersion": self.schema_version,
            "pushEvent": self.push_event.model_dump(mode="json", by_alias=True),
        }


TaskCreate = Annotated[
    Union[GeneralTaskCreate, SchemaUpdateTaskCreate],
    Field(discriminator="type"),
]


class StageCreate(BaseSchema):
    environment_id: int
    name: str
    task_list: list[TaskCreate]


class PipelineCreate(BaseSchema):
    name: str
    stage_list: list[StageCreate]


class IssueCreate(BaseSchema):
    project_id: int
    pipeline: PipelineCreate
    name: str
    type: IssueType
    description: str = ""
    assignee_id: int
    payload: dict = Field(default_factory=dict)


class ActivityCreate(BaseSchema):
    creator_id: int
    container_id: int
    type: ActivityType
    level: ActivityLevel
    comment: str = ""
    payload: str = ""


# ==========================================================================
# Responses
# ==========================================================================

class ErrorResponse(BaseSchema):
    """Standard error response."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None


class HealthResponse(BaseSchema):
    """Health check response."""

    status: str
    version: str
    environment: str
    database: str
