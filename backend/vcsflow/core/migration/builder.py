"""
Pipeline Builder
================

Turns resolved targets into an issue create request (one stage per
environment, one schema update task per stage) and submits it.
"""

from typing import Union

import structlog

from vcsflow.core.exceptions import IssueCreateError
from vcsflow.core.migration.classifier import Ignored, MigrationInfo
from vcsflow.core.migration.resolver import DatabaseTarget
from vcsflow.core.models import Issue, IssueType, TaskStatus
from vcsflow.core.schemas import (
    IssueCreate,
    PipelineCreate,
    SchemaUpdateTaskCreate,
    StageCreate,
    VCSPushEvent,
)
from vcsflow.core.store import IssueService

logger = structlog.get_logger()


class PipelineBuilder:
    """
    Builds and persists schema update issues.

    Args:
        issue_service: Persists the issue with its pipeline
        system_bot_id: Principal used as creator and assignee
    """

    def __init__(self, issue_service: IssueService, system_bot_id: int):
        self.issue_service = issue_service
        self.system_bot_id = system_bot_id

    def build(
        self,
        project_id: int,
        migration_info: MigrationInfo,
        targets: list[DatabaseTarget],
        statuses: dict[int, TaskStatus],
        statement: str,
        push_event: VCSPushEvent,
    ) -> IssueCreate:
        """
        Compose the issue create request for one committed file.

        Args:
            project_id: Project owning the databases
            migration_info: Parsed descriptor of the committed file
            targets: One database per environment, in stage order
            statuses: Initial task status by environment id
            statement: Raw file content
            push_event: Provenance copied onto every task
        """
        commit = push_event.file_commit
        stage_list = [
            StageCreate(
                environment_id=target.environment_id,
                name=target.environment_name,
                task_list=[
                    SchemaUpdateTaskCreate(
                        name=migration_info.description,
                        status=statuses[target.environment_id],
                        instance_id=target.instance_id,
                        database_id=target.database_id,
                        statement=statement,
                        migration_type=migration_info.type,
                        schema_version=migration_info.version,
                        push_event=push_event,
                    )
                ],
            )
            for target in targets
        ]
        return IssueCreate(
            project_id=project_id,
            pipeline=PipelineCreate(
                name=f"Pipeline - {commit.title}",
                stage_list=stage_list,
            ),
            name=commit.title,
            type=IssueType.DATABASE_SCHEMA_UPDATE,
            description=commit.message,
            assignee_id=self.system_bot_id,
        )

    async def submit(self, issue_create: IssueCreate, file_path: str) -> Union[Issue, Ignored]:
        """Persist the issue. Nothing is left behind when this fails."""
        try:
            return await self.issue_service.create_issue(issue_create, self.system_bot_id)
        except IssueCreateError as e:
            logger.warning(
                "schema_update_issue_create_failed",
                file=file_path,
                error=e.message,
            )
            return Ignored.recorded("failed to create schema update issue")
