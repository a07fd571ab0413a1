"""
Issue Service - persists an issue together with its pipeline.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vcsflow.core.exceptions import IssueCreateError
from vcsflow.core.models import Issue, Pipeline, Stage, Task
from vcsflow.core.schemas import IssueCreate

logger = structlog.get_logger()


class IssueService:
    """
    Creates issues.

    The issue, its pipeline, stages and tasks are committed in one
    transaction: either all rows exist afterwards or none do.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_issue(self, issue_create: IssueCreate, creator_id: int) -> Issue:
        """
        Create an issue from a create request.

        Args:
            issue_create: Issue and pipeline definition
            creator_id: Principal recorded as creator of every row

        Returns:
            The persisted Issue

        Raises:
            IssueCreateError: If any row fails to persist
        """
        pipeline = Pipeline(
            creator_id=creator_id,
            name=issue_create.pipeline.name,
        )
        for position, stage_create in enumerate(issue_create.pipeline.stage_list):
            stage = Stage(
                environment_id=stage_create.environment_id,
                name=stage_create.name,
                position=position,
            )
            for task_create in stage_create.task_list:
                stage.tasks.append(
                    Task(
                        pipeline=pipeline,
                        instance_id=task_create.instance_id,
                        database_id=task_create.database_id,
                        creator_id=creator_id,
                        name=task_create.name,
                        status=task_create.status,
                        type=task_create.type,
                        payload=task_create.payload(),
                    )
                )
            pipeline.stages.append(stage)

        issue = Issue(
            project_id=issue_create.project_id,
            pipeline=pipeline,
            creator_id=creator_id,
            assignee_id=issue_create.assignee_id,
            name=issue_create.name,
            type=issue_create.type,
            description=issue_create.description,
            payload=issue_create.payload,
        )

        try:
            self.db.add(issue)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise IssueCreateError(f"failed to create issue {issue_create.name!r}: {e}") from e

        logger.info(
            "issue_created",
            issue_id=issue.id,
            project_id=issue.project_id,
            stages=len(issue_create.pipeline.stage_list),
        )
        return issue
