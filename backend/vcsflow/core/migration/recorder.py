"""
Outcome Recorder
================

Writes project activities for push outcomes and collects the response
summary of one webhook request.
"""

import structlog

from vcsflow.core.exceptions import ActivityRecordError
from vcsflow.core.models import ActivityLevel, ActivityType, Issue
from vcsflow.core.schemas import (
    ActivityCreate,
    ActivityProjectRepositoryPushPayload,
    VCSPushEvent,
)
from vcsflow.core.store import ActivityService

logger = structlog.get_logger()


class OutcomeRecorder:
    """
    Per request recorder.

    Failing to record an ignored file is logged and tolerated. Failing to
    record a created issue raises ActivityRecordError.
    """

    def __init__(self, activity_service: ActivityService, project_id: int, creator_id: int):
        self.activity_service = activity_service
        self.project_id = project_id
        self.creator_id = creator_id
        self.messages: list[str] = []

    async def record_ignored(self, push_event: VCSPushEvent, reason: str) -> None:
        """Create a WARN activity for a committed file that was dropped."""
        added = push_event.file_commit.added
        logger.warning("committed_file_ignored", file=added, reason=reason)
        try:
            payload = ActivityProjectRepositoryPushPayload(push_event=push_event)
            await self.activity_service.create_activity(
                ActivityCreate(
                    creator_id=self.creator_id,
                    container_id=self.project_id,
                    type=ActivityType.PROJECT_REPOSITORY_PUSH,
                    level=ActivityLevel.WARN,
                    comment=f'Ignored committed file "{added}", {reason}.',
                    payload=payload.model_dump_json(by_alias=True),
                )
            )
        except (ActivityRecordError, ValueError) as e:
            logger.warning("ignored_file_activity_failed", file=added, error=str(e))

    async def record_created(self, push_event: VCSPushEvent, issue: Issue) -> None:
        """
        Note a created issue in the summary and create its INFO activity.

        Raises:
            ActivityRecordError: If the activity cannot be built or persisted
        """
        added = push_event.file_commit.added
        # A failed activity commit expires the issue
        issue_id, issue_name = issue.id, issue.name
        self.messages.append(f'Created issue "{issue_name}" on adding {added}')

        try:
            payload = ActivityProjectRepositoryPushPayload(
                push_event=push_event,
                issue_id=issue_id,
                issue_name=issue_name,
            ).model_dump_json(by_alias=True)
        except ValueError as e:
            raise ActivityRecordError("Failed to construct activity payload") from e

        try:
            await self.activity_service.create_activity(
                ActivityCreate(
                    creator_id=self.creator_id,
                    container_id=self.project_id,
                    type=ActivityType.PROJECT_REPOSITORY_PUSH,
                    level=ActivityLevel.INFO,
                    comment=f'Created issue "{issue_name}".',
                    payload=payload,
                )
            )
        except ActivityRecordError as e:
            raise ActivityRecordError(
                "Failed to create project activity after creating issue "
                f"from repository push event: {issue_id}"
            ) from e

    def summary(self) -> str:
        """Response body: one line per created issue."""
        return "\n".join(self.messages)
