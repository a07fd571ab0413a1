"""
Activity Service - audit trail.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vcsflow.core.exceptions import ActivityRecordError
from vcsflow.core.models import Activity
from vcsflow.core.schemas import ActivityCreate


class ActivityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_activity(self, activity_create: ActivityCreate) -> Activity:
        """
        Persist an activity.

        Raises:
            ActivityRecordError: If the row cannot be committed
        """
        activity = Activity(
            creator_id=activity_create.creator_id,
            container_id=activity_create.container_id,
            type=activity_create.type,
            level=activity_create.level,
            comment=activity_create.comment,
            payload=activity_create.payload,
        )
        try:
            self.db.add(activity)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ActivityRecordError(f"failed to create activity: {e}") from e
        return activity
