"""
Policy Service - per environment policies.
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vcsflow.core.config import settings
from vcsflow.core.exceptions import PolicyLookupError
from vcsflow.core.models import PipelineApprovalValue, Policy, PolicyType


class PolicyService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_pipeline_approval_policy(self, environment_id: int) -> PipelineApprovalValue:
        """
        Get the pipeline approval value of an environment.

        Environments without a policy row get DEFAULT_PIPELINE_APPROVAL.

        Raises:
            PolicyLookupError: If the query fails or the stored value is unknown
        """
        try:
            result = await self.db.execute(
                select(Policy).where(
                    Policy.environment_id == environment_id,
                    Policy.type == PolicyType.PIPELINE_APPROVAL.value,
                )
            )
            policy = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PolicyLookupError(str(e)) from e

        if policy is None:
            return PipelineApprovalValue(settings.DEFAULT_PIPELINE_APPROVAL)

        value = (policy.payload or {}).get("value")
        try:
            return PipelineApprovalValue(value)
        except ValueError as e:
            raise PolicyLookupError(
                f"invalid pipeline approval value {value!r} for environment {environment_id}"
            ) from e
