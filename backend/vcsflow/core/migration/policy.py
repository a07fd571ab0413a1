"""
Approval Policy Resolver
========================

Decides the initial status of each stage's task from the environment's
pipeline approval policy.
"""

from typing import Union

import structlog

from vcsflow.core.exceptions import PolicyLookupError
from vcsflow.core.migration.classifier import Ignored
from vcsflow.core.migration.resolver import DatabaseTarget
from vcsflow.core.models import PipelineApprovalValue, TaskStatus
from vcsflow.core.store import PolicyService

logger = structlog.get_logger()

# environment id -> approval value, scoped to one file
ApprovalCache = dict[int, PipelineApprovalValue]


def initial_task_status(value: PipelineApprovalValue) -> TaskStatus:
    """MANUAL_APPROVAL_NEVER runs right away, anything else waits for approval."""
    if value == PipelineApprovalValue.MANUAL_NEVER:
        return TaskStatus.PENDING
    return TaskStatus.PENDING_APPROVAL


class ApprovalPolicyResolver:
    def __init__(self, policy_service: PolicyService):
        self.policy_service = policy_service

    async def resolve(
        self,
        targets: list[DatabaseTarget],
        cache: ApprovalCache,
    ) -> Union[dict[int, TaskStatus], Ignored]:
        """
        Map each target's environment id to an initial task status.

        Each environment is looked up at most once per ``cache``. The caller
        owns the cache and decides its lifetime. One failed lookup drops the
        whole file.
        """
        for target in targets:
            if target.environment_id in cache:
                continue
            try:
                cache[target.environment_id] = await self.policy_service.get_pipeline_approval_policy(
                    target.environment_id
                )
            except PolicyLookupError as e:
                logger.warning(
                    "pipeline_approval_policy_lookup_failed",
                    environment_id=target.environment_id,
                    error=e.message,
                )
                return Ignored.recorded(
                    f"failed to find pipeline approval policy for environment {target.environment_id}"
                )

        return {
            target.environment_id: initial_task_status(cache[target.environment_id])
            for target in targets
        }
