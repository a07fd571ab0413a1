"""
Repository Service - webhook endpoint to repository configuration.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vcsflow.core.exceptions import RepositoryNotFound, RepositoryRelationshipError
from vcsflow.core.models import Repository

logger = structlog.get_logger()


class RepositoryService:
    """Looks up repositories and hydrates their VCS and project references."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_webhook_endpoint(self, webhook_endpoint_id: str) -> Repository:
        """
        Find the repository bound to a webhook endpoint.

        Raises:
            RepositoryNotFound: If no repository uses the endpoint id
        """
        result = await self.db.execute(
            select(Repository).where(Repository.webhook_endpoint_id == webhook_endpoint_id)
        )
        repository = result.scalar_one_or_none()
        if repository is None:
            raise RepositoryNotFound(f"Endpoint not found: {webhook_endpoint_id}")
        return repository

    async def compose_relationship(self, repository: Repository) -> Repository:
        """
        Load the VCS and project a repository points to.

        Raises:
            RepositoryRelationshipError: If either reference cannot be loaded
        """
        try:
            await self.db.refresh(repository, attribute_names=["vcs", "project"])
        except SQLAlchemyError as e:
            logger.error(
                "repository_relationship_failed",
                repository=repository.name,
                error=str(e),
            )
            raise RepositoryRelationshipError(
                f"Failed to fetch repository relationship: {repository.name}"
            ) from e

        if repository.vcs is None or repository.project is None:
            raise RepositoryRelationshipError(
                f"Failed to fetch repository relationship: {repository.name}"
            )
        return repository
