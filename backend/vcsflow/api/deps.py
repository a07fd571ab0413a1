"""
VCSFlow - API Dependencies
==========================

Shared dependencies for FastAPI endpoints.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vcsflow.core.database import get_db
from vcsflow.core.vcs import GitLabClient


@lru_cache
def get_gitlab_client() -> GitLabClient:
    """Process wide GitLab client (shared connection pool)."""
    return GitLabClient()


# ==========================================================================
# Type Aliases for Dependency Injection
# ==========================================================================

DbSession = Annotated[AsyncSession, Depends(get_db)]
GitLab = Annotated[GitLabClient, Depends(get_gitlab_client)]
