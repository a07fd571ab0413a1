"""
VCSFlow Store
=============

Persistence services the push pipeline depends on. Each service wraps an
AsyncSession and commits its own writes.

Components:
- RepositoryService: webhook endpoint lookup, relationship hydration
- DatabaseService: project scoped database lookup by name
- PolicyService: per environment pipeline approval policy
- IssueService: all-or-nothing issue + pipeline creation
- ActivityService: audit records
"""

from vcsflow.core.store.activity import ActivityService
from vcsflow.core.store.database import DatabaseService
from vcsflow.core.store.issue import IssueService
from vcsflow.core.store.policy import PolicyService
from vcsflow.core.store.repository import RepositoryService

__all__ = [
    "ActivityService",
    "DatabaseService",
    "IssueService",
    "PolicyService",
    "RepositoryService",
]
