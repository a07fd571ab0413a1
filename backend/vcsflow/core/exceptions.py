"""
VCSFlow - Exceptions
====================

Request-level errors abort the whole webhook request and map onto an HTTP
status in the API layer. Per-file errors are caught by the push processor
and turned into ignore outcomes.
"""

from fastapi import status


class VCSFlowError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ==========================================================================
# Request Level
# ==========================================================================

class PushEventRejected(VCSFlowError):
    """Malformed payload, wrong event kind, secret or project mismatch."""

    status_code = status.HTTP_400_BAD_REQUEST


class RepositoryNotFound(VCSFlowError):
    """No repository is configured for the webhook endpoint id."""

    status_code = status.HTTP_404_NOT_FOUND


class RepositoryRelationshipError(VCSFlowError):
    """Repository references (VCS, project) could not be loaded."""


class ActivityRecordError(VCSFlowError):
    """The activity for an already created issue could not be recorded."""


# ==========================================================================
# Per File
# ==========================================================================

class MigrationParseError(VCSFlowError):
    """Committed file path does not describe a migration."""


class VCSFetchError(VCSFlowError):
    """Raw file content could not be read from the VCS provider."""


class DatabaseLookupError(VCSFlowError):
    """Querying the project's databases failed."""


class PolicyLookupError(VCSFlowError):
    """Pipeline approval policy could not be read for an environment."""


class IssueCreateError(VCSFlowError):
    """Issue, pipeline, stages and tasks could not be persisted."""
