"""
VCS provider clients.
"""

from vcsflow.core.vcs.gitlab import GitLabClient

__all__ = ["GitLabClient"]
