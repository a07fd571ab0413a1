"""
VCSFlow - Core Package
======================

Configuration, persistence, schemas and the migration pipeline.
"""

from vcsflow.core.config import settings
from vcsflow.core.database import Base, get_db

__all__ = ["Base", "get_db", "settings"]
