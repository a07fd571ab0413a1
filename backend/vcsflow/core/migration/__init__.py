"""
VCSFlow Migration Pipeline
==========================

Turns a GitLab push event into schema update issues.

Components:
- EventValidator: authenticates the hook against the repository config
- MigrationFileClassifier: committed path -> MigrationInfo or Ignored
- DatabaseResolver: MigrationInfo -> one database per environment
- ApprovalPolicyResolver: environment -> initial task status
- PipelineBuilder: targets -> issue with one stage per environment
- OutcomeRecorder: project activities and response summary
- PushEventProcessor: drives the above per committed file
"""

from vcsflow.core.migration.builder import PipelineBuilder
from vcsflow.core.migration.classifier import (
    IgnoreKind,
    Ignored,
    MigrationFileClassifier,
    MigrationInfo,
    parse_migration_info,
)
from vcsflow.core.migration.policy import ApprovalPolicyResolver, initial_task_status
from vcsflow.core.migration.processor import PushEventProcessor
from vcsflow.core.migration.recorder import OutcomeRecorder
from vcsflow.core.migration.resolver import DatabaseResolver, DatabaseTarget
from vcsflow.core.migration.template import PathTemplate
from vcsflow.core.migration.validator import EventValidator, parse_push_event

__all__ = [
    "ApprovalPolicyResolver",
    "DatabaseResolver",
    "DatabaseTarget",
    "EventValidator",
    "IgnoreKind",
    "Ignored",
    "MigrationFileClassifier",
    "MigrationInfo",
    "OutcomeRecorder",
    "PathTemplate",
    "PipelineBuilder",
    "PushEventProcessor",
    "initial_task_status",
    "parse_migration_info",
    "parse_push_event",
]
