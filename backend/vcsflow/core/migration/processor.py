"""
Push Event Processor
====================

Walks every file added by every commit of a validated push event, in
payload order, and creates one schema update issue per file that resolves
to at least one database.

Each file is processed on its own: a failure drops that file (silently or
with a WARN activity) and processing continues with the next one. The only
exception is a created issue whose activity cannot be recorded, which
aborts the request.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

from vcsflow.core.exceptions import VCSFetchError
from vcsflow.core.migration.builder import PipelineBuilder
from vcsflow.core.migration.classifier import (
    IgnoreKind,
    Ignored,
    MigrationFileClassifier,
)
from vcsflow.core.migration.policy import ApprovalCache, ApprovalPolicyResolver
from vcsflow.core.migration.recorder import OutcomeRecorder
from vcsflow.core.migration.resolver import DatabaseResolver
from vcsflow.core.models import Repository, VCSType
from vcsflow.core.schemas import (
    VCSFileCommit,
    VCSPushEvent,
    WebhookCommit,
    WebhookPushEvent,
)
from vcsflow.core.vcs import GitLabClient

logger = structlog.get_logger()

_RFC3339_RE = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})[Tt ]"
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.\d+)?"
    r"(?P<offset>[Zz]|[+-](?P<oh>\d{2}):(?P<om>\d{2}))"
)


def parse_commit_timestamp(timestamp: str) -> int:
    """
    Parse an RFC3339 commit timestamp into a unix timestamp.

    Fractional seconds are dropped.

    Raises:
        ValueError: If the timestamp is not RFC3339
    """
    m = _RFC3339_RE.fullmatch(timestamp)
    if m is None:
        raise ValueError(f"timestamp {timestamp!r} is not RFC3339")

    if m.group("offset") in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if m.group("offset")[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(m.group("oh")), minutes=int(m.group("om"))))

    parsed = datetime(
        int(m.group("year")),
        int(m.group("month")),
        int(m.group("day")),
        int(m.group("hour")),
        int(m.group("minute")),
        int(m.group("second")),
        tzinfo=tz,
    )
    return int(parsed.timestamp())


@dataclass(frozen=True)
class RepositoryConfig:
    """
    Repository fields read while processing a push, copied once per request.

    A failed store write rolls the session back and expires loaded ORM
    objects; per file work reads only this copy.
    """
    project_id: int
    vcs_type: VCSType
    instance_url: str
    base_directory: str
    file_path_template: str
    schema_path_template: str
    external_id: str
    access_token: str

    @classmethod
    def from_repository(cls, repository: Repository) -> "RepositoryConfig":
        return cls(
            project_id=repository.project_id,
            vcs_type=repository.vcs.type,
            instance_url=repository.vcs.instance_url,
            base_directory=repository.base_directory,
            file_path_template=repository.file_path_template,
            schema_path_template=repository.schema_path_template,
            external_id=repository.external_id,
            access_token=repository.access_token,
        )


class PushEventProcessor:
    """
    Creates migration issues for one validated push event.

    Args:
        repository: Repository with its VCS relationship loaded
        gitlab_client: Reads committed file content
        database_resolver: Resolves descriptor to databases
        policy_resolver: Maps environments to initial task statuses
        builder: Builds and submits issues
        recorder: Records outcomes and collects the response summary
    """

    def __init__(
        self,
        repository: Repository,
        gitlab_client: GitLabClient,
        database_resolver: DatabaseResolver,
        policy_resolver: ApprovalPolicyResolver,
        builder: PipelineBuilder,
        recorder: OutcomeRecorder,
    ):
        self.repository = RepositoryConfig.from_repository(repository)
        self.gitlab_client = gitlab_client
        self.database_resolver = database_resolver
        self.policy_resolver = policy_resolver
        self.builder = builder
        self.recorder = recorder
        self.classifier = MigrationFileClassifier(
            base_directory=repository.base_directory,
            file_path_template=repository.file_path_template,
            schema_path_template=repository.schema_path_template,
        )

    async def process(self, push_event: WebhookPushEvent) -> str:
        """
        Process every added file of every commit.

        Returns:
            Newline-joined "Created issue ..." lines, empty if none

        Raises:
            ActivityRecordError: If a created issue cannot be recorded
        """
        for commit in push_event.commit_list:
            for added in commit.added_list:
                await self._process_file(push_event, commit, added)
        return self.recorder.summary()

    def _build_vcs_push_event(
        self,
        push_event: WebhookPushEvent,
        commit: WebhookCommit,
        added: str,
    ) -> VCSPushEvent:
        try:
            created_ts = parse_commit_timestamp(commit.timestamp)
        except ValueError as e:
            logger.warning(
                "commit_timestamp_invalid",
                file=added,
                timestamp=commit.timestamp,
                error=str(e),
            )
            created_ts = 0

        return VCSPushEvent(
            vcs_type=self.repository.vcs_type,
            base_directory=self.repository.base_directory,
            ref=push_event.ref,
            repository_id=str(push_event.project.id),
            repository_url=push_event.project.web_url,
            repository_full_path=push_event.project.full_path,
            author_name=push_event.author_name,
            file_commit=VCSFileCommit(
                id=commit.id,
                title=commit.title,
                message=commit.message,
                created_ts=created_ts,
                url=commit.url,
                author_name=commit.author.name,
                added=added,
            ),
        )

    async def _ignore(self, vcs_push_event: VCSPushEvent, ignored: Ignored) -> None:
        if ignored.kind == IgnoreKind.RECORDED:
            await self.recorder.record_ignored(vcs_push_event, ignored.reason)
        else:
            logger.info(
                "committed_file_skipped",
                file=vcs_push_event.file_commit.added,
                reason=ignored.reason,
            )

    async def _process_file(
        self,
        push_event: WebhookPushEvent,
        commit: WebhookCommit,
        added: str,
    ) -> None:
        classified = self.classifier.classify(added)
        if isinstance(classified, Ignored) and classified.kind == IgnoreKind.SILENT:
            logger.debug("committed_file_skipped", file=added, reason=classified.reason)
            return

        vcs_push_event = self._build_vcs_push_event(push_event, commit, added)
        if isinstance(classified, Ignored):
            await self._ignore(vcs_push_event, classified)
            return
        migration_info = classified

        try:
            statement = await self.gitlab_client.read_file_content(
                instance_url=self.repository.instance_url,
                access_token=self.repository.access_token,
                project_id=self.repository.external_id,
                file_path=added,
                ref=commit.id,
            )
        except VCSFetchError as e:
            await self._ignore(vcs_push_event, Ignored.recorded(e.message))
            return

        targets = await self.database_resolver.resolve(
            self.repository.project_id, migration_info, added
        )
        if isinstance(targets, Ignored):
            await self._ignore(vcs_push_event, targets)
            return

        # Fresh per file, never shared across files or requests
        approval_cache: ApprovalCache = {}
        statuses = await self.policy_resolver.resolve(targets, approval_cache)
        if isinstance(statuses, Ignored):
            await self._ignore(vcs_push_event, statuses)
            return

        issue_create = self.builder.build(
            project_id=self.repository.project_id,
            migration_info=migration_info,
            targets=targets,
            statuses=statuses,
            statement=statement,
            push_event=vcs_push_event,
        )
        issue = await self.builder.submit(issue_create, added)
        if isinstance(issue, Ignored):
            await self._ignore(vcs_push_event, issue)
            return

        await self.recorder.record_created(vcs_push_event, issue)
