"""
Push event parsing, pipeline building and outcome recording tests.
"""

import json

import pytest

from tests.conftest import make_commit, make_push_event
from vcsflow.core.exceptions import ActivityRecordError, PushEventRejected
from vcsflow.core.migration import (
    DatabaseTarget,
    MigrationInfo,
    OutcomeRecorder,
    PipelineBuilder,
    parse_push_event,
)
from vcsflow.core.migration.processor import parse_commit_timestamp
from vcsflow.core.models import (
    ActivityLevel,
    Issue,
    IssueType,
    MigrationType,
    TaskStatus,
    TaskType,
    VCSType,
)
from vcsflow.core.schemas import SchemaUpdateTaskCreate, VCSFileCommit, VCSPushEvent


def vcs_push_event(added: str = "db/orders__v3.sql", title: str = "Add orders index") -> VCSPushEvent:
    return VCSPushEvent(
        vcs_type=VCSType.GITLAB_SELF_HOST,
        base_directory="db/",
        ref="refs/heads/main",
        repository_id="42",
        repository_url="https://gitlab.example.com/acme/shop-schema",
        repository_full_path="acme/shop-schema",
        author_name="Ada Lovelace",
        file_commit=VCSFileCommit(
            id="a1b2c3d4",
            title=title,
            message="Add orders index\n",
            created_ts=1635905730,
            url="https://gitlab.example.com/acme/shop-schema/-/commit/a1b2c3d4",
            author_name="Ada Lovelace",
            added=added,
        ),
    )


# ==========================================================================
# Push Event Parsing
# ==========================================================================

class TestParsePushEvent:
    def test_parses_gitlab_fields(self):
        body = json.dumps(make_push_event([make_commit(["db/a.sql", "db/b.sql"])])).encode()

        push_event = parse_push_event(body)

        assert push_event.author_name == "Ada Lovelace"
        assert push_event.project.id == 42
        assert push_event.project.full_path == "acme/shop-schema"
        assert push_event.commit_list[0].added_list == ["db/a.sql", "db/b.sql"]
        assert push_event.commit_list[0].author.email == "ada@example.com"

    def test_rejects_other_event_kinds(self):
        body = json.dumps(make_push_event([], object_kind="tag_push")).encode()

        with pytest.raises(PushEventRejected, match="got tag_push, want push"):
            parse_push_event(body)

    def test_rejects_malformed_body(self):
        with pytest.raises(PushEventRejected, match="Malformatted push event"):
            parse_push_event(b"{")


class TestParseCommitTimestamp:
    @pytest.mark.parametrize(
        "timestamp,expected",
        [
            ("2021-11-03T10:15:30+08:00", 1635905730),
            ("2021-11-03T02:15:30Z", 1635905730),
            ("2021-11-03T02:15:30+00:00", 1635905730),
            ("2021-11-03T02:15:30.123456789Z", 1635905730),
            ("2021-11-03t02:15:30z", 1635905730),
        ],
    )
    def test_rfc3339(self, timestamp, expected):
        assert parse_commit_timestamp(timestamp) == expected

    @pytest.mark.parametrize(
        "timestamp",
        [
            "",
            "yesterday",
            "2021-11-03T02:15:30",
            "20211103T101530Z",
            "2021-W44-3T10:15:30Z",
            "2021-11-03T02:15Z",
            "2021-13-03T02:15:30Z",
        ],
    )
    def test_invalid(self, timestamp):
        with pytest.raises(ValueError):
            parse_commit_timestamp(timestamp)


# ==========================================================================
# Pipeline Builder
# ==========================================================================

class TestPipelineBuilder:
    def test_one_stage_per_target(self):
        builder = PipelineBuilder(issue_service=None, system_bot_id=1)
        targets = [
            DatabaseTarget(database_id=11, instance_id=21, environment_id=1, environment_name="dev", environment_order=0),
            DatabaseTarget(database_id=13, instance_id=23, environment_id=3, environment_name="prod", environment_order=2),
        ]
        info = MigrationInfo(
            database="orders",
            environment="",
            version="3",
            type=MigrationType.BASELINE,
            description="Create orders baseline",
        )

        issue_create = builder.build(
            project_id=7,
            migration_info=info,
            targets=targets,
            statuses={1: TaskStatus.PENDING, 3: TaskStatus.PENDING_APPROVAL},
            statement="CREATE TABLE orders (id INT);",
            push_event=vcs_push_event(),
        )

        assert issue_create.project_id == 7
        assert issue_create.name == "Add orders index"
        assert issue_create.type == IssueType.DATABASE_SCHEMA_UPDATE
        assert issue_create.assignee_id == 1
        assert issue_create.pipeline.name == "Pipeline - Add orders index"
        assert [s.name for s in issue_create.pipeline.stage_list] == ["dev", "prod"]
        assert [s.environment_id for s in issue_create.pipeline.stage_list] == [1, 3]

        tasks = [s.task_list[0] for s in issue_create.pipeline.stage_list]
        assert all(isinstance(t, SchemaUpdateTaskCreate) for t in tasks)
        assert [t.status for t in tasks] == [TaskStatus.PENDING, TaskStatus.PENDING_APPROVAL]
        assert [(t.database_id, t.instance_id) for t in tasks] == [(11, 21), (13, 23)]
        assert tasks[0].type == TaskType.DATABASE_SCHEMA_UPDATE
        assert tasks[0].payload()["migrationType"] == "BASELINE"
        assert tasks[0].payload()["pushEvent"]["fileCommit"]["createdTs"] == 1635905730


# ==========================================================================
# Outcome Recorder
# ==========================================================================

class RecordingActivityService:
    """Keeps activities in memory; fails on demand."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.created = []

    async def create_activity(self, activity_create):
        if self.fail:
            raise ActivityRecordError("database is locked")
        self.created.append(activity_create)
        return activity_create


class TestOutcomeRecorder:
    async def test_record_created(self):
        service = RecordingActivityService()
        recorder = OutcomeRecorder(service, project_id=7, creator_id=1)

        await recorder.record_created(vcs_push_event(), Issue(id=5, name="Add orders index"))

        assert recorder.summary() == 'Created issue "Add orders index" on adding db/orders__v3.sql'
        activity = service.created[0]
        assert activity.level == ActivityLevel.INFO
        assert activity.container_id == 7
        assert json.loads(activity.payload)["issueId"] == 5

    async def test_record_ignored_does_not_touch_summary(self):
        service = RecordingActivityService()
        recorder = OutcomeRecorder(service, project_id=7, creator_id=1)

        await recorder.record_ignored(vcs_push_event(), "failed to read file: 404 Not Found")

        assert recorder.summary() == ""
        assert service.created[0].level == ActivityLevel.WARN
        assert service.created[0].comment == (
            'Ignored committed file "db/orders__v3.sql", failed to read file: 404 Not Found.'
        )

    async def test_ignored_activity_failure_is_tolerated(self):
        recorder = OutcomeRecorder(RecordingActivityService(fail=True), project_id=7, creator_id=1)

        await recorder.record_ignored(vcs_push_event(), "no database")

        assert recorder.summary() == ""

    async def test_created_activity_failure_raises(self):
        recorder = OutcomeRecorder(RecordingActivityService(fail=True), project_id=7, creator_id=1)

        with pytest.raises(ActivityRecordError, match="after creating issue from repository push event: 5"):
            await recorder.record_created(vcs_push_event(), Issue(id=5, name="Add orders index"))

    def test_summary_joins_lines_in_order(self):
        recorder = OutcomeRecorder(RecordingActivityService(), project_id=7, creator_id=1)
        recorder.messages.extend(["first", "second"])

        assert recorder.summary() == "first\nsecond"
