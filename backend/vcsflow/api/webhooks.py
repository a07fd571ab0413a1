"""
VCSFlow GitLab Webhook
======================

Receives GitLab push hooks and turns committed migration files into
schema update issues.

Setup:
1. Link a project to a GitLab repository (creates the repository row with
   a webhook endpoint id and secret token)
2. GitLab project -> Settings -> Webhooks
3. URL: https://your-domain/hook/gitlab/<webhook endpoint id>
4. Secret token: the repository's webhook secret token
5. Trigger: Push events
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse

from vcsflow.api.deps import DbSession, GitLab
from vcsflow.core.config import settings
from vcsflow.core.exceptions import VCSFlowError
from vcsflow.core.migration import (
    ApprovalPolicyResolver,
    DatabaseResolver,
    EventValidator,
    OutcomeRecorder,
    PipelineBuilder,
    PushEventProcessor,
)
from vcsflow.core.store import (
    ActivityService,
    DatabaseService,
    IssueService,
    PolicyService,
    RepositoryService,
)

logger = structlog.get_logger()

router = APIRouter(prefix=settings.WEBHOOK_PREFIX, tags=["Webhooks"])


@router.post("/gitlab/{webhook_endpoint_id}", response_class=PlainTextResponse)
async def gitlab_webhook(
    webhook_endpoint_id: str,
    request: Request,
    db: DbSession,
    gitlab_client: GitLab,
    secret_token: Optional[str] = Header(None, alias=settings.GITLAB_TOKEN_HEADER),
) -> PlainTextResponse:
    """
    Handle a GitLab push event.

    Returns one "Created issue ..." line per created issue. Per file
    failures do not change the response; they are visible as project
    activities.
    """
    body = await request.body()

    try:
        push_event, repository = await EventValidator(RepositoryService(db)).validate(
            body, webhook_endpoint_id, secret_token
        )

        processor = PushEventProcessor(
            repository=repository,
            gitlab_client=gitlab_client,
            database_resolver=DatabaseResolver(DatabaseService(db)),
            policy_resolver=ApprovalPolicyResolver(PolicyService(db)),
            builder=PipelineBuilder(IssueService(db), settings.SYSTEM_BOT_ID),
            recorder=OutcomeRecorder(
                ActivityService(db),
                project_id=repository.project_id,
                creator_id=settings.SYSTEM_BOT_ID,
            ),
        )
        summary = await processor.process(push_event)
    except VCSFlowError as e:
        logger.warning(
            "push_event_rejected",
            webhook_endpoint_id=webhook_endpoint_id,
            status=e.status_code,
            error=e.message,
        )
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    logger.info(
        "push_event_processed",
        webhook_endpoint_id=webhook_endpoint_id,
        created=len(processor.recorder.messages),
    )
    return PlainTextResponse(summary)
