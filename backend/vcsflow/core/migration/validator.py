"""
Event Validator
===============

Authenticates an inbound GitLab push hook and pairs it with the repository
configured for the webhook endpoint. Any failure aborts the request.
"""

import hmac
from typing import Optional

import structlog
from pydantic import ValidationError

from vcsflow.core.exceptions import PushEventRejected
from vcsflow.core.models import Repository
from vcsflow.core.schemas import WEBHOOK_PUSH, WebhookPushEvent
from vcsflow.core.store import RepositoryService

logger = structlog.get_logger()


def parse_push_event(body: bytes) -> WebhookPushEvent:
    """
    Parse and check a push hook body.

    Raises:
        PushEventRejected: If the body is malformed or not a push event
    """
    try:
        push_event = WebhookPushEvent.model_validate_json(body)
    except ValidationError as e:
        logger.info("malformed_push_event", errors=e.error_count())
        raise PushEventRejected("Malformatted push event") from e

    # The webhook is only registered for push events
    if push_event.object_kind != WEBHOOK_PUSH:
        raise PushEventRejected(
            f"Invalid webhook event type, got {push_event.object_kind}, want {WEBHOOK_PUSH}"
        )
    return push_event


class EventValidator:
    def __init__(self, repository_service: RepositoryService):
        self.repository_service = repository_service

    async def validate(
        self,
        body: bytes,
        webhook_endpoint_id: str,
        secret_token: Optional[str],
    ) -> tuple[WebhookPushEvent, Repository]:
        """
        Validate a push hook request.

        Checks, in order: payload shape, event kind, repository lookup,
        repository relationships, secret token, external project id.

        Returns:
            The parsed event and its repository with VCS and project loaded

        Raises:
            PushEventRejected: Payload, kind, secret or project mismatch
            RepositoryNotFound: Unknown webhook endpoint
            RepositoryRelationshipError: Repository references failed to load
        """
        push_event = parse_push_event(body)

        repository = await self.repository_service.find_by_webhook_endpoint(webhook_endpoint_id)
        await self.repository_service.compose_relationship(repository)

        if not hmac.compare_digest(
            (secret_token or "").encode(),
            repository.webhook_secret_token.encode(),
        ):
            logger.warning("webhook_secret_mismatch", repository=repository.name)
            raise PushEventRejected("Secret token mismatch")

        if str(push_event.project.id) != repository.external_id:
            raise PushEventRejected(
                f"Project mismatch, got {push_event.project.id}, want {repository.external_id}"
            )

        return push_event, repository
