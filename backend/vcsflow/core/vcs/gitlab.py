"""
VCSFlow GitLab Client
=====================

Minimal GitLab REST client. Only reading raw file content is needed to
build migration tasks from a push event.
"""

from typing import Optional
from urllib.parse import quote

import httpx
import structlog

from vcsflow.core.config import settings
from vcsflow.core.exceptions import VCSFetchError

logger = structlog.get_logger()


class GitLabClient:
    """
    Client for the GitLab v4 API.

    Pass a custom transport (e.g. httpx.MockTransport) to run without a
    GitLab server.
    """

    def __init__(
        self,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.GITLAB_API_TIMEOUT,
            transport=transport,
        )

    @staticmethod
    def api_url(instance_url: str) -> str:
        return f"{instance_url.rstrip('/')}/api/v4"

    async def read_file_content(
        self,
        instance_url: str,
        access_token: str,
        project_id: str,
        file_path: str,
        ref: str,
    ) -> str:
        """
        Read the raw content of a file at a given ref.

        Args:
            instance_url: GitLab instance URL, e.g. https://gitlab.example.com
            access_token: OAuth token of the repository
            project_id: GitLab project ID
            file_path: Path of the file within the repository
            ref: Branch, tag or commit SHA

        Returns:
            File content decoded as UTF-8

        Raises:
            VCSFetchError: If the request fails or GitLab answers non-2xx
        """
        url = (
            f"{self.api_url(instance_url)}/projects/{project_id}"
            f"/repository/files/{quote(file_path, safe='')}/raw"
        )
        try:
            response = await self._client.get(
                url,
                params={"ref": ref},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("gitlab_request_failed", url=url, error=str(e))
            raise VCSFetchError(f"failed to read file: {e}") from e

        if response.status_code >= 300:
            logger.warning(
                "gitlab_file_read_failed",
                file=file_path,
                ref=ref,
                status=response.status_code,
            )
            raise VCSFetchError(
                f"failed to read file: {response.status_code} {response.reason_phrase}"
            )

        return response.text

    async def close(self) -> None:
        await self._client.aclose()
