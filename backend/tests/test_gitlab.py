"""
GitLab client tests.
"""

import httpx
import pytest

from vcsflow.core.exceptions import VCSFetchError
from vcsflow.core.vcs import GitLabClient


def client_for(handler) -> GitLabClient:
    return GitLabClient(transport=httpx.MockTransport(handler))


class TestReadFileContent:
    async def test_reads_raw_file_at_ref(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ALTER TABLE orders ADD COLUMN note TEXT;")

        client = client_for(handler)
        content = await client.read_file_content(
            instance_url="https://gitlab.example.com/",
            access_token="token",
            project_id="42",
            file_path="db/prod/orders__v3.sql",
            ref="a1b2c3d4",
        )
        await client.close()

        assert content == "ALTER TABLE orders ADD COLUMN note TEXT;"
        request = seen[0]
        assert request.method == "GET"
        assert request.url.host == "gitlab.example.com"
        assert request.url.raw_path == (
            b"/api/v4/projects/42/repository/files/db%2Fprod%2Forders__v3.sql/raw?ref=a1b2c3d4"
        )
        assert request.headers["Authorization"] == "Bearer token"

    @pytest.mark.parametrize("status_code", [301, 401, 404, 500])
    async def test_non_success_status(self, status_code):
        client = client_for(lambda request: httpx.Response(status_code))

        with pytest.raises(VCSFetchError, match=f"failed to read file: {status_code}"):
            await client.read_file_content("https://gitlab.example.com", "token", "42", "a.sql", "main")
        await client.close()

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_for(handler)

        with pytest.raises(VCSFetchError, match="connection refused"):
            await client.read_file_content("https://gitlab.example.com", "token", "42", "a.sql", "main")
        await client.close()
