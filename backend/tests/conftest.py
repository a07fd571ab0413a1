"""
VCSFlow - Test Fixtures
=======================

Shared pytest fixtures for all tests.
"""

import json
import re
from collections.abc import AsyncGenerator
from typing import Any, Optional
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vcsflow.api.deps import get_gitlab_client
from vcsflow.api.main import app
from vcsflow.core.database import Base, get_db
from vcsflow.core.models import (
    VCS,
    Database,
    Environment,
    Instance,
    PipelineApprovalValue,
    Policy,
    PolicyType,
    Project,
    Repository,
)
from vcsflow.core.vcs import GitLabClient


# ==========================================================================
# Test Database Setup
# ==========================================================================

# Use in-memory SQLite for tests (fast)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

WEBHOOK_ENDPOINT_ID = "f5a6c2e1-endpoint"
WEBHOOK_SECRET = "s3cret-token"
EXTERNAL_PROJECT_ID = 42
GITLAB_URL = "https://gitlab.example.com"


# ==========================================================================
# Fake GitLab
# ==========================================================================

class FakeGitLab:
    """
    In-memory GitLab raw file API served through httpx.MockTransport.

    Files not registered in ``files`` answer 404.
    """

    _RAW_FILE = re.compile(r"/api/v4/projects/(?P<project>[^/]+)/repository/files/(?P<file>[^/]+)/raw")

    def __init__(self):
        self.files: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        raw_path = request.url.raw_path.decode().split("?", 1)[0]
        match = self._RAW_FILE.fullmatch(raw_path)
        if match is None:
            return httpx.Response(404, text="not found")
        content = self.files.get(unquote(match.group("file")))
        if content is None:
            return httpx.Response(404, text="404 File Not Found")
        return httpx.Response(200, text=content)

    def client(self) -> GitLabClient:
        return GitLabClient(transport=httpx.MockTransport(self.handler))


# ==========================================================================
# Database Fixtures
# ==========================================================================

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a clean database session for each test.

    Creates all tables before test, drops after.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def fake_gitlab() -> FakeGitLab:
    return FakeGitLab()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    fake_gitlab: FakeGitLab,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide test HTTP client with database and GitLab overrides.
    """
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    gitlab_client = fake_gitlab.client()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gitlab_client] = lambda: gitlab_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await gitlab_client.close()


# ==========================================================================
# Inventory Fixtures
# ==========================================================================

@pytest_asyncio.fixture
async def project(db_session: AsyncSession) -> Project:
    project = Project(name="Shop", key="SHP")
    db_session.add(project)
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def environments(db_session: AsyncSession) -> dict[str, Environment]:
    """dev (order 0), staging (order 1) and prod (order 2)."""
    envs = {
        name: Environment(name=name, order=order)
        for order, name in enumerate(["dev", "staging", "prod"])
    }
    db_session.add_all(envs.values())
    await db_session.commit()
    return envs


@pytest_asyncio.fixture
async def instances(
    db_session: AsyncSession,
    environments: dict[str, Environment],
) -> dict[str, Instance]:
    """One instance per environment, keyed by environment name."""
    result = {
        name: Instance(name=f"{name}-mysql", environment=env)
        for name, env in environments.items()
    }
    db_session.add_all(result.values())
    await db_session.commit()
    return result


@pytest_asyncio.fixture
async def vcs(db_session: AsyncSession) -> VCS:
    vcs = VCS(name="GitLab", instance_url=GITLAB_URL, api_url=f"{GITLAB_URL}/api/v4")
    db_session.add(vcs)
    await db_session.commit()
    return vcs


@pytest_asyncio.fixture
async def repository(db_session: AsyncSession, project: Project, vcs: VCS) -> Repository:
    """
    Repository using one directory per environment:
    db/{{ENV_NAME}}/{{DB_NAME}}__v{{VERSION}}.sql
    """
    repository = Repository(
        name="shop-schema",
        project_id=project.id,
        vcs_id=vcs.id,
        full_path="acme/shop-schema",
        web_url=f"{GITLAB_URL}/acme/shop-schema",
        base_directory="db/",
        file_path_template="db/{{ENV_NAME}}/{{DB_NAME}}__v{{VERSION}}.sql",
        schema_path_template="db/.{{ENV_NAME}}/{{DB_NAME}}__LATEST.sql",
        external_id=str(EXTERNAL_PROJECT_ID),
        webhook_endpoint_id=WEBHOOK_ENDPOINT_ID,
        webhook_secret_token=WEBHOOK_SECRET,
        access_token="gitlab-oauth-token",
    )
    db_session.add(repository)
    await db_session.commit()
    return repository


@pytest.fixture
def add_database(db_session: AsyncSession, project: Project, instances: dict[str, Instance]):
    """Factory: add_database("orders", "prod") creates a project database."""

    async def _add(name: str, environment: str, project_id: Optional[int] = None) -> Database:
        database = Database(
            name=name,
            project_id=project_id or project.id,
            instance=instances[environment],
        )
        db_session.add(database)
        await db_session.commit()
        return database

    return _add


@pytest.fixture
def set_approval_policy(db_session: AsyncSession):
    """Factory: set_approval_policy(env, value) stores a pipeline approval policy."""

    async def _set(environment: Environment, value: Any) -> Policy:
        if isinstance(value, PipelineApprovalValue):
            value = value.value
        policy = Policy(
            environment_id=environment.id,
            type=PolicyType.PIPELINE_APPROVAL.value,
            payload={"value": value},
        )
        db_session.add(policy)
        await db_session.commit()
        return policy

    return _set


# ==========================================================================
# Push Event Helpers
# ==========================================================================

def make_commit(
    added: list[str],
    commit_id: str = "a1b2c3d4",
    title: str = "Add orders index",
    message: str = "Add orders index\n\nSpeeds up order lookups.\n",
    timestamp: str = "2021-11-03T10:15:30+08:00",
) -> dict[str, Any]:
    return {
        "id": commit_id,
        "title": title,
        "message": message,
        "timestamp": timestamp,
        "url": f"{GITLAB_URL}/acme/shop-schema/-/commit/{commit_id}",
        "author": {"name": "Ada Lovelace", "email": "ada@example.com"},
        "added": added,
        "modified": [],
        "removed": [],
    }


def make_push_event(
    commits: list[dict[str, Any]],
    object_kind: str = "push",
    project_id: int = EXTERNAL_PROJECT_ID,
) -> dict[str, Any]:
    return {
        "object_kind": object_kind,
        "ref": "refs/heads/main",
        "user_name": "Ada Lovelace",
        "project": {
            "id": project_id,
            "web_url": f"{GITLAB_URL}/acme/shop-schema",
            "path_with_namespace": "acme/shop-schema",
        },
        "commits": commits,
    }


async def post_push(
    client: AsyncClient,
    payload: Any,
    token: Optional[str] = WEBHOOK_SECRET,
    endpoint_id: str = WEBHOOK_ENDPOINT_ID,
) -> httpx.Response:
    headers = {"Content-Type": "application/json"}
    if token is not None:
        headers["X-Gitlab-Token"] = token
    content = payload if isinstance(payload, (str, bytes)) else json.dumps(payload)
    return await client.post(f"/hook/gitlab/{endpoint_id}", content=content, headers=headers)
