"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import pytest

from src.core import db_client
from src.core.config import settings
from src.domain.project import ProjectRole
from src.domain.task import TaskStatus
from src.services.notification_service import NotificationDispatcher
from tests.unit.mocks import FakePublisher


logger = logging.getLogger(__name__)

OWNER = "owner-1"
MANAGER = "manager-1"
ASSIGNEE = "alice"
CONTRIBUTOR = "bob"
VIEWER = "victor"
OUTSIDER = "mallory"


@dataclass
class ProjectFixture:
    """Ids of a seeded workspace, project, and task."""

    workspace_id: str
    project_id: str
    task_id: str


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Point the application at a fresh SQLite file for the test."""
    path = str(tmp_path / "taskgate-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", path)
    return path


@pytest.fixture
async def db(db_path: str) -> AsyncIterator[str]:
    """Initialized schema on the test database; the connection is closed afterwards."""
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def dispatcher(publisher: FakePublisher) -> NotificationDispatcher:
    return NotificationDispatcher(publisher)


async def create_workspace(*, name: str = "Acme", created_by: str = OWNER) -> str:
    record = await db_client.create_record(collection="workspaces", data={"name": name, "created_by": created_by})
    return record["id"]


async def create_project(
    *,
    workspace_id: str,
    members: list[tuple[str, ProjectRole]],
    title: str = "Launch",
    created_by: str = OWNER,
) -> str:
    """Create a project and its membership rows in the given order."""
    record = await db_client.create_record(
        collection="projects",
        data={"workspace_id": int(workspace_id), "title": title, "created_by": created_by},
    )
    for user_id, role in members:
        await db_client.create_record(
            collection="project_members",
            data={"project_id": int(record["id"]), "user_id": user_id, "role": role.value},
        )
    return record["id"]


async def create_task(
    *,
    project_id: str,
    assignees: list[str] | None = None,
    status: TaskStatus = TaskStatus.TODO,
    title: str = "Write release notes",
    created_by: str = OWNER,
) -> str:
    record = await db_client.create_record(
        collection="tasks",
        data={"project_id": int(project_id), "title": title, "status": status.value, "created_by": created_by},
    )
    for user_id in assignees or []:
        await db_client.create_record(
            collection="task_assignees",
            data={"task_id": int(record["id"]), "user_id": user_id},
        )
    return record["id"]


async def seed_project(*, status: TaskStatus = TaskStatus.IN_PROGRESS) -> ProjectFixture:
    """Workspace with a project of every role and one task assigned to a contributor."""
    workspace_id = await create_workspace()
    project_id = await create_project(
        workspace_id=workspace_id,
        members=[
            (OWNER, ProjectRole.OWNER),
            (MANAGER, ProjectRole.MANAGER),
            (ASSIGNEE, ProjectRole.CONTRIBUTOR),
            (CONTRIBUTOR, ProjectRole.CONTRIBUTOR),
            (VIEWER, ProjectRole.VIEWER),
        ],
    )
    task_id = await create_task(project_id=project_id, assignees=[ASSIGNEE], status=status)
    return ProjectFixture(workspace_id=workspace_id, project_id=project_id, task_id=task_id)


@pytest.fixture
async def project(db: str) -> ProjectFixture:
    """Seeded project with an in-progress task assigned to a contributor."""
    return await seed_project()
