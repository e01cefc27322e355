"""Unit tests for the status gate."""

import pytest

from src.core import db_client
from src.core.errors import ForbiddenError, NotAMemberError, RecordNotFoundError, VerificationAlreadyPendingError
from src.domain.log import ActivityAction
from src.domain.notification import NotificationType
from src.domain.project import ProjectRole
from src.domain.task import ARCHIVE, TaskStatus
from src.models.service_models import StatusChangeOutcome
from src.services import activity_service, notification_service, task_service, verification_service
from src.services.notification_service import NotificationDispatcher
from tests.conftest import (
    ASSIGNEE,
    CONTRIBUTOR,
    MANAGER,
    OUTSIDER,
    OWNER,
    VIEWER,
    ProjectFixture,
    create_project,
    create_task,
    create_workspace,
    seed_project,
)
from tests.unit.mocks import FailingPublisher


async def _change(project: ProjectFixture, dispatcher: NotificationDispatcher, requester: str, status):
    return await task_service.attempt_status_change(
        task_id=project.task_id,
        requester_id=requester,
        new_status=status,
        dispatcher=dispatcher,
    )


@pytest.mark.unit
class TestPrivilegedChange:
    async def test_manager_applies_directly(self, db, dispatcher):
        project = await seed_project(status=TaskStatus.TODO)

        result = await _change(project, dispatcher, MANAGER, TaskStatus.DONE)

        assert result.status == StatusChangeOutcome.APPLIED
        assert result.verification_id is None
        assert result.task.status == TaskStatus.DONE
        assert await db_client.count_records(collection="verifications") == 0
        entries = await activity_service.list_activity(resource_id=project.task_id)
        assert [e.action for e in entries] == [ActivityAction.UPDATED_TASK]
        assert entries[0].user_id == MANAGER

    async def test_owner_who_is_also_assignee_skips_verification(self, db, dispatcher):
        workspace_id = await create_workspace()
        project_id = await create_project(workspace_id=workspace_id, members=[(OWNER, ProjectRole.OWNER)])
        task_id = await create_task(project_id=project_id, assignees=[OWNER])
        project = ProjectFixture(workspace_id=workspace_id, project_id=project_id, task_id=task_id)

        result = await _change(project, dispatcher, OWNER, TaskStatus.TESTING)

        assert result.status == StatusChangeOutcome.APPLIED
        assert await db_client.count_records(collection="verifications") == 0

    async def test_archive_sets_flag_and_keeps_status(self, project, dispatcher):
        result = await _change(project, dispatcher, OWNER, ARCHIVE)

        assert result.task.is_archived is True
        assert result.task.status == TaskStatus.IN_PROGRESS

    async def test_real_status_clears_archive_flag(self, project, dispatcher):
        await _change(project, dispatcher, OWNER, ARCHIVE)

        result = await _change(project, dispatcher, OWNER, TaskStatus.DONE)

        assert result.task.is_archived is False
        assert result.task.status == TaskStatus.DONE


@pytest.mark.unit
class TestAssigneeChange:
    async def test_assignee_opens_verification(self, project, dispatcher):
        result = await _change(project, dispatcher, ASSIGNEE, TaskStatus.DONE)

        assert result.status == StatusChangeOutcome.PENDING_VERIFICATION
        assert result.verification_id
        assert result.task.requires_verification is True
        assert result.task.status == TaskStatus.IN_PROGRESS

        inbox = await notification_service.list_notifications(user_id=OWNER)
        assert [n.type for n in inbox.notifications] == [NotificationType.VERIFICATION_REQUESTED]

    async def test_retry_while_pending_is_rejected(self, project, dispatcher):
        await _change(project, dispatcher, ASSIGNEE, TaskStatus.DONE)

        with pytest.raises(VerificationAlreadyPendingError):
            await _change(project, dispatcher, ASSIGNEE, TaskStatus.DONE)

        assert await db_client.count_records(collection="verifications") == 1

    async def test_same_status_is_a_noop(self, project, dispatcher):
        result = await _change(project, dispatcher, ASSIGNEE, TaskStatus.IN_PROGRESS)

        assert result.status == StatusChangeOutcome.APPLIED
        assert await db_client.count_records(collection="verifications") == 0
        assert await activity_service.list_activity(resource_id=project.task_id) == []

    async def test_push_failure_still_returns_pending(self, project):
        result = await _change(project, NotificationDispatcher(FailingPublisher()), ASSIGNEE, TaskStatus.DONE)

        assert result.status == StatusChangeOutcome.PENDING_VERIFICATION
        inbox = await notification_service.list_notifications(user_id=OWNER)
        assert len(inbox.notifications) == 1

    async def test_privileged_change_leaves_pending_request_open(self, project, dispatcher):
        pending = await _change(project, dispatcher, ASSIGNEE, TaskStatus.DONE)

        await _change(project, dispatcher, MANAGER, TaskStatus.TESTING)

        request = await verification_service.get_request(verification_id=pending.verification_id)
        assert request.is_pending


@pytest.mark.unit
class TestRefusals:
    @pytest.mark.parametrize("requester", [CONTRIBUTOR, VIEWER])
    async def test_member_without_assignment_is_forbidden(self, project, dispatcher, requester):
        with pytest.raises(ForbiddenError):
            await _change(project, dispatcher, requester, TaskStatus.DONE)

    async def test_outsider_is_not_a_member(self, project, dispatcher):
        with pytest.raises(NotAMemberError):
            await _change(project, dispatcher, OUTSIDER, TaskStatus.DONE)

    async def test_unknown_task(self, db, dispatcher):
        with pytest.raises(RecordNotFoundError):
            await task_service.attempt_status_change(
                task_id="999", requester_id=OWNER, new_status=TaskStatus.DONE, dispatcher=dispatcher
            )


@pytest.mark.unit
class TestArchiveToggle:
    async def test_any_member_toggles_archive(self, project):
        archived = await task_service.toggle_archive(task_id=project.task_id, requester_id=VIEWER)
        restored = await task_service.toggle_archive(task_id=project.task_id, requester_id=VIEWER)

        assert archived.is_archived is True
        assert restored.is_archived is False
        assert restored.status == TaskStatus.IN_PROGRESS

    async def test_unarchive(self, project):
        await task_service.toggle_archive(task_id=project.task_id, requester_id=OWNER)

        task = await task_service.unarchive(task_id=project.task_id, requester_id=CONTRIBUTOR)

        assert task.is_archived is False
        entries = await task_service.list_task_activity(task_id=project.task_id, requester_id=OWNER)
        assert [e.description for e in entries] == [
            "unarchived task Write release notes",
            "archived task Write release notes",
        ]

    async def test_outsider_cannot_toggle(self, project):
        with pytest.raises(NotAMemberError):
            await task_service.toggle_archive(task_id=project.task_id, requester_id=OUTSIDER)


@pytest.mark.unit
class TestLargeProject:
    async def _crowded_project(self) -> ProjectFixture:
        """A project whose only manager joined after a hundred contributors."""
        workspace_id = await create_workspace()
        members = [(f"member-{n}", ProjectRole.CONTRIBUTOR) for n in range(100)]
        members += [("late-manager", ProjectRole.MANAGER), (ASSIGNEE, ProjectRole.CONTRIBUTOR)]
        project_id = await create_project(workspace_id=workspace_id, members=members)
        task_id = await create_task(project_id=project_id, assignees=[ASSIGNEE], status=TaskStatus.IN_PROGRESS)
        return ProjectFixture(workspace_id=workspace_id, project_id=project_id, task_id=task_id)

    async def test_late_manager_applies_directly(self, db, dispatcher):
        project = await self._crowded_project()

        result = await _change(project, dispatcher, "late-manager", TaskStatus.DONE)

        assert result.status == StatusChangeOutcome.APPLIED
        assert result.task.status == TaskStatus.DONE

    async def test_late_manager_is_routed_the_request(self, db, dispatcher):
        project = await self._crowded_project()

        result = await _change(project, dispatcher, ASSIGNEE, TaskStatus.DONE)

        request = await verification_service.get_request(verification_id=result.verification_id)
        assert request.requested_for == "late-manager"

    async def test_get_task_loads_every_assignee(self, db):
        workspace_id = await create_workspace()
        project_id = await create_project(workspace_id=workspace_id, members=[(OWNER, ProjectRole.OWNER)])
        assignees = [f"assignee-{n}" for n in range(105)]
        task_id = await create_task(project_id=project_id, assignees=assignees)

        task = await task_service.get_task(task_id=task_id)

        assert task.assignees == assignees
