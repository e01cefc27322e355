"""Unit tests for the activity recorder."""

from unittest.mock import AsyncMock, patch

import pytest

from src.core.db_client import DatabaseError
from src.domain.log import ActivityAction
from src.services import activity_service


@pytest.mark.unit
class TestRecordActivity:
    async def test_default_description(self, db):
        entry = await activity_service.record_activity(
            user_id="alice",
            action=ActivityAction.UPDATED_TASK,
            resource_type="Task",
            resource_id="4",
        )

        assert entry.description == "updated_task Task"
        assert entry.metadata == {}
        assert entry.created

    async def test_explicit_description_and_metadata(self, db):
        entry = await activity_service.record_activity(
            user_id="alice",
            action=ActivityAction.REQUESTED_VERIFICATION,
            resource_type="Task",
            resource_id="4",
            description="requested verification to change status from In Progress to Done",
            metadata={"verification_id": "9"},
        )

        assert entry.description.startswith("requested verification")
        assert entry.metadata == {"verification_id": "9"}

    async def test_list_activity_newest_first(self, db):
        for action in (ActivityAction.REQUESTED_VERIFICATION, ActivityAction.VERIFIED_TASK):
            await activity_service.record_activity(user_id="u", action=action, resource_type="Task", resource_id="4")
        await activity_service.record_activity(
            user_id="u", action=ActivityAction.UPDATED_TASK, resource_type="Task", resource_id="5"
        )

        entries = await activity_service.list_activity(resource_id="4")

        assert [e.action for e in entries] == [ActivityAction.VERIFIED_TASK, ActivityAction.REQUESTED_VERIFICATION]

    async def test_record_safely_absorbs_storage_failures(self, db):
        with patch.object(
            activity_service.db_client, "create_record", new=AsyncMock(side_effect=DatabaseError("disk full"))
        ):
            result = await activity_service.record_activity_safely(
                user_id="u", action=ActivityAction.UPDATED_TASK, resource_type="Task", resource_id="4"
            )

        assert result is None
