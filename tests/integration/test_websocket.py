"""End-to-end tests of the live notification stream."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from src.interface.auth import issue_session_token
from tests.conftest import ASSIGNEE, OWNER, ProjectFixture
from tests.integration.conftest import auth


pytestmark = pytest.mark.integration


def test_rejects_connection_without_valid_token(client: TestClient):
    with pytest.raises(WebSocketDisconnect), client.websocket_connect("/ws?token=forged"):
        pass


def test_approver_receives_verification_request_live(client: TestClient, seeded: ProjectFixture):
    with client.websocket_connect(f"/ws?token={issue_session_token(OWNER)}") as websocket:
        response = client.post(f"/tasks/{seeded.task_id}/status", json={"status": "Done"}, headers=auth(ASSIGNEE))
        assert response.json()["status"] == "pending_verification"

        message = websocket.receive_json()

    assert message["event"] == "new-notification"
    assert message["data"]["type"] == "verification_requested"
    assert message["data"]["recipient_id"] == OWNER
    assert message["data"]["data"]["verification_id"] == response.json()["verification_id"]


def test_workspace_channel_join_and_leave(client: TestClient, seeded: ProjectFixture):
    with client.websocket_connect(f"/ws?token={issue_session_token(ASSIGNEE)}") as websocket:
        websocket.send_json({"event": "join-workspace", "workspace_id": seeded.workspace_id})
        assert websocket.receive_json() == {
            "event": "workspace-joined",
            "data": {"workspace_id": seeded.workspace_id},
        }

        client.post(f"/tasks/{seeded.task_id}/status", json={"status": "Done"}, headers=auth(ASSIGNEE))

        message = websocket.receive_json()
        assert message["event"] == "workspace-notification"
        assert message["data"]["recipient_id"] == OWNER

        websocket.send_json({"event": "leave-workspace", "workspace_id": seeded.workspace_id})
        assert websocket.receive_json()["event"] == "workspace-left"


def test_unsupported_frame_gets_error(client: TestClient, seeded: ProjectFixture):
    with client.websocket_connect(f"/ws?token={issue_session_token(ASSIGNEE)}") as websocket:
        websocket.send_text("not json")

        assert websocket.receive_json() == {"event": "error", "data": {"message": "Unsupported frame"}}
