"""
Chat tests — member-only posting and reading, trimming, meeting scoping.
"""

import pytest

from oos.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from oos.models.meeting import ChatMessage
from oos.services import chat_service as chat_svc
from oos.services import meeting_service as meeting_svc
from oos.services import workspace_service as ws_svc


@pytest.fixture()
def workspace(admin, owner):
    ws = ws_svc.create_workspace(admin, "Growth Lab")
    ws_svc.add_member_by_email(ws.id, admin, owner.email)
    return ws


class TestChatService:
    def test_post_trims_and_lists_oldest_first(self, workspace, admin, owner):
        chat_svc.post_message(workspace.id, admin, "  morning all  ")
        chat_svc.post_message(workspace.id, owner, "hi")
        messages = chat_svc.list_messages(workspace.id, owner)
        assert [m.message for m in messages] == ["morning all", "hi"]
        assert messages[0].to_dict()["full_name"] == "Remi Reviewer"

    @pytest.mark.parametrize("text", ["", "   ", None, "x" * 4001])
    def test_rejects_empty_or_oversized(self, workspace, admin, text):
        with pytest.raises(ValidationError):
            chat_svc.post_message(workspace.id, admin, text)
        assert ChatMessage.query.count() == 0

    def test_outsider_cannot_post_or_read(self, workspace, outsider):
        with pytest.raises(PermissionDenied):
            chat_svc.post_message(workspace.id, outsider, "let me in")
        with pytest.raises(PermissionDenied):
            chat_svc.list_messages(workspace.id, outsider)

    def test_meeting_scope(self, workspace, admin):
        meeting = meeting_svc.start_meeting(workspace.id, admin)
        chat_svc.post_message(workspace.id, admin, "general")
        chat_svc.post_message(workspace.id, admin, "in call", meeting_id=meeting.id)
        scoped = chat_svc.list_messages(workspace.id, admin, meeting_id=meeting.id)
        assert [m.message for m in scoped] == ["in call"]
        assert len(chat_svc.list_messages(workspace.id, admin)) == 2

    def test_meeting_from_other_workspace_rejected(self, workspace, admin):
        other = ws_svc.create_workspace(admin, "Side Project")
        meeting = meeting_svc.start_meeting(other.id, admin)
        with pytest.raises(NotFoundError):
            chat_svc.post_message(workspace.id, admin, "wrong room", meeting_id=meeting.id)

    def test_limit_keeps_most_recent(self, workspace, admin):
        for i in range(5):
            chat_svc.post_message(workspace.id, admin, f"m{i}")
        assert [m.message for m in chat_svc.list_messages(workspace.id, admin, limit=2)] == ["m3", "m4"]


class TestChatAPI:
    def test_post_and_list(self, client, workspace, owner, auth_headers):
        url = f"/api/v1/workspaces/{workspace.id}/messages"
        res = client.post(url, json={"message": "hello"}, headers=auth_headers(owner))
        assert res.status_code == 201
        assert res.get_json()["message"]["user_id"] == owner.id

        res = client.get(url, headers=auth_headers(owner))
        assert [m["message"] for m in res.get_json()["messages"]] == ["hello"]

    def test_missing_message(self, client, workspace, owner, auth_headers):
        res = client.post(
            f"/api/v1/workspaces/{workspace.id}/messages", json={}, headers=auth_headers(owner),
        )
        assert res.status_code == 400

    def test_outsider_403(self, client, workspace, outsider, auth_headers):
        res = client.get(f"/api/v1/workspaces/{workspace.id}/messages", headers=auth_headers(outsider))
        assert res.status_code == 403
