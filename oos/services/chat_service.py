"""
Chat Service — persisted workspace chat.

Messages are stored and listed here; pushing them to connected clients is
not part of this service.
"""

import logging

from oos.core.exceptions import NotFoundError, ValidationError
from oos.models import db
from oos.models.auth import User
from oos.models.meeting import MAX_CHAT_MESSAGE_LENGTH, ChatMessage, VideoMeeting
from oos.services import authorization as authz

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500


def _check_meeting(workspace_id: str, meeting_id: str | None) -> None:
    if meeting_id is None:
        return
    meeting = db.session.get(VideoMeeting, meeting_id)
    if meeting is None or meeting.workspace_id != workspace_id:
        raise NotFoundError("VideoMeeting", meeting_id)


def post_message(
    workspace_id: str,
    user: User,
    message: str,
    meeting_id: str | None = None,
) -> ChatMessage:
    """Store one message from a workspace member.

    Raises:
        ValidationError: empty after trimming, or too long.
        NotFoundError: meeting_id does not belong to the workspace.
    """
    authz.require_workspace_role(user.id, workspace_id)
    text = (message or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty", details={"message": "required"})
    if len(text) > MAX_CHAT_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message cannot exceed {MAX_CHAT_MESSAGE_LENGTH} characters",
            details={"message": "too_long"},
        )
    meeting_id = meeting_id or None
    _check_meeting(workspace_id, meeting_id)

    chat = ChatMessage(
        workspace_id=workspace_id, meeting_id=meeting_id, user_id=user.id, message=text,
    )
    db.session.add(chat)
    db.session.commit()
    logger.debug("Chat message stored ws=%s id=%s", workspace_id, chat.id)
    return chat


def list_messages(
    workspace_id: str,
    user: User,
    meeting_id: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
) -> list[ChatMessage]:
    """The most recent *limit* messages, oldest first."""
    authz.require_workspace_role(user.id, workspace_id)
    _check_meeting(workspace_id, meeting_id)
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))

    q = ChatMessage.query.filter_by(workspace_id=workspace_id)
    if meeting_id:
        q = q.filter_by(meeting_id=meeting_id)
    recent = q.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit).all()
    return list(reversed(recent))
