"""
Meeting Service — workspace video meetings and their participants.

Every operation is gated on workspace membership.  A meeting owns one video
room; once a room name belongs to a meeting, join tokens for it are only
issued to members of that workspace (see authorize_room).

Lifecycle:
    start ──▶ active ──end──▶ ended
    join / leave only while active; end by the host or a workspace admin.
"""

import logging
import secrets
from datetime import datetime, timezone

from flask import current_app

from oos.core.exceptions import NotFoundError, PermissionDenied, TransitionError
from oos.integrations.video import issue_token
from oos.models import db
from oos.models.auth import User
from oos.models.meeting import MeetingParticipant, VideoMeeting
from oos.services import authorization as authz

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _room_name(workspace_id: str) -> str:
    return f"ws-{workspace_id[:8]}-{secrets.token_hex(6)}"


def _identity(user: User) -> str:
    return user.email or user.id


def _get_meeting(workspace_id: str, meeting_id: str) -> VideoMeeting:
    meeting = db.session.get(VideoMeeting, meeting_id)
    if meeting is None or meeting.workspace_id != workspace_id:
        raise NotFoundError("VideoMeeting", meeting_id)
    return meeting


def _require_active(meeting: VideoMeeting, action: str) -> None:
    if not meeting.is_active:
        raise TransitionError("VideoMeeting", action, "ended", "Meeting has ended")


# ── Meetings ─────────────────────────────────────────────────────────────────


def start_meeting(workspace_id: str, user: User, is_paid_recording: bool = False) -> VideoMeeting:
    """Open a meeting in the workspace; the starter becomes its host."""
    authz.require_workspace_role(user.id, workspace_id)

    meeting = VideoMeeting(
        workspace_id=workspace_id,
        admin_id=user.id,
        room_name=_room_name(workspace_id),
        room_url=current_app.config.get("LIVEKIT_URL") or None,
        is_paid_recording=bool(is_paid_recording),
        started_at=_utcnow(),
    )
    db.session.add(meeting)
    db.session.commit()

    logger.info(
        "Meeting started",
        extra={"event_type": "meeting_started", "workspace_id": workspace_id,
               "meeting_id": meeting.id, "user_id": user.id},
    )
    return meeting


def list_meetings(workspace_id: str, user: User, active_only: bool = False) -> list[VideoMeeting]:
    """Newest first."""
    authz.require_workspace_role(user.id, workspace_id)
    q = VideoMeeting.query.filter_by(workspace_id=workspace_id)
    if active_only:
        q = q.filter(VideoMeeting.ended_at.is_(None))
    return q.order_by(VideoMeeting.created_at.desc()).all()


def get_meeting(workspace_id: str, meeting_id: str, user: User) -> VideoMeeting:
    authz.require_workspace_role(user.id, workspace_id)
    return _get_meeting(workspace_id, meeting_id)


def join_meeting(workspace_id: str, meeting_id: str, user: User) -> dict:
    """Record the caller as a participant and hand back a room token.

    participant_count counts distinct users; a rejoin reuses the row.

    Returns:
        dict with ``meeting``, ``participant`` (ORM objects) and ``token``.

    Raises:
        TransitionError: the meeting has ended.
        UpstreamError: video service not configured.
    """
    authz.require_workspace_role(user.id, workspace_id)
    meeting = _get_meeting(workspace_id, meeting_id)
    _require_active(meeting, "join")

    token = issue_token(meeting.room_name, _identity(user))

    participant = MeetingParticipant.query.filter_by(
        meeting_id=meeting.id, user_id=user.id,
    ).first()
    if participant is None:
        participant = MeetingParticipant(meeting_id=meeting.id, user_id=user.id)
        db.session.add(participant)
        meeting.participant_count = (meeting.participant_count or 0) + 1
    else:
        participant.joined_at = _utcnow()
        participant.left_at = None
    db.session.commit()

    return {"meeting": meeting, "participant": participant, "token": token}


def leave_meeting(workspace_id: str, meeting_id: str, user: User) -> MeetingParticipant:
    authz.require_workspace_role(user.id, workspace_id)
    meeting = _get_meeting(workspace_id, meeting_id)
    participant = MeetingParticipant.query.filter_by(
        meeting_id=meeting.id, user_id=user.id,
    ).first()
    if participant is None:
        raise NotFoundError("MeetingParticipant", user.id)

    if participant.left_at is None:
        participant.left_at = _utcnow()
        db.session.commit()
    return participant


def end_meeting(workspace_id: str, meeting_id: str, user: User) -> VideoMeeting:
    """Close the meeting, stamp its duration and check out open participants.

    Raises:
        PermissionDenied: caller is neither the host nor a workspace admin.
        TransitionError: already ended.
    """
    membership = authz.require_workspace_role(user.id, workspace_id)
    meeting = _get_meeting(workspace_id, meeting_id)
    if meeting.admin_id != user.id and membership.role != "admin":
        raise PermissionDenied(
            user.id, "meeting.end", "Only the host or a workspace admin can end this meeting",
        )
    _require_active(meeting, "end")

    ended_at = _utcnow()
    meeting.ended_at = ended_at
    started_at = _as_aware(meeting.started_at or meeting.created_at or ended_at)
    meeting.duration = max(0, int((ended_at - started_at).total_seconds()))
    MeetingParticipant.query.filter(
        MeetingParticipant.meeting_id == meeting.id,
        MeetingParticipant.left_at.is_(None),
    ).update({MeetingParticipant.left_at: ended_at}, synchronize_session=False)
    db.session.commit()

    logger.info(
        "Meeting ended",
        extra={"event_type": "meeting_ended", "meeting_id": meeting.id,
               "duration": meeting.duration, "user_id": user.id},
    )
    return meeting


def list_participants(workspace_id: str, meeting_id: str, user: User) -> list[MeetingParticipant]:
    authz.require_workspace_role(user.id, workspace_id)
    meeting = _get_meeting(workspace_id, meeting_id)
    return (
        MeetingParticipant.query
        .filter_by(meeting_id=meeting.id)
        .order_by(MeetingParticipant.joined_at)
        .all()
    )


# ── Room access ──────────────────────────────────────────────────────────────


def authorize_room(user: User, room_name: str) -> VideoMeeting | None:
    """Gate a token request for *room_name*.

    Rooms that belong to a workspace meeting require membership of that
    workspace and an active meeting.  Any other room name is not tracked
    and is returned as None.
    """
    meeting = VideoMeeting.query.filter_by(room_name=(room_name or "").strip()).first()
    if meeting is None:
        return None
    authz.require_workspace_role(user.id, meeting.workspace_id)
    _require_active(meeting, "join")
    return meeting
