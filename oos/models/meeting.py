"""
Meeting Models — workspace video meetings, their participants and the
workspace chat log.

A VideoMeeting names one video room.  Tokens for that room are only issued
to members of the owning workspace.  Chat messages belong to a workspace and
optionally to one meeting; delivery to connected clients is out of scope,
the table is the record.
"""

import uuid
from datetime import datetime, timezone

from oos.models import db

__all__ = [
    "MAX_CHAT_MESSAGE_LENGTH",
    "ChatMessage",
    "MeetingParticipant",
    "VideoMeeting",
]


MAX_CHAT_MESSAGE_LENGTH = 4000


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class VideoMeeting(db.Model):
    __tablename__ = "video_meetings"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    admin_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        comment="Member who started the meeting",
    )
    room_name = db.Column(db.String(128), nullable=False, unique=True)
    room_url = db.Column(db.String(500))
    recording_url = db.Column(db.String(1000))
    is_paid_recording = db.Column(db.Boolean, nullable=False, default=False)
    duration = db.Column(db.Integer, nullable=False, default=0, comment="Seconds, set on end")
    participant_count = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    ended_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    participants = db.relationship(
        "MeetingParticipant", back_populates="meeting", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    def to_dict(self):
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "admin_id": self.admin_id,
            "room_name": self.room_name,
            "room_url": self.room_url,
            "recording_url": self.recording_url,
            "is_paid_recording": self.is_paid_recording,
            "duration": self.duration,
            "participant_count": self.participant_count,
            "is_active": self.is_active,
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<VideoMeeting {self.room_name} ws={self.workspace_id}>"


class MeetingParticipant(db.Model):
    """One row per (meeting, user); a rejoin clears left_at."""

    __tablename__ = "meeting_participants"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    meeting_id = db.Column(
        db.String(36), db.ForeignKey("video_meetings.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    left_at = db.Column(db.DateTime(timezone=True))

    __table_args__ = (
        db.UniqueConstraint("meeting_id", "user_id", name="uq_meeting_participant"),
    )

    meeting = db.relationship("VideoMeeting", back_populates="participants")

    def to_dict(self):
        return {
            "id": self.id,
            "meeting_id": self.meeting_id,
            "user_id": self.user_id,
            "joined_at": _iso(self.joined_at),
            "left_at": _iso(self.left_at),
        }


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    meeting_id = db.Column(
        db.String(36), db.ForeignKey("video_meetings.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    author = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "meeting_id": self.meeting_id,
            "user_id": self.user_id,
            "full_name": self.author.full_name if self.author else None,
            "message": self.message,
            "created_at": _iso(self.created_at),
        }
