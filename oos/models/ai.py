"""
AI domain models.

Models:
    - AIGeneratedContent: every text-generation result, scoped to an optional
      workspace and/or startup, with the prompt and provider kept in metadata.
"""

import uuid
from datetime import datetime, timezone

from oos.models import db


# ── Constants ────────────────────────────────────────────────────────────────

AI_PROVIDERS = {"openai", "gemini", "stub"}
CONTENT_TYPES = frozenset({
    "meeting_minutes",
    "risk_analysis",
    "startup_rating",
    "business_insights",
})


def _uuid():
    return str(uuid.uuid4())


class AIGeneratedContent(db.Model):
    __tablename__ = "ai_generated_content"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    startup_id = db.Column(
        db.String(36), db.ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    content_type = db.Column(db.String(30), nullable=False)
    content = db.Column(db.Text, nullable=False)
    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "startup_id": self.startup_id,
            "content_type": self.content_type,
            "content": self.content,
            "metadata": self.meta or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
