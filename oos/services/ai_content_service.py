"""
AI Content Service — generate text through the gateway and keep a record.

Every successful generation is stored as AIGeneratedContent with the prompt,
requesting user, provider and model in its metadata.  Failed generations
write nothing.
"""

import logging

from flask import current_app

from oos.ai.gateway import TextGenerationGateway
from oos.ai.prompts import MAX_PROMPT_LENGTH, validate_content_type
from oos.core.exceptions import NotFoundError, ValidationError
from oos.models import db
from oos.models.ai import AIGeneratedContent
from oos.models.auth import User
from oos.models.startup import Startup
from oos.services import authorization as authz

logger = logging.getLogger(__name__)


def _gateway() -> TextGenerationGateway:
    return TextGenerationGateway.from_config(current_app.config)


def generate_content(
    user: User,
    prompt: str,
    content_type: str,
    workspace_id: str | None = None,
    startup_id: str | None = None,
    gateway: TextGenerationGateway | None = None,
) -> AIGeneratedContent:
    """Run one generation and persist the result.

    A workspace-scoped request requires membership of that workspace.

    Raises:
        ValidationError: empty/oversized prompt or unknown type.
        NotFoundError / PermissionDenied: bad workspace or startup scope.
        UpstreamError: provider failure.
    """
    prompt = (prompt or "").strip()
    if not prompt or not content_type:
        raise ValidationError("Prompt and type are required", details={"prompt": "required"})
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError("Prompt is too long", details={"prompt": "too_long"})
    validate_content_type(content_type)

    if workspace_id:
        authz.require_workspace_role(user.id, workspace_id)
    if startup_id and db.session.get(Startup, startup_id) is None:
        raise NotFoundError("Startup", startup_id)

    result = (gateway or _gateway()).generate(prompt, content_type)

    record = AIGeneratedContent(
        workspace_id=workspace_id or None,
        startup_id=startup_id or None,
        content_type=content_type,
        content=result["content"],
        meta={
            "prompt": prompt,
            "user_id": user.id,
            "provider": result["provider"],
            "model": result["model"],
        },
    )
    db.session.add(record)
    db.session.commit()

    logger.info(
        "AI content stored",
        extra={"event_type": "ai_content_generated", "user_id": user.id,
               "content_type": content_type, "provider": result["provider"]},
    )
    return record


def list_content(
    user: User,
    workspace_id: str | None = None,
    startup_id: str | None = None,
    content_type: str | None = None,
) -> list[AIGeneratedContent]:
    q = AIGeneratedContent.query
    if workspace_id:
        authz.require_workspace_role(user.id, workspace_id)
        q = q.filter_by(workspace_id=workspace_id)
    if startup_id:
        q = q.filter_by(startup_id=startup_id)
    if content_type:
        q = q.filter_by(content_type=validate_content_type(content_type))
    return q.order_by(AIGeneratedContent.created_at.desc()).limit(100).all()
