"""
Prompt templates for text generation, one system prompt per content type.
"""

from oos.core.exceptions import ValidationError
from oos.models.ai import CONTENT_TYPES

SYSTEM_PROMPTS = {
    "meeting_minutes": "Create concise meeting minutes with key decisions, action items, and next steps.",
    "risk_analysis": "Analyze business risks and provide mitigation strategies.",
    "startup_rating": "Evaluate startup potential and provide investment recommendations.",
    "business_insights": "Provide data-driven business insights and strategic recommendations.",
}

# Headings used by the stub provider so placeholder output has the right shape
STUB_SECTIONS = {
    "meeting_minutes": ("Key decisions", "Action items", "Next steps"),
    "risk_analysis": ("Identified risks", "Likelihood and impact", "Mitigation strategies"),
    "startup_rating": ("Market potential", "Team", "Innovation", "Recommendation"),
    "business_insights": ("Observations", "Opportunities", "Recommendations"),
}

MAX_PROMPT_LENGTH = 8000


def validate_content_type(content_type: str) -> str:
    if content_type not in CONTENT_TYPES:
        raise ValidationError(
            f"Invalid type '{content_type}'. Must be one of: {', '.join(sorted(CONTENT_TYPES))}",
            details={"type": "invalid"},
        )
    return content_type


def build_messages(prompt: str, content_type: str) -> list[dict]:
    """Return the chat message list for one generation request."""
    validate_content_type(content_type)
    return [
        {"role": "system", "content": SYSTEM_PROMPTS[content_type]},
        {"role": "user", "content": prompt},
    ]
