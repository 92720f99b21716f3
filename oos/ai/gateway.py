"""
Text Generation Gateway — provider-agnostic router for AI content.

Providers:
    - OpenAI (chat completions)
    - Google Gemini (google-genai)
    - Local stub (templated placeholder text, no network)

Provider selection (AI_PROVIDER):
    "openai" / "gemini"  use that provider; falls back to stub when its key
                         is not configured
    "stub"               always stub
    ""                   first provider with a configured key, else stub

Stub mode is a configuration state, not an error path.  Real provider
failures are classified into UpstreamError reasons:

    invalid_api_key / HTTP 401, 403   → invalid_credentials
    insufficient_quota                → quota_exceeded
    HTTP 429 / RESOURCE_EXHAUSTED     → rate_limited
    anything else                     → upstream_error

Usage:
    from oos.ai.gateway import TextGenerationGateway
    gw = TextGenerationGateway.from_config(current_app.config)
    result = gw.generate("Q3 board meeting transcript ...", "meeting_minutes")
"""

import logging
import time
from abc import ABC, abstractmethod

from oos.ai.prompts import STUB_SECTIONS, build_messages
from oos.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500


# ── Provider Interface ───────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract base for chat-completion providers."""

    name = "base"

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send chat completion request.

        Returns:
            {
                "content": str,
                "prompt_tokens": int,
                "completion_tokens": int,
                "model": str,
            }
        """


# ── OpenAI Provider ──────────────────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    name = "openai"

    def __init__(self, api_key: str):
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                import openai
                self._client = openai.OpenAI(api_key=self.api_key)
            except ImportError:
                raise RuntimeError("openai package not installed. Run: pip install openai")
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o-mini", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", DEFAULT_MAX_TOKENS),
            temperature=kwargs.get("temperature", DEFAULT_TEMPERATURE),
        )
        choice = response.choices[0]
        usage = response.usage
        return {
            "content": choice.message.content or "No response generated",
            "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
            "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
            "model": model,
        }


# ── Google Gemini Provider ───────────────────────────────────────────────────

class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, api_key: str):
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                from google import genai
                self._client = genai.Client(api_key=self.api_key)
            except ImportError:
                raise RuntimeError(
                    "google-genai package not installed. Run: pip install google-genai"
                )
        return self._client

    def chat(self, messages: list, model: str = "gemini-2.5-flash", **kwargs) -> dict:
        client = self._get_client()
        from google.genai import types

        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        contents = [
            types.Content(
                role="model" if m["role"] == "assistant" else "user",
                parts=[types.Part(text=m["content"])],
            )
            for m in messages if m["role"] != "system"
        ]

        config = types.GenerateContentConfig(
            temperature=kwargs.get("temperature", DEFAULT_TEMPERATURE),
            max_output_tokens=kwargs.get("max_tokens", DEFAULT_MAX_TOKENS),
        )
        if system_parts:
            config.system_instruction = "\n\n".join(system_parts)

        response = client.models.generate_content(model=model, contents=contents, config=config)
        usage = response.usage_metadata
        return {
            "content": response.text or "No response generated",
            "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
            "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
            "model": model,
        }


# ── Local Stub Provider ──────────────────────────────────────────────────────

class LocalStubProvider(LLMProvider):
    """Deterministic placeholder output for dev/test without API keys."""

    name = "stub"

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        user_msg = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        content_type = kwargs.get("content_type") or "business_insights"
        content = self._render(user_msg, content_type)
        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    @staticmethod
    def _render(user_msg: str, content_type: str) -> str:
        title = content_type.replace("_", " ").title()
        excerpt = " ".join(user_msg.split())[:120]
        lines = [f"{title} (placeholder: no AI provider configured)", "", f"Input: {excerpt}", ""]
        for heading in STUB_SECTIONS.get(content_type, ("Summary",)):
            lines.append(f"## {heading}")
            lines.append("- Configure OPENAI_API_KEY or GEMINI_API_KEY for generated content.")
            lines.append("")
        return "\n".join(lines).rstrip()


# ── Error classification ─────────────────────────────────────────────────────

def classify_provider_error(exc: Exception, service: str) -> UpstreamError:
    """Map a provider SDK exception onto an UpstreamError reason."""
    code = getattr(exc, "code", None)
    status = getattr(exc, "status_code", None)
    if status is None and isinstance(code, int):
        status = code
    status_text = str(getattr(exc, "status", "") or "")

    if code == "invalid_api_key" or status in (401, 403):
        return UpstreamError(service, "invalid_credentials", f"Invalid {service} API key")
    if code == "insufficient_quota":
        return UpstreamError(service, "quota_exceeded", f"{service} API quota exceeded")
    if status == 429 or status_text == "RESOURCE_EXHAUSTED":
        return UpstreamError(
            service, "rate_limited", "Rate limit exceeded. Please wait a moment and try again.",
        )
    return UpstreamError(service, "upstream_error", f"{service} API error: {exc}")


# ── Gateway ──────────────────────────────────────────────────────────────────

class TextGenerationGateway:
    """
    Routes generation requests to one configured provider.

    Args:
        provider: The active LLMProvider.
        model: Model name passed through to the provider.
        max_tokens: Completion cap.
    """

    def __init__(self, provider: LLMProvider, model: str, max_tokens: int = DEFAULT_MAX_TOKENS):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config) -> "TextGenerationGateway":
        choice = (config.get("AI_PROVIDER") or "").strip().lower()
        max_tokens = config.get("AI_MAX_TOKENS", DEFAULT_MAX_TOKENS)
        openai_key = config.get("OPENAI_API_KEY") or ""
        gemini_key = config.get("GEMINI_API_KEY") or ""

        if not choice:
            choice = "openai" if openai_key else "gemini" if gemini_key else "stub"

        if choice == "openai" and openai_key:
            return cls(OpenAIProvider(openai_key), config.get("OPENAI_MODEL", "gpt-4o-mini"), max_tokens)
        if choice == "gemini" and gemini_key:
            return cls(GeminiProvider(gemini_key), config.get("GEMINI_MODEL", "gemini-2.5-flash"), max_tokens)
        if choice not in ("stub", "openai", "gemini"):
            logger.warning("Unknown AI_PROVIDER '%s'; using local stub", choice)
        return cls(LocalStubProvider(), "local-stub", max_tokens)

    @property
    def is_stub(self) -> bool:
        return isinstance(self.provider, LocalStubProvider)

    def generate(self, prompt: str, content_type: str) -> dict:
        """
        Generate text for *prompt* using the system prompt for *content_type*.

        Returns:
            {"content": str, "provider": str, "model": str,
             "prompt_tokens": int, "completion_tokens": int, "latency_ms": int}

        Raises:
            ValidationError: unknown content type.
            UpstreamError: provider failure, classified.
        """
        messages = build_messages(prompt, content_type)
        start = time.time()
        try:
            result = self.provider.chat(
                messages,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=DEFAULT_TEMPERATURE,
                content_type=content_type,
            )
        except RuntimeError as exc:
            logger.error("AI provider %s unavailable: %s", self.provider.name, exc)
            raise UpstreamError(self.provider.name, "not_configured", str(exc)) from exc
        except Exception as exc:
            error = classify_provider_error(exc, self.provider.name)
            logger.error(
                "AI generation failed provider=%s reason=%s: %s",
                self.provider.name, error.reason, exc,
            )
            raise error from exc

        latency_ms = int((time.time() - start) * 1000)
        logger.info(
            "AI generation ok provider=%s model=%s type=%s latency=%dms",
            self.provider.name, result["model"], content_type, latency_ms,
        )
        return {
            "content": result["content"],
            "provider": self.provider.name,
            "model": result["model"],
            "prompt_tokens": result["prompt_tokens"],
            "completion_tokens": result["completion_tokens"],
            "latency_ms": latency_ms,
        }
