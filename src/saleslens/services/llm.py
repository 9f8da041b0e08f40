"""LLM provider abstraction via LiteLLM Router.

Provides an LLM service with:
- a "fast" model group (GPT-4o-mini, with a Claude Haiku deployment when an
  Anthropic key is configured)
- no automatic retries: every attempt is a billed call, so failures
  surface to the caller and the user retries manually
- Prometheus tracking of every call via track_llm_call
"""

from __future__ import annotations

from typing import Any

import structlog
from litellm import Router

from src.saleslens.config import Settings, get_settings
from src.saleslens.core.errors import UpstreamConfigurationError, UpstreamServiceError
from src.saleslens.core.monitoring import track_llm_call

logger = structlog.get_logger(__name__)


class LLMService:
    """LLM provider abstraction with LiteLLM Router.

    Both configured providers are registered as deployments of the same
    model group; the router picks one per call and never retries.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()

        model_list = []

        if settings.OPENAI_API_KEY:
            model_list.append({
                "model_name": "fast",
                "litellm_params": {
                    "model": settings.LLM_OPENAI_MODEL,
                    "api_key": settings.OPENAI_API_KEY,
                },
            })

        if settings.ANTHROPIC_API_KEY:
            model_list.append({
                "model_name": "fast",
                "litellm_params": {
                    "model": settings.LLM_ANTHROPIC_MODEL,
                    "api_key": settings.ANTHROPIC_API_KEY,
                },
            })

        if not model_list:
            logger.warning("llm.no_api_keys", hint="LLM service will be unavailable")
            self.router = None
            return

        self.router = Router(
            model_list=model_list,
            num_retries=0,
            timeout=settings.LLM_TIMEOUT,
        )

    @property
    def configured(self) -> bool:
        return self.router is not None

    async def completion(
        self,
        messages: list[dict],
        model: str = "fast",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        metadata: dict | None = None,
    ) -> dict:
        """Execute a completion call through the LiteLLM Router.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model group name.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0-2).
            metadata: Additional metadata to include in the call.

        Returns:
            Dict with content, model and usage.

        Raises:
            UpstreamConfigurationError: If no LLM API keys are configured.
            UpstreamServiceError: If the provider call fails.
        """
        if not self.router:
            raise UpstreamConfigurationError(
                "No LLM API key is configured (OPENAI_API_KEY or ANTHROPIC_API_KEY)."
            )

        async with track_llm_call(model) as tracker:
            try:
                response = await self.router.acompletion(
                    model=model,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    metadata=metadata or {},
                )
            except Exception as exc:
                logger.error("llm.completion_failed", model=model, error=str(exc))
                raise UpstreamServiceError(f"Language model request failed: {exc}") from exc

            usage: dict[str, Any] = {}
            if getattr(response, "usage", None):
                usage = {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }
                tracker["prompt_tokens"] = usage["prompt_tokens"]
                tracker["completion_tokens"] = usage["completion_tokens"]

        return {
            "content": response.choices[0].message.content or "",
            "model": response.model,
            "usage": usage,
        }
