"""LLMService: LiteLLM Router wrapper.

The Router is replaced with mocks so no provider is called.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.saleslens.config import Settings
from src.saleslens.core.errors import UpstreamConfigurationError, UpstreamServiceError
from src.saleslens.services.llm import LLMService


def _settings(**overrides) -> Settings:
    defaults = {"OPENAI_API_KEY": "", "ANTHROPIC_API_KEY": "", "LLM_TIMEOUT": 30}
    defaults.update(overrides)
    return Settings(**defaults)


def _mock_response(content: str = "Hello!") -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.model = "gpt-4o-mini"
    response.usage = MagicMock()
    response.usage.prompt_tokens = 10
    response.usage.completion_tokens = 15
    response.usage.total_tokens = 25
    return response


def test_no_keys_leaves_router_unset():
    service = LLMService(_settings())
    assert service.router is None
    assert service.configured is False


def test_both_keys_register_two_fast_deployments():
    service = LLMService(_settings(OPENAI_API_KEY="sk-openai", ANTHROPIC_API_KEY="sk-anthropic"))

    assert service.configured is True
    assert [d["model_name"] for d in service.router.model_list] == ["fast", "fast"]


async def test_completion_without_keys_raises_configuration_error():
    service = LLMService(_settings())
    with pytest.raises(UpstreamConfigurationError):
        await service.completion([{"role": "user", "content": "Hi"}])


async def test_completion_returns_content_model_usage():
    service = LLMService(_settings(OPENAI_API_KEY="sk-openai"))
    service.router = MagicMock()
    service.router.acompletion = AsyncMock(return_value=_mock_response())

    result = await service.completion([{"role": "user", "content": "Hi"}], temperature=0.3)

    assert result == {
        "content": "Hello!",
        "model": "gpt-4o-mini",
        "usage": {"prompt_tokens": 10, "completion_tokens": 15, "total_tokens": 25},
    }
    kwargs = service.router.acompletion.call_args.kwargs
    assert kwargs["model"] == "fast"
    assert kwargs["temperature"] == 0.3


async def test_provider_failure_is_wrapped():
    service = LLMService(_settings(OPENAI_API_KEY="sk-openai"))
    service.router = MagicMock()
    service.router.acompletion = AsyncMock(side_effect=RuntimeError("rate limited"))

    with pytest.raises(UpstreamServiceError) as exc_info:
        await service.completion([{"role": "user", "content": "Hi"}])

    assert exc_info.value.status_code == 502
    assert "rate limited" in exc_info.value.message
    assert service.router.acompletion.await_count == 1
