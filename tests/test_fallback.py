"""
Fallback executor: ordering, single attempts, short replies, timeouts
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

import fallback
from conftest import FakeBackend
from fallback import FALLBACK_MESSAGE, FallbackExecutor
from providers import PROVIDERS, Provider, get_provider

MESSAGES = [{"role": "user", "content": "Which universities suit me?"}]
GOOD_REPLY = "Consider the University of Toronto and UBC."


def make_executor(openrouter=None, gemini=None, **kwargs):
    kwargs.setdefault("backoff_seconds", 0)
    return FallbackExecutor(
        backends={
            "openrouter": openrouter or FakeBackend(),
            "gemini": gemini or FakeBackend(),
        },
        **kwargs,
    )


class TestRegistry:

    def test_registry_order(self):
        assert [p.identifier for p in PROVIDERS] == ["balanced", "powerful", "fast", "gemini"]

    def test_get_provider(self):
        assert get_provider("balanced").reliability == 0.80
        assert get_provider("fast").timeout == 15
        assert get_provider("gemini").backend == "gemini"
        assert get_provider("unknown") is None


class TestCandidates:

    def test_preferred_first_then_registry_order(self):
        executor = make_executor()
        order = [p.identifier for p in executor.candidates(["fast", "balanced"])]
        assert order == ["fast", "balanced", "powerful", "gemini"]

    def test_duplicates_and_unknown_ignored(self):
        executor = make_executor()
        order = [p.identifier for p in executor.candidates(["gemini", "gemini", "nope"])]
        assert order == ["gemini", "balanced", "powerful", "fast"]

    def test_no_preference_uses_registry(self):
        executor = make_executor()
        assert [p.identifier for p in executor.candidates()] == ["balanced", "powerful", "fast", "gemini"]


@pytest.mark.asyncio
class TestExecute:

    async def test_first_preferred_success(self):
        openrouter = FakeBackend(default=GOOD_REPLY)
        result = await make_executor(openrouter).execute(MESSAGES, ["fast", "balanced"])

        assert result.succeeded is True
        assert result.provider_used == "fast"
        assert result.attempt_count == 1
        assert result.reliability == 0.85
        assert result.text == GOOD_REPLY
        assert openrouter.calls[0]["model"] == get_provider("fast").model

    async def test_short_reply_counts_as_failure(self):
        openrouter = FakeBackend(default="  ok   ")
        gemini = FakeBackend(default=GOOD_REPLY)
        result = await make_executor(openrouter, gemini).execute(MESSAGES, ["balanced", "fast"])

        assert result.provider_used == "gemini"
        assert result.attempt_count == 4
        assert len(openrouter.calls) == 3

    async def test_exception_moves_to_next_provider(self):
        balanced_model = get_provider("balanced").model
        openrouter = FakeBackend(default=GOOD_REPLY, replies={balanced_model: RuntimeError("rate limited")})
        result = await make_executor(openrouter).execute(MESSAGES, ["balanced", "powerful"])

        assert result.provider_used == "powerful"
        assert result.attempt_count == 2

    async def test_all_fail_returns_fallback_message(self):
        openrouter = FakeBackend()
        gemini = FakeBackend(default=RuntimeError("down"))
        result = await make_executor(openrouter, gemini).execute(MESSAGES, ["fast"])

        assert result.succeeded is False
        assert result.text == FALLBACK_MESSAGE
        assert result.provider_used == "fallback"
        assert result.reliability == 0.0
        assert result.attempt_count == len(PROVIDERS)

    async def test_each_provider_attempted_once(self):
        openrouter = FakeBackend()
        gemini = FakeBackend()
        await make_executor(openrouter, gemini).execute(MESSAGES, ["fast", "fast", "balanced"])

        models = [call["model"] for call in openrouter.calls + gemini.calls]
        assert sorted(models) == sorted(p.model for p in PROVIDERS)

    async def test_timeout_is_a_failure(self):
        class SlowBackend:
            async def complete(self, messages, model, timeout):
                await asyncio.sleep(5)
                return GOOD_REPLY

        providers = [
            Provider("slow", "slow", "slow-model", 0.9, 0.05, "Slow"),
            Provider("quick", "openrouter", "quick-model", 0.6, 1, "Quick"),
        ]
        executor = FallbackExecutor(
            providers=providers,
            backends={"slow": SlowBackend(), "openrouter": FakeBackend(default=GOOD_REPLY)},
            backoff_seconds=0,
        )
        result = await executor.execute(MESSAGES)

        assert result.provider_used == "quick"
        assert result.attempt_count == 2

    async def test_missing_backend_is_a_failure(self):
        providers = [
            Provider("orphan", "nowhere", "m1", 0.9, 1, "Orphan"),
            Provider("ok", "openrouter", "m2", 0.7, 1, "Ok"),
        ]
        executor = FallbackExecutor(
            providers=providers,
            backends={"openrouter": FakeBackend(default=GOOD_REPLY)},
            backoff_seconds=0,
        )
        result = await executor.execute(MESSAGES)
        assert result.provider_used == "ok"

    async def test_backoff_only_between_attempts(self, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr(fallback.asyncio, "sleep", sleep)
        providers = [
            Provider("one", "openrouter", "m1", 0.9, 1, "One"),
            Provider("two", "openrouter", "m2", 0.8, 1, "Two"),
        ]
        executor = FallbackExecutor(
            providers=providers,
            backends={"openrouter": FakeBackend()},
            backoff_seconds=0.5,
        )
        result = await executor.execute(MESSAGES)

        assert result.succeeded is False
        sleep.assert_awaited_once_with(0.5)
