"""
Sequential multi-provider executor.

Each candidate provider gets one attempt bounded by its timeout. The first
reply long enough to be useful wins. When every provider fails the caller
still gets a canned message, never an exception.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence
import asyncio
import logging

from config import settings
from providers import PROVIDERS, Provider, default_backends

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I'm experiencing high traffic right now! Please try again in a moment. "
    "Meanwhile, keep your profile up to date, review your shortlisted universities "
    "and work through your pending tasks."
)


@dataclass
class ExecutionResult:
    text: str
    provider_used: str
    attempt_count: int
    succeeded: bool
    reliability: float
    model: Optional[str] = None
    specialization: Optional[str] = None


class FallbackExecutor:
    def __init__(
        self,
        providers: Optional[Sequence[Provider]] = None,
        backends: Optional[Dict[str, object]] = None,
        backoff_seconds: Optional[float] = None,
        min_response_length: Optional[int] = None,
    ):
        self.providers = tuple(providers) if providers is not None else PROVIDERS
        self._backends = backends
        self.backoff_seconds = settings.PROVIDER_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.min_response_length = (
            settings.MIN_RESPONSE_LENGTH if min_response_length is None else min_response_length
        )

    @property
    def backends(self) -> Dict[str, object]:
        if self._backends is None:
            self._backends = default_backends()
        return self._backends

    def candidates(self, preferred: Optional[Iterable[str]] = None) -> List[Provider]:
        """Preferred providers first (deduplicated, unknown ones dropped), then the rest in registry order."""
        known = {p.identifier: p for p in self.providers}
        ordered: List[Provider] = []
        for identifier in preferred or []:
            provider = known.get(identifier)
            if provider and provider not in ordered:
                ordered.append(provider)
        for provider in self.providers:
            if provider not in ordered:
                ordered.append(provider)
        return ordered

    async def _attempt(self, provider: Provider, messages: List[Dict[str, str]]) -> str:
        backend = self.backends.get(provider.backend)
        if backend is None:
            raise LookupError(f"No backend registered for '{provider.backend}'")

        reply = await asyncio.wait_for(
            backend.complete(messages, provider.model, provider.timeout),
            timeout=provider.timeout,
        )
        text = (reply or "").strip()
        if len(text) < self.min_response_length:
            raise ValueError(f"Response too short ({len(text)} chars)")
        return text

    async def execute(
        self,
        messages: List[Dict[str, str]],
        preferred: Optional[Iterable[str]] = None,
    ) -> ExecutionResult:
        candidates = self.candidates(preferred)
        attempts = 0

        for index, provider in enumerate(candidates):
            attempts += 1
            logger.info(f"[PROVIDER] Attempt {attempts}: {provider.identifier} ({provider.model})")
            try:
                text = await self._attempt(provider, messages)
            except asyncio.TimeoutError:
                logger.warning(f"[PROVIDER] {provider.identifier} timed out after {provider.timeout}s")
            except Exception as e:
                logger.warning(f"[PROVIDER] {provider.identifier} failed: {type(e).__name__}: {str(e)}")
            else:
                logger.info(f"[SUCCESS] {provider.identifier} answered on attempt {attempts}")
                return ExecutionResult(
                    text=text,
                    provider_used=provider.identifier,
                    attempt_count=attempts,
                    succeeded=True,
                    reliability=provider.reliability,
                    model=provider.model,
                    specialization=provider.specialization,
                )

            if index < len(candidates) - 1 and self.backoff_seconds > 0:
                await asyncio.sleep(self.backoff_seconds)

        logger.error(f"[ERROR] All {attempts} providers failed, serving fallback message")
        return ExecutionResult(
            text=FALLBACK_MESSAGE,
            provider_used="fallback",
            attempt_count=attempts,
            succeeded=False,
            reliability=0.0,
            model=None,
            specialization="Fallback",
        )


_default_executor: Optional[FallbackExecutor] = None


def get_executor() -> FallbackExecutor:
    """FastAPI dependency returning the shared executor, built on first use."""
    global _default_executor
    if _default_executor is None:
        _default_executor = FallbackExecutor()
    return _default_executor
