"""
Provider registry.

Registry order is the default fallback order used by the executor.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class Provider:
    identifier: str
    backend: str            # "openrouter" | "gemini"
    model: str
    reliability: float      # 0-1, feeds the confidence score
    timeout: float          # seconds per attempt
    specialization: str


PROVIDERS = (
    Provider(
        identifier="balanced",
        backend="openrouter",
        model="mistralai/mistral-7b-instruct:free",
        reliability=0.80,
        timeout=20,
        specialization="General intelligence",
    ),
    Provider(
        identifier="powerful",
        backend="openrouter",
        model="meta-llama/llama-3-8b-instruct:free",
        reliability=0.75,
        timeout=25,
        specialization="Deep reasoning",
    ),
    Provider(
        identifier="fast",
        backend="openrouter",
        model="google/gemini-2.0-flash-lite-preview-02-05:free",
        reliability=0.85,
        timeout=15,
        specialization="Quick recommendations",
    ),
    Provider(
        identifier="gemini",
        backend="gemini",
        model="gemini-1.5-flash",
        reliability=0.70,
        timeout=20,
        specialization="Direct Gemini access",
    ),
)

_BY_IDENTIFIER: Dict[str, Provider] = {p.identifier: p for p in PROVIDERS}


def get_provider(identifier: str) -> Optional[Provider]:
    return _BY_IDENTIFIER.get(identifier)


def default_backends() -> Dict[str, object]:
    """Backend name -> client exposing `async complete(messages, model, timeout)`."""
    from openrouter_client import OpenRouterClient
    from gemini_client import GeminiClient

    return {
        "openrouter": OpenRouterClient(),
        "gemini": GeminiClient(),
    }
