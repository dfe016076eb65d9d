"""AI agents package."""

from src.agents.advice import (
    FALLBACK_ADVICE,
    PLACEHOLDER_ADVICE,
    AdviceAgent,
    AdviceResult,
    BusinessSnapshot,
    build_prompt,
)

__all__ = [
    "FALLBACK_ADVICE",
    "PLACEHOLDER_ADVICE",
    "AdviceAgent",
    "AdviceResult",
    "BusinessSnapshot",
    "build_prompt",
]
