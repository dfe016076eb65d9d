"""
Business Advice Agent

Turns a snapshot of the ledger into two or three sentences of advice for
the shop owner, using Gemini.

BOUNDARIES:
- CAN: Read a summary (totals, a few recent entries, the shop name)
- CANNOT: Change the ledger in any way
- MUST: Return something. Timeouts, API errors and empty replies all
  become the static fallback message; nothing is raised to the caller.
"""

import asyncio
from decimal import Decimal
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from src.config import GeminiSettings
from src.models.ledger import LedgerTotals, Transaction


FALLBACK_ADVICE = "Could not generate insights at this time. Keep tracking your sales!"
PLACEHOLDER_ADVICE = "Recording data to generate AI insights..."


class BusinessSnapshot(BaseModel):
    """What the advice prompt is built from."""

    business_name: str
    totals: LedgerTotals
    recent: list[Transaction] = Field(default_factory=list)
    transaction_count: int = Field(default=0, ge=0)


class AdviceResult(BaseModel):
    """Advice text plus whether it came from the model."""

    text: str
    used_fallback: bool


def _money(amount: Decimal, symbol: str) -> str:
    return f"{symbol}{amount:,.2f}"


def build_prompt(snapshot: BusinessSnapshot, currency_symbol: str = "₹") -> str:
    """Prompt for one round of advice."""
    totals = snapshot.totals
    recent_lines = "\n".join(
        f"- {t.type.value}: {_money(t.amount, currency_symbol)} ({t.category})"
        for t in snapshot.recent
    ) or "- (none)"

    return f"""Analyze the daily business data for "{snapshot.business_name}".
Total Income: {_money(totals.income, currency_symbol)}
Total Expenses: {_money(totals.expenses, currency_symbol)}
Net Profit: {_money(totals.profit, currency_symbol)}

Recent Transactions:
{recent_lines}

Please provide a short (2-3 sentence) professional advice on:
1. Profitability status.
2. Cost management suggestions (especially if expenses are high).
3. One growth tip for a tea stall.
Return only the plain text advice."""


class AdviceAgent:
    """
    Gemini-backed advice generator.

    Pass `model` to use anything with an async `generate_content_async`
    (tests use a stub). Without a model and without settings the agent
    only ever returns the fallback.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        timeout_seconds: Optional[float] = None,
        currency_symbol: str = "₹",
    ):
        self._settings = settings
        self._model = model
        self._timeout = timeout_seconds or (settings.timeout_seconds if settings else 15.0)
        self._currency = currency_symbol
        self._logger = structlog.get_logger(__name__)
        if self._model is None and settings is not None:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def available(self) -> bool:
        return self._model is not None

    async def advise(self, snapshot: BusinessSnapshot) -> AdviceResult:
        """Ask the model for advice; fall back on any failure."""
        if self._model is None:
            return AdviceResult(text=FALLBACK_ADVICE, used_fallback=True)

        prompt = build_prompt(snapshot, self._currency)
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._timeout,
            )
            text = (response.text or "").strip()
        except asyncio.TimeoutError:
            self._logger.warning("advice_timeout", timeout_seconds=self._timeout)
            return AdviceResult(text=FALLBACK_ADVICE, used_fallback=True)
        except Exception as e:
            self._logger.warning("advice_failed", error=str(e))
            return AdviceResult(text=FALLBACK_ADVICE, used_fallback=True)

        if not text:
            self._logger.warning("advice_empty")
            return AdviceResult(text=FALLBACK_ADVICE, used_fallback=True)

        return AdviceResult(text=text, used_fallback=False)

    async def generate_advice(self, snapshot: BusinessSnapshot) -> str:
        """Advice text only."""
        return (await self.advise(snapshot)).text
