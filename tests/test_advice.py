"""
Tests for the advice agent.

No real API calls: the agent is given a stub model.
"""

import asyncio
from decimal import Decimal

import pytest

from src.agents import (
    FALLBACK_ADVICE,
    AdviceAgent,
    BusinessSnapshot,
    build_prompt,
)
from src.models.ledger import LedgerTotals, Transaction


class StubResponse:
    def __init__(self, text):
        self.text = text


class StubModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text="Profit is healthy. Buy milk in bulk.", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return StubResponse(self.text)


@pytest.fixture
def snapshot():
    return BusinessSnapshot(
        business_name="Raju Tea Stall",
        totals=LedgerTotals(income=Decimal("1500"), expenses=Decimal("600")),
        recent=[
            Transaction(amount=Decimal("500"), category="Tea Sales", type="INCOME"),
            Transaction(amount=Decimal("200"), category="Milk", type="EXPENSE"),
        ],
        transaction_count=3,
    )


class TestBuildPrompt:
    """Tests for the advice prompt."""

    def test_prompt_contains_figures(self, snapshot):
        prompt = build_prompt(snapshot)
        assert '"Raju Tea Stall"' in prompt
        assert "Total Income: ₹1,500.00" in prompt
        assert "Net Profit: ₹900.00" in prompt
        assert "- INCOME: ₹500.00 (Tea Sales)" in prompt
        assert "- EXPENSE: ₹200.00 (Milk)" in prompt

    def test_prompt_without_recent_entries(self, snapshot):
        empty = snapshot.model_copy(update={"recent": []})
        assert "- (none)" in build_prompt(empty)


class TestAdviceAgent:
    """Tests for AdviceAgent.advise."""

    @pytest.mark.asyncio
    async def test_returns_model_text(self, snapshot):
        model = StubModel(text="  Profit is healthy.  ")
        agent = AdviceAgent(model=model)

        result = await agent.advise(snapshot)

        assert result.text == "Profit is healthy."
        assert result.used_fallback is False
        assert len(model.prompts) == 1

    @pytest.mark.asyncio
    async def test_no_model_falls_back(self, snapshot):
        agent = AdviceAgent()
        assert agent.available is False
        assert await agent.generate_advice(snapshot) == FALLBACK_ADVICE

    @pytest.mark.asyncio
    async def test_error_falls_back(self, snapshot):
        agent = AdviceAgent(model=StubModel(error=RuntimeError("quota exceeded")))
        result = await agent.advise(snapshot)
        assert result.text == FALLBACK_ADVICE
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, snapshot):
        agent = AdviceAgent(model=StubModel(delay=1.0), timeout_seconds=0.01)
        result = await agent.advise(snapshot)
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self, snapshot):
        agent = AdviceAgent(model=StubModel(text="   "))
        result = await agent.advise(snapshot)
        assert result.text == FALLBACK_ADVICE
