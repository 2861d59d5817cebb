"""Tests for narrative generation, fallback and per-assessment serialization."""

import asyncio
import gc
import json

import pytest

from pragma_score import store
from pragma_score.db import SessionLocal
from pragma_score.lifecycle import InvalidTransition
from pragma_score.narrative import (
    NarrativeCoordinator,
    build_prompt,
    fallback_narrative,
    generate_narrative,
)
from pragma_score.scoring import calculate_scores

VALID_NARRATIVE = {
    "executive_summary": "Acme runs on the owner's memory.",
    "dimension_insights": [
        {"dimension": "Control", "insight": "Approvals pile up.", "recommendation": "Delegate quotes."}
    ],
    "ai_investment_analysis": {
        "current_state": "Light use of assistants.",
        "budget_readiness": "Informal budget.",
        "recommendations": ["Pilot one workflow"],
    },
    "implementation_roadmap": [{"phase": "Quick Wins", "timeline": "Weeks 1-2", "actions": ["Write SOPs"]}],
    "key_takeaways": ["Document the quoting process"],
}


class FakeGenerator:
    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def scores(baseline_responses):
    return calculate_scores(baseline_responses)


class TestGenerateNarrative:
    @pytest.mark.asyncio
    async def test_valid_reply(self, scores, baseline_responses):
        generator = FakeGenerator(reply=json.dumps(VALID_NARRATIVE))
        narrative = await generate_narrative(scores, baseline_responses, "Acme", generator, timeout=5)
        assert narrative["source"] == "ai"
        assert narrative["executive_summary"] == VALID_NARRATIVE["executive_summary"]
        assert narrative["generated_at"]
        assert len(generator.prompts) == 1

    @pytest.mark.asyncio
    async def test_fenced_reply_is_parsed(self, scores, baseline_responses):
        reply = "Here you go:\n```json\n" + json.dumps(VALID_NARRATIVE) + "\n```"
        narrative = await generate_narrative(scores, baseline_responses, "Acme", FakeGenerator(reply=reply), timeout=5)
        assert narrative["source"] == "ai"

    @pytest.mark.asyncio
    async def test_generator_error_uses_fallback(self, scores, baseline_responses):
        generator = FakeGenerator(error=RuntimeError("provider down"))
        narrative = await generate_narrative(scores, baseline_responses, "Acme", generator, timeout=5)
        assert narrative["source"] == "fallback"
        assert "Acme scored 60/100" in narrative["executive_summary"]

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(self, scores, baseline_responses):
        generator = FakeGenerator(reply=json.dumps(VALID_NARRATIVE), delay=1.0)
        narrative = await generate_narrative(scores, baseline_responses, "Acme", generator, timeout=0.01)
        assert narrative["source"] == "fallback"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["not json at all", "[1, 2, 3]", json.dumps({"executive_summary": ""})])
    async def test_malformed_reply_uses_fallback(self, scores, baseline_responses, reply):
        narrative = await generate_narrative(scores, baseline_responses, "Acme", FakeGenerator(reply=reply), timeout=5)
        assert narrative["source"] == "fallback"

    @pytest.mark.asyncio
    async def test_no_generator_uses_fallback(self, scores, baseline_responses):
        narrative = await generate_narrative(scores, baseline_responses, "Acme", None, timeout=5)
        assert narrative["source"] == "fallback"


class TestFallback:
    def test_fallback_is_deterministic_apart_from_timestamp(self, scores):
        first = fallback_narrative(scores, "Acme")
        second = fallback_narrative(scores, "Acme")
        first.pop("generated_at")
        second.pop("generated_at")
        assert first == second

    def test_fallback_mentions_weakest_and_strongest(self):
        scores = calculate_scores({"clarity-1": "Yes, within 5%"})
        narrative = fallback_narrative(scores, "Acme")
        assert "weakest area is Control" in narrative["executive_summary"]
        assert "Clarity is the strongest" in narrative["executive_summary"]
        assert len(narrative["dimension_insights"]) == 6
        assert narrative["key_takeaways"] == ["Control", "Leverage"]

    def test_prompt_includes_profile_and_scores(self, scores):
        prompt = build_prompt(scores, {"profile-3": "Construction / Trades", "control-1": "Quotes and invoicing stop entirely"}, "Acme")
        assert "Construction / Trades" in prompt
        assert "Control: 10/17 (60%, stable)" in prompt
        assert "control-1: Quotes and invoicing stop entirely" in prompt

    def test_prompt_includes_sales_and_tools(self, scores):
        prompt = build_prompt(scores, {
            "sales-2": "$15,000 - $50,000",
            "sales-3": "We don't track this",
            "sales-6": "Not enough qualified leads",
            "tech-1": ["HubSpot / Salesforce (CRM)", "Slack / Teams (communication)"],
        }, "Acme")
        assert "Average deal size: $15,000 - $50,000; close rate: We don't track this" in prompt
        assert "Biggest revenue constraint: Not enough qualified leads" in prompt
        assert "Current tools: HubSpot / Salesforce (CRM), Slack / Teams (communication)" in prompt


class TestCoordinator:
    def _submitted(self, db, responses):
        row = store.create_assessment(db, name="Dana", email="dana@example.com", company="Acme")
        return store.submit_assessment(db, row.token, responses=responses)

    @pytest.mark.asyncio
    async def test_concurrent_requests_generate_once(self, db, baseline_responses):
        row = self._submitted(db, baseline_responses)
        generator = FakeGenerator(reply=json.dumps(VALID_NARRATIVE), delay=0.05)
        coordinator = NarrativeCoordinator()

        results = await asyncio.gather(
            coordinator.ensure(db, row.token, generator, timeout=5),
            coordinator.ensure(db, row.token, generator, timeout=5),
        )

        assert len(generator.prompts) == 1
        assert sorted(cached for _, cached in results) == [False, True]
        assert store.get_assessment(db, row.token).narrative["source"] == "ai"

    @pytest.mark.asyncio
    async def test_force_regenerates(self, db, baseline_responses):
        row = self._submitted(db, baseline_responses)
        generator = FakeGenerator(reply=json.dumps(VALID_NARRATIVE))
        coordinator = NarrativeCoordinator()
        await coordinator.ensure(db, row.token, generator, timeout=5)
        _, cached = await coordinator.ensure(db, row.token, generator, timeout=5, force=True)
        assert cached is False
        assert len(generator.prompts) == 2

    @pytest.mark.asyncio
    async def test_requires_scored_assessment(self, db):
        row = store.create_assessment(db, name="Dana", email="dana@example.com", company="Acme")
        with pytest.raises(InvalidTransition):
            await NarrativeCoordinator().ensure(db, row.token, FakeGenerator(reply="{}"), timeout=5)

    @pytest.mark.asyncio
    async def test_release_during_generation_discards_late_narrative(self, db, baseline_responses):
        token = self._submitted(db, baseline_responses).token

        class ReleasingGenerator:
            """Another admin reviews and releases while this call is in flight."""

            async def generate(self, prompt):
                other = SessionLocal()
                try:
                    store.store_narrative(other, token, {"executive_summary": "Reviewed by hand"})
                    store.release_assessment(other, token)
                finally:
                    other.close()
                return json.dumps({**VALID_NARRATIVE, "executive_summary": "Late rewrite"})

        with pytest.raises(InvalidTransition):
            await NarrativeCoordinator().ensure(db, token, ReleasingGenerator(), timeout=5)

        stored = store.lock_assessment(db, token)
        assert stored.status == "released"
        assert stored.narrative["executive_summary"] == "Reviewed by hand"

    @pytest.mark.asyncio
    async def test_locks_are_dropped_when_idle(self, db, baseline_responses):
        token = self._submitted(db, baseline_responses).token
        coordinator = NarrativeCoordinator()
        await coordinator.ensure(db, token, FakeGenerator(reply=json.dumps(VALID_NARRATIVE)), timeout=5)
        gc.collect()
        assert token not in coordinator._locks
