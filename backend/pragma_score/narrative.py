from __future__ import annotations
import asyncio
import json
import logging
import re
import weakref
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from . import store
from .lifecycle import check_narrative_allowed
from .profile import extract_business_profile
from .scoring import ScorecardResult

logger = logging.getLogger(__name__)


class NarrativeFormatError(ValueError):
	pass


class DimensionInsight(BaseModel):
	dimension: str
	insight: str
	recommendation: str


class AIInvestmentAnalysis(BaseModel):
	current_state: str
	budget_readiness: str
	recommendations: List[str] = Field(default_factory=list)


class RoadmapPhase(BaseModel):
	phase: str
	timeline: str
	actions: List[str] = Field(default_factory=list)


class Narrative(BaseModel):
	executive_summary: str = Field(min_length=1)
	dimension_insights: List[DimensionInsight] = Field(default_factory=list)
	ai_investment_analysis: AIInvestmentAnalysis
	implementation_roadmap: List[RoadmapPhase] = Field(default_factory=list)
	key_takeaways: List[str] = Field(default_factory=list)
	source: Literal["ai", "fallback"] = "ai"
	generated_at: Optional[str] = None


def _extract_json_object(text: str) -> Dict[str, Any]:
	try:
		data = json.loads(text)
		if isinstance(data, dict):
			return data
	except ValueError:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			data = json.loads(code_block.group(1))
			if isinstance(data, dict):
				return data
		except ValueError:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last > first:
		try:
			data = json.loads(text[first : last + 1])
			if isinstance(data, dict):
				return data
		except ValueError:
			pass
	raise NarrativeFormatError("generator did not return a JSON object")


def build_prompt(scores: ScorecardResult, responses: Mapping[str, Any], company: str) -> str:
	profile = extract_business_profile(responses)
	dimension_lines = "\n".join(
		f"- {d.label}: {d.score}/{d.max_score} ({d.percentage}%, {d.interpretation})" for d in scores.dimensions
	)
	quoted = [
		f"{key}: {value}"
		for key, value in responses.items()
		if isinstance(value, str) and len(value) > 20
	][:10]
	return (
		f"You are an expert business operations consultant analyzing a Pragma Score assessment for {company}.\n\n"
		"## Business profile\n"
		f"Revenue: {profile.annual_revenue}; team size: {profile.employee_count}; industry: {profile.industry}\n"
		f"Revenue goal: {profile.revenue_goal}; owner hours/week: {profile.owner_hours_per_week}; "
		f"owner hourly value: {profile.owner_hourly_rate}\n"
		f"Average deal size: {profile.avg_deal_size}; close rate: {profile.close_rate}\n"
		f"Biggest revenue constraint: {profile.revenue_constraint}\n"
		f"Current tools: {', '.join(profile.current_tools) or 'none reported'}\n"
		f"AI tools in use: {', '.join(profile.ai_tools) or 'none reported'}\n\n"
		"## Scores\n"
		f"Overall: {scores.percentage}/100 ({scores.band_label})\n"
		f"{dimension_lines}\n"
		f"Top priorities: {', '.join(scores.top_priorities) or 'None identified'}\n"
		f"Strengths: {', '.join(scores.strengths) or 'None identified'}\n\n"
		"## Selected responses\n"
		f"{chr(10).join(quoted) or 'None'}\n\n"
		"## Task\n"
		"Return ONLY a JSON object with keys: executive_summary (string, 2-3 paragraphs), "
		"dimension_insights (array of {dimension, insight, recommendation}, one per dimension), "
		"ai_investment_analysis ({current_state, budget_readiness, recommendations: [string]}), "
		"implementation_roadmap (array of {phase, timeline, actions: [string]}), "
		"key_takeaways (array of 3-5 strings).\n"
		"Be specific and reference their actual responses where relevant."
	)


_BAND_SUMMARIES = {
	"critical": "significant operational challenges that require immediate attention",
	"at-risk": "areas of operational stress that should be addressed",
	"stable": "solid operational foundations with room for optimization",
	"optimized": "excellent operational health with opportunities for continued growth",
}


def fallback_narrative(scores: ScorecardResult, company: str) -> Dict[str, Any]:
	"""Template narrative built only from the scorecard."""
	ranked = sorted(scores.dimensions, key=lambda d: d.percentage)
	weakest = ranked[0] if ranked else None
	strongest = ranked[-1] if ranked else None
	summary = (
		f"Based on the Pragma Score assessment, {company} scored {scores.percentage}/100, "
		f"placing it in the \"{scores.band_label}\" category. This indicates "
		f"{_BAND_SUMMARIES.get(scores.band, 'a mixed operational picture')}."
	)
	if weakest is not None and strongest is not None and weakest.dimension != strongest.dimension:
		summary += (
			f" The weakest area is {weakest.label} at {weakest.percentage}%, "
			f"while {strongest.label} is the strongest at {strongest.percentage}%."
		)
	takeaways = list(scores.top_priorities) or [
		"Review your dimensional scores",
		"Focus on the lowest-scoring areas",
		"Book a strategy session for detailed guidance",
	]
	narrative = Narrative(
		executive_summary=summary,
		dimension_insights=[
			DimensionInsight(
				dimension=d.label,
				insight=f"Scored {d.percentage}% in {d.label}, indicating {d.interpretation} performance.",
				recommendation=f"Focus on improving {d.label.lower()} to strengthen overall operations.",
			)
			for d in scores.dimensions
		],
		ai_investment_analysis=AIInvestmentAnalysis(
			current_state="Assessment of AI investment readiness is pending detailed analysis.",
			budget_readiness="Budget readiness evaluation requires additional context.",
			recommendations=[
				"Establish baseline AI spending metrics",
				"Define clear AI investment goals",
				"Create a phased budget allocation plan",
			],
		),
		implementation_roadmap=[
			RoadmapPhase(phase="Assessment & Planning", timeline="Weeks 1-2",
				actions=["Review detailed report", "Identify quick wins", "Schedule strategy session"]),
			RoadmapPhase(phase="Foundation Building", timeline="Month 1-2",
				actions=["Address top priority areas", "Implement key recommendations", "Establish metrics"]),
			RoadmapPhase(phase="Optimization", timeline="Month 3+",
				actions=["Refine processes", "Scale improvements", "Monitor progress"]),
		],
		key_takeaways=takeaways[:3],
		source="fallback",
		generated_at=datetime.now(timezone.utc).isoformat(),
	)
	return narrative.model_dump()


async def generate_narrative(
	scores: ScorecardResult,
	responses: Mapping[str, Any],
	company: str,
	generator: Optional[Any],
	*,
	timeout: float,
) -> Dict[str, Any]:
	"""Ask the generator for a narrative; any failure yields the template narrative.

	``generator`` is anything with an ``async generate(prompt) -> str`` method, or
	None when no provider is configured.
	"""
	if generator is None:
		logger.info("No narrative generator configured for %s; using fallback", company)
		return fallback_narrative(scores, company)
	prompt = build_prompt(scores, responses, company)
	try:
		raw = await asyncio.wait_for(generator.generate(prompt), timeout=timeout)
		data = _extract_json_object(raw)
		data["source"] = "ai"
		data["generated_at"] = datetime.now(timezone.utc).isoformat()
		return Narrative.model_validate(data).model_dump()
	except asyncio.TimeoutError:
		logger.warning("Narrative generation timed out after %.1fs for %s", timeout, company)
	except Exception:
		logger.exception("Narrative generation failed for %s", company)
	return fallback_narrative(scores, company)


class NarrativeCoordinator:
	"""Runs at most one narrative generation per assessment token at a time."""

	def __init__(self) -> None:
		# Entries vanish once no caller holds or waits on the lock
		self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

	def lock_for(self, token: str) -> asyncio.Lock:
		lock = self._locks.get(token)
		if lock is None:
			lock = self._locks[token] = asyncio.Lock()
		return lock

	async def ensure(
		self,
		db: Session,
		token: str,
		generator: Optional[Any],
		*,
		timeout: float,
		force: bool = False,
	) -> Tuple[Dict[str, Any], bool]:
		"""Return (narrative, cached)."""
		async with self.lock_for(token):
			row = store.get_assessment(db, token)
			db.refresh(row)
			check_narrative_allowed(row.status, row.scores)
			existing = row.narrative
			if existing is not None and not force:
				return existing, True
			scores = ScorecardResult.from_dict(row.scores)
			narrative = await generate_narrative(scores, row.responses, row.company, generator, timeout=timeout)
			# Status is re-read before writing; a release during generation rejects this result
			store.store_narrative(db, token, narrative)
			return narrative, False


coordinator = NarrativeCoordinator()
