from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping

NOT_PROVIDED = "Not provided"

HOURLY_RATES: Dict[str, int] = {
	"$50/hour": 50,
	"$75/hour": 75,
	"$100/hour": 100,
	"$150/hour": 150,
	"$200/hour": 200,
	"$250/hour": 250,
	"$300+/hour": 300,
}

EMPLOYEE_COUNTS: Dict[str, int] = {
	"Just me (solopreneur)": 1,
	"2-5 people": 3,
	"6-10 people": 8,
	"11-25 people": 18,
	"26-50 people": 38,
	"51-100 people": 75,
	"100+ people": 100,
}

ANNUAL_REVENUES: Dict[str, int] = {
	"Under $250K": 200_000,
	"$250K - $500K": 375_000,
	"$500K - $1M": 750_000,
	"$1M - $2.5M": 1_750_000,
	"$2.5M - $5M": 3_750_000,
	"$5M - $10M": 7_500_000,
	"$10M - $25M": 17_500_000,
	"$25M+": 30_000_000,
	"Prefer not to say": 0,
}


@dataclass(frozen=True)
class BusinessProfile:
	annual_revenue: str = NOT_PROVIDED
	employee_count: str = NOT_PROVIDED
	industry: str = NOT_PROVIDED
	revenue_goal: str = NOT_PROVIDED
	owner_hours_per_week: str = NOT_PROVIDED
	owner_hourly_rate: str = NOT_PROVIDED
	avg_deal_size: str = NOT_PROVIDED
	close_rate: str = NOT_PROVIDED
	revenue_constraint: str = NOT_PROVIDED
	current_tools: List[str] = field(default_factory=list)
	work_preference: str = NOT_PROVIDED
	ai_tools: List[str] = field(default_factory=list)

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)


def _text(responses: Mapping[str, Any], key: str) -> str:
	value = responses.get(key)
	if value is None or value == "":
		return NOT_PROVIDED
	return str(value)


def _strings(value: Any) -> List[str]:
	return [str(v) for v in value] if isinstance(value, list) else []


def extract_business_profile(responses: Mapping[str, Any]) -> BusinessProfile:
	return BusinessProfile(
		annual_revenue=_text(responses, "profile-1"),
		employee_count=_text(responses, "profile-2"),
		industry=_text(responses, "profile-3"),
		revenue_goal=_text(responses, "profile-4"),
		owner_hours_per_week=_text(responses, "profile-5"),
		owner_hourly_rate=_text(responses, "profile-6"),
		avg_deal_size=_text(responses, "sales-2"),
		close_rate=_text(responses, "sales-3"),
		revenue_constraint=_text(responses, "sales-6"),
		current_tools=_strings(responses.get("tech-1")),
		work_preference=_text(responses, "vision-5"),
		ai_tools=_strings(responses.get("ai-invest-4")),
	)


def parse_hourly_rate(selection: str) -> int:
	return HOURLY_RATES.get(selection, 100)


def parse_employee_count(selection: str) -> int:
	return EMPLOYEE_COUNTS.get(selection, 5)


def parse_annual_revenue(selection: str) -> int:
	return ANNUAL_REVENUES.get(selection, 0)


def profile_estimates(profile: BusinessProfile) -> Dict[str, int]:
	"""Numeric midpoints of the bracketed profile answers."""
	return {
		"owner_hourly_rate": parse_hourly_rate(profile.owner_hourly_rate),
		"employee_count": parse_employee_count(profile.employee_count),
		"annual_revenue": parse_annual_revenue(profile.annual_revenue),
	}
