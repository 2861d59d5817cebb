from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .catalog import (
	DIMENSION_LABELS,
	DIMENSION_ORDER,
	Dimension,
	Question,
	QuestionType,
	get_question_by_id,
)

ResponseValue = Union[int, float, str, List[str]]

POINTS_MAX = 5
DIMENSION_MAX = 17  # six dimensions x 17 ~ 100
MAX_TOTAL = 100
MULTISELECT_BASELINE = 3
MULTISELECT_NEUTRAL = 3

BAND_LABELS: Dict[str, str] = {
	"optimized": "Optimized - Systems are strong, ready for scale",
	"stable": "Stable - Good foundation with room to improve",
	"at-risk": "At Risk - Significant gaps limiting growth",
	"critical": "Critical - Foundational work needed first",
}


@dataclass(frozen=True)
class DimensionScore:
	dimension: str
	label: str
	score: int
	max_score: int
	percentage: int
	interpretation: str

	def to_dict(self) -> Dict[str, Any]:
		return {
			"dimension": self.dimension,
			"label": self.label,
			"score": self.score,
			"maxScore": self.max_score,
			"percentage": self.percentage,
			"interpretation": self.interpretation,
		}

	@classmethod
	def from_dict(cls, raw: Mapping[str, Any]) -> "DimensionScore":
		return cls(
			dimension=str(raw["dimension"]),
			label=str(raw["label"]),
			score=int(raw["score"]),
			max_score=int(raw.get("maxScore", DIMENSION_MAX)),
			percentage=int(raw["percentage"]),
			interpretation=str(raw["interpretation"]),
		)


@dataclass(frozen=True)
class ScorecardResult:
	total_score: int
	max_total: int
	percentage: int
	band: str
	band_label: str
	dimensions: Tuple[DimensionScore, ...]
	top_priorities: Tuple[str, ...]
	strengths: Tuple[str, ...]

	def dimension(self, key: str) -> Optional[DimensionScore]:
		for d in self.dimensions:
			if d.dimension == key:
				return d
		return None

	def to_dict(self) -> Dict[str, Any]:
		return {
			"totalScore": self.total_score,
			"maxTotal": self.max_total,
			"percentage": self.percentage,
			"band": self.band,
			"bandLabel": self.band_label,
			"dimensions": [d.to_dict() for d in self.dimensions],
			"topPriorities": list(self.top_priorities),
			"strengths": list(self.strengths),
		}

	@classmethod
	def from_dict(cls, raw: Mapping[str, Any]) -> "ScorecardResult":
		return cls(
			total_score=int(raw["totalScore"]),
			max_total=int(raw.get("maxTotal", MAX_TOTAL)),
			percentage=int(raw["percentage"]),
			band=str(raw["band"]),
			band_label=str(raw["bandLabel"]),
			dimensions=tuple(DimensionScore.from_dict(d) for d in raw.get("dimensions", [])),
			top_priorities=tuple(raw.get("topPriorities", [])),
			strengths=tuple(raw.get("strengths", [])),
		)


def round_half_up(numerator: int, denominator: int) -> int:
	"""Round numerator/denominator to the nearest int, halves going up. Exact for ints."""
	return (2 * numerator + denominator) // (2 * denominator)


def _as_scale_value(value: Any) -> Optional[int]:
	if isinstance(value, bool):
		return None
	if isinstance(value, float):
		if not value.is_integer():
			return None
		value = int(value)
	if not isinstance(value, int):
		return None
	if value < 1 or value > POINTS_MAX:
		return None
	return value


def _score_multiselect(question: Question, selected: List[str]) -> int:
	if not question.signals:
		# No differentiating rule defined for this question
		return MULTISELECT_NEUTRAL
	chosen = set(selected)
	# Work in halves so the arithmetic stays exact
	halves = MULTISELECT_BASELINE * 2
	for sig in question.signals:
		if chosen & sig.options:
			halves += int(round(sig.delta * 2))
	halves = max(2, min(POINTS_MAX * 2, halves))
	return round_half_up(halves, 2)


def score_response(question: Question, value: Any) -> Optional[int]:
	"""Points (0-5) for one answer, or None when it cannot be scored."""
	if not question.scored:
		return None
	if question.type == QuestionType.SCALE:
		v = _as_scale_value(value)
		if v is None:
			return None
		return (POINTS_MAX + 1 - v) if question.invert else v
	if question.type == QuestionType.SELECT:
		if not isinstance(value, str):
			return None
		return question.option_scores.get(value)
	if question.type == QuestionType.MULTISELECT:
		if not isinstance(value, (list, tuple, set, frozenset)):
			return None
		return _score_multiselect(question, [str(v) for v in value])
	return None


def interpret_percentage(percentage: int) -> str:
	if percentage >= 80:
		return "strong"
	if percentage >= 60:
		return "stable"
	if percentage >= 40:
		return "needs-work"
	return "critical"


def overall_band(percentage: int) -> str:
	if percentage >= 80:
		return "optimized"
	if percentage >= 60:
		return "stable"
	if percentage >= 40:
		return "at-risk"
	return "critical"


def _dimension_score(dimension: Dimension, total: int, count: int) -> DimensionScore:
	if count == 0:
		percentage = 0
	else:
		percentage = round_half_up(total * 100, count * POINTS_MAX)
	normalized = round_half_up(percentage * DIMENSION_MAX, 100)
	return DimensionScore(
		dimension=dimension.value,
		label=DIMENSION_LABELS[dimension],
		score=normalized,
		max_score=DIMENSION_MAX,
		percentage=percentage,
		interpretation=interpret_percentage(percentage),
	)


def calculate_scores(responses: Mapping[str, Any]) -> ScorecardResult:
	buckets: Dict[Dimension, List[int]] = {d: [0, 0] for d in DIMENSION_ORDER}
	for question_id, value in (responses or {}).items():
		question = get_question_by_id(question_id)
		if question is None or question.dimension is None:
			continue
		points = score_response(question, value)
		if points is None:
			continue
		buckets[question.dimension][0] += points
		buckets[question.dimension][1] += 1

	dimensions = tuple(_dimension_score(d, total, count) for d, (total, count) in buckets.items())

	# Six dimensions at 17 points reach 102 when all are perfect; the total stays within 0-100
	total_score = min(MAX_TOTAL, sum(d.score for d in dimensions))
	percentage = round_half_up(total_score * 100, MAX_TOTAL)
	band = overall_band(percentage)

	# sorted() is stable, so ties keep catalog order
	ascending = sorted(dimensions, key=lambda d: d.percentage)
	descending = sorted(dimensions, key=lambda d: -d.percentage)
	top_priorities = tuple(d.label for d in ascending[:2] if d.interpretation != "strong")
	strengths = tuple(d.label for d in descending[:2] if d.interpretation in ("strong", "stable"))

	return ScorecardResult(
		total_score=total_score,
		max_total=MAX_TOTAL,
		percentage=percentage,
		band=band,
		band_label=BAND_LABELS[band],
		dimensions=dimensions,
		top_priorities=top_priorities,
		strengths=strengths,
	)
