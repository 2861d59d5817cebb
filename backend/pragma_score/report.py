from __future__ import annotations
from typing import Any, Dict

from .lifecycle import is_report_visible
from .models import AssessmentRecord

PREPARING_MESSAGE = "Your report is being prepared. We'll let you know as soon as it's ready."
UNAVAILABLE_MESSAGE = "Your report is temporarily unavailable. Please try again shortly."

_PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def preparing_view(record: AssessmentRecord) -> Dict[str, Any]:
	return {
		"state": "preparing",
		"company": record.company,
		"status": record.status,
		"message": PREPARING_MESSAGE,
	}


def unavailable_view() -> Dict[str, Any]:
	return {"state": "unavailable", "message": UNAVAILABLE_MESSAGE}


def assemble_report(record: AssessmentRecord) -> Dict[str, Any]:
	"""Viewable report; visibility depends on status only, not on stored data."""
	if not is_report_visible(record.status):
		return preparing_view(record)
	scores = record.scores
	if scores is None:
		# released without a scorecard should be impossible; never show a partial report
		return unavailable_view()
	insights = sorted(
		record.manual_insights,
		key=lambda i: _PRIORITY_ORDER.get(str(i.get("priority", "")), len(_PRIORITY_ORDER)),
	)
	return {
		"state": "released",
		"name": record.name,
		"company": record.company,
		"short_code": record.short_code,
		"scores": scores,
		"narrative": record.narrative,
		"manual_insights": insights,
		"executive_override": record.executive_override,
		"submitted_at": record.submitted_at.isoformat() if record.submitted_at else None,
		"released_at": record.released_at.isoformat() if record.released_at else None,
	}
