"""Assessment status state machine and the report release gate.

Statuses move forward only::

	not_started -> in_progress -> pending_review -> released

``submitted`` and ``report_ready`` are values written by earlier versions of the
service. For gating purposes ``submitted`` behaves like ``pending_review`` and
``report_ready`` behaves like ``released``.

Every function here is pure: it inspects a status (and, for release, whether a
scorecard exists) and either returns the next status or raises
:class:`InvalidTransition`. Persisting the result is the record store's job.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, FrozenSet, Optional, Union


class AssessmentStatus(str, Enum):
	NOT_STARTED = "not_started"
	IN_PROGRESS = "in_progress"
	PENDING_REVIEW = "pending_review"
	SUBMITTED = "submitted"
	REPORT_READY = "report_ready"
	RELEASED = "released"


EDITABLE_STATUSES: FrozenSet[AssessmentStatus] = frozenset({AssessmentStatus.NOT_STARTED, AssessmentStatus.IN_PROGRESS})
REVIEW_STATUSES: FrozenSet[AssessmentStatus] = frozenset({AssessmentStatus.PENDING_REVIEW, AssessmentStatus.SUBMITTED})
RELEASED_STATUSES: FrozenSet[AssessmentStatus] = frozenset({AssessmentStatus.RELEASED, AssessmentStatus.REPORT_READY})
SCORED_STATUSES: FrozenSet[AssessmentStatus] = REVIEW_STATUSES | RELEASED_STATUSES


class LifecycleError(Exception):
	pass


class InvalidTransition(LifecycleError):
	def __init__(self, current: AssessmentStatus, action: str, reason: Optional[str] = None) -> None:
		self.current = current
		self.action = action
		msg = f"cannot {action} while assessment is {current.value}"
		if reason:
			msg = f"{msg}: {reason}"
		super().__init__(msg)


def coerce_status(value: Union[str, AssessmentStatus]) -> AssessmentStatus:
	try:
		return AssessmentStatus(value)
	except ValueError:
		raise LifecycleError(f"unknown assessment status: {value!r}") from None


def after_save(current: Union[str, AssessmentStatus]) -> AssessmentStatus:
	"""Status after a response batch is saved."""
	status = coerce_status(current)
	if status not in EDITABLE_STATUSES:
		raise InvalidTransition(status, "save responses", "responses are frozen after submission")
	return AssessmentStatus.IN_PROGRESS


def after_submit(current: Union[str, AssessmentStatus]) -> AssessmentStatus:
	status = coerce_status(current)
	if status != AssessmentStatus.IN_PROGRESS:
		raise InvalidTransition(status, "submit")
	return AssessmentStatus.PENDING_REVIEW


def check_admin_edit(current: Union[str, AssessmentStatus]) -> AssessmentStatus:
	"""Manual insights, executive override and narrative runs keep the status unchanged."""
	status = coerce_status(current)
	if status not in REVIEW_STATUSES:
		raise InvalidTransition(status, "edit the report", "only reports awaiting review can be edited")
	return status


def check_narrative_allowed(current: Union[str, AssessmentStatus], scores: Optional[Any]) -> AssessmentStatus:
	status = check_admin_edit(current)
	if scores is None:
		raise InvalidTransition(status, "generate a narrative", "no scorecard has been computed")
	return status


def after_release(current: Union[str, AssessmentStatus], scores: Optional[Any]) -> AssessmentStatus:
	status = coerce_status(current)
	if status not in REVIEW_STATUSES:
		raise InvalidTransition(status, "release")
	if scores is None:
		raise InvalidTransition(status, "release", "no scorecard has been computed")
	return AssessmentStatus.RELEASED


def is_report_visible(current: Union[str, AssessmentStatus]) -> bool:
	try:
		return coerce_status(current) in RELEASED_STATUSES
	except LifecycleError:
		return False


def is_scored(current: Union[str, AssessmentStatus]) -> bool:
	try:
		return coerce_status(current) in SCORED_STATUSES
	except LifecycleError:
		return False
