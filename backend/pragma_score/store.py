from __future__ import annotations
import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from . import lifecycle
from .lifecycle import AssessmentStatus, InvalidTransition, LifecycleError
from .models import AssessmentRecord
from .scoring import calculate_scores

logger = logging.getLogger(__name__)

SHORT_CODE_PREFIX = "PS-"
# No I, O, 0, 1
SHORT_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SHORT_CODE_LENGTH = 6


class AssessmentNotFound(LookupError):
	pass


class PersistenceError(RuntimeError):
	pass


class IntakeError(ValueError):
	pass


class ConcurrentUpdate(LifecycleError):
	"""Another writer changed the assessment between our read and our commit."""


def generate_short_code() -> str:
	body = "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(SHORT_CODE_LENGTH))
	return f"{SHORT_CODE_PREFIX}{body}"


def _commit(db: Session, action: str) -> None:
	try:
		db.commit()
	except StaleDataError as err:
		db.rollback()
		logger.warning("Concurrent update while trying to %s", action)
		raise ConcurrentUpdate(f"assessment changed while trying to {action}; reload and retry") from err
	except SQLAlchemyError as err:
		db.rollback()
		logger.exception("Failed to %s", action)
		raise PersistenceError(f"failed to {action}") from err


def _now() -> datetime:
	return datetime.now(timezone.utc)


def validate_intake(name: Optional[str], email: Optional[str], company: Optional[str]) -> Dict[str, str]:
	cleaned = {
		"name": (name or "").strip(),
		"email": (email or "").strip(),
		"company": (company or "").strip(),
	}
	missing = [k for k, v in cleaned.items() if not v]
	if missing:
		raise IntakeError("Name, email, and company are required")
	if "@" not in cleaned["email"] or len(cleaned["email"]) > 256:
		raise IntakeError("email is not valid")
	return cleaned


def _unused_short_code(db: Session, attempts: int = 5) -> str:
	for _ in range(attempts):
		code = generate_short_code()
		taken = db.query(AssessmentRecord.token).filter(AssessmentRecord.short_code == code).first()
		if taken is None:
			return code
	raise PersistenceError("could not allocate a unique short code")


def create_assessment(
	db: Session,
	*,
	name: Optional[str],
	email: Optional[str],
	company: Optional[str],
	phone: Optional[str] = None,
	is_demo: bool = False,
	stripe_session_id: Optional[str] = None,
) -> AssessmentRecord:
	fields = validate_intake(name, email, company)
	row = AssessmentRecord(
		token=uuid.uuid4().hex,
		short_code=_unused_short_code(db),
		phone=(phone or "").strip() or None,
		is_demo=bool(is_demo),
		stripe_session_id=stripe_session_id,
		# Demo assessments skip payment
		payment_status="paid" if is_demo else "pending",
		status=AssessmentStatus.NOT_STARTED.value,
		current_step=0,
		**fields,
	)
	row.responses = {}
	row.manual_insights = []
	db.add(row)
	_commit(db, "create assessment")
	db.refresh(row)
	logger.info("Created assessment %s (%s, demo=%s)", row.short_code, row.company, row.is_demo)
	return row


def get_assessment(db: Session, token: str) -> AssessmentRecord:
	row = db.get(AssessmentRecord, token)
	if row is None:
		raise AssessmentNotFound(token)
	return row


def lock_assessment(db: Session, token: str) -> AssessmentRecord:
	"""Re-read the row from the database before a status-dependent write.

	The identity map may hold a copy loaded long before; status checks must see
	the committed state. Row locks are taken where the backend supports them.
	"""
	row = db.get(AssessmentRecord, token, populate_existing=True, with_for_update=True)
	if row is None:
		raise AssessmentNotFound(token)
	return row


def resolve_code(db: Session, code: str) -> AssessmentRecord:
	"""Find an assessment by short code, falling back to the raw token for older links."""
	code = (code or "").strip()
	if not code:
		raise AssessmentNotFound(code)
	row = db.query(AssessmentRecord).filter(AssessmentRecord.short_code == code.upper()).first()
	if row is not None:
		return row
	row = db.get(AssessmentRecord, code)
	if row is None:
		raise AssessmentNotFound(code)
	return row


def list_assessments(
	db: Session,
	*,
	email: Optional[str] = None,
	status: Optional[str] = None,
	is_demo: Optional[bool] = None,
	limit: int = 100,
) -> List[AssessmentRecord]:
	query = db.query(AssessmentRecord)
	if email:
		query = query.filter(AssessmentRecord.email == email)
	if status:
		query = query.filter(AssessmentRecord.status == status)
	if is_demo is not None:
		query = query.filter(AssessmentRecord.is_demo == is_demo)
	return query.order_by(AssessmentRecord.created_at.desc()).limit(limit).all()


def _merge_responses(current: Dict[str, Any], incoming: Mapping[str, Any]) -> Dict[str, Any]:
	merged = dict(current)
	for key, value in incoming.items():
		if value is None:
			merged.pop(key, None)
		else:
			merged[key] = value
	return merged


def save_progress(
	db: Session,
	token: str,
	*,
	responses: Optional[Mapping[str, Any]] = None,
	current_step: Optional[int] = None,
) -> AssessmentRecord:
	row = lock_assessment(db, token)
	next_status = lifecycle.after_save(row.status)
	if current_step is not None and current_step < 0:
		raise ValueError("current_step must be >= 0")
	if responses:
		row.responses = _merge_responses(row.responses, responses)
	if current_step is not None:
		row.current_step = current_step
	row.status = next_status.value
	_commit(db, "save assessment progress")
	return row


def submit_assessment(db: Session, token: str, *, responses: Optional[Mapping[str, Any]] = None) -> AssessmentRecord:
	"""Freeze responses, score them and move to review in one transaction."""
	row = lock_assessment(db, token)
	status = row.status
	if responses:
		status = lifecycle.after_save(status)
	next_status = lifecycle.after_submit(status)
	merged = _merge_responses(row.responses, responses or {})
	scores = calculate_scores(merged)
	row.responses = merged
	row.scores = scores.to_dict()
	row.status = next_status.value
	row.submitted_at = _now()
	_commit(db, "submit assessment")
	logger.info("Assessment %s submitted: %s/100 (%s)", row.short_code, scores.total_score, scores.band)
	return row


def update_review(
	db: Session,
	token: str,
	*,
	manual_insights: Optional[List[Dict[str, Any]]] = None,
	executive_override: Optional[str] = None,
	clear_override: bool = False,
) -> AssessmentRecord:
	row = lock_assessment(db, token)
	lifecycle.check_admin_edit(row.status)
	if manual_insights is not None:
		row.manual_insights = manual_insights
	if clear_override:
		row.executive_override = None
	elif executive_override is not None:
		row.executive_override = executive_override
	_commit(db, "update review notes")
	return row


def store_narrative(db: Session, token: str, narrative: Dict[str, Any]) -> AssessmentRecord:
	row = lock_assessment(db, token)
	lifecycle.check_narrative_allowed(row.status, row.scores)
	row.narrative = narrative
	_commit(db, "store narrative")
	return row


def release_assessment(db: Session, token: str, *, require_narrative: bool = True) -> AssessmentRecord:
	row = lock_assessment(db, token)
	next_status = lifecycle.after_release(row.status, row.scores)
	if require_narrative and row.narrative is None:
		raise InvalidTransition(lifecycle.coerce_status(row.status), "release", "generate the narrative first")
	row.status = next_status.value
	row.released_at = _now()
	_commit(db, "release report")
	logger.info("Released report for assessment %s", row.short_code)
	return row
