from __future__ import annotations
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text
from .db import Base


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _load(raw: Optional[str], default: Any) -> Any:
	if not raw:
		return default
	try:
		return json.loads(raw)
	except ValueError:
		return default


class AssessmentRecord(Base):
	__tablename__ = "assessments"
	# Long opaque token handed out in portal/report links
	token = Column(String(64), primary_key=True, index=True)
	short_code = Column(String(16), unique=True, index=True, nullable=True)
	name = Column(String(256), nullable=False)
	email = Column(String(256), nullable=False, index=True)
	company = Column(String(256), nullable=False)
	phone = Column(String(64), nullable=True)
	is_demo = Column(Boolean, default=False, nullable=False)
	stripe_session_id = Column(String(256), nullable=True)
	payment_status = Column(String(16), default="pending", nullable=False)
	status = Column(String(32), default="not_started", nullable=False, index=True)
	current_step = Column(Integer, default=0, nullable=False)
	# JSON payloads stored as text snapshots
	responses_json = Column(Text, nullable=True)
	scores_json = Column(Text, nullable=True)
	narrative_json = Column(Text, nullable=True)
	manual_insights_json = Column(Text, nullable=True)
	executive_override = Column(Text, nullable=True)
	created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
	updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
	submitted_at = Column(DateTime(timezone=True), nullable=True)
	released_at = Column(DateTime(timezone=True), nullable=True)
	# Bumped on every write; a stale writer fails instead of overwriting
	version = Column(Integer, nullable=False)

	__mapper_args__ = {"version_id_col": version}

	@property
	def responses(self) -> Dict[str, Any]:
		return _load(self.responses_json, {})

	@responses.setter
	def responses(self, value: Dict[str, Any]) -> None:
		self.responses_json = json.dumps(value or {})

	@property
	def scores(self) -> Optional[Dict[str, Any]]:
		return _load(self.scores_json, None)

	@scores.setter
	def scores(self, value: Optional[Dict[str, Any]]) -> None:
		self.scores_json = json.dumps(value) if value is not None else None

	@property
	def narrative(self) -> Optional[Dict[str, Any]]:
		return _load(self.narrative_json, None)

	@narrative.setter
	def narrative(self, value: Optional[Dict[str, Any]]) -> None:
		self.narrative_json = json.dumps(value) if value is not None else None

	@property
	def manual_insights(self) -> List[Dict[str, Any]]:
		return _load(self.manual_insights_json, [])

	@manual_insights.setter
	def manual_insights(self, value: List[Dict[str, Any]]) -> None:
		self.manual_insights_json = json.dumps(list(value or []))

	def to_dict(self) -> Dict[str, Any]:
		return {
			"token": self.token,
			"short_code": self.short_code,
			"name": self.name,
			"email": self.email,
			"company": self.company,
			"phone": self.phone,
			"is_demo": bool(self.is_demo),
			"payment_status": self.payment_status,
			"status": self.status,
			"current_step": self.current_step,
			"responses": self.responses,
			"scores": self.scores,
			"narrative": self.narrative,
			"manual_insights": self.manual_insights,
			"executive_override": self.executive_override,
			"created_at": self.created_at.isoformat() if self.created_at else None,
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
			"submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
			"released_at": self.released_at.isoformat() if self.released_at else None,
		}
