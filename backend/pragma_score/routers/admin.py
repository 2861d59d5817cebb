from __future__ import annotations
import logging
import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import store
from ..db import get_db
from ..errors import to_http
from ..gemini_client import GeminiClient
from ..lifecycle import LifecycleError
from ..narrative import coordinator
from ..profile import extract_business_profile, profile_estimates
from ..settings import settings
from ..store import AssessmentNotFound, PersistenceError
from .auth import Admin, require_admin

router = APIRouter(prefix="/admin/assessments", tags=["admin"])

logger = logging.getLogger(__name__)


class ManualInsight(BaseModel):
	id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
	title: str = Field(min_length=1)
	observation: str = ""
	recommendation: str = ""
	priority: Literal["critical", "high", "medium", "low"] = "medium"
	category: Literal["strategic", "operational", "financial", "technology", "people"] = "operational"


class ReviewUpdateRequest(BaseModel):
	manual_insights: Optional[List[ManualInsight]] = None
	executive_override: Optional[str] = None
	clear_executive_override: bool = False


async def get_narrative_generator():
	"""Gemini client for the request, or None when no provider is configured."""
	try:
		client = GeminiClient(timeout=settings.narrative_timeout_seconds)
	except ValueError:
		yield None
		return
	try:
		yield client
	finally:
		await client.aclose()


def _summary(row) -> dict:
	return {
		"token": row.token,
		"short_code": row.short_code,
		"name": row.name,
		"email": row.email,
		"company": row.company,
		"status": row.status,
		"is_demo": bool(row.is_demo),
		"created_at": row.created_at.isoformat() if row.created_at else None,
		"updated_at": row.updated_at.isoformat() if row.updated_at else None,
		"total_score": (row.scores or {}).get("totalScore"),
		"has_narrative": row.narrative_json is not None,
	}


@router.get("")
def list_assessments(
	email: Optional[str] = None,
	status: Optional[str] = None,
	is_demo: Optional[bool] = None,
	limit: int = Query(default=100, ge=1, le=500),
	db: Session = Depends(get_db),
	admin: Admin = Depends(require_admin),
):
	rows = store.list_assessments(db, email=email, status=status, is_demo=is_demo, limit=limit)
	return {"assessments": [_summary(r) for r in rows]}


@router.get("/{token}")
def get_assessment(token: str, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
	try:
		row = store.get_assessment(db, token)
	except AssessmentNotFound as err:
		raise to_http(err)
	profile = extract_business_profile(row.responses)
	return {
		"assessment": row.to_dict(),
		"profile": {**profile.to_dict(), "estimates": profile_estimates(profile)},
	}


@router.patch("/{token}")
def update_review(
	token: str,
	req: ReviewUpdateRequest,
	db: Session = Depends(get_db),
	admin: Admin = Depends(require_admin),
):
	insights = [i.model_dump() for i in req.manual_insights] if req.manual_insights is not None else None
	try:
		row = store.update_review(
			db,
			token,
			manual_insights=insights,
			executive_override=req.executive_override,
			clear_override=req.clear_executive_override,
		)
	except (AssessmentNotFound, LifecycleError, PersistenceError) as err:
		raise to_http(err)
	logger.info("%s updated review notes for %s", admin.email, row.short_code)
	return {"success": True, "assessment": row.to_dict()}


@router.post("/{token}/narrative")
async def generate_narrative(
	token: str,
	force: bool = False,
	admin: Admin = Depends(require_admin),
	db: Session = Depends(get_db),
	generator=Depends(get_narrative_generator),
):
	try:
		narrative, cached = await coordinator.ensure(
			db, token, generator, timeout=settings.narrative_timeout_seconds, force=force
		)
	except (AssessmentNotFound, LifecycleError, PersistenceError) as err:
		raise to_http(err)
	return {"narrative": narrative, "cached": cached}


@router.post("/{token}/release")
def release(token: str, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
	try:
		row = store.release_assessment(db, token, require_narrative=True)
	except (AssessmentNotFound, LifecycleError, PersistenceError) as err:
		raise to_http(err)
	logger.info("%s released report %s", admin.email, row.short_code)
	return {"success": True, "status": row.status, "released_at": row.released_at.isoformat()}
