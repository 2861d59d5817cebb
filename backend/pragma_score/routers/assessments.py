from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr
from sqlalchemy.orm import Session

from .. import store
from ..db import get_db
from ..errors import to_http
from ..lifecycle import LifecycleError, is_report_visible
from ..report import assemble_report, unavailable_view
from ..settings import settings
from ..store import AssessmentNotFound, IntakeError, PersistenceError

router = APIRouter(tags=["assessments"])

logger = logging.getLogger(__name__)

# Strict members keep JSON booleans from passing as scale answers
ResponseValue = Union[StrictInt, StrictFloat, StrictStr, List[StrictStr], None]


class CreateAssessmentRequest(BaseModel):
	name: Optional[str] = None
	email: Optional[str] = None
	company: Optional[str] = None
	phone: Optional[str] = None
	is_demo: bool = False
	stripe_session_id: Optional[str] = None


class SaveProgressRequest(BaseModel):
	responses: Optional[Dict[str, ResponseValue]] = None
	current_step: Optional[int] = Field(default=None, ge=0)


class SubmitRequest(BaseModel):
	responses: Optional[Dict[str, ResponseValue]] = None


def _portal_path(token: str) -> str:
	return f"{settings.public_base_url}/assessment/portal?token={token}"


def _report_path(token: str) -> str:
	return f"{settings.public_base_url}/assessment/report?token={token}"


def _public_view(row) -> Dict[str, Any]:
	data = row.to_dict()
	# Scores and narrative are internal until the report is released
	if not is_report_visible(row.status):
		data["scores"] = None
		data["narrative"] = None
		data["manual_insights"] = []
		data["executive_override"] = None
	return data


@router.post("/assessments", status_code=201)
def create_assessment(req: CreateAssessmentRequest, db: Session = Depends(get_db)):
	try:
		row = store.create_assessment(
			db,
			name=req.name,
			email=req.email,
			company=req.company,
			phone=req.phone,
			is_demo=req.is_demo,
			stripe_session_id=req.stripe_session_id,
		)
	except (IntakeError, PersistenceError) as err:
		raise to_http(err)
	return {
		"success": True,
		"token": row.token,
		"short_code": row.short_code,
		"portal_url": _portal_path(row.token) + ("&demo=true" if row.is_demo else ""),
		"report_url": _report_path(row.token),
		"portal_url_short": f"{settings.public_base_url}/a/{row.short_code}",
		"report_url_short": f"{settings.public_base_url}/r/{row.short_code}",
	}


@router.get("/assessments/{token}")
def get_assessment(token: str, db: Session = Depends(get_db)):
	try:
		row = store.get_assessment(db, token)
	except AssessmentNotFound as err:
		raise to_http(err)
	return {"assessment": _public_view(row)}


@router.patch("/assessments/{token}")
def save_progress(token: str, req: SaveProgressRequest, db: Session = Depends(get_db)):
	try:
		row = store.save_progress(db, token, responses=req.responses, current_step=req.current_step)
	except (AssessmentNotFound, LifecycleError, PersistenceError, ValueError) as err:
		raise to_http(err)
	return {"assessment": _public_view(row)}


@router.post("/assessments/{token}/submit")
def submit(token: str, req: Optional[SubmitRequest] = None, db: Session = Depends(get_db)):
	responses = req.responses if req is not None else None
	try:
		row = store.submit_assessment(db, token, responses=responses)
	except (AssessmentNotFound, LifecycleError, PersistenceError) as err:
		raise to_http(err)
	return {"success": True, "status": row.status, "short_code": row.short_code}


@router.get("/assessments/{token}/report")
def get_report(token: str, db: Session = Depends(get_db)):
	try:
		row = store.get_assessment(db, token)
	except AssessmentNotFound as err:
		raise to_http(err)
	try:
		return assemble_report(row)
	except Exception:
		logger.exception("Failed to assemble report for %s", token)
		return unavailable_view()


@router.get("/a/{code}", include_in_schema=False)
def short_portal_redirect(code: str, db: Session = Depends(get_db)):
	try:
		row = store.resolve_code(db, code)
	except AssessmentNotFound as err:
		raise to_http(err)
	if is_report_visible(row.status):
		return RedirectResponse(url=_report_path(row.token))
	return RedirectResponse(url=_portal_path(row.token))


@router.get("/r/{code}", include_in_schema=False)
def short_report_redirect(code: str, db: Session = Depends(get_db)):
	try:
		row = store.resolve_code(db, code)
	except AssessmentNotFound as err:
		raise to_http(err)
	return RedirectResponse(url=_report_path(row.token))
