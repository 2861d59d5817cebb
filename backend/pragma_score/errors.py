from __future__ import annotations
from fastapi import HTTPException

from .lifecycle import LifecycleError
from .store import AssessmentNotFound, IntakeError, PersistenceError

START_URL = "/assessment/start"


def not_found() -> HTTPException:
	# Unknown links get a way to start over rather than a retry prompt
	return HTTPException(status_code=404, detail={"error": "Assessment not found", "start_url": START_URL})


def to_http(err: Exception) -> HTTPException:
	if isinstance(err, AssessmentNotFound):
		return not_found()
	if isinstance(err, IntakeError):
		return HTTPException(status_code=400, detail=str(err))
	if isinstance(err, LifecycleError):
		return HTTPException(status_code=409, detail=str(err))
	if isinstance(err, PersistenceError):
		return HTTPException(status_code=503, detail="Could not save changes, please try again")
	if isinstance(err, ValueError):
		return HTTPException(status_code=400, detail=str(err))
	return HTTPException(status_code=500, detail="Unexpected error")
