from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
import logging

from ..settings import settings

router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])

logger = logging.getLogger(__name__)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_COOKIE = "admin_session"


class LoginRequest(BaseModel):
	email: str
	password: str


class Admin(BaseModel):
	email: str


# Hash of the configured admin password, keyed by admin email
_admins: Dict[str, str] = {}


def _ensure_admin() -> bool:
	email = settings.admin_email
	password = settings.admin_password
	if not email or not password:
		return False
	if email not in _admins:
		_admins.clear()
		_admins[email] = pwd_context.hash(password)
	return True


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def authenticate_admin(email: str, password: str) -> Optional[Admin]:
	hashed = _admins.get(email)
	if hashed and verify_password(password, hashed):
		return Admin(email=email)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		days = settings.admin_session_days
		delta = timedelta(days=days if days > 0 else 7)
	return datetime.now(timezone.utc) + delta


def create_session_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = {"sub": email, "role": "admin", "exp": _resolve_expiry(expires_delta)}
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_session(token: str) -> Optional[Admin]:
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		return None
	email = payload.get("sub")
	if not email or payload.get("role") != "admin" or email != settings.admin_email:
		return None
	return Admin(email=email)


def _session_from_request(request: Request) -> Optional[str]:
	cookie = request.cookies.get(SESSION_COOKIE)
	if cookie:
		return cookie
	header = request.headers.get("Authorization", "")
	if header.lower().startswith("bearer "):
		return header[7:].strip()
	return None


def require_admin(request: Request) -> Admin:
	token = _session_from_request(request)
	admin = _decode_session(token) if token else None
	if admin is None:
		raise HTTPException(status_code=401, detail="Admin authentication required")
	return admin


@router.post("")
async def login(req: LoginRequest, response: Response):
	if not _ensure_admin():
		logger.error("Admin credentials not configured")
		raise HTTPException(status_code=500, detail="Authentication not configured")
	admin = authenticate_admin(req.email.strip(), req.password)
	if not admin:
		raise HTTPException(status_code=401, detail="Invalid credentials")
	token = create_session_token(admin.email)
	response.set_cookie(
		SESSION_COOKIE,
		token,
		httponly=True,
		secure=settings.cookie_secure,
		samesite="lax",
		max_age=60 * 60 * 24 * max(settings.admin_session_days, 1),
		path="/",
	)
	return {"success": True, "access_token": token, "token_type": "bearer"}


@router.get("")
async def check(request: Request, response: Response):
	token = _session_from_request(request)
	if token and _decode_session(token):
		return {"authenticated": True}
	response.status_code = 401
	return {"authenticated": False}


@router.delete("")
async def logout(response: Response):
	response.delete_cookie(SESSION_COOKIE, path="/")
	return {"success": True}
