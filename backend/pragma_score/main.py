import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .settings import settings
from .routers import assessments
from .routers import admin
from .routers import auth
from .routers import catalog

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("pragma_score")

app = FastAPI(title="Pragma Score API")
app.include_router(catalog.router)
app.include_router(assessments.router)
app.include_router(auth.router)
app.include_router(admin.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"narrative_provider_configured": bool(settings.gemini_api_key),
		"admin_configured": bool(settings.admin_email and settings.admin_password),
	}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
	if not settings.gemini_api_key:
		logger.warning("GEMINI_API_KEY not set; reports will use the template narrative")
