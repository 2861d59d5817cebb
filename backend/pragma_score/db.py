from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./pragma_score.db"

_engine_kwargs: dict = {}
if DATABASE_URL.startswith("sqlite"):
	_engine_kwargs["connect_args"] = {"check_same_thread": False}
	# In-memory databases must share one connection across threads
	if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
		_engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Columns added after the first deployment; (name, DDL type)
_ASSESSMENT_LATE_COLUMNS = [
	("short_code", "VARCHAR(16)"),
	("executive_override", "TEXT"),
	("manual_insights_json", "TEXT"),
	("released_at", "DATETIME"),
	("payment_status", "VARCHAR(16) DEFAULT 'pending' NOT NULL"),
	("version", "INTEGER DEFAULT 1 NOT NULL"),
]


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "assessments" in tables:
		cols = {c["name"] for c in inspector.get_columns("assessments")}
		with engine.begin() as conn:
			for name, ddl in _ASSESSMENT_LATE_COLUMNS:
				if name not in cols:
					conn.exec_driver_sql(f"ALTER TABLE assessments ADD COLUMN {name} {ddl}")
