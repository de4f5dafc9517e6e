# backend/academy/db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from urllib.parse import urlparse, parse_qs
from .config import settings

DATABASE_URL = settings.DATABASE_URL

def _should_use_ssl(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    q = parse_qs(parsed.query or "")
    if any(v and v[0].lower() == "require" for k, v in q.items() if k == "sslmode"):
        return True
    host = (parsed.hostname or "").lower()
    return any(h in host for h in ("supabase.co", "neon.tech", "neon.aws", "railway"))


def engine_connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # one connection is shared across FastAPI's threadpool workers
        return {"check_same_thread": False}
    if _should_use_ssl(url):
        return {"sslmode": "require"}
    return {}


# connect_args must be a dict, never None
engine = create_engine(
    DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    connect_args=engine_connect_args(DATABASE_URL),
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True
)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
