from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from cashdrawer.core.config import settings

# Base para modelos (lo importa cashdrawer.main)
Base = declarative_base()


def make_engine(url: str):
    """Engine con timeout alto; en SQLite aplica PRAGMAs por conexión."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": 60},
        pool_pre_ping=True,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA busy_timeout=60000;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.execute("PRAGMA synchronous=NORMAL;")
        finally:
            cur.close()

    return engine


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = make_engine(settings.database_url)
SessionLocal = make_session_factory(engine)


# Dependencias FastAPI
def get_session_factory(request: Request):
    return getattr(request.app.state, "session_factory", None) or SessionLocal


def get_db(request: Request):
    db = get_session_factory(request)()
    try:
        yield db
    finally:
        db.close()
