from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from portal.config import settings

class Base(DeclarativeBase):
    pass

def database_url() -> str:
    url = settings.database_url or "sqlite:///./portal.db"
    # psycopg 3 driver for hosted postgres URLs
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return url.replace(prefix, "postgresql+psycopg://", 1)
    return url

def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, future=True)

engine = make_engine(database_url())

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

def init_db(bind=None):
    from portal.models import user, task, file, query  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
