from datetime import timezone

from sqlalchemy import DateTime, create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator
from goaltracker.core.config import settings

# SQLAlchemy Base class for models to inherit
Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Store datetimes as naive UTC, hand them back as aware UTC.

    SQLite drops tzinfo on the way out, so period bounds would otherwise
    come back naive and stop comparing equal to freshly computed ones.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def make_engine(url: str):
    kwargs = {"pool_pre_ping": True}  # helps avoid stale connections
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/").endswith(":"):
            # one shared connection, or every thread would see an empty db
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


# Create SQLAlchemy engine (Postgres by default)
engine = make_engine(settings.database_url)

# Factory that creates DB sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency we will use in FastAPI routes
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
