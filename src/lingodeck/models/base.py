"""Base model configuration."""
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from lingodeck.config import settings

# Create SQLAlchemy engine
engine = create_engine(settings.database.url, echo=settings.database.echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()


class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


def init_db(bind: Optional[Engine] = None) -> None:
    """Initialize database."""
    # Model modules register their tables on import
    import lingodeck.models.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)  # Create tables if they don't exist
