"""Database models for the trainer."""
from sqlalchemy import Column, Integer, String, Text

from lingodeck.models.base import Base, TimestampMixin


class StoredDocument(Base, TimestampMixin):
    """One JSON document of the key-value store."""

    __tablename__ = "stored_documents"

    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)  # JSON text
    size_bytes = Column(Integer, nullable=False, default=0)
