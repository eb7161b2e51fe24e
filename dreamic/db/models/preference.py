"""Key-value preference rows for the sql preferences backend."""
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from dreamic.db.base import Base


class PreferenceEntry(Base):
    """One namespaced preference key and its JSON-encoded value."""
    __tablename__ = "preferences"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
