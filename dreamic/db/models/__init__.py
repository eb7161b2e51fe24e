"""Database models package."""
from dreamic.db.models.preference import PreferenceEntry

__all__ = ["PreferenceEntry"]
