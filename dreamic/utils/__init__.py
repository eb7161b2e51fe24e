"""Utility helpers package."""

from dreamic.utils.timestamps import from_epoch_millis, to_epoch_millis, utcnow

__all__ = ["from_epoch_millis", "to_epoch_millis", "utcnow"]
