"""API endpoint modules."""

from dreamic.api.v1.endpoints import notifications

__all__ = ["notifications"]
