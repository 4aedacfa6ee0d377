"""Utility functions."""

from app.utils.time import ensure_aware, utc_now

__all__ = ["utc_now", "ensure_aware"]
