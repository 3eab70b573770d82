"""Utility functions."""

from .datetime import now_utc

__all__ = ["now_utc"]
