"""Utility helpers for posbridge."""

from posbridge.utils.bitwriter import BitWriter

__all__ = ["BitWriter"]
