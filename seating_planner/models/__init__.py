"""
Database models package
"""

from .layout import Layout

__all__ = ["Layout"]
