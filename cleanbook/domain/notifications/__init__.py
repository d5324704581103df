"""
Notifications Domain

Read-only status-change notices derived from proposals. No notification
entity is stored.
"""

from .router import router

__all__ = ["router"]
