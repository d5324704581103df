"""
Bookings Domain

Proposal lifecycle: creation with scheduling-conflict checks, guarded status
transitions (pending → accepted → in_progress → finished), before/after
evidence and cleaner progress flags.
"""

from .router import router

__all__ = ["router"]
