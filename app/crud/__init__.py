"""
Read-side queries for database models.

Lookups, listings and reports used by the API routes. State changes go
through app.services so that SLA timers and audit entries stay in step.
"""

from app.crud import job

__all__ = ["job"]
