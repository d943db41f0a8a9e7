"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for support request triage.

Contains:
- Controllers: FastAPI route handlers
- Rendering: HTML output of triage results
"""

from minion.triage.interfaces.controllers import router as triage_router

__all__ = ["triage_router"]
