"""
app/api/dependencies.py

Shared FastAPI dependencies.
"""

from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import Request


def get_scheduler(request: Request) -> BackgroundScheduler | None:
    """
    The app's background scheduler, or None when scheduling is disabled.
    """

    return getattr(request.app.state, "scheduler", None)
