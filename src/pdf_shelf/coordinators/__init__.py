"""Coordinators - Orchestration layer between the UI and the services."""

from .session_manager import SessionManager

__all__ = [
    "SessionManager",
]
