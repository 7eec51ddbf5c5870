"""
AccessiList API module.

This module provides the FastAPI-based HTTP API for checklist sessions.

Exports:
    - create_app: Application factory
    - schemas: Request models and the response envelope
    - health: Health check endpoints
"""

from accessilist.api.app import create_app
from accessilist.api.schemas import (
    Envelope,
    InstantiateRequest,
    SaveRequest,
    error_response,
    success_response,
)

__all__ = [
    "create_app",
    # Request schemas
    "InstantiateRequest",
    "SaveRequest",
    # Envelope
    "Envelope",
    "error_response",
    "success_response",
]
