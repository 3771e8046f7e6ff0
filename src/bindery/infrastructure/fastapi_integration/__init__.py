"""
FastAPI integration module.

Provides helpers and utilities for integrating bindery with FastAPI.
"""

from .integration import (
    ScopedContainerMiddleware,
    create_action_endpoint,
    create_fastapi_dependency,
    create_scoped_dependency,
)

__all__ = [
    "create_fastapi_dependency",
    "create_scoped_dependency",
    "create_action_endpoint",
    "ScopedContainerMiddleware",
]
