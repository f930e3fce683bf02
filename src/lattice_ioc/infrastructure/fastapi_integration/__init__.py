"""
FastAPI integration module.

Provides helpers and utilities for integrating lattice-ioc with FastAPI.
"""

from .integration import (
    ContextScopeMiddleware,
    create_capability_dependency,
    create_context_dependency,
    create_fastapi_dependency,
)

__all__ = [
    "create_fastapi_dependency",
    "create_capability_dependency",
    "create_context_dependency",
    "ContextScopeMiddleware",
]
