"""
Infrastructure layer - External integrations.

This layer contains integrations with external frameworks and tools.
It depends on both Application and Domain layers.

``fastapi_integration`` needs the ``fastapi`` extra and is imported on demand.
"""

from . import testing

__all__ = [
    "testing",
]
