"""
Application layer - Registration, resolution and lifecycle orchestration.

This layer implements the container on top of domain objects.
It depends only on the Domain layer.
"""

from .circular_detector import CircularDependencyDetector
from .container import Container
from .graph_resolver import DependencyGraphResolver, select_candidate
from .lifecycle import ABSENT, LifecycleOrchestrator
from .references import ScopedReference
from .registry import DefinitionRegistry
from .scope_manager import InstanceSlot, ScopeManager

__all__ = [
    "Container",
    "DefinitionRegistry",
    "DependencyGraphResolver",
    "ScopeManager",
    "InstanceSlot",
    "LifecycleOrchestrator",
    "ScopedReference",
    "CircularDependencyDetector",
    "select_candidate",
    "ABSENT",
]
