"""
Domain layer - Core definitions, states and errors.

This layer describes what the container manages. It has no dependencies on
other layers.
"""

from .conditions import ActivationContext, Condition, OnCapability, OnDefinition, OnProfile
from .enums import ContainerState, LifecycleState, ReferenceKind, ScopeKind
from .exceptions import (
    AmbiguousDependencyError,
    CircularDependencyError,
    ContainerStateError,
    DefinitionNotFoundError,
    DuplicateDefinitionError,
    HookLookupError,
    InvalidDefinitionError,
    IoCException,
    LifecycleHookFailure,
    LifecycleTransitionError,
    ScopeNotActiveError,
    TeardownError,
    UnresolvedDependencyError,
)
from .interfaces import IContainer, IDefinitionRegistry, IGraphResolver, ILifecycleOrchestrator, IScopeManager
from .keys import describe_key
from .models import (
    Binding,
    ComponentDefinition,
    DependencyEdge,
    DependencyReference,
    ManagedInstance,
    ResolutionPlan,
    ScopeContext,
)
from .settings import ContainerSettings

__all__ = [
    # Enums
    "ScopeKind",
    "ReferenceKind",
    "LifecycleState",
    "ContainerState",
    # Exceptions
    "IoCException",
    "DuplicateDefinitionError",
    "DefinitionNotFoundError",
    "InvalidDefinitionError",
    "CircularDependencyError",
    "AmbiguousDependencyError",
    "UnresolvedDependencyError",
    "ScopeNotActiveError",
    "LifecycleHookFailure",
    "LifecycleTransitionError",
    "HookLookupError",
    "TeardownError",
    "ContainerStateError",
    # Conditions
    "ActivationContext",
    "Condition",
    "OnProfile",
    "OnDefinition",
    "OnCapability",
    # Interfaces
    "IContainer",
    "IDefinitionRegistry",
    "IGraphResolver",
    "IScopeManager",
    "ILifecycleOrchestrator",
    # Models
    "ComponentDefinition",
    "DependencyReference",
    "DependencyEdge",
    "Binding",
    "ResolutionPlan",
    "ScopeContext",
    "ManagedInstance",
    "ContainerSettings",
    # Helpers
    "describe_key",
]
