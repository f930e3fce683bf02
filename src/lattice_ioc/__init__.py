"""
lattice-ioc: Inversion-of-control container with explicit definitions, scopes and lifecycles.

Public API exports for the lattice-ioc package.
"""

import logging

# Application exports
from lattice_ioc.application.container import Container
from lattice_ioc.application.references import ScopedReference

# Domain exports
from lattice_ioc.domain.conditions import OnCapability, OnDefinition, OnProfile
from lattice_ioc.domain.enums import ContainerState, LifecycleState, ScopeKind
from lattice_ioc.domain.exceptions import (
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
from lattice_ioc.domain.models import ComponentDefinition, DependencyReference, ScopeContext
from lattice_ioc.domain.settings import ContainerSettings

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Container
    "Container",
    "ContainerSettings",
    "ScopedReference",
    # Definitions
    "ComponentDefinition",
    "DependencyReference",
    "ScopeContext",
    # Conditions
    "OnProfile",
    "OnDefinition",
    "OnCapability",
    # Enums
    "ScopeKind",
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
]
