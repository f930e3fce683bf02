from abc import ABC, abstractmethod
from typing import Any, Callable, ContextManager, Iterator, List, Optional, Tuple

from lattice_ioc.domain.exceptions import LifecycleHookFailure
from lattice_ioc.domain.models import Binding, ComponentDefinition, ManagedInstance, ResolutionPlan, ScopeContext

Teardown = Callable[[ManagedInstance], Optional[LifecycleHookFailure]]


class IDefinitionRegistry(ABC):
    """Abstract interface for storing and looking up component definitions."""

    @abstractmethod
    def register(self, definition: ComponentDefinition) -> None:
        """Add a definition.

        Raises:
            DuplicateDefinitionError: If the name is already registered.
        """

    @abstractmethod
    def lookup_by_name(self, name: str) -> ComponentDefinition:
        """Return the definition with the given name.

        Raises:
            DefinitionNotFoundError: If no such definition exists.
        """

    @abstractmethod
    def lookup_by_capability(self, capability: Any) -> Tuple[ComponentDefinition, ...]:
        """Return every definition providing a capability, in registration order."""

    @abstractmethod
    def names(self) -> Tuple[str, ...]:
        """Return all registered names in registration order."""

    @abstractmethod
    def __contains__(self, name: object) -> bool:
        """Return whether a name is registered."""

    @abstractmethod
    def __iter__(self) -> Iterator[ComponentDefinition]:
        """Iterate definitions in registration order."""


class IGraphResolver(ABC):
    """Abstract interface for building the dependency graph."""

    @abstractmethod
    def resolve(self, registry: IDefinitionRegistry) -> ResolutionPlan:
        """Compute the resolution plan for every definition in the registry.

        Raises:
            CircularDependencyError: If required references form a cycle.
            AmbiguousDependencyError: If a reference has no single primary candidate.
            UnresolvedDependencyError: If an eagerly-created definition cannot be satisfied.
        """


class IScopeManager(ABC):
    """Abstract interface for scope-aware instance caches."""

    @abstractmethod
    def get_or_create(
        self,
        definition: ComponentDefinition,
        create: Callable[[ManagedInstance], Any],
        allow_create: bool = True,
    ) -> Any:
        """Return the cached instance for the definition's scope or create one.

        Args:
            definition: The definition being looked up.
            create: Brings a fresh ManagedInstance to READY.
            allow_create: When False, only already-cached instances may be returned.
        """

    @abstractmethod
    def enter_context(self, kind: str) -> ScopeContext:
        """Open and activate a new contextual scope."""

    @abstractmethod
    def activate(self, context: ScopeContext) -> ContextManager[ScopeContext]:
        """Make an open context the active one for the duration of a block."""

    @abstractmethod
    def exit_context(self, context: ScopeContext, teardown: Teardown) -> List[LifecycleHookFailure]:
        """Tear down and discard every instance created under a context."""

    @abstractmethod
    def release_singletons(self, teardown: Teardown) -> List[LifecycleHookFailure]:
        """Tear down and discard every container-lifetime instance."""


class ILifecycleOrchestrator(ABC):
    """Abstract interface driving instances through their lifecycle."""

    @abstractmethod
    def bring_up(
        self,
        managed: ManagedInstance,
        bindings: Tuple[Binding, ...],
        supply: Callable[[Binding], Any],
    ) -> Any:
        """Move a fresh instance from UNINITIALIZED to READY.

        Raises:
            LifecycleHookFailure: If the factory, an injection or a hook fails.
        """

    @abstractmethod
    def tear_down(self, managed: ManagedInstance) -> Optional[LifecycleHookFailure]:
        """Move a READY instance to DESTROYED, returning the first hook failure."""

    @property
    @abstractmethod
    def in_hook(self) -> bool:
        """Whether the current thread is running a lifecycle hook."""


class IContainer(ABC):
    """Abstract interface for container operations exposed to consumers."""

    @abstractmethod
    def build(self) -> "IContainer":
        """Resolve the graph and eagerly create container-lifetime components."""

    @abstractmethod
    def get(self, name: str) -> Any:
        """Return the READY instance of a definition by name."""

    @abstractmethod
    def get_by_capability(self, capability: Any) -> Any:
        """Return the READY instance of the single (or primary) capability provider."""

    @abstractmethod
    def enter_context(self, kind: str = "request") -> ScopeContext:
        """Open a contextual scope."""

    @abstractmethod
    def exit_context(self, context: ScopeContext) -> None:
        """Close a contextual scope, tearing down its instances."""

    @abstractmethod
    def close(self) -> None:
        """Tear down every instance the container owns."""
