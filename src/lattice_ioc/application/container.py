import logging
import threading
from contextlib import contextmanager
from typing import Any, ContextManager, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar, Union

from lattice_ioc.application.circular_detector import CircularDependencyDetector
from lattice_ioc.application.graph_resolver import DependencyGraphResolver, select_candidate
from lattice_ioc.application.lifecycle import ABSENT, LifecycleOrchestrator
from lattice_ioc.application.references import ScopedReference
from lattice_ioc.application.registry import DefinitionRegistry
from lattice_ioc.application.scope_manager import ScopeManager
from lattice_ioc.domain import (
    Binding,
    ComponentDefinition,
    ContainerSettings,
    ContainerState,
    ContainerStateError,
    IContainer,
    IGraphResolver,
    ILifecycleOrchestrator,
    LifecycleHookFailure,
    LifecycleState,
    ManagedInstance,
    ResolutionPlan,
    ScopeContext,
    ScopeKind,
    TeardownError,
    UnresolvedDependencyError,
    describe_key,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Container(IContainer):
    """Inversion-of-control container.

    Orchestrates registration, graph resolution, scoped caching and lifecycle
    management. Definitions are registered up front, ``build()`` resolves the
    graph once and eagerly creates container-lifetime components, after which
    lookups are served until ``close()``.

    Attributes:
        _registry: Stores definitions; frozen at build.
        _resolver: Builds the resolution plan.
        _scopes: Owns instance caches and contextual scope boundaries.
        _lifecycle: Drives instances through their lifecycle states.
        _circular_detector: Guards re-entrant creation at runtime.
        teardown_failures: Teardown failures from a failed build or from close().

    Example:
        >>> container = Container([
        ...     ComponentDefinition(name="config", factory=Config),
        ...     ComponentDefinition(
        ...         name="repository",
        ...         factory=UserRepository,
        ...         dependencies=(DependencyReference.by_name("config"),),
        ...     ),
        ... ]).build()
        >>> repository = container.get("repository")
        >>> container.close()
    """

    def __init__(
        self,
        definitions: Optional[Iterable[ComponentDefinition]] = None,
        settings: Optional[ContainerSettings] = None,
    ) -> None:
        """Initialize the container.

        Args:
            definitions: Definitions to register immediately.
            settings: Container configuration. Defaults to ``ContainerSettings()``.
        """
        self._settings = settings or ContainerSettings()
        self._registry = DefinitionRegistry()
        self._resolver: IGraphResolver = DependencyGraphResolver(self._settings.profiles)
        self._scopes = ScopeManager()
        self._lifecycle: ILifecycleOrchestrator = LifecycleOrchestrator()
        self._circular_detector = CircularDependencyDetector()
        self._plan: Optional[ResolutionPlan] = None
        self._state = ContainerState.CREATED
        self._state_lock = threading.RLock()
        self.teardown_failures: List[LifecycleHookFailure] = []

        if definitions is not None:
            self.register_all(definitions)

    @property
    def settings(self) -> ContainerSettings:
        return self._settings

    @property
    def state(self) -> ContainerState:
        return self._state

    @property
    def plan(self) -> Optional[ResolutionPlan]:
        return self._plan

    @property
    def resolution_order(self) -> Tuple[str, ...]:
        """Active definition names, suppliers before consumers."""
        return self._plan.order if self._plan is not None else ()

    @property
    def definitions(self) -> Tuple[ComponentDefinition, ...]:
        """Registered definitions in registration order."""
        return tuple(self._registry)

    def register(self, definition: ComponentDefinition) -> None:
        """Register one definition before the container is built.

        Raises:
            ContainerStateError: If the container was already built.
            DuplicateDefinitionError: If the name is already registered.
            InvalidDefinitionError: If the definition's references conflict.
        """
        if self._state is not ContainerState.CREATED:
            raise ContainerStateError(f"Cannot register '{definition.name}': container is {self._state}")
        self._registry.register(definition)

    def register_all(self, definitions: Iterable[ComponentDefinition]) -> None:
        for definition in definitions:
            self.register(definition)

    def build(self) -> "Container":
        """Resolve the dependency graph and create eager container-lifetime components.

        On any failure the components created so far are torn down, the
        container moves to FAILED and the error is re-raised. Components
        created before the failure were already READY and are torn down
        through their pre-destroy hooks.

        Returns:
            The container itself, for chaining.

        Raises:
            ContainerStateError: If the container was already built.
            CircularDependencyError: If required references form a cycle.
            AmbiguousDependencyError: If a reference has no single primary candidate.
            UnresolvedDependencyError: If an eager component cannot be satisfied.
            LifecycleHookFailure: If an eager component fails to come up.
        """
        with self._state_lock:
            if self._state is not ContainerState.CREATED:
                raise ContainerStateError(f"Container cannot be built: it is {self._state}")
            self._state = ContainerState.BUILDING
            self._registry.freeze()
            try:
                self._plan = self._resolver.resolve(self._registry)
                if self._settings.eager_init:
                    for name in self._plan.order:
                        if self._registry.lookup_by_name(name).is_eager:
                            self._resolve_name(name)
            except Exception:
                self._state = ContainerState.FAILED
                self.teardown_failures.extend(self._scopes.release_singletons(self._lifecycle.tear_down))
                logger.error("Container build failed; created components were torn down")
                raise
            self._state = ContainerState.READY
        logger.info("Container built with %d active definition(s)", len(self._plan.order))
        return self

    def get(self, name: str) -> Any:
        """Return the READY instance of a definition.

        Args:
            name: Definition name.

        Raises:
            ContainerStateError: If the container is not built, failed or closed.
            UnresolvedDependencyError: If the name is unknown, pruned or unresolvable.
            ScopeNotActiveError: If the definition is contextual and no context is active.
            LifecycleHookFailure: If the instance failed to come up.
            HookLookupError: If called from a hook and a new instance would be created.
        """
        self._ensure_usable()
        return self._resolve_name(name)

    def get_by_capability(self, capability: Union[Type[T], Any]) -> T:
        """Return the READY instance of the provider of a capability.

        Args:
            capability: Capability key, typically an abstract type.

        Raises:
            AmbiguousDependencyError: If several providers match and no single one is primary.
            UnresolvedDependencyError: If no active definition provides the capability.

        Example:
            >>> repository = container.get_by_capability(IUserRepository)
        """
        self._ensure_usable()
        label = f"capability:{describe_key(capability)}"
        candidates = [
            definition
            for definition in self._registry.lookup_by_capability(capability)
            if definition.name in self._plan.active
        ]
        chosen = select_candidate(label, candidates)
        if chosen is None:
            raise UnresolvedDependencyError(label, "no active definition provides that capability")
        return self._resolve_name(chosen.name)

    def contains(self, name: str) -> bool:
        """Return whether a definition is active in the built container."""
        return self._plan is not None and name in self._plan.active

    def state_of(self, name: str, context: Optional[ScopeContext] = None) -> Optional[LifecycleState]:
        """Lifecycle state of a cached instance, or None if nothing is cached.

        Args:
            name: Definition name.
            context: Scope context for contextual definitions; None for container-lifetime.
        """
        managed = self._scopes.peek(name, context)
        return managed.state if managed is not None else None

    def enter_context(self, kind: str = "request") -> ScopeContext:
        """Open a contextual scope and make it active in the current thread or task."""
        self._ensure_usable()
        return self._scopes.enter_context(kind)

    def exit_context(self, context: ScopeContext) -> None:
        """Close a contextual scope, tearing down its instances newest-first.

        Raises:
            ScopeNotActiveError: If the context was already exited.
            TeardownError: If any pre-destroy hook failed; every instance is still torn down.
        """
        failures = self._scopes.exit_context(context, self._lifecycle.tear_down)
        if failures:
            raise TeardownError(failures)

    @contextmanager
    def context(self, kind: str = "request") -> Iterator[ScopeContext]:
        """Enter a contextual scope for the duration of a block.

        Example:
            >>> with container.context("request"):
            ...     handler = container.get("request_handler")
        """
        scope_context = self.enter_context(kind)
        try:
            yield scope_context
        finally:
            self.exit_context(scope_context)

    def activate(self, context: ScopeContext) -> ContextManager[ScopeContext]:
        """Make an already-open context active, e.g. in a worker thread."""
        return self._scopes.activate(context)

    def close(self) -> None:
        """Tear down open contexts, then container-lifetime components newest-first.

        Teardown is best-effort: failing hooks are recorded and the remaining
        components are still torn down. Calling close twice is a no-op.

        Raises:
            TeardownError: If any pre-destroy hook failed.
        """
        with self._state_lock:
            if self._state is ContainerState.CLOSED:
                return
            failures: List[LifecycleHookFailure] = []
            for scope_context in self._scopes.open_contexts():
                failures.extend(self._scopes.exit_context(scope_context, self._lifecycle.tear_down))
            failures.extend(self._scopes.release_singletons(self._lifecycle.tear_down))
            self._state = ContainerState.CLOSED
        logger.info("Container closed with %d teardown failure(s)", len(failures))
        if failures:
            self.teardown_failures.extend(failures)
            raise TeardownError(failures)

    def __enter__(self) -> "Container":
        if self._state is ContainerState.CREATED:
            self.build()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        self.close()
        return False

    def _ensure_usable(self) -> None:
        if self._plan is None or self._state not in (ContainerState.BUILDING, ContainerState.READY):
            raise ContainerStateError(f"Container is {self._state}; lookups require a built, open container")

    def _resolve_name(self, name: str) -> Any:
        plan = self._plan
        if name not in plan.active:
            if name in self._registry:
                raise UnresolvedDependencyError(name, "definition was deactivated by its conditions")
            raise UnresolvedDependencyError(name, "no definition with that name is registered")
        error = plan.unresolved.get(name)
        if error is not None:
            raise error.with_traceback(None)

        if self._circular_detector.contains(name):
            self._circular_detector.push(name)  # raises with the full path

        definition = self._registry.lookup_by_name(name)
        allow_create = not (self._settings.reject_hook_lookups and self._lifecycle.in_hook)
        return self._scopes.get_or_create(definition, self._create, allow_create=allow_create)

    def _create(self, managed: ManagedInstance) -> None:
        consumer = managed.definition
        with self._circular_detector.visiting(managed.name):
            self._lifecycle.bring_up(
                managed,
                self._plan.bindings[managed.name],
                lambda binding: self._supply(consumer, binding),
            )

    def _supply(self, consumer: ComponentDefinition, binding: Binding) -> Any:
        """Value injected for one binding: the instance, an indirection, or ABSENT."""
        if binding.supplier is None:
            return ABSENT
        supplier = self._registry.lookup_by_name(binding.supplier)
        if binding.deferred or _outlives(consumer, supplier):
            return ScopedReference(self, binding.supplier)
        return self._resolve_name(binding.supplier)


def _outlives(consumer: ComponentDefinition, supplier: ComponentDefinition) -> bool:
    """Whether the consumer may outlive the supplier's scope context."""
    if supplier.scope is not ScopeKind.CONTEXTUAL:
        return False
    return not (consumer.scope is ScopeKind.CONTEXTUAL and consumer.context_kind == supplier.context_kind)
