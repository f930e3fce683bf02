import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from lattice_ioc.domain import (
    CircularDependencyError,
    ComponentDefinition,
    HookLookupError,
    IScopeManager,
    LifecycleHookFailure,
    LifecycleState,
    ManagedInstance,
    ScopeContext,
    ScopeKind,
    ScopeNotActiveError,
)
from lattice_ioc.domain.interfaces import Teardown

logger = logging.getLogger(__name__)


class InstanceSlot:
    """At-most-once guard around one cached instance.

    The thread that creates the slot performs creation; every other caller
    waits until the slot is settled and then observes the same outcome.
    """

    __slots__ = ("managed", "owner", "_settled")

    def __init__(self, managed: ManagedInstance) -> None:
        self.managed = managed
        self.owner = threading.get_ident()
        self._settled = threading.Event()

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    def settle(self) -> None:
        self._settled.set()

    def wait(self) -> None:
        self._settled.wait()


class _Partition:
    """Instance slots sharing one lock: the singleton cache or one scope context."""

    __slots__ = ("slots", "lock", "closed")

    def __init__(self) -> None:
        self.slots: Dict[str, InstanceSlot] = {}
        self.lock = threading.Lock()
        self.closed = False


class ScopeManager(IScopeManager):
    """Owns per-scope instance caches and contextual scope boundaries.

    - CONTAINER: one slot per definition for the container lifetime.
    - RESOLUTION: nothing cached, the caller owns every instance.
    - CONTEXTUAL: one slot per definition per open ScopeContext.

    Active contexts are tracked per kind in a ContextVar as a stack, so each
    thread and asyncio task sees the contexts it entered or activated. The
    innermost still-open entry is the current one.

    Attributes:
        _singletons: Container-lifetime partition.
        _contexts: Open contextual partitions keyed by handle.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._singletons = _Partition()
        self._contexts: Dict[ScopeContext, _Partition] = {}
        self._active: ContextVar[Mapping[str, Tuple[ScopeContext, ...]]] = ContextVar(
            f"lattice_ioc_active_contexts_{id(self)}", default={}
        )

    def get_or_create(
        self,
        definition: ComponentDefinition,
        create: Callable[[ManagedInstance], Any],
        allow_create: bool = True,
    ) -> Any:
        """Return the instance for the definition's scope, creating it at most once.

        Args:
            definition: The definition being looked up.
            create: Brings a fresh ManagedInstance to READY, raising on failure.
            allow_create: When False, creating a new instance raises HookLookupError.

        Returns:
            The READY instance.

        Raises:
            ScopeNotActiveError: If a contextual definition is looked up outside its context.
            HookLookupError: If creation is required but not allowed.
            LifecycleHookFailure: If creation failed now or on an earlier attempt.
        """
        if definition.scope is ScopeKind.RESOLUTION:
            if not allow_create:
                raise HookLookupError(definition.name)
            managed = ManagedInstance(definition=definition)
            create(managed)
            return managed.instance

        context: Optional[ScopeContext] = None
        if definition.scope is ScopeKind.CONTEXTUAL:
            context = self.require_context(definition.context_kind, definition.name)
            partition = self._partition_for(context, definition.name)
        else:
            partition = self._singletons

        with partition.lock:
            slot = partition.slots.get(definition.name)
            creator = slot is None
            if creator:
                if not allow_create:
                    raise HookLookupError(definition.name)
                slot = InstanceSlot(ManagedInstance(definition=definition, context=context))
                partition.slots[definition.name] = slot

        if creator:
            try:
                create(slot.managed)
            finally:
                slot.settle()
        elif not slot.settled:
            if slot.owner == threading.get_ident():
                raise CircularDependencyError([definition.name, definition.name])
            if not allow_create:
                raise HookLookupError(definition.name)
            slot.wait()

        managed = slot.managed
        if managed.state is LifecycleState.FAILED:
            raise managed.error.with_traceback(None)
        return managed.instance

    def peek(self, name: str, context: Optional[ScopeContext] = None) -> Optional[ManagedInstance]:
        """Return the cached ManagedInstance for a name without creating anything."""
        if context is None:
            partition = self._singletons
        else:
            partition = self._contexts.get(context)
            if partition is None:
                return None
        slot = partition.slots.get(name)
        return slot.managed if slot is not None else None

    def enter_context(self, kind: str) -> ScopeContext:
        """Open a new context of the given kind and make it the active one."""
        context = ScopeContext(kind=kind)
        with self._lock:
            self._contexts[context] = _Partition()
        active = self._active.get()
        self._active.set({**active, kind: self._still_open(active.get(kind, ())) + (context,)})
        logger.debug("Entered %s context %s", kind, context.context_id)
        return context

    @contextmanager
    def activate(self, context: ScopeContext) -> Iterator[ScopeContext]:
        """Make an open context active for the duration of a block.

        Useful for handing a context to another thread or task.

        Raises:
            ScopeNotActiveError: If the context was already exited.
        """
        if context not in self._contexts:
            raise ScopeNotActiveError(context.kind, reason=f"context {context.context_id} was already exited")
        active = self._active.get()
        token = self._active.set({**active, context.kind: active.get(context.kind, ()) + (context,)})
        try:
            yield context
        finally:
            self._active.reset(token)

    def current_context(self, kind: str) -> Optional[ScopeContext]:
        """Return the active, still-open context of a kind, if any."""
        for context in reversed(self._active.get().get(kind, ())):
            if context in self._contexts:
                return context
        return None

    def require_context(self, kind: str, identity: Optional[str] = None) -> ScopeContext:
        context = self.current_context(kind)
        if context is None:
            raise ScopeNotActiveError(kind, identity)
        return context

    def open_contexts(self) -> List[ScopeContext]:
        """Open contexts, most recently entered first."""
        with self._lock:
            return list(reversed(list(self._contexts)))

    def exit_context(self, context: ScopeContext, teardown: Teardown) -> List[LifecycleHookFailure]:
        """Close a context: tear down its instances newest-first, then discard them.

        Args:
            context: The context to close.
            teardown: Moves one READY instance to DESTROYED, returning a failure if any.

        Returns:
            Failures recorded while tearing down.

        Raises:
            ScopeNotActiveError: If the context is unknown or already exited.
        """
        with self._lock:
            partition = self._contexts.get(context)
            if partition is None or partition.closed:
                raise ScopeNotActiveError(context.kind, reason=f"context {context.context_id} was already exited")
            partition.closed = True

        failures = self._tear_down_partition(partition, teardown)

        with self._lock:
            del self._contexts[context]
        active = self._active.get()
        stack = active.get(context.kind, ())
        if context in stack:
            self._active.set({**active, context.kind: self._still_open(stack)})
        logger.debug("Exited %s context %s", context.kind, context.context_id)
        return failures

    def release_singletons(self, teardown: Teardown) -> List[LifecycleHookFailure]:
        """Tear down every container-lifetime instance newest-first and empty the cache."""
        return self._tear_down_partition(self._singletons, teardown)

    def _partition_for(self, context: ScopeContext, identity: str) -> _Partition:
        partition = self._contexts.get(context)
        if partition is None or partition.closed:
            raise ScopeNotActiveError(context.kind, identity, reason="context is closing")
        return partition

    def _still_open(self, stack: Tuple[ScopeContext, ...]) -> Tuple[ScopeContext, ...]:
        return tuple(context for context in stack if context in self._contexts)

    @staticmethod
    def _tear_down_partition(partition: _Partition, teardown: Teardown) -> List[LifecycleHookFailure]:
        with partition.lock:
            slots = list(partition.slots.values())
            partition.slots.clear()
        ready = [slot.managed for slot in slots if slot.managed.state is LifecycleState.READY]
        ready.sort(key=lambda managed: managed.sequence, reverse=True)
        failures = []
        for managed in ready:
            failure = teardown(managed)
            if failure is not None:
                failures.append(failure)
        return failures
