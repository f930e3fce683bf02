import inspect
import itertools
import logging
import threading
from typing import Any, Callable, Optional, Sequence, Tuple

from lattice_ioc.domain import (
    Binding,
    ILifecycleOrchestrator,
    LifecycleHookFailure,
    LifecycleState,
    LifecycleTransitionError,
    ManagedInstance,
)
from lattice_ioc.domain.models import HookSpec

logger = logging.getLogger(__name__)

ABSENT = object()
"""Returned by a supplier when an optional dependency has no provider."""


class LifecycleOrchestrator(ILifecycleOrchestrator):
    """Drives instances through creation and teardown, strictly in order.

    UNINITIALIZED -> INSTANTIATED -> INJECTED -> POST_INITIALIZED -> READY
    -> PRE_DESTROY -> DESTROYED, with FAILED reachable from any creation state.

    Attributes:
        _sequence: Monotonic counter recording the order instances become READY.
        _local: Thread-local hook nesting depth.
    """

    def __init__(self) -> None:
        self._sequence = itertools.count(1)
        self._local = threading.local()

    @property
    def in_hook(self) -> bool:
        return getattr(self._local, "depth", 0) > 0

    def transition(self, managed: ManagedInstance, target: LifecycleState) -> None:
        """Move an instance to the next state.

        Raises:
            LifecycleTransitionError: If the move skips or repeats a state.
        """
        if not managed.state.can_transition_to(target):
            raise LifecycleTransitionError(managed.name, managed.state, target)
        logger.debug("%s: %s -> %s", managed.name, managed.state, target)
        managed.state = target

    def bring_up(
        self,
        managed: ManagedInstance,
        bindings: Tuple[Binding, ...],
        supply: Callable[[Binding], Any],
    ) -> Any:
        """Create an instance and move it to READY.

        Constructor dependencies are supplied (and therefore READY) before the
        factory runs; setter dependencies are attached right after it.

        Args:
            managed: A fresh instance record in UNINITIALIZED.
            bindings: The definition's bound references.
            supply: Returns the value for a binding, or ABSENT.

        Returns:
            The READY object.

        Raises:
            LifecycleHookFailure: If the factory, an injection or a post-init hook fails.
            IoCException: Dependency errors propagate unchanged.
        """
        definition = managed.definition
        try:
            kwargs = {}
            for binding in bindings:
                if binding.reference.is_setter:
                    continue
                value = supply(binding)
                if value is not ABSENT:
                    kwargs[binding.reference.argument] = value

            managed.instance = self._guarded(managed, LifecycleState.INSTANTIATED, lambda: definition.factory(**kwargs))
            self.transition(managed, LifecycleState.INSTANTIATED)

            for binding in bindings:
                if not binding.reference.is_setter:
                    continue
                value = supply(binding)
                if value is not ABSENT:
                    self._guarded(
                        managed,
                        LifecycleState.INJECTED,
                        lambda: _attach(managed.instance, binding.reference.setter, value),
                    )
            self.transition(managed, LifecycleState.INJECTED)

            self._run_hooks(managed, definition.post_init, LifecycleState.POST_INITIALIZED)
            self.transition(managed, LifecycleState.POST_INITIALIZED)

            managed.sequence = next(self._sequence)
            self.transition(managed, LifecycleState.READY)
            return managed.instance
        except Exception as e:
            managed.error = e
            managed.instance = None
            managed.state = LifecycleState.FAILED
            logger.error("Creation of %s failed: %s", managed.name, e)
            raise

    def tear_down(self, managed: ManagedInstance) -> Optional[LifecycleHookFailure]:
        """Run pre-destroy hooks and release a READY instance.

        Every hook runs even if an earlier one fails.

        Returns:
            The first failure, or None if all hooks succeeded or the instance was never READY.
        """
        if managed.state is not LifecycleState.READY:
            return None
        self.transition(managed, LifecycleState.PRE_DESTROY)
        first_failure: Optional[LifecycleHookFailure] = None
        for hook in managed.definition.pre_destroy:
            try:
                self._invoke(managed, hook, LifecycleState.PRE_DESTROY)
            except LifecycleHookFailure as failure:
                logger.warning("Pre-destroy hook of %s failed: %s", managed.name, failure)
                first_failure = first_failure or failure
        managed.instance = None
        self.transition(managed, LifecycleState.DESTROYED)
        return first_failure

    def _run_hooks(self, managed: ManagedInstance, hooks: Sequence[HookSpec], state: LifecycleState) -> None:
        for hook in hooks:
            self._invoke(managed, hook, state)

    def _invoke(self, managed: ManagedInstance, hook: HookSpec, state: LifecycleState) -> None:
        """Call one hook with the hook guard raised."""
        self._local.depth = getattr(self._local, "depth", 0) + 1
        try:
            callback = getattr(managed.instance, hook) if isinstance(hook, str) else hook
            result = callback()
        except LifecycleHookFailure:
            raise
        except Exception as e:
            raise LifecycleHookFailure(managed.name, state, e) from e
        finally:
            self._local.depth -= 1
        if result is False:
            raise LifecycleHookFailure(managed.name, state)

    @staticmethod
    def _guarded(managed: ManagedInstance, state: LifecycleState, step: Callable[[], Any]) -> Any:
        try:
            return step()
        except LifecycleHookFailure:
            raise
        except Exception as e:
            raise LifecycleHookFailure(managed.name, state, e) from e


def _attach(instance: Any, setter: str, value: Any) -> None:
    """Call ``instance.<setter>(value)`` if it is a method, otherwise set the attribute."""
    member = getattr(instance, setter, None)
    if inspect.ismethod(member):
        member(value)
    else:
        setattr(instance, setter, value)
