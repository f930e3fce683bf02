from typing import List, Optional, Sequence

from lattice_ioc.domain.enums import LifecycleState


class IoCException(Exception):
    """Base exception for container-related errors."""


class DuplicateDefinitionError(IoCException):
    """Raised when two definitions share the same name.

    Attributes:
        name: The duplicated definition name.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A definition named '{name}' is already registered")


class DefinitionNotFoundError(IoCException):
    """Raised when a registry lookup names an unknown definition.

    Attributes:
        name: The name that was looked up.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No definition named '{name}' is registered")


class InvalidDefinitionError(IoCException):
    """Raised for definitions whose references contradict each other.

    This occurs when:
    - The same target is referenced both as required and as optional.
    - Two constructor references fill the same keyword argument.
    """


class CircularDependencyError(IoCException):
    """Raised when a cycle of required dependencies is detected.

    Attributes:
        cycle: Ordered definition names forming the cycle, first name repeated last.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")


class AmbiguousDependencyError(IoCException):
    """Raised when a reference matches several candidates and no single one is primary.

    Attributes:
        reference: Label of the reference that could not be disambiguated.
        candidates: Names of all competing definitions.
        consumer: Name of the definition holding the reference, if any.
    """

    def __init__(self, reference: str, candidates: Sequence[str], consumer: Optional[str] = None) -> None:
        self.reference = reference
        self.candidates = list(candidates)
        self.consumer = consumer
        message = f"Ambiguous dependency '{reference}': candidates {', '.join(self.candidates)}"
        if consumer:
            message += f" (required by '{consumer}')"
        super().__init__(message)


class UnresolvedDependencyError(IoCException):
    """Raised when a dependency cannot be satisfied.

    This occurs when:
    - No active definition matches a required reference.
    - The matching definition was pruned by its activation conditions.
    - A lookup names an unknown or inactive definition.

    Attributes:
        identity: The name or capability that could not be resolved.
        reason: Optional reason for the failure.
        consumer: Name of the definition that needed it, if any.
    """

    def __init__(self, identity: str, reason: Optional[str] = None, consumer: Optional[str] = None) -> None:
        self.identity = identity
        self.reason = reason
        self.consumer = consumer
        message = f"Cannot resolve dependency '{identity}'"
        if consumer:
            message += f" required by '{consumer}'"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class ScopeNotActiveError(IoCException):
    """Raised when a contextual scope is used outside an active context.

    Attributes:
        kind: The context kind that was expected to be active.
        identity: The definition being looked up, if any.
    """

    def __init__(self, kind: str, identity: Optional[str] = None, reason: Optional[str] = None) -> None:
        self.kind = kind
        self.identity = identity
        message = f"No active '{kind}' context"
        if identity:
            message += f" for '{identity}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class LifecycleHookFailure(IoCException):
    """Raised when a factory, injection step or lifecycle hook fails.

    Attributes:
        identity: Name of the definition whose instance failed.
        state: The lifecycle state the instance was moving into.
        cause: The underlying exception, if the hook raised one.
    """

    def __init__(self, identity: str, state: LifecycleState, cause: Optional[BaseException] = None) -> None:
        self.identity = identity
        self.state = state
        self.cause = cause
        message = f"Lifecycle failure for '{identity}' entering {state.value}"
        if cause is not None:
            message += f": {cause}"
        else:
            message += ": hook returned False"
        super().__init__(message)


class LifecycleTransitionError(IoCException):
    """Raised when an instance is asked to skip or repeat a lifecycle state."""

    def __init__(self, identity: str, current: LifecycleState, target: LifecycleState) -> None:
        self.identity = identity
        self.current = current
        self.target = target
        super().__init__(f"Illegal lifecycle transition for '{identity}': {current.value} -> {target.value}")


class HookLookupError(IoCException):
    """Raised when a lifecycle hook looks up a component that does not exist yet."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(
            f"Lifecycle hooks may only look up already-ready components; '{identity}' would have to be created"
        )


class TeardownError(IoCException):
    """Raised after teardown completes if any pre-destroy hook failed.

    Attributes:
        failures: Every failure recorded during teardown, in teardown order.
    """

    def __init__(self, failures: List[LifecycleHookFailure]) -> None:
        self.failures = list(failures)
        names = ", ".join(failure.identity for failure in self.failures)
        super().__init__(f"Teardown completed with {len(self.failures)} failure(s): {names}")


class ContainerStateError(IoCException):
    """Raised for operations the container's current state does not allow.

    This occurs when:
    - Registering definitions after the build phase.
    - Looking up components before build, after close, or after a failed build.
    """
