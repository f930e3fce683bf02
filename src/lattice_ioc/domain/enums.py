from enum import Enum


class ScopeKind(str, Enum):
    """Defines how many instances of a definition exist and who owns them.

    Attributes:
        CONTAINER: Single instance per container lifetime.
        RESOLUTION: New instance created on each lookup, owned by the caller.
        CONTEXTUAL: Single instance per active scope context (e.g., per HTTP request).
    """

    CONTAINER = "container"
    RESOLUTION = "resolution"
    CONTEXTUAL = "contextual"

    def __str__(self) -> str:
        return self.value


class ReferenceKind(str, Enum):
    """How a dependency reference identifies its supplier."""

    NAME = "name"
    CAPABILITY = "capability"

    def __str__(self) -> str:
        return self.value


class LifecycleState(str, Enum):
    """States an instance moves through between creation and teardown.

    Transitions are strictly ordered. FAILED is terminal and reachable from any
    creation state; DESTROYED is terminal after teardown.
    """

    UNINITIALIZED = "uninitialized"
    INSTANTIATED = "instantiated"
    INJECTED = "injected"
    POST_INITIALIZED = "post_initialized"
    READY = "ready"
    PRE_DESTROY = "pre_destroy"
    DESTROYED = "destroyed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (LifecycleState.DESTROYED, LifecycleState.FAILED)

    def can_transition_to(self, target: "LifecycleState") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    LifecycleState.UNINITIALIZED: (LifecycleState.INSTANTIATED, LifecycleState.FAILED),
    LifecycleState.INSTANTIATED: (LifecycleState.INJECTED, LifecycleState.FAILED),
    LifecycleState.INJECTED: (LifecycleState.POST_INITIALIZED, LifecycleState.FAILED),
    LifecycleState.POST_INITIALIZED: (LifecycleState.READY, LifecycleState.FAILED),
    LifecycleState.READY: (LifecycleState.PRE_DESTROY,),
    LifecycleState.PRE_DESTROY: (LifecycleState.DESTROYED,),
    LifecycleState.DESTROYED: (),
    LifecycleState.FAILED: (),
}


class ContainerState(str, Enum):
    """Build state of a container."""

    CREATED = "created"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value
