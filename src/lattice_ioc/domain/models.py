from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lattice_ioc.domain.conditions import Condition
from lattice_ioc.domain.enums import LifecycleState, ReferenceKind, ScopeKind
from lattice_ioc.domain.exceptions import UnresolvedDependencyError
from lattice_ioc.domain.keys import describe_key

HookSpec = Union[str, Callable[[], Any]]


def _ensure_hashable(value: Any) -> Any:
    try:
        hash(value)
    except TypeError as e:
        raise ValueError(f"Keys must be hashable, got {type(value).__name__}") from e
    return value


class DependencyReference(BaseModel):
    """Value object describing one dependency of a definition.

    Attributes:
        kind: Whether the supplier is looked up by name or by capability.
        target: Definition name, or capability key (string or type).
        required: Whether a missing supplier is a configuration error.
        parameter: Factory keyword receiving the supplier. Defaults to the target name.
        setter: Attribute (or one-argument method) set after construction instead.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ReferenceKind = Field(..., description="How the supplier is identified.")
    target: Any = Field(..., description="Definition name or capability key.")
    required: bool = Field(default=True, description="Whether the dependency must be satisfied.")
    parameter: Optional[str] = Field(default=None, description="Factory keyword argument to fill.")
    setter: Optional[str] = Field(default=None, description="Attribute or method attached after construction.")

    @model_validator(mode="after")
    def _check_shape(self) -> "DependencyReference":
        _ensure_hashable(self.target)
        if self.kind is ReferenceKind.NAME and not isinstance(self.target, str):
            raise ValueError("Name references must target a string definition name")
        if self.parameter is not None and self.setter is not None:
            raise ValueError("A reference is either constructor-injected (parameter) or setter-injected, not both")
        if self.setter is None and self.argument is None:
            raise ValueError(
                f"Reference to {describe_key(self.target)} needs an explicit parameter or setter name"
            )
        return self

    @classmethod
    def by_name(
        cls,
        name: str,
        *,
        required: bool = True,
        parameter: Optional[str] = None,
        setter: Optional[str] = None,
    ) -> "DependencyReference":
        return cls(kind=ReferenceKind.NAME, target=name, required=required, parameter=parameter, setter=setter)

    @classmethod
    def by_capability(
        cls,
        capability: Any,
        *,
        required: bool = True,
        parameter: Optional[str] = None,
        setter: Optional[str] = None,
    ) -> "DependencyReference":
        return cls(
            kind=ReferenceKind.CAPABILITY,
            target=capability,
            required=required,
            parameter=parameter,
            setter=setter,
        )

    @property
    def argument(self) -> Optional[str]:
        """Keyword argument filled at construction, or None for setter references."""
        if self.setter is not None:
            return None
        if self.parameter is not None:
            return self.parameter
        return self.target if isinstance(self.target, str) else None

    @property
    def is_setter(self) -> bool:
        return self.setter is not None

    @property
    def label(self) -> str:
        return f"{self.kind.value}:{describe_key(self.target)}"


class ComponentDefinition(BaseModel):
    """Static description of a component managed by the container.

    Attributes:
        name: Unique identity within the registry.
        factory: Callable receiving constructor dependencies as keyword arguments.
        capabilities: Capability keys (strings or types) this component satisfies.
        scope: Lifetime and sharing policy.
        context_kind: Which contextual scope applies when scope is CONTEXTUAL.
        dependencies: Ordered dependency references.
        primary: Wins capability lookups among several candidates.
        lazy: Container-lifetime components marked lazy are created on first lookup.
        conditions: All must match for the definition to stay active.
        post_init: Hooks run after injection, in declaration order.
        pre_destroy: Hooks run at teardown, in declaration order.

    Example:
        >>> ComponentDefinition(
        ...     name="user_service",
        ...     factory=UserService,
        ...     capabilities=(IUserService,),
        ...     dependencies=(DependencyReference.by_name("repository"),),
        ...     post_init=("start",),
        ...     pre_destroy=("stop",),
        ... )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Unique definition name.")
    factory: Callable[..., Any] = Field(..., description="Constructor-style factory.")
    capabilities: Tuple[Any, ...] = Field(default=(), description="Capabilities provided.")
    scope: ScopeKind = Field(default=ScopeKind.CONTAINER, description="Instance scope.")
    context_kind: str = Field(default="request", min_length=1, description="Contextual scope kind.")
    dependencies: Tuple[DependencyReference, ...] = Field(default=(), description="Dependency references.")
    primary: bool = Field(default=False, description="Preferred candidate for its capabilities.")
    lazy: bool = Field(default=False, description="Defer container-lifetime creation to first lookup.")
    conditions: Tuple[Condition, ...] = Field(default=(), description="Activation conditions.")
    post_init: Tuple[HookSpec, ...] = Field(default=(), description="Post-initialization hooks.")
    pre_destroy: Tuple[HookSpec, ...] = Field(default=(), description="Pre-teardown hooks.")

    @field_validator("capabilities")
    @classmethod
    def _capabilities_hashable(cls, value: Tuple[Any, ...]) -> Tuple[Any, ...]:
        for capability in value:
            _ensure_hashable(capability)
        return value

    @property
    def is_eager(self) -> bool:
        return self.scope is ScopeKind.CONTAINER and not self.lazy

    def provides(self, capability: Any) -> bool:
        return capability in self.capabilities


class DependencyEdge(BaseModel):
    """Directed edge consumer -> supplier used while building the graph."""

    model_config = ConfigDict(frozen=True)

    consumer: str
    supplier: str
    required: bool
    deferred: bool = False


class Binding(BaseModel):
    """A reference bound to the definition that satisfies it.

    Attributes:
        reference: The original dependency reference.
        supplier: Name of the supplying definition, or None when absent.
        deferred: Resolve lazily through an indirection (optional edge on a cycle).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    reference: DependencyReference
    supplier: Optional[str] = None
    deferred: bool = False

    @property
    def absent(self) -> bool:
        return self.supplier is None


class ResolutionPlan(BaseModel):
    """Immutable outcome of graph resolution.

    Attributes:
        order: Active definitions in topological order (suppliers first).
        active: Names that survived activation conditions.
        pruned: Names removed by activation conditions.
        bindings: Bound references per active definition.
        unresolved: Lazily-created definitions that cannot be satisfied, with the error
            raised when they are looked up.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    order: Tuple[str, ...] = ()
    active: FrozenSet[str] = frozenset()
    pruned: FrozenSet[str] = frozenset()
    bindings: Dict[str, Tuple[Binding, ...]] = Field(default_factory=dict)
    unresolved: Dict[str, UnresolvedDependencyError] = Field(default_factory=dict)


class ScopeContext(BaseModel):
    """Opaque handle for one activation of a contextual scope.

    Created by ``enter_context`` and invalidated by ``exit_context``.
    """

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., min_length=1, description="Contextual scope kind, e.g. 'request'.")
    context_id: str = Field(default_factory=lambda: uuid4().hex, description="Unique handle id.")


class ManagedInstance(BaseModel):
    """Lifecycle-tracked object for one (definition, scope context) pair.

    Attributes:
        definition: The definition this instance realizes.
        context: Owning scope context for contextual instances.
        state: Current lifecycle state.
        instance: The realized object once instantiated.
        error: Error recorded when creation failed.
        sequence: Creation order, assigned on reaching READY.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    definition: ComponentDefinition
    context: Optional[ScopeContext] = None
    state: LifecycleState = LifecycleState.UNINITIALIZED
    instance: Optional[Any] = None
    error: Optional[BaseException] = None
    sequence: Optional[int] = None

    @property
    def name(self) -> str:
        return self.definition.name
