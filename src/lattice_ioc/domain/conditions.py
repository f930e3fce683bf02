"""Declarative activation conditions for component definitions.

Each condition names the definitions it inspects, so the resolver can decide
activation in dependency order and reject conditions that reference each other
in a cycle.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lattice_ioc.domain.exceptions import ContainerStateError
from lattice_ioc.domain.keys import describe_key

if TYPE_CHECKING:
    from lattice_ioc.domain.interfaces import IDefinitionRegistry


class ActivationContext:
    """Read-only view of already-decided definitions for one condition evaluation.

    Attributes:
        owner: Name of the definition whose conditions are being evaluated.
    """

    def __init__(
        self,
        owner: str,
        profiles: FrozenSet[str],
        registry: "IDefinitionRegistry",
        decisions: Mapping[str, bool],
    ) -> None:
        self.owner = owner
        self._profiles = profiles
        self._registry = registry
        self._decisions = decisions

    @property
    def profiles(self) -> FrozenSet[str]:
        return self._profiles

    def is_active(self, name: str) -> bool:
        """Return whether a definition survived its own activation conditions.

        Raises:
            ContainerStateError: If the definition has not been decided yet.
        """
        if name not in self._registry:
            return False
        if name not in self._decisions:
            raise ContainerStateError(f"Activation of '{name}' is not decided yet (needed by '{self.owner}')")
        return self._decisions[name]

    def providers(self, capability: Any) -> List[str]:
        """Names of active definitions other than the owner providing a capability."""
        return [
            definition.name
            for definition in self._registry.lookup_by_capability(capability)
            if definition.name != self.owner and self.is_active(definition.name)
        ]


class Condition(BaseModel, ABC):
    """Base class for activation conditions."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @abstractmethod
    def matches(self, context: ActivationContext) -> bool:
        """Return True if the owning definition should stay active."""

    def referenced_names(self, registry: "IDefinitionRegistry", owner: str) -> Iterable[str]:
        """Names of definitions that must be decided before this condition."""
        return ()

    def describe(self) -> str:
        return type(self).__name__


class OnProfile(Condition):
    """Active when any listed profile is active.

    A profile prefixed with ``!`` matches when that profile is NOT active.

    Example:
        >>> OnProfile(profiles={"dev", "test"})
        >>> OnProfile(profiles={"!prod"})
    """

    profiles: FrozenSet[str] = Field(..., min_length=1, description="Profiles, any of which activates.")

    def matches(self, context: ActivationContext) -> bool:
        for profile in self.profiles:
            if profile.startswith("!"):
                if profile[1:] not in context.profiles:
                    return True
            elif profile in context.profiles:
                return True
        return False

    def describe(self) -> str:
        return f"OnProfile({', '.join(sorted(self.profiles))})"


class OnDefinition(Condition):
    """Active when a named definition is (or is not) active."""

    name: str = Field(..., min_length=1, description="Definition whose presence is checked.")
    present: bool = Field(default=True, description="Whether the definition must be present.")

    def matches(self, context: ActivationContext) -> bool:
        return context.is_active(self.name) == self.present

    def referenced_names(self, registry: "IDefinitionRegistry", owner: str) -> Iterable[str]:
        if self.name in registry:
            return (self.name,)
        return ()

    def describe(self) -> str:
        return f"OnDefinition({self.name}, present={self.present})"


class OnCapability(Condition):
    """Active when another definition does (or does not) provide a capability.

    ``OnCapability(capability=Cache, present=False)`` is the fallback pattern:
    the owner only stays active if nothing else provides ``Cache``.
    """

    capability: Any = Field(..., description="Capability key to look for.")
    present: bool = Field(default=True, description="Whether a provider must exist.")

    @field_validator("capability")
    @classmethod
    def _capability_hashable(cls, value: Any) -> Any:
        try:
            hash(value)
        except TypeError as e:
            raise ValueError(f"Capability keys must be hashable, got {type(value).__name__}") from e
        return value

    def matches(self, context: ActivationContext) -> bool:
        return bool(context.providers(self.capability)) == self.present

    def referenced_names(self, registry: "IDefinitionRegistry", owner: str) -> Iterable[str]:
        return [d.name for d in registry.lookup_by_capability(self.capability) if d.name != owner]

    def describe(self) -> str:
        return f"OnCapability({describe_key(self.capability)}, present={self.present})"
