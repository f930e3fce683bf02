import logging
import threading
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from lattice_ioc.domain import (
    ComponentDefinition,
    ContainerStateError,
    DefinitionNotFoundError,
    DuplicateDefinitionError,
    IDefinitionRegistry,
    InvalidDefinitionError,
)

logger = logging.getLogger(__name__)


class DefinitionRegistry(IDefinitionRegistry):
    """Stores component definitions and answers name and capability lookups.

    Registration order is kept for diagnostics only. Once frozen, the registry
    is immutable and safe to read from any thread without locking.

    Attributes:
        _definitions: Definitions keyed by name, in registration order.
        _providers: Capability key to names of providing definitions.
    """

    def __init__(self) -> None:
        self._definitions: Dict[str, ComponentDefinition] = {}
        self._providers: Dict[Any, List[str]] = {}
        self._lock = threading.Lock()
        self._frozen = False

    def register(self, definition: ComponentDefinition) -> None:
        """Add a definition to the registry.

        Args:
            definition: The definition to add.

        Raises:
            ContainerStateError: If the registry is frozen.
            DuplicateDefinitionError: If the name is already registered.
            InvalidDefinitionError: If the definition's references contradict each other.
        """
        _check_references(definition)
        with self._lock:
            if self._frozen:
                raise ContainerStateError(f"Cannot register '{definition.name}': registry is frozen")
            if definition.name in self._definitions:
                raise DuplicateDefinitionError(definition.name)
            self._definitions[definition.name] = definition
            for capability in definition.capabilities:
                self._providers.setdefault(capability, []).append(definition.name)
        logger.debug("Registered definition %s (scope=%s)", definition.name, definition.scope)

    def register_all(self, definitions: Iterable[ComponentDefinition]) -> None:
        for definition in definitions:
            self.register(definition)

    def lookup_by_name(self, name: str) -> ComponentDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise DefinitionNotFoundError(name) from None

    def lookup_by_capability(self, capability: Any) -> Tuple[ComponentDefinition, ...]:
        return tuple(self._definitions[name] for name in self._providers.get(capability, ()))

    def names(self) -> Tuple[str, ...]:
        return tuple(self._definitions)

    def freeze(self) -> None:
        """Make the registry immutable."""
        with self._lock:
            self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[ComponentDefinition]:
        return iter(tuple(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)


def _check_references(definition: ComponentDefinition) -> None:
    """Reject a definition whose references conflict with each other."""
    required_by_target: Dict[Tuple[Any, Any], bool] = {}
    arguments: Dict[str, str] = {}
    for reference in definition.dependencies:
        key = (reference.kind, reference.target)
        previous = required_by_target.setdefault(key, reference.required)
        if previous != reference.required:
            raise InvalidDefinitionError(
                f"Definition '{definition.name}' references {reference.label} both as required and as optional"
            )
        target = reference.argument or f"setter {reference.setter}"
        if target in arguments:
            raise InvalidDefinitionError(
                f"Definition '{definition.name}' fills {target!r} from both {arguments[target]} and {reference.label}"
            )
        arguments[target] = reference.label
