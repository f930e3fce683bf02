"""Application layer - Dependency graph construction and ordering."""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from lattice_ioc.application.circular_detector import CircularDependencyDetector
from lattice_ioc.domain import (
    ActivationContext,
    AmbiguousDependencyError,
    Binding,
    ComponentDefinition,
    DependencyEdge,
    DependencyReference,
    IDefinitionRegistry,
    IGraphResolver,
    ReferenceKind,
    ResolutionPlan,
    UnresolvedDependencyError,
)

logger = logging.getLogger(__name__)

Edges = Dict[str, List[DependencyEdge]]


def select_candidate(
    label: str,
    candidates: Sequence[ComponentDefinition],
    consumer: Optional[str] = None,
) -> Optional[ComponentDefinition]:
    """Pick the single definition satisfying a reference.

    Args:
        label: Human-readable reference label used in errors.
        candidates: Active definitions matching the reference.
        consumer: Name of the definition holding the reference, if any.

    Returns:
        The only candidate, the only primary candidate, or None if there are none.

    Raises:
        AmbiguousDependencyError: If several candidates match and none, or more
            than one, is marked primary.
    """
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]
    primaries = [candidate for candidate in candidates if candidate.primary]
    if len(primaries) == 1:
        return primaries[0]
    competing = primaries or list(candidates)
    raise AmbiguousDependencyError(label, sorted(candidate.name for candidate in competing), consumer)


class DependencyGraphResolver(IGraphResolver):
    """Builds the dependency graph and computes a resolution order.

    Resolution runs in stages:

    1. Activation conditions are decided in dependency order of the conditions
       themselves; inactive definitions are pruned.
    2. Every reference of an active definition is bound to its supplier.
    3. Cycles through required references are rejected.
    4. Optional references lying on a cycle are deferred (resolved lazily).
    5. Definitions are ordered so suppliers precede their consumers.

    Roots are always visited by name so registration order never affects the
    outcome.
    """

    def __init__(self, profiles: Iterable[str] = ()) -> None:
        self._profiles: FrozenSet[str] = frozenset(profiles)

    def resolve(self, registry: IDefinitionRegistry) -> ResolutionPlan:
        """Compute the resolution plan for every registered definition.

        Args:
            registry: The registry holding all definitions.

        Returns:
            The immutable resolution plan.

        Raises:
            CircularDependencyError: If required references or conditions form a cycle.
            AmbiguousDependencyError: If a reference has no single primary candidate.
            UnresolvedDependencyError: If an eagerly-created definition cannot be satisfied.
        """
        decisions = self._decide_activation(registry)
        active = frozenset(name for name, is_active in decisions.items() if is_active)
        pruned = frozenset(name for name, is_active in decisions.items() if not is_active)

        bindings, unresolved = self._bind(registry, active)

        edges = self._build_edges(active, bindings)
        self._detect_required_cycles(active, edges)
        bindings = self._defer_optional_cycles(active, bindings, self._components(active, edges))

        order = self._topological_order(active, self._build_edges(active, bindings))
        bindings = self._propagate_unresolved(order, bindings, unresolved)

        for name in order:
            if name in unresolved and registry.lookup_by_name(name).is_eager:
                raise unresolved[name].with_traceback(None)

        logger.info(
            "Resolved %d definition(s): %d pruned, %d unresolvable",
            len(order),
            len(pruned),
            len(unresolved),
        )
        return ResolutionPlan(
            order=tuple(order),
            active=active,
            pruned=pruned,
            bindings=bindings,
            unresolved=unresolved,
        )

    def _decide_activation(self, registry: IDefinitionRegistry) -> Dict[str, bool]:
        """Evaluate activation conditions, prerequisites first."""
        decisions: Dict[str, bool] = {}
        detector = CircularDependencyDetector()
        prerequisites = {
            definition.name: list(
                dict.fromkeys(
                    name
                    for condition in definition.conditions
                    for name in condition.referenced_names(registry, definition.name)
                )
            )
            for definition in registry
        }

        def decide(name: str) -> None:
            if name in decisions:
                return
            with detector.visiting(name):
                for prerequisite in prerequisites[name]:
                    decide(prerequisite)
            definition = registry.lookup_by_name(name)
            context = ActivationContext(name, self._profiles, registry, decisions)
            failed = next((c for c in definition.conditions if not c.matches(context)), None)
            decisions[name] = failed is None
            if failed is not None:
                logger.info("Definition %s deactivated by %s", name, failed.describe())

        for name in sorted(registry.names()):
            decide(name)
        return decisions

    def _bind(
        self,
        registry: IDefinitionRegistry,
        active: FrozenSet[str],
    ) -> Tuple[Dict[str, Tuple[Binding, ...]], Dict[str, UnresolvedDependencyError]]:
        """Bind each reference of each active definition to its supplier."""
        bindings: Dict[str, Tuple[Binding, ...]] = {}
        unresolved: Dict[str, UnresolvedDependencyError] = {}
        for name in sorted(active):
            definition = registry.lookup_by_name(name)
            bound = []
            for reference in definition.dependencies:
                supplier = self._find_supplier(registry, active, definition, reference)
                if supplier is None and reference.required and name not in unresolved:
                    unresolved[name] = UnresolvedDependencyError(
                        reference.label,
                        _missing_reason(registry, reference),
                        consumer=name,
                    )
                bound.append(Binding(reference=reference, supplier=supplier))
            bindings[name] = tuple(bound)
        return bindings, unresolved

    @staticmethod
    def _find_supplier(
        registry: IDefinitionRegistry,
        active: FrozenSet[str],
        consumer: ComponentDefinition,
        reference: DependencyReference,
    ) -> Optional[str]:
        if reference.kind is ReferenceKind.NAME:
            return reference.target if reference.target in active else None
        candidates = [
            definition
            for definition in registry.lookup_by_capability(reference.target)
            if definition.name in active and definition.name != consumer.name
        ]
        chosen = select_candidate(reference.label, candidates, consumer.name)
        return chosen.name if chosen is not None else None

    @staticmethod
    def _build_edges(active: FrozenSet[str], bindings: Dict[str, Tuple[Binding, ...]]) -> Edges:
        return {
            name: [
                DependencyEdge(
                    consumer=name,
                    supplier=binding.supplier,
                    required=binding.reference.required,
                    deferred=binding.deferred,
                )
                for binding in bindings[name]
                if binding.supplier is not None
            ]
            for name in active
        }

    @staticmethod
    def _detect_required_cycles(active: FrozenSet[str], edges: Edges) -> None:
        """Depth-first search over required edges, tracking the current path."""
        detector = CircularDependencyDetector()
        finished = set()

        def visit(name: str) -> None:
            if name in finished:
                return
            with detector.visiting(name):
                for edge in edges[name]:
                    if edge.required:
                        visit(edge.supplier)
            finished.add(name)

        for name in sorted(active):
            visit(name)

    @staticmethod
    def _components(active: FrozenSet[str], edges: Edges) -> Dict[str, int]:
        """Strongly connected components over all edges (Tarjan)."""
        index: Dict[str, int] = {}
        lowlink: Dict[str, int] = {}
        on_stack = set()
        stack: List[str] = []
        component: Dict[str, int] = {}
        counter = [0, 0]

        def strongconnect(name: str) -> None:
            index[name] = lowlink[name] = counter[0]
            counter[0] += 1
            stack.append(name)
            on_stack.add(name)

            for edge in edges[name]:
                supplier = edge.supplier
                if supplier not in index:
                    strongconnect(supplier)
                    lowlink[name] = min(lowlink[name], lowlink[supplier])
                elif supplier in on_stack:
                    lowlink[name] = min(lowlink[name], index[supplier])

            if lowlink[name] == index[name]:
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component[member] = counter[1]
                    if member == name:
                        break
                counter[1] += 1

        for name in sorted(active):
            if name not in index:
                strongconnect(name)
        return component

    @staticmethod
    def _defer_optional_cycles(
        active: FrozenSet[str],
        bindings: Dict[str, Tuple[Binding, ...]],
        components: Dict[str, int],
    ) -> Dict[str, Tuple[Binding, ...]]:
        deferred_bindings: Dict[str, Tuple[Binding, ...]] = {}
        for name in active:
            rebound = []
            for binding in bindings[name]:
                if (
                    binding.supplier is not None
                    and not binding.reference.required
                    and components[binding.supplier] == components[name]
                ):
                    logger.debug("Deferring optional %s -> %s (cycle)", name, binding.supplier)
                    binding = Binding(reference=binding.reference, supplier=binding.supplier, deferred=True)
                rebound.append(binding)
            deferred_bindings[name] = tuple(rebound)
        return deferred_bindings

    @staticmethod
    def _topological_order(active: FrozenSet[str], edges: Edges) -> List[str]:
        """Post-order DFS over non-deferred edges: suppliers first."""
        order: List[str] = []
        visited = set()

        def visit(name: str) -> None:
            if name in visited:
                return
            visited.add(name)
            for edge in edges[name]:
                if not edge.deferred:
                    visit(edge.supplier)
            order.append(name)

        for name in sorted(active):
            visit(name)
        return order

    @staticmethod
    def _propagate_unresolved(
        order: List[str],
        bindings: Dict[str, Tuple[Binding, ...]],
        unresolved: Dict[str, UnresolvedDependencyError],
    ) -> Dict[str, Tuple[Binding, ...]]:
        """Mark consumers of unresolvable definitions and drop optional links to them.

        Mutates ``unresolved`` in place.
        """
        for name in order:
            for binding in bindings[name]:
                if binding.reference.required and binding.supplier in unresolved and name not in unresolved:
                    unresolved[name] = UnresolvedDependencyError(
                        binding.supplier,
                        "its own dependencies cannot be resolved",
                        consumer=name,
                    )

        return {
            name: tuple(
                Binding(reference=binding.reference) if binding.supplier in unresolved else binding
                for binding in bound
            )
            for name, bound in bindings.items()
        }


def _missing_reason(registry: IDefinitionRegistry, reference: DependencyReference) -> str:
    if reference.kind is ReferenceKind.NAME:
        if reference.target in registry:
            return "definition was deactivated by its conditions"
        return "no definition with that name is registered"
    if registry.lookup_by_capability(reference.target):
        return "every provider was deactivated by its conditions"
    return "no definition provides that capability"
