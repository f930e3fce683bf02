"""Unit tests for LifecycleOrchestrator."""

import pytest

from lattice_ioc.application.lifecycle import ABSENT, LifecycleOrchestrator
from lattice_ioc.domain import (
    Binding,
    ComponentDefinition,
    DependencyReference,
    ILifecycleOrchestrator,
    LifecycleHookFailure,
    LifecycleState,
    LifecycleTransitionError,
    ManagedInstance,
    UnresolvedDependencyError,
)


class Service:
    def __init__(self, repository=None, clock=None):
        self.repository = repository
        self.clock = clock
        self.logger = None
        self.metrics = None
        self.events = []

    def set_metrics(self, metrics):
        self.events.append("set_metrics")
        self.metrics = metrics

    def start(self):
        self.events.append("start")

    def warm_up(self):
        self.events.append("warm_up")

    def refuse(self):
        return False

    def explode(self):
        raise RuntimeError("boom")

    def stop(self):
        self.events.append("stop")


def managed_for(**kwargs):
    kwargs.setdefault("factory", Service)
    return ManagedInstance(definition=ComponentDefinition(name="service", **kwargs))


def bind(reference, supplier="supplier"):
    return Binding(reference=reference, supplier=supplier)


def bring_up(orchestrator, managed, values=None):
    """Bring up an instance supplying values by reference target."""
    values = values or {}
    bindings = tuple(bind(reference) for reference in managed.definition.dependencies)
    return orchestrator.bring_up(
        managed,
        bindings,
        lambda binding: values.get(binding.reference.target, ABSENT),
    )


class TestBringUp:
    """Test cases for creation."""

    def test_orchestrator_implements_interface(self):
        """Test that LifecycleOrchestrator implements ILifecycleOrchestrator."""
        assert isinstance(LifecycleOrchestrator(), ILifecycleOrchestrator)

    def test_reaches_ready(self):
        """Test that a plain definition reaches READY with a sequence number."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for()

        instance = bring_up(orchestrator, managed)

        assert isinstance(instance, Service)
        assert managed.state is LifecycleState.READY
        assert managed.instance is instance
        assert managed.sequence == 1

    def test_sequence_increases(self):
        """Test that sequence numbers follow the order instances become READY."""
        orchestrator = LifecycleOrchestrator()
        first, second = managed_for(), managed_for()

        bring_up(orchestrator, first)
        bring_up(orchestrator, second)

        assert first.sequence < second.sequence

    def test_constructor_and_setter_injection(self):
        """Test keyword, attribute and method injection."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(
            dependencies=(
                DependencyReference.by_name("repository"),
                DependencyReference.by_name("system_clock", parameter="clock"),
                DependencyReference.by_name("logger", setter="logger"),
                DependencyReference.by_name("metrics", setter="set_metrics"),
            )
        )

        instance = bring_up(
            orchestrator,
            managed,
            {"repository": "repo", "system_clock": "clock", "logger": "log", "metrics": "stats"},
        )

        assert instance.repository == "repo"
        assert instance.clock == "clock"
        assert instance.logger == "log"
        assert instance.metrics == "stats"
        assert instance.events == ["set_metrics"]

    def test_absent_values_are_skipped(self):
        """Test that ABSENT leaves the factory default and skips the setter."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(
            dependencies=(
                DependencyReference.by_name("repository", required=False),
                DependencyReference.by_name("metrics", required=False, setter="set_metrics"),
            )
        )

        instance = bring_up(orchestrator, managed)

        assert instance.repository is None
        assert instance.events == []

    def test_post_init_hooks_run_in_order_after_injection(self):
        """Test that hooks run in declaration order once injection is done."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(
            dependencies=(DependencyReference.by_name("metrics", setter="set_metrics"),),
            post_init=("start", "warm_up"),
        )

        instance = bring_up(orchestrator, managed, {"metrics": "stats"})

        assert instance.events == ["set_metrics", "start", "warm_up"]

    def test_callable_hook(self):
        """Test that zero-argument callables are accepted as hooks."""
        orchestrator = LifecycleOrchestrator()
        calls = []
        managed = managed_for(post_init=(lambda: calls.append("called"),))

        bring_up(orchestrator, managed)

        assert calls == ["called"]

    def test_in_hook_flag(self):
        """Test that in_hook is raised only while a hook runs."""
        orchestrator = LifecycleOrchestrator()
        observed = []
        managed = managed_for(post_init=(lambda: observed.append(orchestrator.in_hook),))

        bring_up(orchestrator, managed)

        assert observed == [True]
        assert orchestrator.in_hook is False


class TestBringUpFailures:
    """Test cases for creation failures."""

    def test_factory_failure(self):
        """Test that a failing factory is wrapped and the instance is FAILED."""
        orchestrator = LifecycleOrchestrator()

        def broken_factory():
            raise ValueError("bad config")

        managed = managed_for(factory=broken_factory)

        with pytest.raises(LifecycleHookFailure) as exc_info:
            bring_up(orchestrator, managed)

        assert exc_info.value.state is LifecycleState.INSTANTIATED
        assert isinstance(exc_info.value.cause, ValueError)
        assert managed.state is LifecycleState.FAILED
        assert managed.error is exc_info.value
        assert managed.instance is None

    def test_hook_returning_false(self):
        """Test that a hook returning False is a failure."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(post_init=("refuse",))

        with pytest.raises(LifecycleHookFailure) as exc_info:
            bring_up(orchestrator, managed)

        assert exc_info.value.cause is None
        assert exc_info.value.state is LifecycleState.POST_INITIALIZED
        assert managed.state is LifecycleState.FAILED
        assert managed.sequence is None

    def test_hook_raising_stops_later_hooks(self):
        """Test that a failing hook prevents the remaining hooks."""
        orchestrator = LifecycleOrchestrator()
        calls = []
        managed = managed_for(post_init=("explode", lambda: calls.append("late")))

        with pytest.raises(LifecycleHookFailure):
            bring_up(orchestrator, managed)

        assert calls == []
        assert orchestrator.in_hook is False

    def test_setter_failure(self):
        """Test that a failing setter fails injection."""
        orchestrator = LifecycleOrchestrator()

        class Rejecting(Service):
            def set_metrics(self, metrics):
                raise TypeError("unsupported")

        managed = managed_for(
            factory=Rejecting,
            dependencies=(DependencyReference.by_name("metrics", setter="set_metrics"),),
        )

        with pytest.raises(LifecycleHookFailure) as exc_info:
            bring_up(orchestrator, managed, {"metrics": "stats"})

        assert exc_info.value.state is LifecycleState.INJECTED

    def test_supply_errors_propagate_unchanged(self):
        """Test that dependency errors are not wrapped."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(dependencies=(DependencyReference.by_name("repository"),))
        error = UnresolvedDependencyError("repository")

        def supply(binding):
            raise error

        with pytest.raises(UnresolvedDependencyError) as exc_info:
            orchestrator.bring_up(managed, (bind(managed.definition.dependencies[0]),), supply)

        assert exc_info.value is error
        assert managed.state is LifecycleState.FAILED


class TestTearDown:
    """Test cases for teardown."""

    def test_tear_down_runs_hooks(self):
        """Test that pre-destroy hooks run and the instance is released."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(pre_destroy=("stop",))
        instance = bring_up(orchestrator, managed)

        failure = orchestrator.tear_down(managed)

        assert failure is None
        assert instance.events == ["stop"]
        assert managed.state is LifecycleState.DESTROYED
        assert managed.instance is None

    def test_tear_down_continues_after_failure(self):
        """Test that every hook runs and the first failure is returned."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(pre_destroy=("explode", "refuse", "stop"))
        instance = bring_up(orchestrator, managed)

        failure = orchestrator.tear_down(managed)

        assert isinstance(failure, LifecycleHookFailure)
        assert isinstance(failure.cause, RuntimeError)
        assert failure.state is LifecycleState.PRE_DESTROY
        assert instance.events == ["stop"]
        assert managed.state is LifecycleState.DESTROYED

    def test_tear_down_ignores_instances_not_ready(self):
        """Test that failed or unfinished instances are skipped."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for(pre_destroy=("stop",))
        managed.state = LifecycleState.FAILED

        assert orchestrator.tear_down(managed) is None
        assert managed.state is LifecycleState.FAILED


class TestTransitions:
    """Test cases for explicit transitions."""

    def test_illegal_transition(self):
        """Test that skipping a state is rejected."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for()

        with pytest.raises(LifecycleTransitionError) as exc_info:
            orchestrator.transition(managed, LifecycleState.READY)

        assert exc_info.value.current is LifecycleState.UNINITIALIZED
        assert managed.state is LifecycleState.UNINITIALIZED

    def test_legal_transition(self):
        """Test that the next state is accepted."""
        orchestrator = LifecycleOrchestrator()
        managed = managed_for()

        orchestrator.transition(managed, LifecycleState.INSTANTIATED)

        assert managed.state is LifecycleState.INSTANTIATED
