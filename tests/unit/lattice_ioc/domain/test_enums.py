"""Unit tests for domain enums."""

import pytest

from lattice_ioc.domain.enums import ContainerState, LifecycleState, ReferenceKind, ScopeKind


class TestScopeKind:
    """Test cases for the ScopeKind enum."""

    def test_scope_kind_values(self):
        """Test that scope kinds have their string values."""
        assert ScopeKind.CONTAINER.value == "container"
        assert ScopeKind.RESOLUTION.value == "resolution"
        assert ScopeKind.CONTEXTUAL.value == "contextual"

    def test_scope_kind_str(self):
        """Test that str() returns the plain value."""
        assert str(ScopeKind.CONTEXTUAL) == "contextual"

    def test_scope_kind_from_string(self):
        """Test that scope kinds can be built from their values."""
        assert ScopeKind("resolution") is ScopeKind.RESOLUTION


class TestReferenceKind:
    """Test cases for the ReferenceKind enum."""

    def test_reference_kind_values(self):
        """Test reference kind values."""
        assert str(ReferenceKind.NAME) == "name"
        assert str(ReferenceKind.CAPABILITY) == "capability"


class TestLifecycleState:
    """Test cases for lifecycle state transitions."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (LifecycleState.UNINITIALIZED, LifecycleState.INSTANTIATED),
            (LifecycleState.INSTANTIATED, LifecycleState.INJECTED),
            (LifecycleState.INJECTED, LifecycleState.POST_INITIALIZED),
            (LifecycleState.POST_INITIALIZED, LifecycleState.READY),
            (LifecycleState.READY, LifecycleState.PRE_DESTROY),
            (LifecycleState.PRE_DESTROY, LifecycleState.DESTROYED),
        ],
    )
    def test_forward_transitions_allowed(self, current, target):
        """Test that each state may move to the next one."""
        assert current.can_transition_to(target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (LifecycleState.UNINITIALIZED, LifecycleState.READY),
            (LifecycleState.INSTANTIATED, LifecycleState.POST_INITIALIZED),
            (LifecycleState.READY, LifecycleState.DESTROYED),
            (LifecycleState.DESTROYED, LifecycleState.READY),
            (LifecycleState.READY, LifecycleState.INSTANTIATED),
        ],
    )
    def test_skipping_or_reversing_is_rejected(self, current, target):
        """Test that states cannot be skipped or revisited."""
        assert not current.can_transition_to(target)

    def test_failed_reachable_only_during_creation(self):
        """Test that FAILED is reachable from creation states but not from READY."""
        assert LifecycleState.UNINITIALIZED.can_transition_to(LifecycleState.FAILED)
        assert LifecycleState.POST_INITIALIZED.can_transition_to(LifecycleState.FAILED)
        assert not LifecycleState.READY.can_transition_to(LifecycleState.FAILED)

    def test_terminal_states(self):
        """Test that DESTROYED and FAILED are terminal."""
        assert LifecycleState.DESTROYED.is_terminal
        assert LifecycleState.FAILED.is_terminal
        assert not LifecycleState.READY.is_terminal
        for state in LifecycleState:
            if state.is_terminal:
                assert not any(state.can_transition_to(other) for other in LifecycleState)


class TestContainerState:
    """Test cases for the ContainerState enum."""

    def test_container_state_str(self):
        """Test that str() returns the plain value."""
        assert str(ContainerState.READY) == "ready"
        assert str(ContainerState.CLOSED) == "closed"
