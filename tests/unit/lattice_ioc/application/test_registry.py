"""Unit tests for DefinitionRegistry."""

import pytest

from lattice_ioc.application.registry import DefinitionRegistry
from lattice_ioc.domain import (
    ComponentDefinition,
    ContainerStateError,
    DefinitionNotFoundError,
    DependencyReference,
    DuplicateDefinitionError,
    IDefinitionRegistry,
    InvalidDefinitionError,
)


class Storage:
    pass


def define(name, **kwargs):
    kwargs.setdefault("factory", object)
    return ComponentDefinition(name=name, **kwargs)


class TestDefinitionRegistryRegistration:
    """Test cases for registering definitions."""

    def test_registry_implements_interface(self):
        """Test that DefinitionRegistry implements IDefinitionRegistry."""
        assert isinstance(DefinitionRegistry(), IDefinitionRegistry)

    def test_register_and_lookup(self):
        """Test that a registered definition can be looked up by name."""
        registry = DefinitionRegistry()
        definition = define("database")

        registry.register(definition)

        assert registry.lookup_by_name("database") is definition
        assert "database" in registry
        assert len(registry) == 1

    def test_duplicate_name_rejected(self):
        """Test that registering the same name twice fails."""
        registry = DefinitionRegistry()
        registry.register(define("database"))

        with pytest.raises(DuplicateDefinitionError) as exc_info:
            registry.register(define("database", factory=Storage))

        assert exc_info.value.name == "database"
        assert registry.lookup_by_name("database").factory is object

    def test_register_all_preserves_order(self):
        """Test that registration order is kept for diagnostics."""
        registry = DefinitionRegistry()
        registry.register_all([define("c"), define("a"), define("b")])

        assert registry.names() == ("c", "a", "b")
        assert [definition.name for definition in registry] == ["c", "a", "b"]

    def test_frozen_registry_rejects_registration(self):
        """Test that a frozen registry is immutable."""
        registry = DefinitionRegistry()
        registry.freeze()

        assert registry.is_frozen
        with pytest.raises(ContainerStateError):
            registry.register(define("late"))


class TestDefinitionRegistryLookups:
    """Test cases for lookups."""

    def test_lookup_unknown_name(self):
        """Test that unknown names raise DefinitionNotFoundError."""
        registry = DefinitionRegistry()

        with pytest.raises(DefinitionNotFoundError):
            registry.lookup_by_name("missing")

    def test_lookup_by_capability(self):
        """Test that all providers of a capability are returned."""
        registry = DefinitionRegistry()
        registry.register_all(
            [
                define("s3", capabilities=(Storage,)),
                define("local", capabilities=(Storage, "files")),
                define("other"),
            ]
        )

        assert [d.name for d in registry.lookup_by_capability(Storage)] == ["s3", "local"]
        assert [d.name for d in registry.lookup_by_capability("files")] == ["local"]

    def test_lookup_by_unknown_capability(self):
        """Test that an unknown capability yields no providers."""
        assert DefinitionRegistry().lookup_by_capability("nothing") == ()


class TestDefinitionRegistryValidation:
    """Test cases for reference validation at registration."""

    def test_required_and_optional_same_target_rejected(self):
        """Test that a target cannot be both required and optional."""
        registry = DefinitionRegistry()
        definition = define(
            "service",
            dependencies=(
                DependencyReference.by_name("cache", parameter="cache"),
                DependencyReference.by_name("cache", required=False, setter="set_cache"),
            ),
        )

        with pytest.raises(InvalidDefinitionError, match="both as required and as optional"):
            registry.register(definition)

    def test_same_argument_twice_rejected(self):
        """Test that two references cannot fill the same keyword."""
        registry = DefinitionRegistry()
        definition = define(
            "service",
            dependencies=(
                DependencyReference.by_name("primary_db", parameter="db"),
                DependencyReference.by_name("replica_db", parameter="db"),
            ),
        )

        with pytest.raises(InvalidDefinitionError):
            registry.register(definition)

    def test_same_target_twice_same_flag_allowed(self):
        """Test that one target may feed two keywords."""
        registry = DefinitionRegistry()
        definition = define(
            "service",
            dependencies=(
                DependencyReference.by_name("clock", parameter="created_clock"),
                DependencyReference.by_name("clock", parameter="updated_clock"),
            ),
        )

        registry.register(definition)

        assert "service" in registry
