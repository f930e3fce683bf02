"""Unit tests for container settings."""

import pytest
from pydantic import ValidationError

from lattice_ioc.domain.settings import ContainerSettings


class TestContainerSettings:
    """Test cases for ContainerSettings."""

    def test_defaults(self):
        """Test default settings."""
        settings = ContainerSettings()

        assert settings.profiles == frozenset()
        assert settings.eager_init is True
        assert settings.reject_hook_lookups is True

    def test_profiles_from_comma_separated_string(self):
        """Test that a comma separated string is split into profiles."""
        settings = ContainerSettings(profiles="dev, local,,")

        assert settings.profiles == frozenset({"dev", "local"})

    def test_settings_are_frozen(self):
        """Test that settings are immutable."""
        settings = ContainerSettings()

        with pytest.raises(ValidationError):
            settings.eager_init = False


class TestContainerSettingsFromEnv:
    """Test cases for ContainerSettings.from_env."""

    def test_reads_prefixed_variables(self):
        """Test that every field is read from its variable."""
        settings = ContainerSettings.from_env(
            {
                "LATTICE_IOC_PROFILES": "prod,eu",
                "LATTICE_IOC_EAGER_INIT": "false",
                "LATTICE_IOC_REJECT_HOOK_LOOKUPS": "0",
            }
        )

        assert settings.profiles == frozenset({"prod", "eu"})
        assert settings.eager_init is False
        assert settings.reject_hook_lookups is False

    def test_missing_variables_keep_defaults(self):
        """Test that unset variables keep default values."""
        settings = ContainerSettings.from_env({})

        assert settings == ContainerSettings()

    def test_custom_prefix(self):
        """Test reading with a custom prefix."""
        settings = ContainerSettings.from_env({"APP_PROFILES": "test"}, prefix="APP_")

        assert settings.profiles == frozenset({"test"})

    def test_reads_process_environment(self, monkeypatch):
        """Test that os.environ is used by default."""
        monkeypatch.setenv("LATTICE_IOC_PROFILES", "ci")

        assert ContainerSettings.from_env().profiles == frozenset({"ci"})

    def test_invalid_boolean_rejected(self):
        """Test that malformed booleans fail validation."""
        with pytest.raises(ValidationError):
            ContainerSettings.from_env({"LATTICE_IOC_EAGER_INIT": "sometimes"})
