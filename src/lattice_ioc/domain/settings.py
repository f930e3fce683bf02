import os
from typing import Any, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "LATTICE_IOC_"


class ContainerSettings(BaseModel):
    """Container configuration.

    Attributes:
        profiles: Active profiles consulted by ``OnProfile`` conditions.
        eager_init: Create non-lazy container-lifetime components during build.
        reject_hook_lookups: Refuse lookups from lifecycle hooks that would create instances.
    """

    model_config = ConfigDict(frozen=True)

    profiles: FrozenSet[str] = Field(default=frozenset(), description="Active profiles.")
    eager_init: bool = Field(default=True, description="Eagerly create singletons at build.")
    reject_hook_lookups: bool = Field(default=True, description="Reject creating lookups inside hooks.")

    @field_validator("profiles", mode="before")
    @classmethod
    def _split_profiles(cls, value: Any) -> Any:
        if isinstance(value, str):
            return frozenset(part.strip() for part in value.split(",") if part.strip())
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, prefix: str = ENV_PREFIX) -> "ContainerSettings":
        """Build settings from environment variables.

        Reads ``<prefix>PROFILES`` (comma separated), ``<prefix>EAGER_INIT`` and
        ``<prefix>REJECT_HOOK_LOOKUPS``. Unset variables keep their defaults.

        Example:
            >>> os.environ["LATTICE_IOC_PROFILES"] = "dev,local"
            >>> ContainerSettings.from_env().profiles
            frozenset({'dev', 'local'})
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for field_name in cls.model_fields:
            raw = env.get(prefix + field_name.upper())
            if raw is not None:
                values[field_name] = raw
        return cls(**values)
