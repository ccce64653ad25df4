from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wireplan.exceptions import WirePlanConfigurationError
from wireplan.types import DEFAULT_MODULE


class WirePlanSettings(BaseSettings):
    """Generator settings.

    Values come from keyword arguments first, then ``WIREPLAN_*`` environment
    variables, then an optional ``.env`` file. Example: ``WIREPLAN_OUTPUT_DIR``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WIREPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    source_dir: Path = Path("src")
    """Root directory scanned for annotated declarations."""
    output_dir: Path = Path("src/ioc")
    """Directory receiving the generated wiring modules."""
    default_module: str = DEFAULT_MODULE
    """Module assigned to factories without a ``@Module`` tag."""
    container_runtime: str = "diwire"
    """Import path of the container runtime used by generated containers."""
    exclude: list[str] = []
    """Glob patterns, relative to ``source_dir``, skipped during discovery."""

    @field_validator("default_module")
    @classmethod
    def _validate_default_module(cls, value: str) -> str:
        value = value.strip()
        if not value.isidentifier():
            msg = f"Default module must be a non-empty identifier, got {value!r}."
            raise WirePlanConfigurationError(msg)
        return value

    @field_validator("container_runtime")
    @classmethod
    def _validate_container_runtime(cls, value: str) -> str:
        if not all(part.isidentifier() for part in value.split(".")):
            msg = f"Container runtime must be a dotted import path, got {value!r}."
            raise WirePlanConfigurationError(msg)
        return value

    def discovery_exclude(self) -> list[str]:
        """Return exclusion patterns including the generated output directory."""
        patterns = list(self.exclude)
        try:
            relative = self.output_dir.resolve().relative_to(self.source_dir.resolve())
        except ValueError:
            return patterns
        if relative.parts:
            patterns.append(f"{relative.as_posix()}/*")
        return patterns
