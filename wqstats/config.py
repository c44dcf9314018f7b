from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import InvalidInput
from .core.statistics import Direction, ZeroPolicy


class RuntimeConfig(BaseModel):
    window_years: float = Field(7.0, gt=0, description="Trailing window length in years")
    statistic: str = Field(
        "geomean",
        description="Selected statistic key (extensible via wqstats.core.methods)",
    )
    zero_policy: ZeroPolicy = ZeroPolicy.EXCLUDE
    threshold: float = Field(
        410.0, description="Criterion for exceedance statistics (E. coli STV, cfu/100 mL)"
    )
    direction: Direction = Direction.ABOVE
    inclusive: bool = False
    allowed_rate: float = Field(
        0.1, gt=0, lt=1, description="Allowed exceedance frequency for the binomial test"
    )
    require_full_history: bool = Field(
        True, description="Leave windows undefined until a full window of history exists"
    )
    time_column: str = "date"
    value_column: str = "value"
    partitions: int = Field(1, ge=1, description="Index ranges evaluated in parallel")

    def with_overrides(self, **overrides: Any) -> "RuntimeConfig":
        try:
            return RuntimeConfig(**{**self.model_dump(), **overrides})
        except ValidationError as ve:
            raise InvalidInput(f"Invalid runtime option: {ve}") from ve


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


class AppConfig(BaseModel):
    env: EnvSettings
    runtime: RuntimeConfig

    @field_validator("env", mode="before")
    @classmethod
    def _coerce_env(cls, v):  # type: ignore[no-untyped-def]
        if isinstance(v, dict):
            return EnvSettings(**v)
        return v

    @staticmethod
    def load(config_path: Optional[Path] = None) -> "AppConfig":
        env = EnvSettings()  # loads from environment and .env

        runtime = RuntimeConfig()
        if config_path is None:
            default_path = Path("config.yaml")
            config_path = default_path if default_path.exists() else None
        elif not Path(config_path).exists():
            raise InvalidInput(f"Config file not found: {config_path}")

        if config_path:
            with open(config_path, "r", encoding="utf-8") as fh:
                try:
                    raw = yaml.safe_load(fh) or {}
                except yaml.YAMLError as ye:
                    raise InvalidInput(f"Invalid {config_path}: {ye}") from ye
            if not isinstance(raw, dict):
                raise InvalidInput(f"Invalid {config_path}: expected a mapping at top level")
            try:
                runtime = RuntimeConfig(**raw)
            except ValidationError as ve:
                raise InvalidInput(f"Invalid {config_path}: {ve}") from ve

        return AppConfig(env=env, runtime=runtime)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load merged configuration from environment and optional YAML."""

    return AppConfig.load(config_path)
