"""Settings resolution with profile precedence chain."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "sprintboard" / "config.toml"


class SprintboardSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPRINTBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None

    # Backend
    api_url: str | None = None
    api_token: SecretStr | None = None
    user_id: int = 0  # sent as updatedBy/deletedBy on column changes
    request_timeout: float = 30

    # Board session
    project_id: str | None = None
    board_id: str | None = None
    cache_ttl_seconds: float = 180  # board list cache

    log_level: str = "WARNING"


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/sprintboard/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> SprintboardSettings:
    """Resolve the active profile and return a fully populated SprintboardSettings.

    Profile precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. SPRINTBOARD_DEFAULT_PROFILE env var
    3. default_profile key in ~/.config/sprintboard/config.toml
    4. First profile defined in ~/.config/sprintboard/config.toml

    Fields the profile block leaves unset come from SPRINTBOARD_* env vars and .env.
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("SPRINTBOARD_DEFAULT_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        else:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    settings = SprintboardSettings(**profile_defaults)

    if not settings.api_url or not settings.api_token:
        typer.echo(
            "Missing backend credentials. Set SPRINTBOARD_API_URL and SPRINTBOARD_API_TOKEN or "
            f"api_url / api_token in the [{active or 'profile'}] section of {CONFIG_PATH}"
        )
        raise typer.Exit(1)

    return settings
