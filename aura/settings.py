"""Settings resolution with profile support.

The provider functions never read settings; only the CLI does, and it passes
credentials to them explicitly on every call.
"""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from aura.errors import PreconditionError
from aura.repos import DEFAULT_MAX_DEPTH

CONFIG_PATH = Path.home() / ".config" / "aura" / "config.toml"


class AuraSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AURA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None

    # Jira
    jira_url: str | None = None  # https://your-site.atlassian.net
    jira_email: str | None = None
    jira_api_token: SecretStr | None = None

    # FogBugz
    fogbugz_url: str | None = None
    fogbugz_email: str | None = None
    fogbugz_password: SecretStr | None = None

    # Local repositories
    repo_roots: list[str] = []
    scan_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Profile values arrive as init kwargs; env and .env must win over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def jira_credentials(self) -> tuple[str, str, str]:
        if not (self.jira_url and self.jira_email and self.jira_api_token):
            raise PreconditionError(
                f"Jira is not configured. Set jira_url, jira_email and jira_api_token in {CONFIG_PATH} "
                "or AURA_JIRA_URL / AURA_JIRA_EMAIL / AURA_JIRA_API_TOKEN."
            )
        return self.jira_url, self.jira_email, self.jira_api_token.get_secret_value()

    def fogbugz_credentials(self) -> tuple[str, str, str]:
        if not (self.fogbugz_url and self.fogbugz_email and self.fogbugz_password):
            raise PreconditionError(
                f"FogBugz is not configured. Set fogbugz_url, fogbugz_email and fogbugz_password in {CONFIG_PATH} "
                "or AURA_FOGBUGZ_URL / AURA_FOGBUGZ_EMAIL / AURA_FOGBUGZ_PASSWORD."
            )
        return self.fogbugz_url, self.fogbugz_email, self.fogbugz_password.get_secret_value()


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/aura/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    with CONFIG_PATH.open() as fh:
        return tomlkit.load(fh)


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> AuraSettings:
    """Resolve the active profile and return a fully populated AuraSettings.

    Precedence for the profile name (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. AURA_PROFILE env var
    3. default_profile key in ~/.config/aura/config.toml
    4. First profile defined in ~/.config/aura/config.toml

    Env vars and .env always override values from the profile table.
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("AURA_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = toml_config[active].unwrap()
        else:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    return AuraSettings(**profile_defaults)
