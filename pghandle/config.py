"""Connection and handle configuration loading helpers."""

from __future__ import annotations

import os
import re
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

CONFIG_FILE = Path.home() / ".config" / "pghandle" / "config.toml"

_DSN_PASSWORD = re.compile(r"(://[^:/@]+:)[^@]*@")


class ConnectionProfileConfig(BaseModel):
    """Named connection profile stored in config.toml.

    Passwords are never written to the file; ``password_env`` names the
    environment variable that holds one.
    """

    name: str
    type: str = "postgres"
    dsn: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    password_env: str | None = None
    connect_timeout: float = 5.0


class HandleConfig(BaseModel):
    """Everything a handle needs to connect and instrument itself."""

    type: str = "postgres"
    dsn: str | None = None
    host: str = "localhost"
    port: int | None = None
    user: str | None = None
    password: str | None = Field(default=None, repr=False)
    database: str | None = None
    connect_timeout: float = 5.0
    debug: bool = False
    profiling_enabled: bool = False
    profiling_log_results_enabled: bool = False

    @classmethod
    def from_profile(cls, profile: ConnectionProfileConfig, **flags: bool) -> HandleConfig:
        """Build a handle config from a stored profile plus debug/profiling flags."""

        password = os.environ.get(profile.password_env) if profile.password_env else None
        return cls(
            type=profile.type,
            dsn=profile.dsn,
            host=profile.host or "localhost",
            port=profile.port,
            user=profile.user,
            password=password,
            database=profile.database,
            connect_timeout=profile.connect_timeout,
            **flags,
        )

    def connect_kwargs(self) -> dict[str, object]:
        """Keyword arguments for ``asyncpg.connect``."""

        kwargs: dict[str, object] = {}
        if self.dsn:
            kwargs["dsn"] = self.dsn
        else:
            kwargs["host"] = self.host or "localhost"
            if self.port is not None:
                kwargs["port"] = self.port
            if self.user:
                kwargs["user"] = self.user
            if self.database:
                kwargs["database"] = self.database
        if self.password:
            kwargs["password"] = self.password
        kwargs["timeout"] = self.connect_timeout
        return kwargs

    def describe(self) -> str:
        """Connection summary with the password masked."""

        if self.dsn:
            return _DSN_PASSWORD.sub(r"\1******@", self.dsn)
        port = f":{self.port}" if self.port is not None else ""
        user = self.user or ""
        return f"{self.type}://{user}:******@{self.host}{port}/{self.database or ''}"


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    debug: bool = False
    profiling_enabled: bool = True
    profiling_log_results_enabled: bool = False
    profiles: list[ConnectionProfileConfig] = Field(default_factory=lambda: list(_default_profiles()))
    active_profile: str | None = None

    def profile(self, name: str) -> ConnectionProfileConfig:
        """Return the named profile."""

        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' not found.")

    def with_active_profile(self, name: str) -> AppConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})

    def handle_config(self, name: str | None = None) -> HandleConfig:
        """Handle config for the named (or active, or first) profile."""

        target = name or self.active_profile
        if target is None:
            if not self.profiles:
                raise ValueError("No connection profiles configured.")
            target = self.profiles[0].name
        return HandleConfig.from_profile(
            self.profile(target),
            debug=self.debug,
            profiling_enabled=self.profiling_enabled,
            profiling_log_results_enabled=self.profiling_log_results_enabled,
        )


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()

    profiles_data = data.get("profiles")
    profiles: list[ConnectionProfileConfig] | None = None
    if isinstance(profiles_data, list):
        profiles = [
            ConnectionProfileConfig(**profile)
            for profile in profiles_data  # type: ignore[list-item]
            if isinstance(profile, dict)
        ]

    return AppConfig(
        debug=data.get("debug", AppConfig.model_fields["debug"].default),
        profiling_enabled=data.get(
            "profiling_enabled", AppConfig.model_fields["profiling_enabled"].default
        ),
        profiling_log_results_enabled=data.get(
            "profiling_log_results_enabled",
            AppConfig.model_fields["profiling_log_results_enabled"].default,
        ),
        profiles=profiles if profiles is not None else list(_default_profiles()),
        active_profile=data.get("active_profile"),
    )


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"debug = {str(config.debug).lower()}",
        f"profiling_enabled = {str(config.profiling_enabled).lower()}",
        f"profiling_log_results_enabled = {str(config.profiling_log_results_enabled).lower()}",
    ]
    if config.active_profile:
        lines.append(f'active_profile = "{config.active_profile}"')
    if config.profiles:
        lines.append("")
        for profile in config.profiles:
            lines.append("[[profiles]]")
            lines.append(f'name = "{profile.name}"')
            lines.append(f'type = "{profile.type}"')
            if profile.dsn:
                lines.append(f'dsn = "{profile.dsn}"')
            if profile.host:
                lines.append(f'host = "{profile.host}"')
            if profile.port is not None:
                lines.append(f"port = {profile.port}")
            if profile.database:
                lines.append(f'database = "{profile.database}"')
            if profile.user:
                lines.append(f'user = "{profile.user}"')
            if profile.password_env:
                lines.append(f'password_env = "{profile.password_env}"')
            lines.append(f"connect_timeout = {profile.connect_timeout}")
            lines.append("")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if isinstance(raw, dict):
        for key in ("debug", "profiling_enabled", "profiling_log_results_enabled"):
            value = raw.get(key)
            if isinstance(value, bool):
                data[key] = value
        active_profile = raw.get("active_profile")
        if isinstance(active_profile, str):
            data["active_profile"] = active_profile
        profiles = raw.get("profiles")
        if isinstance(profiles, list):
            parsed_profiles: list[dict[str, object]] = []
            for profile in profiles:
                if not isinstance(profile, dict):
                    continue
                parsed: dict[str, object] = {}
                for key in ("name", "type", "dsn", "host", "database", "user", "password_env"):
                    value = profile.get(key)
                    if isinstance(value, str):
                        parsed[key] = value
                port = profile.get("port")
                if isinstance(port, int):
                    parsed["port"] = port
                timeout = profile.get("connect_timeout")
                if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
                    parsed["connect_timeout"] = float(timeout)
                if parsed.get("name"):
                    parsed_profiles.append(parsed)
            if parsed_profiles:
                data["profiles"] = parsed_profiles
    return data


def _default_profiles() -> tuple[ConnectionProfileConfig, ...]:
    """Profile used on first run before config is customized."""

    return (
        ConnectionProfileConfig(
            name="Local",
            host="localhost",
            port=5432,
            database="postgres",
            user="postgres",
            password_env="PGPASSWORD",
        ),
    )


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ConnectionProfileConfig",
    "HandleConfig",
    "load_config",
    "save_config",
]
