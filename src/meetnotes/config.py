from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigError
from .models import ProjectConfig


load_dotenv()

logger = logging.getLogger(__name__)

CALENDAR_PROVIDERS = ("google", "outlook")
EMAIL_METHODS = ("draft", "gmail", "outlook")


@dataclass(frozen=True)
class Settings:
    # Directory holding config.json.
    config_dir: str = os.getenv("MEETNOTES_CONFIG_DIR", str(Path.home() / ".meetnotes"))

    log_level: str = os.getenv("MEETNOTES_LOG_LEVEL", "WARNING")

    # Timeout for calendar/email provider calls.
    http_timeout: float = float(os.getenv("MEETNOTES_HTTP_TIMEOUT", "30"))

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir).expanduser() / "config.json"


@dataclass
class GoogleCredentials:
    client_id: str
    client_secret: str
    refresh_token: str


@dataclass
class MicrosoftCredentials:
    client_id: str
    client_secret: str
    tenant_id: str
    refresh_token: str


@dataclass
class ProviderCredentials:
    google: GoogleCredentials | None = None
    microsoft: MicrosoftCredentials | None = None


@dataclass
class AppConfig:
    storage_base_path: str = str(Path.home() / "Documents" / "MeetingNotes")
    obsidian_vault_path: str | None = None
    default_calendar: str = "google"
    default_email_method: str = "draft"
    time_zone: str = "UTC"
    default_project: str = ""
    projects: list[ProjectConfig] = field(default_factory=list)
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)

    def to_dict(self) -> dict[str, Any]:
        creds: dict[str, Any] = {}
        if self.credentials.google is not None:
            creds["google"] = vars(self.credentials.google).copy()
        if self.credentials.microsoft is not None:
            creds["microsoft"] = vars(self.credentials.microsoft).copy()
        return {
            "storage_base_path": self.storage_base_path,
            "obsidian_vault_path": self.obsidian_vault_path,
            "default_calendar": self.default_calendar,
            "default_email_method": self.default_email_method,
            "time_zone": self.time_zone,
            "default_project": self.default_project,
            "projects": [p.to_dict() for p in self.projects],
            "credentials": creds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        defaults = cls()
        creds = data.get("credentials") or {}
        google = creds.get("google")
        microsoft = creds.get("microsoft")
        try:
            return cls(
                storage_base_path=str(data.get("storage_base_path") or defaults.storage_base_path),
                obsidian_vault_path=data.get("obsidian_vault_path") or None,
                default_calendar=str(data.get("default_calendar") or defaults.default_calendar),
                default_email_method=str(data.get("default_email_method") or defaults.default_email_method),
                time_zone=str(data.get("time_zone") or defaults.time_zone),
                default_project=str(data.get("default_project") or ""),
                projects=[ProjectConfig.from_dict(p) for p in (data.get("projects") or [])],
                credentials=ProviderCredentials(
                    google=GoogleCredentials(**google) if google else None,
                    microsoft=MicrosoftCredentials(**microsoft) if microsoft else None,
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config: {e}") from e

    def project_names(self) -> list[str]:
        return [p.name for p in self.projects]


def load_config(path: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load config.json, writing defaults when it does not exist yet.

    A file that cannot be parsed yields the defaults (and is left untouched).
    """
    p = Path(path) if path is not None else Settings().config_path
    if not p.exists():
        config = AppConfig()
        save_config(config, p)
        return config

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s (%s); using defaults", p, e)
        return AppConfig()
    return AppConfig.from_dict(data)


def save_config(config: AppConfig, path: str | os.PathLike[str] | None = None) -> None:
    p = Path(path) if path is not None else Settings().config_path
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")


def get_project(config: AppConfig, name: str) -> ProjectConfig | None:
    return next((p for p in config.projects if p.name == name), None)


def add_project(config: AppConfig, project: ProjectConfig) -> AppConfig:
    for i, p in enumerate(config.projects):
        if p.name == project.name:
            config.projects[i] = project
            break
    else:
        config.projects.append(project)

    if not config.default_project:
        config.default_project = project.name
    return config


def set_value(config: AppConfig, key: str, value: str) -> AppConfig:
    """Set a scalar option or a credential field by dotted key.

    `credentials.google.client_id` creates the google credential block on
    first use; other fields of a new block start empty.
    """
    parts = key.split(".")
    scalar = {f.name for f in fields(AppConfig)} - {"projects", "credentials"}

    if len(parts) == 1 and parts[0] in scalar:
        if parts[0] == "default_calendar" and value not in CALENDAR_PROVIDERS:
            raise ConfigError(f"default_calendar must be one of {', '.join(CALENDAR_PROVIDERS)}")
        if parts[0] == "default_email_method" and value not in EMAIL_METHODS:
            raise ConfigError(f"default_email_method must be one of {', '.join(EMAIL_METHODS)}")
        setattr(config, parts[0], value)
        return config

    if len(parts) == 3 and parts[0] == "credentials" and parts[1] in ("google", "microsoft"):
        kind = GoogleCredentials if parts[1] == "google" else MicrosoftCredentials
        block = getattr(config.credentials, parts[1])
        if block is None:
            block = kind(**{f.name: "" for f in fields(kind)})
            setattr(config.credentials, parts[1], block)
        if parts[2] not in {f.name for f in fields(kind)}:
            raise ConfigError(f"Unknown config key: {key}")
        setattr(block, parts[2], value)
        return config

    raise ConfigError(f"Unknown config key: {key}")
