from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dashboard_toggle.errors import SettingsError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return int(default)
    try:
        return int(str(raw).strip())
    except Exception:
        return int(default)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return float(default)
    try:
        return float(str(raw).strip())
    except Exception:
        return float(default)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return str(default)
    s = str(raw).strip()
    return s if s else str(default)


def _env_first(*names: str) -> str:
    for name in names:
        s = str(os.getenv(name) or "").strip()
        if s:
            return s
    return ""


@dataclass(frozen=True)
class BotSettings:
    # Slack request signing secret (v0 HMAC).
    signing_secret: str = field(default_factory=lambda: _env_first("SLACK_SIGNING_SECRET"))
    # Legacy per-app verification token; checked against the body "token" when set.
    verification_token: str = field(
        default_factory=lambda: _env_first("SLACK_VERIFICATION_TOKEN", "VERIFICATION_TOKEN")
    )
    bot_token: str = field(default_factory=lambda: _env_first("SLACK_BOT_TOKEN", "BOT_TOKEN"))
    signature_max_age_seconds: int = field(
        default_factory=lambda: _env_int("SLACK_SIGNATURE_MAX_AGE_SECONDS", 0)
    )
    slack_api_base_url: str = field(
        default_factory=lambda: _env_str("SLACK_API_BASE_URL", "https://slack.com/api").rstrip("/")
    )
    chat_timeout_seconds: float = field(default_factory=lambda: _env_float("SLACK_API_TIMEOUT_SECONDS", 15.0))

    # Dashboard credentials.
    dashboard_username: str = field(default_factory=lambda: _env_first("DASHBOARD_USERNAME", "MERGE_QUEUE_EMAIL"))
    dashboard_password: str = field(
        default_factory=lambda: _env_first("DASHBOARD_PASSWORD", "MERGE_QUEUE_PASSWORD")
    )

    # Dashboard page layout. Assumed stable; override per deployment.
    dashboard_url: str = field(default_factory=lambda: _env_str("DASHBOARD_URL", "https://mergequeue.com/dashboard"))
    username_selector: str = field(
        default_factory=lambda: _env_str("DASHBOARD_USERNAME_SELECTOR", "input[name=username]")
    )
    password_selector: str = field(
        default_factory=lambda: _env_str("DASHBOARD_PASSWORD_SELECTOR", "input[name=password]")
    )
    submit_selector: str = field(default_factory=lambda: _env_str("DASHBOARD_SUBMIT_SELECTOR", "button[type=submit]"))
    status_selector: str = field(default_factory=lambda: _env_str("DASHBOARD_STATUS_SELECTOR", ".main .repo"))
    toggle_selector: str = field(default_factory=lambda: _env_str("DASHBOARD_TOGGLE_SELECTOR", ".main .repo a"))
    active_marker: str = field(default_factory=lambda: _env_str("DASHBOARD_ACTIVE_MARKER", "YES"))
    navigation_timeout_seconds: float = field(
        default_factory=lambda: _env_float("DASHBOARD_NAVIGATION_TIMEOUT_SECONDS", 60.0)
    )
    # Playwright load state that counts as "navigation settled".
    wait_until: str = field(default_factory=lambda: _env_str("DASHBOARD_WAIT_UNTIL", "domcontentloaded"))

    def missing_required(self) -> list[str]:
        required = {
            "SLACK_SIGNING_SECRET": self.signing_secret,
            "SLACK_BOT_TOKEN": self.bot_token,
            "DASHBOARD_USERNAME": self.dashboard_username,
            "DASHBOARD_PASSWORD": self.dashboard_password,
        }
        return [name for name, value in required.items() if not str(value or "").strip()]

    def require_complete(self) -> "BotSettings":
        missing = self.missing_required()
        if missing:
            raise SettingsError(f"missing required configuration: {', '.join(missing)}")
        return self


# YAML keys under `dashboard:` that may be overridden from a config file.
_YAML_DASHBOARD_KEYS = {
    "url": ("dashboard_url", "DASHBOARD_URL"),
    "username_selector": ("username_selector", "DASHBOARD_USERNAME_SELECTOR"),
    "password_selector": ("password_selector", "DASHBOARD_PASSWORD_SELECTOR"),
    "submit_selector": ("submit_selector", "DASHBOARD_SUBMIT_SELECTOR"),
    "status_selector": ("status_selector", "DASHBOARD_STATUS_SELECTOR"),
    "toggle_selector": ("toggle_selector", "DASHBOARD_TOGGLE_SELECTOR"),
    "active_marker": ("active_marker", "DASHBOARD_ACTIVE_MARKER"),
    "navigation_timeout_seconds": ("navigation_timeout_seconds", "DASHBOARD_NAVIGATION_TIMEOUT_SECONDS"),
    "wait_until": ("wait_until", "DASHBOARD_WAIT_UNTIL"),
}


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError(f"config file {path} must contain a mapping")
    return data


def load_settings(config_path: str | None = None) -> BotSettings:
    """
    Build settings from the environment, overlaid on an optional YAML file:

      dashboard:
        url: https://...
        status_selector: ".main .repo"

    Environment variables win over the file; secrets are only read from the environment.
    """
    settings = BotSettings()
    path_s = config_path if config_path is not None else os.getenv("DASHBOARD_TOGGLE_CONFIG", "")
    if not str(path_s or "").strip():
        return settings

    data = _load_yaml(Path(str(path_s).strip()))
    section = data.get("dashboard") or {}
    if not isinstance(section, dict):
        raise SettingsError("config section 'dashboard' must be a mapping")

    overrides: dict[str, Any] = {}
    for key, (attr, env_name) in _YAML_DASHBOARD_KEYS.items():
        if key not in section or os.getenv(env_name) is not None:
            continue
        value = section[key]
        if attr == "navigation_timeout_seconds":
            try:
                value = float(value)
            except (TypeError, ValueError) as exc:
                raise SettingsError(f"invalid dashboard.{key}: {value!r}") from exc
        else:
            value = str(value).strip()
        overrides[attr] = value
    return dataclasses.replace(settings, **overrides) if overrides else settings
