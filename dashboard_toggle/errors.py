from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ToggleBotError(Exception):
    message: str

    code = "toggle_bot_error"

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class AuthError(ToggleBotError):
    """Request signature, timestamp or verification token did not check out."""

    code = "auth_error"


class BadRequestError(ToggleBotError):
    code = "bad_request"


class AutomationError(ToggleBotError):
    """A browser step against the dashboard failed or timed out."""

    code = "automation_error"


class LoginError(AutomationError):
    code = "login_error"


class ObservationError(AutomationError):
    """The run-state could not be read; distinct from a transition that did not take."""

    code = "observation_error"


class DeliveryError(ToggleBotError):
    code = "delivery_error"


class SettingsError(ToggleBotError):
    code = "settings_error"
