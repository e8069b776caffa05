from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import structlog
from pydantic import ValidationError

from dashboard_toggle import commands as msgs
from dashboard_toggle.commands import Command, parse_command
from dashboard_toggle.errors import (
    AuthError,
    AutomationError,
    BadRequestError,
    DeliveryError,
    LoginError,
    ObservationError,
    ToggleBotError,
)
from dashboard_toggle.schema import ChatMessage, InboundEvent
from dashboard_toggle.settings import BotSettings
from dashboard_toggle.signing import verify_signature, verify_token
from dashboard_toggle.toggle import ToggleResult


logger = structlog.get_logger(__name__)


NO_RETRY_HEADER = "X-Slack-No-Retry"
RETRY_NUM_HEADER = "x-slack-retry-num"
RETRY_REASON_HEADER = "x-slack-retry-reason"

_ERROR_STATUS: dict[type[ToggleBotError], int] = {
    AuthError: 500,
    BadRequestError: 400,
    LoginError: 500,
    ObservationError: 500,
    AutomationError: 500,
}


# Edits, deletions and membership changes are not commands.
_IGNORED_SUBTYPES = {
    "message_changed",
    "message_deleted",
    "message_replied",
    "channel_join",
    "channel_leave",
    "group_join",
    "group_leave",
}


class Notifier(Protocol):
    async def send(self, channel: str, text: str) -> None: ...


class StateMachine(Protocol):
    async def execute(self, command: Command) -> ToggleResult: ...


@dataclass(frozen=True)
class WebhookRequest:
    headers: Mapping[str, str]
    body: bytes

    @classmethod
    def build(cls, headers: Mapping[str, str], body: bytes) -> "WebhookRequest":
        return cls(headers={str(k).lower(): str(v) for k, v in headers.items()}, body=body or b"")


@dataclass
class WebhookResponse:
    status_code: int
    body: str | dict[str, Any]
    # Slack must never redeliver: a retried start/stop would toggle twice.
    headers: dict[str, str] = field(default_factory=lambda: {NO_RETRY_HEADER: "1"})


def error_status(exc: ToggleBotError) -> int:
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return 500


class WebhookGateway:
    def __init__(self, settings: BotSettings, state_machine: StateMachine, notifier: Notifier):
        self.settings = settings
        self.state_machine = state_machine
        self.notifier = notifier

    async def handle(self, request: WebhookRequest) -> WebhookResponse:
        try:
            return await self._handle(request)
        except ToggleBotError as exc:
            status = error_status(exc)
            logger.warning("Webhook rejected", status_code=status, error_code=exc.code, error=exc.message)
            return WebhookResponse(status_code=status, body=exc.to_dict())
        except Exception as exc:
            logger.exception("Webhook handling crashed")
            return WebhookResponse(
                status_code=500,
                body={"error": {"code": "internal_error", "message": f"{type(exc).__name__}: {exc}"}},
            )

    async def _handle(self, request: WebhookRequest) -> WebhookResponse:
        verify_signature(
            secret=self.settings.signing_secret,
            headers=request.headers,
            body=request.body,
            max_age_seconds=self.settings.signature_max_age_seconds,
        )
        try:
            event = InboundEvent.model_validate_json(request.body)
        except ValidationError as exc:
            raise BadRequestError(f"invalid_body: {exc.error_count()} validation error(s)") from exc
        verify_token(self.settings.verification_token, event.token)

        # Header-only duplicate suppression; a redelivery without the header is processed again.
        retry_num = request.headers.get(RETRY_NUM_HEADER)
        if retry_num is not None:
            logger.info(
                "Retried delivery ignored",
                retry_num=retry_num,
                retry_reason=request.headers.get(RETRY_REASON_HEADER),
            )
            return WebhookResponse(status_code=200, body="")

        if event.type == "url_verification":
            return WebhookResponse(status_code=200, body=str(event.challenge or ""))
        if event.type == "event_callback":
            await self.handle_message(event.event)
            return WebhookResponse(status_code=200, body={"ok": True})
        logger.info("Unsupported event type", event_type=event.type)
        return WebhookResponse(status_code=400, body="Empty request")

    async def handle_message(self, message: ChatMessage | None) -> None:
        if message is None:
            logger.info("Event callback without event payload")
            return
        # Our own replies come back as events; routing them would loop forever.
        if message.sender_is_bot:
            return
        if not message.channel or message.subtype in _IGNORED_SUBTYPES:
            logger.info("Event ignored", event_type=message.type, subtype=message.subtype)
            return

        command = parse_command(message.text)
        logger.info("Command received", command=command.value, channel=message.channel, user=message.user)
        if command is Command.UNRECOGNIZED:
            reply = msgs.MSG_HELP
        else:
            result = await self.state_machine.execute(command)
            reply = result.message

        try:
            await self.notifier.send(message.channel, reply)
        except DeliveryError as exc:
            # The dashboard change, if any, already happened; nothing to roll back.
            logger.error("Chat reply not delivered", channel=message.channel, error=exc.message)
