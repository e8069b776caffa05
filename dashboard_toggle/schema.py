from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator


class ChatMessage(BaseModel):
    type: str | None = None
    subtype: str | None = None
    text: str = ""
    channel: str = ""
    user: str | None = None
    bot_id: str | None = None

    @field_validator("text", "channel", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def sender_is_bot(self) -> bool:
        return bool(self.bot_id) or self.subtype == "bot_message"


class InboundEvent(BaseModel):
    type: str = ""
    token: str | None = None
    challenge: str | None = None
    event: ChatMessage | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _none_type_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value
