"""
authbridge.chat.models

Chat-side models.

Responsibilities:
- Parse Telegram `Update` payloads (webhook body / getUpdates result).
- Normalize them into `Caller` and `ChatContext` used by the service layer.
- Define what a command handler hands back to the delivery layer (`CommandOutcome`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ParseMode = Literal["HTML"]

PRIVATE = "private"
MULTI_PARTY = frozenset({"group", "supergroup"})


class TgUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None


class TgChat(BaseModel):
    id: int
    type: str
    title: str | None = None


class TgMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    from_user: TgUser | None = Field(default=None, alias="from")
    chat: TgChat
    text: str | None = None


class Update(BaseModel):
    update_id: int
    message: TgMessage | None = None

    def caller(self) -> Caller | None:
        if self.message is None or self.message.from_user is None:
            return None
        u = self.message.from_user
        return Caller(user_id=u.id, first_name=u.first_name)

    def context(self) -> ChatContext | None:
        if self.message is None:
            return None
        return ChatContext(chat_id=self.message.chat.id, type=self.message.chat.type)


@dataclass(frozen=True, slots=True)
class Caller:
    user_id: int
    first_name: str = ""

    @property
    def external_id(self) -> str:
        # Stored in the directory's `telegram_id` attribute.
        return str(self.user_id)


@dataclass(frozen=True, slots=True)
class ChatContext:
    chat_id: int
    type: str

    @property
    def is_private(self) -> bool:
        return self.type == PRIVATE

    @property
    def is_multi_party(self) -> bool:
        return self.type in MULTI_PARTY


@dataclass(frozen=True, slots=True)
class Reply:
    text: str
    parse_mode: ParseMode | None = None


@dataclass(slots=True)
class CommandOutcome:
    """
    Messages produced by one command: replies go to the caller's chat,
    reports go to the admin log chat.
    """

    replies: list[Reply] = field(default_factory=list)
    reports: list[Reply] = field(default_factory=list)

    @classmethod
    def text(cls, text: str) -> CommandOutcome:
        return cls(replies=[Reply(text)])

    def reply(self, text: str) -> None:
        self.replies.append(Reply(text))

    def reply_html(self, text: str) -> None:
        self.replies.append(Reply(text, parse_mode="HTML"))

    def report_html(self, text: str) -> None:
        self.reports.append(Reply(text, parse_mode="HTML"))

    def report_error(self, err: BaseException) -> None:
        self.reports.append(Reply(f"An error occurred: \n{err}"))


# --- Module Notes -----------------------------------------------------------
# Only the fields the bridge reads are modelled; pydantic ignores the rest of the payload.
