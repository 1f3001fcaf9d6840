"""
authbridge.bot.commands

Command table and router.

Responsibilities:
- Declare the bot's commands with their help text.
- Parse message text into a command name and arguments.
- Render argument validation failures as a usage hint.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from html import escape

from authbridge.chat.models import Caller, ChatContext, CommandOutcome
from authbridge.errors import ValidationError
from authbridge.services.privileges import PrivilegeResolver, Privileged
from authbridge.services.registration import RegistrationWorkflow
from authbridge.settings import Settings

HELP_INTRO = (
    "Hi! This is the Authentication Bot.\n"
    "I can help you register and authenticate users in {login_url}.\n\n"
    "Here are the available commands:\n"
)

REGISTER_HELP = (
    "<username> <email>\n\n"
    "Example: /register alice alice@example.com\n\n"
    "Note: The username should have 3 to 32 characters and only contain letters, "
    "numbers, and underscores.\n"
    "The email should be a valid email address that you will need to reset your password."
)


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    caller: Caller | None
    context: ChatContext | None
    args: list[str] = field(default_factory=list)


Handler = Callable[[CommandInvocation], Awaitable[CommandOutcome]]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    command: str
    description: str
    help_text: str
    handler: Handler


def parse_command(text: str, bot_username: str | None = None) -> tuple[str, list[str]] | None:
    """
    Split `/name[@bot] arg1 arg2` into `("name", ["arg1", "arg2"])`.
    Commands addressed to another bot (`/name@other_bot`) yield None.
    """

    if not text.startswith("/"):
        return None
    head, *args = text.split()
    name, _, target = head[1:].partition("@")
    if not name:
        return None
    if target and bot_username is not None and target.lower() != bot_username.lower():
        return None
    return name.lower(), args


class CommandRouter:
    def __init__(
        self,
        *,
        settings: Settings,
        privileges: PrivilegeResolver,
        registration: RegistrationWorkflow,
        bot_username: str | None = None,
    ) -> None:
        self._settings = settings
        self._privileges = privileges
        self._registration = registration
        self._bot_username = bot_username

        self.commands: list[CommandSpec] = [
            CommandSpec("help", "Get help", "without arguments", self._help),
            CommandSpec("ping", "Check if the bot is alive", "without arguments", self._ping),
            CommandSpec("chatid", "Get the ID of the current chat", "without arguments", self._chatid),
            CommandSpec("mystatus", "Check your privilege status", "without arguments", self._mystatus),
            CommandSpec(
                "register",
                "Register a new user (you probably want this)",
                REGISTER_HELP,
                self._register,
            ),
        ]
        self._by_name = {c.command: c for c in self.commands}

    async def dispatch(
        self, text: str, caller: Caller | None, context: ChatContext | None
    ) -> CommandOutcome | None:
        parsed = parse_command(text, self._bot_username)
        if parsed is None:
            return None
        name, args = parsed
        spec = self._by_name.get(name)
        if spec is None:
            return None
        try:
            return await spec.handler(CommandInvocation(caller=caller, context=context, args=args))
        except ValidationError as e:
            return CommandOutcome.text(f"{e}\n\nUsage: /{spec.command} {spec.help_text}")

    def help_text(self) -> str:
        intro = HELP_INTRO.format(login_url=self._settings.help_text.login_url)
        return intro + "\n".join(f"/{c.command} - {c.description}" for c in self.commands)

    async def _help(self, inv: CommandInvocation) -> CommandOutcome:
        return CommandOutcome.text(self.help_text())

    async def _ping(self, inv: CommandInvocation) -> CommandOutcome:
        return CommandOutcome.text("Pong!")

    async def _chatid(self, inv: CommandInvocation) -> CommandOutcome:
        chat_id = inv.context.chat_id if inv.context else None
        return CommandOutcome.text(f"Chat ID: {chat_id}")

    async def _mystatus(self, inv: CommandInvocation) -> CommandOutcome:
        status = await self._privileges.resolve(inv.caller, inv.context)
        if isinstance(status, Privileged):
            outcome = CommandOutcome()
            outcome.reply_html(
                f"You are privileged with level {status.level} "
                f"in chat <b>{escape(status.domain_nickname)}</b>"
            )
            return outcome
        return CommandOutcome.text("You are not privileged")

    async def _register(self, inv: CommandInvocation) -> CommandOutcome:
        if inv.caller is None:
            return CommandOutcome.text("You are not identified as a telegram user")
        return await self._registration.register_args(inv.caller, inv.context, inv.args)


# --- Module Notes -----------------------------------------------------------
# Errors other than ValidationError propagate to `bot.dispatcher`, which reports them.
