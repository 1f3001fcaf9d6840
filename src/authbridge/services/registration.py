"""
authbridge.services.registration

Self-service registration workflow.

Responsibilities:
- Gate registration on a private chat and a positive privilege level.
- Validate arguments, check idempotency (username taken, Telegram account already linked).
- Create the directory user and attach it to the groups of the caller's trust domains.
- Convert backend failures into a generic reply plus a full admin report.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from html import escape
from typing import Literal

from authbridge.chat.models import Caller, ChatContext, CommandOutcome
from authbridge.directory.client import DirectoryClient
from authbridge.errors import ValidationError
from authbridge.observability.logging import get_logger
from authbridge.services.privileges import PrivilegeResolver, Privileged
from authbridge.settings import Settings, TrustDomain

log = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]{3,32}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

GENERIC_FAILURE = "LLDAP server had an error. Please contact the administrator."

AttachStatus = Literal["attached", "skipped_unprivileged", "skipped_no_group", "failed"]


def validate_username(username: str) -> None:
    if USERNAME_PATTERN.fullmatch(username) is None:
        raise ValidationError("Invalid username", field="username")


def validate_email(email: str) -> None:
    if EMAIL_PATTERN.fullmatch(email) is None:
        raise ValidationError("Invalid email", field="email")


@dataclass(frozen=True, slots=True)
class GroupAttachResult:
    domain: TrustDomain
    status: AttachStatus
    error: Exception | None = None


class _KeyedLocks:
    """asyncio locks created on demand and dropped once nobody holds or waits for them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class RegistrationWorkflow:
    def __init__(
        self,
        *,
        directory: DirectoryClient,
        privileges: PrivilegeResolver,
        settings: Settings,
    ) -> None:
        self._directory = directory
        self._privileges = privileges
        self._domains = settings.chat.authorized_chats
        self._login_url = settings.help_text.login_url
        self._policy = settings.group_attach_policy
        self._locks = _KeyedLocks()

    async def register(
        self, caller: Caller, context: ChatContext | None, username: str, email: str
    ) -> CommandOutcome:
        return await self.register_args(caller, context, [username, email])

    async def register_args(
        self, caller: Caller, context: ChatContext | None, args: Sequence[str]
    ) -> CommandOutcome:
        """
        Run the workflow for raw command arguments.

        Raises:
            ValidationError: not a private chat, wrong arity, bad username or email.
        """

        if context is None or not context.is_private:
            raise ValidationError("Use this command in a private chat.")

        status = await self._privileges.resolve(caller, context)
        if not isinstance(status, Privileged):
            return CommandOutcome.text("You are not privileged to use this command")

        if len(args) != 2:
            raise ValidationError("Invalid number of arguments")
        username, email = args
        validate_username(username)
        validate_email(email)

        outcome = CommandOutcome()
        try:
            # Lock order is always username then caller, so two holders never wait on each other.
            async with self._locks.hold(f"user:{username.lower()}"), self._locks.hold(
                f"caller:{caller.external_id}"
            ):
                await self._register(caller, context, username, email, outcome)
        except Exception as e:
            # Single catch point: nothing created so far is rolled back.
            log.exception("registration_failed", username=username, user_id=caller.user_id)
            outcome.reply(GENERIC_FAILURE)
            outcome.report_error(e)
        return outcome

    async def _register(
        self,
        caller: Caller,
        context: ChatContext,
        username: str,
        email: str,
        outcome: CommandOutcome,
    ) -> None:
        existing = await self._directory.lookup_by_id(username)
        if existing is not None:
            outcome.reply_html(f"User <b>{username}</b> already exists.")
            return

        linked = await self._directory.lookup_by_external_id(caller.external_id)
        if linked is not None:
            outcome.reply_html(
                f"This telegram account is already connected to user <b>{escape(linked)}</b>."
            )
            return

        await self._directory.create_user(caller.external_id, username, email)
        log.info("user_registered", username=username, user_id=caller.user_id)
        outcome.reply_html(
            f"User <b>{username}</b> has been registered.\n\n"
            f"Please go to {self._login_url} and use the \"Reset Password\" feature "
            "to set your password."
        )
        outcome.report_html(
            f"User <b>{username}</b> has been registered by "
            f"{escape(caller.first_name)}({caller.user_id}) in chat {context.chat_id}"
        )

        await self.attach_groups(caller, username, outcome)

    async def attach_groups(
        self, caller: Caller, username: str, outcome: CommandOutcome
    ) -> list[GroupAttachResult]:
        results: list[GroupAttachResult] = []
        for domain in self._domains:
            try:
                result = await self._attach_one(caller, username, domain)
            except Exception as e:
                if self._policy == "abort":
                    raise
                log.warning(
                    "group_attach_failed",
                    username=username,
                    chat_id=domain.chat_id,
                    group_id=domain.group_id,
                    error=str(e),
                )
                result = GroupAttachResult(domain=domain, status="failed", error=e)
            if result.status == "attached":
                outcome.reply_html(
                    f"User <b>{username}</b> has been added to a group "
                    f"because you are in chat <b>{escape(domain.nickname)}</b>"
                )
            results.append(result)

        failed = [r for r in results if r.status == "failed"]
        if failed:
            names = ", ".join(f"<b>{escape(r.domain.nickname)}</b>" for r in failed)
            outcome.reply_html(
                f"User <b>{username}</b> could not be added to the groups of {names}. "
                "The administrator has been notified."
            )
            for r in failed:
                if r.error is not None:
                    outcome.report_error(r.error)
        return results

    async def _attach_one(
        self, caller: Caller, username: str, domain: TrustDomain
    ) -> GroupAttachResult:
        if await self._privileges.weight_in(caller, domain) <= 0:
            return GroupAttachResult(domain=domain, status="skipped_unprivileged")
        if domain.group_id is None:
            return GroupAttachResult(domain=domain, status="skipped_no_group")
        await self._directory.add_to_group(username, domain.group_id)
        return GroupAttachResult(domain=domain, status="attached")


# --- Module Notes -----------------------------------------------------------
# The in-process lock only narrows the lookup-then-create race for this process; the
# directory's own uniqueness check on the user id is what actually decides a collision.
