"""
authbridge.services.privileges

Privilege resolution from trust-domain membership.

Responsibilities:
- Map a caller's membership status in a trust domain to a weight.
- Resolve the caller's privilege for a chat context (single domain or best of all domains).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from authbridge.chat.models import Caller, ChatContext
from authbridge.observability.logging import get_logger
from authbridge.settings import UNPRIVILEGED, ChatSettings, TrustDomain

log = get_logger(__name__)


class MembershipSource(Protocol):
    async def get_member_status(self, chat_id: int, user_id: int) -> str: ...


@dataclass(frozen=True, slots=True)
class Unprivileged:
    pass


@dataclass(frozen=True, slots=True)
class Privileged:
    level: int
    domain_id: int
    domain_nickname: str


PrivilegeStatus = Unprivileged | Privileged


class PrivilegeResolver:
    def __init__(self, *, settings: ChatSettings, members: MembershipSource) -> None:
        self._settings = settings
        self._members = members

    async def weight_in(self, caller: Caller, domain: TrustDomain) -> int:
        status = await self._members.get_member_status(domain.chat_id, caller.user_id)
        return self._settings.member_types.weight(status)

    async def resolve(self, caller: Caller | None, context: ChatContext | None) -> PrivilegeStatus:
        if caller is None or context is None:
            return Unprivileged()

        if context.is_multi_party:
            domain = self._settings.domain(context.chat_id)
            if domain is None:
                return Unprivileged()
            # Inside a trust domain the level is reported as-is, even when it is not positive.
            level = await self.weight_in(caller, domain)
            return Privileged(level=level, domain_id=domain.chat_id, domain_nickname=domain.nickname)

        if context.is_private:
            best_level = UNPRIVILEGED
            best: TrustDomain | None = None
            for domain in self._settings.authorized_chats:
                level = await self.weight_in(caller, domain)
                # Strict comparison: on ties the domain listed first wins.
                if level > best_level:
                    best_level, best = level, domain
            if best is not None and best_level > 0:
                return Privileged(
                    level=best_level, domain_id=best.chat_id, domain_nickname=best.nickname
                )
            log.debug("caller_unprivileged", user_id=caller.user_id, best_level=best_level)

        return Unprivileged()


# --- Module Notes -----------------------------------------------------------
# Membership queries are sequential and in configuration order; the chat platform
# rate-limits bursts of getChatMember calls.
