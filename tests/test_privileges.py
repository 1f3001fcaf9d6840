"""
tests.test_privileges

Privilege resolution across trust domains.
"""

from __future__ import annotations

import pytest

from authbridge.chat.models import ChatContext
from authbridge.services.privileges import Privileged, PrivilegeResolver, Unprivileged
from conftest import ALICE, ALICE_DM, CHAT_A, CHAT_B, CHAT_C


@pytest.mark.asyncio
async def test_private_context_takes_the_highest_weight(resolver: PrivilegeResolver, telegram_api) -> None:
    telegram_api.set_status(CHAT_A, ALICE, "member")
    telegram_api.set_status(CHAT_B, ALICE, "administrator")

    status = await resolver.resolve(ALICE, ALICE_DM)

    assert status == Privileged(level=5, domain_id=CHAT_B, domain_nickname="Beta")
    assert [q[0] for q in telegram_api.member_queries] == [CHAT_A, CHAT_B, CHAT_C]


@pytest.mark.asyncio
async def test_private_context_ties_keep_the_first_domain(resolver: PrivilegeResolver, telegram_api) -> None:
    telegram_api.set_status(CHAT_A, ALICE, "member")
    telegram_api.set_status(CHAT_B, ALICE, "member")

    status = await resolver.resolve(ALICE, ALICE_DM)

    assert status == Privileged(level=2, domain_id=CHAT_A, domain_nickname="Alpha")


@pytest.mark.asyncio
async def test_private_context_without_positive_weight(resolver: PrivilegeResolver, telegram_api) -> None:
    telegram_api.set_status(CHAT_A, ALICE, "restricted")
    telegram_api.set_status(CHAT_B, ALICE, "kicked")

    assert await resolver.resolve(ALICE, ALICE_DM) == Unprivileged()


@pytest.mark.asyncio
async def test_group_context_outside_trust_domains(resolver: PrivilegeResolver, telegram_api) -> None:
    stranger_group = ChatContext(chat_id=-100999, type="supergroup")

    assert await resolver.resolve(ALICE, stranger_group) == Unprivileged()
    assert telegram_api.member_queries == []


@pytest.mark.asyncio
async def test_group_context_reports_that_domain_only(resolver: PrivilegeResolver, telegram_api) -> None:
    telegram_api.set_status(CHAT_A, ALICE, "administrator")
    telegram_api.set_status(CHAT_B, ALICE, "creator")

    status = await resolver.resolve(ALICE, ChatContext(chat_id=CHAT_A, type="group"))

    assert status == Privileged(level=5, domain_id=CHAT_A, domain_nickname="Alpha")
    assert telegram_api.member_queries == [(CHAT_A, ALICE.user_id)]


@pytest.mark.asyncio
async def test_group_context_keeps_non_positive_level(resolver: PrivilegeResolver, telegram_api) -> None:
    telegram_api.set_status(CHAT_C, ALICE, "restricted")

    status = await resolver.resolve(ALICE, ChatContext(chat_id=CHAT_C, type="supergroup"))

    assert status == Privileged(level=-1, domain_id=CHAT_C, domain_nickname="Gamma")


@pytest.mark.asyncio
async def test_other_contexts_resolve_without_queries(resolver: PrivilegeResolver, telegram_api) -> None:
    assert await resolver.resolve(ALICE, ChatContext(chat_id=CHAT_A, type="channel")) == Unprivileged()
    assert await resolver.resolve(None, ALICE_DM) == Unprivileged()
    assert await resolver.resolve(ALICE, None) == Unprivileged()
    assert telegram_api.member_queries == []
