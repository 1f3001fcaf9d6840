"""
tests.conftest

Shared fixtures: in-memory fakes for the LLDAP backend and the Telegram Bot API,
served to the real clients through `httpx.MockTransport`.
"""

from __future__ import annotations

import json
import time
import uuid
from collections import defaultdict
from typing import Any

import httpx
import jwt
import pytest
import pytest_asyncio

from authbridge.chat.models import Caller, ChatContext
from authbridge.chat.telegram import TelegramClient
from authbridge.directory.client import DirectoryClient
from authbridge.directory.credentials import CredentialManager
from authbridge.services.privileges import PrivilegeResolver
from authbridge.services.registration import RegistrationWorkflow
from authbridge.settings import (
    ChatSettings,
    DirectorySettings,
    HelpText,
    MemberWeights,
    Settings,
    TrustDomain,
)

BOT_TOKEN = "123456:test-bot-token"
LOG_CHAT = -1000
CHAT_A = -100111
CHAT_B = -100222
CHAT_C = -100333
GROUP_A = 10
GROUP_B = 20

ALICE = Caller(user_id=4242, first_name="Alice")
BOB = Caller(user_id=5151, first_name="Bob")
ALICE_DM = ChatContext(chat_id=ALICE.user_id, type="private")
BOB_DM = ChatContext(chat_id=BOB.user_id, type="private")

_SIGNING_KEY = "fake-lldap-signing-key-0123456789abcdef"


def _ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"ok": True, "result": result})


def _graphql_error(message: str) -> httpx.Response:
    return httpx.Response(200, json={"data": None, "errors": [{"message": message}]})


class FakeDirectory:
    """Just enough of LLDAP: simple login plus the four GraphQL operations the bridge uses."""

    def __init__(self, *, username: str = "admin", password: str = "secret") -> None:
        self._credentials = {"username": username, "password": password}
        self.users: dict[str, dict[str, str | None]] = {}
        self.groups: dict[int, set[str]] = defaultdict(set)
        self.rejected_groups: set[int] = set()
        self.failing_operations: set[str] = set()
        self.accept_login = True
        self.login_calls = 0
        self.valid_tokens: set[str] = set()
        self.operations: list[str] = []

    def add_user(self, user_id: str, email: str, telegram_id: str | None = None) -> None:
        self.users[user_id.lower()] = {"email": email, "telegram_id": telegram_id}

    def revoke_tokens(self) -> None:
        self.valid_tokens.clear()

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth/simple/login":
            return self._login(json.loads(request.content))
        if request.url.path == "/api/graphql":
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[len("Bearer ") :] not in self.valid_tokens:
                return httpx.Response(401, text="Unauthorized")
            body = json.loads(request.content)
            op = body["operationName"]
            self.operations.append(op)
            if op in self.failing_operations:
                return _graphql_error("Database error: connection reset")
            return getattr(self, f"_op_{op}")(body["variables"])
        return httpx.Response(404)

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        self.login_calls += 1
        if not self.accept_login or body != self._credentials:
            return httpx.Response(401, text="Invalid credentials")
        now = int(time.time())
        token = jwt.encode(
            {"sub": body["username"], "iat": now, "exp": now + 86400, "groups": ["lldap_admin"]},
            _SIGNING_KEY,
            algorithm="HS256",
        )
        self.valid_tokens.add(token)
        return httpx.Response(200, json={"token": token, "refreshToken": "opaque"})

    def _op_GetUserFromId(self, v: dict[str, Any]) -> httpx.Response:
        user_id = v["user_id"]
        user = self.users.get(user_id.lower())
        if user is None:
            return _graphql_error(f"Entity not found: No such user: '{user_id}'")
        attributes = []
        if user["telegram_id"] is not None:
            attributes.append({"name": "telegram_id", "value": [user["telegram_id"]]})
        return httpx.Response(
            200,
            json={"data": {"user": {"id": user_id.lower(), "email": user["email"], "attributes": attributes}}},
        )

    def _op_GetUsersFromTelegramId(self, v: dict[str, Any]) -> httpx.Response:
        matches = [{"id": uid} for uid, u in self.users.items() if u["telegram_id"] == v["telegram_id"]]
        return httpx.Response(200, json={"data": {"users": matches}})

    def _op_CreateUser(self, v: dict[str, Any]) -> httpx.Response:
        if v["user_id"].lower() in self.users:
            return _graphql_error("Error creating user: UNIQUE constraint failed: users.user_id")
        self.add_user(v["user_id"], v["email"], v["telegram_id"])
        return httpx.Response(200, json={"data": {"createUser": {"uuid": str(uuid.uuid4())}}})

    def _op_AddUserToGroup(self, v: dict[str, Any]) -> httpx.Response:
        group_id = v["group_id"]
        if group_id in self.rejected_groups:
            return httpx.Response(200, json={"data": {"addUserToGroup": {"ok": False}}})
        self.groups[group_id].add(v["user_id"].lower())
        return httpx.Response(200, json={"data": {"addUserToGroup": {"ok": True}}})


class FakeTelegram:
    """Bot API methods used by the bridge, keyed by the method name in the URL path."""

    def __init__(self, *, token: str = BOT_TOKEN) -> None:
        self._prefix = f"/bot{token}/"
        self.statuses: dict[tuple[int, int], str] = {}
        self.broken_chats: set[int] = set()
        self.sent: list[dict[str, Any]] = []
        self.pending_updates: list[dict[str, Any]] = []
        self.member_queries: list[tuple[int, int]] = []
        self.failing_polls = 0

    def set_status(self, chat_id: int, caller: Caller, status: str) -> None:
        self.statuses[(chat_id, caller.user_id)] = status

    def texts_to(self, chat_id: int) -> list[str]:
        return [m["text"] for m in self.sent if m["chat_id"] == chat_id]

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not request.url.path.startswith(self._prefix):
            return httpx.Response(404, json={"ok": False, "error_code": 404, "description": "Not Found"})
        method = request.url.path[len(self._prefix) :]
        body = json.loads(request.content or b"{}")

        if method == "getMe":
            return _ok({"id": 1, "is_bot": True, "first_name": "Auth", "username": "auth_test_bot"})
        if method == "getChatMember":
            chat_id, user_id = body["chat_id"], body["user_id"]
            self.member_queries.append((chat_id, user_id))
            if chat_id in self.broken_chats:
                return httpx.Response(
                    400,
                    json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
                )
            status = self.statuses.get((chat_id, user_id), "left")
            return _ok({"status": status, "user": {"id": user_id, "is_bot": False, "first_name": "x"}})
        if method == "sendMessage":
            self.sent.append(body)
            return _ok({"message_id": len(self.sent)})
        if method == "getUpdates":
            if self.failing_polls > 0:
                self.failing_polls -= 1
                return httpx.Response(
                    502, json={"ok": False, "error_code": 502, "description": "Bad Gateway"}
                )
            offset = body.get("offset")
            return _ok([u for u in self.pending_updates if offset is None or u["update_id"] >= offset])
        return httpx.Response(404, json={"ok": False, "error_code": 404, "description": "Not Found"})


def message_update(update_id: int, caller: Caller, context: ChatContext, text: str) -> dict[str, Any]:
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id,
            "from": {"id": caller.user_id, "is_bot": False, "first_name": caller.first_name},
            "chat": {"id": context.chat_id, "type": context.type},
            "date": 0,
            "text": text,
        },
    }


@pytest.fixture(autouse=True)
def _no_config_file(monkeypatch, tmp_path):
    # Keep a stray ./config.yaml or AUTHBRIDGE_* env from leaking into tests.
    monkeypatch.setenv("AUTHBRIDGE_CONFIG_FILE", str(tmp_path / "absent.yaml"))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        chat=ChatSettings(
            bot_token=BOT_TOKEN,
            api_root="https://tg.test",
            log_chat_id=LOG_CHAT,
            authorized_chats=[
                TrustDomain(chat_id=CHAT_A, nickname="Alpha", group_id=GROUP_A),
                TrustDomain(chat_id=CHAT_B, nickname="Beta", group_id=GROUP_B),
                TrustDomain(chat_id=CHAT_C, nickname="Gamma"),
            ],
            member_types=MemberWeights(creator=5, administrator=5, member=2),
            delivery="webhook",
        ),
        directory=DirectorySettings(
            url_base="https://lldap.test",
            username="admin",
            password="secret",
            relogin_time=15,
        ),
        help_text=HelpText(login_url="https://auth.test"),
    )


@pytest.fixture
def directory_backend() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def telegram_api() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def directory_http(directory_backend: FakeDirectory) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(directory_backend.handler))


@pytest.fixture
def telegram_http(telegram_api: FakeTelegram) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(telegram_api.handler))


@pytest.fixture
def credentials(settings: Settings, directory_http: httpx.AsyncClient) -> CredentialManager:
    return CredentialManager(settings=settings.directory, http=directory_http)


@pytest_asyncio.fixture
async def directory(
    settings: Settings, credentials: CredentialManager, directory_http: httpx.AsyncClient
) -> DirectoryClient:
    await credentials.login()
    return DirectoryClient(
        credentials=credentials, http=directory_http, url_base=settings.directory.url_base
    )


@pytest.fixture
def telegram(settings: Settings, telegram_http: httpx.AsyncClient) -> TelegramClient:
    return TelegramClient(settings=settings.chat, http=telegram_http)


@pytest.fixture
def resolver(settings: Settings, telegram: TelegramClient) -> PrivilegeResolver:
    return PrivilegeResolver(settings=settings.chat, members=telegram)


@pytest.fixture
def workflow(
    settings: Settings, directory: DirectoryClient, resolver: PrivilegeResolver
) -> RegistrationWorkflow:
    return RegistrationWorkflow(directory=directory, privileges=resolver, settings=settings)


# --- Module Notes -----------------------------------------------------------
# Unknown (chat, user) pairs answer "left", like Telegram does for non-members.
