"""
authbridge.directory.client

GraphQL client boundary for the LLDAP directory.

Responsibilities:
- Attach the current bearer token to every call.
- Classify failures once, at the transport boundary (auth / not found / other).
- Provide typed user lookup, creation and group-membership operations.
"""

from __future__ import annotations

from typing import Any

import httpx

from authbridge.directory import queries
from authbridge.directory.credentials import CredentialManager
from authbridge.directory.models import DirectoryUser
from authbridge.errors import AuthError, DirectoryError, EntityNotFoundError
from authbridge.observability.logging import get_logger

log = get_logger(__name__)

GRAPHQL_PATH = "/api/graphql"

# LLDAP reports a missing entity only through the GraphQL error message.
NOT_FOUND_MARKER = "Entity not found"


class DirectoryClient:
    def __init__(
        self,
        *,
        credentials: CredentialManager,
        http: httpx.AsyncClient,
        url_base: str,
    ) -> None:
        self._credentials = credentials
        self._http = http
        self._graphql_url = httpx.URL(url_base).join(GRAPHQL_PATH)

    async def lookup_by_id(self, user_id: str) -> DirectoryUser | None:
        try:
            data = await self._execute(
                queries.GET_USER_FROM_ID, {"user_id": user_id}, operation="GetUserFromId"
            )
        except EntityNotFoundError:
            return None
        return DirectoryUser.from_graphql(_field(data, "user", "GetUserFromId"))

    async def lookup_by_external_id(self, telegram_id: str) -> str | None:
        data = await self._execute(
            queries.GET_USERS_FROM_TELEGRAM_ID,
            {"telegram_id": telegram_id},
            operation="GetUsersFromTelegramId",
        )
        users = _field(data, "users", "GetUsersFromTelegramId")
        if not users:
            return None
        # Several matches mean the directory was edited by hand; the first one wins.
        return str(users[0]["id"])

    async def create_user(self, telegram_id: str, user_id: str, email: str) -> str:
        data = await self._execute(
            queries.CREATE_USER,
            {"telegram_id": telegram_id, "user_id": user_id, "email": email},
            operation="CreateUser",
        )
        created = _field(data, "createUser", "CreateUser")
        log.info("directory_user_created", user_id=user_id, telegram_id=telegram_id)
        return str(created["uuid"])

    async def add_to_group(self, user_id: str, group_id: int) -> None:
        data = await self._execute(
            queries.ADD_USER_TO_GROUP,
            {"user_id": user_id, "group_id": group_id},
            operation="AddUserToGroup",
        )
        result = _field(data, "addUserToGroup", "AddUserToGroup")
        if not result.get("ok"):
            raise DirectoryError(f"Failed to add user {user_id} to group {group_id}")
        log.info("directory_group_member_added", user_id=user_id, group_id=group_id)

    async def _execute(
        self, query: str, variables: dict[str, Any], *, operation: str
    ) -> dict[str, Any]:
        headers = self._credentials.authz_headers()
        try:
            r = await self._http.post(
                self._graphql_url,
                json={"query": query, "variables": variables, "operationName": operation},
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise DirectoryError(f"{operation}: request failed: {e}") from e

        if r.status_code == 401:
            raise AuthError(f"{operation}: token rejected", status_code=401)

        try:
            payload = r.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            raise DirectoryError(
                f"{operation}: unexpected response (HTTP {r.status_code})",
                status_code=r.status_code,
            )

        errors = payload.get("errors")
        if errors:
            raise _graphql_error(operation, errors, r.status_code)
        if r.status_code >= 400:
            raise DirectoryError(f"{operation}: HTTP {r.status_code}", status_code=r.status_code)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise DirectoryError(f"{operation}: response has no data", status_code=r.status_code)
        return data


def _graphql_error(operation: str, errors: list[Any], status_code: int) -> DirectoryError:
    entries = [e if isinstance(e, dict) else {"message": str(e)} for e in errors]
    messages = [str(e.get("message", "")) for e in entries]
    summary = f"{operation}: {'; '.join(messages)}"
    if any(NOT_FOUND_MARKER in m for m in messages):
        return EntityNotFoundError(summary, status_code=status_code, errors=entries)
    return DirectoryError(summary, status_code=status_code, errors=entries)


def _field(data: dict[str, Any], name: str, operation: str) -> Any:
    if data.get(name) is None:
        raise DirectoryError(f"{operation}: response is missing `{name}`")
    return data[name]


# --- Module Notes -----------------------------------------------------------
# Message inspection for "not found" happens only in `_graphql_error`; everything above
# this boundary works with the EntityNotFoundError type.
