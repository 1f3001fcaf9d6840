"""
authbridge.errors

Exception taxonomy shared by the directory client, chat client and command layer.

Responsibilities:
- Separate session failures (AuthError) from other backend failures (DirectoryError).
- Tag "entity not found" at the transport boundary so callers never match on message text.
- Carry the offending field for argument validation failures.
"""

from __future__ import annotations

from typing import Any


class DirectoryError(Exception):
    """
    Any failure reported by the directory backend.

    Attributes:
        status_code: HTTP status, when the failure came from the HTTP layer
        errors: raw GraphQL error entries, when the failure came from a GraphQL payload
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


class AuthError(DirectoryError):
    """No session yet, or the backend rejected the credentials."""


class EntityNotFoundError(DirectoryError):
    """The queried entity does not exist."""


class ChatPlatformError(Exception):
    """Telegram Bot API call failed (transport error or `ok: false`)."""

    def __init__(self, method: str, description: str, *, error_code: int | None = None) -> None:
        super().__init__(f"{method}: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code


class ValidationError(ValueError):
    """Malformed command arguments. Rendered to the caller as a usage hint."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


# --- Module Notes -----------------------------------------------------------
# EntityNotFoundError is converted to `None` by DirectoryClient.lookup_by_id and never
# reaches the command layer. ValidationError never reaches the admin report sink.
