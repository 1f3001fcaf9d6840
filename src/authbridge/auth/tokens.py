"""
authbridge.auth.tokens

Read-only inspection of the directory's bearer token.

Responsibilities:
- Decode the JWT returned by LLDAP's simple login, without verifying it.
- Expose expiry and group membership so the session owner can check its refresh
  interval and its rights.

Note:
- The bridge is not the audience of this token, it has no key to verify it with;
  the directory validates it on every call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import jwt
from jwt import InvalidTokenError

# Only members of this group may create users and edit group membership.
ADMIN_GROUP = "lldap_admin"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Claims of an LLDAP session token. `groups` lists the account's LLDAP groups."""

    issued_at: datetime | None
    expires_at: datetime | None
    groups: tuple[str, ...] = ()

    @property
    def is_directory_admin(self) -> bool:
        return ADMIN_GROUP in self.groups

    @property
    def lifetime_seconds(self) -> float | None:
        if self.issued_at is None or self.expires_at is None:
            return None
        return (self.expires_at - self.issued_at).total_seconds()


class TokenInspectionError(Exception):
    pass


def inspect_token(token: str) -> TokenClaims:
    try:
        # Signature and exp checks are both off: this is inspection, not validation.
        payload = jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError as e:
        raise TokenInspectionError(str(e)) from e

    groups = payload.get("groups", [])
    return TokenClaims(
        issued_at=_timestamp(payload.get("iat")),
        expires_at=_timestamp(payload.get("exp")),
        groups=tuple(str(g) for g in groups) if isinstance(groups, list) else (),
    )


def _timestamp(raw: object) -> datetime | None:
    if not isinstance(raw, (int, float)):
        return None
    return datetime.fromtimestamp(raw, tz=UTC)


# --- Module Notes -----------------------------------------------------------
# Used by `directory.credentials.CredentialManager` after each successful login.
