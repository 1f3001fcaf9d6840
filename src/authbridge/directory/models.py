"""
authbridge.directory.models

Directory-side value types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Custom user attribute linking a directory user to a Telegram account.
TELEGRAM_ID_ATTRIBUTE = "telegram_id"


@dataclass(frozen=True, slots=True)
class DirectoryUser:
    id: str
    email: str
    telegram_id: str | None = None

    @classmethod
    def from_graphql(cls, raw: dict[str, Any]) -> DirectoryUser:
        return cls(
            id=str(raw["id"]),
            email=str(raw["email"]),
            telegram_id=_attribute(raw.get("attributes") or [], TELEGRAM_ID_ATTRIBUTE),
        )


def _attribute(attributes: list[dict[str, Any]], name: str) -> str | None:
    for attr in attributes:
        if attr.get("name") != name:
            continue
        value = attr.get("value")
        # Newer LLDAP schemas return attribute values as lists.
        if isinstance(value, list):
            return str(value[0]) if value else None
        return None if value is None else str(value)
    return None
