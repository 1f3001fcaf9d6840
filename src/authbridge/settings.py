"""
authbridge.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed settings for the chat front-end, the directory backend and the service.
- Load a YAML config file and overlay environment variables on top of it.
- Hide secrets from repr/logging (bot token, directory password, webhook secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# Weight used for "no membership"; also the floor of the private-chat maximum search.
UNPRIVILEGED = -1

CONFIG_FILE_ENV = "AUTHBRIDGE_CONFIG_FILE"


class TrustDomain(BaseModel):
    """
    A group chat whose members may be granted privileges.
    `group_id` is the LLDAP group new users are attached to, if any.
    """

    chat_id: int
    nickname: str
    group_id: int | None = None


class MemberWeights(BaseModel):
    # Telegram ChatMember statuses -> privilege weight.
    creator: int = UNPRIVILEGED
    administrator: int = UNPRIVILEGED
    member: int = UNPRIVILEGED
    restricted: int = UNPRIVILEGED
    left: int = UNPRIVILEGED
    kicked: int = UNPRIVILEGED

    def weight(self, status: str) -> int:
        if status not in type(self).model_fields:
            return UNPRIVILEGED
        return int(getattr(self, status))


class ChatSettings(BaseModel):
    bot_token: str = Field(repr=False)
    api_root: str = "https://api.telegram.org"
    log_chat_id: int
    authorized_chats: list[TrustDomain] = Field(default_factory=list)
    member_types: MemberWeights = Field(default_factory=MemberWeights)

    # Update delivery: long polling (no public endpoint needed) or the /telegram/webhook route.
    delivery: Literal["polling", "webhook"] = "polling"
    poll_timeout: int = Field(default=30, ge=0, le=50)
    webhook_secret: str | None = Field(default=None, repr=False)

    def domain(self, chat_id: int) -> TrustDomain | None:
        return next((d for d in self.authorized_chats if d.chat_id == chat_id), None)


class DirectorySettings(BaseModel):
    url_base: str
    username: str
    password: str = Field(repr=False)
    relogin_time: int = Field(default=6 * 60 * 60, ge=15)


class HelpText(BaseModel):
    login_url: str = "Your login URL"


class Settings(BaseSettings):
    """
    One settings object injected across layers.
    Precedence: init kwargs > env (AUTHBRIDGE_*, nested with `__`) > .env > YAML file.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHBRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "authbridge"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    chat: ChatSettings
    directory: DirectorySettings
    help_text: HelpText = Field(default_factory=HelpText)

    # Startup diagnostics: look up one user and log the result.
    enable_test_query: bool = False
    test_query_user_id: str = "admin"

    # "continue" keeps attaching groups after a failed domain; "abort" stops at the first failure.
    group_attach_policy: Literal["continue", "abort"] = "continue"

    # Seconds; None disables timeouts on outbound calls.
    request_timeout: float | None = Field(default=None, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=config_file_path())
        return (init_settings, env_settings, dotenv_settings, yaml_settings, file_secret_settings)


def config_file_path() -> str:
    return os.environ.get(CONFIG_FILE_ENV, "config.yaml")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-reading the YAML file and env vars for each dependency.
    return Settings()  # type: ignore[call-arg]


# --- Module Notes -----------------------------------------------------------
# The YAML layout mirrors the model: top-level `chat`, `directory`, `help_text`.
# A missing config file is not an error; required fields then must come from env.
