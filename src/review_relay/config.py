# src/review_relay/config.py
"""
Review Relay 配置（Pydantic v2）

所有配置项均可通过 `RELAY_` 前缀的环境变量覆盖，嵌套层级以 `__` 分隔，
例如 `RELAY_TELEGRAM__BOT_TOKEN`、`RELAY_RECONNECT__MAX_BACKOFF`。
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 原 Bot 的 Gmail 地址校验规则
DEFAULT_CONTENT_PATTERN = r"^[a-zA-Z0-9._-]+@gmail\.com$"

# ===================== 子模型 =====================


class FirestoreSettings(BaseModel):
    """提交记录所在的 Firestore 文档库。"""

    project_id: str | None = Field(default=None)
    credentials_json: str | None = Field(
        default=None, description="服务账号密钥 JSON 字符串"
    )
    credentials_file: str | None = Field(
        default=None, description="服务账号密钥文件路径"
    )
    collection: str = Field(default="gmails")
    liveness_interval: float = Field(
        default=5.0, gt=0, description="检查订阅是否存活的间隔（秒）"
    )


class TelegramSettings(BaseModel):
    bot_token: str | None = Field(default=None)
    api_base: str = Field(default="https://api.telegram.org")
    timeout: float = Field(default=10.0, gt=0)


class RedisSettings(BaseModel):
    url: str | None = Field(default=None)
    key_prefix: str = Field(default="relay:dev:")


class RelaySettings(BaseModel):
    event_stream_name: str = Field(default="relay_events")
    max_concurrency: int = Field(default=4, ge=1)
    queue_maxsize: int = Field(default=1000, ge=0)
    track_notified_at: bool = Field(default=True)


class ReconnectPolicySettings(BaseModel):
    max_attempts: int = Field(default=0, ge=0, description="0 表示无限重连")
    initial_backoff: float = Field(default=1.0, gt=0)
    max_backoff: float = Field(default=60.0, gt=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ReconnectPolicySettings":
        if self.initial_backoff > self.max_backoff:
            raise ValueError("initial_backoff 不能大于 max_backoff")
        return self


class IntakeSettings(BaseModel):
    content_pattern: str = Field(default=DEFAULT_CONTENT_PATTERN)

    @field_validator("content_pattern")
    @classmethod
    def _validate_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"非法的提交内容正则：{v!r}（{e}）") from e
        return v


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")


# ===================== 顶层配置 =====================
class RelayConfig(BaseSettings):
    """
    Review Relay 核心配置模型。
    """

    # --- 基础设施选择 ---
    store: Literal["firestore", "memory"] = "memory"
    channel: Literal["telegram", "debug"] = "debug"

    # --- 领域子配置 ---
    firestore: FirestoreSettings = Field(default_factory=FirestoreSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    reconnect: ReconnectPolicySettings = Field(
        default_factory=ReconnectPolicySettings
    )
    intake: IntakeSettings = Field(default_factory=IntakeSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # --- 校验器 ---
    @model_validator(mode="after")
    def _check_channel_credentials(self) -> "RelayConfig":
        if self.channel == "telegram" and not self.telegram.bot_token:
            raise ValueError(
                "使用 telegram 通道时必须配置 RELAY_TELEGRAM__BOT_TOKEN"
            )
        return self

    # --- Pydantic v2 设置 ---
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="RELAY_",
        case_sensitive=False,
        extra="ignore",
        env_file_encoding="utf-8",
    )
