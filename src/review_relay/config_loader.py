# src/review_relay/config_loader.py
"""
配置装载器

职责：
- 加载 .env / .env.test；
- 构造 RelayConfig；
- 严格模式下拒绝旧版 Bot 的环境变量名，并提示对应的新名称。
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv

from review_relay.config import RelayConfig
from review_relay_core.exceptions import ConfigurationError

__all__ = ["load_config_from_env"]

# 旧版 Bot 使用的环境变量 -> 新的权威变量名
_LEGACY_ENV_KEYS = {
    "TELEGRAM_BOT_TOKEN": "RELAY_TELEGRAM__BOT_TOKEN",
    "FIREBASE_SERVICE_ACCOUNT_KEY": "RELAY_FIRESTORE__CREDENTIALS_JSON",
}


def _load_env_files(mode: Literal["test", "prod"]) -> None:
    """
    加载 .env / .env.test：
    - test 模式：先加载 .env（override=False），再加载 .env.test（override=True）
    - prod 模式：仅加载 .env（override=False）
    """
    cwd = Path.cwd()
    env_path = cwd / ".env"

    if env_path.exists():
        load_dotenv(env_path, override=False)

    if mode == "test":
        env_test_path = cwd / ".env.test"
        if env_test_path.exists():
            load_dotenv(env_test_path, override=True)


def _ensure_no_legacy_keys(strict: bool) -> None:
    """检测旧版变量名。严格模式下直接报错；非严格模式忽略。"""
    if not strict:
        return
    legacy = sorted(k for k in _LEGACY_ENV_KEYS if k in os.environ)
    if legacy:
        hints = "，".join(f"{k} -> {_LEGACY_ENV_KEYS[k]}" for k in legacy)
        raise ConfigurationError(
            f"检测到旧版环境变量：{hints}。请改用 RELAY_ 前缀，嵌套以 '__' 表示层级。"
        )


def load_config_from_env(
    mode: Literal["test", "prod"] = "prod",
    strict: bool = True,
) -> RelayConfig:
    """
    加载并构造配置对象。

    参数：
      - mode: "test" | "prod"；决定是否加载 .env.test 覆盖项
      - strict: True 时拒绝旧版 Bot 的环境变量名
    """
    _load_env_files(mode)
    _ensure_no_legacy_keys(strict=strict)
    return RelayConfig()
