from .debug import DebugMessageChannel
from .telegram import TelegramMessageChannel

__all__ = ["DebugMessageChannel", "TelegramMessageChannel"]
