from . import health
from .chat import chat_router, websocket_router

__all__ = [
    "health",
    "chat_router",
    "websocket_router"
]
