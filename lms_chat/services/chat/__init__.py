# lms_chat/services/chat/__init__.py
from .chat_service import ChatService
from .message_store import MessageStore
from .presence_registry import PresenceRegistry
from .realtime_gateway import ClientConnection, ConnectionState, RealtimeGateway

__all__ = [
    "ChatService",
    "MessageStore",
    "PresenceRegistry",
    "ClientConnection",
    "ConnectionState",
    "RealtimeGateway",
]
