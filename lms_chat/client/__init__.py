# lms_chat/client/__init__.py
from .api_client import ChatApiClient, ChatApiError
from .chat_panel import ChatPanel
from .realtime import RealtimeSubscriber

__all__ = ["ChatApiClient", "ChatApiError", "ChatPanel", "RealtimeSubscriber"]
