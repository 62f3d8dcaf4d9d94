# lms_chat/client/render.py
"""Plain-text rendering of the chat panel."""
from datetime import datetime
from typing import Optional

from .chat_panel import ChatPanel


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone().strftime("%I:%M %p").lstrip("0")


def render_chat_list(panel: ChatPanel) -> str:
    if not panel.chats:
        return "No chats yet."

    lines = []
    for chat in panel.chats:
        marker = ">" if chat.id == panel.active_chat_id else " "
        other = panel.counterpart(chat)
        badge = panel.unread.get(chat.id, 0)
        badge_text = f" ({badge})" if badge else ""
        last = chat.last_message
        lines.append(
            f"{marker} {other.name}{badge_text} - {chat.course.title}"
            f"  {format_time(last.timestamp if last else None)}  [{chat.id}]"
        )
    return "\n".join(lines)


def render_transcript(panel: ChatPanel, limit: int = 20) -> str:
    """Newest messages last; only the tail is shown, like a view scrolled to the bottom"""
    chat = panel.active_chat
    if chat is None:
        return "Select a chat to view messages"

    other = panel.counterpart(chat)
    lines = [f"{other.name} ({chat.course.title})", "-" * 40]
    for message in panel.messages[-limit:]:
        mine = message.sender.id == panel.user_id
        ticks = (" ✓✓" if message.read else " ✓") if mine else ""
        who = "me" if mine else message.sender.name
        lines.append(f"[{format_time(message.timestamp)}] {who}: {message.content}{ticks}")
    return "\n".join(lines)
