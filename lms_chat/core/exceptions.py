# lms_chat/core/exceptions.py
"""Custom exceptions for the chat application."""
from typing import Optional


class ChatError(Exception):
    """Base exception for the chat system"""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class NotFound(ChatError):
    """Chat, course or participant missing"""
    status_code = 404

    def __init__(self, resource: str, id: Optional[str] = None):
        message = f"{resource} not found"
        if id:
            message += f" with id: {id}"
        super().__init__(message)


class ValidationError(ChatError):
    """Empty content, malformed ids, invalid participants"""
    status_code = 422


class Unauthorized(ChatError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class Forbidden(ChatError):
    status_code = 403

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class InternalError(ChatError):
    """Store or transport failure. The message is never shown to clients."""
    status_code = 500
