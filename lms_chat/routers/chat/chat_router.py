# lms_chat/routers/chat/chat_router.py
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
import logging

from .dependencies import get_chat_service, get_current_user
from ...schemas.chat_schemas import (
    ChatOut, DataResponse, ErrorResponse, MarkReadRequest, MarkReadResult,
    MessageOut, SendMessageRequest, SendMessageResponse, StartChatRequest,
    UnreadCounts, UserSummary
)
from ...services.chat.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/chat",
    tags=["Chat"],
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.get("/chats", response_model=DataResponse[List[ChatOut]])
async def list_chats(
    user: UserSummary = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """List the caller's chats, most recent activity first"""
    chats = await service.list_chats(user.id)
    return {"data": chats}


@router.get("/messages/{chat_id}", response_model=DataResponse[List[MessageOut]])
async def list_messages(
    chat_id: UUID,
    user: UserSummary = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Get a chat transcript; messages addressed to the caller become read"""
    messages = await service.list_messages(chat_id, user.id)
    return {"data": messages}


@router.post("/send", response_model=SendMessageResponse, status_code=201)
async def send_message(
    request: SendMessageRequest,
    user: UserSummary = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Send a message between a student and the course instructor"""
    message, chat = await service.send_message(
        course_id=request.course_id,
        sender_id=user.id,
        receiver_id=request.receiver_id,
        content=request.content
    )
    return {"data": message, "chat": chat}


@router.post("/start", response_model=SendMessageResponse, status_code=201)
async def start_chat(
    request: StartChatRequest,
    user: UserSummary = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Start a chat with the course instructor using the standard greeting"""
    message, chat = await service.start_chat(user.id, request.course_id)
    return {"data": message, "chat": chat}


@router.post("/mark-read", response_model=DataResponse[MarkReadResult])
async def mark_messages_read(
    request: MarkReadRequest,
    user: UserSummary = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Mark messages addressed to the caller as read"""
    updated = await service.mark_read(request.message_ids, user.id)
    return {"data": {"updated": updated}}


@router.get("/unread", response_model=UnreadCounts)
async def unread_counts(
    user: UserSummary = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Unread message count per chat for the caller"""
    return {"data": await service.get_unread_counts(user.id)}
