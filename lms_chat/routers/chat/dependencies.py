# lms_chat/routers/chat/dependencies.py
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.database import get_db
from ...core.exceptions import NotFound, Unauthorized
from ...core.security import decode_access_token, token_from_request
from ...schemas.chat_schemas import UserSummary
from ...services.directory_service import DirectoryService
from ...services.chat.chat_service import ChatService
from ...services.chat.realtime_gateway import RealtimeGateway


def get_gateway(request: Request) -> RealtimeGateway:
    return request.app.state.gateway


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> UserSummary:
    """Authenticated caller, resolved against the user records"""
    identity = decode_access_token(token_from_request(request))
    try:
        return await DirectoryService(db).get_user_summary(identity.user_id)
    except NotFound:
        raise Unauthorized("User no longer exists")


def get_chat_service(
    db: AsyncSession = Depends(get_db),
    gateway: RealtimeGateway = Depends(get_gateway)
) -> ChatService:
    return ChatService(db, notifier=gateway)
