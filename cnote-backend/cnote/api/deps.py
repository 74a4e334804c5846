from typing import Generator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cnote.common.common_message import CommonMessage
from cnote.common.exceptions import UnauthenticatedError
from cnote.db.session import SessionLocal
from cnote.models import User
from cnote.services.auth_service import get_user_by_email, verify_token
from cnote.services.chat_service import ChatService, chat_service
from cnote.services.mcp_service import McpService, mcp_service

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError(CommonMessage.NOT_AUTHENTICATED)

    email = verify_token(credentials.credentials)
    if email is None:
        raise UnauthenticatedError(CommonMessage.INVALID_TOKEN)

    user = get_user_by_email(db, email)
    if user is None:
        raise UnauthenticatedError(CommonMessage.INVALID_TOKEN)
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise UnauthenticatedError(CommonMessage.INACTIVE_USER)
    return current_user


def get_chat_service() -> ChatService:
    return chat_service


def get_mcp_service() -> McpService:
    return mcp_service
