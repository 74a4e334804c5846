import logging
from datetime import timedelta, datetime, timezone
from typing import Union, Any, Optional

from jose import jwt, JWTError
from sqlalchemy.orm import Session

from cnote.config import settings
from cnote.models import User
from cnote.schemas.auth import TokenData

logger = logging.getLogger(__name__)


def create_access_token(subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is not None:
        expires_at = datetime.now(timezone.utc) + expires_delta
    else:
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expires_at, "sub": str(subject)}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, settings.ALGORITHM)


def verify_token(token: str, secret_key: Optional[str] = None) -> Optional[str]:
    """Return the email in the token's ``sub`` claim, or None if the token is unusable."""
    try:
        payload = jwt.decode(token, secret_key or settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM])
        email = payload.get("sub")
        if email is None:
            return None
        return TokenData(email=email).email
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except JWTError as e:
        logger.info("Rejected invalid token: %s", e)
        return None


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()
