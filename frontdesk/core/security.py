from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from frontdesk.core.config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
settings = get_settings()

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _encode(subject: str, token_type: str, lifetime: timedelta, claims: Optional[Dict[str, Any]] = None) -> str:
    issued = datetime.now(timezone.utc)
    payload: Dict[str, Any] = dict(claims or {})
    payload.update(
        sub=subject,
        type=token_type,
        iat=int(issued.timestamp()),
        exp=int((issued + lifetime).timestamp()),
    )
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, role: str, username: str = "") -> str:
    return _encode(
        user_id,
        ACCESS_TOKEN,
        timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        {"role": role, "username": username},
    )


def create_refresh_token(user_id: str) -> str:
    return _encode(user_id, REFRESH_TOKEN, timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS))


def create_token_pair(user_id: str, role: str, username: str = "") -> Dict[str, str]:
    return {
        "accessToken": create_access_token(user_id, role, username),
        "refreshToken": create_refresh_token(user_id),
    }


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc
    if expected_type and payload.get("type") != expected_type:
        raise ValueError("Invalid token type")
    return payload
