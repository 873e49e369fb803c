from datetime import timedelta
from typing import Dict, Any, Optional
import jwt
from fastapi import HTTPException

from config import settings
from Login_module.Utils.datetime_utils import now_local


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """
    Creates a JWT access token with expiration timestamp.
    Tokens are normally issued by the identity service; this exists for tooling and tests.
    """
    to_encode = data.copy()
    expire = now_local() + timedelta(
        seconds=(expires_delta or settings.ACCESS_TOKEN_EXPIRE_SECONDS)
    )
    to_encode.update({"exp": expire})
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token


def decode_access_token(token: str):
    """
    Decodes and validates JWT access token.
    Raises HTTPException for invalid or expired tokens.
    """
    try:
        decoded = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return decoded
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
