from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from filedrive.auth.schemas import TokenData
from filedrive.config import settings
from filedrive.utils.exceptions import UnauthorizedError

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
)
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: TokenData) -> str:
    to_encode = {"userId": data.user_id, "username": data.username}
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.secret_key, algorithm=settings.algorithm
    )
    return encoded_jwt


def decode_access_token(token: str) -> TokenData:
    """Verifies signature and expiry; raises UnauthorizedError otherwise."""
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")

    user_id = payload.get("userId")
    username = payload.get("username")
    if not user_id or not username:
        raise UnauthorizedError("Invalid or expired token")
    return TokenData(user_id=user_id, username=username)


async def get_optional_user(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
) -> Optional[TokenData]:
    """
    Identity of the caller, or None for anonymous requests.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


async def get_current_user(
    user: Annotated[Optional[TokenData], Depends(get_optional_user)],
) -> TokenData:
    if user is None:
        raise UnauthorizedError("No token provided")
    return user
