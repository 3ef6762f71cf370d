from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from jwt.exceptions import PyJWTError as JWTError

from sqlgate.config import settings

bearer_scheme = HTTPBearer(auto_error=False)


def decode_principal(token: str) -> str:
    """
    Extract the executor identity from an already-issued token.

    The ``email`` claim is preferred, then ``sub``.

    Raises:
        JWTError: If the token is invalid or expired
        ValueError: If the token carries no identity claim
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    principal = payload.get("email") or payload.get("sub")
    if not principal:
        raise ValueError("Token has no email or sub claim")
    return str(principal)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    """
    Get the identity of the caller from the bearer token.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        return decode_principal(credentials.credentials)
    except (JWTError, ValueError):
        raise credentials_exception
