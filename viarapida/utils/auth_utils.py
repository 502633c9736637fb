# viarapida/utils/auth_utils.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

from viarapida.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from viarapida.database import get_store
from viarapida.models.user import TokenData
from viarapida.store import USERS, DocumentStore


def create_access_token(data: dict, expires_delta: timedelta = None):
    """Generate JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta if expires_delta else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid credentials")
    username: str = payload.get("sub")
    if username is None:
        raise _unauthorized("Invalid token")
    return TokenData(username=username)


async def get_user(store: DocumentStore, username: str):
    """Fetch user from database by username."""
    return await store.find_one(USERS, {"username": username})


async def get_current_user(request: Request, store: DocumentStore = Depends(get_store)):
    """Extract JWT token from Authorization header and validate user."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise _unauthorized("Invalid authorization header")

    token = auth_header.split(" ")[1]  # Extract token after "Bearer"
    token_data = decode_token(token)

    user = await get_user(store, token_data.username)
    if user is None:
        raise _unauthorized("User not found")

    return user


async def get_current_user_id(user=Depends(get_current_user)) -> str:
    return user["id"]


async def get_optional_user_id(request: Request, store: DocumentStore = Depends(get_store)) -> Optional[str]:
    """Identity of the caller, or None when the request carries no usable token."""
    try:
        user = await get_current_user(request, store)
    except HTTPException:
        return None
    return user["id"]


def operator_required(user=Depends(get_current_user)):
    if user.get("role") != "operator":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only operators can perform this action")
    return user
