# viarapida/routes/auth.py
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status
from loguru import logger
from passlib.context import CryptContext
from pydantic import BaseModel

from viarapida.config import ACCESS_TOKEN_EXPIRE_MINUTES
from viarapida.database import get_store
from viarapida.models.user import PasswordChange, Token, User, UserCreate, UserRole, UserUpdate
from viarapida.store import USERS, DocumentStore
from viarapida.utils.auth_utils import create_access_token, get_current_user
from viarapida.utils.dates import to_millis

router = APIRouter()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def get_password_hash(password):
    return pwd_context.hash(password)


def check_password_length(password: str):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, store: DocumentStore = Depends(get_store)):
    check_password_length(user.password)

    # Check if username or email already exists
    if await store.find_one(USERS, {"username": user.username}):
        raise HTTPException(status_code=400, detail="Username already taken.")
    if await store.find_one(USERS, {"email": user.email}):
        raise HTTPException(status_code=400, detail="Email already registered.")

    user_data = user.model_dump()
    user_data["id"] = str(uuid.uuid4())
    user_data["password"] = get_password_hash(user.password)
    user_data["created_at"] = to_millis(datetime.now(timezone.utc))
    # Operators are promoted in the database, never through sign-up
    user_data["role"] = UserRole.CUSTOMER.value

    await store.insert(USERS, user_data)
    logger.info(f"Registered user {user.username}")

    return User(**user_data)


class LoginRequest(BaseModel):
    username: str  # username or email
    password: str


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, store: DocumentStore = Depends(get_store)):
    # Fetch user from DB and verify password
    login_field = "email" if "@" in credentials.username else "username"
    user = await store.find_one(USERS, {login_field: credentials.username.strip()})
    if not user or not pwd_context.verify(credentials.password, user["password"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(data={"sub": user["username"]}, expires_delta=access_token_expires)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=User)
async def me(user=Depends(get_current_user)):
    return User(**user)


@router.patch("/me", response_model=User)
async def update_profile(
    changes: UserUpdate,
    user=Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    fields = changes.model_dump(exclude_unset=True)
    if fields.get("email") and fields["email"] != user["email"]:
        if await store.find_one(USERS, {"email": fields["email"]}):
            raise HTTPException(status_code=400, detail="Email already registered.")
    for name in ("email", "first_name", "last_name"):
        if name in fields and not (fields[name] or "").strip():
            raise HTTPException(status_code=400, detail=f"{name} cannot be blank.")

    if fields:
        await store.update(USERS, user["id"], fields)
        logger.info(f"User {user['username']} updated {', '.join(sorted(fields))}")
    return User(**{**user, **fields})


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def change_password(
    request: PasswordChange,
    user=Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    if not pwd_context.verify(request.current_password, user["password"]):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")
    check_password_length(request.new_password)

    await store.update(USERS, user["id"], {"password": get_password_hash(request.new_password)})
    logger.info(f"User {user['username']} changed their password")


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_account(user=Depends(get_current_user), store: DocumentStore = Depends(get_store)):
    # Reservations stay for the trip records; the token stops resolving to a user
    await store.delete(USERS, user["id"])
    logger.info(f"Deleted account {user['username']}")
