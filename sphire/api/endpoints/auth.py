"""Authentication endpoints."""
import secrets
from datetime import datetime
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.redis import get_redis, RedisClient
from sphire.core.security import (
    REFRESH_TOKEN,
    create_token,
    decode_token,
    get_current_user,
    get_password_hash,
    verify_password,
)
from sphire.models.user import User
from sphire.schemas.common import Message
from sphire.schemas.user import (
    AuthResponse, RefreshRequest, SocialLogin, Token, UserCreate, UserLogin, UserResponse
)

logger = structlog.get_logger()

router = APIRouter()


def _login_attempts_key(email: str) -> str:
    return f"auth:login_attempts:{email}"


def _issue_tokens(user: User) -> dict:
    return {
        "access_token": create_token(user.id),
        "refresh_token": create_token(user.id, token_type=REFRESH_TOKEN),
        "token_type": "bearer",
    }


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a customer account and sign it in."""
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists with this email",
        )

    user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        last_login=datetime.utcnow(),
        addresses=[],
    )
    db.add(user)
    await db.commit()

    logger.info("user_registered", user_id=user.id)
    return {**_issue_tokens(user), "user": user}


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """Exchange email and password for tokens."""
    attempts_key = _login_attempts_key(credentials.email)
    attempts = await redis.get(attempts_key)
    if attempts is not None and int(attempts) >= settings.MAX_LOGIN_ATTEMPTS:
        logger.warning("login_locked_out", email=credentials.email)
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail="Too many failed login attempts. Try again later.",
        )

    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        failed = await redis.incr(attempts_key)
        if failed == 1:
            await redis.expire(attempts_key, settings.LOGIN_LOCKOUT_SECONDS)
        logger.info("login_failed", email=credentials.email, attempts=failed)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated",
        )

    await redis.delete(attempts_key)
    user.last_login = datetime.utcnow()
    await db.commit()

    logger.info("user_logged_in", user_id=user.id)
    return {**_issue_tokens(user), "user": user}


@router.post("/social", response_model=AuthResponse)
async def social_login(
    profile: SocialLogin,
    db: AsyncSession = Depends(get_db),
):
    """
    Sign in with a Google or Facebook profile.

    The storefront verifies the identity with the provider and sends the
    profile here. Unknown emails get an account, known ones get the avatar
    filled in when they had none.
    """
    result = await db.execute(select(User).where(User.email == profile.email))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            name=profile.name,
            email=profile.email,
            # Social accounts have no usable password until the user sets one
            hashed_password=get_password_hash(secrets.token_urlsafe(32)),
            avatar_url=profile.avatar_url,
            email_verified=True,
            addresses=[],
        )
        db.add(user)
        logger.info("social_user_created", email=profile.email)
    elif not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated",
        )
    elif not user.avatar_url and profile.avatar_url:
        user.avatar_url = profile.avatar_url

    user.last_login = datetime.utcnow()
    await db.commit()

    return {**_issue_tokens(user), "user": user}


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get the signed-in user."""
    return user


@router.post("/refresh", response_model=Token)
async def refresh_token(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Trade a refresh token for a new token pair."""
    user_id = decode_token(payload.refresh_token, expected_type=REFRESH_TOKEN)
    user = await db.get(User, user_id)

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return _issue_tokens(user)


@router.post("/logout", response_model=Message)
async def logout(user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards them."""
    logger.info("user_logged_out", user_id=user.id)
    return {"message": "Logged out successfully"}
