"""Security utilities for password hashing and access tokens."""

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.config import Settings, get_settings
from proxportal.models import User, UserRole, utcnow


@lru_cache(maxsize=4)
def get_password_context(rounds: int) -> CryptContext:
    """Get a bcrypt hashing context for the given cost factor."""
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    rounds = get_settings().auth.bcrypt_rounds
    return get_password_context(rounds).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    rounds = get_settings().auth.bcrypt_rounds
    return get_password_context(rounds).verify(plain_password, hashed_password)


def check_password_strength(password: str) -> str | None:
    """Return why a password is too weak, or None if it is acceptable."""
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number"
    return None


@dataclass
class TokenPayload:
    """Claims carried by an access token."""

    user_id: int
    email: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime


def create_access_token(user: User, settings: Settings | None = None) -> str:
    """Issue a signed access token for a user."""
    settings = settings or get_settings()
    now = datetime.now(UTC)
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "role": UserRole(user.role).value,
        "iat": now,
        "exp": now + timedelta(hours=settings.auth.jwt_expire_hours),
    }
    return jwt.encode(claims, settings.secrets.jwt_secret, algorithm=settings.auth.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> TokenPayload:
    """Verify and decode an access token.

    Raises:
        JWTError: if the signature is invalid, the token has expired,
            or required claims are missing.
    """
    settings = settings or get_settings()
    claims = jwt.decode(
        token, settings.secrets.jwt_secret, algorithms=[settings.auth.jwt_algorithm]
    )
    try:
        return TokenPayload(
            user_id=int(claims["sub"]),
            email=claims["email"],
            role=UserRole(claims["role"]),
            issued_at=datetime.fromtimestamp(claims["iat"], UTC),
            expires_at=datetime.fromtimestamp(claims["exp"], UTC),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise JWTError(f"Malformed token claims: {e}") from e


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """Authenticate an active user by email and password."""
    user = await get_user_by_email(db, email)

    if user and user.is_active and verify_password(password, user.password_hash):
        user.last_login = utcnow()
        return user

    return None


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: UserRole = UserRole.USER,
    username: str | None = None,
) -> User:
    """Create a new user. The username defaults to the email's local part."""
    user = User(
        email=email.lower(),
        username=username or email.split("@")[0],
        password_hash=hash_password(password),
        name=name,
        role=role,
    )
    db.add(user)
    await db.flush()
    return user


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by ID."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user_count(db: AsyncSession) -> int:
    """Get the total number of users."""
    result = await db.execute(select(func.count(User.id)))
    return result.scalar_one()


async def count_active_admins(db: AsyncSession) -> int:
    """Get the number of active admin users."""
    result = await db.execute(
        select(func.count(User.id)).where(
            User.role == UserRole.ADMIN,
            User.is_active == True,  # noqa: E712
        )
    )
    return result.scalar_one()
