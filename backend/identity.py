"""Identity adapter: accounts, password checks and session tokens.

Tokens are JWTs whose ``jti`` names a document in the ``session``
collection. Deleting that document revokes the token, which is how sign-out
and the banned-account lockout work without any server-side token cache.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from database import create_document, to_object_id, utcnow
from errors import (
    AccountBannedError,
    AuthenticationError,
    ConflictError,
    ValidationError,
)
from schemas import Session, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub") or not payload.get("jti"):
        return None
    return payload


async def sign_up(db, email: str, password: str, name: str) -> dict:
    """Create an account and its profile with default settings."""
    email = normalize_email(email)
    name = (name or "").strip()
    if not email or not password or not name:
        raise ValidationError("Missing required fields")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password",
        )
    try:
        user = User(name=name, email=email, password=pwd_context.hash(password))
    except PydanticValidationError:
        raise ValidationError("Invalid email address", field="email")

    if await db["user"].find_one({"email": email}):
        raise ConflictError("User already exists with this email", "EMAIL_TAKEN")
    user_doc = user.model_dump(exclude={"id", "created_at", "updated_at"})
    try:
        user_doc = await create_document(db, "user", user_doc)
    except DuplicateKeyError:
        raise ConflictError("User already exists with this email", "EMAIL_TAKEN")
    logger.info("User registered", extra={"user_id": str(user_doc["_id"])})
    return user_doc


async def sign_in(db, email: str, password: str) -> dict:
    """Verify credentials. Banned accounts are refused and signed out everywhere."""
    user = await db["user"].find_one({"email": normalize_email(email)})
    if not user or not pwd_context.verify(password or "", user.get("password", "")):
        raise AuthenticationError()
    if user.get("is_banned", False):
        await revoke_sessions(db, str(user["_id"]))
        logger.warning("Banned user refused at sign-in", extra={"user_id": str(user["_id"])})
        raise AccountBannedError()
    return user


async def issue_session(db, user_id: str) -> str:
    session = Session(jti=uuid.uuid4().hex, user_id=user_id)
    await create_document(db, "session", session.model_dump(exclude={"created_at"}))
    return create_access_token({"sub": user_id, "jti": session.jti})


async def sign_out(db, token: str) -> None:
    payload = decode_access_token(token)
    if payload is None:
        return
    await db["session"].delete_one({"jti": payload["jti"]})
    logger.info("User signed out", extra={"user_id": payload["sub"]})


async def revoke_sessions(db, user_id: str) -> int:
    res = await db["session"].delete_many({"user_id": user_id})
    return res.deleted_count


async def current_identity(db, token: str) -> Optional[str]:
    """Return the user id a token speaks for, or None if it is not valid."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    if not await db["session"].find_one({"jti": payload["jti"]}):
        return None
    if to_object_id(payload["sub"]) is None:
        return None
    return payload["sub"]
