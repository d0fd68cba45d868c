import pytest

import identity
from config import ACCESS_TOKEN_EXPIRE_MINUTES
from database import ensure_indexes
from errors import (
    AccountBannedError,
    AuthenticationError,
    ConflictError,
    ValidationError,
)


async def test_sign_up_provisions_profile_defaults(db):
    user = await identity.sign_up(db, "  Alice@Example.com ", "secret1", " Alice ")

    stored = await db["user"].find_one({"_id": user["_id"]})
    assert stored["email"] == "alice@example.com"
    assert stored["name"] == "Alice"
    assert stored["password"] != "secret1"
    assert stored["availability"] == "available"
    assert stored["skills_offered"] == [] and stored["skills_wanted"] == []
    assert stored["is_public"] is True
    assert stored["rating"] == 5
    assert stored["is_admin"] is False and stored["is_banned"] is False
    assert stored["created_at"] is not None


async def test_sign_up_rejects_existing_email_case_insensitively(db):
    await identity.sign_up(db, "alice@example.com", "secret1", "Alice")

    with pytest.raises(ConflictError):
        await identity.sign_up(db, "ALICE@example.com", "secret2", "Other Alice")


async def test_sign_up_rejects_short_password(db):
    with pytest.raises(ValidationError) as exc:
        await identity.sign_up(db, "alice@example.com", "12345", "Alice")
    assert exc.value.field == "password"


async def test_sign_up_rejects_malformed_email(db):
    with pytest.raises(ValidationError):
        await identity.sign_up(db, "not-an-email", "secret1", "Alice")


async def test_sign_in_with_valid_credentials(db):
    created = await identity.sign_up(db, "alice@example.com", "secret1", "Alice")

    user = await identity.sign_in(db, "Alice@example.com", "secret1")

    assert user["_id"] == created["_id"]


@pytest.mark.parametrize("email,password", [
    ("alice@example.com", "wrong-password"),
    ("nobody@example.com", "secret1"),
])
async def test_sign_in_with_bad_credentials(db, email, password):
    await identity.sign_up(db, "alice@example.com", "secret1", "Alice")

    with pytest.raises(AuthenticationError):
        await identity.sign_in(db, email, password)


async def test_banned_sign_in_is_refused_and_sessions_revoked(db):
    user = await identity.sign_up(db, "alice@example.com", "secret1", "Alice")
    token = await identity.issue_session(db, str(user["_id"]))
    await db["user"].update_one({"_id": user["_id"]}, {"$set": {"is_banned": True}})

    with pytest.raises(AccountBannedError):
        await identity.sign_in(db, "alice@example.com", "secret1")

    assert await identity.current_identity(db, token) is None


async def test_current_identity_follows_session(db, make_user):
    user = await make_user("Alice")
    token = await identity.issue_session(db, str(user["_id"]))

    assert await identity.current_identity(db, token) == str(user["_id"])

    await identity.sign_out(db, token)
    assert await identity.current_identity(db, token) is None


async def test_sign_out_is_idempotent(db, make_user):
    user = await make_user("Alice")
    token = await identity.issue_session(db, str(user["_id"]))

    await identity.sign_out(db, token)
    await identity.sign_out(db, token)
    await identity.sign_out(db, "garbage")


async def test_current_identity_rejects_foreign_tokens(db, make_user):
    user = await make_user("Alice")
    unsessioned = identity.create_access_token({"sub": str(user["_id"]), "jti": "made-up"})

    assert await identity.current_identity(db, "garbage") is None
    assert await identity.current_identity(db, unsessioned) is None


async def test_sessions_expire_with_their_tokens(db):
    await ensure_indexes(db)

    info = await db["session"].index_information()

    assert info["session_ttl"]["key"] == [("created_at", 1)]
    assert info["session_ttl"]["expireAfterSeconds"] == ACCESS_TOKEN_EXPIRE_MINUTES * 60
