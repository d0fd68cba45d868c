import pytest
from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError

import profiles
from errors import NotFoundError, ValidationError
from schemas import AdminUserUpdate, ProfileUpdate


async def test_add_skill_is_idempotent(db, make_user):
    user = await make_user("Alice")
    uid = str(user["_id"])

    await profiles.add_skill(db, uid, "offered", "guitar")
    await profiles.add_skill(db, uid, "offered", " guitar ")
    updated = await profiles.add_skill(db, uid, "offered", "piano")

    assert updated["skills_offered"] == ["guitar", "piano"]
    assert updated["skills_wanted"] == []


async def test_remove_skill(db, make_user):
    user = await make_user("Alice", skills_wanted=["spanish", "chess"])

    updated = await profiles.remove_skill(db, str(user["_id"]), "wanted", "spanish")

    assert updated["skills_wanted"] == ["chess"]


async def test_add_skill_validates_input(db, make_user):
    user = await make_user("Alice")
    with pytest.raises(ValidationError):
        await profiles.add_skill(db, str(user["_id"]), "offered", "   ")
    with pytest.raises(ValidationError):
        await profiles.add_skill(db, str(user["_id"]), "hobbies", "guitar")


async def test_update_profile_ignores_privileged_fields(db, make_user):
    user = await make_user("Alice")
    body = ProfileUpdate.model_validate({
        "name": " Alicia ",
        "location": "Lisbon",
        "availability": "busy",
        "skills_offered": ["guitar", "guitar", " piano", ""],
        "is_admin": True,
        "is_banned": True,
        "email": "evil@example.com",
        "password": "hijack",
    })

    updated = await profiles.update_profile(db, str(user["_id"]), body)

    assert updated["name"] == "Alicia"
    assert updated["location"] == "Lisbon"
    assert updated["availability"] == "busy"
    assert updated["skills_offered"] == ["guitar", "piano"]
    assert updated["is_admin"] is False
    assert updated["is_banned"] is False
    assert updated["email"] == user["email"]
    assert updated["updated_at"] is not None


async def test_get_user_not_found(db):
    with pytest.raises(NotFoundError):
        await profiles.get_user(db, str(ObjectId()))
    with pytest.raises(NotFoundError):
        await profiles.get_user(db, "bogus")


async def test_serialized_user_hides_password(db, make_user):
    user = await make_user("Alice", password="hash")

    out = profiles.serialize_user(user)

    assert "password" not in out and "_id" not in out
    assert out["id"] == str(user["_id"])


@pytest.mark.parametrize("body", [ProfileUpdate, AdminUserUpdate])
def test_blank_name_is_refused(body):
    with pytest.raises(PydanticValidationError):
        body.model_validate({"name": "   "})


async def test_update_profile_keeps_name_when_blank_is_sent(db, client, make_user, auth_headers):
    user = await make_user("Alice")

    resp = await client.put(
        f"/users/{user['_id']}", json={"name": "  "}, headers=await auth_headers(user),
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert (await profiles.get_user(db, str(user["_id"])))["name"] == "Alice"
