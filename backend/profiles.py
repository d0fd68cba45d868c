import logging

from database import get_documents, serialize_document, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from schemas import ProfileUpdate

logger = logging.getLogger(__name__)

SKILL_FIELDS = {"offered": "skills_offered", "wanted": "skills_wanted"}


def serialize_user(doc: dict) -> dict:
    out = serialize_document(doc)
    out.pop("password", None)
    return out


async def get_user(db, user_id: str) -> dict:
    oid = to_object_id(user_id)
    user = await db["user"].find_one({"_id": oid}) if oid else None
    if not user:
        raise NotFoundError("User not found")
    return user


async def update_profile(db, user_id: str, updates: ProfileUpdate) -> dict:
    """Apply owner-editable fields only; identity and privilege fields never pass."""
    fields = updates.model_dump(
        include=set(ProfileUpdate.model_fields), exclude_unset=True, exclude_none=True,
    )
    return await apply_updates(db, user_id, fields)


async def apply_updates(db, user_id: str, fields: dict) -> dict:
    oid = to_object_id(user_id)
    if oid is None:
        raise NotFoundError("User not found")
    fields["updated_at"] = utcnow()
    res = await db["user"].update_one({"_id": oid}, {"$set": fields})
    if res.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info("Profile updated", extra={"user_id": user_id})
    return await db["user"].find_one({"_id": oid})


async def list_users(db, filter_dict: dict | None = None, skip: int = 0, limit: int | None = None) -> list:
    return await get_documents(db, "user", filter_dict, skip=skip, limit=limit)


def _skill_field(kind: str) -> str:
    if kind not in SKILL_FIELDS:
        raise ValidationError("Skill kind must be 'offered' or 'wanted'", field="kind")
    return SKILL_FIELDS[kind]


async def add_skill(db, user_id: str, kind: str, label: str) -> dict:
    """Append a skill label. Adding a label that is already listed changes nothing."""
    field = _skill_field(kind)
    label = (label or "").strip()
    if not label:
        raise ValidationError("Skill label is required", field="label")
    oid = to_object_id(user_id)
    res = await db["user"].update_one(
        {"_id": oid},
        {"$addToSet": {field: label}, "$set": {"updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("User not found")
    return await db["user"].find_one({"_id": oid})


async def remove_skill(db, user_id: str, kind: str, label: str) -> dict:
    field = _skill_field(kind)
    oid = to_object_id(user_id)
    res = await db["user"].update_one(
        {"_id": oid},
        {"$pull": {field: (label or "").strip()}, "$set": {"updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("User not found")
    return await db["user"].find_one({"_id": oid})
