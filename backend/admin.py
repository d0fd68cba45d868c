"""Admin operations.

Every function takes the calling user's document and refuses with
ForbiddenError unless it carries ``is_admin``. Banning a user does not touch
their swap requests; pending ones stay pending.
"""

import logging

from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents, utcnow
from errors import ConflictError, ForbiddenError, ValidationError
from profiles import apply_updates, get_user, list_users
from schemas import AdminUserUpdate, Announcement
from swaps import COLLECTION as REQUESTS

logger = logging.getLogger(__name__)

REQUEST_STATUSES = ("pending", "accepted", "rejected")


def require_admin(caller: dict) -> None:
    if not caller or not caller.get("is_admin", False):
        raise ForbiddenError("Forbidden - Admin access required")


async def set_banned(db, caller: dict, target_id: str, banned: bool) -> dict:
    require_admin(caller)
    await get_user(db, target_id)
    user = await apply_updates(db, target_id, {"is_banned": bool(banned)})
    logger.info(
        f"User {'banned' if banned else 'unbanned'}",
        extra={"user_id": target_id},
    )
    return user


async def update_user_as_admin(db, caller: dict, target_id: str, updates: AdminUserUpdate) -> dict:
    require_admin(caller)
    fields = updates.model_dump(exclude_unset=True, exclude_none=True)
    target = await get_user(db, target_id)
    if "email" in fields:
        taken = await db["user"].find_one({"email": fields["email"], "_id": {"$ne": target["_id"]}})
        if taken:
            raise ConflictError("User already exists with this email", "EMAIL_TAKEN")
    try:
        return await apply_updates(db, target_id, fields)
    except DuplicateKeyError:
        raise ConflictError("User already exists with this email", "EMAIL_TAKEN")


async def list_all_users(db, caller: dict, query: str = "") -> list:
    require_admin(caller)
    users = await list_users(db)
    q = (query or "").strip().lower()
    if q:
        users = [
            u for u in users
            if q in (u.get("name") or "").lower() or q in (u.get("email") or "").lower()
        ]
    return users


async def list_all_requests(db, caller: dict, status: str | None = None) -> list:
    require_admin(caller)
    flt = {}
    if status:
        if status not in REQUEST_STATUSES:
            raise ValidationError("Invalid status", field="status")
        flt["status"] = status
    return await get_documents(db, REQUESTS, flt)


async def collect_stats(db, caller: dict) -> dict:
    require_admin(caller)
    total_users = await db["user"].count_documents({})
    banned_users = await db["user"].count_documents({"is_banned": True})
    stats = {
        "generated_at": utcnow(),
        "total_users": total_users,
        "active_users": total_users - banned_users,
        "banned_users": banned_users,
        "total_requests": await db[REQUESTS].count_documents({}),
    }
    for status in REQUEST_STATUSES:
        stats[f"{status}_requests"] = await db[REQUESTS].count_documents({"status": status})
    return stats


async def announce(db, caller: dict, message: str) -> dict:
    require_admin(caller)
    message = (message or "").strip()
    if not message:
        raise ValidationError("Message is required", field="message")
    doc = Announcement(message=message, created_by=str(caller["_id"]))
    doc = await create_document(db, "announcement", doc.model_dump(exclude={"id", "created_at"}))
    logger.info("Announcement posted", extra={"user_id": str(caller["_id"])})
    return doc


async def list_announcements(db, limit: int = 20) -> list:
    return await get_documents(db, "announcement", limit=limit)
