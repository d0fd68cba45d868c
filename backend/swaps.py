"""Swap request lifecycle.

A request starts ``pending`` and is moved exactly once, by its recipient, to
``accepted`` or ``rejected``. Either participant may delete it while it is
still pending. Respond and delete are each a single conditional write whose
filter carries every precondition, so concurrent callers cannot both succeed.

When respond or delete match nothing the caller gets the same NotFoundError
whether the request is missing, belongs to someone else, or was already
handled.
"""

import logging
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents, serialize_document, to_object_id, utcnow
from errors import (
    DuplicatePendingError,
    NotFoundError,
    SelfReferenceError,
    ValidationError,
)
from schemas import ParticipantSnapshot, SkillRequest

logger = logging.getLogger(__name__)

COLLECTION = "skillrequest"
PENDING = "pending"
DECISIONS = ("accepted", "rejected")


def snapshot(user: dict) -> dict:
    return ParticipantSnapshot(
        name=user.get("name") or "",
        profile_photo=user.get("profile_photo") or "",
    ).model_dump()


async def create_request(
    db,
    sender_id: str,
    recipient_id: str,
    offered_skill: str,
    wanted_skill: str,
    message: Optional[str] = None,
) -> str:
    offered_skill = (offered_skill or "").strip()
    wanted_skill = (wanted_skill or "").strip()
    if not recipient_id or not offered_skill or not wanted_skill:
        raise ValidationError("Missing required fields")
    if sender_id == recipient_id:
        raise SelfReferenceError()

    recipient_oid = to_object_id(recipient_id)
    recipient = await db["user"].find_one({"_id": recipient_oid}) if recipient_oid else None
    if not recipient:
        raise NotFoundError("Recipient not found")
    sender = await db["user"].find_one({"_id": to_object_id(sender_id)}) or {}

    existing = await db[COLLECTION].find_one({
        "sender_id": sender_id,
        "recipient_id": recipient_id,
        "status": PENDING,
    })
    if existing:
        raise DuplicatePendingError()

    req = SkillRequest(
        sender_id=sender_id,
        recipient_id=recipient_id,
        offered_skill=offered_skill,
        wanted_skill=wanted_skill,
        message=(message or "").strip(),
        sender_data=snapshot(sender),
        recipient_data=snapshot(recipient),
    )
    req_doc = req.model_dump(exclude={"id", "created_at", "updated_at", "response_message", "responded_at"})
    try:
        req_doc = await create_document(db, COLLECTION, req_doc)
    except DuplicateKeyError:
        # lost a race against a concurrent create for the same pair
        raise DuplicatePendingError()
    request_id = str(req_doc["_id"])
    logger.info("Swap request created", extra={"request_id": request_id, "user_id": sender_id})
    return request_id


async def respond_to_request(
    db,
    request_id: str,
    caller_id: str,
    decision: str,
    response_message: Optional[str] = None,
) -> dict:
    if decision not in DECISIONS:
        raise ValidationError("Invalid status", field="status")
    oid = to_object_id(request_id)
    updated = None
    if oid is not None:
        now = utcnow()
        updated = await db[COLLECTION].find_one_and_update(
            {"_id": oid, "recipient_id": caller_id, "status": PENDING},
            {"$set": {
                "status": decision,
                "response_message": (response_message or "").strip(),
                "responded_at": now,
                "updated_at": now,
            }},
            return_document=ReturnDocument.AFTER,
        )
    if updated is None:
        logger.warning("Respond matched no pending request", extra={"request_id": request_id, "user_id": caller_id})
        raise NotFoundError("Request not found or already responded")
    logger.info("Swap request answered", extra={"request_id": request_id, "decision": decision})
    return updated


async def delete_request(db, request_id: str, caller_id: str) -> None:
    oid = to_object_id(request_id)
    deleted = 0
    if oid is not None:
        res = await db[COLLECTION].delete_one({
            "_id": oid,
            "status": PENDING,
            "$or": [{"sender_id": caller_id}, {"recipient_id": caller_id}],
        })
        deleted = res.deleted_count
    if deleted == 0:
        logger.warning("Delete matched no pending request", extra={"request_id": request_id, "user_id": caller_id})
        raise NotFoundError("Request not found or cannot be deleted")
    logger.info("Swap request deleted", extra={"request_id": request_id, "user_id": caller_id})


async def list_requests_for(db, user_id: str) -> list:
    """All requests the user sent or received, newest first, with live participant details."""
    docs = await get_documents(db, COLLECTION, {"$or": [{"sender_id": user_id}, {"recipient_id": user_id}]})
    participant_ids = {pid for d in docs for pid in (d["sender_id"], d["recipient_id"])}
    oids = [oid for oid in map(to_object_id, participant_ids) if oid is not None]
    people = {}
    if oids:
        async for u in db["user"].find({"_id": {"$in": oids}}):
            people[str(u["_id"])] = {
                "id": str(u["_id"]),
                "name": u.get("name", ""),
                "profile_photo": u.get("profile_photo", ""),
            }
    results = []
    for d in docs:
        out = serialize_document(d)
        out["sender"] = people.get(d["sender_id"])
        out["recipient"] = people.get(d["recipient_id"])
        results.append(out)
    return results
