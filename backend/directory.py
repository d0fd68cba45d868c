from config import USERS_PER_PAGE
from errors import ValidationError
from profiles import list_users, serialize_user

AVAILABILITY_FILTERS = ("all", "available", "busy", "unavailable")


def matches(user: dict, query: str) -> bool:
    """Case-insensitive substring match on name and every skill label."""
    if not query:
        return True
    q = query.lower()
    if q in (user.get("name") or "").lower():
        return True
    skills = list(user.get("skills_offered") or []) + list(user.get("skills_wanted") or [])
    return any(q in skill.lower() for skill in skills)


async def search_users(db, query: str = "", availability: str = "all", page: int = 1) -> dict:
    """One page of the public listing.

    The page is fetched first and the text filter applied to it afterwards, so
    a page may hold fewer than USERS_PER_PAGE matches while ``has_more`` is
    still true.
    """
    if page < 1:
        raise ValidationError("Page must be 1 or greater", field="page")
    if availability not in AVAILABILITY_FILTERS:
        raise ValidationError("Unknown availability filter", field="availability")

    flt = {"is_public": True, "is_banned": False}
    if availability != "all":
        flt["availability"] = availability

    fetched = await list_users(db, flt, skip=(page - 1) * USERS_PER_PAGE, limit=USERS_PER_PAGE)
    query = (query or "").strip()
    return {
        "users": [serialize_user(u) for u in fetched if matches(u, query)],
        "page": page,
        "has_more": len(fetched) == USERS_PER_PAGE,
    }
