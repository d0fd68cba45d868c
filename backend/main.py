import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Form, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer
from fastapi.security import OAuth2PasswordRequestForm

import admin
import directory
import identity
import profiles
import swaps
from config import FRONTEND_URL, LOG_LEVEL, LOG_FORMAT
from database import get_db, close_db, ensure_indexes, ping, serialize_document, to_object_id
from error_handlers import register_error_handlers
from errors import AccountBannedError, AuthenticationError, ForbiddenError
from observability import setup_logging
from schemas import AdminUserUpdate, ProfileUpdate

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    db = await get_db()
    await ensure_indexes(db)
    logger.info("SkillSwap API started")
    yield
    close_db()
    logger.info("SkillSwap API shutting down")


app = FastAPI(title="SkillSwap API", lifespan=lifespan)

# CORS
origins = [
    FRONTEND_URL,
    "*",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Utils


async def get_current_user(token: str = Depends(oauth2_scheme), db=Depends(get_db)) -> dict:
    user_id = await identity.current_identity(db, token)
    if user_id is None:
        raise AuthenticationError("Could not validate credentials")
    user = await db["user"].find_one({"_id": to_object_id(user_id)})
    if not user:
        raise AuthenticationError("Could not validate credentials")
    if user.get("is_banned", False):
        raise AccountBannedError()
    return user


def auth_response(user: dict, token: str) -> dict:
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": profiles.serialize_user(user),
    }

# Auth endpoints


@app.post("/auth/register")
async def register(name: str = Form(...), email: str = Form(...), password: str = Form(...), db=Depends(get_db)):
    user = await identity.sign_up(db, email, password, name)
    token = await identity.issue_session(db, str(user["_id"]))
    return auth_response(user, token)


@app.post("/auth/login")
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db=Depends(get_db)):
    user = await identity.sign_in(db, form_data.username, form_data.password)
    token = await identity.issue_session(db, str(user["_id"]))
    return auth_response(user, token)


@app.post("/auth/logout")
async def logout(token: str = Depends(oauth2_scheme), db=Depends(get_db)):
    await identity.sign_out(db, token)
    return {"ok": True}

# Users


@app.get("/users/me")
async def me(current_user: dict = Depends(get_current_user)):
    return profiles.serialize_user(current_user)


@app.get("/users")
async def list_users(
    q: Optional[str] = None,
    availability: str = "all",
    page: int = Query(1),
    db=Depends(get_db),
):
    return await directory.search_users(db, q or "", availability, page)


@app.get("/users/{user_id}")
async def get_user(user_id: str, db=Depends(get_db)):
    return profiles.serialize_user(await profiles.get_user(db, user_id))


@app.put("/users/{user_id}")
async def update_user(user_id: str, body: ProfileUpdate, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    if str(current_user["_id"]) != user_id:
        raise ForbiddenError()
    return profiles.serialize_user(await profiles.update_profile(db, user_id, body))


@app.post("/users/me/skills/{kind}")
async def add_skill(kind: str, label: str = Form(...), current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    user = await profiles.add_skill(db, str(current_user["_id"]), kind, label)
    return profiles.serialize_user(user)


@app.delete("/users/me/skills/{kind}")
async def remove_skill(kind: str, label: str = Query(...), current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    user = await profiles.remove_skill(db, str(current_user["_id"]), kind, label)
    return profiles.serialize_user(user)

# Swap requests


@app.post("/requests", status_code=status.HTTP_201_CREATED)
async def create_request(
    recipient_id: str = Form(...),
    offered_skill: str = Form(...),
    wanted_skill: str = Form(...),
    message: Optional[str] = Form(None),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    request_id = await swaps.create_request(
        db, str(current_user["_id"]), recipient_id, offered_skill, wanted_skill, message,
    )
    return {"ok": True, "request_id": request_id}


@app.get("/requests")
async def list_requests(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await swaps.list_requests_for(db, str(current_user["_id"]))


@app.put("/requests/{req_id}")
async def respond_request(
    req_id: str,
    decision: str = Form(..., alias="status"),
    response_message: Optional[str] = Form(None),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    req = await swaps.respond_to_request(db, req_id, str(current_user["_id"]), decision, response_message)
    return serialize_document(req)


@app.delete("/requests/{req_id}")
async def delete_request(req_id: str, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    await swaps.delete_request(db, req_id, str(current_user["_id"]))
    return {"ok": True}

# Admin


@app.get("/admin/users")
async def admin_list_users(q: Optional[str] = None, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    users = await admin.list_all_users(db, current_user, q or "")
    return [profiles.serialize_user(u) for u in users]


@app.get("/admin/requests")
async def admin_list_requests(
    request_status: Optional[str] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    docs = await admin.list_all_requests(db, current_user, request_status)
    return [serialize_document(d) for d in docs]


@app.get("/admin/stats")
async def admin_stats(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await admin.collect_stats(db, current_user)


@app.put("/admin/users/{user_id}/ban")
async def admin_ban_user(user_id: str, banned: bool = Form(...), current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    user = await admin.set_banned(db, current_user, user_id, banned)
    return profiles.serialize_user(user)


@app.put("/admin/users/{user_id}")
async def admin_update_user(user_id: str, body: AdminUserUpdate, current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    user = await admin.update_user_as_admin(db, current_user, user_id, body)
    return profiles.serialize_user(user)


@app.post("/admin/announcements", status_code=status.HTTP_201_CREATED)
async def admin_announce(message: str = Form(...), current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    doc = await admin.announce(db, current_user, message)
    return serialize_document(doc)


@app.get("/announcements")
async def list_announcements(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    docs = await admin.list_announcements(db)
    return [serialize_document(d) for d in docs]


@app.get("/health")
async def health(db=Depends(get_db)):
    # A simple ping to ensure we can talk to the database
    await ping(db)
    return {"ok": True, "message": "Database connected"}
