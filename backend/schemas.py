from typing import List, Optional, Literal
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime

# Each class name lowercased corresponds to collection name

Availability = Literal["available", "busy", "unavailable"]
RequestStatus = Literal["pending", "accepted", "rejected"]


def clean_skill_labels(labels: List[str]) -> List[str]:
    """Trim labels and drop blanks and repeats, keeping first-seen order."""
    seen = []
    for label in labels:
        label = label.strip()
        if label and label not in seen:
            seen.append(label)
    return seen


class User(BaseModel):
    id: Optional[str] = None
    name: str
    email: EmailStr
    password: Optional[str] = None  # hashed
    profile_photo: str = ""
    location: str = ""
    availability: Availability = "available"
    skills_offered: List[str] = []
    skills_wanted: List[str] = []
    is_public: bool = True
    rating: float = 5
    is_admin: bool = False
    is_banned: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ParticipantSnapshot(BaseModel):
    name: str = ""
    profile_photo: str = ""


class SkillRequest(BaseModel):
    id: Optional[str] = None
    sender_id: str
    recipient_id: str
    offered_skill: str
    wanted_skill: str
    message: str = ""
    status: RequestStatus = "pending"
    response_message: Optional[str] = None
    sender_data: Optional[ParticipantSnapshot] = None  # frozen at creation
    recipient_data: Optional[ParticipantSnapshot] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


class Session(BaseModel):
    jti: str
    user_id: str
    created_at: Optional[datetime] = None


class Announcement(BaseModel):
    id: Optional[str] = None
    message: str
    created_by: str
    created_at: Optional[datetime] = None


# Request bodies

class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile. Anything else is ignored."""
    name: Optional[str] = Field(None, min_length=1)
    profile_photo: Optional[str] = None
    location: Optional[str] = None
    availability: Optional[Availability] = None
    skills_offered: Optional[List[str]] = None
    skills_wanted: Optional[List[str]] = None
    is_public: Optional[bool] = None

    # strip before min_length runs so a blank name is refused
    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("skills_offered", "skills_wanted")
    @classmethod
    def unique_skills(cls, v):
        return clean_skill_labels(v) if v is not None else v


class AdminUserUpdate(ProfileUpdate):
    email: Optional[EmailStr] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_admin: Optional[bool] = None
    is_banned: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v is not None else v
