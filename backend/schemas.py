from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime

# Collections: user, item, notification. Documents are stored snake_case,
# the API speaks camelCase.

CATEGORIES = (
    "Electronics",
    "Jewelry",
    "Clothing",
    "Accessories",
    "Important Documents",
    "Keys",
    "Wallet/Purse",
    "Bag/Backpack",
    "Identification",
    "Passport",
    "Credit/Debit Cards",
    "Other",
)

ItemStatus = Literal["lost", "found"]
NotificationType = Literal["match", "points", "badge", "gold", "found_item"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in CATEGORIES:
        raise ValueError(f"Category must be one of: {', '.join(CATEGORIES)}")
    return value


# Users

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    bio: str = ""


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    profile_picture: str = ""
    bio: str = ""
    points: int = 0
    badges: List[str] = []
    level: str = "Bronze"
    created_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    token: str
    user: UserOut


# Items

class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ItemCreate(CamelModel):
    name: str = Field(..., min_length=1)
    category: str
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    contact_info: str = Field(..., min_length=1)
    date_lost_or_found: Optional[datetime] = None
    coordinates: Optional[Coordinates] = None
    color: Optional[str] = None
    unique_identifiers: Optional[str] = None
    reward: Optional[str] = None
    drop_off_location: Optional[str] = None
    image_url: Optional[str] = None
    is_emergency: bool = False

    @field_validator("category")
    @classmethod
    def check_category(cls, value):
        return _check_category(value)


class ItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    contact_info: Optional[str] = Field(None, min_length=1)
    status: Optional[ItemStatus] = None
    date_lost_or_found: Optional[datetime] = None
    coordinates: Optional[Coordinates] = None
    color: Optional[str] = None
    unique_identifiers: Optional[str] = None
    reward: Optional[str] = None
    drop_off_location: Optional[str] = None
    image_url: Optional[str] = None
    is_emergency: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, value):
        return _check_category(value)


class OwnerOut(CamelModel):
    id: str
    name: str
    email: str


class ItemOut(CamelModel):
    id: str
    owner_id: str
    name: str
    category: str
    description: str
    status: ItemStatus
    location: str
    contact_info: str
    date_lost_or_found: Optional[datetime] = None
    coordinates: Optional[Coordinates] = None
    color: Optional[str] = None
    unique_identifiers: Optional[str] = None
    reward: Optional[str] = None
    drop_off_location: Optional[str] = None
    image_url: Optional[str] = None
    is_emergency: bool = False
    is_resolved: bool = False
    resolved_date: Optional[datetime] = None
    points_earned: Optional[int] = None
    owner: Optional[OwnerOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageOut(CamelModel):
    message: str


# Gamification

class NotificationOut(CamelModel):
    id: str
    type: NotificationType
    message: str
    item_id: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None


class MarkReadOut(CamelModel):
    updated: int


class BadgeOut(CamelModel):
    name: str
    description: str
