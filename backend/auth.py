import os
import logging
from datetime import timedelta
from typing import Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, map_doc, utcnow
from errors import AuthError, ValidationError
from schemas import LoginRequest, ProfileUpdate, RegisterRequest

# JWT config
SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

DEFAULT_LEVEL = "Bronze"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def public_user(user: dict) -> dict:
    """Copy of a user document that is safe to hand to a client."""
    out = {k: v for k, v in user.items() if k != "password"}
    if "_id" in out:
        out = map_doc(out)
    return out


async def get_user_from_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    if credentials is None:
        raise AuthError("No token, authorization denied")
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("Token is not valid")
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise AuthError("Token is not valid")
    db = await get_db()
    user = await db["user"].find_one({"_id": ObjectId(user_id)})
    if not user:
        raise AuthError("Token is not valid")
    return user


async def register_user(req: RegisterRequest) -> dict:
    db = await get_db()
    email = req.email.strip().lower()
    existing = await db["user"].find_one({"email": email})
    if existing:
        raise ValidationError("User already exists")
    user_doc = {
        "name": req.name,
        "email": email,
        "password": hash_password(req.password),
        "phone": req.phone,
        "address": req.address,
        "city": req.city,
        "state": req.state,
        "zip_code": req.zip_code,
        "profile_picture": "",
        "bio": req.bio,
        "points": 0,
        "badges": [],
        "level": DEFAULT_LEVEL,
    }
    try:
        user_doc = await create_document("user", user_doc)
    except DuplicateKeyError:
        raise ValidationError("User already exists")
    logger.info("Registered user %s", user_doc["_id"])
    token = create_access_token({"sub": str(user_doc["_id"])})
    return {"token": token, "user": public_user(user_doc)}


async def login_user(req: LoginRequest) -> dict:
    db = await get_db()
    user = await db["user"].find_one({"email": req.email.strip().lower()})
    if not user or not verify_password(req.password, user.get("password", "")):
        logger.info("Failed login attempt for %s", req.email)
        raise AuthError("Invalid credentials")
    token = create_access_token({"sub": str(user["_id"])})
    return {"token": token, "user": public_user(user)}


async def update_profile(user: dict, req: ProfileUpdate) -> dict:
    db = await get_db()
    updates = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        return public_user(user)
    updates["updated_at"] = utcnow()
    await db["user"].update_one({"_id": user["_id"]}, {"$set": updates})
    new_doc = await db["user"].find_one({"_id": user["_id"]})
    return public_user(new_doc)
