import os
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import gamification
import items
from auth import get_user_from_token, login_user, public_user, register_user, update_profile
from database import ensure_indexes, get_db
from errors import AuthError, LostFoundError, ServerError
from schemas import (
    AuthResponse,
    BadgeOut,
    ItemCreate,
    ItemOut,
    ItemUpdate,
    LoginRequest,
    MarkReadOut,
    MessageOut,
    NotificationOut,
    ProfileUpdate,
    RegisterRequest,
    UserOut,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await ensure_indexes()
    except PyMongoError:
        logger.exception("Could not create indexes; continuing without them")
    yield


app = FastAPI(title="Lost & Found API", lifespan=lifespan)

# CORS
origins = [
    os.getenv("FRONTEND_URL", "*"),
    "*",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handlers


@app.exception_handler(LostFoundError)
async def lost_found_error_handler(request: Request, exc: LostFoundError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return await lost_found_error_handler(request, ServerError())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "Invalid request"
    if errors:
        err = errors[0]
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        detail = f"{field}: {err.get('msg')}" if field else err.get("msg", detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Server error"})


# Users


@app.post("/api/users/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(req: RegisterRequest):
    return await register_user(req)


@app.post("/api/users/login", response_model=AuthResponse)
async def login(req: LoginRequest):
    return await login_user(req)


@app.get("/api/users/me", response_model=UserOut)
async def me(current_user: dict = Depends(get_user_from_token)):
    return public_user(current_user)


@app.put("/api/users/me", response_model=UserOut)
async def edit_me(req: ProfileUpdate, current_user: dict = Depends(get_user_from_token)):
    return await update_profile(current_user, req)


@app.get("/api/users/me/notifications", response_model=List[NotificationOut])
async def my_notifications(current_user: dict = Depends(get_user_from_token)):
    return await gamification.list_notifications(str(current_user["_id"]))


@app.post("/api/users/me/notifications/read", response_model=MarkReadOut)
async def read_notifications(current_user: dict = Depends(get_user_from_token)):
    return {"updated": await gamification.mark_all_read(str(current_user["_id"]))}


@app.get("/api/badges", response_model=List[BadgeOut])
async def badges():
    return [{"name": name, "description": desc} for name, desc in gamification.BADGES.items()]


# Items


@app.get("/api/items", response_model=List[ItemOut])
async def list_items():
    return await items.list_items()


@app.get("/api/items/search", response_model=List[ItemOut])
async def search_items(
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    dateFrom: Optional[str] = None,
    dateTo: Optional[str] = None,
    location: Optional[str] = None,
    color: Optional[str] = None,
    status: Optional[str] = None,
):
    return await items.search_items(
        keyword=keyword,
        category=category,
        date_from=items.parse_date(dateFrom, "dateFrom"),
        date_to=items.parse_date(dateTo, "dateTo", end_of_day=True),
        location=location,
        color=color,
        status=status,
    )


@app.get("/api/items/user/items", response_model=List[ItemOut])
async def my_items(current_user: dict = Depends(get_user_from_token)):
    return await items.list_items(owner_id=str(current_user["_id"]))


@app.get("/api/items/{item_id}", response_model=ItemOut)
async def get_item(item_id: str):
    return await items.get_item(item_id)


@app.post("/api/items/lost", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
async def report_lost(req: ItemCreate, current_user: dict = Depends(get_user_from_token)):
    return await items.create_item(current_user, req, "lost")


@app.post("/api/items/found", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
async def report_found(req: ItemCreate, current_user: dict = Depends(get_user_from_token)):
    return await items.create_item(current_user, req, "found")


@app.put("/api/items/{item_id}", response_model=ItemOut)
async def update_item(item_id: str, req: ItemUpdate, current_user: dict = Depends(get_user_from_token)):
    return await items.update_item(item_id, current_user, req)


@app.post("/api/items/{item_id}/resolve", response_model=ItemOut)
async def resolve_item(item_id: str, current_user: dict = Depends(get_user_from_token)):
    return await items.resolve_item(item_id, current_user)


@app.delete("/api/items/{item_id}", response_model=MessageOut)
async def delete_item(item_id: str, current_user: dict = Depends(get_user_from_token)):
    return await items.delete_item(item_id, current_user)


@app.get("/test")
async def test_connection():
    db = await get_db()
    # A simple ping to ensure we can talk to the database
    await db.command("ping")
    return {"ok": True, "message": "Database connected"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
