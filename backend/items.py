import re
import logging
from datetime import datetime, time
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument

import gamification
from database import create_document, get_db, get_documents, map_doc, naive_utc, utcnow
from errors import AuthorizationError, NotFoundError, ValidationError
from schemas import ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)

STATUSES = ("lost", "found")
# Fields an update may set but never clear
REQUIRED_FIELDS = ("name", "category", "description", "location", "contact_info", "status", "is_emergency")


def _oid(item_id: str) -> ObjectId:
    if not ObjectId.is_valid(item_id):
        raise NotFoundError("Item not found")
    return ObjectId(item_id)


def _contains(value: str) -> dict:
    return {"$regex": re.escape(value), "$options": "i"}


def _apply_status_fields(fields: dict, status: str) -> dict:
    # reward only applies to lost reports, drop-off only to found ones
    if status == "found":
        fields["reward"] = None
    else:
        fields["drop_off_location"] = None
    return fields


def parse_date(value: Optional[str], name: str, end_of_day: bool = False) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value}")
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return naive_utc(parsed)


def build_search_filter(
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    location: Optional[str] = None,
    color: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    """Conjunctive Mongo filter for the item search.

    Text criteria match case-insensitive literal substrings. Empty criteria
    are ignored and ``status="all"`` disables the status filter.
    """
    query: dict = {}
    if keyword:
        query["$or"] = [{"name": _contains(keyword)}, {"description": _contains(keyword)}]
    if category:
        query["category"] = category
    if date_from or date_to:
        query["created_at"] = {}
        if date_from:
            query["created_at"]["$gte"] = date_from
        if date_to:
            query["created_at"]["$lte"] = date_to
    if location:
        query["location"] = _contains(location)
    if color:
        query["color"] = _contains(color)
    if status and status != "all":
        query["status"] = status
    return query


async def create_item(owner: dict, req: ItemCreate, status: str) -> dict:
    if status not in STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(STATUSES)}")
    fields = _apply_status_fields(req.model_dump(), status)
    fields["date_lost_or_found"] = naive_utc(fields["date_lost_or_found"])
    item_doc = {
        **fields,
        "status": status,
        "owner_id": str(owner["_id"]),
        "is_resolved": False,
        "resolved_date": None,
        "points_earned": None,
    }
    item_doc = await create_document("item", item_doc)
    logger.info("User %s reported %s item %s", owner["_id"], status, item_doc["_id"])
    if status == "found":
        await gamification.on_found_item_reported(owner, item_doc)
    return map_doc(item_doc)


async def get_item(item_id: str) -> dict:
    db = await get_db()
    doc = await db["item"].find_one({"_id": _oid(item_id)})
    if not doc:
        raise NotFoundError("Item not found")
    if ObjectId.is_valid(doc.get("owner_id", "")):
        owner = await db["user"].find_one({"_id": ObjectId(doc["owner_id"])})
        if owner:
            doc["owner"] = {"id": str(owner["_id"]), "name": owner["name"], "email": owner["email"]}
    return map_doc(doc)


async def list_items(owner_id: Optional[str] = None) -> list:
    flt = {"owner_id": owner_id} if owner_id else {}
    return [map_doc(d) for d in await get_documents("item", flt)]


async def search_items(**criteria) -> list:
    return [map_doc(d) for d in await get_documents("item", build_search_filter(**criteria))]


async def _owned_item(item_id: str, user: dict, action: str) -> dict:
    db = await get_db()
    doc = await db["item"].find_one({"_id": _oid(item_id)})
    if not doc:
        raise NotFoundError("Item not found")
    if str(doc["owner_id"]) != str(user["_id"]):
        logger.warning("User %s tried to %s item %s owned by %s", user["_id"], action, item_id, doc["owner_id"])
        raise AuthorizationError(f"Not authorized to {action} this item")
    return doc


async def update_item(item_id: str, user: dict, req: ItemUpdate) -> dict:
    doc = await _owned_item(item_id, user, "update")
    updates = {
        k: v for k, v in req.model_dump(exclude_unset=True).items()
        if v is not None or k not in REQUIRED_FIELDS
    }
    if updates.get("status", doc["status"]) != doc["status"]:
        # Status is fixed by the route that created the report
        raise ValidationError("Item status cannot be changed")
    if not updates:
        return map_doc(doc)
    if "date_lost_or_found" in updates:
        updates["date_lost_or_found"] = naive_utc(updates["date_lost_or_found"])
    _apply_status_fields(updates, doc["status"])
    updates["updated_at"] = utcnow()
    db = await get_db()
    new_doc = await db["item"].find_one_and_update(
        {"_id": doc["_id"]},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("User %s updated item %s", user["_id"], item_id)
    return map_doc(new_doc)


async def delete_item(item_id: str, user: dict) -> dict:
    doc = await _owned_item(item_id, user, "delete")
    db = await get_db()
    await db["item"].delete_one({"_id": doc["_id"]})
    logger.info("User %s deleted item %s", user["_id"], item_id)
    return {"message": "Item deleted successfully"}


async def resolve_item(item_id: str, user: dict) -> dict:
    """Mark a lost item as found by its owner, or a found item as returned.

    Returning a found item earns the reporter points and return badges.
    """
    doc = await _owned_item(item_id, user, "resolve")
    returned = doc["status"] == "found"
    updates = {"is_resolved": True, "resolved_date": utcnow(), "updated_at": utcnow()}
    if returned:
        updates["points_earned"] = gamification.POINTS_PER_RETURN
    db = await get_db()
    res = await db["item"].update_one({"_id": doc["_id"], "is_resolved": {"$ne": True}}, {"$set": updates})
    if res.modified_count != 1:
        raise ValidationError("Item already resolved")
    logger.info("User %s resolved %s item %s", user["_id"], doc["status"], item_id)
    if returned:
        await gamification.on_found_item_returned(user, doc)
    new_doc = await db["item"].find_one({"_id": doc["_id"]})
    return map_doc(new_doc)
