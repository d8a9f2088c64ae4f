"""Points, membership level, badges and notifications.

Awards are applied on the server by the action that earns them: reporting a
found item and marking a found item as returned. Counts used for milestone
badges come from the item collection, so every client sees the same state.
"""
import logging
from typing import Optional

from pymongo import ReturnDocument

from database import create_document, get_db, get_documents, map_doc

logger = logging.getLogger(__name__)

POINTS_PER_FOUND_REPORT = 50
POINTS_PER_RETURN = 50
GOLD_THRESHOLD = 500
GOLD_LEVEL = "Gold"

BADGES = {
    "First Find": "Awarded for reporting your first found item",
    "Helpful Citizen": "Awarded for reporting 5 found items",
    "Community Hero": "Awarded for reporting 10 found items",
    "Lost & Found Expert": "Awarded for reporting 20 found items",
    "Good Samaritan": "Awarded for returning your first item to its owner",
    "Returned With Care": "Awarded for returning 5 items to their owners",
    "Reunion Master": "Awarded for returning 10 items to their owners",
    "Tech Finder": "Awarded for finding electronic items",
    "Treasure Hunter": "Awarded for finding jewelry",
    "Document Rescuer": "Awarded for finding important documents",
    "Wallet Saver": "Awarded for finding wallets or purses",
    "ID Guardian": "Awarded for finding identification",
    "Global Citizen Helper": "Awarded for finding passports",
    "Financial Protector": "Awarded for finding credit/debit cards",
}

FOUND_MILESTONES = [
    (1, "First Find"),
    (5, "Helpful Citizen"),
    (10, "Community Hero"),
    (20, "Lost & Found Expert"),
]

RETURN_MILESTONES = [
    (1, "Good Samaritan"),
    (5, "Returned With Care"),
    (10, "Reunion Master"),
]

CATEGORY_BADGES = {
    "Electronics": "Tech Finder",
    "Jewelry": "Treasure Hunter",
    "Important Documents": "Document Rescuer",
    "Wallet/Purse": "Wallet Saver",
    "Identification": "ID Guardian",
    "Passport": "Global Citizen Helper",
    "Credit/Debit Cards": "Financial Protector",
}


def milestone_badges(count: int, milestones, held) -> list:
    return [badge for threshold, badge in milestones if count >= threshold and badge not in held]


def category_badge(category: str, held) -> Optional[str]:
    badge = CATEGORY_BADGES.get(category)
    if badge and badge not in held:
        return badge
    return None


def level_for(points: int, current: str) -> str:
    if points >= GOLD_THRESHOLD:
        return GOLD_LEVEL
    return current


async def notify(user_id: str, type_: str, message: str, item_id: Optional[str] = None) -> dict:
    doc = {
        "user_id": user_id,
        "type": type_,
        "message": message,
        "item_id": item_id,
        "read": False,
    }
    return await create_document("notification", doc)


async def award_points(user_id, amount: int, reason: str) -> dict:
    """Add points and promote to Gold when the threshold is crossed.

    Emits one notification: ``gold`` for the award that promotes the user,
    ``points`` otherwise. Returns the updated user document.
    """
    db = await get_db()
    user = await db["user"].find_one_and_update(
        {"_id": user_id},
        {"$inc": {"points": amount}},
        return_document=ReturnDocument.AFTER,
    )
    promoted = False
    if level_for(user.get("points", 0), user.get("level", "")) == GOLD_LEVEL and user.get("level") != GOLD_LEVEL:
        # Only the request that flips the level gets the gold notification
        res = await db["user"].update_one(
            {"_id": user_id, "level": {"$ne": GOLD_LEVEL}},
            {"$set": {"level": GOLD_LEVEL}},
        )
        promoted = res.modified_count == 1
        user["level"] = GOLD_LEVEL
    if promoted:
        logger.info("User %s reached %s level with %s points", user_id, GOLD_LEVEL, user["points"])
        await notify(
            str(user_id),
            "gold",
            f"Congratulations! You've earned {amount} points and reached Gold Member status!",
        )
    else:
        await notify(str(user_id), "points", f"You earned {amount} points for {reason}!")
    return user


async def award_badges(user_id, badges, item_id: Optional[str] = None) -> list:
    db = await get_db()
    awarded = []
    for badge in badges:
        res = await db["user"].update_one(
            {"_id": user_id, "badges": {"$ne": badge}},
            {"$addToSet": {"badges": badge}},
        )
        if res.modified_count != 1:
            continue
        awarded.append(badge)
        logger.info("User %s earned badge %r", user_id, badge)
        await notify(str(user_id), "badge", f'Congratulations! You\'ve earned the "{badge}" badge!', item_id)
    return awarded


async def on_found_item_reported(user: dict, item: dict) -> list:
    """Reward a found-item report. Returns the badges newly awarded."""
    db = await get_db()
    item_id = str(item["_id"])
    await notify(str(user["_id"]), "found_item", f"You reported a found item: {item['name']}", item_id)
    updated = await award_points(user["_id"], POINTS_PER_FOUND_REPORT, "reporting a found item")

    held = set(updated.get("badges", []))
    found_count = await db["item"].count_documents({"owner_id": str(user["_id"]), "status": "found"})
    badges = milestone_badges(found_count, FOUND_MILESTONES, held)
    extra = category_badge(item.get("category", ""), held)
    if extra:
        badges.append(extra)
    return await award_badges(user["_id"], badges, item_id)


async def on_found_item_returned(user: dict, item: dict) -> list:
    db = await get_db()
    item_id = str(item["_id"])
    updated = await award_points(user["_id"], POINTS_PER_RETURN, "returning a found item")

    held = set(updated.get("badges", []))
    returned_count = await db["item"].count_documents(
        {"owner_id": str(user["_id"]), "status": "found", "is_resolved": True}
    )
    return await award_badges(user["_id"], milestone_badges(returned_count, RETURN_MILESTONES, held), item_id)


async def list_notifications(user_id: str) -> list:
    docs = await get_documents("notification", {"user_id": user_id})
    return [map_doc(d) for d in docs]


async def mark_all_read(user_id: str) -> int:
    db = await get_db()
    res = await db["notification"].update_many({"user_id": user_id, "read": False}, {"$set": {"read": True}})
    return res.modified_count
