"""
MongoDB Connection Utility

MongoDB is the only store. Every entity lives in its own collection:
- users, otps, refresh_tokens
- jobs, applications, reviews
- products, buyer_interests, wishlists

The client is created in the app lifespan and kept on app.state, so the
request handlers receive the Database through a dependency instead of a
module-level singleton.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from unihub.core.config import Settings
from unihub.core.errors import InvalidInput

logger = logging.getLogger(__name__)


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "otps": "otps",
    "refresh_tokens": "refresh_tokens",
    "jobs": "jobs",
    "applications": "applications",
    "reviews": "reviews",
    "products": "products",
    "buyer_interests": "buyer_interests",
    "wishlists": "wishlists",
}


def create_mongo_client(settings: Settings) -> MongoClient:
    """Create a client (connection pooling handled internally by pymongo)."""
    return MongoClient(settings.mongodb_uri)


def get_mongo_db(client: MongoClient, settings: Settings) -> Database:
    return client[settings.mongodb_db]


def test_mongo_connection(db: Database) -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        # ping command checks connection
        db.command("ping")
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


def init_mongo_indexes(db: Database) -> None:
    """
    Create indexes. Unique indexes are what makes duplicate applications,
    reviews, wishlist entries and refresh tokens impossible under concurrent
    requests; TTL indexes only clean up expired OTPs and tokens.
    Call this once during app startup.
    """
    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True)
    users.create_index("university")

    otps = db[COLLECTIONS["otps"]]
    otps.create_index([("email", ASCENDING), ("otp", ASCENDING)])
    otps.create_index("expiresAt", expireAfterSeconds=0)

    tokens = db[COLLECTIONS["refresh_tokens"]]
    tokens.create_index("token", unique=True)
    tokens.create_index([("userId", ASCENDING), ("isRevoked", ASCENDING)])
    tokens.create_index("expiresAt", expireAfterSeconds=0)

    jobs = db[COLLECTIONS["jobs"]]
    jobs.create_index([("university", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
    jobs.create_index([("postedBy", ASCENDING), ("status", ASCENDING)])
    jobs.create_index([("assignedTo", ASCENDING), ("status", ASCENDING)])

    applications = db[COLLECTIONS["applications"]]
    applications.create_index([("jobId", ASCENDING), ("freelancerId", ASCENDING)], unique=True)
    applications.create_index([("freelancerId", ASCENDING), ("createdAt", DESCENDING)])
    applications.create_index([("jobId", ASCENDING), ("createdAt", DESCENDING)])

    reviews = db[COLLECTIONS["reviews"]]
    reviews.create_index("jobId", unique=True)
    reviews.create_index([("freelancerId", ASCENDING), ("createdAt", DESCENDING)])

    products = db[COLLECTIONS["products"]]
    products.create_index([("universityId", ASCENDING), ("createdAt", DESCENDING)])
    products.create_index([("universityId", ASCENDING), ("sellerId", ASCENDING), ("status", ASCENDING)])
    products.create_index([("category", ASCENDING), ("universityId", ASCENDING), ("status", ASCENDING)])

    db[COLLECTIONS["buyer_interests"]].create_index([("sellerId", ASCENDING), ("productId", ASCENDING)])

    db[COLLECTIONS["wishlists"]].create_index([("userId", ASCENDING), ("productId", ASCENDING)], unique=True)

    logger.info("MongoDB indexes created successfully")


# ============================================================
# HELPERS
# ============================================================

def utcnow() -> datetime:
    """Naive UTC timestamp, the form pymongo hands back by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value, label: str = "id") -> ObjectId:
    """Parse a path/body id, rejecting malformed values as InvalidInput."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise InvalidInput(f"Invalid {label}")


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, list):
            out[key] = [str(v) if isinstance(v, ObjectId) else v for v in value]
        else:
            out[key] = value
    return out


def get_db(request: Request) -> Database:
    """
    Dependency for FastAPI route injection.
    Usage:
        @router.get("/things")
        def things(db: Database = Depends(get_db)):
            ...
    """
    return request.app.state.db
