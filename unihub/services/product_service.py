"""
Product Service - campus marketplace.

    AVAILABLE --reserve--> RESERVED --sold--> SOLD
    AVAILABLE ------------sold--------------> SOLD

sellerId, universityId and status are always assigned here, never taken
from the client. Buyer interest is persisted first; the seller email is a
best-effort notification afterwards.
"""

import logging
import re
from typing import Dict, List

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from unihub.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from unihub.db.mongodb import COLLECTIONS, serialize_doc, to_object_id, utcnow
from unihub.schemas.schemas import InterestCreate, ProductCreate, ProductStatus, ProductUpdate
from unihub.services.campus import campus_filter, ensure_same_campus, ref_json, require_campus, user_refs
from unihub.services.email_templates import interest_email
from unihub.services.image_store import optimize_cloudinary_urls
from unihub.services.pagination import Pagination

logger = logging.getLogger(__name__)

AVAILABLE = ProductStatus.available.value
RESERVED = ProductStatus.reserved.value
SOLD = ProductStatus.sold.value


class ProductService:
    def __init__(self, db: Database, notifier=None):
        self.db = db
        self.collection = db[COLLECTIONS["products"]]
        self.interests = db[COLLECTIONS["buyer_interests"]]
        self.users = db[COLLECTIONS["users"]]
        self.notifier = notifier

    # ============================================================
    # SERIALIZATION
    # ============================================================

    def serialize_products(self, products: List[dict], university: str) -> List[dict]:
        sellers = user_refs(self.db, [p.get("sellerId") for p in products])
        items = []
        for product in products:
            item = serialize_doc(product)
            item["sellerId"] = ref_json(product.get("sellerId"), sellers, university)
            item["images"] = optimize_cloudinary_urls(product.get("images"))
            items.append(item)
        return items

    def serialize_product(self, product: dict, university: str) -> dict:
        return self.serialize_products([product], university)[0]

    # ============================================================
    # CREATE / EDIT
    # ============================================================

    def create_product(self, user: dict, payload: ProductCreate) -> dict:
        university = require_campus(
            user, "Please complete your profile (university is required) before listing products"
        )
        now = utcnow()
        doc = {
            "title": payload.title,
            "price": float(payload.price),
            "category": payload.category,
            "description": payload.description,
            "condition": payload.condition.value,
            "images": [url for url in payload.images if url],
            "sellerId": user["_id"],
            "universityId": university,
            "status": AVAILABLE,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        logger.info("Product %s listed by %s", doc["_id"], user["_id"])
        return self.serialize_product(doc, university)

    def update_product(self, user: dict, product_id: str, payload: ProductUpdate) -> dict:
        product = self.find_product(product_id)
        if product.get("sellerId") != user["_id"]:
            raise Forbidden("You can only edit your own products")

        update = {}
        for field in ("title", "description", "category"):
            if field in payload.model_fields_set and getattr(payload, field) is not None:
                update[field] = getattr(payload, field)
        if "price" in payload.model_fields_set and payload.price is not None:
            update["price"] = float(payload.price)
        if "condition" in payload.model_fields_set and payload.condition is not None:
            update["condition"] = payload.condition.value
        if "images" in payload.model_fields_set:
            update["images"] = [url for url in payload.images or [] if url]
        update["updatedAt"] = utcnow()

        updated = self.collection.find_one_and_update(
            {"_id": product["_id"], "sellerId": user["_id"]},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFound("Product not found")
        return self.serialize_product(updated, updated["universityId"])

    # ============================================================
    # READ
    # ============================================================

    def list_products(self, user: dict, pagination: Pagination, category: str = None, search: str = None) -> dict:
        """Feed: every status on the caller's campus, excluding the caller's own listings."""
        university = require_campus(user)
        query = {"universityId": university, "sellerId": {"$ne": user["_id"]}}
        if category and category.strip():
            query["category"] = category.strip()
        if search and search.strip():
            pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"description": pattern}]

        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .skip(pagination.skip)
            .limit(pagination.limit)
        )
        products = campus_filter(cursor, university, lambda p: p.get("universityId"))
        return pagination.envelope(self.serialize_products(products, university), total)

    def get_product(self, user: dict, product_id: str) -> dict:
        university = require_campus(user)
        product = self.find_product(product_id)
        ensure_same_campus(
            product.get("universityId"), university, "You can only access products from your university"
        )
        return self.serialize_product(product, university)

    def list_my_products(self, user: dict, pagination: Pagination) -> dict:
        """Seller dashboard: own listings with interested buyers and status counts."""
        university = require_campus(user)
        query = {"sellerId": user["_id"]}

        total = self.collection.count_documents(query)
        products = list(
            self.collection.find(query)
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .skip(pagination.skip)
            .limit(pagination.limit)
        )
        interests = self._interests_by_product([p["_id"] for p in products], university)

        items = self.serialize_products(products, university)
        for item, product in zip(items, products):
            item["interestedBuyers"] = interests.get(product["_id"], [])

        summary = {
            "active": self.collection.count_documents({"sellerId": user["_id"], "status": {"$in": [AVAILABLE, RESERVED]}}),
            "sold": self.collection.count_documents({"sellerId": user["_id"], "status": SOLD}),
            "total": total,
        }
        return pagination.envelope(items, total, summary=summary)

    # ============================================================
    # TRANSITIONS
    # ============================================================

    def reserve_product(self, user: dict, product_id: str) -> dict:
        university = require_campus(user)
        product = self.find_product(product_id)
        ensure_same_campus(
            product.get("universityId"), university, "You can only reserve products from your university"
        )
        if product.get("sellerId") == user["_id"]:
            raise InvalidInput("You cannot reserve your own product")
        if product["status"] != AVAILABLE:
            raise Conflict(f"Product is not available. Current status: {product['status']}")

        updated = self.collection.find_one_and_update(
            {"_id": product["_id"], "status": AVAILABLE},
            {"$set": {"status": RESERVED, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise Conflict("Product is no longer available")
        return self.serialize_product(updated, university)

    def mark_sold(self, user: dict, product_id: str) -> dict:
        product = self.find_product(product_id)
        if product.get("sellerId") != user["_id"]:
            raise Forbidden("Only the seller can mark product as sold")
        if product["status"] == SOLD:
            raise Conflict("Product already marked as sold")

        updated = self.collection.find_one_and_update(
            {"_id": product["_id"], "sellerId": user["_id"], "status": {"$ne": SOLD}},
            {"$set": {"status": SOLD, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise Conflict("Product already marked as sold")
        return self.serialize_product(updated, updated["universityId"])

    def show_interest(self, user: dict, product_id: str, payload: InterestCreate) -> dict:
        university = require_campus(user)
        product = self.find_product(product_id)
        ensure_same_campus(
            product.get("universityId"), university, "You can only show interest in products from your university"
        )
        if product["status"] == SOLD:
            raise Conflict("This product has already been sold")
        if product.get("sellerId") == user["_id"]:
            raise InvalidInput("You cannot show interest in your own product")

        now = utcnow()
        doc = {
            "productId": product["_id"],
            "sellerId": product["sellerId"],
            "buyerId": user["_id"],
            "message": payload.message,
            "phone": payload.phone or None,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.interests.insert_one(doc).inserted_id
        logger.info("Buyer %s interested in product %s", user["_id"], product["_id"])

        self._notify_seller(product, user, payload)

        item = serialize_doc(doc)
        item["buyerId"] = {"_id": str(user["_id"]), "name": user.get("name"), "email": user.get("email")}
        return item

    # ============================================================
    # HELPERS
    # ============================================================

    def find_product(self, product_id) -> dict:
        product = self.collection.find_one({"_id": to_object_id(product_id, "product id")})
        if not product:
            raise NotFound("Product not found")
        return product

    def _interests_by_product(self, product_ids: List, university: str) -> Dict:
        if not product_ids:
            return {}
        interests = list(
            self.interests.find({"productId": {"$in": product_ids}}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        )
        buyers = user_refs(self.db, [i["buyerId"] for i in interests])

        grouped: Dict = {}
        for interest in interests:
            buyer = buyers.get(interest["buyerId"])
            if buyer is None or buyer.get("university") != university:
                continue
            grouped.setdefault(interest["productId"], []).append({
                "_id": str(interest["_id"]),
                "buyerId": ref_json(interest["buyerId"], buyers, university),
                "buyerName": buyer.get("name") or buyer.get("email"),
                "buyerEmail": buyer.get("email"),
                "phone": interest.get("phone"),
                "message": interest.get("message"),
                "createdAt": interest.get("createdAt"),
            })
        return grouped

    def _notify_seller(self, product: dict, buyer: dict, payload: InterestCreate) -> None:
        if self.notifier is None:
            return
        seller = self.users.find_one({"_id": product.get("sellerId")}, {"name": 1, "email": 1})
        if not seller or not seller.get("email"):
            logger.warning("Product %s has no reachable seller, skipping notification", product["_id"])
            return
        self.notifier.notify(interest_email(
            to=seller["email"],
            seller_name=seller.get("name") or "Seller",
            product_title=product.get("title", ""),
            price=product.get("price", 0),
            buyer_name=buyer.get("name") or buyer.get("email"),
            buyer_email=buyer.get("email"),
            message=payload.message,
            phone=payload.phone,
        ))
