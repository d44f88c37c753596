"""
Wishlist Service - saved products per user.

Adding is idempotent: the (userId, productId) pair is upserted, so a repeat
add (or two concurrent ones) leaves exactly one entry.
"""

import logging

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from unihub.core.errors import NotFound
from unihub.db.mongodb import COLLECTIONS, to_object_id, utcnow
from unihub.services.campus import require_campus
from unihub.services.pagination import Pagination
from unihub.services.product_service import ProductService

logger = logging.getLogger(__name__)


class WishlistService:
    def __init__(self, db: Database):
        self.collection = db[COLLECTIONS["wishlists"]]
        self.products = ProductService(db)

    def add(self, user: dict, product_id: str) -> dict:
        """Save a product on the caller's campus. Returns the product and whether a new entry was created."""
        university = require_campus(user)
        product = self.products.collection.find_one({"_id": to_object_id(product_id, "productId")})
        if not product or product.get("universityId") != university:
            raise NotFound("Product not found")

        now = utcnow()
        try:
            result = self.collection.update_one(
                {"userId": user["_id"], "productId": product["_id"]},
                {"$setOnInsert": {"createdAt": now, "updatedAt": now}},
                upsert=True,
            )
            created = result.upserted_id is not None
        except DuplicateKeyError:
            # lost the upsert race; the entry exists
            created = False

        return {"product": self.products.serialize_product(product, university), "created": created}

    def remove(self, user: dict, product_id: str) -> None:
        result = self.collection.delete_one({"userId": user["_id"], "productId": to_object_id(product_id, "productId")})
        if result.deleted_count == 0:
            raise NotFound("Product not found in wishlist")

    def list_items(self, user: dict, pagination: Pagination) -> dict:
        university = require_campus(user)
        query = {"userId": user["_id"]}

        total = self.collection.count_documents(query)
        entries = list(
            self.collection.find(query).sort([("createdAt", DESCENDING), ("_id", DESCENDING)]).skip(pagination.skip).limit(pagination.limit)
        )
        product_ids = [e["productId"] for e in entries]
        found = {p["_id"]: p for p in self.products.collection.find({"_id": {"$in": product_ids}})}

        # deleted products and products from another campus are dropped
        products = [
            found[pid] for pid in product_ids
            if pid in found and found[pid].get("universityId") == university
        ]
        return pagination.envelope(self.products.serialize_products(products, university), total)
