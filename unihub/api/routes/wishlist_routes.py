"""
Wishlist Routes

GET /wishlist - Saved products (deleted or off-campus products are skipped)
POST /wishlist - Save a product (idempotent)
DELETE /wishlist/{product_id} - Remove a saved product
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from unihub.api.deps import get_pagination, success
from unihub.core.auth import get_current_user
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import WishlistAdd
from unihub.services.pagination import Pagination
from unihub.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


@router.get("")
def get_wishlist(
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return success(WishlistService(db).list_items(user, pagination))


@router.post("")
def add_to_wishlist(request: WishlistAdd, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    result = WishlistService(db).add(user, request.product_id)
    message = "Product added to wishlist" if result["created"] else "Product already in wishlist"
    return success({"product": result["product"]}, message=message)


@router.delete("/{product_id}")
def remove_from_wishlist(product_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    WishlistService(db).remove(user, product_id)
    return success(message="Product removed from wishlist")
