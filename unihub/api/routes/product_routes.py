"""
Product Routes

POST /products - List a product on your campus
GET /products - Marketplace feed (category, search)
GET /products/my - Seller dashboard with interested buyers
GET /products/{product_id} - Product details
PUT /products/{product_id} - Edit your product
PUT /products/{product_id}/reserve - Reserve (AVAILABLE -> RESERVED)
PUT /products/{product_id}/sold - Seller marks sold
POST /products/{product_id}/interest - Tell the seller you are interested
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from unihub.api.deps import get_notifier, get_pagination, success
from unihub.core.auth import get_current_user
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import InterestCreate, ProductCreate, ProductUpdate
from unihub.services.notifier import Notifier
from unihub.services.pagination import Pagination
from unihub.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", status_code=201)
def create_product(product: ProductCreate, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Create a product listing. Seller, campus and status are set by the server."""
    data = ProductService(db).create_product(user, product)
    return success({"product": data}, message="Product created successfully")


@router.get("")
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Products from your university, newest first, excluding your own."""
    return success(ProductService(db).list_products(user, pagination, category=category, search=search))


@router.get("/my")
def my_products(
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Seller dashboard."""
    return success(ProductService(db).list_my_products(user, pagination))


@router.get("/{product_id}")
def get_product(product_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Get product details."""
    return success({"product": ProductService(db).get_product(user, product_id)})


@router.put("/{product_id}")
def update_product(
    product_id: str,
    product: ProductUpdate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Edit title, description, price, category, condition or images."""
    data = ProductService(db).update_product(user, product_id, product)
    return success({"product": data}, message="Product updated successfully")


@router.put("/{product_id}/reserve")
def reserve_product(product_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Reserve an available product."""
    data = ProductService(db).reserve_product(user, product_id)
    return success({"product": data}, message="Product reserved successfully")


@router.put("/{product_id}/sold")
def mark_product_sold(product_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Mark your product as sold."""
    data = ProductService(db).mark_sold(user, product_id)
    return success({"product": data}, message="Product marked as sold")


@router.post("/{product_id}/interest", status_code=201)
def show_interest(
    product_id: str,
    interest: InterestCreate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Record interest and email the seller."""
    data = ProductService(db, notifier).show_interest(user, product_id, interest)
    return success({"buyerInterest": data}, message="Interest sent successfully. Seller will be notified.")
