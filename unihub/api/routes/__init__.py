"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from unihub.api.routes.auth_routes import router as auth_router
from unihub.api.routes.user_routes import router as user_router
from unihub.api.routes.job_routes import router as job_router
from unihub.api.routes.application_routes import router as application_router
from unihub.api.routes.review_routes import router as review_router
from unihub.api.routes.product_routes import router as product_router
from unihub.api.routes.wishlist_routes import router as wishlist_router
from unihub.api.routes.upload_routes import router as upload_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(job_router)
api_router.include_router(application_router)
api_router.include_router(review_router)
api_router.include_router(product_router)
api_router.include_router(wishlist_router)
api_router.include_router(upload_router)
