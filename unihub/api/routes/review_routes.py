"""
Review Routes

POST /reviews - Poster reviews the freelancer of a COMPLETED job (closes it)
GET /reviews/freelancer/{freelancer_id} - Reviews with average rating
GET /reviews/job/{job_id} - Review of one job
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from unihub.api.deps import success
from unihub.core.auth import get_current_user
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import ReviewCreate
from unihub.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", status_code=201)
def create_review(review: ReviewCreate, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Create a review for the freelancer who completed your job."""
    return success({"review": ReviewService(db).create_review(user, review)}, message="Review created successfully")


@router.get("/freelancer/{freelancer_id}")
def freelancer_reviews(freelancer_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Reviews for a freelancer, limited to jobs on your campus."""
    return success(ReviewService(db).list_freelancer_reviews(user, freelancer_id))


@router.get("/job/{job_id}")
def job_review(job_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Get the review for a job."""
    return success({"review": ReviewService(db).get_job_review(user, job_id)})
