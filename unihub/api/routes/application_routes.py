"""
Application Routes

POST /applications - Apply to a job (poster is emailed)
GET /applications/freelancer - Applications you submitted
GET /applications/client - Applications received on your jobs (optional ?jobId=)
DELETE /applications/{application_id} - Decline an application (poster or applicant)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from unihub.api.deps import get_notifier, get_pagination, success
from unihub.core.auth import get_current_user
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import ApplicationCreate
from unihub.services.application_service import ApplicationService
from unihub.services.notifier import Notifier
from unihub.services.pagination import Pagination

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("", status_code=201)
def create_application(
    application: ApplicationCreate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Apply to an open job on your campus."""
    data = ApplicationService(db, notifier).create_application(user, application)
    return success(
        {"application": data},
        message="Application submitted successfully. The job owner will be notified via email.",
    )


@router.get("/freelancer")
def freelancer_applications(
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Applications submitted by the current user."""
    return success(ApplicationService(db).list_freelancer_applications(user, pagination))


@router.get("/client")
def client_applications(
    job_id: Optional[str] = Query(None, alias="jobId"),
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Applications for jobs posted by the current user."""
    return success(ApplicationService(db).list_client_applications(user, pagination, job_id=job_id))


@router.delete("/{application_id}")
def decline_application(
    application_id: str,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Mark an application as declined (it is never deleted)."""
    data = ApplicationService(db).decline_application(user, application_id)
    return success({"application": data}, message="Application declined successfully")
