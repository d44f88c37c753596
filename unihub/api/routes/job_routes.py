"""
Job Routes

POST /jobs - Post a job on your campus
GET /jobs - Open jobs on your campus (search, category, experienceLevel, minBudget, maxBudget)
GET /jobs/my - Jobs you posted
GET /jobs/assigned - Jobs assigned to you
GET /jobs/freelancer/{freelancer_id}/completed - Completed job count for a freelancer
GET /jobs/{job_id} - Job details with proposal count
PUT /jobs/{job_id}/start - Poster picks a freelancer (OPEN -> IN_PROGRESS)
PUT /jobs/{job_id}/submit-work - Freelancer submits (IN_PROGRESS -> COMPLETED)
PUT /jobs/{job_id}/complete - Poster marks done (IN_PROGRESS -> COMPLETED)
PUT /jobs/{job_id}/confirm - Freelancer closes (COMPLETED -> CLOSED)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from unihub.api.deps import get_pagination, success
from unihub.core.auth import get_current_user
from unihub.db.mongodb import get_db
from unihub.schemas.schemas import ExperienceLevel, JobCreate, JobStart
from unihub.services.job_service import JobService
from unihub.services.pagination import Pagination

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("", status_code=201)
def create_job(job: JobCreate, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Create a new job posting."""
    return success({"job": JobService(db).create_job(user, job)}, message="Job created successfully")


@router.get("")
def list_jobs(
    search: Optional[str] = None,
    category: Optional[str] = None,
    experience_level: Optional[ExperienceLevel] = Query(None, alias="experienceLevel"),
    min_budget: Optional[float] = Query(None, alias="minBudget", ge=0),
    max_budget: Optional[float] = Query(None, alias="maxBudget", ge=0),
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Job feed: open jobs from your university, excluding your own."""
    data = JobService(db).list_jobs(
        user,
        pagination,
        search=search,
        category=category,
        experience_level=experience_level.value if experience_level else None,
        min_budget=min_budget,
        max_budget=max_budget,
    )
    return success(data)


@router.get("/my")
def list_my_jobs(
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Jobs posted by the current user."""
    return success(JobService(db).list_my_jobs(user, pagination))


@router.get("/assigned")
def list_assigned_jobs(
    pagination: Pagination = Depends(get_pagination),
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Jobs assigned to the current user as freelancer."""
    return success(JobService(db).list_assigned_jobs(user, pagination))


@router.get("/freelancer/{freelancer_id}/completed")
def freelancer_completed_jobs(
    freelancer_id: str,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Number of COMPLETED or CLOSED jobs done by a freelancer on your campus."""
    return success({"count": JobService(db).count_freelancer_completed_jobs(user, freelancer_id)})


@router.get("/{job_id}")
def get_job(job_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Get job details."""
    return success({"job": JobService(db).get_job(user, job_id)})


@router.put("/{job_id}/start")
def start_job(
    job_id: str,
    request: JobStart,
    user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Select a freelancer and start the job."""
    job = JobService(db).start_job(user, job_id, request.freelancer_id)
    return success({"job": job}, message="Job started successfully")


@router.put("/{job_id}/submit-work")
def submit_work(job_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Assigned freelancer submits the work."""
    job = JobService(db).submit_work(user, job_id)
    return success({"job": job}, message="Work submitted successfully. Waiting for client approval.")


@router.put("/{job_id}/complete")
def complete_job(job_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Poster marks the job as completed."""
    return success({"job": JobService(db).complete_job(user, job_id)}, message="Job marked as completed")


@router.put("/{job_id}/confirm")
def confirm_job(job_id: str, user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    """Assigned freelancer confirms and closes the job."""
    return success({"job": JobService(db).confirm_job(user, job_id)}, message="Job confirmed and closed")
