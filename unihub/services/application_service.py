"""
Application Service - freelancer proposals on jobs.

One application per (job, freelancer); the unique index enforces it even
under concurrent submits. Listing is populate-then-filter: applications are
fetched by owner, their jobs/freelancers are joined, and any entry whose
joined university is not the caller's is dropped.
"""

import logging

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from unihub.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from unihub.db.mongodb import COLLECTIONS, serialize_doc, to_object_id, utcnow
from unihub.schemas.schemas import ApplicationCreate, ApplicationStatus, JobStatus
from unihub.services.campus import ensure_same_campus, load_refs, ref_json, require_campus, user_refs
from unihub.services.email_templates import application_email
from unihub.services.pagination import Pagination

logger = logging.getLogger(__name__)

JOB_FIELDS = ("title", "category", "budget", "deadline", "experienceLevel", "status", "postedBy", "university")
FREELANCER_FIELDS = ("name", "email", "university", "universityEmail", "isUniversityVerified", "skills", "about")


class ApplicationService:
    def __init__(self, db: Database, notifier=None):
        self.db = db
        self.collection = db[COLLECTIONS["applications"]]
        self.jobs = db[COLLECTIONS["jobs"]]
        self.users = db[COLLECTIONS["users"]]
        self.notifier = notifier

    def create_application(self, user: dict, payload: ApplicationCreate) -> dict:
        university = require_campus(user, "Please complete your profile before applying to jobs")

        job = self.jobs.find_one({"_id": to_object_id(payload.job_id, "jobId")})
        if not job:
            raise NotFound("Job not found")
        if job["status"] != JobStatus.open.value:
            raise Conflict("This job is no longer accepting applications")
        if job.get("postedBy") == user["_id"]:
            raise InvalidInput("You cannot apply to your own job")
        ensure_same_campus(job.get("university"), university, "You can only apply to jobs from your university")

        now = utcnow()
        doc = {
            "jobId": job["_id"],
            "freelancerId": user["_id"],
            "message": payload.message,
            "coverLetter": payload.cover_letter or payload.message,
            "phone": payload.phone,
            "budget": payload.budget,
            "pricingType": payload.pricing_type.value if payload.pricing_type else None,
            "deliveryDays": payload.delivery_days,
            "skills": [s.strip() for s in payload.skills if s and s.strip()],
            "portfolioLink": payload.portfolio_link or None,
            "agreementAccepted": payload.agreement_accepted,
            "status": ApplicationStatus.pending.value,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise Conflict("You have already applied to this job")

        logger.info("Application %s submitted for job %s", doc["_id"], job["_id"])
        self._notify_poster(job, user, payload)

        item = serialize_doc(doc)
        item["jobId"] = {"_id": str(job["_id"]), "title": job.get("title")}
        item["freelancerId"] = {"_id": str(user["_id"]), "name": user.get("name"), "email": user.get("email")}
        return item

    def list_freelancer_applications(self, user: dict, pagination: Pagination) -> dict:
        """Applications the caller submitted, for jobs on the caller's campus."""
        university = require_campus(user)
        query = {"freelancerId": user["_id"]}

        # total is counted before the campus filter
        total = self.collection.count_documents(query)
        applications = list(
            self.collection.find(query).sort([("createdAt", DESCENDING), ("_id", DESCENDING)]).skip(pagination.skip).limit(pagination.limit)
        )

        jobs = load_refs(self.db, COLLECTIONS["jobs"], [a["jobId"] for a in applications], JOB_FIELDS)
        posters = user_refs(self.db, [job.get("postedBy") for job in jobs.values()])

        items = []
        for application in applications:
            job = jobs.get(application["jobId"])
            if job is None or job.get("university") != university:
                continue
            item = serialize_doc(application)
            item["jobId"] = serialize_doc(job)
            item["jobId"]["postedBy"] = ref_json(job.get("postedBy"), posters, university)
            items.append(item)
        return pagination.envelope(items, total)

    def list_client_applications(self, user: dict, pagination: Pagination, job_id: str = None) -> dict:
        """Applications received on the caller's jobs, from freelancers on the same campus."""
        university = require_campus(user)

        job_query = {"postedBy": user["_id"], "university": university}
        if job_id:
            job_query["_id"] = to_object_id(job_id, "jobId")
        job_ids = [job["_id"] for job in self.jobs.find(job_query, {"_id": 1})]

        query = {"jobId": {"$in": job_ids}}
        total = self.collection.count_documents(query)
        applications = list(
            self.collection.find(query).sort([("createdAt", DESCENDING), ("_id", DESCENDING)]).skip(pagination.skip).limit(pagination.limit)
        )

        jobs = load_refs(self.db, COLLECTIONS["jobs"], [a["jobId"] for a in applications], JOB_FIELDS)
        freelancers = user_refs(self.db, [a["freelancerId"] for a in applications], FREELANCER_FIELDS)

        items = []
        for application in applications:
            job = jobs.get(application["jobId"])
            freelancer = freelancers.get(application["freelancerId"])
            if job is None or job.get("university") != university:
                continue
            if freelancer is None or freelancer.get("university") != university:
                continue
            item = serialize_doc(application)
            item["jobId"] = serialize_doc(job)
            item["freelancerId"] = serialize_doc(freelancer)
            items.append(item)
        return pagination.envelope(items, total)

    def decline_application(self, user: dict, application_id: str) -> dict:
        """Poster or applicant marks the application DECLINED. Nothing is deleted."""
        application = self.collection.find_one({"_id": to_object_id(application_id, "application id")})
        if not application:
            raise NotFound("Application not found")

        job = self.jobs.find_one({"_id": application["jobId"]}, {"postedBy": 1})
        if not job:
            raise NotFound("Job not found")

        is_client = job.get("postedBy") == user["_id"]
        is_freelancer = application.get("freelancerId") == user["_id"]
        if not is_client and not is_freelancer:
            raise Forbidden("You are not authorized to delete this application")

        self.collection.update_one(
            {"_id": application["_id"]},
            {"$set": {"status": ApplicationStatus.declined.value, "updatedAt": utcnow()}},
        )
        application["status"] = ApplicationStatus.declined.value
        return serialize_doc(application)

    def _notify_poster(self, job: dict, applicant: dict, payload: ApplicationCreate) -> None:
        if self.notifier is None:
            return
        poster = self.users.find_one({"_id": job.get("postedBy")}, {"name": 1, "email": 1})
        if not poster or not poster.get("email"):
            logger.warning("Job %s has no reachable poster, skipping notification", job["_id"])
            return
        self.notifier.notify(application_email(
            to=poster["email"],
            client_name=poster.get("name") or "Client",
            job_title=job.get("title", ""),
            freelancer_name=applicant.get("name") or applicant.get("email"),
            freelancer_email=applicant.get("email"),
            message=payload.message,
            phone=payload.phone,
        ))
