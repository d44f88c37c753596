"""
Review Service - one client review per completed job.

Creating the review closes the job. The unique index on jobId makes a
second review impossible even when two requests race.
"""

import logging

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from unihub.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from unihub.db.mongodb import COLLECTIONS, serialize_doc, to_object_id, utcnow
from unihub.schemas.schemas import JobStatus, ReviewCreate
from unihub.services.campus import load_refs, ref_json, require_campus, user_refs
from unihub.services.job_service import JobService

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, db: Database):
        self.db = db
        self.collection = db[COLLECTIONS["reviews"]]
        self.jobs = JobService(db)

    def create_review(self, user: dict, payload: ReviewCreate) -> dict:
        job = self.jobs.find_job(payload.job_id)

        if job.get("postedBy") != user["_id"]:
            raise Forbidden("Only the job owner can create a review")
        if job["status"] != JobStatus.completed.value:
            raise Conflict(f"Cannot review job. Current status: {job['status']}")
        if not job.get("assignedTo"):
            raise InvalidInput("Job has no assigned freelancer")

        now = utcnow()
        doc = {
            "jobId": job["_id"],
            "freelancerId": job["assignedTo"],
            "clientId": user["_id"],
            "rating": payload.rating,
            "comment": payload.comment or "",
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise Conflict("Review already exists for this job")

        if not self.jobs.close_reviewed_job(job["_id"]):
            logger.warning("Job %s was no longer COMPLETED when its review was stored", job["_id"])

        return self._serialize([doc], job["university"])[0]

    def list_freelancer_reviews(self, user: dict, freelancer_id: str) -> dict:
        university = require_campus(user)
        reviews = list(
            self.collection.find({"freelancerId": to_object_id(freelancer_id, "freelancerId")})
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        )

        # keep only reviews whose job is on the caller's campus
        jobs = load_refs(self.db, COLLECTIONS["jobs"], [r["jobId"] for r in reviews], ("title", "university"))
        reviews = [r for r in reviews if jobs.get(r["jobId"], {}).get("university") == university]

        total = len(reviews)
        average = sum(r["rating"] for r in reviews) / total if total else 0
        return {
            "reviews": self._serialize(reviews, university, jobs),
            "averageRating": average,
            "totalReviews": total,
        }

    def get_job_review(self, user: dict, job_id: str) -> dict:
        university = require_campus(user)
        job_oid = to_object_id(job_id, "job id")

        review = self.collection.find_one({"jobId": job_oid})
        job = self.db[COLLECTIONS["jobs"]].find_one({"_id": job_oid}, {"title": 1, "university": 1})
        if not review or not job or job.get("university") != university:
            raise NotFound("Review not found")
        return self._serialize([review], university, {job["_id"]: job})[0]

    def _serialize(self, reviews, university: str, jobs: dict = None) -> list:
        if jobs is None:
            jobs = load_refs(self.db, COLLECTIONS["jobs"], [r["jobId"] for r in reviews], ("title", "university"))
        people = user_refs(self.db, [r.get(k) for r in reviews for k in ("freelancerId", "clientId")], ("name", "email", "university"))

        items = []
        for review in reviews:
            item = serialize_doc(review)
            item["freelancerId"] = ref_json(review.get("freelancerId"), people, university)
            item["clientId"] = ref_json(review.get("clientId"), people, university)
            item["jobId"] = ref_json(review.get("jobId"), jobs, university)
            items.append(item)
        return items
