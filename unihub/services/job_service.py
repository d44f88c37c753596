"""
Job Service - job board state machine.

    OPEN --start--> IN_PROGRESS --submit/complete--> COMPLETED --confirm/review--> CLOSED

Every transition is a single conditional update that matches on the
expected current status. When two requests race, only one update matches;
the other sees None and reports a Conflict.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from unihub.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from unihub.db.mongodb import COLLECTIONS, serialize_doc, to_object_id, utcnow
from unihub.schemas.schemas import ApplicationStatus, JobCreate, JobStatus
from unihub.services.campus import campus_filter, ensure_same_campus, ref_json, require_campus, user_refs
from unihub.services.pagination import Pagination

logger = logging.getLogger(__name__)

OPEN = JobStatus.open.value
IN_PROGRESS = JobStatus.in_progress.value
COMPLETED = JobStatus.completed.value
CLOSED = JobStatus.closed.value


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def contains(text: str) -> dict:
    """Case-insensitive substring match on user input."""
    return {"$regex": re.escape(text), "$options": "i"}


class JobService:
    def __init__(self, db: Database):
        self.db = db
        self.collection = db[COLLECTIONS["jobs"]]
        self.applications = db[COLLECTIONS["applications"]]
        self.users = db[COLLECTIONS["users"]]

    # ============================================================
    # SERIALIZATION
    # ============================================================

    def proposal_counts(self, job_ids: List) -> Dict:
        """Applications per job in a single aggregation."""
        if not job_ids:
            return {}
        pipeline = [
            {"$match": {"jobId": {"$in": list(job_ids)}}},
            {"$group": {"_id": "$jobId", "count": {"$sum": 1}}},
        ]
        return {row["_id"]: row["count"] for row in self.applications.aggregate(pipeline)}

    def serialize_jobs(self, jobs: List[dict], university: str, with_proposals: bool = False) -> List[dict]:
        resolved = user_refs(self.db, [job.get(k) for job in jobs for k in ("postedBy", "assignedTo")])
        counts = self.proposal_counts([job["_id"] for job in jobs]) if with_proposals else {}

        items = []
        for job in jobs:
            item = serialize_doc(job)
            item["postedBy"] = ref_json(job.get("postedBy"), resolved, university)
            item["assignedTo"] = ref_json(job.get("assignedTo"), resolved, university)
            if with_proposals:
                item["proposalCount"] = counts.get(job["_id"], 0)
            items.append(item)
        return items

    def serialize_job(self, job: dict, university: str, with_proposals: bool = False) -> dict:
        return self.serialize_jobs([job], university, with_proposals)[0]

    # ============================================================
    # CREATE / READ
    # ============================================================

    def create_job(self, user: dict, payload: JobCreate) -> dict:
        university = require_campus(
            user, "Please complete your profile (university is required) before posting jobs"
        )
        deadline = as_naive_utc(payload.deadline)
        if deadline <= utcnow():
            raise InvalidInput("Deadline must be in the future")

        now = utcnow()
        doc = {
            "title": payload.title,
            "category": payload.category,
            "description": payload.description,
            "budget": float(payload.budget),
            "deadline": deadline,
            "experienceLevel": payload.experience_level.value,
            "skillsRequired": [s.strip() for s in payload.skills_required if s and s.strip()],
            "postedBy": user["_id"],
            "university": university,
            "status": OPEN,
            "assignedTo": None,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        logger.info("Job %s created by %s", doc["_id"], user["_id"])
        return self.serialize_job(doc, university)

    def list_jobs(
        self,
        user: dict,
        pagination: Pagination,
        search: Optional[str] = None,
        category: Optional[str] = None,
        experience_level: Optional[str] = None,
        min_budget: Optional[float] = None,
        max_budget: Optional[float] = None,
    ) -> dict:
        """Open jobs on the caller's campus, excluding the caller's own."""
        university = require_campus(user)

        query = {"university": university, "postedBy": {"$ne": user["_id"]}, "status": OPEN}
        if search and search.strip():
            pattern = contains(search.strip())
            query["$or"] = [
                {"title": pattern},
                {"description": pattern},
                {"skillsRequired": pattern},
            ]
        if category and category.strip():
            query["category"] = contains(category.strip())
        if experience_level:
            query["experienceLevel"] = experience_level
        if min_budget is not None or max_budget is not None:
            query["budget"] = {}
            if min_budget is not None:
                query["budget"]["$gte"] = min_budget
            if max_budget is not None:
                query["budget"]["$lte"] = max_budget

        return self._page(query, pagination, university, with_proposals=True)

    def list_my_jobs(self, user: dict, pagination: Pagination) -> dict:
        university = require_campus(user)
        return self._page({"postedBy": user["_id"]}, pagination, university)

    def list_assigned_jobs(self, user: dict, pagination: Pagination) -> dict:
        university = require_campus(user)
        return self._page({"assignedTo": user["_id"], "university": university}, pagination, university)

    def get_job(self, user: dict, job_id: str) -> dict:
        university = require_campus(user)
        job = self.find_job(job_id)
        ensure_same_campus(job.get("university"), university, "You can only access jobs from your university")
        return self.serialize_job(job, university, with_proposals=True)

    def count_freelancer_completed_jobs(self, user: dict, freelancer_id: str) -> int:
        university = require_campus(user)
        return self.collection.count_documents({
            "assignedTo": to_object_id(freelancer_id, "freelancerId"),
            "status": {"$in": [COMPLETED, CLOSED]},
            "university": university,
        })

    # ============================================================
    # TRANSITIONS
    # ============================================================

    def start_job(self, user: dict, job_id: str, freelancer_id: str) -> dict:
        job = self.find_job(job_id)
        if job.get("postedBy") != user["_id"]:
            raise Forbidden("Only the job owner can start a job")
        if job["status"] != OPEN:
            raise Conflict(f"Cannot start job. Current status: {job['status']}")

        freelancer_oid = to_object_id(freelancer_id, "freelancerId")
        if freelancer_oid == user["_id"]:
            raise InvalidInput("You cannot assign your own job to yourself")
        freelancer = self.users.find_one({"_id": freelancer_oid}, {"university": 1})
        if not freelancer:
            raise NotFound("Freelancer not found")
        if freelancer.get("university") != job.get("university"):
            raise InvalidInput("Freelancer must be from the same university")

        now = utcnow()
        # The job update decides the winner of concurrent starts
        started = self.collection.find_one_and_update(
            {"_id": job["_id"], "status": OPEN},
            {"$set": {"status": IN_PROGRESS, "assignedTo": freelancer_oid, "updatedAt": now}},
            return_document=ReturnDocument.AFTER,
        )
        if started is None:
            raise Conflict("Job has already been started")

        self.applications.update_many(
            {"jobId": job["_id"], "freelancerId": {"$ne": freelancer_oid}, "status": ApplicationStatus.pending.value},
            {"$set": {"status": ApplicationStatus.declined.value, "updatedAt": now}},
        )
        self.applications.update_one(
            {"jobId": job["_id"], "freelancerId": freelancer_oid},
            {"$set": {"status": ApplicationStatus.accepted.value, "updatedAt": now}},
        )
        logger.info("Job %s started with freelancer %s", job["_id"], freelancer_oid)
        return self.serialize_job(started, started["university"])

    def submit_work(self, user: dict, job_id: str) -> dict:
        return self._transition(
            user, job_id,
            actor="assignedTo",
            expected=IN_PROGRESS,
            target=COMPLETED,
            forbidden="Only the assigned freelancer can submit work",
            action="submit work",
        )

    def complete_job(self, user: dict, job_id: str) -> dict:
        return self._transition(
            user, job_id,
            actor="postedBy",
            expected=IN_PROGRESS,
            target=COMPLETED,
            forbidden="Only the job owner can mark job as completed",
            action="complete job",
        )

    def confirm_job(self, user: dict, job_id: str) -> dict:
        return self._transition(
            user, job_id,
            actor="assignedTo",
            expected=COMPLETED,
            target=CLOSED,
            forbidden="Only the assigned freelancer can confirm job completion",
            action="confirm job",
        )

    def close_reviewed_job(self, job_id) -> bool:
        """COMPLETED -> CLOSED after the client's review has been stored."""
        result = self.collection.update_one(
            {"_id": job_id, "status": COMPLETED},
            {"$set": {"status": CLOSED, "updatedAt": utcnow()}},
        )
        return result.modified_count == 1

    # ============================================================
    # HELPERS
    # ============================================================

    def find_job(self, job_id) -> dict:
        job = self.collection.find_one({"_id": to_object_id(job_id, "job id")})
        if not job:
            raise NotFound("Job not found")
        return job

    def _transition(self, user: dict, job_id: str, actor: str, expected: str, target: str,
                    forbidden: str, action: str) -> dict:
        job = self.find_job(job_id)
        if job.get(actor) is None or job.get(actor) != user["_id"]:
            raise Forbidden(forbidden)
        if job["status"] != expected:
            raise Conflict(f"Cannot {action}. Current status: {job['status']}")

        updated = self.collection.find_one_and_update(
            {"_id": job["_id"], "status": expected, actor: user["_id"]},
            {"$set": {"status": target, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise Conflict(f"Cannot {action}. Job status changed")
        logger.info("Job %s moved %s -> %s", job["_id"], expected, target)
        return self.serialize_job(updated, updated["university"])

    def _page(self, query: dict, pagination: Pagination, university: str, with_proposals: bool = False) -> dict:
        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .skip(pagination.skip)
            .limit(pagination.limit)
        )
        jobs = campus_filter(cursor, university, lambda job: job.get("university"))
        return pagination.envelope(self.serialize_jobs(jobs, university, with_proposals), total)
