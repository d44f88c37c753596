# tests/test_jobs.py
from datetime import timedelta

import pytest
from bson import ObjectId

from unihub.db.mongodb import utcnow
from unihub.services.job_service import JobService


async def apply(client, headers, job_id, message="I can do this"):
    return await client.post(
        "/api/applications",
        json={"jobId": job_id, "message": message, "phone": "9876543210"},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_campus_job_lifecycle(client, db, make_user, auth_headers, make_job):
    """Post, apply, cross-campus rejection, start, submit, review, duplicate review."""
    a = make_user("a@srmap.edu.in", university="SRM_AP")
    b = make_user("b@srmap.edu.in", university="SRM_AP")
    c = make_user("c@kluniversity.in", university="KLU")

    job = await make_job(a, budget=100)
    assert job["status"] == "OPEN"
    assert job["university"] == "SRM_AP"
    assert job["assignedTo"] is None

    r = await apply(client, auth_headers(b), job["_id"])
    assert r.status_code == 201, r.text
    application_id = r.json()["data"]["application"]["_id"]
    assert r.json()["data"]["application"]["status"] == "PENDING"

    r = await apply(client, auth_headers(c), job["_id"])
    assert r.status_code == 403

    r = await client.put(f"/api/jobs/{job['_id']}/start", json={"freelancerId": str(b["_id"])}, headers=auth_headers(a))
    assert r.status_code == 200, r.text
    started = r.json()["data"]["job"]
    assert started["status"] == "IN_PROGRESS"
    assert started["assignedTo"]["_id"] == str(b["_id"])
    assert db.applications.find_one({"_id": ObjectId(application_id)})["status"] == "ACCEPTED"

    r = await client.put(f"/api/jobs/{job['_id']}/submit-work", headers=auth_headers(b))
    assert r.status_code == 200
    assert r.json()["data"]["job"]["status"] == "COMPLETED"

    r = await client.post("/api/reviews", json={"jobId": job["_id"], "rating": 5}, headers=auth_headers(a))
    assert r.status_code == 201, r.text
    assert db.jobs.find_one({"_id": ObjectId(job["_id"])})["status"] == "CLOSED"

    r = await client.post("/api/reviews", json={"jobId": job["_id"], "rating": 4}, headers=auth_headers(a))
    assert r.status_code == 409
    assert db.reviews.count_documents({"jobId": ObjectId(job["_id"])}) == 1


@pytest.mark.asyncio
async def test_create_job_requires_future_deadline(client, make_user, auth_headers):
    poster = make_user("past@srmap.edu.in")
    r = await client.post(
        "/api/jobs",
        json={
            "title": "Late job",
            "category": "Design",
            "description": "Too late",
            "budget": 10,
            "deadline": (utcnow() - timedelta(days=1)).isoformat(),
            "experienceLevel": "Beginner",
        },
        headers=auth_headers(poster),
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Deadline must be in the future"


@pytest.mark.asyncio
async def test_create_job_requires_campus(client, make_user, auth_headers, future_deadline):
    poster = make_user("nocampus@srmap.edu.in", complete=False)
    r = await client.post(
        "/api/jobs",
        json={
            "title": "Job",
            "category": "Design",
            "description": "Desc",
            "budget": 10,
            "deadline": future_deadline,
            "experienceLevel": "Beginner",
        },
        headers=auth_headers(poster),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_job_validation(client, make_user, auth_headers, future_deadline):
    poster = make_user("invalid@srmap.edu.in")
    r = await client.post(
        "/api/jobs",
        json={"title": "Job", "category": "Design", "description": "Desc", "budget": -5,
              "deadline": future_deadline, "experienceLevel": "Beginner"},
        headers=auth_headers(poster),
    )
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_job_feed_is_campus_scoped(client, make_user, auth_headers, make_job):
    me = make_user("me@srmap.edu.in", university="SRM_AP")
    peer = make_user("peer@srmap.edu.in", university="SRM_AP")
    other = make_user("other@kluniversity.in", university="KLU")

    await make_job(me, title="My own job")
    visible = await make_job(peer, title="Peer job")
    await make_job(other, title="Other campus job")

    r = await client.get("/api/jobs", headers=auth_headers(me))
    assert r.status_code == 200
    data = r.json()["data"]
    assert [j["title"] for j in data["items"]] == ["Peer job"]
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["limit"] == 20
    assert data["totalPages"] == 1
    assert data["items"][0]["_id"] == visible["_id"]
    assert data["items"][0]["proposalCount"] == 0
    assert data["items"][0]["postedBy"]["name"] == peer["name"]


@pytest.mark.asyncio
async def test_job_feed_filters(client, make_user, auth_headers, make_job):
    me = make_user("filter@srmap.edu.in")
    poster = make_user("poster@srmap.edu.in")
    await make_job(poster, title="Logo design", category="Graphic Design", budget=50, experienceLevel="Beginner")
    await make_job(poster, title="Django API", category="Web Development", budget=500, experienceLevel="Expert")
    await make_job(poster, title="Poster (A3) print", category="Printing", budget=20, experienceLevel="Beginner")
    headers = auth_headers(me)

    r = await client.get("/api/jobs", params={"search": "django"}, headers=headers)
    assert [j["title"] for j in r.json()["data"]["items"]] == ["Django API"]

    r = await client.get("/api/jobs", params={"category": "design"}, headers=headers)
    assert [j["title"] for j in r.json()["data"]["items"]] == ["Logo design"]

    r = await client.get("/api/jobs", params={"experienceLevel": "Beginner", "maxBudget": 30}, headers=headers)
    assert [j["title"] for j in r.json()["data"]["items"]] == ["Poster (A3) print"]

    r = await client.get("/api/jobs", params={"minBudget": 40}, headers=headers)
    assert r.json()["data"]["total"] == 2

    # regex metacharacters are matched literally
    r = await client.get("/api/jobs", params={"search": "(A3)"}, headers=headers)
    assert r.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_job_feed_pagination(client, make_user, auth_headers, make_job):
    me = make_user("pages@srmap.edu.in")
    poster = make_user("many@srmap.edu.in")
    for i in range(5):
        await make_job(poster, title=f"Job {i}")

    r = await client.get("/api/jobs", params={"page": 2, "limit": 2}, headers=auth_headers(me))
    data = r.json()["data"]
    assert data["count"] == 2
    assert data["total"] == 5
    assert data["totalPages"] == 3
    assert data["page"] == 2

    r = await client.get("/api/jobs", params={"limit": 1000}, headers=auth_headers(me))
    assert r.json()["data"]["limit"] == 100

    r = await client.get("/api/jobs", params={"page": 0}, headers=auth_headers(me))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_get_job(client, make_user, auth_headers, make_job):
    poster = make_user("getter@srmap.edu.in")
    freelancer = make_user("applicant@srmap.edu.in")
    stranger = make_user("stranger@kluniversity.in", university="KLU")
    job = await make_job(poster)
    await apply(client, auth_headers(freelancer), job["_id"])

    r = await client.get(f"/api/jobs/{job['_id']}", headers=auth_headers(freelancer))
    assert r.status_code == 200
    assert r.json()["data"]["job"]["proposalCount"] == 1

    r = await client.get(f"/api/jobs/{job['_id']}", headers=auth_headers(stranger))
    assert r.status_code == 403

    r = await client.get(f"/api/jobs/{ObjectId()}", headers=auth_headers(poster))
    assert r.status_code == 404

    r = await client.get("/api/jobs/not-an-id", headers=auth_headers(poster))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_start_job_declines_other_applications(client, db, make_user, auth_headers, make_job):
    poster = make_user("boss@srmap.edu.in")
    chosen = make_user("chosen@srmap.edu.in")
    other = make_user("notchosen@srmap.edu.in")
    job = await make_job(poster)
    await apply(client, auth_headers(chosen), job["_id"])
    await apply(client, auth_headers(other), job["_id"])

    r = await client.put(f"/api/jobs/{job['_id']}/start", json={"freelancerId": str(chosen["_id"])}, headers=auth_headers(poster))
    assert r.status_code == 200

    statuses = {a["freelancerId"]: a["status"] for a in db.applications.find({"jobId": ObjectId(job["_id"])})}
    assert statuses == {chosen["_id"]: "ACCEPTED", other["_id"]: "DECLINED"}

    # double start
    r = await client.put(f"/api/jobs/{job['_id']}/start", json={"freelancerId": str(other["_id"])}, headers=auth_headers(poster))
    assert r.status_code == 409
    stored = db.jobs.find_one({"_id": ObjectId(job["_id"])})
    assert stored["assignedTo"] == chosen["_id"]


@pytest.mark.asyncio
async def test_start_job_rules(client, make_user, auth_headers, make_job):
    poster = make_user("rules@srmap.edu.in")
    freelancer = make_user("helper@srmap.edu.in")
    outsider = make_user("outsider@kluniversity.in", university="KLU")
    job = await make_job(poster)
    url = f"/api/jobs/{job['_id']}/start"

    r = await client.put(url, json={"freelancerId": str(freelancer["_id"])}, headers=auth_headers(freelancer))
    assert r.status_code == 403

    r = await client.put(url, json={"freelancerId": str(outsider["_id"])}, headers=auth_headers(poster))
    assert r.status_code == 400

    r = await client.put(url, json={"freelancerId": str(ObjectId())}, headers=auth_headers(poster))
    assert r.status_code == 404

    r = await client.put(url, json={}, headers=auth_headers(poster))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_transitions_are_ordered(client, db, make_user, auth_headers, make_job):
    poster = make_user("order@srmap.edu.in")
    freelancer = make_user("worker@srmap.edu.in")
    job = await make_job(poster)
    base = f"/api/jobs/{job['_id']}"

    # nothing but start is allowed on an OPEN job
    r = await client.put(f"{base}/complete", headers=auth_headers(poster))
    assert r.status_code == 409
    r = await client.put(f"{base}/submit-work", headers=auth_headers(freelancer))
    assert r.status_code == 403

    await client.put(f"{base}/start", json={"freelancerId": str(freelancer["_id"])}, headers=auth_headers(poster))

    r = await client.put(f"{base}/confirm", headers=auth_headers(freelancer))
    assert r.status_code == 409
    assert db.jobs.find_one({"_id": ObjectId(job["_id"])})["status"] == "IN_PROGRESS"

    r = await client.put(f"{base}/complete", headers=auth_headers(freelancer))
    assert r.status_code == 403

    r = await client.put(f"{base}/complete", headers=auth_headers(poster))
    assert r.status_code == 200
    assert r.json()["data"]["job"]["status"] == "COMPLETED"

    r = await client.put(f"{base}/submit-work", headers=auth_headers(freelancer))
    assert r.status_code == 409

    r = await client.put(f"{base}/confirm", headers=auth_headers(poster))
    assert r.status_code == 403

    r = await client.put(f"{base}/confirm", headers=auth_headers(freelancer))
    assert r.status_code == 200
    assert r.json()["data"]["job"]["status"] == "CLOSED"


@pytest.mark.asyncio
async def test_my_and_assigned_jobs(client, make_user, auth_headers, make_job):
    poster = make_user("mine@srmap.edu.in")
    freelancer = make_user("assigned@srmap.edu.in")
    job = await make_job(poster)
    await make_job(poster, title="Second")
    await client.put(f"/api/jobs/{job['_id']}/start", json={"freelancerId": str(freelancer["_id"])}, headers=auth_headers(poster))

    r = await client.get("/api/jobs/my", headers=auth_headers(poster))
    assert r.json()["data"]["total"] == 2

    r = await client.get("/api/jobs/assigned", headers=auth_headers(freelancer))
    items = r.json()["data"]["items"]
    assert [j["_id"] for j in items] == [job["_id"]]
    assert items[0]["postedBy"]["_id"] == str(poster["_id"])


@pytest.mark.asyncio
async def test_freelancer_completed_count_is_campus_scoped(client, db, make_user, auth_headers):
    freelancer = make_user("count@srmap.edu.in")
    viewer = make_user("viewer@srmap.edu.in")
    now = utcnow()
    db.jobs.insert_many([
        {"assignedTo": freelancer["_id"], "status": "COMPLETED", "university": "SRM_AP", "createdAt": now},
        {"assignedTo": freelancer["_id"], "status": "CLOSED", "university": "SRM_AP", "createdAt": now},
        {"assignedTo": freelancer["_id"], "status": "IN_PROGRESS", "university": "SRM_AP", "createdAt": now},
        {"assignedTo": freelancer["_id"], "status": "CLOSED", "university": "KLU", "createdAt": now},
    ])
    r = await client.get(f"/api/jobs/freelancer/{freelancer['_id']}/completed", headers=auth_headers(viewer))
    assert r.status_code == 200
    assert r.json()["data"]["count"] == 2


@pytest.mark.asyncio
async def test_unknown_route_is_json_404(client):
    r = await client.get("/api/nothing-here")
    assert r.status_code == 404
    assert r.json()["success"] is False


def stale_find_job(monkeypatch, change):
    """Make find_job return the stored job, then apply `change` to the store before the guarded update."""
    original = JobService.find_job

    def find_job(self, job_id):
        job = original(self, job_id)
        self.collection.update_one({"_id": job["_id"]}, {"$set": change})
        return job

    monkeypatch.setattr(JobService, "find_job", find_job)


@pytest.mark.asyncio
async def test_start_job_loses_race(client, db, monkeypatch, make_user, auth_headers, make_job):
    poster = make_user("race-client@srmap.edu.in")
    freelancer = make_user("race-free@srmap.edu.in")
    rival = make_user("race-rival@srmap.edu.in")
    job = await make_job(poster)
    await apply(client, auth_headers(freelancer), job["_id"])

    stale_find_job(monkeypatch, {"status": "IN_PROGRESS", "assignedTo": rival["_id"]})
    r = await client.put(
        f"/api/jobs/{job['_id']}/start",
        json={"freelancerId": str(freelancer["_id"])},
        headers=auth_headers(poster),
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Job has already been started"

    stored = db.jobs.find_one({"_id": ObjectId(job["_id"])})
    assert stored["assignedTo"] == rival["_id"]
    application = db.applications.find_one({"jobId": ObjectId(job["_id"])})
    assert application["status"] == "PENDING"


@pytest.mark.asyncio
async def test_submit_work_loses_race(client, db, monkeypatch, make_user, auth_headers, make_job):
    poster = make_user("race2-client@srmap.edu.in")
    freelancer = make_user("race2-free@srmap.edu.in")
    job = await make_job(poster)
    r = await client.put(
        f"/api/jobs/{job['_id']}/start",
        json={"freelancerId": str(freelancer["_id"])},
        headers=auth_headers(poster),
    )
    assert r.status_code == 200

    # the poster completes the job between the read and the update
    stale_find_job(monkeypatch, {"status": "COMPLETED"})
    r = await client.put(f"/api/jobs/{job['_id']}/submit-work", headers=auth_headers(freelancer))
    assert r.status_code == 409
    assert "status changed" in r.json()["message"]
    assert db.jobs.find_one({"_id": ObjectId(job["_id"])})["status"] == "COMPLETED"
