# tests/test_users.py
from datetime import timedelta

import pytest

from unihub.db.mongodb import utcnow

PROFILE = {
    "name": "Asha Rao",
    "skills": ["python", " figma "],
    "about": "Third year CSE",
}


@pytest.mark.asyncio
async def test_get_me_for_fresh_user(client, make_user, auth_headers):
    user = make_user("fresh@srmap.edu.in", complete=False)
    r = await client.get("/api/users/me", headers=auth_headers(user))
    assert r.status_code == 200
    data = r.json()["data"]["user"]
    assert data["profileComplete"] is False
    assert data["isUniversityVerified"] is False
    assert data["skills"] == []


@pytest.mark.asyncio
async def test_initial_setup_sets_university(client, db, make_user, auth_headers):
    user = make_user("setup@srmap.edu.in", complete=False)
    r = await client.put(
        "/api/users/me",
        json={**PROFILE, "university": "SRM_AP", "yearOfStudy": "3", "profession": "Student"},
        headers=auth_headers(user),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Profile setup completed successfully"
    data = body["data"]["user"]
    assert data["university"] == "SRM_AP"
    assert data["skills"] == ["python", "figma"]
    assert data["profileComplete"] is True
    assert data["profession"] == "Student"
    assert db.users.find_one({"_id": user["_id"]})["yearOfStudy"] == "3"


@pytest.mark.asyncio
async def test_university_cannot_change(client, db, make_user, auth_headers):
    user = make_user("locked@srmap.edu.in", university="SRM_AP")
    r = await client.put("/api/users/me", json={**PROFILE, "university": "KLU"}, headers=auth_headers(user))
    assert r.status_code == 403
    assert db.users.find_one({"_id": user["_id"]})["university"] == "SRM_AP"


@pytest.mark.asyncio
async def test_same_university_is_ignored(client, make_user, auth_headers):
    user = make_user("same@srmap.edu.in", university="SRM_AP")
    r = await client.put("/api/users/me", json={**PROFILE, "university": "SRM_AP"}, headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json()["message"] == "Profile updated successfully"


@pytest.mark.asyncio
async def test_unknown_university_rejected(client, make_user, auth_headers):
    user = make_user("unknown@srmap.edu.in", complete=False)
    r = await client.put("/api/users/me", json={**PROFILE, "university": "MIT"}, headers=auth_headers(user))
    assert r.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["name", "skills", "about"])
async def test_required_profile_fields(client, make_user, auth_headers, missing):
    user = make_user(f"req-{missing}@srmap.edu.in", complete=False)
    body = {**PROFILE, "university": "SRM_AP"}
    body[missing] = [] if missing == "skills" else "   "
    r = await client.put("/api/users/me", json=body, headers=auth_headers(user))
    assert r.status_code == 400
    assert "required" in r.json()["message"]


@pytest.mark.asyncio
async def test_optional_fields_only_change_when_sent(client, db, make_user, auth_headers):
    user = make_user("opt@srmap.edu.in")
    headers = auth_headers(user)

    await client.put("/api/users/me", json={**PROFILE, "yearOfStudy": "2", "profileImage": "https://x/y.png"}, headers=headers)
    await client.put("/api/users/me", json=PROFILE, headers=headers)
    stored = db.users.find_one({"_id": user["_id"]})
    assert stored["yearOfStudy"] == "2"
    assert stored["profileImage"] == "https://x/y.png"

    await client.put("/api/users/me", json={**PROFILE, "yearOfStudy": None, "profession": ""}, headers=headers)
    stored = db.users.find_one({"_id": user["_id"]})
    assert stored["yearOfStudy"] is None
    assert stored["profession"] is None
    assert stored["profileImage"] == "https://x/y.png"


# ============================================================
# UNIVERSITY EMAIL VERIFICATION
# ============================================================

@pytest.mark.asyncio
async def test_university_verification_flow(client, db, mailer, make_user, auth_headers):
    user = make_user("personal@gmail.com", university="SRM_AP")
    headers = auth_headers(user)

    r = await client.post(
        "/api/users/request-university-verification",
        json={"universityEmail": "Asha.R@cse.SRMAP.edu.in"},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["data"]["pendingUniversityEmail"] == "asha.r@cse.srmap.edu.in"

    stored = db.users.find_one({"_id": user["_id"]})
    code = stored["universityVerificationOtp"]
    assert code in mailer.to("asha.r@cse.srmap.edu.in")[0].html

    r = await client.post("/api/users/verify-university-email", json={"otp": "999999x"}, headers=headers)
    assert r.status_code == 401

    r = await client.post("/api/users/verify-university-email", json={"otp": code}, headers=headers)
    assert r.status_code == 200
    data = r.json()["data"]["user"]
    assert data["isUniversityVerified"] is True
    assert data["universityEmail"] == "asha.r@cse.srmap.edu.in"

    stored = db.users.find_one({"_id": user["_id"]})
    assert stored["pendingUniversityEmail"] is None
    assert stored["universityVerificationOtp"] is None

    r = await client.post(
        "/api/users/request-university-verification",
        json={"universityEmail": "other@srmap.edu.in"},
        headers=headers,
    )
    assert r.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["asha@kluniversity.in", "asha@fakesrmap.edu.in", "asha@srmap.edu.in.evil.com"])
async def test_university_email_must_match_domain(client, make_user, auth_headers, address):
    user = make_user("domain@gmail.com", university="SRM_AP")
    r = await client.post(
        "/api/users/request-university-verification",
        json={"universityEmail": address},
        headers=auth_headers(user),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_university_verification_requires_university(client, make_user, auth_headers):
    user = make_user("nouni@gmail.com", complete=False)
    r = await client.post(
        "/api/users/request-university-verification",
        json={"universityEmail": "a@srmap.edu.in"},
        headers=auth_headers(user),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_confirm_without_pending_request(client, make_user, auth_headers):
    user = make_user("nopending@gmail.com")
    r = await client.post("/api/users/verify-university-email", json={"otp": "123456"}, headers=auth_headers(user))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_confirm_after_expiry_clears_pending(client, db, make_user, auth_headers):
    user = make_user("slow@gmail.com", university="KLU")
    db.users.update_one({"_id": user["_id"]}, {"$set": {
        "pendingUniversityEmail": "slow@kluniversity.in",
        "universityVerificationOtp": "654321",
        "universityVerificationOtpExpiry": utcnow() - timedelta(minutes=1),
    }})
    r = await client.post("/api/users/verify-university-email", json={"otp": "654321"}, headers=auth_headers(user))
    assert r.status_code == 400
    stored = db.users.find_one({"_id": user["_id"]})
    assert stored["pendingUniversityEmail"] is None
    assert stored["isUniversityVerified"] is False


@pytest.mark.asyncio
async def test_confirm_with_non_ascii_digits_is_rejected(client, db, make_user, auth_headers):
    user = make_user("arabic@gmail.com")
    db.users.update_one({"_id": user["_id"]}, {"$set": {
        "pendingUniversityEmail": "arabic@srmap.edu.in",
        "universityVerificationOtp": "123456",
        "universityVerificationOtpExpiry": utcnow() + timedelta(minutes=5),
    }})
    r = await client.post(
        "/api/users/verify-university-email",
        json={"otp": "١٢٣٤٥٦"},
        headers=auth_headers(user),
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid OTP"
    assert db.users.find_one({"_id": user["_id"]})["isUniversityVerified"] is False
