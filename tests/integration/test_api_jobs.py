from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from jotrack.db.models import StatusHistory
from jotrack.db.session import SessionLocal


def _create(client: TestClient, **fields) -> dict:
    payload = {"title": "Backend Engineer", "company": "Acme"} | fields
    response = client.post("/api/jobs", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_job_crud_round_trip(client: TestClient) -> None:
    job = _create(client, notes="Referral", location="Berlin")
    assert job["status"] == "ON_RADAR"
    assert job["coach_status"] == "not_started"

    fetched = client.get(f"/api/jobs/{job['id']}").json()
    assert fetched["notes"] == "Referral"

    patched = client.patch(f"/api/jobs/{job['id']}", json={"location": "Remote"})
    assert patched.status_code == 200
    assert patched.json()["location"] == "Remote"
    assert patched.json()["notes"] == "Referral"

    assert client.patch(f"/api/jobs/{job['id']}", json={}).status_code == 400
    assert client.get("/api/jobs/999").status_code == 404


def test_create_job_validation(client: TestClient) -> None:
    assert client.post("/api/jobs", json={"title": "", "company": "Acme"}).status_code == 422
    response = client.post("/api/jobs", json={"title": "Engineer", "company": "Acme", "status": "LIMBO"})
    assert response.status_code == 400
    assert "unknown status" in response.json()["detail"]


def test_status_change_and_history(client: TestClient) -> None:
    job = _create(client)

    response = client.post(f"/api/jobs/{job['id']}/status", json={"status": "Applied"})
    assert response.status_code == 200
    assert response.json()["status"] == "APPLIED"
    assert response.json()["applied_at"] is not None
    client.post(f"/api/jobs/{job['id']}/status", json={"status": "APPLIED"})

    history = client.get(f"/api/jobs/{job['id']}/history").json()
    assert [row["status"] for row in history] == ["ON_RADAR", "APPLIED"]

    with SessionLocal() as session:
        count = session.scalar(select(func.count(StatusHistory.id)).where(StatusHistory.job_id == job["id"]))
    assert count == 2


def test_list_filters_and_pagination(client: TestClient) -> None:
    first = _create(client, title="One")
    second = _create(client, title="Two", status="OFFER")
    third = _create(client, title="Three", status="REJECTED")

    page = client.get("/api/jobs", params={"limit": 2}).json()
    assert page["total"] == 3
    assert [item["id"] for item in page["items"]] == [third["id"], second["id"]]

    filtered = client.get("/api/jobs", params={"status": "OFFER,REJECTED"}).json()
    assert {item["id"] for item in filtered["items"]} == {second["id"], third["id"]}

    repeated = client.get("/api/jobs", params=[("status", "ON_RADAR"), ("status", "OFFER")]).json()
    assert {item["id"] for item in repeated["items"]} == {first["id"], second["id"]}


def test_search_endpoint(client: TestClient) -> None:
    kotlin = _create(client, title="Kotlin Engineer", company="JetBrains")
    _create(client, title="Swift Engineer", company="Apple", notes="Kotlin curious")

    results = client.get("/api/jobs/search", params={"q": "kotl"}).json()
    assert len(results) == 2

    titled = client.get("/api/jobs/search", params={"q": "jetbrains kotlin"}).json()
    assert [row["id"] for row in titled] == [kotlin["id"]]

    assert client.get("/api/jobs/search", params={"q": "***"}).json() == []
    assert client.get("/api/jobs/search", params={"sort": "random"}).status_code == 400


def test_duplicates_and_bulk_status(client: TestClient) -> None:
    first = _create(client)
    second = _create(client, title="backend   engineer", company="ACME")

    dupes = client.get("/api/jobs/duplicates", params={"title": "Backend Engineer", "company": "acme"}).json()
    assert {row["id"] for row in dupes} == {first["id"], second["id"]}

    response = client.post("/api/jobs/bulk-status", json={"job_ids": [first["id"], second["id"]], "status": "REJECTED"})
    assert response.status_code == 200
    assert [row["status"] for row in response.json()] == ["REJECTED", "REJECTED"]

    missing = client.post("/api/jobs/bulk-status", json={"job_ids": [first["id"], 9999], "status": "OFFER"})
    assert missing.status_code == 404
    assert client.get(f"/api/jobs/{first['id']}").json()["status"] == "REJECTED"


def test_trash_restore_and_purge(client: TestClient) -> None:
    job = _create(client)

    deleted = client.delete(f"/api/jobs/{job['id']}").json()
    assert deleted["deleted_at"] is not None
    assert deleted["permanent_delete_at"] is not None
    assert client.get(f"/api/jobs/{job['id']}").status_code == 404
    assert client.get("/api/jobs").json()["total"] == 0
    assert client.get("/api/jobs", params={"include_deleted": True}).json()["total"] == 1

    assert client.post(f"/api/jobs/{job['id']}/restore").status_code == 200
    assert client.get(f"/api/jobs/{job['id']}").status_code == 200

    assert client.delete(f"/api/jobs/{job['id']}/purge").json() == {"purged": job["id"]}
    assert client.get(f"/api/jobs/{job['id']}/history").status_code == 404


def test_archive_round_trip(client: TestClient) -> None:
    job = _create(client)

    archived = client.post(f"/api/jobs/{job['id']}/archive").json()
    assert archived["archived_at"] is not None
    assert client.get("/api/jobs", params={"include_archived": False}).json()["total"] == 0

    unarchived = client.post(f"/api/jobs/{job['id']}/unarchive").json()
    assert unarchived["archived_at"] is None


def test_people_endpoints(client: TestClient) -> None:
    job = _create(client)
    other = _create(client, title="SRE")

    created = client.post(
        f"/api/jobs/{job['id']}/people",
        json={"name": "Dana", "linkedin_url": "https://linkedin.com/in/dana", "rel_type": "recruiter"},
    )
    assert created.status_code == 201
    person = created.json()
    assert person["rel_type"] == "recruiter"

    reused = client.post(
        f"/api/jobs/{other['id']}/people",
        json={"name": "Dana S.", "linkedin_url": "https://linkedin.com/in/dana", "rel_type": "peer"},
    ).json()
    assert reused["id"] == person["id"]
    assert len(client.get("/api/people").json()) == 1

    relinked = client.post(f"/api/jobs/{job['id']}/people/{person['id']}", json={"rel_type": "hiring_manager"})
    assert relinked.json()["rel_type"] == "hiring_manager"

    listed = client.get(f"/api/jobs/{job['id']}/people", params={"rel_type": "hiring_manager"}).json()
    assert [row["id"] for row in listed] == [person["id"]]
    assert client.get(f"/api/jobs/{job['id']}/people", params={"rel_type": "boss"}).status_code == 400

    updated = client.patch(f"/api/people/{person['id']}", json={"title": "Talent Partner"}).json()
    assert updated["title"] == "Talent Partner"

    assert client.delete(f"/api/jobs/{job['id']}/people/{person['id']}").json() == {"unlinked": person["id"]}
    assert client.delete(f"/api/jobs/{job['id']}/people/{person['id']}").status_code == 404
    assert client.post(f"/api/jobs/{job['id']}/people", json={"name": "X", "rel_type": "friend"}).status_code == 422


def test_status_pipeline_metadata(client: TestClient) -> None:
    steps = client.get("/api/statuses").json()

    assert [step["status"] for step in steps] == ["ON_RADAR", "APPLIED", "PHONE_SCREEN", "ONSITE", "OFFER", "REJECTED"]
    onsite = steps[3]
    assert onsite["label"] == "Onsite"
    assert onsite["allows_multiple_interviewers"] is True
    assert onsite["journey_phases"][0] == "Prep for next interview"
