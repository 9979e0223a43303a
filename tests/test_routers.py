"""HTTP-level tests for tasks, comments, jobs and notifications endpoints."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from projecthub.core.config import settings
from projecthub.db.enums import CollaboratorRole, Role
from projecthub.db.models import Notification
from projecthub.services import collaborator_service


def _headers(user):
    return {"X-User-Id": str(user.id)}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_requests_without_user_are_rejected(client):
    assert (await client.get("/me/notifications")).status_code == 401
    assert (await client.get("/me/notifications", headers={"X-User-Id": "nope"})).status_code == 401
    assert (
        await client.get("/me/notifications", headers={"X-User-Id": str(uuid.uuid4())})
    ).status_code == 401


@pytest.mark.asyncio
async def test_create_task_assigns_and_notifies(client, db, make_user, make_job, transport):
    u1 = make_user(name="Uma", email="uma@test.com")
    u2 = make_user(name="Vic", email="vic@test.com")
    j1 = make_job(title="Acme rebrand")

    response = await client.post(
        "/tasks",
        json={"title": "Draft brief", "job_id": str(j1.id), "assignee_ids": [str(u2.id)]},
        headers=_headers(u1),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["title"] == "Draft brief"
    assert body["assignee_ids"] == [str(u2.id)]
    assert collaborator_service.get_collaborator(db, j1.id, u2.id) is not None
    assert transport.sent_to() == ["vic@test.com"]

    inbox = await client.get("/me/notifications", headers=_headers(u2))
    assert inbox.status_code == 200
    data = inbox.json()
    assert data["unread_count"] == 1
    assert data["items"][0]["message"] == "Draft brief on Acme rebrand"


@pytest.mark.asyncio
async def test_create_task_validation_errors(client, make_user):
    u1 = make_user(name="Uma")

    missing_job = await client.post(
        "/tasks", json={"title": "x", "job_id": str(uuid.uuid4())}, headers=_headers(u1)
    )
    assert missing_job.status_code == 404

    unknown_user = await client.post(
        "/tasks", json={"title": "x", "assignee_ids": [str(uuid.uuid4())]}, headers=_headers(u1)
    )
    assert unknown_user.status_code == 400


@pytest.mark.asyncio
async def test_add_assignees_and_complete(client, db, make_user, make_job, transport):
    admin = make_user(name="Ada", email="ada@test.com", role=Role.ADMIN)
    worker = make_user(name="Vic", email="vic@test.com")
    job = make_job()
    collaborator_service.add_collaborator(db, job, admin.id)

    created = await client.post(
        "/tasks", json={"title": "Order tiles", "job_id": str(job.id)}, headers=_headers(admin)
    )
    task_id = created.json()["id"]

    added = await client.post(
        f"/tasks/{task_id}/assignees", json={"user_ids": [str(worker.id)]}, headers=_headers(admin)
    )
    assert added.status_code == 200
    assert added.json()["assignee_ids"] == [str(worker.id)]

    done = await client.post(f"/tasks/{task_id}/complete", headers=_headers(worker))
    assert done.status_code == 200
    assert done.json()["status"] == "DONE"

    count = await client.get("/me/notifications/count", headers=_headers(admin))
    assert count.json() == {"count": 1}


@pytest.mark.asyncio
async def test_unknown_task_is_404(client, make_user):
    u1 = make_user(name="Uma")
    response = await client.get(f"/tasks/{uuid.uuid4()}", headers=_headers(u1))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_comment_mention_flow(client, make_user, transport):
    author = make_user(name="Uma", email="uma@test.com")
    bob = make_user(name="Bob", email="bob@test.com")
    created = await client.post("/tasks", json={"title": "Draft brief"}, headers=_headers(author))
    task_id = created.json()["id"]

    response = await client.post(
        "/comments",
        json={"task_id": task_id, "body": "  @bob please check  "},
        headers=_headers(author),
    )

    assert response.status_code == 201
    assert response.json()["body"] == "@bob please check"
    assert response.json()["author_name"] == "Uma"
    assert transport.sent_to() == ["bob@test.com"]

    listed = await client.get(f"/tasks/{task_id}/comments", headers=_headers(bob))
    assert [c["body"] for c in listed.json()] == ["@bob please check"]

    missing_target = await client.post("/comments", json={"body": "hi"}, headers=_headers(author))
    assert missing_target.status_code == 400


@pytest.mark.asyncio
async def test_collaborator_endpoints(client, db, make_user, make_job, transport):
    owner = make_user(name="Uma")
    vic = make_user(name="Vic", email="vic@test.com")
    job = make_job(title="Acme rebrand")

    added = await client.post(
        f"/jobs/{job.id}/collaborators", json={"user_id": str(vic.id)}, headers=_headers(owner)
    )
    assert added.status_code == 201
    assert [c["user_id"] for c in added.json()] == [str(vic.id)]
    assert transport.sent_to() == ["vic@test.com"]

    # Adding again neither duplicates nor re-notifies
    again = await client.post(
        f"/jobs/{job.id}/collaborators",
        json={"user_id": str(vic.id), "role": "VIEWER"},
        headers=_headers(owner),
    )
    assert len(again.json()) == 1
    assert again.json()[0]["role"] == CollaboratorRole.COLLABORATOR.value
    assert len(transport.sent) == 1

    patched = await client.patch(
        f"/jobs/{job.id}/collaborators/{vic.id}", json={"role": "VIEWER"}, headers=_headers(owner)
    )
    assert patched.json()["role"] == "VIEWER"

    removed = await client.delete(f"/jobs/{job.id}/collaborators/{vic.id}", headers=_headers(owner))
    assert removed.status_code == 204
    assert collaborator_service.list_collaborators(db, job.id) == []


@pytest.mark.asyncio
async def test_notification_read_endpoints_and_settings(client, db, make_user):
    user = make_user(name="Vic")
    other = make_user(name="Wes")
    notes = []
    for title in ("a", "b"):
        note = Notification(user_id=user.id, type="TASK_ASSIGNED", title=title, message="m")
        db.add(note)
        notes.append(note)
    db.commit()

    forbidden = await client.patch(f"/me/notifications/{notes[0].id}/read", headers=_headers(other))
    assert forbidden.status_code == 404

    marked = await client.patch(f"/me/notifications/{notes[0].id}/read", headers=_headers(user))
    assert marked.json()["read"] is True

    all_read = await client.post("/me/notifications/read-all", headers=_headers(user))
    assert all_read.json() == {"updated": 1}

    prefs = await client.get("/me/notifications/settings", headers=_headers(user))
    assert prefs.json()["task_complete_email"] is True

    updated = await client.patch(
        "/me/notifications/settings", json={"assignment_email": False}, headers=_headers(user)
    )
    assert updated.json()["assignment_email"] is False
    assert updated.json()["assignment_in_app"] is True


@pytest.mark.asyncio
async def test_cleanup_endpoint_requires_cron_secret(client, db, make_user, monkeypatch):
    user = make_user(name="Vic")
    db.add(Notification(
        user_id=user.id,
        type="TASK_ASSIGNED",
        title="old",
        message="m",
        read=True,
        created_at=datetime.now(timezone.utc) - timedelta(days=45),
    ))
    db.commit()
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    denied = await client.post("/internal/cleanup-read-notifications")
    assert denied.status_code == 401

    response = await client.post(
        "/internal/cleanup-read-notifications", headers={"Authorization": "Bearer s3cret"}
    )
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 1
