from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from portal.config import settings

from conftest import PASSWORD


def deadline(days=3):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_task(api, assignee, creator=None, **extra):
    body = {"title": "Quarterly report", "description": "short", "longDescription": "long",
            "assignedTo": assignee.id, "deadline": deadline(), **extra}
    r = api.client.post("/tasks", json=body, headers=(creator or api.admin).headers)
    assert r.status_code == 201, r.text
    return r.json()


def upload(api, owner, name="notes.txt", content=b"hello", **form):
    r = api.client.post("/files", files={"file": (name, content, "text/plain")}, data=form,
                        headers=owner.headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_root(client):
    assert client.get("/").json()["name"] == settings.app_name


def test_manager_signup_requires_admin_approval(api):
    client = api.client
    pending = api.signup("m2@x.com", "manager")
    assert pending["isApproved"] is False

    r = client.post("/login", json={"email": "m2@x.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["kind"] == "PendingApproval"

    listed = client.get("/users/pending", headers=api.admin.headers).json()
    assert [u["id"] for u in listed] == [pending["id"]]
    assert client.get("/users/pending", headers=api.manager.headers).status_code == 403

    r = client.put(f"/users/{pending['id']}/approve", headers=api.manager.headers)
    assert r.status_code == 403
    r = client.put(f"/users/{pending['id']}/approve", headers=api.admin.headers)
    assert r.status_code == 200 and r.json()["isApproved"] is True
    assert client.get("/users/pending", headers=api.admin.headers).json() == []

    me = client.get("/users/me", headers=api.login("m2@x.com")).json()
    assert me["role"] == "manager"


def test_rejected_manager_is_removed(api):
    pending = api.signup("m3@x.com", "manager")
    r = api.client.delete(f"/users/{pending['id']}/reject", headers=api.admin.headers)
    assert r.json() == {"ok": True, "id": pending["id"]}

    r = api.client.post("/login", json={"email": "m3@x.com", "password": PASSWORD})
    assert r.status_code == 401


def test_duplicate_email_is_rejected(api):
    r = api.client.post("/users", json={"email": "Alice@x.com", "password": "another1", "role": "admin",
                                        "name": "Impostor"})
    assert r.status_code == 400
    assert r.json()["kind"] == "DuplicateEmail"

    me = api.client.get("/users/me", headers=api.alice.headers).json()
    assert me["name"] == "alice@x.com" and me["role"] == "user"


def test_wrong_password(client, api):
    r = client.post("/login", json={"email": "alice@x.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"detail": "Invalid credentials", "kind": "InvalidCredential"}


def test_passwords_never_leave_the_server(api):
    client = api.client
    responses = [
        client.post("/login", json={"email": "alice@x.com", "password": PASSWORD}),
        client.get("/users", headers=api.admin.headers),
        client.get("/users/me", headers=api.alice.headers),
        client.post("/files", files={"file": ("s.txt", b"s", "text/plain")}, data={"password": "filepass9"},
                    headers=api.alice.headers),
        client.get("/files", headers=api.admin.headers),
    ]
    for r in responses:
        assert r.status_code in (200, 201), r.text
        assert PASSWORD not in r.text
        assert "filepass9" not in r.text
        assert "passwordHash" not in r.text
        assert "$2b$" not in r.text


def test_validation_errors_do_not_echo_input(client):
    r = client.post("/users", json={"email": "short@x.com", "password": "sh0rt", "name": "S"})
    assert r.status_code == 422
    body = r.json()
    assert body["kind"] == "ValidationError"
    assert body["errors"][0]["loc"] == ["body", "password"]
    assert "sh0rt" not in r.text


def test_unauthenticated_requests(client):
    client.cookies.clear()
    r = client.get("/tasks")
    assert r.status_code == 401
    assert r.json()["kind"] == "InvalidCredential"

    r = client.get("/tasks", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


def test_login_cookie_authenticates_until_logout(client, api):
    client.cookies.clear()
    client.post("/login", json={"email": "bob@x.com", "password": PASSWORD})
    assert client.get("/users/me").json()["id"] == api.bob.id

    client.post("/logout")
    assert client.get("/users/me").status_code == 401


def test_directories(api):
    client = api.client
    assignable = client.get("/users/assignable", headers=api.manager.headers).json()
    assert sorted(u["id"] for u in assignable) == sorted([api.alice.id, api.bob.id])
    assert client.get("/users/assignable", headers=api.alice.headers).status_code == 403

    seen_by_alice = {u["id"] for u in client.get("/users", headers=api.alice.headers).json()}
    assert api.admin.id not in seen_by_alice
    assert api.manager.id in seen_by_alice
    assert client.get(f"/users/{api.admin.id}", headers=api.alice.headers).status_code == 404
    assert client.get(f"/users/{api.admin.id}", headers=api.admin.headers).status_code == 200


def test_task_review_round_trip(api):
    client = api.client
    task = create_task(api, api.alice)
    assert task["status"] == "incomplete" and task["reviewStatus"] is None

    assert client.get(f"/tasks/{task['id']}", headers=api.bob.headers).status_code == 404

    r = client.post(f"/tasks/{task['id']}/complete", headers=api.alice.headers)
    assert r.json()["reviewStatus"] == "pending_review"
    observed = r.json()["version"]

    url = f"/tasks/{task['id']}/review"
    r = client.put(url, json={"reviewStatus": "reverted"}, headers=api.manager.headers)
    assert r.status_code == 400 and r.json()["kind"] == "RequiresComment"
    assert client.get(f"/tasks/{task['id']}", headers=api.alice.headers).json()["version"] == observed

    r = client.put(url, json={"reviewStatus": "approved", "reviewedBy": api.admin.id},
                   headers=api.manager.headers)
    assert r.status_code == 403

    r = client.put(url, json={"reviewStatus": "reverted", "reviewComment": "add sources",
                              "reviewedBy": api.manager.id, "expectedVersion": observed},
                   headers=api.manager.headers)
    assert r.status_code == 200, r.text
    reverted = r.json()
    assert reverted["status"] == "incomplete"
    assert reverted["reviewStatus"] == "reverted"
    assert reverted["reviewedBy"] == api.manager.id
    assert reverted["reviewComment"] == "add sources"

    r = client.put(url, json={"reviewStatus": "approved", "expectedVersion": observed},
                   headers=api.admin.headers)
    assert r.status_code == 409 and r.json()["kind"] == "Conflict"

    r = client.put(f"/tasks/{task['id']}", json={"description": "with sources", "status": "complete"},
                   headers=api.alice.headers)
    assert r.json()["reviewStatus"] == "pending_review"
    assert r.json()["reviewComment"] is None

    r = client.put(url, json={"reviewStatus": "approved"}, headers=api.manager.headers)
    assert r.json()["reviewStatus"] == "approved" and r.json()["status"] == "complete"

    r = client.put(url, json={"reviewStatus": "reverted", "reviewComment": "again"}, headers=api.admin.headers)
    assert r.status_code == 409 and r.json()["kind"] == "InvalidTransition"


def test_task_creation_rules(api):
    client = api.client
    body = {"title": "t", "assignedTo": api.manager.id, "deadline": deadline()}
    r = client.post("/tasks", json=body, headers=api.admin.headers)
    assert r.status_code == 400 and r.json()["kind"] == "InvalidAssignee"

    body["assignedTo"] = api.bob.id
    assert client.post("/tasks", json=body, headers=api.alice.headers).status_code == 403
    assert client.post("/tasks", json=body, headers=api.manager.headers).status_code == 201


def test_complete_with_stale_version(api):
    client = api.client
    task = create_task(api, api.alice)
    edited = client.put(f"/tasks/{task['id']}", json={"description": "edited by admin"},
                        headers=api.admin.headers).json()
    assert edited["version"] == task["version"] + 1

    url = f"/tasks/{task['id']}/complete"
    r = client.post(url, json={"expectedVersion": task["version"]}, headers=api.alice.headers)
    assert r.status_code == 409 and r.json()["kind"] == "Conflict"
    assert client.get(f"/tasks/{task['id']}", headers=api.alice.headers).json()["status"] == "incomplete"

    r = client.post(url, json={"expectedVersion": edited["version"]}, headers=api.alice.headers)
    assert r.status_code == 200 and r.json()["status"] == "complete"


def test_task_listing_and_delete(api):
    client = api.client
    alices = create_task(api, api.alice)
    create_task(api, api.bob, creator=api.manager)

    assert [t["id"] for t in client.get("/tasks", headers=api.alice.headers).json()] == [alices["id"]]
    assert len(client.get("/tasks", headers=api.manager.headers).json()) == 2

    assert client.delete(f"/tasks/{alices['id']}", headers=api.bob.headers).status_code == 404
    r = client.delete(f"/tasks/{alices['id']}", headers=api.alice.headers)
    assert r.json() == {"ok": True, "id": alices["id"]}
    assert client.get("/tasks", headers=api.alice.headers).json() == []


def test_file_review_round_trip(api, upload_dir):
    client = api.client
    record = upload(api, api.alice, description="first draft", encryptionLevel="high")
    assert record["reviewStatus"] == "pending_review"
    assert record["type"] == "text/plain"
    assert record["encryptionDetails"]["algorithm"] == "AES-256-GCM"

    assert client.get(f"/files/{record['id']}", headers=api.bob.headers).status_code == 404

    url = f"/files/{record['id']}/review"
    r = client.put(url, json={"reviewStatus": "reverted", "reviewComment": "  "}, headers=api.manager.headers)
    assert r.status_code == 400
    r = client.put(url, json={"reviewStatus": "reverted", "reviewComment": "wrong format"},
                   headers=api.manager.headers)
    assert r.json()["reviewStatus"] == "reverted"

    r = client.put(f"/files/{record['id']}", files={"file": ("notes.md", b"# fixed", "text/markdown")},
                   headers=api.alice.headers)
    assert r.status_code == 200, r.text
    again = r.json()
    assert again["reviewStatus"] == "pending_review"
    assert again["name"] == "notes.md"
    assert again["reviewComment"] is None
    assert len(list(upload_dir.iterdir())) == 1

    r = client.put(url, json={"reviewStatus": "approved"}, headers=api.manager.headers)
    assert r.json()["reviewStatus"] == "approved"

    r = client.put(f"/files/{record['id']}", files={"file": ("x.md", b"x", "text/markdown")},
                   headers=api.alice.headers)
    assert r.status_code == 409


def test_manager_uploads_are_reviewed_by_admins(api):
    client = api.client
    record = upload(api, api.manager)
    url = f"/files/{record['id']}"

    r = client.put(f"{url}/review", json={"reviewStatus": "approved"}, headers=api.manager.headers)
    assert r.status_code == 403
    assert client.get("/review/queue", headers=api.manager.headers).json()["files"] == []
    queued = client.get("/review/queue", headers=api.admin.headers).json()["files"]
    assert [f["id"] for f in queued] == [record["id"]]

    r = client.put(f"{url}/review", json={"reviewStatus": "reverted", "reviewComment": "fix it"},
                   headers=api.admin.headers)
    assert r.status_code == 200

    assert [f["id"] for f in client.get("/files", headers=api.manager.headers).json()] == [record["id"]]
    assert client.get(url, headers=api.manager.headers).json()["reviewComment"] == "fix it"

    r = client.put(url, files={"file": ("plan.txt", b"v2", "text/plain")}, headers=api.manager.headers)
    assert r.status_code == 200, r.text
    assert r.json()["reviewStatus"] == "pending_review"

    r = client.put(f"{url}/review", json={"reviewStatus": "approved"}, headers=api.admin.headers)
    assert r.json()["reviewStatus"] == "approved"
    assert client.delete(url, headers=api.manager.headers).status_code == 200


def test_other_managers_uploads_stay_hidden(api):
    other = api.signup("m4@x.com", "manager")
    api.client.put(f"/users/{other['id']}/approve", headers=api.admin.headers)
    record = upload(api, SimpleNamespace(headers=api.login("m4@x.com")))
    assert api.client.get(f"/files/{record['id']}", headers=api.manager.headers).status_code == 404


def test_download_checks_file_password(api):
    client = api.client
    record = upload(api, api.alice, name="secret.txt", content=b"top secret", password="filepw1")
    assert record["encryptionDetails"]["passwordProtected"] is True

    url = f"/files/{record['id']}/download"
    assert client.post(url, headers=api.alice.headers).status_code == 401
    assert client.post(url, json={"password": "nope"}, headers=api.alice.headers).status_code == 401

    r = client.post(url, json={"password": "filepw1"}, headers=api.manager.headers)
    assert r.status_code == 200
    assert r.content == b"top secret"

    assert client.post(url, json={"password": "filepw1"}, headers=api.bob.headers).status_code == 404


def test_delete_file(api, upload_dir):
    record = upload(api, api.alice)
    assert api.client.delete(f"/files/{record['id']}", headers=api.alice.headers).status_code == 200
    assert list(upload_dir.iterdir()) == []
    assert api.client.get(f"/files/{record['id']}", headers=api.alice.headers).status_code == 404


def test_upload_size_limit(api, monkeypatch, upload_dir):
    monkeypatch.setattr(settings, "max_upload_mb", 0)
    r = api.client.post("/files", files={"file": ("big.bin", b"x", "application/octet-stream")},
                        headers=api.alice.headers)
    assert r.status_code == 413
    assert r.json()["kind"] == "FileTooLarge"
    assert not upload_dir.exists() or list(upload_dir.iterdir()) == []


def test_review_queue_and_stats(api):
    client = api.client
    task = create_task(api, api.alice)
    create_task(api, api.bob, deadline=deadline(days=-1))
    client.post(f"/tasks/{task['id']}/complete", headers=api.alice.headers)
    upload(api, api.bob)
    upload(api, api.admin)

    queue = client.get("/review/queue", headers=api.manager.headers).json()
    assert [t["id"] for t in queue["tasks"]] == [task["id"]]
    assert len(queue["files"]) == 1

    # the admin's own upload is visible to them but not queued
    admin_queue = client.get("/review/queue", headers=api.admin.headers).json()
    assert len(admin_queue["files"]) == 1
    assert len(client.get("/files", headers=api.admin.headers).json()) == 2

    r = client.get("/review/queue", headers=api.alice.headers)
    assert r.status_code == 403

    stats = client.get("/dashboard/stats", headers=api.manager.headers).json()
    assert stats == {"total": 2, "completed": 1, "inProgress": 1, "pendingReview": 1,
                     "approved": 0, "reverted": 0, "overdue": 1}
    assert client.get("/dashboard/stats", headers=api.alice.headers).json()["total"] == 1


@pytest.mark.parametrize("path", ["/tasks/missing", "/files/missing"])
def test_unknown_ids(api, path):
    r = api.client.get(path, headers=api.admin.headers)
    assert r.status_code == 404
    assert r.json()["kind"] == "NotFound"
