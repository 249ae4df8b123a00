"""API tests for /tasks and /exercises."""
import uuid
from datetime import timedelta

from conftest import get_role, get_user
from cyberx_api.models.types import utcnow

DESCRIPTION = "Review firewall rules for the staging network."


def _create_task(client, admin_headers, title="Audit firewall"):
    resp = client.post("/tasks", headers=admin_headers, json={"title": title, "description": DESCRIPTION})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _exercise_body(days=2, **overrides):
    start = utcnow()
    body = {"name": "Purple Team Week", "start_date": start.isoformat(), "end_date": (start + timedelta(days=days)).isoformat()}
    body.update(overrides)
    return body


def test_task_crud(client, admin_headers, user_headers):
    task = _create_task(client, admin_headers)
    assert client.get(f"/tasks/{task['id']}", headers=user_headers).status_code == 200

    resp = client.put(f"/tasks/{task['id']}", headers=admin_headers, json={"title": "Audit firewall v2"})
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Audit firewall v2"
    assert resp.json()["data"]["description"] == DESCRIPTION

    assert client.delete(f"/tasks/{task['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/tasks/{task['id']}", headers=user_headers).status_code == 404
    assert client.post(f"/tasks/{task['id']}/restore", headers=admin_headers).status_code == 200
    assert client.get(f"/tasks/{task['id']}", headers=user_headers).status_code == 200


def test_task_validation(client, admin_headers):
    resp = client.post("/tasks", headers=admin_headers, json={"title": "Ok title", "description": "too short"})
    assert resp.status_code == 400
    assert any(d["field"] == "description" for d in resp.json()["details"])


def test_task_mutations_need_admin(client, user_headers):
    resp = client.post("/tasks", headers=user_headers, json={"title": "Nope", "description": DESCRIPTION})
    assert resp.status_code == 403


def test_list_and_search_tasks(client, admin_headers, user_headers):
    _create_task(client, admin_headers, title="Audit firewall")
    _create_task(client, admin_headers, title="Patch servers")
    assert client.get("/tasks", headers=user_headers).json()["pagination"]["total_count"] == 2

    resp = client.get("/tasks/search", headers=user_headers, params={"q": "PATCH"})
    assert [t["title"] for t in resp.json()["data"]] == ["Patch servers"]
    assert client.get("/tasks/search", headers=user_headers, params={"q": "p"}).status_code == 400


def test_non_admin_cannot_see_deleted_tasks(client, admin_headers, user_headers):
    task = _create_task(client, admin_headers)
    client.delete(f"/tasks/{task['id']}", headers=admin_headers)
    params = {"include_deleted": True}
    assert client.get("/tasks", headers=user_headers, params=params).json()["pagination"]["total_count"] == 0
    assert client.get("/tasks", headers=admin_headers, params=params).json()["pagination"]["total_count"] == 1


def test_assign_task_to_role(client, db, admin_headers, user_headers):
    task = _create_task(client, admin_headers)
    role_id = str(get_role(db, "user").id)
    url = f"/tasks/{task['id']}/assign"

    assert client.post(url, headers=admin_headers, json={"role_id": role_id}).status_code == 201
    assert client.post(url, headers=admin_headers, json={"role_id": role_id}).status_code == 409

    role_tasks = client.get(f"/roles/{role_id}/tasks", headers=admin_headers).json()
    assert [t["id"] for t in role_tasks["data"]] == [task["id"]]
    filtered = client.get("/tasks", headers=user_headers, params={"role_id": role_id}).json()
    assert filtered["pagination"]["total_count"] == 1

    assert client.delete(f"{url}/{role_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"{url}/{role_id}", headers=admin_headers).status_code == 404


def test_assign_task_unknown_role(client, admin_headers):
    task = _create_task(client, admin_headers)
    resp = client.post(f"/tasks/{task['id']}/assign", headers=admin_headers, json={"role_id": str(uuid.uuid4())})
    assert resp.status_code == 404


def test_permanent_task_delete_drops_links(client, db, admin_headers):
    task = _create_task(client, admin_headers)
    role_id = str(get_role(db, "user").id)
    client.post(f"/tasks/{task['id']}/assign", headers=admin_headers, json={"role_id": role_id})
    resp = client.delete(f"/tasks/{task['id']}", headers=admin_headers, params={"permanent": True})
    assert resp.status_code == 200
    assert client.get(f"/roles/{role_id}/tasks", headers=admin_headers).json()["count"] == 0


def test_exercise_lifecycle(client, admin_headers, user_headers):
    resp = client.post("/exercises", headers=admin_headers, json=_exercise_body())
    assert resp.status_code == 201
    exercise = resp.json()["data"]
    assert exercise["status"] == "active"

    closed = client.post(f"/exercises/{exercise['id']}/close", headers=admin_headers)
    assert closed.json()["data"]["status"] == "closed"
    again = client.post(f"/exercises/{exercise['id']}/close", headers=admin_headers)
    assert again.json()["message"] == "Exercise is already closed"

    listed = client.get("/exercises", headers=user_headers, params={"status": "closed"}).json()
    assert listed["pagination"]["total_count"] == 1
    assert client.get("/exercises", headers=user_headers, params={"status": "active"}).json()["data"] == []

    reopened = client.post(f"/exercises/{exercise['id']}/activate", headers=admin_headers)
    assert reopened.json()["data"]["status"] == "active"


def test_exercise_dates_validated(client, admin_headers):
    start = utcnow()
    body = _exercise_body(end_date=(start - timedelta(days=1)).isoformat())
    assert client.post("/exercises", headers=admin_headers, json=body).status_code == 400


def test_exercise_update_checks_stored_dates(client, admin_headers):
    exercise = client.post("/exercises", headers=admin_headers, json=_exercise_body(days=2)).json()["data"]
    too_late = (utcnow() + timedelta(days=10)).isoformat()
    resp = client.put(f"/exercises/{exercise['id']}", headers=admin_headers, json={"start_date": too_late})
    assert resp.status_code == 400
    resp = client.put(f"/exercises/{exercise['id']}", headers=admin_headers, json={"name": "Renamed Week"})
    assert resp.status_code == 200


def test_exercise_mutations_need_admin(client, user_headers):
    assert client.post("/exercises", headers=user_headers, json=_exercise_body()).status_code == 403


def test_exercise_delete_keeps_members(client, db, admin_headers):
    exercise = client.post("/exercises", headers=admin_headers, json=_exercise_body()).json()["data"]
    user = get_user(db, "user@x.com")
    client.put(f"/users/{user.id}", headers=admin_headers, json={"exercise_id": exercise["id"]})
    assert str(get_user(db, "user@x.com").exercise_id) == exercise["id"]

    resp = client.delete(f"/exercises/{exercise['id']}", headers=admin_headers, params={"permanent": True})
    assert resp.status_code == 200
    member = get_user(db, "user@x.com")
    assert member.exercise_id is None
    assert member.deleted_at is None
