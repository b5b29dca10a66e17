import json
from datetime import timedelta

from classroom.core.security.auth import generate_token
from classroom.models import Submission
from classroom.utils.helpers import format_datetime, utc_now
from tests.conftest import PASSWORD, auth_header, stored_files

PREFIX = "/api/v1"


def upload(name="hw1.pdf", content=b"%PDF-1.4 assignment"):
    return {"file": (name, content, "application/pdf")}


def create_hw1(client, users, student_ids=None):
    response = client.post(
        f"{PREFIX}/assignments",
        data={
            "title": "HW1",
            "description": "Chapter 1 exercises",
            "due_date": format_datetime(utc_now() + timedelta(days=2)),
            "student_ids": json.dumps(student_ids if student_ids is not None else [users.s1.id, users.s2.id]),
        },
        files=upload(),
        headers=auth_header(users.tutor.username),
    )
    assert response.status_code == 201, response.text
    return response.json()["assignment"]


def test_login_returns_bearer_token(client, users):
    response = client.post(f"{PREFIX}/login", data={"username": "tutor1", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["role"] == "tutor"

    listing = client.get(f"{PREFIX}/assignments", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert listing.status_code == 200


def test_login_rejects_bad_password(client, users):
    response = client.post(f"{PREFIX}/login", data={"username": "tutor1", "password": "wrong"})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_missing_or_invalid_token_is_unauthorized(client, users):
    assert client.get(f"{PREFIX}/assignments").status_code == 401
    assert client.get(f"{PREFIX}/assignments", headers={"Authorization": "Bearer nonsense"}).status_code == 401

    expired = generate_token({"sub": "tutor1"}, timedelta(minutes=-5))
    response = client.get(f"{PREFIX}/assignments", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


def test_create_and_list_assignments(client, users, storage):
    assignment = create_hw1(client, users)

    assert assignment["title"] == "HW1"
    assert assignment["tutor_id"] == users.tutor.id
    assert assignment["file_url"].startswith("/uploads/")
    assert len(stored_files(storage)) == 1

    tutor_list = client.get(f"{PREFIX}/assignments", headers=auth_header("tutor1")).json()["assignments"]
    assert [a["id"] for a in tutor_list] == [assignment["id"]]

    student_list = client.get(
        f"{PREFIX}/assignments", params={"status": "PENDING"}, headers=auth_header("s1")
    ).json()["assignments"]
    assert student_list[0]["status"] == "pending"
    assert student_list[0]["overdue"] is False

    scheduled = client.get(
        f"{PREFIX}/assignments", params={"published_at": "SCHEDULED"}, headers=auth_header("tutor1")
    ).json()["assignments"]
    assert scheduled == []


def test_unknown_filter_value_is_bad_request(client, users):
    response = client.get(f"{PREFIX}/assignments", params={"status": "LATE"}, headers=auth_header("s1"))
    assert response.status_code == 400
    assert response.json()["detail"].startswith("status:")


def test_malformed_fields_are_bad_request(client, users, storage):
    bad_date = client.post(
        f"{PREFIX}/assignments",
        data={"title": "HW1", "due_date": "next tuesday"},
        files=upload(),
        headers=auth_header("tutor1"),
    )
    assert bad_date.status_code == 400
    assert bad_date.json()["detail"].startswith("due_date:")
    assert stored_files(storage) == []

    no_assignment = client.post(
        f"{PREFIX}/assignments/submissions", files=upload("answer.pdf"), headers=auth_header("s1")
    )
    assert no_assignment.status_code == 400
    assert "assignment_id" in no_assignment.json()["detail"]


def test_student_cannot_create(client, users, storage):
    response = client.post(
        f"{PREFIX}/assignments",
        data={"title": "HW1", "due_date": "2030-01-01T00:00:00Z"},
        files=upload(),
        headers=auth_header("s1"),
    )
    assert response.status_code == 403
    assert stored_files(storage) == []


def test_missing_title_is_bad_request(client, users, storage):
    response = client.post(
        f"{PREFIX}/assignments",
        data={"due_date": "2030-01-01T00:00:00Z"},
        files=upload(),
        headers=auth_header("tutor1"),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Title is required"


def test_update_and_delete(client, users, storage):
    assignment = create_hw1(client, users)
    url = f"{PREFIX}/assignments/{assignment['id']}"

    forbidden = client.patch(url, data={"title": "stolen"}, headers=auth_header("tutor2"))
    assert forbidden.status_code == 403

    empty = client.patch(url, data={}, headers=auth_header("tutor1"))
    assert empty.status_code == 400

    updated = client.patch(url, data={"title": "HW1 (revised)"}, headers=auth_header("tutor1"))
    assert updated.status_code == 200
    assert updated.json()["assignment"]["title"] == "HW1 (revised)"
    assert updated.json()["assignment"]["description"] == "Chapter 1 exercises"

    cleared = client.patch(url, data={"description": ""}, headers=auth_header("tutor1"))
    assert cleared.status_code == 200
    assert cleared.json()["assignment"]["description"] is None
    assert cleared.json()["assignment"]["title"] == "HW1 (revised)"

    blank_title = client.patch(url, data={"title": ""}, headers=auth_header("tutor1"))
    assert blank_title.status_code == 400

    assert client.delete(url, headers=auth_header("tutor1")).status_code == 200
    assert client.delete(url, headers=auth_header("tutor1")).status_code == 404
    assert stored_files(storage) == []


def test_submission_flow(client, users, db):
    assignment = create_hw1(client, users)
    submit_url = f"{PREFIX}/assignments/submissions"
    details_url = f"{submit_url}/{assignment['id']}"

    created = client.post(
        submit_url,
        data={"assignment_id": assignment["id"]},
        files=upload("answer.pdf"),
        headers=auth_header("s1"),
    )
    assert created.status_code == 201
    assert created.json()["submission"]["student_id"] == users.s1.id

    duplicate = client.post(
        submit_url,
        data={"assignment_id": assignment["id"]},
        files=upload("answer.pdf"),
        headers=auth_header("s1"),
    )
    assert duplicate.status_code == 409

    outsider = client.post(
        submit_url,
        data={"assignment_id": assignment["id"]},
        files=upload("answer.pdf"),
        headers=auth_header("s3"),
    )
    assert outsider.status_code == 403

    tutor_view = client.get(details_url, headers=auth_header("tutor1")).json()
    assert [s["username"] for s in tutor_view["submissions"]] == ["s1"]

    assert client.get(details_url, headers=auth_header("s2")).json() == {"submission": None}
    assert client.get(details_url, headers=auth_header("s1")).json()["submission"]["student_id"] == users.s1.id

    submitted = client.get(
        f"{PREFIX}/assignments", params={"status": "SUBMITTED"}, headers=auth_header("s1")
    ).json()["assignments"]
    assert [a["id"] for a in submitted] == [assignment["id"]]

    db.expire_all()
    assert db.query(Submission).count() == 1


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["deadline_scanner"] == "stopped"
