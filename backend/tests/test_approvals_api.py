from sqlalchemy import select

from app.models.activity_log import ActivityLog
from factories import ADMIN_ID, SCHEDULER_ID, assignment_payload, auth_headers


def _approval_body(world_ids, subject="Computer Science"):
    return {"teacher_id": world_ids.jane, "subject_id": world_ids.subjects[subject], "note": "Holds a CS minor"}


def test_derived_subject_needs_approval_before_assignment(client, world_ids, db_session):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    admin = auth_headers("admin", world_ids.school_id)
    payload = assignment_payload(world_ids, world_ids.jane, "Computer Science")

    blocked = client.post("/api/assignments", json=payload, headers=scheduler)
    assert blocked.status_code == 422
    assert blocked.json()["code"] == "ineligible"
    assert blocked.json()["details"]["reason"] == "pending_approval"
    assert blocked.json()["details"]["grant_kind"] == "derived"

    requested = client.post("/api/approvals/derived-subjects", json=_approval_body(world_ids), headers=scheduler)
    assert requested.status_code == 201
    assert requested.json()["status"] == "pending"
    assert requested.json()["requested_by_id"] == SCHEDULER_ID

    # A pending request is not enough.
    assert client.post("/api/assignments", json=payload, headers=scheduler).status_code == 422

    forbidden = client.post("/api/approvals/derived-subjects/approve", json=_approval_body(world_ids), headers=scheduler)
    assert forbidden.status_code == 403

    approved = client.post("/api/approvals/derived-subjects/approve", json=_approval_body(world_ids), headers=admin)
    assert approved.status_code == 200
    body = approved.json()
    assert body["status"] == "approved"
    assert body["approved_by_id"] == ADMIN_ID
    assert body["approved_at"] is not None
    assert body["id"] == requested.json()["id"]

    created = client.post("/api/assignments", json=payload, headers=scheduler)
    assert created.status_code == 201
    assert created.json()["decision"]["qualification"]["grant_kind"] == "derived"
    assert created.json()["decision"]["qualification"]["approval_id"] == body["id"]

    actions = db_session.execute(
        select(ActivityLog.action).where(ActivityLog.action.like("approval.%"))
    ).scalars().all()
    assert sorted(actions) == ["approval.granted", "approval.requested"]


def test_second_approval_is_a_state_error(client, world_ids):
    admin = auth_headers("admin", world_ids.school_id)
    client.post("/api/approvals/derived-subjects/approve", json=_approval_body(world_ids), headers=admin)

    response = client.post("/api/approvals/derived-subjects/approve", json=_approval_body(world_ids), headers=admin)

    assert response.status_code == 409
    assert response.json()["code"] == "approval_state"


def test_repeated_request_returns_existing_record(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    first = client.post("/api/approvals/derived-subjects", json=_approval_body(world_ids), headers=scheduler).json()

    second = client.post("/api/approvals/derived-subjects", json=_approval_body(world_ids), headers=scheduler)

    assert second.json()["id"] == first["id"]


def test_primary_subject_cannot_be_requested(client, world_ids):
    response = client.post(
        "/api/approvals/derived-subjects",
        json=_approval_body(world_ids, "Mathematics"),
        headers=auth_headers("scheduler", world_ids.school_id),
    )

    assert response.status_code == 409
    assert response.json()["details"]["grant_kind"] == "primary"


def test_list_approvals_by_status(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    client.post("/api/approvals/derived-subjects", json=_approval_body(world_ids), headers=scheduler)

    pending = client.get("/api/approvals/derived-subjects", params={"status": "pending"}, headers=scheduler)
    approved = client.get("/api/approvals/derived-subjects", params={"status": "approved"}, headers=scheduler)
    by_teacher = client.get("/api/approvals/derived-subjects", params={"teacher_id": world_ids.peter}, headers=scheduler)

    assert [item["teacher_id"] for item in pending.json()] == [world_ids.jane]
    assert approved.json() == []
    assert by_teacher.json() == []
