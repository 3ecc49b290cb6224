from sqlalchemy import select

from app.models.activity_log import ActivityLog
from app.services import assignment_validator as validator_module
from app.services.conflict_service import SlotCheck
from factories import assignment_payload, auth_headers


def _create(client, headers, payload, expected=201):
    response = client.post("/api/assignments", json=payload, headers=headers)
    assert response.status_code == expected, response.text
    return response.json()


def test_math_physics_teacher_cannot_take_biology(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)

    response = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Biology"),
        headers=scheduler,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "ineligible"
    assert body["details"]["reason"] == "not_covered"
    assert body["details"]["combination_code"] == "BED-MATH-PHY"


def test_workload_over_maximum_is_rejected(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    _create(client, scheduler, assignment_payload(world_ids, world_ids.jane, "Mathematics", weekly_periods=10))
    _create(
        client,
        scheduler,
        assignment_payload(world_ids, world_ids.jane, "Mathematics", classroom=world_ids.west, weekly_periods=10),
    )
    _create(client, scheduler, assignment_payload(world_ids, world_ids.jane, "Physics", weekly_periods=5))

    response = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Physics", classroom=world_ids.west, weekly_periods=3),
        headers=scheduler,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "workload_exceeded"
    assert body["details"]["current"] == 25
    assert body["details"]["adding"] == 3
    assert body["details"]["max"] == 27


def test_monday_third_period_conflict(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    first = _create(
        client,
        scheduler,
        assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Monday", 3)]),
    )

    response = client.post(
        "/api/assignments",
        json=assignment_payload(
            world_ids, world_ids.jane, "Physics", classroom=world_ids.west, slots=[("Monday", 3)]
        ),
        headers=scheduler,
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "slot_conflict"
    assert body["details"]["axis"] == "teacher"
    assert body["details"]["occupant_assignment_id"] == first["assignment"]["id"]


def test_validate_reports_decision_without_writing(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)

    decision = client.post(
        "/api/assignments/validate",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Tuesday", 2)]),
        headers=scheduler,
    ).json()

    assert decision["allowed"] is True
    assert decision["stage"] == "rule_checked"
    assert decision["qualification"]["grant_kind"] == "primary"
    assert decision["workload"]["proposed_total"] == 5
    assert decision["slots"][0]["is_free"] is True
    assert client.get("/api/assignments", headers=scheduler).json() == []


def test_request_needs_exactly_one_target(client, world_ids):
    payload = assignment_payload(world_ids, world_ids.jane, "Mathematics")
    payload["classroom_id"] = None

    response = client.post("/api/assignments", json=payload, headers=auth_headers("scheduler", world_ids.school_id))

    assert response.status_code == 422


def test_repeated_slot_in_request_is_rejected(client, world_ids):
    payload = assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Monday", 1), ("Mon", 1)])

    response = client.post("/api/assignments", json=payload, headers=auth_headers("scheduler", world_ids.school_id))

    assert response.status_code == 422


def test_duplicate_assignment_conflict(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    payload = assignment_payload(world_ids, world_ids.jane, "Mathematics")
    _create(client, scheduler, payload)

    body = _create(client, scheduler, payload, expected=409)

    assert body["code"] == "duplicate_assignment"


def test_deactivation_round_trip(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    created = _create(
        client,
        scheduler,
        assignment_payload(world_ids, world_ids.jane, "Mathematics", weekly_periods=6, slots=[("Monday", 3)]),
    )
    assignment_id = created["assignment"]["id"]
    workload_params = {"academic_year_id": world_ids.academic_year_id, "term_id": world_ids.term_id}

    before = client.get(f"/api/workload/teachers/{world_ids.jane}", params=workload_params, headers=scheduler)
    assert before.json()["total"] == 6

    deactivated = client.post(
        f"/api/assignments/{assignment_id}/deactivate",
        json={"reason": "Moved to remedial classes"},
        headers=scheduler,
    )
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    after = client.get(f"/api/workload/teachers/{world_ids.jane}", params=workload_params, headers=scheduler)
    assert after.json()["total"] == 0
    periods = client.get(f"/api/assignments/{assignment_id}/periods", headers=scheduler).json()
    assert [item["is_active"] for item in periods] == [False]

    # The freed slot can be taken by someone else.
    _create(
        client,
        scheduler,
        assignment_payload(world_ids, world_ids.peter, "Biology", slots=[("Monday", 3)]),
    )

    restored = _create(
        client,
        scheduler,
        assignment_payload(world_ids, world_ids.jane, "Mathematics", weekly_periods=6, slots=[("Tuesday", 3)]),
    )
    assert restored["reactivated"] is True
    assert restored["assignment"]["id"] == assignment_id
    listed = client.get("/api/assignments", params={"teacher_id": world_ids.jane, "is_active": True}, headers=scheduler)
    assert [item["id"] for item in listed.json()] == [assignment_id]


def test_batch_partial_and_atomic(client, world_ids, db_session):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    items = [
        assignment_payload(world_ids, world_ids.jane, "Mathematics"),
        assignment_payload(world_ids, world_ids.jane, "Biology"),
        assignment_payload(world_ids, world_ids.peter, "Chemistry"),
    ]

    atomic = client.post("/api/assignments/batch", json={"atomic": True, "items": items}, headers=scheduler)
    assert atomic.status_code == 200
    body = atomic.json()
    assert body["committed"] is False
    assert body["created_count"] == 0
    assert body["failed_count"] == 3
    assert [item["status"] for item in body["outcomes"]] == ["rolled_back", "rejected", "skipped"]
    assert client.get("/api/assignments", headers=scheduler).json() == []

    partial = client.post("/api/assignments/batch", json={"atomic": False, "items": items}, headers=scheduler)
    body = partial.json()
    assert body["committed"] is True
    assert body["created_count"] == 2
    assert body["failed_count"] == 1
    assert body["outcomes"][1]["error"]["details"]["reason"] == "not_covered"
    created = client.get("/api/assignments", headers=scheduler).json()
    assert {item["batch_id"] for item in created} == {body["batch_id"]}
    assert all(item["is_bulk_assignment"] for item in created)

    actions = db_session.execute(
        select(ActivityLog.action).where(ActivityLog.action == "assignment.batch")
    ).scalars().all()
    assert len(actions) == 2


def test_concurrent_slot_claim_is_reported_as_conflict(client, world_ids, monkeypatch):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    occupant = _create(
        client,
        scheduler,
        assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Monday", 3)]),
    )

    # Simulates another writer claiming the slot between the check and the commit.
    monkeypatch.setattr(
        validator_module,
        "check_slot",
        lambda db, **kwargs: SlotCheck(day_of_week=kwargs["day_of_week"], period_number=kwargs["period_number"]),
    )
    response = client.post(
        "/api/assignments",
        json=assignment_payload(
            world_ids, world_ids.jane, "Physics", classroom=world_ids.west, slots=[("Monday", 3)]
        ),
        headers=scheduler,
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "slot_conflict"
    assert body["details"]["axis"] == "teacher"
    assert body["details"]["occupant_assignment_id"] == occupant["assignment"]["id"]
    assert len(client.get("/api/assignments", headers=scheduler).json()) == 1


def test_stream_school_assigns_to_streams(client, db_session):
    from factories import build_world, ids, make_stream

    world = build_world(db_session, uses_streams=True)
    blue = make_stream(db_session, world.school, world.east, "Blue")
    db_session.commit()
    world_ids = ids(world)
    scheduler = auth_headers("scheduler", world_ids.school_id)

    wrong_target = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics"),
        headers=scheduler,
    )
    assert wrong_target.status_code == 422
    assert wrong_target.json()["code"] == "invalid_target"

    payload = assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Friday", 2)])
    payload["classroom_id"] = None
    payload["stream_id"] = blue.id
    created = _create(client, scheduler, payload)

    assert created["assignment"]["stream_id"] == blue.id
    assert created["assignment"]["classroom_id"] is None
    assert created["periods"][0]["stream_id"] == blue.id
    assert created["periods"][0]["classroom_id"] is None
