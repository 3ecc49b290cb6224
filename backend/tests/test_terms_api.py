from factories import ADMIN_ID, assignment_payload, auth_headers


def _lower_minimums(client, world_ids, admin, minimum=5):
    for teacher_id in (world_ids.jane, world_ids.peter):
        response = client.patch(
            f"/api/reference/teachers/{teacher_id}",
            json={"min_weekly_lessons": minimum},
            headers=admin,
        )
        assert response.status_code == 200


def test_underloaded_teachers_block_finalization(client, world_ids):
    admin = auth_headers("admin", world_ids.school_id)
    client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics", weekly_periods=6),
        headers=admin,
    )

    response = client.post(f"/api/terms/{world_ids.term_id}/finalize", headers=admin)

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "workload_below_minimum"
    assert body["details"]["teachers"] == [
        {"teacher_id": world_ids.jane, "name": "Jane Wanjiku", "total": 6, "min": 20}
    ]


def test_finalize_locks_the_term(client, world_ids):
    admin = auth_headers("admin", world_ids.school_id)
    _lower_minimums(client, world_ids, admin)
    client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Monday", 1), ("Tuesday", 1)]),
        headers=admin,
    )
    client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.peter, "Biology", classroom=world_ids.west),
        headers=admin,
    )

    response = client.post(f"/api/terms/{world_ids.term_id}/finalize", headers=admin)

    assert response.status_code == 200
    body = response.json()
    assert body["is_finalized"] is True
    assert body["finalized_by_id"] == ADMIN_ID
    assert body["teacher_count"] == 2
    assert body["period_count"] == 2

    again = client.post(f"/api/terms/{world_ids.term_id}/finalize", headers=admin)
    assert again.status_code == 409
    assert again.json()["code"] == "term_state"

    late = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Physics"),
        headers=admin,
    )
    assert late.status_code == 409
    assert late.json()["code"] == "term_state"


def test_parked_conflict_blocks_finalization(client, world_ids):
    admin = auth_headers("admin", world_ids.school_id)
    _lower_minimums(client, world_ids, admin)
    client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics", slots=[("Monday", 3)]),
        headers=admin,
    )
    biology = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.peter, "Biology"),
        headers=admin,
    ).json()["assignment"]
    client.post(
        f"/api/assignments/{biology['id']}/periods",
        json={"day_of_week": "Monday", "period_number": 3, "allow_conflict_override": True},
        headers=admin,
    )

    response = client.post(f"/api/terms/{world_ids.term_id}/finalize", headers=admin)

    assert response.status_code == 409
    assert len(response.json()["details"]["conflicting_periods"]) == 2


def test_only_admins_finalize(client, world_ids):
    response = client.post(
        f"/api/terms/{world_ids.term_id}/finalize",
        headers=auth_headers("scheduler", world_ids.school_id),
    )

    assert response.status_code == 403


def test_unknown_term(client, world_ids):
    response = client.post("/api/terms/missing/finalize", headers=auth_headers("admin", world_ids.school_id))

    assert response.status_code == 404
