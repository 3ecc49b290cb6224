from factories import assignment_payload, auth_headers, build_world, ids, make_stream


def _term(world_ids):
    return {"academic_year_id": world_ids.academic_year_id, "term_id": world_ids.term_id}


def test_workload_report_breakdown(client, world_ids):
    scheduler = auth_headers("scheduler", world_ids.school_id)
    client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics", weekly_periods=10),
        headers=scheduler,
    )
    client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Physics", classroom=world_ids.west, weekly_periods=4),
        headers=scheduler,
    )

    response = client.get(f"/api/workload/teachers/{world_ids.jane}", params=_term(world_ids), headers=scheduler)

    assert response.status_code == 200
    report = response.json()
    assert report["total"] == 14
    assert report["min"] == 20
    assert report["max"] == 27
    assert report["status"] == "underloaded"
    assert report["within_bounds"] is True
    assert report["available_capacity"] == 13
    assert report["percentage_used"] == 51.9
    assert report["subject_count"] == 2
    assert sorted((line["subject"], line["target"], line["weekly_periods"]) for line in report["assignments"]) == [
        ("Mathematics", "Form 3 East", 10),
        ("Physics", "Form 3 West", 4),
    ]


def test_workload_report_requires_term(client, world_ids):
    response = client.get(
        f"/api/workload/teachers/{world_ids.jane}",
        headers=auth_headers("staff", world_ids.school_id),
    )

    assert response.status_code == 422


def test_classroom_compliance_reports_shortfall(client, world_ids):
    admin = auth_headers("admin", world_ids.school_id)
    sciences = [world_ids.subjects[name] for name in ("Mathematics", "Physics", "Chemistry", "Biology")]
    rule = client.post(
        "/api/reference/selection-rules",
        json={
            "curriculum_type": "CBC",
            "level": "Senior Secondary",
            "pathway": "STEM",
            "rule_type": "min_count",
            "subject_ids": sciences,
            "min_count": 3,
            "description": "STEM learners take at least three sciences",
        },
        headers=admin,
    )
    assert rule.status_code == 201
    for teacher_id, subject in ((world_ids.jane, "Mathematics"), (world_ids.jane, "Physics")):
        created = client.post("/api/assignments", json=assignment_payload(world_ids, teacher_id, subject), headers=admin)
        assert created.status_code == 201
        warnings = [item["code"] for item in created.json()["decision"]["warnings"]]
        assert "curriculum_incomplete" in warnings

    report = client.get(f"/api/compliance/classrooms/{world_ids.east}", params=_term(world_ids), headers=admin).json()

    assert report["target_kind"] == "classroom"
    assert report["target_name"] == "Form 3 East"
    assert report["compliant"] is False
    assert [item["name"] for item in report["assigned_subjects"]] == ["Mathematics", "Physics"]
    assert report["violations"][0]["shortfall"] == 1
    assert report["violations"][0]["message"] == "STEM learners take at least three sciences (Minimum: 3, Selected: 2)"

    client.post("/api/assignments", json=assignment_payload(world_ids, world_ids.peter, "Chemistry"), headers=admin)
    report = client.get(f"/api/compliance/classrooms/{world_ids.east}", params=_term(world_ids), headers=admin).json()
    assert report["compliant"] is True
    assert report["violations"] == []


def test_stream_compliance(client, db_session):
    world = build_world(db_session, uses_streams=True)
    blue = make_stream(db_session, world.school, world.east, "Blue")
    db_session.commit()
    world_ids = ids(world)
    scheduler = auth_headers("scheduler", world_ids.school_id)
    payload = assignment_payload(world_ids, world_ids.jane, "Mathematics")
    payload["classroom_id"] = None
    payload["stream_id"] = blue.id
    assert client.post("/api/assignments", json=payload, headers=scheduler).status_code == 201

    report = client.get(f"/api/compliance/streams/{blue.id}", params=_term(world_ids), headers=scheduler).json()

    assert report["target_kind"] == "stream"
    assert report["target_name"] == "Form 3 East Blue"
    assert report["pathway"] == "STEM"
    assert [item["name"] for item in report["assigned_subjects"]] == ["Mathematics"]
    assert report["compliant"] is True

    by_classroom = client.get(
        f"/api/compliance/classrooms/{world_ids.east}", params=_term(world_ids), headers=scheduler
    )
    assert by_classroom.status_code == 422
    assert by_classroom.json()["code"] == "invalid_target"
