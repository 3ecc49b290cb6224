from jose import jwt

from app.core.config import get_settings
from factories import assignment_payload, auth_headers


def test_missing_token_is_rejected(client, world_ids):
    response = client.get("/api/assignments")

    assert response.status_code in {401, 403}


def test_unknown_role_is_unauthorized(client, world_ids):
    settings = get_settings()
    token = jwt.encode(
        {"sub": "someone", "role": "student", "school_id": world_ids.school_id},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

    response = client.get("/api/assignments", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_without_school_cannot_reach_scoped_routes(client, world_ids):
    response = client.get("/api/assignments", headers=auth_headers("admin"))

    assert response.status_code == 403


def test_token_for_unknown_school_is_not_found(client, world_ids):
    response = client.get("/api/assignments", headers=auth_headers("admin", "no-such-school"))

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_staff_can_read_but_not_assign(client, world_ids):
    staff = auth_headers("staff", world_ids.school_id)

    assert client.get("/api/assignments", headers=staff).status_code == 200
    response = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics"),
        headers=staff,
    )
    assert response.status_code == 403


def test_scheduler_cannot_edit_reference_data(client, world_ids):
    response = client.post(
        "/api/reference/subjects",
        json={"name": "Geography", "level": "Senior Secondary"},
        headers=auth_headers("scheduler", world_ids.school_id),
    )

    assert response.status_code == 403


def test_rows_of_other_schools_are_invisible(client, world_ids):
    admin = auth_headers("admin")
    other = client.post("/api/reference/schools", json={"name": "Other School"}, headers=admin).json()

    response = client.post(
        "/api/assignments",
        json=assignment_payload(world_ids, world_ids.jane, "Mathematics"),
        headers=auth_headers("scheduler", other["id"]),
    )

    assert response.status_code == 404
    assert response.json()["details"]["resource_type"] == "Teacher"
