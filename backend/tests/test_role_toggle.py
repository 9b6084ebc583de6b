from conftest import create_course, signup

from campus.db.session import SessionLocal
from campus.models.course import Course
from campus.models.user import User


def _set_role(client, headers, user_id, is_teacher):
    return client.patch("/api/teachers/users/role", json={"user_id": user_id, "is_teacher": is_teacher}, headers=headers)


def test_student_cannot_change_roles(client, student):
    other = signup(client, email="bob@example.com")
    res = _set_role(client, student["headers"], other["id"], True)
    assert res.status_code == 403


def test_teacher_cannot_change_own_role(client, teacher):
    res = _set_role(client, teacher["headers"], teacher["id"], False)
    assert res.status_code == 400


def test_unknown_target_is_not_found(client, teacher):
    assert _set_role(client, teacher["headers"], 9999, True).status_code == 404


def test_grant_swaps_student_profile_for_teacher_profile(client, teacher, student):
    res = _set_role(client, teacher["headers"], student["id"], True)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["message"] == "Triesnha Ameilya is now a teacher"
    assert data["user"]["is_teacher"] is True
    assert data["user"]["is_student"] is False

    with SessionLocal() as session:
        user = session.get(User, student["id"])
        assert user.teacher is not None
        assert user.student is None

    assert _set_role(client, teacher["headers"], student["id"], True).status_code == 409


def test_revoke_restores_student_profile_and_drops_owned_courses(client, teacher, student):
    _set_role(client, teacher["headers"], student["id"], True)
    promoted_headers = student["headers"]
    create_course(client, promoted_headers, code="ART200", title="Drawing")

    res = _set_role(client, teacher["headers"], student["id"], False)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["is_teacher"] is False
    assert data["user"]["is_student"] is True

    with SessionLocal() as session:
        assert session.query(Course).filter(Course.code == "ART200").first() is None

    assert _set_role(client, teacher["headers"], student["id"], False).status_code == 409


def test_revoked_user_loses_teacher_routes(client, teacher, student):
    _set_role(client, teacher["headers"], student["id"], True)
    assert client.get("/api/teachers/me", headers=student["headers"]).status_code == 200
    _set_role(client, teacher["headers"], student["id"], False)
    assert client.get("/api/teachers/me", headers=student["headers"]).status_code == 403


def test_role_change_refreshes_cached_profile(client, fake_redis, teacher, student):
    before = client.get("/api/auth/profile", headers=student["headers"]).json()["data"]
    assert before["is_teacher"] is False and before["is_student"] is True
    assert f"user:{student['id']}" in fake_redis.store

    assert _set_role(client, teacher["headers"], student["id"], True).status_code == 200
    granted = client.get("/api/auth/profile", headers=student["headers"]).json()["data"]
    assert granted["is_teacher"] is True and granted["is_student"] is False

    assert _set_role(client, teacher["headers"], student["id"], False).status_code == 200
    revoked = client.get("/api/auth/profile", headers=student["headers"]).json()["data"]
    assert revoked["is_teacher"] is False and revoked["is_student"] is True
