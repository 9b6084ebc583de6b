from conftest import create_course

from campus.db.session import SessionLocal
from campus.models.grade import Grade


def test_enroll_and_list(client, teacher, student):
    course = create_course(client, teacher["headers"])
    res = client.post("/api/enrollments", json={"course_id": course["id"]}, headers=student["headers"])
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["course_code"] == "CS101"
    assert data["student_id"] == student["student_id"]

    mine = client.get("/api/enrollments/me", headers=student["headers"]).json()["data"]
    assert [e["course_id"] for e in mine] == [course["id"]]


def test_enroll_twice_conflicts(client, teacher, student):
    course = create_course(client, teacher["headers"])
    client.post("/api/enrollments", json={"course_id": course["id"]}, headers=student["headers"])
    res = client.post("/api/enrollments", json={"course_id": course["id"]}, headers=student["headers"])
    assert res.status_code == 409


def test_enroll_unknown_course(client, student):
    assert client.post("/api/enrollments", json={"course_id": 42}, headers=student["headers"]).status_code == 404


def test_teachers_without_student_profile_cannot_enroll(client, teacher):
    course = create_course(client, teacher["headers"])
    res = client.post("/api/enrollments", json={"course_id": course["id"]}, headers=teacher["headers"])
    assert res.status_code == 403
    assert client.get("/api/enrollments/me", headers=teacher["headers"]).status_code == 403


def test_unenroll_removes_grades(client, teacher, student):
    course = create_course(client, teacher["headers"])
    client.post("/api/enrollments", json={"course_id": course["id"]}, headers=student["headers"])
    client.post(
        "/api/teachers/grades",
        json={"student_id": student["student_id"], "course_id": course["id"], "grade": 3.0},
        headers=teacher["headers"],
    )

    res = client.delete(f"/api/enrollments/{course['id']}", headers=student["headers"])
    assert res.status_code == 200
    assert client.get("/api/enrollments/me", headers=student["headers"]).json()["data"] == []
    with SessionLocal() as session:
        assert session.query(Grade).filter(Grade.student_id == student["student_id"]).count() == 0

    assert client.delete(f"/api/enrollments/{course['id']}", headers=student["headers"]).status_code == 404


def test_deleting_course_cascades_enrollments(client, teacher, student):
    course = create_course(client, teacher["headers"])
    client.post("/api/enrollments", json={"course_id": course["id"]}, headers=student["headers"])
    client.delete("/api/courses/CS101", headers=teacher["headers"])
    assert client.get("/api/enrollments/me", headers=student["headers"]).json()["data"] == []
