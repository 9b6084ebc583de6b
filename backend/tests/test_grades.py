from conftest import bearer, create_course, promote_to_teacher, signup

from campus.services.teacher_service import summarize_grades


def _enroll(client, student, course_id):
    res = client.post("/api/enrollments", json={"course_id": course_id}, headers=student["headers"])
    assert res.status_code == 201, res.text


def _grade(client, headers, student_id, course_id, grade):
    return client.post(
        "/api/teachers/grades",
        json={"student_id": student_id, "course_id": course_id, "grade": grade},
        headers=headers,
    )


def test_grading_requires_enrollment(client, teacher, student):
    course = create_course(client, teacher["headers"])
    res = _grade(client, teacher["headers"], student["student_id"], course["id"], 4.0)
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Student is not enrolled in this course"


def test_assign_grade_once_then_update(client, teacher, student):
    course = create_course(client, teacher["headers"])
    _enroll(client, student, course["id"])

    res = _grade(client, teacher["headers"], student["student_id"], course["id"], 4.5)
    assert res.status_code == 201
    grade = res.json()["data"]
    assert grade["grade"] == 4.5
    assert grade["student_name"] == "Triesnha Ameilya"
    assert grade["course_code"] == "CS101"

    assert _grade(client, teacher["headers"], student["student_id"], course["id"], 3.0).status_code == 409

    updated = client.patch(f"/api/teachers/grades/{grade['id']}", json={"grade": 3.5}, headers=teacher["headers"])
    assert updated.status_code == 200
    assert updated.json()["data"]["grade"] == 3.5

    mine = client.get("/api/enrollments/me/grades", headers=student["headers"]).json()["data"]
    assert [(g["course_code"], g["grade"]) for g in mine] == [("CS101", 3.5)]


def test_grade_range_is_validated(client, teacher, student):
    course = create_course(client, teacher["headers"])
    _enroll(client, student, course["id"])
    assert _grade(client, teacher["headers"], student["student_id"], course["id"], 5.1).status_code == 422
    assert _grade(client, teacher["headers"], student["student_id"], course["id"], -0.5).status_code == 422
    assert _grade(client, teacher["headers"], student["student_id"], course["id"], 0).status_code == 201


def test_grading_someone_elses_course_is_forbidden(client, teacher, student):
    course = create_course(client, teacher["headers"])
    _enroll(client, student, course["id"])
    grade = _grade(client, teacher["headers"], student["student_id"], course["id"], 4.0).json()["data"]

    other = signup(client, email="other@example.com")
    promote_to_teacher(other["id"])
    other_headers = bearer(other["access_token"])

    assert _grade(client, other_headers, student["student_id"], course["id"], 2.0).status_code == 403
    assert client.patch(f"/api/teachers/grades/{grade['id']}", json={"grade": 1}, headers=other_headers).status_code == 403
    assert client.get(f"/api/teachers/courses/{course['id']}/grades", headers=other_headers).status_code == 403
    assert client.get(f"/api/teachers/courses/{course['id']}/enrollments", headers=other_headers).status_code == 403


def test_missing_entities(client, teacher):
    course = create_course(client, teacher["headers"])
    assert _grade(client, teacher["headers"], 999, course["id"], 3).status_code == 404
    assert _grade(client, teacher["headers"], 1, 999, 3).status_code == 404
    assert client.patch("/api/teachers/grades/999", json={"grade": 1}, headers=teacher["headers"]).status_code == 404


def test_students_cannot_grade(client, teacher, student):
    course = create_course(client, teacher["headers"])
    _enroll(client, student, course["id"])
    assert _grade(client, student["headers"], student["student_id"], course["id"], 5).status_code == 403


def test_course_grades_with_statistics(client, teacher, student):
    course = create_course(client, teacher["headers"])
    others = []
    for i, value in enumerate([2.0, 3.0, 5.0]):
        extra = signup(client, email=f"s{i}@example.com")
        extra["headers"] = bearer(extra["access_token"])
        others.append((extra, value))
    _enroll(client, student, course["id"])
    _grade(client, teacher["headers"], student["student_id"], course["id"], 4.0)
    for extra, value in others:
        _enroll(client, extra, course["id"])
        sid = client.get("/api/enrollments/me", headers=extra["headers"]).json()["data"][0]["student_id"]
        _grade(client, teacher["headers"], sid, course["id"], value)

    res = client.get(f"/api/teachers/courses/{course['id']}/grades", headers=teacher["headers"])
    assert res.status_code == 200
    data = res.json()["data"]
    assert len(data["grades"]) == 4
    assert data["statistics"] == {
        "total_students": 4,
        "average_grade": 3.5,
        "highest_grade": 5.0,
        "lowest_grade": 2.0,
        "distribution": {"1-2": 1, "2-3": 1, "3-4": 1, "4-5": 1},
    }

    stats = client.get(f"/api/teachers/courses/{course['id']}/statistics", headers=teacher["headers"]).json()["data"]
    assert stats == data["statistics"]


def test_teacher_workspace_views(client, teacher, student):
    create_course(client, teacher["headers"], code="CS101")
    course = create_course(client, teacher["headers"], code="CS102")
    _enroll(client, student, course["id"])

    me = client.get("/api/teachers/me", headers=teacher["headers"]).json()["data"]
    assert me["id"] == teacher["teacher_id"]
    assert me["email"] == "julia@example.com"

    mine = client.get("/api/teachers/my-courses", params={"limit": 1}, headers=teacher["headers"]).json()["data"]
    assert mine["total"] == 2
    assert mine["has_next_page"] is True
    assert len(mine["items"][0]["schedules"]) == 2

    roster = client.get(f"/api/teachers/courses/{course['id']}/enrollments", headers=teacher["headers"]).json()["data"]
    assert roster["total_enrolled"] == 1
    assert roster["students"][0]["student_id"] == student["student_id"]

    assert client.get("/api/teachers/me", headers=student["headers"]).status_code == 403


def test_distribution_bucket_boundaries():
    stats = summarize_grades([1.0, 1.5, 2.0, 2.01, 3.0, 3.5, 4.0, 4.5, 5.0, 0.0])
    # lower bound exclusive, upper bound inclusive; 1.0 and below land nowhere
    assert stats["distribution"] == {"1-2": 2, "2-3": 2, "3-4": 2, "4-5": 2}
    assert stats["total_students"] == 10
    assert stats["lowest_grade"] == 0.0
    assert stats["highest_grade"] == 5.0


def test_empty_statistics_are_zero():
    assert summarize_grades([]) == {
        "total_students": 0,
        "average_grade": 0,
        "highest_grade": 0,
        "lowest_grade": 0,
        "distribution": {"1-2": 0, "2-3": 0, "3-4": 0, "4-5": 0},
    }


def test_average_is_rounded_to_two_places():
    assert summarize_grades([4.0, 4.5, 3.0])["average_grade"] == 3.83
