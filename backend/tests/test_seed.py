from campus.db.seed import DEMO_COURSE_CODE, seed_demo_data
from campus.db.session import SessionLocal
from campus.models.course import Course
from campus.models.enrollment import Enrollment
from campus.models.grade import Grade
from campus.models.user import User


def test_seed_is_idempotent():
    with SessionLocal() as session:
        first = seed_demo_data(session)
    with SessionLocal() as session:
        second = seed_demo_data(session)
    assert first == second

    with SessionLocal() as session:
        assert session.query(User).count() == 2
        course = session.query(Course).filter(Course.code == DEMO_COURSE_CODE).one()
        assert [(s.day_of_week, s.start_time, s.end_time) for s in course.schedules] == [
            (1, "10:00", "12:00"),
            (3, "10:00", "12:00"),
        ]
        assert session.query(Enrollment).count() == 1
        assert [g.grade for g in session.query(Grade).all()] == [4.5]


def test_seeded_accounts_can_log_in(client):
    with SessionLocal() as session:
        seed_demo_data(session)
    res = client.post("/api/auth/login", json={"email": "julia.nguyen@example.com", "password": "Teacher123!"})
    assert res.status_code == 200
    token = res.json()["data"]["access_token"]
    mine = client.get("/api/teachers/my-courses", headers={"Authorization": f"Bearer {token}"}).json()["data"]
    assert [c["code"] for c in mine["items"]] == ["CS101"]
