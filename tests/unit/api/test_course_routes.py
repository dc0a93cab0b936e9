"""Unit tests for course routes."""

import pytest
from fastapi.testclient import TestClient


def _membership(client: TestClient, action: str, course: dict, student_id: str):
    return client.post(f"/api/courses/{course['id']}/{action}", json={"studentId": student_id})


@pytest.fixture
def department(make_department) -> dict:
    return make_department()


@pytest.fixture
def school_class(department, make_class) -> dict:
    return make_class(department["id"])


@pytest.mark.unit
class TestCreateCourse:
    """Tests for POST /courses."""

    def test_create_with_prerequisite(self, department, make_api_course) -> None:
        base = make_api_course(department["id"], "cs201")
        advanced = make_api_course(department["id"], "CS202", prerequisites=[base["id"]])

        assert base["courseCode"] == "CS201"
        assert base["enrolledStudents"] == 0
        assert base["availableSeats"] == 40
        assert advanced["prerequisites"][0]["courseCode"] == "CS201"

    def test_invalid_semester_and_year(self, client: TestClient, department) -> None:
        response = client.post(
            "/api/courses",
            json={
                "courseName": "Bad",
                "courseCode": "CS999",
                "creditHours": 3,
                "department": department["id"],
                "semester": "Autumn",
                "year": 7,
            },
        )

        assert response.status_code == 400
        assert {"semester", "year"} <= set(response.json()["errors"])

    def test_self_prerequisite_on_update(
        self, client: TestClient, department, make_api_course
    ) -> None:
        course = make_api_course(department["id"], "CS201")
        url = f"/api/courses/{course['id']}"

        response = client.put(url, json={"prerequisites": [course["id"]]})

        assert response.status_code == 400
        assert "prerequisites" in response.json()["errors"]


@pytest.mark.unit
class TestEnrollment:
    """Tests for POST /courses/{id}/enroll and /withdraw."""

    def test_enroll_withdraw_round_trip(
        self, client: TestClient, department, school_class, make_api_course, make_api_student
    ) -> None:
        course = make_api_course(department["id"], "CS201")
        student = make_api_student(school_class["id"], department["id"])

        enrolled = _membership(client, "enroll", course, student["id"])
        assert enrolled.status_code == 200
        assert enrolled.json()["data"]["enrolledStudents"] == 1

        withdrawn = _membership(client, "withdraw", course, student["id"])
        assert withdrawn.json()["data"]["enrolledStudents"] == 0

        again = _membership(client, "enroll", course, student["id"])
        assert again.json()["data"]["enrolledStudents"] == 1

        detail = client.get(f"/api/courses/{course['id']}").json()["data"]
        assert [s["id"] for s in detail["students"]] == [student["id"]]

    def test_unmet_prerequisite(
        self, client: TestClient, department, school_class, make_api_course, make_api_student
    ) -> None:
        base = make_api_course(department["id"], "CS201")
        advanced = make_api_course(department["id"], "CS202", prerequisites=[base["id"]])
        student = make_api_student(school_class["id"], department["id"])

        response = _membership(client, "enroll", advanced, student["id"])

        assert response.status_code == 400
        assert response.json()["details"] == {"course": "CS202", "missing": ["CS201"]}
        course = client.get(f"/api/courses/{advanced['id']}").json()["data"]["course"]
        assert course["enrolledStudents"] == 0

    def test_course_full(
        self, client: TestClient, department, school_class, make_api_course, make_api_student
    ) -> None:
        course = make_api_course(department["id"], "CS201", maxStudents=1)
        make_api_student(school_class["id"], department["id"], courses=[course["id"]])
        student = make_api_student(school_class["id"], department["id"])

        response = _membership(client, "enroll", course, student["id"])

        assert response.status_code == 400
        details = response.json()["details"]
        assert details["entity"] == "Course"
        assert details["current"] == 1
        assert details["maximum"] == 1

    def test_already_enrolled(
        self, client: TestClient, department, school_class, make_api_course, make_api_student
    ) -> None:
        course = make_api_course(department["id"], "CS201")
        student = make_api_student(school_class["id"], department["id"], courses=[course["id"]])

        response = _membership(client, "enroll", course, student["id"])

        assert response.status_code == 400
        assert "already enrolled" in response.json()["error"]

    def test_withdraw_not_enrolled(
        self, client: TestClient, department, school_class, make_api_course, make_api_student
    ) -> None:
        course = make_api_course(department["id"], "CS201")
        student = make_api_student(school_class["id"], department["id"])

        response = _membership(client, "withdraw", course, student["id"])

        assert response.status_code == 400
        assert "not enrolled" in response.json()["error"]

    def test_enroll_unknown_student(self, client: TestClient, department, make_api_course) -> None:
        course = make_api_course(department["id"], "CS201")

        response = _membership(client, "enroll", course, "missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Student not found"


@pytest.mark.unit
class TestCourseListAndDelete:
    def test_list_filters(self, client: TestClient, department, make_api_course) -> None:
        make_api_course(department["id"], "CS201")
        make_api_course(department["id"], "CS301", semester="Spring", courseType="Elective")

        spring = client.get("/api/courses", params={"semester": "Spring"}).json()
        electives = client.get("/api/courses", params={"courseType": "Elective"}).json()

        assert spring["total"] == 1
        assert electives["data"][0]["courseCode"] == "CS301"

    def test_delete_blocked_by_dependent(
        self, client: TestClient, department, make_api_course
    ) -> None:
        base = make_api_course(department["id"], "CS201")
        make_api_course(department["id"], "CS202", prerequisites=[base["id"]])

        response = client.delete(f"/api/courses/{base['id']}")

        assert response.status_code == 400
        assert response.json()["details"] == {"students": 0, "dependentCourses": 1}

    def test_stats(self, client: TestClient, department, make_api_course) -> None:
        make_api_course(department["id"], "CS201")

        data = client.get("/api/courses/stats").json()["data"]

        assert data["totalCourses"] == 1
        assert data["totalCapacity"] == 40
        assert data["byType"] == {"Core": 1}
