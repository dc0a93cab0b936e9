"""Unit tests for student routes."""

import csv
import io

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def department(make_department) -> dict:
    return make_department()


@pytest.fixture
def school_class(department, make_class) -> dict:
    return make_class(department["id"])


@pytest.fixture
def refs(school_class, department) -> tuple[str, str]:
    return school_class["id"], department["id"]


@pytest.mark.unit
class TestCreateStudent:
    """Tests for POST /students."""

    def test_create_expands_references(self, client: TestClient, refs, student_payload) -> None:
        response = client.post("/api/students", json=student_payload(*refs))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["rollNumber"] == "CS2023001"
        assert data["email"] == "student1@uni.edu"
        assert data["class"]["classCode"] == "CS101-A"
        assert data["department"]["departmentCode"] == "CS"
        assert data["courses"] == []
        assert data["address"]["zipCode"] == "10001"
        assert data["fullAddress"] == "123 Main Street, New York, NY 10001, USA"
        assert data["status"] == "Active"
        assert data["photo"] == "default-avatar.png"

    def test_create_updates_class_counter(
        self, client: TestClient, refs, school_class, make_api_student
    ) -> None:
        make_api_student(*refs)

        detail = client.get(f"/api/classes/{school_class['id']}").json()["data"]
        assert detail["class"]["currentStrength"] == 1

    def test_validation_errors_keyed_by_field(
        self, client: TestClient, refs, student_payload
    ) -> None:
        payload = student_payload(*refs, phone="123", dateOfBirth="2024-01-01", gender="Unknown")
        del payload["guardianInfo"]

        response = client.post("/api/students", json=payload)

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert {"phone", "dateOfBirth", "gender", "guardianInfo"} <= set(errors)

    def test_nested_error_path(self, client: TestClient, refs, student_payload) -> None:
        payload = student_payload(*refs)
        del payload["address"]["city"]

        response = client.post("/api/students", json=payload)

        assert "address.city" in response.json()["errors"]

    def test_duplicate_roll_number(
        self, client: TestClient, refs, student_payload, make_api_student
    ) -> None:
        make_api_student(*refs, rollNumber="DUP1")

        response = client.post("/api/students", json=student_payload(*refs, rollNumber="dup1"))

        assert response.status_code == 400
        assert response.json()["error"] == "Roll number 'DUP1' is already in use"

    def test_class_full(self, client: TestClient, department, make_class, student_payload) -> None:
        tiny = make_class(department["id"], className="CS900", capacity=1)
        client.post("/api/students", json=student_payload(tiny["id"], department["id"]))

        response = client.post("/api/students", json=student_payload(tiny["id"], department["id"]))

        assert response.status_code == 400
        assert response.json()["details"]["entity"] == "Class"

    def test_unknown_class(self, client: TestClient, department, student_payload) -> None:
        response = client.post("/api/students", json=student_payload("missing", department["id"]))

        assert response.status_code == 404
        assert response.json()["error"] == "Class not found"


@pytest.mark.unit
class TestReadStudents:
    """Tests for list, get, search and stats."""

    def test_list_and_filter(self, client: TestClient, refs, make_api_student) -> None:
        make_api_student(*refs, gender="Female")
        make_api_student(*refs)

        everyone = client.get("/api/students").json()
        women = client.get("/api/students", params={"gender": "Female"}).json()

        assert everyone["total"] == 2
        assert women["total"] == 1
        assert women["data"][0]["gender"] == "Female"

    def test_list_bad_paging(self, client: TestClient) -> None:
        response = client.get("/api/students", params={"page": 0, "limit": 1000})

        assert response.status_code == 400
        assert {"page", "limit"} <= set(response.json()["errors"])

    def test_list_unknown_sort(self, client: TestClient) -> None:
        response = client.get("/api/students", params={"sortBy": "secret"})

        assert response.status_code == 400
        assert "sortBy" in response.json()["errors"]

    def test_get(self, client: TestClient, refs, make_api_student) -> None:
        student = make_api_student(*refs)

        response = client.get(f"/api/students/{student['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == student["id"]

    def test_get_missing(self, client: TestClient) -> None:
        response = client.get("/api/students/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Student not found"

    def test_search_with_statistics(self, client: TestClient, refs, make_api_student) -> None:
        make_api_student(*refs, name="Priya Sharma")
        make_api_student(*refs, name="Priya Patel", status="Inactive")
        make_api_student(*refs, name="Rahul Verma")

        response = client.get("/api/students/search", params={"q": "priya", "limit": 1})

        body = response.json()
        assert body["total"] == 2
        assert body["count"] == 1
        assert body["statistics"]["totalStudents"] == 2
        assert body["statistics"]["activeStudents"] == 1
        assert body["statistics"]["averageAge"] > 0

    def test_stats(self, client: TestClient, refs, make_api_student) -> None:
        make_api_student(*refs)

        data = client.get("/api/students/stats").json()["data"]

        assert data["totalStudents"] == 1
        assert data["byGender"] == {"Male": 1}
        assert data["byClass"][0]["classCode"] == "CS101-A"


@pytest.mark.unit
class TestUpdateDeleteStudent:
    """Tests for PUT and DELETE /students/{id}."""

    def test_move_class(
        self, client: TestClient, department, school_class, make_class, make_api_student
    ) -> None:
        other = make_class(department["id"], section="B")
        student = make_api_student(school_class["id"], department["id"])

        response = client.put(f"/api/students/{student['id']}", json={"class": other["id"]})

        assert response.status_code == 200
        assert response.json()["data"]["class"]["id"] == other["id"]
        old = client.get(f"/api/classes/{school_class['id']}").json()["data"]["class"]
        new = client.get(f"/api/classes/{other['id']}").json()["data"]["class"]
        assert old["currentStrength"] == 0
        assert new["currentStrength"] == 1

    def test_update_courses(
        self, client: TestClient, refs, department, make_api_course, make_api_student
    ) -> None:
        course = make_api_course(department["id"], "CS201")
        student = make_api_student(*refs)

        response = client.put(f"/api/students/{student['id']}", json={"courses": [course["id"]]})

        assert response.status_code == 200
        assert [c["courseCode"] for c in response.json()["data"]["courses"]] == ["CS201"]

    def test_null_fields_ignored(self, client: TestClient, refs, make_api_student) -> None:
        student = make_api_student(*refs)

        response = client.put(f"/api/students/{student['id']}", json={"name": None})

        assert response.status_code == 200
        assert response.json()["data"]["name"] == student["name"]

    def test_delete(self, client: TestClient, refs, school_class, make_api_student) -> None:
        student = make_api_student(*refs)

        response = client.delete(f"/api/students/{student['id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "Student deleted successfully"
        detail = client.get(f"/api/classes/{school_class['id']}").json()["data"]
        assert detail["class"]["currentStrength"] == 0


@pytest.mark.unit
class TestBulkCreate:
    """Tests for POST /students/bulk."""

    def test_two_valid_one_duplicate(self, client: TestClient, refs, student_payload) -> None:
        first = student_payload(*refs)
        second = student_payload(*refs)
        duplicate = student_payload(*refs, email=first["email"])

        response = client.post("/api/students/bulk", json={"students": [first, second, duplicate]})

        assert response.status_code == 200
        body = response.json()
        assert body["created"] == 2
        assert body["failed"] == 1
        assert [r["success"] for r in body["results"]] == [True, True, False]
        assert client.get("/api/students").json()["total"] == 2

    def test_invalid_draft_reports_field_errors(
        self, client: TestClient, refs, student_payload
    ) -> None:
        bad = student_payload(*refs, email="not-an-email")

        response = client.post(
            "/api/students/bulk", json={"students": [student_payload(*refs), bad]}
        )

        body = response.json()
        assert body["created"] == 1
        assert "email" in body["results"][1]["errors"]

    def test_non_object_draft_fails_alone(
        self, client: TestClient, refs, student_payload
    ) -> None:
        response = client.post("/api/students/bulk", json={"students": [student_payload(*refs), 1]})

        assert response.status_code == 200
        body = response.json()
        assert body["created"] == 1
        assert body["failed"] == 1
        assert body["results"][0]["success"] is True
        assert body["results"][1]["success"] is False
        assert body["results"][1]["errors"]
        assert client.get("/api/students").json()["total"] == 1

    def test_batch_over_limit(self, client: TestClient, refs, student_payload) -> None:
        drafts = [student_payload(*refs) for _ in range(6)]

        response = client.post("/api/students/bulk", json={"students": drafts})

        assert response.status_code == 400
        assert "students" in response.json()["errors"]


@pytest.mark.unit
class TestExport:
    """Tests for GET /students/export."""

    def test_json(self, client: TestClient, refs, make_api_student) -> None:
        make_api_student(*refs)

        body = client.get("/api/students/export").json()

        assert body["count"] == 1
        assert body["data"][0]["rollNumber"] == "CS2023001"

    def test_csv(self, client: TestClient, refs, make_api_student) -> None:
        make_api_student(*refs, rollNumber="BB2")
        make_api_student(*refs, rollNumber="AA1")

        response = client.get("/api/students/export", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "students.csv" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][:2] == ["Roll Number", "Name"]
        assert [row[0] for row in rows[1:]] == ["AA1", "BB2"]
        assert rows[1][7] == "CS101-A"

    def test_unknown_format(self, client: TestClient) -> None:
        response = client.get("/api/students/export", params={"format": "xml"})

        assert response.status_code == 400
