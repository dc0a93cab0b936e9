"""Fixtures for API route tests."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from registrar.api.app import create_app
from registrar.api.dependencies import get_record_store
from registrar.config import Settings
from registrar.records import RecordStore


@pytest.fixture
def app(store: RecordStore) -> FastAPI:
    """Create the app with its store dependency pointed at the test store."""
    app = create_app(Settings(db_path=":memory:", bulk_limit=5))

    def override_get_record_store():
        yield store

    app.dependency_overrides[get_record_store] = override_get_record_store
    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def department_payload() -> dict:
    return {
        "departmentName": "Computer Science",
        "departmentCode": "cs",
        "headOfDepartment": {
            "name": "Dr. John Smith",
            "email": "John.Smith@University.edu",
            "phone": "1234567890",
        },
        "establishmentYear": 2000,
        "totalFaculty": 25,
        "facilities": ["Computer Labs"],
    }


@pytest.fixture
def make_department(client: TestClient, department_payload: dict):
    def _make(**overrides) -> dict:
        response = client.post("/api/departments", json={**department_payload, **overrides})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make


@pytest.fixture
def make_class(client: TestClient):
    def _make(department_id: str, **overrides) -> dict:
        payload = {
            "className": "cs101",
            "section": "a",
            "academicYear": "2024-2025",
            "capacity": 10,
            "department": department_id,
            "schedule": {
                "days": ["Monday", "Wednesday"],
                "time": {"start": "09:00", "end": "10:00"},
                "roomNumber": "CS-101",
            },
        }
        payload.update(overrides)
        response = client.post("/api/classes", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make


@pytest.fixture
def make_api_course(client: TestClient):
    def _make(department_id: str, code: str, **overrides) -> dict:
        payload = {
            "courseName": f"Course {code}",
            "courseCode": code,
            "creditHours": 3,
            "department": department_id,
            "semester": "Fall",
            "year": 2,
            "maxStudents": 40,
        }
        payload.update(overrides)
        response = client.post("/api/courses", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make


@pytest.fixture
def student_payload():
    counter = {"n": 0}

    def _payload(class_id: str, department_id: str, **overrides) -> dict:
        counter["n"] += 1
        n = counter["n"]
        payload = {
            "name": f"Student Number {n}",
            "rollNumber": f"cs2023{n:03d}",
            "email": f"Student{n}@Uni.edu",
            "phone": "9876543210",
            "address": {
                "street": "123 Main Street",
                "city": "New York",
                "state": "NY",
                "zipCode": "10001",
                "country": "USA",
            },
            "dateOfBirth": "2000-01-15",
            "gender": "Male",
            "class": class_id,
            "department": department_id,
            "academicYear": "2023-2024",
            "guardianInfo": {"name": "Robert Doe", "relationship": "Father", "phone": "9876543211"},
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def make_api_student(client: TestClient, student_payload):
    def _make(class_id: str, department_id: str, **overrides) -> dict:
        response = client.post(
            "/api/students", json=student_payload(class_id, department_id, **overrides)
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make
