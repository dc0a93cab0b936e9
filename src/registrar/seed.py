"""Sample data set for local development.

Everything is created through the RecordStore, so counters start at zero and
are raised by the students that reference each entity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from registrar.records import RecordStore

logger = logging.getLogger(__name__)

DEPARTMENTS: list[dict[str, Any]] = [
    {
        "department_name": "Computer Science",
        "department_code": "CS",
        "head_of_department": {
            "name": "Dr. John Smith",
            "email": "john.smith@university.edu",
            "phone": "1234567890",
            "qualification": "PhD in Computer Science",
        },
        "contact_email": "cs@university.edu",
        "contact_phone": "1234567891",
        "establishment_year": 2000,
        "description": "Department of Computer Science offering cutting-edge programs",
        "total_faculty": 25,
        "location": {"building": "Science Block", "floor": "3rd Floor", "room": "301"},
        "facilities": ["Computer Labs", "Research Center", "Library"],
    },
    {
        "department_name": "Electrical Engineering",
        "department_code": "EE",
        "head_of_department": {
            "name": "Dr. Sarah Johnson",
            "email": "sarah.johnson@university.edu",
            "phone": "1234567892",
            "qualification": "PhD in Electrical Engineering",
        },
        "contact_email": "ee@university.edu",
        "contact_phone": "1234567893",
        "establishment_year": 1995,
        "description": "Department of Electrical Engineering with modern labs",
        "total_faculty": 20,
        "location": {"building": "Engineering Block", "floor": "2nd Floor", "room": "201"},
        "facilities": ["Electronics Lab", "Power Systems Lab", "Workshop"],
    },
    {
        "department_name": "Business Administration",
        "department_code": "BA",
        "head_of_department": {
            "name": "Dr. Michael Brown",
            "email": "michael.brown@university.edu",
            "phone": "1234567894",
            "qualification": "PhD in Business Administration",
        },
        "contact_email": "ba@university.edu",
        "contact_phone": "1234567895",
        "establishment_year": 1990,
        "description": "Department of Business Administration focusing on modern business practices",
        "total_faculty": 30,
        "location": {"building": "Commerce Block", "floor": "1st Floor", "room": "101"},
        "facilities": ["Case Study Room", "Business Lab", "Conference Hall"],
    },
]

# (department code, fields)
CLASSES: list[tuple[str, dict[str, Any]]] = [
    (
        "CS",
        {
            "class_name": "CS101",
            "section": "A",
            "academic_year": "2024-2025",
            "capacity": 50,
            "class_teacher": {
                "name": "Prof. Alice Johnson",
                "email": "alice.johnson@university.edu",
                "phone": "1234567801",
            },
            "schedule": {
                "days": ["Monday", "Wednesday", "Friday"],
                "time": {"start": "09:00", "end": "10:00"},
                "roomNumber": "CS-101",
            },
            "description": "Introduction to Computer Science",
        },
    ),
    (
        "EE",
        {
            "class_name": "EE201",
            "section": "B",
            "academic_year": "2024-2025",
            "capacity": 40,
            "class_teacher": {
                "name": "Prof. Bob Williams",
                "email": "bob.williams@university.edu",
                "phone": "1234567802",
            },
            "schedule": {
                "days": ["Tuesday", "Thursday"],
                "time": {"start": "11:00", "end": "12:30"},
                "roomNumber": "EE-201",
            },
            "description": "Electrical Circuits and Systems",
        },
    ),
    (
        "BA",
        {
            "class_name": "BA301",
            "section": "C",
            "academic_year": "2024-2025",
            "capacity": 60,
            "class_teacher": {
                "name": "Prof. Carol Davis",
                "email": "carol.davis@university.edu",
                "phone": "1234567803",
            },
            "schedule": {
                "days": ["Monday", "Wednesday"],
                "time": {"start": "14:00", "end": "15:30"},
                "roomNumber": "BA-301",
            },
            "description": "Principles of Management",
        },
    ),
]

# (department code, prerequisite course codes, fields)
COURSES: list[tuple[str, list[str], dict[str, Any]]] = [
    (
        "CS",
        [],
        {
            "course_name": "Data Structures",
            "course_code": "CS201",
            "credit_hours": 3,
            "description": "Introduction to data structures and algorithms",
            "instructor": {
                "name": "Dr. David Wilson",
                "email": "david.wilson@university.edu",
                "phone": "1234567810",
            },
            "semester": "Fall",
            "year": 2,
            "schedule": {
                "days": ["Monday", "Wednesday"],
                "time": {"start": "10:00", "end": "11:00"},
                "room": "CS-201",
            },
            "max_students": 50,
            "grading_policy": {"assignments": 30, "midterm": 30, "final": 40},
        },
    ),
    (
        "CS",
        ["CS201"],
        {
            "course_name": "Database Management",
            "course_code": "CS202",
            "credit_hours": 3,
            "description": "Fundamentals of database systems",
            "instructor": {
                "name": "Dr. Emily Taylor",
                "email": "emily.taylor@university.edu",
                "phone": "1234567811",
            },
            "semester": "Spring",
            "year": 2,
            "schedule": {
                "days": ["Tuesday", "Thursday"],
                "time": {"start": "11:00", "end": "12:00"},
                "room": "CS-202",
            },
            "max_students": 40,
            "grading_policy": {"assignments": 25, "midterm": 35, "final": 40},
        },
    ),
    (
        "EE",
        [],
        {
            "course_name": "Digital Electronics",
            "course_code": "EE101",
            "credit_hours": 4,
            "description": "Introduction to digital circuits and systems",
            "instructor": {
                "name": "Dr. Frank Miller",
                "email": "frank.miller@university.edu",
                "phone": "1234567812",
            },
            "semester": "Fall",
            "year": 1,
            "schedule": {
                "days": ["Monday", "Wednesday", "Friday"],
                "time": {"start": "09:00", "end": "10:00"},
                "room": "EE-101",
            },
            "max_students": 60,
            "grading_policy": {"assignments": 20, "midterm": 30, "final": 50},
        },
    ),
]

# (class code, department code, course codes, fields)
STUDENTS: list[tuple[str, str, list[str], dict[str, Any]]] = [
    (
        "CS101-A",
        "CS",
        ["CS201", "CS202"],
        {
            "name": "John Doe",
            "roll_number": "CS2023001",
            "email": "john.doe@student.university.edu",
            "phone": "9876543210",
            "address": {
                "street": "123 Main Street",
                "city": "New York",
                "state": "NY",
                "zipCode": "10001",
                "country": "USA",
            },
            "date_of_birth": date(2000, 1, 15),
            "gender": "Male",
            "enrollment_date": date(2023, 8, 1),
            "academic_year": "2023-2024",
            "guardian_info": {
                "name": "Robert Doe",
                "relationship": "Father",
                "phone": "9876543211",
                "email": "robert.doe@email.com",
            },
            "photo": "john_doe.jpg",
        },
    ),
    (
        "EE201-B",
        "EE",
        ["EE101"],
        {
            "name": "Jane Smith",
            "roll_number": "EE2023002",
            "email": "jane.smith@student.university.edu",
            "phone": "9876543212",
            "address": {
                "street": "456 Oak Avenue",
                "city": "Los Angeles",
                "state": "CA",
                "zipCode": "90001",
                "country": "USA",
            },
            "date_of_birth": date(2001, 3, 20),
            "gender": "Female",
            "enrollment_date": date(2023, 8, 1),
            "academic_year": "2023-2024",
            "guardian_info": {
                "name": "Mary Smith",
                "relationship": "Mother",
                "phone": "9876543213",
                "email": "mary.smith@email.com",
            },
            "photo": "jane_smith.jpg",
        },
    ),
    (
        "BA301-C",
        "BA",
        [],
        {
            "name": "Alice Johnson",
            "roll_number": "BA2023003",
            "email": "alice.johnson@student.university.edu",
            "phone": "9876543214",
            "address": {
                "street": "789 Pine Road",
                "city": "Chicago",
                "state": "IL",
                "zipCode": "60601",
                "country": "USA",
            },
            "date_of_birth": date(2002, 6, 10),
            "gender": "Female",
            "enrollment_date": date(2023, 8, 1),
            "academic_year": "2023-2024",
            "guardian_info": {
                "name": "Thomas Johnson",
                "relationship": "Father",
                "phone": "9876543215",
                "email": "thomas.johnson@email.com",
            },
            "photo": "alice_johnson.jpg",
        },
    ),
]


@dataclass
class SeedSummary:
    """Ids of the seeded records, keyed by their human-readable code."""

    departments: dict[str, str] = field(default_factory=dict)
    classes: dict[str, str] = field(default_factory=dict)
    courses: dict[str, str] = field(default_factory=dict)
    students: dict[str, str] = field(default_factory=dict)


def seed_database(store: RecordStore, reset: bool = True) -> SeedSummary:
    """Load the sample data set.

    Args:
        store: Target store.
        reset: Drop and recreate every table first.

    Returns:
        Ids of everything created.
    """
    if reset:
        store.database.drop_tables()
        store.database.create_tables()
        logger.info("Cleared existing data")

    summary = SeedSummary()
    for fields in DEPARTMENTS:
        department = store.create_department(**fields)
        summary.departments[department.department_code] = department.id

    for dept_code, fields in CLASSES:
        school_class = store.create_class(department_id=summary.departments[dept_code], **fields)
        summary.classes[school_class.class_code] = school_class.id

    for dept_code, prereq_codes, fields in COURSES:
        course = store.create_course(
            department_id=summary.departments[dept_code],
            prerequisite_ids=[summary.courses[code] for code in prereq_codes],
            **fields,
        )
        summary.courses[course.course_code] = course.id

    for class_code, dept_code, course_codes, fields in STUDENTS:
        student = store.create_student(
            class_id=summary.classes[class_code],
            department_id=summary.departments[dept_code],
            course_ids=[summary.courses[code] for code in course_codes],
            **fields,
        )
        summary.students[student.roll_number] = student.id

    logger.info(
        "Seeded %d departments, %d classes, %d courses, %d students",
        len(summary.departments),
        len(summary.classes),
        len(summary.courses),
        len(summary.students),
    )
    return summary
