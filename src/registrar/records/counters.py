"""Denormalized counter maintenance.

Three counters mirror live reference counts held by Student rows:

- ``SchoolClass.current_strength`` counts students whose ``class_id`` points at it.
- ``Department.total_students`` counts students whose ``department_id`` points at it.
- ``Course.enrolled_students`` counts ``student_courses`` rows for the course.

Every change goes through a single UPDATE statement so the capacity check and
the increment are observed as one step per row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from registrar.records.exceptions import (
    CapacityExceededError,
    ClassNotFoundError,
    CourseNotFoundError,
    DepartmentNotFoundError,
    RecordNotFoundError,
)
from registrar.records.models import (
    Course,
    Department,
    SchoolClass,
    Student,
    student_courses,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Counter:
    """How one denormalized counter is stored and bounded."""

    entity: str
    model: type[Any]
    field: str
    limit_field: str | None
    not_found: type[RecordNotFoundError]
    label: Callable[[Any], str]


CLASS_STRENGTH = Counter(
    entity="Class",
    model=SchoolClass,
    field="current_strength",
    limit_field="capacity",
    not_found=ClassNotFoundError,
    label=lambda c: c.class_code,
)

DEPARTMENT_STUDENTS = Counter(
    entity="Department",
    model=Department,
    field="total_students",
    limit_field=None,
    not_found=DepartmentNotFoundError,
    label=lambda d: d.department_code,
)

COURSE_ENROLLMENT = Counter(
    entity="Course",
    model=Course,
    field="enrolled_students",
    limit_field="max_students",
    not_found=CourseNotFoundError,
    label=lambda c: c.course_code,
)

COUNTERS = (CLASS_STRENGTH, DEPARTMENT_STUDENTS, COURSE_ENROLLMENT)


def increment(session: Session, counter: Counter, entity_id: str) -> None:
    """Add one to a counter, refusing if it would pass the entity's limit.

    Raises:
        RecordNotFoundError: If the entity does not exist.
        CapacityExceededError: If the counter already sits at its limit.
    """
    model = counter.model
    column = getattr(model, counter.field)
    stmt = update(model).where(model.id == entity_id)
    if counter.limit_field is not None:
        stmt = stmt.where(column < getattr(model, counter.limit_field))
    result = session.execute(stmt.values({counter.field: column + 1}))
    if result.rowcount == 1:
        return

    # Nothing matched: find out whether the row is missing or full
    entity = session.get(model, entity_id, populate_existing=True)
    if entity is None:
        raise counter.not_found(entity_id)
    raise CapacityExceededError(
        entity=counter.entity,
        entity_id=entity_id,
        label=counter.label(entity),
        current=getattr(entity, counter.field),
        maximum=getattr(entity, counter.limit_field),  # type: ignore[arg-type]
    )


def decrement(session: Session, counter: Counter, entity_id: str) -> bool:
    """Subtract one from a counter, never going below zero.

    Returns:
        False when nothing was subtracted, which means the counter had already
        drifted from the reference count (or the entity is gone).
    """
    model = counter.model
    column = getattr(model, counter.field)
    result = session.execute(
        update(model)
        .where(model.id == entity_id, column > 0)
        .values({counter.field: column - 1})
    )
    if result.rowcount == 1:
        return True

    if session.get(model, entity_id) is None:
        logger.warning("%s %s referenced by a student no longer exists", counter.entity, entity_id)
    else:
        logger.warning(
            "%s %s %s already at zero; counter drift detected, run a counter repair",
            counter.entity,
            entity_id,
            counter.field,
        )
    return False


@dataclass
class CounterDrift:
    """A counter whose stored value disagrees with the live reference count."""

    entity: str
    entity_id: str
    field: str
    stored: int
    actual: int


@dataclass
class CounterReport:
    """Outcome of a counter check or repair pass."""

    checked: int = 0
    drifts: list[CounterDrift] = field(default_factory=list)
    applied: bool = False

    @property
    def consistent(self) -> bool:
        return not self.drifts


def _live_counts(session: Session, counter: Counter) -> list[tuple[str, int, int]]:
    """(id, stored value, live reference count) for every row of a counter's table."""
    model = counter.model
    stored = getattr(model, counter.field)
    if counter is CLASS_STRENGTH:
        live = (
            select(Student.class_id.label("ref_id"), func.count().label("n"))
            .group_by(Student.class_id)
            .subquery()
        )
    elif counter is DEPARTMENT_STUDENTS:
        live = (
            select(Student.department_id.label("ref_id"), func.count().label("n"))
            .group_by(Student.department_id)
            .subquery()
        )
    else:
        live = (
            select(student_courses.c.course_id.label("ref_id"), func.count().label("n"))
            .group_by(student_courses.c.course_id)
            .subquery()
        )
    stmt = (
        select(model.id, stored, func.coalesce(live.c.n, 0))
        .outerjoin(live, live.c.ref_id == model.id)
        .order_by(model.id)
    )
    return [(row[0], row[1], row[2]) for row in session.execute(stmt)]


def reconcile_counters(session: Session, apply: bool = False) -> CounterReport:
    """Recompute every counter from live references.

    Args:
        session: Open session; the caller commits when ``apply`` is True.
        apply: Overwrite drifted counters with the recomputed values.

    Returns:
        Report listing every drifted counter. Running it twice in a row with
        ``apply=True`` yields an empty second report.
    """
    report = CounterReport(applied=apply)
    for counter in COUNTERS:
        for entity_id, stored, actual in _live_counts(session, counter):
            report.checked += 1
            if stored == actual:
                continue
            report.drifts.append(
                CounterDrift(
                    entity=counter.entity,
                    entity_id=entity_id,
                    field=counter.field,
                    stored=stored,
                    actual=actual,
                )
            )
            if apply:
                session.execute(
                    update(counter.model)
                    .where(counter.model.id == entity_id)
                    .values({counter.field: actual})
                )

    if report.drifts:
        logger.warning(
            "Counter drift on %d of %d counters (applied=%s)",
            len(report.drifts),
            report.checked,
            apply,
        )
    return report
