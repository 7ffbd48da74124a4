# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Provides database engines, sessions and a period ready to be closed.
Tests run against ``TEST_DATABASE_URL`` when set, and against an
in-memory SQLite database otherwise.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.infrastructure.database.models import (
    Base,
    CouncilChecklist,
    EvaluationPlan,
    Grade,
    Inscription,
    InscriptionSubject,
    PeriodGrade,
    PeriodGradeSection,
    Qualification,
    SchoolPeriod,
    SchoolPeriodTransitionRule,
    Section,
    Subject,
    Term,
)


@pytest.fixture(scope="session")
def db_url() -> str:
    """Get database URL for tests."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture(scope="function")
async def db_engine(db_url: str):
    """Create async engine with a fresh schema."""
    if db_url.startswith("sqlite"):
        engine = create_async_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_async_engine(db_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async session for database tests."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@dataclass
class ClosureData:
    """Identifiers of the seeded closure scenario."""

    period_id: int
    next_period_id: int
    grade_ids: dict[str, int]
    section_id: int
    subject_ids: dict[str, int]
    term_ids: list[int]
    inscription_ids: dict[str, int] = field(default_factory=dict)
    person_ids: dict[str, int] = field(default_factory=dict)
    inscription_subject_ids: dict[tuple[str, str], int] = field(default_factory=dict)


# Final scores per student and subject; each score is entered twice, in
# term 1 at 40% and in term 3 at 60%, so it is also the subject's final score.
STUDENT_SCORES = {
    "ana": {"Matemática": "12", "Física": "8", "Química": "15"},
    "bruno": {"Matemática": "5", "Física": "6", "Química": "4"},
    "carla": {"Matemática": "18", "Física": "20", "Química": "16"},
}


@pytest_asyncio.fixture
async def closure_data(db_session: AsyncSession) -> ClosureData:
    """Seed a period ready to be closed.

    Grade "1er Año" promotes to "2do Año" with up to two pending subjects;
    "2do Año" graduates. Ana passes with one pending subject, Bruno repeats
    and Carla is promoted. Every term is blocked and the council checklist
    is complete.
    """
    first, second = Grade(name="1er Año", order=1), Grade(name="2do Año", order=2)
    section = Section(name="A")
    period = SchoolPeriod(name="2024-2025", start_year=2024, end_year=2025, is_active=True)
    next_period = SchoolPeriod(name="2025-2026", start_year=2025, end_year=2026, is_active=False)
    subjects = {name: Subject(name=name) for name in ("Matemática", "Física", "Química")}
    db_session.add_all([first, second, section, period, next_period, *subjects.values()])
    await db_session.flush()

    terms = [
        Term(school_period_id=period.id, name=f"Lapso {order}", order=order, is_blocked=True)
        for order in (1, 2, 3)
    ]
    db_session.add_all(terms)

    for school_period in (period, next_period):
        for grade in (first, second):
            period_grade = PeriodGrade(school_period_id=school_period.id, grade_id=grade.id)
            db_session.add(period_grade)
            await db_session.flush()
            db_session.add(
                PeriodGradeSection(period_grade_id=period_grade.id, section_id=section.id)
            )

    db_session.add_all(
        [
            SchoolPeriodTransitionRule(
                grade_from_id=first.id,
                grade_to_id=second.id,
                min_average=Decimal("10"),
                max_pending_subjects=2,
            ),
            SchoolPeriodTransitionRule(
                grade_from_id=second.id,
                grade_to_id=None,
                min_average=Decimal("10"),
                max_pending_subjects=0,
                auto_graduate=True,
            ),
        ]
    )
    await db_session.flush()

    plans = {}
    for name, subject in subjects.items():
        plans[name] = [
            EvaluationPlan(
                subject_id=subject.id,
                term_id=terms[0].id,
                description=f"{name} exam 1",
                percentage=Decimal("40"),
            ),
            EvaluationPlan(
                subject_id=subject.id,
                term_id=terms[2].id,
                description=f"{name} exam 2",
                percentage=Decimal("60"),
            ),
        ]
        db_session.add_all(plans[name])

    for term in terms:
        db_session.add(
            CouncilChecklist(
                school_period_id=period.id,
                grade_id=first.id,
                section_id=section.id,
                term_id=term.id,
                status="done",
                completed_by=1,
            )
        )
    await db_session.flush()

    data = ClosureData(
        period_id=period.id,
        next_period_id=next_period.id,
        grade_ids={"1er Año": first.id, "2do Año": second.id},
        section_id=section.id,
        subject_ids={name: subject.id for name, subject in subjects.items()},
        term_ids=[term.id for term in terms],
    )

    for person_id, (student, scores) in enumerate(STUDENT_SCORES.items(), start=1001):
        inscription = Inscription(
            person_id=person_id,
            school_period_id=period.id,
            grade_id=first.id,
            section_id=section.id,
        )
        db_session.add(inscription)
        await db_session.flush()
        data.inscription_ids[student] = inscription.id
        data.person_ids[student] = person_id

        for name, score in scores.items():
            inscription_subject = InscriptionSubject(
                inscription_id=inscription.id, subject_id=subjects[name].id
            )
            db_session.add(inscription_subject)
            await db_session.flush()
            data.inscription_subject_ids[(student, name)] = inscription_subject.id
            for plan in plans[name]:
                db_session.add(
                    Qualification(
                        evaluation_plan_id=plan.id,
                        inscription_subject_id=inscription_subject.id,
                        score=Decimal(score),
                    )
                )

    await db_session.commit()
    return data
