# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transition rule seed data.

Seeds ``school_period_transition_rules`` from the rules declared in the
transition rules YAML file. Seeding is idempotent: a rule that already
exists for a grade is updated in place.
"""

import asyncio
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.transition_rules import TransitionRuleConfig
from src.infrastructure.database.models import Grade, SchoolPeriodTransitionRule

logger = logging.getLogger(__name__)


async def seed_transition_rules(
    session: AsyncSession,
    rules: list[TransitionRuleConfig],
    default_min_average: Decimal,
) -> list[SchoolPeriodTransitionRule]:
    """Create or update transition rules.

    Args:
        session: Database session.
        rules: Rules loaded from the configuration file.
        default_min_average: Minimum average for rules that omit one.

    Returns:
        The created or updated rules, in file order.

    Raises:
        ValueError: If a rule references a grade name that does not exist.
    """
    grades_result = await session.execute(select(Grade.name, Grade.id))
    grade_ids = {name: grade_id for name, grade_id in grades_result.all()}

    unknown = sorted(
        {
            name
            for rule in rules
            for name in (rule.grade_from, rule.grade_to)
            if name is not None and name not in grade_ids
        }
    )
    if unknown:
        raise ValueError(f"Unknown grades in transition rules: {', '.join(unknown)}")

    existing_result = await session.execute(select(SchoolPeriodTransitionRule))
    existing = {row.grade_from_id: row for row in existing_result.scalars().all()}

    seeded = []
    for rule in rules:
        grade_from_id = grade_ids[rule.grade_from]
        row = existing.get(grade_from_id)
        if row is None:
            row = SchoolPeriodTransitionRule(grade_from_id=grade_from_id)
            session.add(row)
        row.grade_to_id = grade_ids[rule.grade_to] if rule.grade_to else None
        row.min_average = (
            rule.min_average if rule.min_average is not None else default_min_average
        )
        row.max_pending_subjects = rule.max_pending_subjects
        row.auto_graduate = rule.auto_graduate
        seeded.append(row)

    await session.commit()

    logger.info("Seeded %d transition rules", len(seeded))
    return seeded


if __name__ == "__main__":
    from src.core.config import get_settings
    from src.core.config.transition_rules import load_transition_rules
    from src.infrastructure.database import close_database, get_session, init_database
    from src.utils.logging import setup_logging

    async def main():
        settings = get_settings()
        setup_logging(settings)
        if settings.closure.transition_rules_file is None:
            raise SystemExit("CLOSURE_TRANSITION_RULES_FILE is not set")

        rules = load_transition_rules(settings.closure.transition_rules_file)
        await init_database(settings)
        try:
            async with get_session() as session:
                await seed_transition_rules(
                    session, rules, settings.closure.default_min_average
                )
        finally:
            await close_database()

    asyncio.run(main())
