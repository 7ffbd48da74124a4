# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closure precondition checks.

The validator never stops at the first problem: every failed check is
collected so an operator can fix all of them in one pass. Errors block the
closure, warnings are informational.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import ClosureSettings
from src.domains.period_closure.snapshot import PeriodSnapshot, load_period_snapshot
from src.domains.period_closure.transition_rules import Found, MissingRule, lookup_rule
from src.models.period_closure import ClosureValidationResult

logger = logging.getLogger(__name__)


def _grade_label(snapshot: PeriodSnapshot, grade_id: int) -> str:
    name = snapshot.grade_names.get(grade_id)
    return f"{name} (id {grade_id})" if name else f"id {grade_id}"


def validate_snapshot(snapshot: PeriodSnapshot) -> ClosureValidationResult:
    """Run every closure precondition check against a snapshot.

    Args:
        snapshot: Loaded closure inputs.

    Returns:
        Validation result with all errors and warnings found.
    """
    errors: list[str] = []
    warnings: list[str] = []

    # Terms
    if not snapshot.terms:
        errors.append("The school period has no terms")
    unblocked = snapshot.unblocked_terms
    if unblocked:
        names = ", ".join(term.name for term in unblocked)
        errors.append(f"All terms must be blocked before closing; still open: {names}")

    # Council checklist
    if snapshot.checklist_total == 0:
        warnings.append("No course council checklist entries are registered for this period")
    elif snapshot.checklist_done < snapshot.checklist_total:
        errors.append(
            f"Course council checklist incomplete: {snapshot.checklist_done} of "
            f"{snapshot.checklist_total} entries done"
        )

    # Transition rules
    grade_ids = set(snapshot.structure_grade_ids)
    grade_ids.update(inscription.grade_id for inscription in snapshot.inscriptions)
    found_rules = {}
    for grade_id in sorted(grade_ids):
        match lookup_rule(snapshot.rules, grade_id):
            case Found(rule):
                found_rules[grade_id] = rule
            case MissingRule(missing_grade_id):
                errors.append(
                    f"Missing transition rule for grade {_grade_label(snapshot, missing_grade_id)}"
                )

    # Period state
    if not snapshot.period.is_active:
        errors.append(f"School period {snapshot.period.name} is not active")

    next_period = snapshot.next_period
    if next_period is None:
        errors.append(
            f"No school period after {snapshot.period.name} exists to receive new inscriptions"
        )
    else:
        enrolled_grades = sorted({inscription.grade_id for inscription in snapshot.inscriptions})
        targets: set[int] = set()
        for grade_id in enrolled_grades:
            rule = found_rules.get(grade_id)
            if rule is None:
                continue
            targets.add(rule.grade_from_id)
            if rule.grade_to_id is not None:
                targets.add(rule.grade_to_id)
        for grade_id in sorted(targets):
            if grade_id not in snapshot.next_structure:
                errors.append(
                    f"Grade {_grade_label(snapshot, grade_id)} is not offered in "
                    f"{next_period.name}"
                )

        already_enrolled = sorted(
            inscription.person_id
            for inscription in snapshot.inscriptions
            if inscription.person_id in snapshot.next_period_person_ids
        )
        if already_enrolled:
            ids = ", ".join(str(person_id) for person_id in already_enrolled)
            errors.append(f"Students already enrolled in {next_period.name}: {ids}")

    # Grade inputs
    context = snapshot.aggregation_context
    for inscription in snapshot.inscriptions:
        if not inscription.subjects:
            warnings.append(f"Inscription {inscription.inscription_id} has no subjects")
            continue
        for subject in inscription.subjects:
            for qualification in subject.qualifications:
                if qualification.percentage is None:
                    errors.append(
                        f"Qualification {qualification.qualification_id} of inscription "
                        f"subject {subject.inscription_subject_id} (inscription "
                        f"{inscription.inscription_id}) references a missing evaluation plan"
                    )
            if not any(
                qualification.term_id in context.term_ids
                for qualification in subject.qualifications
            ):
                label = subject.subject_name or f"subject {subject.subject_id}"
                warnings.append(
                    f"Inscription {inscription.inscription_id} has no qualifications for {label}"
                )

    return ClosureValidationResult(valid=not errors, errors=errors, warnings=warnings)


async def validate_closure(
    db: AsyncSession,
    period_id: int,
    settings: ClosureSettings,
) -> ClosureValidationResult:
    """Load a period snapshot and validate it.

    Raises:
        PeriodNotFoundError: If the period does not exist.
    """
    snapshot = await load_period_snapshot(db, period_id, settings)
    result = validate_snapshot(snapshot)

    logger.info(
        "Validated closure of period %s: %d errors, %d warnings",
        period_id,
        len(result.errors),
        len(result.warnings),
    )

    return result
