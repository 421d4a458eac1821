"""
Assessment weightage validation.

Assessments sharing a scope (by default term + academic year + subject)
must not add up to more than 100%. The check works on a snapshot of
sibling assessments supplied by the caller. Two concurrent saves can both
pass against the same snapshot, so callers must re-run the check inside the
transaction that persists the assessment, holding a lock on the scope
(e.g. select_for_update on the sibling rows).
"""
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError

from . import config
from .resolver import to_decimal
from .structures import WeightageVerdict

logger = logging.getLogger(__name__)


def format_percentage(value):
    """Render 40 as '40' and 12.50 as '12.5'."""
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.normalize())


def _weightage_of(assessment):
    value = to_decimal(assessment.weightage)
    if value is None or value < 0:
        raise ValueError(
            f'Assessment {assessment.assessment_id!r} has an invalid weightage: '
            f'{assessment.weightage!r}'
        )
    return value


def sibling_assessments(existing, candidate, scope_fields=None):
    """
    Assessments in the candidate's scope that count toward its total.

    Every status counts, so reactivating an assessment can never push the
    scope over the cap. Only the candidate itself (same assessment_id) is
    left out.
    """
    fields = tuple(scope_fields or config.ASSESSMENT_SCOPE_FIELDS)
    scope = candidate.scope_key(fields)
    return [
        a for a in existing
        if a.scope_key(fields) == scope
        and not (
            candidate.assessment_id is not None
            and a.assessment_id == candidate.assessment_id
        )
    ]


def validate_weightage(existing, candidate, scope_fields=None):
    """
    Check that adding or updating an assessment keeps its scope within 100%.

    Args:
        existing: iterable of Assessment (any scope; filtered here)
        candidate: the Assessment being created or updated
        scope_fields: Assessment fields that define a scope; defaults to
                      GRADING_ASSESSMENT_SCOPE_FIELDS

    Returns:
        WeightageVerdict. remaining is the headroom left by the siblings,
        i.e. the largest weightage the candidate could have.

    Raises:
        ValueError: a weightage is missing, non-numeric or negative
    """
    maximum = Decimal(str(config.MAX_TOTAL_WEIGHTAGE))
    requested = _weightage_of(candidate)
    siblings = sibling_assessments(existing, candidate, scope_fields)

    current = sum((_weightage_of(a) for a in siblings), Decimal('0'))
    total = current + requested
    remaining = max(maximum - current, Decimal('0'))

    if total > maximum:
        error = (
            f'Total weightage ({format_percentage(total)}%) exceeds '
            f'{format_percentage(maximum)}%. Current allocation: '
            f'{format_percentage(current)}%, remaining: {format_percentage(remaining)}%.'
        )
        logger.info(f'Rejected assessment {candidate.name or candidate.assessment_id!r}: {error}')
        return WeightageVerdict(
            is_valid=False,
            error=error,
            total_weightage=total,
            current_weightage=current,
            remaining=remaining,
        )

    return WeightageVerdict(
        is_valid=True,
        total_weightage=total,
        current_weightage=current,
        remaining=remaining,
    )


def check_weightage(existing, candidate, scope_fields=None):
    """
    Raise ValidationError if the candidate would push its scope over 100%.

    Meant for model clean() / save paths running inside the caller's
    transaction.
    """
    verdict = validate_weightage(existing, candidate, scope_fields)
    if not verdict.is_valid:
        raise ValidationError(verdict.error, code='weightage_exceeded')
    return verdict
