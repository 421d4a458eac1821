"""
Best-subject selection and division calculation for one student.

O-Level: best 7 of all graded subjects, with an advisory core-subject check.
A-Level: best 3 graded principal subjects, with an advisory subsidiary check.

Data problems never raise here. They come back as warnings on the
selection, with is_valid=False when too few subjects could be counted.
"""
import logging
from dataclasses import replace

from .choices import NOT_AVAILABLE
from .resolver import classify_division, resolve_grade, to_decimal
from .scales import get_scale
from .structures import BestSubjectSelection, SubjectResult

logger = logging.getLogger(__name__)


def grade_results(results, curriculum):
    """
    Grade every result from its marks.

    Grades already present on the input are ignored; marks are the only
    source of truth.

    Returns:
        tuple: (list of graded SubjectResult copies, list of warnings)

    Raises:
        TypeError: if an item is not a SubjectResult
    """
    graded = []
    warnings = []
    for result in results:
        if not isinstance(result, SubjectResult):
            raise TypeError(f'Expected SubjectResult, got {type(result).__name__}')
        outcome = resolve_grade(result.marks_obtained, curriculum)
        if outcome.warning:
            warnings.append(f'{result.label}: {outcome.warning}')
        graded.append(replace(
            result,
            grade=outcome.grade,
            points=outcome.points,
            remark=outcome.remark,
        ))
    return graded, warnings


def selection_order(result):
    """
    Sort key for picking best subjects.

    Lower points first. Equal points: higher marks first, then subject code
    (or name, or id) alphabetically, so the order never depends on the order
    results were loaded in.
    """
    marks = to_decimal(result.marks_obtained)
    return (
        result.points,
        -marks if marks is not None else 0,
        (result.subject_code or result.subject_name).upper(),
        str(result.subject_id),
    )


def _missing_core_subjects(scale, counted):
    codes = {r.subject_code.upper() for r in counted if r.subject_code}
    return tuple(code for code in scale.core_subjects if code not in codes)


def _principal_pool(scale, graded, warnings):
    """Graded principal results eligible for division, plus subsidiary checks."""
    excluded = scale.excluded_subjects
    pool = [
        r for r in graded
        if r.is_principal is True
        and r.has_valid_grade
        and r.subject_code.upper() not in excluded
    ]

    unflagged = [r.label for r in graded if r.is_principal is None]
    if unflagged:
        warnings.append(
            f"Principal/subsidiary flag missing for: {', '.join(unflagged)}"
        )

    subsidiary_count = sum(1 for r in graded if r.is_principal is False)
    if subsidiary_count < scale.min_subsidiaries:
        warnings.append(
            f'Student has only {subsidiary_count} subsidiary subjects. '
            f'At least {scale.min_subsidiaries} subsidiary subjects are recommended.'
        )

    return pool


def select_best_subjects(results, curriculum):
    """
    Pick the best subjects for a student and classify their division.

    Args:
        results: iterable of SubjectResult for one student and one exam
        curriculum: Curriculum value (O_LEVEL or A_LEVEL)

    Returns:
        BestSubjectSelection

    Raises:
        UnknownCurriculumError: curriculum has no scale
        TypeError: results contain something other than SubjectResult
    """
    get_scale(curriculum)
    graded, warnings = grade_results(results, curriculum)
    return select_from_graded(graded, curriculum, warnings)


def select_from_graded(graded, curriculum, warnings=()):
    """
    select_best_subjects() for results already passed through grade_results().

    warnings: grading warnings to carry into the selection
    """
    scale = get_scale(curriculum)
    required = scale.best_count
    warnings = list(warnings)

    if scale.principal_only:
        pool = _principal_pool(scale, graded, warnings)
        kind = 'principal '
    else:
        pool = [r for r in graded if r.has_valid_grade]
        kind = ''

    missing_core = _missing_core_subjects(scale, pool)
    if missing_core:
        warnings.append(
            f"Student is missing {len(missing_core)} core subjects: {', '.join(missing_core)}"
        )

    pool.sort(key=selection_order)
    selected = tuple(pool[:required])
    valid_count = len(pool)
    missing_count = max(required - valid_count, 0)

    if missing_count:
        warnings.append(
            f'Student has only {valid_count} {kind}subjects. At least {required} '
            f'{kind}subjects are required for division calculation.'
        )

    total_points = sum(r.points for r in selected)
    if selected:
        outcome = classify_division(total_points, curriculum)
        division = outcome.division
        if outcome.warning:
            warnings.append(outcome.warning)
    else:
        division = NOT_AVAILABLE

    logger.debug(
        f'{scale.curriculum} division calculation: {len(graded)} results, '
        f'{valid_count} counted, selected '
        f"{[(r.label, r.grade, r.points) for r in selected]}, "
        f'{total_points} points, division {division}'
    )

    return BestSubjectSelection(
        curriculum=scale.curriculum,
        selected_results=selected,
        total_points=total_points,
        division=division,
        is_valid=missing_count == 0,
        warnings=tuple(warnings),
        missing_count=missing_count,
        valid_count=valid_count,
        missing_core_subjects=missing_core,
    )
