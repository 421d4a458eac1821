"""
Per-subject performance across a class: grade distribution, passes, GPA.

GPA here is subject GPA, the average points per registered student:
    Subject GPA = sum(count of grade x grade points) / registered students
"""
from collections import defaultdict, Counter
import logging
import statistics

from . import config
from .choices import NOT_AVAILABLE
from .resolver import to_decimal
from .scales import get_scale
from .selection import grade_results
from .structures import MarkStatistics, SubjectPerformanceSummary

logger = logging.getLogger(__name__)


def _round(value):
    return round(value, config.DECIMAL_PLACES)


def calculate_mark_statistics(marks):
    """Mean, median, mode and population standard deviation of a list of marks."""
    values = [float(m) for m in (to_decimal(m) for m in marks) if m is not None]
    if not values:
        return MarkStatistics()

    frequency = Counter(values)
    top = max(frequency.values())
    # First-seen value wins a tie for most frequent
    mode = next(v for v in values if frequency[v] == top)

    return MarkStatistics(
        mean=_round(statistics.fmean(values)),
        median=_round(statistics.median(values)),
        mode=_round(mode),
        standard_deviation=_round(statistics.pstdev(values)),
    )


def summarize_subject(subject_id, graded, curriculum):
    """
    Build one subject's summary from already-graded results.

    Only results with a valid grade are registered. For A-Level, each result
    is checked against the principal or subsidiary passing set; a missing
    flag falls back to the subsidiary set and is reported as a warning.
    """
    scale = get_scale(curriculum)
    registered = [r for r in graded if r.has_valid_grade]

    grade_counts = {grade: 0 for grade in scale.grades}
    for result in registered:
        grade_counts[result.grade] += 1

    warnings = []
    passed = 0
    unflagged = 0
    for result in registered:
        if scale.subsidiary_passing_grades is not None and result.is_principal is None:
            unflagged += 1
        if result.grade in scale.passing_set(result.is_principal):
            passed += 1

    if unflagged:
        warnings.append(
            f'{unflagged} result(s) have no principal/subsidiary flag; '
            f'subsidiary passing grades were applied'
        )
        logger.warning(f'Subject {subject_id}: {warnings[-1]}')

    registered_count = len(registered)
    total_points = sum(r.points for r in registered)

    if registered_count:
        gpa = _round(total_points / registered_count)
        pass_rate = _round(passed / registered_count * 100)
    else:
        gpa = NOT_AVAILABLE
        pass_rate = 0.0

    names = [r.subject_name for r in graded if r.subject_name]

    return SubjectPerformanceSummary(
        subject_id=subject_id,
        subject_name=names[0] if names else '',
        registered_count=registered_count,
        grade_counts=grade_counts,
        passed_count=passed,
        total_points=total_points,
        gpa=gpa,
        pass_rate=pass_rate,
        statistics=calculate_mark_statistics(r.marks_obtained for r in registered),
        warnings=tuple(warnings),
    )


def aggregate_subject_performance(results, curriculum):
    """
    Summarize every subject found in a flat list of results.

    Args:
        results: iterable of SubjectResult across all students
        curriculum: Curriculum value (O_LEVEL or A_LEVEL)

    Returns:
        dict: {subject_id: SubjectPerformanceSummary}, in first-seen subject order
    """
    get_scale(curriculum)
    graded, _ = grade_results(results, curriculum)
    return aggregate_graded_performance(graded, curriculum)


def aggregate_graded_performance(graded, curriculum):
    """aggregate_subject_performance() for results already graded."""
    by_subject = defaultdict(list)
    for result in graded:
        by_subject[result.subject_id].append(result)

    return {
        subject_id: summarize_subject(subject_id, subject_results, curriculum)
        for subject_id, subject_results in by_subject.items()
    }
