"""
Student and class report building.

Everything the report needs is passed in; nothing here reads storage.
"""
import logging

from . import config
from .aggregation import aggregate_graded_performance
from .choices import NOT_AVAILABLE
from .ranking import assign_ranks, calculate_subject_positions, check_sort_options, sort_students
from .resolver import to_decimal
from .scales import get_scale
from .selection import grade_results, select_from_graded
from .structures import ClassReport, OverallPerformance, StudentReportRow, StudentResults

logger = logging.getLogger(__name__)


def _round(value):
    return round(value, config.DECIMAL_PLACES)


def build_student_report(student, curriculum):
    """
    Grade one student's results and select their best subjects.

    Args:
        student: StudentResults
        curriculum: Curriculum value (O_LEVEL or A_LEVEL)

    Returns:
        StudentReportRow (unranked)
    """
    if not isinstance(student, StudentResults):
        raise TypeError(f'Expected StudentResults, got {type(student).__name__}')

    graded, warnings = grade_results(student.results, curriculum)
    selection = select_from_graded(graded, curriculum, warnings)

    marks = [float(to_decimal(r.marks_obtained)) for r in graded if r.has_valid_grade]
    total_marks = _round(sum(marks))
    average_marks = _round(total_marks / len(marks)) if marks else NOT_AVAILABLE

    return StudentReportRow(
        student_id=student.student_id,
        student_name=student.student_name,
        subject_results=tuple(graded),
        best_subject_selection=selection,
        total_marks=total_marks,
        average_marks=average_marks,
    )


def summarize_divisions(rows, curriculum):
    """Count students per division; 'N/A' appears only when some student has it."""
    summary = {division: 0 for division in get_scale(curriculum).divisions}
    for row in rows:
        summary[row.division] = summary.get(row.division, 0) + 1
    return summary


def calculate_overall_performance(rows, curriculum):
    """
    Class-wide pass count, exam GPA and pass rate.

    exam GPA is the mean best-subject points over all students.
    """
    scale = get_scale(curriculum)
    total_students = len(rows)
    total_passed = sum(1 for row in rows if row.division in scale.passing_divisions)

    if total_students:
        exam_gpa = _round(sum(row.total_points for row in rows) / total_students)
        pass_rate = _round(total_passed / total_students * 100)
    else:
        exam_gpa = NOT_AVAILABLE
        pass_rate = 0.0

    return OverallPerformance(
        total_students=total_students,
        total_passed=total_passed,
        exam_gpa=exam_gpa,
        pass_rate=pass_rate,
    )


def build_class_report(students, curriculum, sort_field='rank', sort_direction='asc'):
    """
    Build the complete report for a class.

    Args:
        students: iterable of StudentResults
        curriculum: Curriculum value (O_LEVEL or A_LEVEL)
        sort_field: display order field (see ranking.SORT_FIELDS)
        sort_direction: 'asc' or 'desc'

    Returns:
        ClassReport

    Raises:
        UnknownCurriculumError: curriculum has no scale
        ValueError: unknown sort field or direction
        TypeError: a student is not a StudentResults
    """
    scale = get_scale(curriculum)
    sort_field, sort_direction = check_sort_options(sort_field, sort_direction)
    students = list(students)

    rows = [build_student_report(student, curriculum) for student in students]
    rows = sort_students(assign_ranks(rows), sort_field, sort_direction)

    all_graded = [result for row in rows for result in row.subject_results]

    overall = calculate_overall_performance(rows, curriculum)
    incomplete = sum(1 for row in rows if not row.best_subject_selection.is_valid)

    logger.info(
        f'{scale.curriculum} class report: {overall.total_students} students, '
        f'{overall.total_passed} passed, exam GPA {overall.exam_gpa}, '
        f'{incomplete} with incomplete results'
    )

    return ClassReport(
        curriculum=scale.curriculum,
        students=tuple(rows),
        division_summary=summarize_divisions(rows, curriculum),
        subject_performance=aggregate_graded_performance(all_graded, curriculum),
        overall_performance=overall,
        subject_positions=calculate_subject_positions(all_graded),
        sort_field=sort_field,
        sort_direction=sort_direction,
    )
