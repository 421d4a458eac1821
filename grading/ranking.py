"""
Class ranking, display sorting and per-subject positions.

Rank is always performance-based (lower best-subject points is better).
Display order is a separate concern handled by sort_students().
"""
from collections import defaultdict
from dataclasses import replace

from .choices import Division, NOT_AVAILABLE, SortDirection
from .resolver import to_decimal

# Display order of divisions, best first
DIVISION_ORDER = {division: index for index, division in enumerate(Division.values)}


def _division_value(row):
    return DIVISION_ORDER.get(row.division)


def _average_value(row):
    if row.average_marks == NOT_AVAILABLE:
        return None
    return row.average_marks


def _name_value(row):
    return row.student_name.casefold() if row.student_name else None


SORT_FIELDS = {
    'rank': lambda row: row.rank,
    'total_points': lambda row: row.total_points if row.division != NOT_AVAILABLE else None,
    'division': _division_value,
    'average_marks': _average_value,
    'total_marks': lambda row: row.total_marks,
    'student_name': _name_value,
    'student_id': lambda row: str(row.student_id),
}


def check_sort_options(sort_field, direction):
    """
    Normalize and validate display sort options.

    Returns:
        tuple: (sort_field, direction)

    Raises:
        ValueError: unknown field or direction
    """
    sort_field = sort_field or 'rank'
    direction = direction or SortDirection.ASC
    if sort_field not in SORT_FIELDS:
        raise ValueError(
            f"Unknown sort field: {sort_field!r}. Choose from: {', '.join(SORT_FIELDS)}"
        )
    if direction not in SortDirection.values:
        raise ValueError(f"Unknown sort direction: {direction!r}. Use 'asc' or 'desc'.")
    return sort_field, direction


def sort_students(rows, sort_field='rank', direction=SortDirection.ASC):
    """
    Order report rows for display.

    Rows without a value for the field (no rank, 'N/A' average, no division)
    go last whichever direction is requested. Equal values keep their
    incoming order.
    """
    sort_field, direction = check_sort_options(sort_field, direction)
    get_value = SORT_FIELDS[sort_field]

    present = [row for row in rows if get_value(row) is not None]
    missing = [row for row in rows if get_value(row) is None]

    present.sort(key=get_value, reverse=direction == SortDirection.DESC)
    return present + missing


def _rank_key(row):
    selection = row.best_subject_selection
    unranked = selection.division == NOT_AVAILABLE
    return (
        unranked,
        not selection.is_valid,
        selection.total_points if not unranked else 0,
    )


def assign_ranks(rows):
    """
    Give every row a 1-based rank by best-subject points, lowest first.

    Equal keys share a rank and the next rank skips (1, 2, 2, 4).
    Incomplete selections rank after complete ones; students with nothing
    gradable share the last rank.

    Returns:
        list of rows (new objects) in rank order
    """
    ordered = sorted(rows, key=_rank_key)

    ranked = []
    position = 0
    last_key = None
    for i, row in enumerate(ordered, 1):
        key = _rank_key(row)
        if key != last_key:
            position = i
        ranked.append(replace(row, rank=position))
        last_key = key

    return ranked


def calculate_subject_positions(results):
    """
    Class position of each student in each subject, by marks descending.

    Expects graded results (see selection.grade_results). Results without
    usable marks get no position.

    Returns:
        dict: {subject_id: {student_id: position}}
    """
    by_subject = defaultdict(list)
    for result in results:
        marks = to_decimal(result.marks_obtained)
        if marks is not None and result.has_valid_grade:
            by_subject[result.subject_id].append((marks, result.student_id))

    positions = {}
    for subject_id, entries in by_subject.items():
        entries.sort(key=lambda entry: entry[0], reverse=True)

        subject_positions = {}
        position = 0
        last_marks = None
        for i, (marks, student_id) in enumerate(entries, 1):
            if marks != last_marks:
                position = i
            subject_positions[student_id] = position
            last_marks = marks
        positions[subject_id] = subject_positions

    return positions
