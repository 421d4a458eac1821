"""
Mark -> grade -> points resolution and points -> division classification.

Both lookups scan the curriculum's ordered bands and return the first band
whose inclusive range contains the value. Bad input data never raises; it
yields 'N/A' plus a warning. A valid value that matches no band means the
scale table itself is broken, and that does raise.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Optional

from .choices import Division, NOT_AVAILABLE
from .exceptions import ScaleLookupError
from .scales import find_grade_band, get_scale

logger = logging.getLogger(__name__)

MIN_MARKS = Decimal('0')
MAX_MARKS = Decimal('100')


@dataclass(frozen=True)
class GradeResult:
    grade: str
    points: int
    remark: str = ''
    warning: Optional[str] = None

    @property
    def is_valid(self):
        return self.grade != NOT_AVAILABLE


@dataclass(frozen=True)
class DivisionResult:
    division: str
    warning: Optional[str] = None


NOT_GRADED = GradeResult(NOT_AVAILABLE, 0)


def to_decimal(value):
    """Coerce a number-like value to a finite Decimal, or None if that is impossible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not number.is_finite():
        return None
    return number


def resolve_grade(marks, curriculum):
    """
    Resolve marks (0-100) to a grade and points for a curriculum.

    Fractional marks are floored before the lookup, so 74.5 is graded as 74.

    Args:
        marks: Marks obtained; may be None, a number or a numeric string
        curriculum: Curriculum value (O_LEVEL or A_LEVEL)

    Returns:
        GradeResult; grade 'N/A' with points 0 and a warning for missing,
        non-numeric or out-of-range marks.

    Raises:
        UnknownCurriculumError: curriculum has no scale
        ScaleLookupError: marks are valid but no band contains them
    """
    scale = get_scale(curriculum)

    value = to_decimal(marks)
    if value is None:
        warning = f'Invalid or missing marks value: {marks!r}'
        if marks is not None:
            logger.warning(f'{warning} ({scale.curriculum})')
        return GradeResult(NOT_AVAILABLE, 0, warning=warning)

    if value < MIN_MARKS or value > MAX_MARKS:
        warning = f'Marks out of range (0-100): {value}'
        logger.warning(f'{warning} ({scale.curriculum})')
        return GradeResult(NOT_AVAILABLE, 0, warning=warning)

    whole_marks = int(value.to_integral_value(rounding=ROUND_FLOOR))
    for band in scale.grade_bands:
        if band.contains(whole_marks):
            return GradeResult(band.grade, band.points, band.remark)

    logger.error(f'No {scale.curriculum} grade band contains marks {value}')
    raise ScaleLookupError(
        f'{scale.curriculum} grade scale has no band for marks {value}'
    )


def points_for_grade(grade, curriculum):
    """Points for a grade label; 0 for 'N/A' or a label the scale does not know."""
    band = find_grade_band(grade, curriculum)
    if band is None:
        if grade != NOT_AVAILABLE:
            logger.warning(f'Unknown {curriculum} grade: {grade!r}')
        return 0
    return band.points


def remark_for_grade(grade, curriculum):
    band = find_grade_band(grade, curriculum)
    return band.remark if band else '-'


def is_passing_grade(grade, curriculum, is_principal=None):
    """
    Whether a grade is a pass.

    For A-Level, principal subjects pass on A-E and subsidiary subjects on
    A-S. A missing principal flag is treated as subsidiary.
    """
    return grade in get_scale(curriculum).passing_set(is_principal)


def classify_division(total_points, curriculum):
    """
    Classify a best-subject points total into a division.

    A total below the best band's floor can only come from an incomplete
    selection; it matches no band and falls through to Division 0 with a
    warning.

    Returns:
        DivisionResult; division 'N/A' with a warning for missing,
        non-numeric or negative totals.
    """
    scale = get_scale(curriculum)

    value = to_decimal(total_points)
    if value is None or value < 0:
        warning = f'Invalid total points for division calculation: {total_points!r}'
        logger.warning(f'{warning} ({scale.curriculum})')
        return DivisionResult(NOT_AVAILABLE, warning)

    points = int(value.to_integral_value(rounding=ROUND_FLOOR))
    best_band = scale.division_bands[0]
    if points < best_band.min_points:
        warning = (
            f'Total points {points} is below the minimum attainable '
            f'({best_band.min_points}) for {scale.curriculum}; classified as Division 0'
        )
        logger.warning(warning)
        return DivisionResult(Division.ZERO.value, warning)

    for band in scale.division_bands:
        if band.contains(points):
            return DivisionResult(band.division)

    logger.error(f'No {scale.curriculum} division band contains {points} points')
    raise ScaleLookupError(
        f'{scale.curriculum} division scale has no band for {points} points'
    )
