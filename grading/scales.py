"""
Grade and division scale tables for the supported curricula.

Based on Tanzania's NECTA grading: CSEE for O-Level (Form 1-4) and ACSEE
for A-Level (Form 5-6). Each curriculum is described entirely by its
CurriculumScale entry, so adding a curriculum means adding a table here
(and a Curriculum choice), not new selection logic.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from .choices import Curriculum, Division
from .exceptions import UnknownCurriculumError


@dataclass(frozen=True)
class GradeBand:
    grade: str
    min_marks: int
    max_marks: int
    points: int
    remark: str

    def contains(self, marks):
        return self.min_marks <= marks <= self.max_marks


@dataclass(frozen=True)
class DivisionBand:
    division: str
    min_points: int
    max_points: Optional[int] = None  # None = no upper bound

    def contains(self, points):
        if points < self.min_points:
            return False
        return self.max_points is None or points <= self.max_points


def _setting(name, default):
    if name is None:
        return default
    from . import config
    return getattr(config, name)


@dataclass(frozen=True)
class CurriculumScale:
    curriculum: str
    grade_bands: tuple
    division_bands: tuple
    passing_grades: frozenset
    passing_divisions: frozenset
    # Name of the config setting holding how many subjects count toward division
    best_count_setting: str
    # A-Level: only principal subjects count toward division
    principal_only: bool = False
    subsidiary_passing_grades: Optional[frozenset] = None
    # Optional config settings for advisory checks
    core_subjects_setting: Optional[str] = None
    min_subsidiaries_setting: Optional[str] = None
    excluded_subjects_setting: Optional[str] = None

    @property
    def grades(self):
        return tuple(band.grade for band in self.grade_bands)

    @property
    def divisions(self):
        return tuple(band.division for band in self.division_bands)

    @property
    def best_count(self):
        return _setting(self.best_count_setting, 0)

    @property
    def core_subjects(self):
        return tuple(code.upper() for code in _setting(self.core_subjects_setting, ()))

    @property
    def min_subsidiaries(self):
        return _setting(self.min_subsidiaries_setting, 0)

    @property
    def excluded_subjects(self):
        return frozenset(code.upper() for code in _setting(self.excluded_subjects_setting, ()))

    def passing_set(self, is_principal=None):
        """Passing grades for a result; subsidiary set when not principal."""
        if self.subsidiary_passing_grades is None or is_principal:
            return self.passing_grades
        return self.subsidiary_passing_grades


O_LEVEL_GRADES = (
    GradeBand('A', 75, 100, 1, 'Excellent'),
    GradeBand('B', 65, 74, 2, 'Very Good'),
    GradeBand('C', 45, 64, 3, 'Good'),
    GradeBand('D', 30, 44, 4, 'Satisfactory'),
    GradeBand('F', 0, 29, 5, 'Fail'),
)

A_LEVEL_GRADES = (
    GradeBand('A', 80, 100, 1, 'Excellent'),
    GradeBand('B', 70, 79, 2, 'Very Good'),
    GradeBand('C', 60, 69, 3, 'Good'),
    GradeBand('D', 50, 59, 4, 'Satisfactory'),
    GradeBand('E', 40, 49, 5, 'Pass'),
    GradeBand('S', 35, 39, 6, 'Subsidiary Pass'),
    GradeBand('F', 0, 34, 7, 'Fail'),
)

O_LEVEL_DIVISIONS = (
    DivisionBand(Division.ONE.value, 7, 17),
    DivisionBand(Division.TWO.value, 18, 21),
    DivisionBand(Division.THREE.value, 22, 25),
    DivisionBand(Division.FOUR.value, 26, 33),
    DivisionBand(Division.ZERO.value, 34),
)

A_LEVEL_DIVISIONS = (
    DivisionBand(Division.ONE.value, 3, 9),
    DivisionBand(Division.TWO.value, 10, 12),
    DivisionBand(Division.THREE.value, 13, 17),
    DivisionBand(Division.FOUR.value, 18, 19),
    DivisionBand(Division.ZERO.value, 20),
)

# Divisions I-III count as a pass for class statistics; IV and 0 do not
PASSING_DIVISIONS = frozenset({Division.ONE.value, Division.TWO.value, Division.THREE.value})

SCALES = MappingProxyType({
    Curriculum.O_LEVEL: CurriculumScale(
        curriculum=Curriculum.O_LEVEL,
        grade_bands=O_LEVEL_GRADES,
        division_bands=O_LEVEL_DIVISIONS,
        passing_grades=frozenset({'A', 'B', 'C', 'D'}),
        passing_divisions=PASSING_DIVISIONS,
        best_count_setting='O_LEVEL_BEST_SUBJECTS',
        core_subjects_setting='O_LEVEL_CORE_SUBJECTS',
    ),
    Curriculum.A_LEVEL: CurriculumScale(
        curriculum=Curriculum.A_LEVEL,
        grade_bands=A_LEVEL_GRADES,
        division_bands=A_LEVEL_DIVISIONS,
        passing_grades=frozenset({'A', 'B', 'C', 'D', 'E'}),
        subsidiary_passing_grades=frozenset({'A', 'B', 'C', 'D', 'E', 'S'}),
        passing_divisions=PASSING_DIVISIONS,
        best_count_setting='A_LEVEL_BEST_PRINCIPALS',
        principal_only=True,
        min_subsidiaries_setting='A_LEVEL_MIN_SUBSIDIARIES',
        excluded_subjects_setting='A_LEVEL_EXCLUDED_SUBJECTS',
    ),
})


def get_scale(curriculum):
    """
    Look up the scale tables for a curriculum.

    Raises:
        UnknownCurriculumError: if the curriculum has no tables.
    """
    try:
        return SCALES[Curriculum(curriculum)]
    except (ValueError, KeyError):
        raise UnknownCurriculumError(curriculum) from None


def find_grade_band(grade, curriculum):
    """Return the band for a grade label, or None if the scale has no such grade."""
    for band in get_scale(curriculum).grade_bands:
        if band.grade == grade:
            return band
    return None


def validate_grade_bands(bands, low=0, high=100):
    """
    Check that grade bands cover [low, high] with no gaps or overlaps.

    Returns:
        list of problem descriptions (empty when the bands are sound)
    """
    problems = []
    if not bands:
        return ['Grade scale has no bands']

    labels = [b.grade for b in bands]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        problems.append(f"Duplicate grade labels: {', '.join(duplicates)}")

    points = [b.points for b in bands]
    if len(set(points)) != len(points):
        problems.append('Two grades share the same points value')

    for band in bands:
        if band.min_marks > band.max_marks:
            problems.append(
                f'Grade {band.grade}: minimum marks ({band.min_marks}) '
                f'greater than maximum ({band.max_marks})'
            )

    ordered = sorted(bands, key=lambda b: b.min_marks)
    if ordered[0].min_marks != low:
        problems.append(f'Grade scale starts at {ordered[0].min_marks}, expected {low}')
    if ordered[-1].max_marks != high:
        problems.append(f'Grade scale ends at {ordered[-1].max_marks}, expected {high}')

    for lower, upper in zip(ordered, ordered[1:]):
        if upper.min_marks <= lower.max_marks:
            problems.append(f'Grades {lower.grade} and {upper.grade} overlap')
        elif upper.min_marks != lower.max_marks + 1:
            problems.append(
                f'Gap between grades {lower.grade} and {upper.grade}: '
                f'marks {lower.max_marks + 1}-{upper.min_marks - 1} have no grade'
            )

    return problems


def validate_division_bands(bands):
    """
    Check that division bands are contiguous and end with an open band.

    Returns:
        list of problem descriptions (empty when the bands are sound)
    """
    problems = []
    if not bands:
        return ['Division scale has no bands']

    labels = [b.division for b in bands]
    if len(set(labels)) != len(labels):
        problems.append('Duplicate division labels')

    ordered = sorted(bands, key=lambda b: b.min_points)
    for band in ordered[:-1]:
        if band.max_points is None:
            problems.append(f'Division {band.division} is open-ended but is not the last band')
    if ordered[-1].max_points is not None:
        problems.append('Last division band must have no upper bound')

    for lower, upper in zip(ordered, ordered[1:]):
        if lower.max_points is None:
            continue
        if upper.min_points <= lower.max_points:
            problems.append(f'Divisions {lower.division} and {upper.division} overlap')
        elif upper.min_points != lower.max_points + 1:
            problems.append(
                f'Gap between divisions {lower.division} and {upper.division}: '
                f'points {lower.max_points + 1}-{upper.min_points - 1} have no division'
            )

    return problems


def validate_scale(scale):
    """All problems for one curriculum, prefixed with the curriculum name."""
    problems = validate_grade_bands(scale.grade_bands) + validate_division_bands(scale.division_bands)

    grades = set(scale.grades)
    unknown = set(scale.passing_grades) - grades
    if scale.subsidiary_passing_grades:
        unknown |= set(scale.subsidiary_passing_grades) - grades
    if unknown:
        problems.append(f"Passing grades not in scale: {', '.join(sorted(unknown))}")

    return [f'{scale.curriculum}: {problem}' for problem in problems]
