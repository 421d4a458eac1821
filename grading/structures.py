"""
Plain data structures passed into and returned from the grading engine.

Callers build SubjectResult / StudentResults / Assessment objects from
stored records at the boundary; the engine never sees raw documents.
All structures are frozen; derived values are produced as new objects.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from .choices import AssessmentStatus, NOT_AVAILABLE


@dataclass(frozen=True)
class SubjectResult:
    """One student's outcome in one subject for one exam."""
    subject_id: str
    student_id: str
    marks_obtained: Any = None
    subject_code: str = ''
    subject_name: str = ''
    # A-Level only; None means the caller did not say
    is_principal: Optional[bool] = None
    # Derived by the grade resolver
    grade: Optional[str] = None
    points: Optional[int] = None
    remark: str = ''

    @property
    def has_valid_grade(self):
        return self.grade is not None and self.grade != NOT_AVAILABLE

    @property
    def label(self):
        return self.subject_code or self.subject_name or str(self.subject_id)


@dataclass(frozen=True)
class StudentResults:
    """A student and all of their subject results for one exam."""
    student_id: str
    results: tuple = ()
    student_name: str = ''


@dataclass(frozen=True)
class BestSubjectSelection:
    curriculum: str
    selected_results: tuple
    total_points: int
    division: str
    is_valid: bool
    warnings: tuple = ()
    missing_count: int = 0
    valid_count: int = 0
    missing_core_subjects: tuple = ()


@dataclass(frozen=True)
class MarkStatistics:
    mean: float = 0.0
    median: float = 0.0
    mode: float = 0.0
    standard_deviation: float = 0.0


@dataclass(frozen=True)
class SubjectPerformanceSummary:
    subject_id: str
    registered_count: int
    grade_counts: dict
    passed_count: int
    gpa: Any
    subject_name: str = ''
    total_points: int = 0
    pass_rate: float = 0.0
    statistics: MarkStatistics = field(default_factory=MarkStatistics)
    warnings: tuple = ()


@dataclass(frozen=True)
class Assessment:
    """
    A weighted assessment (e.g. Mid-term 30%, Terminal 70%).

    Which fields make up the sibling scope is a deployment setting
    (GRADING_ASSESSMENT_SCOPE_FIELDS).
    """
    assessment_id: Optional[str]
    weightage: Any
    name: str = ''
    max_marks: Any = 100
    term: Optional[str] = None
    academic_year: Optional[str] = None
    subject_id: Optional[str] = None
    class_id: Optional[str] = None
    status: str = AssessmentStatus.ACTIVE

    def scope_key(self, fields):
        return tuple(getattr(self, name) for name in fields)


@dataclass(frozen=True)
class WeightageVerdict:
    is_valid: bool
    error: Optional[str] = None
    total_weightage: Any = 0
    current_weightage: Any = 0
    remaining: Any = 0


@dataclass(frozen=True)
class StudentReportRow:
    student_id: str
    student_name: str
    subject_results: tuple
    best_subject_selection: BestSubjectSelection
    total_marks: float = 0.0
    average_marks: Any = NOT_AVAILABLE
    rank: Optional[int] = None

    @property
    def total_points(self):
        return self.best_subject_selection.total_points

    @property
    def division(self):
        return self.best_subject_selection.division


@dataclass(frozen=True)
class OverallPerformance:
    total_students: int
    total_passed: int
    exam_gpa: Any
    pass_rate: float = 0.0


@dataclass(frozen=True)
class ClassReport:
    curriculum: str
    students: tuple
    division_summary: dict
    subject_performance: dict
    overall_performance: OverallPerformance
    subject_positions: dict = field(default_factory=dict)
    sort_field: str = 'rank'
    sort_direction: str = 'asc'

    def as_dict(self):
        """Nested plain-dict form for response-shaping and rendering code."""
        return asdict(self)
