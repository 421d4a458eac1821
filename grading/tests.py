from decimal import Decimal
from io import StringIO

from django.core.cache.backends.locmem import LocMemCache
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, override_settings

from .aggregation import aggregate_subject_performance, calculate_mark_statistics
from .catalog import SubjectCatalog, SubjectInfo
from .checks import check_grading_scales, check_grading_settings
from .choices import Curriculum, NOT_AVAILABLE
from .exceptions import UnknownCurriculumError
from .forms import AssessmentForm, MarksEntryForm
from .ranking import assign_ranks, calculate_subject_positions, sort_students
from .reports import build_class_report, build_student_report
from .resolver import (
    classify_division, is_passing_grade, points_for_grade, remark_for_grade, resolve_grade,
)
from .scales import GradeBand, SCALES, validate_grade_bands, validate_scale
from .selection import select_best_subjects
from .structures import Assessment, StudentResults, SubjectResult
from .weightage import check_weightage, format_percentage, validate_weightage


O_LEVEL = Curriculum.O_LEVEL
A_LEVEL = Curriculum.A_LEVEL

O_LEVEL_CODES = ('ENGLISH', 'KISWAHILI', 'MATHEMATICS', 'BIOLOGY', 'CIVICS', 'GEOGRAPHY', 'HISTORY')


def o_level_results(student_id, marks, codes=O_LEVEL_CODES):
    return tuple(
        SubjectResult(subject_id=code.lower(), student_id=student_id, marks_obtained=m, subject_code=code)
        for code, m in zip(codes, marks)
    )


def a_level_result(student_id, code, marks, is_principal=True):
    return SubjectResult(
        subject_id=code.lower(),
        student_id=student_id,
        marks_obtained=marks,
        subject_code=code,
        is_principal=is_principal,
    )


class ResolveGradeTest(SimpleTestCase):
    """Tests for marks -> grade resolution."""

    def assertGrades(self, curriculum, expected):
        for marks, grade in expected.items():
            with self.subTest(marks=marks):
                self.assertEqual(resolve_grade(marks, curriculum).grade, grade)

    def test_o_level_boundaries(self):
        """Test every O-Level band edge."""
        self.assertGrades(O_LEVEL, {
            100: 'A', 75: 'A', 74: 'B', 65: 'B', 64: 'C', 45: 'C',
            44: 'D', 30: 'D', 29: 'F', 0: 'F',
        })

    def test_a_level_boundaries(self):
        """Test every A-Level band edge."""
        self.assertGrades(A_LEVEL, {
            100: 'A', 80: 'A', 79: 'B', 70: 'B', 69: 'C', 60: 'C', 59: 'D', 50: 'D',
            49: 'E', 40: 'E', 39: 'S', 35: 'S', 34: 'F', 0: 'F',
        })

    def test_points_and_remark(self):
        """Test points and remark come from the same band."""
        result = resolve_grade(80, O_LEVEL)
        self.assertEqual((result.grade, result.points, result.remark), ('A', 1, 'Excellent'))
        result = resolve_grade(36, A_LEVEL)
        self.assertEqual((result.grade, result.points, result.remark), ('S', 6, 'Subsidiary Pass'))

    def test_fractional_marks_are_floored(self):
        """Test 74.5 falls in the 65-74 band."""
        self.assertEqual(resolve_grade(74.5, O_LEVEL).grade, 'B')
        self.assertEqual(resolve_grade(Decimal('74.99'), O_LEVEL).grade, 'B')
        self.assertEqual(resolve_grade('75.0', O_LEVEL).grade, 'A')

    def test_missing_marks(self):
        """Test None gives N/A with a warning."""
        result = resolve_grade(None, O_LEVEL)
        self.assertEqual(result.grade, NOT_AVAILABLE)
        self.assertEqual(result.points, 0)
        self.assertFalse(result.is_valid)
        self.assertIn('Invalid or missing marks', result.warning)

    def test_invalid_marks(self):
        """Test non-numeric and out-of-range marks give N/A."""
        with self.assertLogs('grading.resolver', 'WARNING'):
            for marks in ('abc', True, float('nan'), -1, 101):
                with self.subTest(marks=marks):
                    result = resolve_grade(marks, O_LEVEL)
                    self.assertEqual(result.grade, NOT_AVAILABLE)
                    self.assertIsNotNone(result.warning)

    def test_unknown_curriculum(self):
        """Test unknown curriculum raises a configuration error."""
        with self.assertRaises(UnknownCurriculumError) as ctx:
            resolve_grade(50, 'IB')
        self.assertIsInstance(ctx.exception, ValueError)
        self.assertIsInstance(ctx.exception, ImproperlyConfigured)
        self.assertIn('IB', str(ctx.exception))

    def test_string_curriculum_accepted(self):
        """Test the plain curriculum value works like the choice."""
        self.assertEqual(resolve_grade(50, 'A_LEVEL').grade, 'D')

    def test_grade_helpers(self):
        """Test points_for_grade, remark_for_grade and is_passing_grade."""
        self.assertEqual(points_for_grade('B', O_LEVEL), 2)
        self.assertEqual(points_for_grade('S', A_LEVEL), 6)
        self.assertEqual(points_for_grade(NOT_AVAILABLE, O_LEVEL), 0)
        self.assertEqual(remark_for_grade('C', O_LEVEL), 'Good')
        self.assertEqual(remark_for_grade('Z', O_LEVEL), '-')
        self.assertTrue(is_passing_grade('D', O_LEVEL))
        self.assertFalse(is_passing_grade('F', O_LEVEL))
        self.assertTrue(is_passing_grade('E', A_LEVEL, is_principal=True))
        self.assertFalse(is_passing_grade('S', A_LEVEL, is_principal=True))
        self.assertTrue(is_passing_grade('S', A_LEVEL, is_principal=False))


class ClassifyDivisionTest(SimpleTestCase):
    """Tests for points -> division classification."""

    def assertDivisions(self, curriculum, expected):
        for points, division in expected.items():
            with self.subTest(points=points):
                outcome = classify_division(points, curriculum)
                self.assertEqual(outcome.division, division)
                self.assertIsNone(outcome.warning)

    def test_o_level_boundaries(self):
        self.assertDivisions(O_LEVEL, {
            7: 'I', 17: 'I', 18: 'II', 21: 'II', 22: 'III', 25: 'III',
            26: 'IV', 33: 'IV', 34: '0', 35: '0',
        })

    def test_a_level_boundaries(self):
        self.assertDivisions(A_LEVEL, {
            3: 'I', 9: 'I', 10: 'II', 12: 'II', 13: 'III', 17: 'III',
            18: 'IV', 19: 'IV', 20: '0', 21: '0',
        })

    def test_below_minimum_falls_to_division_zero(self):
        """Test totals from incomplete selections match no band and get Division 0."""
        with self.assertLogs('grading.resolver', 'WARNING'):
            outcome = classify_division(2, O_LEVEL)
        self.assertEqual(outcome.division, '0')
        self.assertIn('below the minimum', outcome.warning)

    def test_invalid_total(self):
        """Test negative and non-numeric totals give N/A."""
        with self.assertLogs('grading.resolver', 'WARNING'):
            self.assertEqual(classify_division(-1, O_LEVEL).division, NOT_AVAILABLE)
            self.assertEqual(classify_division('x', A_LEVEL).division, NOT_AVAILABLE)


class ScaleValidationTest(SimpleTestCase):
    """Tests for scale table validation."""

    def test_shipped_scales_are_valid(self):
        for scale in SCALES.values():
            with self.subTest(curriculum=scale.curriculum):
                self.assertEqual(validate_scale(scale), [])

    def test_gap_and_overlap_detected(self):
        bands = (
            GradeBand('A', 70, 100, 1, 'Excellent'),
            GradeBand('B', 50, 65, 2, 'Good'),
            GradeBand('C', 0, 50, 3, 'Fail'),
        )
        problems = validate_grade_bands(bands)
        self.assertIn('Gap between grades B and A: marks 66-69 have no grade', problems)
        self.assertIn('Grades C and B overlap', problems)

    def test_system_checks_pass(self):
        self.assertEqual(check_grading_scales(None), [])
        self.assertEqual(check_grading_settings(None), [])

    @override_settings(GRADING_O_LEVEL_BEST_SUBJECTS=0, GRADING_O_LEVEL_CORE_SUBJECTS='ENGLISH')
    def test_system_checks_report_bad_settings(self):
        ids = [error.id for error in check_grading_settings(None)]
        self.assertIn('grading.E002', ids)
        self.assertIn('grading.E003', ids)


class OLevelSelectionTest(SimpleTestCase):
    """Tests for O-Level best-seven selection."""

    def test_seven_valid_results(self):
        """Test 7 valid results give a complete selection."""
        selection = select_best_subjects(o_level_results('s1', (80, 70, 60, 50, 40, 30, 20)), O_LEVEL)
        self.assertTrue(selection.is_valid)
        self.assertEqual(selection.missing_count, 0)
        self.assertEqual(len(selection.selected_results), 7)
        # 50 is a C (45-64); 40 and 30 are D (30-44)
        self.assertEqual(
            [r.grade for r in selection.selected_results],
            ['A', 'B', 'C', 'C', 'D', 'D', 'F'],
        )
        self.assertEqual(selection.total_points, 22)
        self.assertEqual(selection.division, 'III')
        self.assertEqual(selection.warnings, ())

    def test_best_seven_of_nine(self):
        """Test only the 7 lowest-point subjects count."""
        codes = O_LEVEL_CODES + ('CHEMISTRY', 'PHYSICS')
        results = o_level_results('s1', (90, 90, 90, 90, 90, 90, 10, 90, 10), codes)
        selection = select_best_subjects(results, O_LEVEL)
        self.assertEqual(selection.valid_count, 9)
        self.assertEqual(selection.total_points, 7)
        self.assertEqual(selection.division, 'I')
        self.assertNotIn('F', [r.grade for r in selection.selected_results])

    def test_is_idempotent(self):
        """Test selecting twice gives the same output and leaves input untouched."""
        results = o_level_results('s1', (80, 70, 60, 50, 40, 30, 20))
        first = select_best_subjects(results, O_LEVEL)
        second = select_best_subjects(results, O_LEVEL)
        self.assertEqual(first, second)
        self.assertIsNone(results[0].grade)

    def test_tie_break_prefers_higher_marks_then_code(self):
        """Test equal points are ordered by marks, then subject code."""
        codes = O_LEVEL_CODES + ('PHYSICS',)
        results = o_level_results('s1', (80, 80, 80, 80, 80, 66, 66, 74), codes)
        selection = select_best_subjects(results, O_LEVEL)
        selected_codes = [r.subject_code for r in selection.selected_results]
        self.assertIn('PHYSICS', selected_codes)
        self.assertEqual(selected_codes[-1], 'GEOGRAPHY')
        self.assertNotIn('HISTORY', selected_codes)

    def test_too_few_results(self):
        """Test fewer than 7 valid results degrade gracefully."""
        results = o_level_results('s1', (80, 85, None))
        selection = select_best_subjects(results, O_LEVEL)
        self.assertFalse(selection.is_valid)
        self.assertEqual(selection.valid_count, 2)
        self.assertEqual(selection.missing_count, 5)
        self.assertEqual(selection.total_points, 2)
        self.assertEqual(selection.division, '0')
        self.assertTrue(any('At least 7 subjects are required' in w for w in selection.warnings))
        self.assertTrue(any('below the minimum' in w for w in selection.warnings))

    def test_no_results(self):
        selection = select_best_subjects([], O_LEVEL)
        self.assertFalse(selection.is_valid)
        self.assertEqual(selection.division, NOT_AVAILABLE)
        self.assertEqual(selection.total_points, 0)

    def test_missing_core_subjects_warned(self):
        """Test missing core subjects are a warning, not an error."""
        codes = ('ENGLISH', 'KISWAHILI', 'MATHEMATICS', 'BIOLOGY', 'CIVICS', 'PHYSICS', 'CHEMISTRY')
        selection = select_best_subjects(o_level_results('s1', (70,) * 7, codes), O_LEVEL)
        self.assertTrue(selection.is_valid)
        self.assertEqual(selection.missing_core_subjects, ('GEOGRAPHY', 'HISTORY'))
        self.assertIn('Student is missing 2 core subjects: GEOGRAPHY, HISTORY', selection.warnings)

    @override_settings(GRADING_O_LEVEL_CORE_SUBJECTS=('eng', 'math'))
    def test_core_subjects_from_settings(self):
        results = o_level_results('s1', (70, 70), ('ENG', 'BIO'))
        selection = select_best_subjects(results, O_LEVEL)
        self.assertEqual(selection.missing_core_subjects, ('MATH',))

    def test_rejects_unnormalized_input(self):
        with self.assertRaises(TypeError):
            select_best_subjects([{'subject': 'math', 'marks': 80}], O_LEVEL)


class ALevelSelectionTest(SimpleTestCase):
    """Tests for A-Level best-three-principals selection."""

    def test_three_principals(self):
        """Test 85, 75, 65 -> A, B, C -> 6 points -> Division I."""
        results = [
            a_level_result('s1', 'PHY', 85),
            a_level_result('s1', 'CHE', 75),
            a_level_result('s1', 'MAT', 65),
            a_level_result('s1', 'BAM', 50, is_principal=False),
            a_level_result('s1', 'ICT', 36, is_principal=False),
        ]
        selection = select_best_subjects(results, A_LEVEL)
        self.assertTrue(selection.is_valid)
        self.assertEqual([r.grade for r in selection.selected_results], ['A', 'B', 'C'])
        self.assertEqual(selection.total_points, 6)
        self.assertEqual(selection.division, 'I')
        self.assertEqual(selection.warnings, ())

    def test_two_principals(self):
        """Test only 2 principal results -> missing_count 1."""
        results = [
            a_level_result('s1', 'PHY', 85),
            a_level_result('s1', 'CHE', 75),
            a_level_result('s1', 'BAM', 90, is_principal=False),
            a_level_result('s1', 'ICT', 90, is_principal=False),
        ]
        selection = select_best_subjects(results, A_LEVEL)
        self.assertFalse(selection.is_valid)
        self.assertEqual(selection.missing_count, 1)
        self.assertEqual(len(selection.selected_results), 2)
        self.assertIn(
            'Student has only 2 principal subjects. At least 3 principal subjects '
            'are required for division calculation.',
            selection.warnings,
        )

    def test_subsidiaries_never_counted(self):
        results = [
            a_level_result('s1', 'PHY', 45),
            a_level_result('s1', 'CHE', 45),
            a_level_result('s1', 'MAT', 45),
            a_level_result('s1', 'BAM', 99, is_principal=False),
            a_level_result('s1', 'ICT', 99, is_principal=False),
        ]
        selection = select_best_subjects(results, A_LEVEL)
        self.assertEqual(selection.total_points, 15)
        self.assertEqual(selection.division, 'III')

    def test_general_studies_excluded(self):
        results = [
            a_level_result('s1', 'GS', 95),
            a_level_result('s1', 'PHY', 55),
            a_level_result('s1', 'CHE', 55),
            a_level_result('s1', 'MAT', 55),
        ]
        selection = select_best_subjects(results, A_LEVEL)
        self.assertNotIn('GS', [r.subject_code for r in selection.selected_results])
        self.assertEqual(selection.total_points, 12)

    def test_missing_flags_and_subsidiaries_warned(self):
        results = [
            a_level_result('s1', 'PHY', 85),
            a_level_result('s1', 'CHE', 85),
            a_level_result('s1', 'MAT', 85),
            a_level_result('s1', 'BAM', 60, is_principal=None),
        ]
        selection = select_best_subjects(results, A_LEVEL)
        self.assertTrue(selection.is_valid)
        self.assertIn('Principal/subsidiary flag missing for: BAM', selection.warnings)
        self.assertIn(
            'Student has only 0 subsidiary subjects. At least 2 subsidiary subjects are recommended.',
            selection.warnings,
        )


class SubjectPerformanceTest(SimpleTestCase):
    """Tests for per-subject aggregation."""

    def setUp(self):
        self.results = [
            SubjectResult('math', 's1', 80, 'MATHEMATICS', 'Mathematics'),
            SubjectResult('math', 's2', 70, 'MATHEMATICS', 'Mathematics'),
            SubjectResult('math', 's3', 70, 'MATHEMATICS', 'Mathematics'),
            SubjectResult('math', 's4', 20, 'MATHEMATICS', 'Mathematics'),
            SubjectResult('math', 's5', None, 'MATHEMATICS', 'Mathematics'),
            SubjectResult('eng', 's1', None, 'ENGLISH', 'English'),
        ]

    def test_counts_sum_to_registered(self):
        """Test grade counts always add up to the registered count."""
        summaries = aggregate_subject_performance(self.results, O_LEVEL)
        for summary in summaries.values():
            self.assertEqual(sum(summary.grade_counts.values()), summary.registered_count)

    def test_summary_values(self):
        summary = aggregate_subject_performance(self.results, O_LEVEL)['math']
        self.assertEqual(summary.subject_name, 'Mathematics')
        self.assertEqual(summary.registered_count, 4)
        self.assertEqual(summary.grade_counts, {'A': 1, 'B': 2, 'C': 0, 'D': 0, 'F': 1})
        self.assertEqual(summary.passed_count, 3)
        self.assertEqual(summary.total_points, 10)
        self.assertEqual(summary.gpa, 2.5)
        self.assertEqual(summary.pass_rate, 75.0)

    def test_no_registered_results(self):
        summary = aggregate_subject_performance(self.results, O_LEVEL)['eng']
        self.assertEqual(summary.registered_count, 0)
        self.assertEqual(summary.gpa, NOT_AVAILABLE)
        self.assertEqual(summary.pass_rate, 0.0)

    def test_subject_order_preserved(self):
        self.assertEqual(list(aggregate_subject_performance(self.results, O_LEVEL)), ['math', 'eng'])

    def test_a_level_subsidiary_pass(self):
        """Test S passes a subsidiary subject but not a principal one."""
        results = [
            a_level_result('s1', 'BAM', 36, is_principal=False),
            a_level_result('s2', 'BAM', 37, is_principal=True),
        ]
        summary = aggregate_subject_performance(results, A_LEVEL)['bam']
        self.assertEqual(summary.grade_counts['S'], 2)
        self.assertEqual(summary.passed_count, 1)

    def test_mark_statistics(self):
        stats = calculate_mark_statistics([80, 70, 70, 60])
        self.assertEqual(stats.mean, 70.0)
        self.assertEqual(stats.median, 70.0)
        self.assertEqual(stats.mode, 70.0)
        self.assertEqual(stats.standard_deviation, 7.07)
        self.assertEqual(calculate_mark_statistics([]).mean, 0.0)


class WeightageTest(SimpleTestCase):
    """Tests for assessment weightage validation."""

    def setUp(self):
        self.existing = [
            Assessment('a1', 30, name='Mid-term', term='1', academic_year='2024', subject_id='math'),
            Assessment('a2', 30, name='Test', term='1', academic_year='2024', subject_id='math'),
            # Other scopes never count
            Assessment('a3', 90, term='2', academic_year='2024', subject_id='math'),
            Assessment('a4', 90, term='1', academic_year='2024', subject_id='eng'),
        ]

    def candidate(self, weightage, assessment_id=None):
        return Assessment(assessment_id, weightage, name='Terminal', term='1', academic_year='2024', subject_id='math')

    def test_within_limit(self):
        verdict = validate_weightage(self.existing, self.candidate(40))
        self.assertTrue(verdict.is_valid)
        self.assertIsNone(verdict.error)
        self.assertEqual(verdict.total_weightage, 100)

    def test_over_limit(self):
        with self.assertLogs('grading.weightage', 'INFO'):
            verdict = validate_weightage(self.existing, self.candidate(41))
        self.assertFalse(verdict.is_valid)
        self.assertEqual(
            verdict.error,
            'Total weightage (101%) exceeds 100%. Current allocation: 60%, remaining: 40%.',
        )
        self.assertEqual(verdict.remaining, 40)

    def test_update_excludes_itself(self):
        """Test an assessment being edited is not counted twice."""
        verdict = validate_weightage(self.existing, Assessment(
            'a2', 70, term='1', academic_year='2024', subject_id='math',
        ))
        self.assertTrue(verdict.is_valid)
        self.assertEqual(verdict.current_weightage, 30)

    def test_inactive_sibling_still_counts(self):
        """Test an inactive assessment keeps its share of the scope."""
        existing = [
            Assessment('a1', 60, term='1', academic_year='2024', subject_id='math', status='inactive'),
        ]
        with self.assertLogs('grading.weightage', 'INFO'):
            verdict = validate_weightage(existing, self.candidate(50))
        self.assertFalse(verdict.is_valid)
        self.assertEqual(verdict.current_weightage, 60)
        self.assertEqual(verdict.remaining, 40)

    def test_check_weightage_raises(self):
        with self.assertLogs('grading.weightage', 'INFO'):
            with self.assertRaises(ValidationError) as ctx:
                check_weightage(self.existing, self.candidate(Decimal('40.5')))
        self.assertEqual(ctx.exception.code, 'weightage_exceeded')
        self.assertIn('100.5%', ctx.exception.message)

    def test_invalid_weightage(self):
        with self.assertRaises(ValueError):
            validate_weightage(self.existing, self.candidate('lots'))

    def test_format_percentage(self):
        self.assertEqual(format_percentage(Decimal('40')), '40')
        self.assertEqual(format_percentage(Decimal('12.50')), '12.5')


class AssessmentFormTest(SimpleTestCase):
    """Tests for AssessmentForm."""

    def setUp(self):
        self.data = {
            'name': 'Terminal',
            'weightage': '40',
            'max_marks': '100',
            'term': '1',
            'exam_date': '2024-06-01',
            'status': 'active',
            'academic_year': '2024',
            'subject_id': 'math',
        }
        self.existing = [Assessment('a1', 60, term='1', academic_year='2024', subject_id='math')]

    def test_valid_form(self):
        """Test form with valid data."""
        form = AssessmentForm(data=self.data, existing_assessments=self.existing)
        self.assertTrue(form.is_valid())
        self.assertTrue(form.weightage_verdict.is_valid)
        self.assertEqual(form.to_assessment().weightage, Decimal('40'))

    def test_weightage_over_limit(self):
        """Test form rejects weightage pushing the term over 100%."""
        form = AssessmentForm(data={**self.data, 'weightage': '41'}, existing_assessments=self.existing)
        self.assertFalse(form.is_valid())
        self.assertIn('remaining: 40%', form.errors['weightage'][0])

    def test_editing_own_assessment(self):
        form = AssessmentForm(
            data={**self.data, 'weightage': '100'},
            existing_assessments=self.existing,
            assessment_id='a1',
        )
        self.assertTrue(form.is_valid())

    def test_field_validation(self):
        """Test form rejects out-of-range values."""
        for field, value in (('weightage', '0'), ('weightage', '150'), ('max_marks', '0'),
                             ('term', '4'), ('status', 'archived'), ('name', '   ')):
            with self.subTest(field=field, value=value):
                form = AssessmentForm(data={**self.data, field: value})
                self.assertFalse(form.is_valid())
                self.assertIn(field, form.errors)


class MarksEntryFormTest(SimpleTestCase):
    """Tests for MarksEntryForm."""

    def test_valid_marks(self):
        form = MarksEntryForm(data={'student_id': 's1', 'subject_id': 'math', 'marks': '75.5'})
        self.assertTrue(form.is_valid())
        self.assertEqual(form.to_subject_result().marks_obtained, Decimal('75.5'))

    def test_marks_above_maximum(self):
        """Test marks are capped at the assessment's maximum."""
        form = MarksEntryForm(data={'student_id': 's1', 'subject_id': 'math', 'marks': '60'}, max_marks=50)
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['marks'], ['Ensure this value is less than or equal to 50.'])

    def test_negative_marks(self):
        form = MarksEntryForm(data={'student_id': 's1', 'subject_id': 'math', 'marks': '-1'})
        self.assertFalse(form.is_valid())

    def test_blank_marks_allowed(self):
        form = MarksEntryForm(data={'student_id': 's1', 'subject_id': 'math', 'marks': ''})
        self.assertTrue(form.is_valid())
        self.assertIsNone(form.to_subject_result().marks_obtained)

    def test_converted_to_percentage(self):
        form = MarksEntryForm(data={'student_id': 's1', 'subject_id': 'math', 'marks': '40'}, max_marks=50)
        self.assertTrue(form.is_valid())
        result = form.to_subject_result(subject_code='MATHEMATICS')
        self.assertEqual(result.marks_obtained, Decimal('80'))
        self.assertEqual(resolve_grade(result.marks_obtained, O_LEVEL).grade, 'A')


class RankingTest(SimpleTestCase):
    """Tests for ranking, display sorting and subject positions."""

    def setUp(self):
        self.rows = [
            build_student_report(StudentResults('s1', o_level_results('s1', (50,) * 7), 'Baraka'), O_LEVEL),
            build_student_report(StudentResults('s2', o_level_results('s2', (80,) * 7), 'Amina'), O_LEVEL),
            build_student_report(StudentResults('s3', (), 'Chausiku'), O_LEVEL),
            build_student_report(StudentResults('s4', o_level_results('s4', (80,) * 7), 'Daudi'), O_LEVEL),
        ]

    def test_student_totals(self):
        row = self.rows[0]
        self.assertEqual(row.total_marks, 350.0)
        self.assertEqual(row.average_marks, 50.0)
        self.assertEqual(self.rows[2].average_marks, NOT_AVAILABLE)

    def test_assign_ranks(self):
        """Test ties share a rank and ungraded students come last."""
        ranks = {row.student_id: row.rank for row in assign_ranks(self.rows)}
        self.assertEqual(ranks, {'s2': 1, 's4': 1, 's1': 3, 's3': 4})

    def test_nulls_sort_last_both_directions(self):
        for direction in ('asc', 'desc'):
            with self.subTest(direction=direction):
                ordered = sort_students(self.rows, 'average_marks', direction)
                self.assertEqual(ordered[-1].student_id, 's3')
        self.assertEqual(sort_students(self.rows, 'average_marks', 'desc')[0].average_marks, 80.0)

    def test_sort_by_name(self):
        ordered = sort_students(self.rows, 'student_name')
        self.assertEqual([row.student_name for row in ordered], ['Amina', 'Baraka', 'Chausiku', 'Daudi'])

    def test_unknown_sort_field(self):
        with self.assertRaises(ValueError):
            sort_students(self.rows, 'shoe_size')
        with self.assertRaises(ValueError):
            sort_students(self.rows, 'rank', 'sideways')

    def test_subject_positions(self):
        """Test positions by marks with shared ties (1, 2, 2, 4)."""
        results = []
        for student_id, marks in (('s1', 80), ('s2', 70), ('s3', 70), ('s4', 60)):
            results.extend(
                build_student_report(StudentResults(student_id, o_level_results(student_id, (marks,))), O_LEVEL)
                .subject_results
            )
        positions = calculate_subject_positions(results)
        self.assertEqual(positions['english'], {'s1': 1, 's2': 2, 's3': 2, 's4': 4})


class ClassReportTest(SimpleTestCase):
    """Tests for full class reports."""

    def test_o_level_class(self):
        """Test three identical O-Level students all land in Division III."""
        students = [
            StudentResults(sid, o_level_results(sid, (80, 70, 60, 50, 40, 30, 20)))
            for sid in ('s1', 's2', 's3')
        ]
        report = build_class_report(students, O_LEVEL)

        self.assertEqual([row.rank for row in report.students], [1, 1, 1])
        self.assertEqual({row.division for row in report.students}, {'III'})
        self.assertEqual(report.division_summary, {'I': 0, 'II': 0, 'III': 3, 'IV': 0, '0': 0})
        self.assertEqual(report.overall_performance.total_passed, 3)
        self.assertEqual(report.overall_performance.exam_gpa, 22.0)
        self.assertEqual(report.overall_performance.pass_rate, 100.0)
        self.assertEqual(len(report.subject_performance), 7)
        self.assertEqual(report.subject_performance['english'].registered_count, 3)

    def test_a_level_class(self):
        students = [
            StudentResults('s1', (
                a_level_result('s1', 'PHY', 85),
                a_level_result('s1', 'CHE', 75),
                a_level_result('s1', 'MAT', 65),
            )),
            StudentResults('s2', (
                a_level_result('s2', 'PHY', 30),
                a_level_result('s2', 'CHE', 30),
                a_level_result('s2', 'MAT', 30),
            )),
            StudentResults('s3', ()),
        ]
        report = build_class_report(students, A_LEVEL, sort_field='total_points', sort_direction='desc')

        self.assertEqual([row.student_id for row in report.students], ['s2', 's1', 's3'])
        self.assertEqual({row.student_id: row.rank for row in report.students}, {'s1': 1, 's2': 2, 's3': 3})
        self.assertEqual(report.division_summary['I'], 1)
        self.assertEqual(report.division_summary['0'], 1)
        self.assertEqual(report.division_summary[NOT_AVAILABLE], 1)
        self.assertEqual(report.overall_performance.total_passed, 1)
        self.assertEqual(report.overall_performance.exam_gpa, 9.0)

    def test_incomplete_student_is_not_a_pass(self):
        """Test two top marks alone land in Division 0, not Division I."""
        students = [StudentResults('s1', o_level_results('s1', (90, 90)))]
        report = build_class_report(students, O_LEVEL)

        row = report.students[0]
        self.assertEqual(row.total_points, 2)
        self.assertEqual(row.division, '0')
        self.assertFalse(row.best_subject_selection.is_valid)
        self.assertEqual(report.division_summary['I'], 0)
        self.assertEqual(report.division_summary['0'], 1)
        self.assertEqual(report.overall_performance.total_passed, 0)

    def test_each_result_graded_once(self):
        """Test a bad mark is reported once per class report."""
        marks = (80,) * 7 + ('abc',)
        results = o_level_results('s1', marks, O_LEVEL_CODES + ('PHYSICS',))
        with self.assertLogs('grading.resolver', 'WARNING') as logs:
            report = build_class_report([StudentResults('s1', results)], O_LEVEL)
        self.assertEqual(len(logs.records), 1)
        self.assertIn("'abc'", logs.records[0].getMessage())
        self.assertEqual(report.students[0].division, 'I')
        self.assertEqual(report.subject_performance['physics'].registered_count, 0)
        self.assertTrue(any("PHYSICS: Invalid or missing marks value: 'abc'" in w
                            for w in report.students[0].best_subject_selection.warnings))

    def test_empty_class(self):
        report = build_class_report([], O_LEVEL)
        self.assertEqual(report.students, ())
        self.assertEqual(report.overall_performance.exam_gpa, NOT_AVAILABLE)
        self.assertNotIn(NOT_AVAILABLE, report.division_summary)

    def test_as_dict(self):
        report = build_class_report([StudentResults('s1', o_level_results('s1', (80,) * 7))], O_LEVEL)
        data = report.as_dict()
        self.assertEqual(data['students'][0]['best_subject_selection']['division'], 'I')
        self.assertEqual(data['overall_performance']['total_students'], 1)

    def test_bad_arguments(self):
        with self.assertRaises(UnknownCurriculumError):
            build_class_report([], 'IB')
        with self.assertRaises(ValueError):
            build_class_report([], O_LEVEL, sort_field='height')


class SubjectCatalogTest(SimpleTestCase):
    """Tests for the subject catalog cache."""

    def setUp(self):
        self.calls = []
        self.backend = LocMemCache('grading-tests', {})
        self.backend.clear()
        self.catalog = SubjectCatalog(self.load_subjects, backend=self.backend, timeout=60)

    def load_subjects(self, curriculum):
        self.calls.append(curriculum)
        if curriculum == A_LEVEL:
            return [
                SubjectInfo('phy', 'PHY', 'Physics', is_principal=True),
                SubjectInfo('bam', 'BAM', 'Basic Applied Mathematics', is_principal=False),
            ]
        return []

    def test_read_through(self):
        """Test the loader runs once until the catalog is invalidated."""
        self.catalog.get_subjects(A_LEVEL)
        self.catalog.get_subjects(A_LEVEL)
        self.assertEqual(len(self.calls), 1)

        self.catalog.invalidate(A_LEVEL)
        self.assertEqual(self.catalog.get_subject('phy', A_LEVEL).name, 'Physics')
        self.assertEqual(len(self.calls), 2)

    def test_empty_catalog_cached(self):
        self.assertEqual(self.catalog.get_subjects(O_LEVEL), {})
        self.assertEqual(self.catalog.get_subjects(O_LEVEL), {})
        self.assertEqual(len(self.calls), 1)

    def test_invalidate_all(self):
        self.catalog.get_subjects(A_LEVEL)
        self.catalog.get_subjects(O_LEVEL)
        self.catalog.invalidate()
        self.catalog.get_subjects(A_LEVEL)
        self.assertEqual(len(self.calls), 3)

    def test_build_results(self):
        """Test raw marks are normalized into SubjectResult objects."""
        results = self.catalog.build_results('s1', {'phy': 85, 'bam': 60}, A_LEVEL)
        self.assertEqual([r.subject_code for r in results], ['PHY', 'BAM'])
        self.assertEqual([r.is_principal for r in results], [True, False])

        results = self.catalog.build_results('s1', {'bam': 60}, A_LEVEL, principal_flags={'bam': True})
        self.assertTrue(results[0].is_principal)

    def test_unknown_subject(self):
        with self.assertLogs('grading.catalog', 'WARNING'):
            result = self.catalog.make_result('s1', 'xyz', 50, A_LEVEL)
        self.assertEqual(result.subject_id, 'xyz')
        self.assertEqual(result.subject_code, '')


class ShowGradingScalesCommandTest(SimpleTestCase):
    """Tests for the show_grading_scales command."""

    def test_all_scales(self):
        out = StringIO()
        call_command('show_grading_scales', stdout=out)
        output = out.getvalue()
        self.assertIn('O-Level grades', output)
        self.assertIn('A-Level divisions', output)
        self.assertIn('Grading scales are valid', output)

    def test_single_curriculum(self):
        out = StringIO()
        call_command('show_grading_scales', curriculum='A_LEVEL', stdout=out)
        output = out.getvalue()
        self.assertIn('Subsidiary Pass (subsidiary pass)', output)
        self.assertNotIn('O-Level', output)
