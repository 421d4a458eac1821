"""
Management command to print the grade and division scales and check them.

Usage:
    python manage.py show_grading_scales
    python manage.py show_grading_scales --curriculum A_LEVEL
"""
from django.core.management.base import BaseCommand, CommandError

from grading.choices import Curriculum
from grading.scales import SCALES, validate_scale


class Command(BaseCommand):
    help = 'Show the O-Level/A-Level grade and division scales and validate them'

    def add_arguments(self, parser):
        parser.add_argument(
            '--curriculum',
            type=str,
            choices=Curriculum.values,
            help='Only show this curriculum',
        )

    def handle(self, *args, **options):
        curriculum = options.get('curriculum')
        scales = [SCALES[Curriculum(curriculum)]] if curriculum else list(SCALES.values())

        problems = []
        for scale in scales:
            self.show_scale(scale)
            problems.extend(validate_scale(scale))

        if problems:
            for problem in problems:
                self.stderr.write(self.style.ERROR(problem))
            raise CommandError(f'{len(problems)} problem(s) found in the grading scales')

        self.stdout.write(self.style.SUCCESS('Grading scales are valid'))

    def show_scale(self, scale):
        self.stdout.write(self.style.MIGRATE_HEADING(f'{scale.curriculum.label} grades'))
        for band in scale.grade_bands:
            passing = 'pass' if band.grade in scale.passing_grades else 'fail'
            if scale.subsidiary_passing_grades and band.grade in scale.subsidiary_passing_grades - scale.passing_grades:
                passing = 'subsidiary pass'
            self.stdout.write(
                f'  {band.grade:<3} {band.min_marks:>3}-{band.max_marks:<3} '
                f'{band.points} pts  {band.remark} ({passing})'
            )

        self.stdout.write(self.style.MIGRATE_HEADING(f'{scale.curriculum.label} divisions'))
        for band in scale.division_bands:
            upper = band.max_points if band.max_points is not None else '+'
            self.stdout.write(f'  {str(band.division):<4} {band.min_points}-{upper}')

        self.stdout.write(f'  Best subjects counted: {scale.best_count}')
        if scale.core_subjects:
            self.stdout.write(f"  Core subjects: {', '.join(scale.core_subjects)}")
        if scale.excluded_subjects:
            self.stdout.write(f"  Never counted: {', '.join(sorted(scale.excluded_subjects))}")
