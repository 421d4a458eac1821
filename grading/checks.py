"""
System checks for the grading scales and settings.

Run by `manage.py check`, `runserver` and the test runner.
"""
from django.core.checks import Error, register

from . import config
from .scales import SCALES, validate_scale


@register()
def check_grading_scales(app_configs, **kwargs):
    errors = []
    for scale in SCALES.values():
        for problem in validate_scale(scale):
            errors.append(Error(problem, id='grading.E001'))
    return errors


@register()
def check_grading_settings(app_configs, **kwargs):
    errors = []

    for name in ('O_LEVEL_BEST_SUBJECTS', 'A_LEVEL_BEST_PRINCIPALS', 'A_LEVEL_MIN_SUBSIDIARIES'):
        value = getattr(config, name)
        minimum = 0 if name == 'A_LEVEL_MIN_SUBSIDIARIES' else 1
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            errors.append(Error(
                f'GRADING_{name} must be an integer of at least {minimum}, got {value!r}',
                id='grading.E002',
            ))

    for name in ('O_LEVEL_CORE_SUBJECTS', 'A_LEVEL_EXCLUDED_SUBJECTS'):
        value = getattr(config, name)
        if not isinstance(value, (list, tuple)) or not all(isinstance(code, str) for code in value):
            errors.append(Error(
                f'GRADING_{name} must be a list or tuple of subject codes',
                hint="e.g. ('ENGLISH', 'MATHEMATICS')",
                id='grading.E003',
            ))

    maximum = config.MAX_TOTAL_WEIGHTAGE
    if isinstance(maximum, bool) or not isinstance(maximum, (int, float)) or maximum <= 0:
        errors.append(Error(
            f'GRADING_MAX_TOTAL_WEIGHTAGE must be a positive number, got {maximum!r}',
            id='grading.E004',
        ))

    return errors
