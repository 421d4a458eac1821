"""
Configuration settings for the grading app.

These values can be overridden in Django settings by prefixing with GRADING_.
For example, to change the O-Level core subjects:
    GRADING_O_LEVEL_CORE_SUBJECTS = ('ENG', 'KIS', 'MATH')

All configuration values are lazily loaded to avoid Django setup issues.
"""


def _get_setting(name, default):
    """Get a grading setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADING_{name}', default)


_DEFAULTS = {
    # O-Level (CSEE) division rules
    'O_LEVEL_BEST_SUBJECTS': 7,
    'O_LEVEL_CORE_SUBJECTS': (
        'ENGLISH',
        'KISWAHILI',
        'MATHEMATICS',
        'BIOLOGY',
        'CIVICS',
        'GEOGRAPHY',
        'HISTORY',
    ),

    # A-Level (ACSEE) division rules
    'A_LEVEL_BEST_PRINCIPALS': 3,
    'A_LEVEL_MIN_SUBSIDIARIES': 2,
    # Subject codes that never count toward division (General Studies)
    'A_LEVEL_EXCLUDED_SUBJECTS': ('GS',),

    # Assessment weightage
    'MAX_TOTAL_WEIGHTAGE': 100,
    'ASSESSMENT_SCOPE_FIELDS': ('term', 'academic_year', 'subject_id'),

    # Subject catalog cache timeout (1 hour)
    'SUBJECT_CACHE_TIMEOUT': 60 * 60,

    # Rounding for GPA, averages and rates
    'DECIMAL_PLACES': 2,
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
