from django.core.exceptions import ImproperlyConfigured


class GradingConfigurationError(ImproperlyConfigured):
    """A scale table or grading setting is broken."""


class UnknownCurriculumError(GradingConfigurationError, ValueError):
    """The caller passed a curriculum that has no scale tables."""

    def __init__(self, curriculum):
        self.curriculum = curriculum
        super().__init__(f"Unknown curriculum: {curriculum!r}")


class ScaleLookupError(GradingConfigurationError):
    """A valid value matched no band, which means the scale has a gap."""
