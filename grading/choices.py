from django.db import models
from django.utils.translation import gettext_lazy as _


class Curriculum(models.TextChoices):
    O_LEVEL = 'O_LEVEL', _('O-Level')
    A_LEVEL = 'A_LEVEL', _('A-Level')


class Division(models.TextChoices):
    ONE = 'I', _('Division I')
    TWO = 'II', _('Division II')
    THREE = 'III', _('Division III')
    FOUR = 'IV', _('Division IV')
    ZERO = '0', _('Division 0')


class SortDirection(models.TextChoices):
    ASC = 'asc', _('Ascending')
    DESC = 'desc', _('Descending')


class AssessmentStatus(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    ACTIVE = 'active', _('Active')
    INACTIVE = 'inactive', _('Inactive')


class Term(models.TextChoices):
    FIRST = '1', _('Term 1')
    SECOND = '2', _('Term 2')
    THIRD = '3', _('Term 3')


# Placeholder grade/division for records that cannot be graded
NOT_AVAILABLE = 'N/A'
