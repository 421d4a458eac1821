"""
Subject catalog: a read-through cache of subject metadata per curriculum.

The catalog is constructed explicitly with the loader that reads subjects
from storage and the cache backend to keep them in, so there is no
process-wide subject cache. Invalidate it when subjects are edited.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.core.cache import caches

from . import config
from .choices import Curriculum
from .scales import get_scale
from .structures import SubjectResult

logger = logging.getLogger(__name__)

# cache.get() returns None for missing keys, so an empty catalog is cached as this
EMPTY = 'NONE'


@dataclass(frozen=True)
class SubjectInfo:
    subject_id: str
    code: str = ''
    name: str = ''
    # A-Level default; a student's own combination can override it
    is_principal: Optional[bool] = None


class SubjectCatalog:
    """
    Read-through cache of SubjectInfo keyed by curriculum.

    Args:
        loader: callable(curriculum) returning an iterable of SubjectInfo
        backend: Django cache backend; defaults to caches['default']
        timeout: seconds to keep a curriculum's subjects;
                 defaults to GRADING_SUBJECT_CACHE_TIMEOUT
        key_prefix: cache key prefix
    """

    def __init__(self, loader, backend=None, timeout=None, key_prefix='grading_subjects'):
        self.loader = loader
        self.backend = backend if backend is not None else caches['default']
        self.timeout = timeout if timeout is not None else config.SUBJECT_CACHE_TIMEOUT
        self.key_prefix = key_prefix

    def _cache_key(self, curriculum):
        return f'{self.key_prefix}_{get_scale(curriculum).curriculum}'

    def get_subjects(self, curriculum):
        """Subjects for a curriculum as {subject_id: SubjectInfo}."""
        cache_key = self._cache_key(curriculum)
        subjects = self.backend.get(cache_key)

        if subjects is None:
            subjects = {str(info.subject_id): info for info in self.loader(curriculum)}
            logger.debug(f'Loaded {len(subjects)} subjects into {cache_key}')
            self.backend.set(cache_key, subjects if subjects else EMPTY, self.timeout)
        elif subjects == EMPTY:
            subjects = {}

        return subjects

    def get_subject(self, subject_id, curriculum):
        return self.get_subjects(curriculum).get(str(subject_id))

    def invalidate(self, curriculum=None):
        """Drop cached subjects for one curriculum, or for all of them."""
        if curriculum is None:
            keys = [self._cache_key(value) for value in Curriculum.values]
        else:
            keys = [self._cache_key(curriculum)]
        self.backend.delete_many(keys)
        logger.debug(f'Subject catalog invalidated: {", ".join(keys)}')

    def make_result(self, student_id, subject_id, marks, curriculum, is_principal=None):
        """
        Build a SubjectResult for one mark, filling in subject code and name.

        is_principal overrides the catalog's default for the subject.
        An unknown subject still produces a result, identified by id only.
        """
        info = self.get_subject(subject_id, curriculum)
        if info is None:
            logger.warning(f'Subject {subject_id} is not in the {curriculum} catalog')
            info = SubjectInfo(subject_id=str(subject_id))

        return SubjectResult(
            subject_id=info.subject_id,
            student_id=student_id,
            marks_obtained=marks,
            subject_code=info.code,
            subject_name=info.name,
            is_principal=info.is_principal if is_principal is None else is_principal,
        )

    def build_results(self, student_id, marks_by_subject, curriculum, principal_flags=None):
        """
        Normalize a student's {subject_id: marks} into SubjectResult objects.

        principal_flags: optional {subject_id: bool} for the student's
        A-Level combination.
        """
        principal_flags = principal_flags or {}
        return tuple(
            self.make_result(
                student_id,
                subject_id,
                marks,
                curriculum,
                is_principal=principal_flags.get(subject_id),
            )
            for subject_id, marks in marks_by_subject.items()
        )
