from __future__ import annotations

from typing import Iterable, Optional

from courseseed.core.logging import get_logger
from courseseed.modules.courses.models import Course, Language, Lesson, Tag
from courseseed.seeding.store import ContentStore

logger = get_logger(__name__)


class ParentResolver:
    """Read-only lookups of the rows that own seeded content.

    A missing parent is reported as ``None``; callers decide how to abort.
    """

    def __init__(self, store: ContentStore):
        self.store = store

    def resolve_course(self, slug: str) -> Optional[Course]:
        """Get course by slug."""
        return self.store.find_by_key(Course, slug=slug)

    def resolve_lessons_by_order(self, course: Course) -> dict[int, Lesson]:
        """Index the lessons of a course by sort_order.

        Build this once per seeder run and reuse it for every catalog entry.
        """
        lessons = self.store.find_all(Lesson, order_by="sort_order", course_id=course.id)
        indexed = {lesson.sort_order: lesson for lesson in lessons}
        if len(indexed) != len(lessons):
            logger.warning(
                "duplicate lesson sort_order",
                course=course.slug,
                lessons=len(lessons),
                distinct_orders=len(indexed),
            )
        return indexed

    def resolve_language(self, slug: str) -> Optional[Language]:
        """Get language by slug."""
        return self.store.find_by_key(Language, slug=slug)

    def resolve_tags(self, slugs: Iterable[str]) -> dict[str, Tag]:
        """Get the tags that exist among ``slugs``, keyed by slug."""
        found: dict[str, Tag] = {}
        for slug in slugs:
            if slug in found:
                continue
            tag = self.store.find_by_key(Tag, slug=slug)
            if tag is not None:
                found[slug] = tag
        return found
