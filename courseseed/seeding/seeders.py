from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Sequence

from courseseed.core.logging import get_logger
from courseseed.modules.courses.models import Course, Language, Lesson, Tag
from courseseed.seeding.catalog import (
    CourseEntry,
    ExerciseCatalog,
    LanguageEntry,
    LessonCatalog,
    QuizCatalog,
    TagEntry,
    UserEntry,
)
from courseseed.seeding.output import SeedOutput
from courseseed.seeding.reconciler import Reconciler
from courseseed.seeding.resolver import ParentResolver

logger = get_logger(__name__)


@dataclass
class SeedReport:
    seeder: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    aborted: bool = False


class Seeder(abc.ABC):
    """One unit of seeding. ``run`` is safe to call repeatedly."""

    def __init__(self, resolver: ParentResolver, reconciler: Reconciler, output: SeedOutput):
        self.resolver = resolver
        self.reconciler = reconciler
        self.output = output

    @property
    def name(self) -> str:
        return type(self).__name__

    @abc.abstractmethod
    def run(self) -> SeedReport:
        raise NotImplementedError

    def abort(self, message: str, **context) -> SeedReport:
        """Warn and end this seeder's run without writing anything."""
        logger.warning("seeder aborted", seeder=self.name, reason=message, **context)
        self.output.warn(message)
        return SeedReport(self.name, aborted=True)


class UserSeeder(Seeder):
    def __init__(self, users: Sequence[UserEntry], **kwargs):
        super().__init__(**kwargs)
        self.users = users

    def run(self) -> SeedReport:
        report = SeedReport(self.name)
        for entry in self.users:
            result = self.reconciler.reconcile_user(entry)
            if result.created:
                report.created += 1
            else:
                report.updated += 1
            logger.debug("user reconciled", email=entry.email, role=entry.role.value, created=result.created)
        self.output.info(f"Users seeded: {report.created} new, {report.updated} updated.")
        return report


class LanguageSeeder(Seeder):
    def __init__(self, languages: Sequence[LanguageEntry], **kwargs):
        super().__init__(**kwargs)
        self.languages = languages

    def run(self) -> SeedReport:
        report = SeedReport(self.name)
        for position, entry in enumerate(self.languages):
            result = self.reconciler.ensure(
                Language,
                {"slug": entry.slug},
                {
                    "name": entry.name,
                    "color": entry.color,
                    "icon": entry.icon,
                    "description": entry.description,
                    "sort_order": position,
                    "active": entry.active,
                },
            )
            report.created += result.created
        self.output.info(f"Languages seeded: {report.created} new of {len(self.languages)}.")
        return report


class TagSeeder(Seeder):
    def __init__(self, tags: Sequence[TagEntry], **kwargs):
        super().__init__(**kwargs)
        self.tags = tags

    def run(self) -> SeedReport:
        report = SeedReport(self.name)
        for entry in self.tags:
            result = self.reconciler.ensure(
                Tag,
                {"slug": entry.slug},
                {"name": entry.name, "color": entry.color},
            )
            report.created += result.created
        self.output.info(f"Tags seeded: {report.created} new of {len(self.tags)}.")
        return report


class CourseSeeder(Seeder):
    def __init__(self, courses: Sequence[CourseEntry], **kwargs):
        super().__init__(**kwargs)
        self.courses = courses

    def run(self) -> SeedReport:
        report = SeedReport(self.name)
        for entry in self.courses:
            language = self.resolver.resolve_language(entry.language)
            if language is None:
                # only this course is skipped, the others still get seeded
                logger.warning("language not found", course=entry.slug, language=entry.language)
                self.output.warn(
                    f"Language '{entry.language}' not found for course '{entry.slug}'. "
                    "Run LanguageSeeder first."
                )
                report.skipped += 1
                continue

            result = self.reconciler.ensure(
                Course,
                {"slug": entry.slug},
                {
                    "language_id": language.id,
                    "title": entry.title,
                    "description": entry.description,
                    "level": entry.level,
                    "published": entry.published,
                    "sort_order": entry.sort_order,
                },
            )
            report.created += result.created
        self.output.info(f"Courses seeded: {report.created} new of {len(self.courses)}.")
        return report


class LessonSeeder(Seeder):
    def __init__(self, course_slug: str, catalog: LessonCatalog, **kwargs):
        super().__init__(**kwargs)
        self.course_slug = course_slug
        self.catalog = catalog

    @property
    def name(self) -> str:
        return f"LessonSeeder[{self.course_slug}]"

    def run(self) -> SeedReport:
        course = self.resolver.resolve_course(self.course_slug)
        if course is None:
            return self.abort(
                f"Course '{self.course_slug}' not found. Run CourseSeeder first.",
                course=self.course_slug,
            )

        tags = self.resolver.resolve_tags(
            slug for entry in self.catalog.lessons for slug in entry.tags
        )

        report = SeedReport(self.name)
        for entry in self.catalog.lessons:
            result = self.reconciler.ensure(
                Lesson,
                {"course_id": course.id, "slug": entry.slug},
                {
                    "title": entry.title,
                    "md_file_path": entry.md_file_path,
                    "content_md": entry.content_md,
                    "excerpt": entry.excerpt,
                    "published": entry.published,
                    "sort_order": entry.order,
                    "duration_minutes": entry.duration_minutes,
                },
            )
            report.created += result.created

            missing = [slug for slug in entry.tags if slug not in tags]
            if missing:
                logger.warning("tags not found", course=self.course_slug, lesson=entry.slug, tags=missing)
            self.reconciler.store.attach(
                result.row, "tags", [tags[slug] for slug in entry.tags if slug in tags]
            )

        self.output.info(
            f"{self.course_slug} lessons seeded: {report.created} new of {len(self.catalog.lessons)}."
        )
        return report


class ExerciseSeeder(Seeder):
    def __init__(self, course_slug: str, catalog: ExerciseCatalog, **kwargs):
        super().__init__(**kwargs)
        self.course_slug = course_slug
        self.catalog = catalog

    @property
    def name(self) -> str:
        return f"ExerciseSeeder[{self.course_slug}]"

    def run(self) -> SeedReport:
        course = self.resolver.resolve_course(self.course_slug)
        if course is None:
            return self.abort(
                f"Course '{self.course_slug}' not found. Run CourseSeeder and LessonSeeder first.",
                course=self.course_slug,
            )

        lessons = self.resolver.resolve_lessons_by_order(course)

        report = SeedReport(self.name)
        for entry in self.catalog.exercises:
            lesson = lessons.get(entry.lesson)
            if lesson is None:
                logger.debug("lesson not found, exercise skipped", course=course.slug, lesson=entry.lesson)
                report.skipped += 1
                continue

            result = self.reconciler.reconcile_exercise(lesson.id, entry)
            if result.created:
                report.created += 1
            else:
                report.updated += 1

        seeded = report.created + report.updated
        logger.info(
            "exercises reconciled",
            course=course.slug,
            created=report.created,
            updated=report.updated,
            skipped=report.skipped,
        )
        self.output.info(f"{self.course_slug} exercises seeded: {seeded} exercises.")
        return report


class QuizSeeder(Seeder):
    def __init__(self, course_slug: str, catalog: QuizCatalog, **kwargs):
        super().__init__(**kwargs)
        self.course_slug = course_slug
        self.catalog = catalog

    @property
    def name(self) -> str:
        return f"QuizSeeder[{self.course_slug}]"

    def run(self) -> SeedReport:
        course = self.resolver.resolve_course(self.course_slug)
        if course is None:
            return self.abort(
                f"Course '{self.course_slug}' not found. Run CourseSeeder first.",
                course=self.course_slug,
            )

        inserted = self.reconciler.reconcile_quiz(course, self.catalog, self.catalog.questions)
        self.output.info(f"{self.course_slug} quiz seeded: {inserted} questions.")
        return SeedReport(self.name, created=inserted)
