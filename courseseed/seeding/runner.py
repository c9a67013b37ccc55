from __future__ import annotations

from typing import Iterable, Iterator, Optional

from sqlalchemy.orm import Session

from courseseed.core.logging import get_logger
from courseseed.seeding.catalog import Catalog
from courseseed.seeding.output import SeedOutput
from courseseed.seeding.reconciler import Clock, Reconciler, utcnow
from courseseed.seeding.resolver import ParentResolver
from courseseed.seeding.seeders import (
    CourseSeeder,
    ExerciseSeeder,
    LanguageSeeder,
    LessonSeeder,
    QuizSeeder,
    SeedReport,
    Seeder,
    TagSeeder,
    UserSeeder,
)
from courseseed.seeding.store import SqlAlchemyStore

logger = get_logger(__name__)

STAGES = ("users", "languages", "tags", "courses", "lessons", "exercises", "quizzes")


class SeedRunner:
    """Runs every seeder for a catalog in dependency order.

    Users, languages, tags and courses come first, then for each course its
    lessons, exercises and quiz. Each seeder is committed on its own, so a
    seeder that aborts on a missing parent does not stop the ones after it.
    A database error is not caught and ends the run.
    """

    def __init__(
        self,
        db: Session,
        catalog: Catalog,
        output: Optional[SeedOutput] = None,
        courses: Optional[Iterable[str]] = None,
        stages: Optional[Iterable[str]] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.catalog = catalog
        self.output = output or SeedOutput()
        self.courses = set(courses) if courses else None
        self.stages = set(stages) if stages else set(STAGES)

        unknown = self.stages - set(STAGES)
        if unknown:
            raise ValueError(f"unknown seeding stages: {sorted(unknown)}")

        store = SqlAlchemyStore(db)
        self.context = {
            "resolver": ParentResolver(store),
            "reconciler": Reconciler(store, clock),
            "output": self.output,
        }

    def seeders(self) -> Iterator[Seeder]:
        if "users" in self.stages:
            yield UserSeeder(self.catalog.users, **self.context)
        if "languages" in self.stages:
            yield LanguageSeeder(self.catalog.languages, **self.context)
        if "tags" in self.stages:
            yield TagSeeder(self.catalog.tags, **self.context)
        if "courses" in self.stages:
            yield CourseSeeder(self.catalog.courses, **self.context)

        for slug in self.catalog.course_slugs():
            if self.courses is not None and slug not in self.courses:
                continue
            if "lessons" in self.stages and slug in self.catalog.lessons:
                yield LessonSeeder(slug, self.catalog.lessons[slug], **self.context)
            if "exercises" in self.stages and slug in self.catalog.exercises:
                yield ExerciseSeeder(slug, self.catalog.exercises[slug], **self.context)
            if "quizzes" in self.stages and slug in self.catalog.quizzes:
                yield QuizSeeder(slug, self.catalog.quizzes[slug], **self.context)

    def run(self) -> list[SeedReport]:
        reports: list[SeedReport] = []
        for seeder in self.seeders():
            logger.info("seeder started", seeder=seeder.name)
            report = seeder.run()
            self.db.commit()
            reports.append(report)
            logger.info(
                "seeder finished",
                seeder=report.seeder,
                created=report.created,
                updated=report.updated,
                skipped=report.skipped,
                aborted=report.aborted,
            )
        return reports
