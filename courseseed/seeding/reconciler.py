"""Reconciliation of authored content with what is stored.

Three strategies share one store and one clock:

``FindOrCreate``
    insert a row when its natural key is missing, never touch an existing one.
``UpsertByKey``
    insert, or update every other column in place keeping the row id.
    ``created_at`` is written on insert only, ``updated_at`` on every write.
``FullRebuild``
    delete all children of a parent (deepest level first) and insert the
    new set with ``sort_order`` recomputed from authored position.

FullRebuild does not recover from a failure half-way through: the error
propagates and the parent is left with a partial set of children until the
next successful run.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from courseseed.core.logging import get_logger
from courseseed.core.security import get_password_hash, verify_password
from courseseed.modules.courses.models import Course
from courseseed.modules.exercises.models import LessonExercise
from courseseed.modules.quizzes.models import Quiz, QuizOption, QuizQuestion
from courseseed.modules.users.models import User
from courseseed.seeding.catalog import ExerciseEntry, QuestionEntry, QuizMetadata, UserEntry
from courseseed.seeding.store import ContentStore, UpsertResult

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RebuildLevel:
    """One level of a parent/child hierarchy: rows of ``model`` point at
    their parent through ``parent_field``."""

    model: type
    parent_field: str
    child: Optional["RebuildLevel"] = None


@dataclass
class RebuildRow:
    values: dict[str, Any]
    children: Sequence["RebuildRow"] = field(default_factory=list)


QUIZ_QUESTIONS = RebuildLevel(
    QuizQuestion,
    "quiz_id",
    child=RebuildLevel(QuizOption, "quiz_question_id"),
)


class ReconcileStrategy(abc.ABC):
    name: str

    def __init__(self, store: ContentStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    @abc.abstractmethod
    def apply(self, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError


class FindOrCreate(ReconcileStrategy):
    name = "find_or_create"

    def apply(self, model: type, key: dict[str, Any], values: dict[str, Any]) -> UpsertResult:
        row = self.store.find_by_key(model, **key)
        if row is not None:
            return UpsertResult(row, created=False)
        now = self.clock()
        row = self.store.insert(model, **key, **values, created_at=now, updated_at=now)
        return UpsertResult(row, created=True)


class UpsertByKey(ReconcileStrategy):
    name = "upsert_by_key"

    def apply(self, model: type, key: dict[str, Any], values: dict[str, Any]) -> UpsertResult:
        now = self.clock()
        return self.store.upsert(
            model,
            key,
            {**values, "updated_at": now},
            create_values={"created_at": now},
        )


class FullRebuild(ReconcileStrategy):
    name = "full_rebuild"

    def apply(self, parent_id: Any, level: RebuildLevel, rows: Sequence[RebuildRow]) -> int:
        """Replace every child of ``parent_id`` with ``rows``.

        Returns the number of rows inserted at the top level.
        """
        removed = self.clear(parent_id, level)
        inserted = self.insert(parent_id, level, rows)
        logger.debug(
            "children rebuilt",
            model=level.model.__name__,
            parent_id=str(parent_id),
            removed=removed,
            inserted=inserted,
        )
        return inserted

    def clear(self, parent_id: Any, level: RebuildLevel) -> int:
        # children before parents so no row is left pointing at a deleted one
        if level.child is not None:
            for existing in self.store.find_all(level.model, **{level.parent_field: parent_id}):
                self.clear(existing.id, level.child)
        return self.store.delete_children_of(level.model, **{level.parent_field: parent_id})

    def insert(self, parent_id: Any, level: RebuildLevel, rows: Sequence[RebuildRow]) -> int:
        now = self.clock()
        for position, row in enumerate(rows, start=1):
            created = self.store.insert(
                level.model,
                **row.values,
                **{level.parent_field: parent_id},
                sort_order=position,
                created_at=now,
                updated_at=now,
            )
            if level.child is not None:
                self.insert(created.id, level.child, row.children)
        return len(rows)


class Reconciler:
    """Entry point used by the seeders; one method per content family."""

    def __init__(self, store: ContentStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock
        self.find_or_create = FindOrCreate(store, clock)
        self.upsert_by_key = UpsertByKey(store, clock)
        self.full_rebuild = FullRebuild(store, clock)

    def ensure(self, model: type, key: dict[str, Any], values: dict[str, Any]) -> UpsertResult:
        return self.find_or_create.apply(model, key, values)

    def reconcile_quiz(
        self,
        course: Course,
        quiz: QuizMetadata,
        questions: Sequence[QuestionEntry],
    ) -> int:
        """Upsert the course quiz and rebuild its questions and options.

        Returns the number of questions inserted.
        """
        result = self.upsert_by_key.apply(
            Quiz,
            {"course_id": course.id},
            {
                "title": quiz.title,
                "description": quiz.description,
                "published": quiz.published,
            },
        )
        rows = [
            RebuildRow(
                values={"question": question.question, "explanation": question.explanation},
                children=[
                    RebuildRow(values={"text": option.text, "is_correct": option.correct})
                    for option in question.options
                ],
            )
            for question in questions
        ]
        inserted = self.full_rebuild.apply(result.row.id, QUIZ_QUESTIONS, rows)
        logger.info(
            "quiz reconciled",
            course=course.slug,
            quiz_id=str(result.row.id),
            quiz_created=result.created,
            questions=inserted,
        )
        return inserted

    def reconcile_exercise(self, lesson_id: Any, exercise: ExerciseEntry) -> UpsertResult:
        """Insert or update the single exercise of a lesson."""
        return self.upsert_by_key.apply(
            LessonExercise,
            {"lesson_id": lesson_id},
            exercise.row_values(),
        )

    def reconcile_user(self, user: UserEntry) -> UpsertResult:
        """Insert or update an account by email.

        The stored hash is kept while it still matches the catalog password,
        so re-runs do not rehash. ``email_verified_at`` is set once.
        """
        existing = self.store.find_by_key(User, email=user.email)
        if existing is not None and verify_password(user.password, existing.password_hash):
            password_hash = existing.password_hash
        else:
            password_hash = get_password_hash(user.password)

        verified_at = existing.email_verified_at if existing is not None else None
        return self.upsert_by_key.apply(
            User,
            {"email": user.email},
            {
                "name": user.name,
                "role": user.role,
                "password_hash": password_hash,
                "email_verified_at": verified_at or self.clock(),
            },
        )
