"""Typed content catalogs loaded from JSON files.

Layout of a catalog directory::

    users.json                list of demo accounts
    languages.json            list of languages
    tags.json                 list of tags
    courses.json              list of courses
    lessons/<course>.json     lessons of one course
    quizzes/<course>.json     quiz metadata and questions of one course
    exercises/<course>.json   exercises keyed by lesson sort order

Ordered items (lessons, questions, options) carry an explicit ``order``.
When it is omitted the authored position + 1 is used; explicit orders must
be unique and contiguous from 1. Items are sorted by ``order`` once loaded.
"""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, ValidationError, model_validator

from courseseed.core.exceptions import CatalogError
from courseseed.core.logging import get_logger
from courseseed.modules.courses.models import CourseLevel
from courseseed.modules.users.models import UserRole

logger = get_logger(__name__)

E = TypeVar("E", bound="OrderedEntry")


def slugify(value: str) -> str:
    """Lowercase ASCII slug: "Bases de datos" -> "bases-de-datos"."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


class CatalogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class OrderedEntry(CatalogModel):
    order: Optional[int] = Field(default=None, ge=1)


def normalize_order(entries: Sequence[E], what: str) -> list[E]:
    """Fill missing orders from position, check 1..n, and sort by order."""
    for position, entry in enumerate(entries, start=1):
        if entry.order is None:
            entry.order = position

    orders = sorted(entry.order for entry in entries)
    expected = list(range(1, len(entries) + 1))
    if orders != expected:
        raise ValueError(f"{what} orders must be unique and contiguous from 1, got {orders}")

    return sorted(entries, key=lambda entry: entry.order)


class UserEntry(CatalogModel):
    email: EmailStr
    name: str
    # plain text in the catalog, only the hash is stored
    password: str = Field(min_length=8)
    role: UserRole = UserRole.student


class LanguageEntry(CatalogModel):
    slug: Optional[str] = None
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    active: bool = True

    @model_validator(mode="after")
    def _default_slug(self) -> "LanguageEntry":
        if not self.slug:
            self.slug = slugify(self.name)
        return self


class TagEntry(CatalogModel):
    slug: Optional[str] = None
    name: str
    color: Optional[str] = None

    @model_validator(mode="after")
    def _default_slug(self) -> "TagEntry":
        if not self.slug:
            self.slug = slugify(self.name)
        return self


class CourseEntry(CatalogModel):
    slug: str
    language: str
    title: str
    description: Optional[str] = None
    level: CourseLevel = CourseLevel.beginner
    published: bool = False
    # position among the courses of the same language, not globally unique
    sort_order: int = 0


class LessonEntry(OrderedEntry):
    slug: str
    title: str
    md_file_path: Optional[str] = None
    content_md: Optional[str] = None
    excerpt: Optional[str] = None
    published: bool = False
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    tags: list[str] = Field(default_factory=list)


class LessonCatalog(CatalogModel):
    course: Optional[str] = None
    lessons: list[LessonEntry]

    @model_validator(mode="after")
    def _order_lessons(self) -> "LessonCatalog":
        self.lessons = normalize_order(self.lessons, "lesson")
        slugs = [lesson.slug for lesson in self.lessons]
        duplicates = sorted({slug for slug in slugs if slugs.count(slug) > 1})
        if duplicates:
            raise ValueError(f"duplicate lesson slugs: {duplicates}")
        return self


class OptionEntry(OrderedEntry):
    text: str
    correct: bool = False


class QuestionEntry(OrderedEntry):
    question: str
    explanation: Optional[str] = None
    options: list[OptionEntry]

    @model_validator(mode="after")
    def _order_options(self) -> "QuestionEntry":
        self.options = normalize_order(self.options, "option")
        return self


class QuizMetadata(CatalogModel):
    title: str
    description: Optional[str] = None
    published: bool = True


class QuizCatalog(QuizMetadata):
    course: Optional[str] = None
    questions: list[QuestionEntry]

    @model_validator(mode="after")
    def _order_questions(self) -> "QuizCatalog":
        self.questions = normalize_order(self.questions, "question")
        return self


class ExerciseEntry(CatalogModel):
    # sort_order of the target lesson inside the course
    lesson: int = Field(ge=1)
    title: str
    language: str
    description: Optional[str] = None
    starter_code: Optional[str] = None
    solution_code: Optional[str] = None

    def row_values(self) -> dict[str, Any]:
        return self.model_dump(exclude={"lesson"})


class ExerciseCatalog(CatalogModel):
    course: Optional[str] = None
    exercises: list[ExerciseEntry]

    @model_validator(mode="after")
    def _unique_lessons(self) -> "ExerciseCatalog":
        targets = [exercise.lesson for exercise in self.exercises]
        duplicates = sorted({target for target in targets if targets.count(target) > 1})
        if duplicates:
            raise ValueError(f"more than one exercise for lessons {duplicates}")
        return self


@dataclass
class Catalog:
    users: list[UserEntry] = field(default_factory=list)
    languages: list[LanguageEntry] = field(default_factory=list)
    tags: list[TagEntry] = field(default_factory=list)
    courses: list[CourseEntry] = field(default_factory=list)
    lessons: dict[str, LessonCatalog] = field(default_factory=dict)
    quizzes: dict[str, QuizCatalog] = field(default_factory=dict)
    exercises: dict[str, ExerciseCatalog] = field(default_factory=dict)

    def course_slugs(self) -> list[str]:
        """Courses with content, in courses.json order, then any others by slug."""
        with_content = set(self.lessons) | set(self.quizzes) | set(self.exercises)
        ordered = [course.slug for course in self.courses if course.slug in with_content]
        return ordered + sorted(with_content - set(ordered))


_users = TypeAdapter(list[UserEntry])
_languages = TypeAdapter(list[LanguageEntry])
_tags = TypeAdapter(list[TagEntry])
_courses = TypeAdapter(list[CourseEntry])


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"cannot read file: {exc.strerror}", path) from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"invalid JSON at line {exc.lineno}: {exc.msg}", path) from exc


def _validate(adapter_or_model: Any, data: Any, path: Path) -> Any:
    try:
        if isinstance(adapter_or_model, TypeAdapter):
            return adapter_or_model.validate_python(data)
        return adapter_or_model.model_validate(data)
    except ValidationError as exc:
        raise CatalogError(str(exc), path) from exc


def _load_list(path: Path, adapter: TypeAdapter) -> list:
    if not path.exists():
        return []
    return _validate(adapter, _read_json(path), path)


def _load_per_course(directory: Path, model: type[BaseModel]) -> dict[str, Any]:
    loaded: dict[str, Any] = {}
    if not directory.is_dir():
        return loaded
    for path in sorted(directory.glob("*.json")):
        entry = _validate(model, _read_json(path), path)
        if not entry.course:
            entry.course = path.stem
        if entry.course in loaded:
            raise CatalogError(f"course '{entry.course}' is already defined in another file", path)
        loaded[entry.course] = entry
    return loaded


def load_catalog(directory: Path) -> Catalog:
    """Load and validate every catalog file under ``directory``.

    Raises CatalogError before anything is written if a file is malformed.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise CatalogError("catalog directory does not exist", directory)

    catalog = Catalog(
        users=_load_list(directory / "users.json", _users),
        languages=_load_list(directory / "languages.json", _languages),
        tags=_load_list(directory / "tags.json", _tags),
        courses=_load_list(directory / "courses.json", _courses),
        lessons=_load_per_course(directory / "lessons", LessonCatalog),
        quizzes=_load_per_course(directory / "quizzes", QuizCatalog),
        exercises=_load_per_course(directory / "exercises", ExerciseCatalog),
    )

    logger.info(
        "catalog loaded",
        directory=str(directory),
        users=len(catalog.users),
        languages=len(catalog.languages),
        tags=len(catalog.tags),
        courses=len(catalog.courses),
        lesson_files=len(catalog.lessons),
        quiz_files=len(catalog.quizzes),
        exercise_files=len(catalog.exercises),
    )
    return catalog
