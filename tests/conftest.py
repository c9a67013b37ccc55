"""
Pytest configuration and fixtures for testing.
"""
import json
import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from courseseed.db.base import Base
from courseseed.modules import Course, CourseLevel, Language, Lesson, Tag
from courseseed.seeding.output import SeedOutput
from courseseed.seeding.reconciler import Reconciler
from courseseed.seeding.resolver import ParentResolver
from courseseed.seeding.store import SqlAlchemyStore, UpsertResult


# Test database URL
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    """Returns a later naive timestamp on every call."""

    def __init__(self, start=datetime(2026, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self):
        self.current = self.current + timedelta(minutes=1)
        return self.current


class InMemoryStore:
    """ContentStore keeping transient model instances in per-model lists."""

    def __init__(self):
        self.rows = {}

    def _table(self, model):
        return self.rows.setdefault(model, [])

    @staticmethod
    def _matches(row, criteria):
        return all(getattr(row, key) == value for key, value in criteria.items())

    def find_by_key(self, model, **key):
        found = [row for row in self._table(model) if self._matches(row, key)]
        assert len(found) <= 1, f"natural key {key} matched {len(found)} {model.__name__} rows"
        return found[0] if found else None

    def find_all(self, model, order_by=None, **criteria):
        found = [row for row in self._table(model) if self._matches(row, criteria)]
        if order_by:
            found.sort(key=lambda row: getattr(row, order_by))
        return found

    def insert(self, model, **values):
        row = model(**values)
        if row.id is None:
            row.id = uuid.uuid4()
        self._table(model).append(row)
        return row

    def update(self, row, **values):
        for key, value in values.items():
            if not hasattr(type(row), key):
                raise AttributeError(f"{type(row).__name__} has no attribute '{key}'")
            setattr(row, key, value)
        return row

    def upsert(self, model, key, values, create_values=None):
        row = self.find_by_key(model, **key)
        if row is not None:
            return UpsertResult(self.update(row, **values), created=False)
        return UpsertResult(self.insert(model, **key, **values, **(create_values or {})), created=True)

    def delete_children_of(self, model, **parent_key):
        table = self._table(model)
        kept = [row for row in table if not self._matches(row, parent_key)]
        removed = len(table) - len(kept)
        self.rows[model] = kept
        return removed

    def count(self, model, **criteria):
        return len(self.find_all(model, **criteria))

    def attach(self, row, relation, items):
        collection = getattr(row, relation)
        attached = 0
        for item in items:
            if item not in collection:
                collection.append(item)
                attached += 1
        return attached


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db):
    return SqlAlchemyStore(db)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def reconciler(store, clock):
    return Reconciler(store, clock)


@pytest.fixture
def resolver(store):
    return ParentResolver(store)


@pytest.fixture
def output(capsys):
    return SeedOutput()


@pytest.fixture
def seeder_context(resolver, reconciler, output):
    return {"resolver": resolver, "reconciler": reconciler, "output": output}


@pytest.fixture
def python_language(db):
    """Create the Python language."""
    language = Language(id=uuid.uuid4(), slug="python", name="Python", sort_order=2)
    db.add(language)
    db.commit()
    db.refresh(language)
    return language


@pytest.fixture
def python_course(db, python_language):
    """Create the Python course without lessons."""
    course = Course(
        id=uuid.uuid4(),
        language_id=python_language.id,
        slug="python-desde-cero",
        title="Python desde Cero",
        level=CourseLevel.beginner,
        published=True,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@pytest.fixture
def python_lessons(db, python_course):
    """Create lessons with sort_order 1, 2 and 4 (3 is intentionally missing)."""
    lessons = []
    for order, slug in [(1, "introduccion"), (2, "variables"), (4, "listas")]:
        lesson = Lesson(
            id=uuid.uuid4(),
            course_id=python_course.id,
            slug=slug,
            title=slug.title(),
            sort_order=order,
            published=True,
        )
        db.add(lesson)
        lessons.append(lesson)
    db.commit()
    return {lesson.sort_order: lesson for lesson in lessons}


@pytest.fixture
def beginner_tag(db):
    tag = Tag(id=uuid.uuid4(), slug="principiante", name="Principiante")
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return tag


def quiz_payload(option_counts, title="Evaluación: Python"):
    """Quiz catalog data with one question per entry of ``option_counts``."""
    return {
        "course": "python-desde-cero",
        "title": title,
        "description": "Pon a prueba tus conocimientos.",
        "published": True,
        "questions": [
            {
                "question": f"Pregunta {number}",
                "explanation": f"Explicación {number}",
                "options": [
                    {"text": f"Opción {number}.{option}", "correct": option == 1}
                    for option in range(1, count + 1)
                ],
            }
            for number, count in enumerate(option_counts, start=1)
        ],
    }


def exercise_payload(lessons, title_prefix="Ejercicio"):
    return {
        "course": "python-desde-cero",
        "exercises": [
            {
                "lesson": lesson,
                "title": f"{title_prefix} {lesson}",
                "language": "python",
                "description": f"Descripción {lesson}",
                "starter_code": "def solve():\n    pass\n",
                "solution_code": "def solve():\n    return 42\n",
            }
            for lesson in lessons
        ],
    }


@pytest.fixture
def catalog_dir(tmp_path):
    """A complete catalog directory for one Python course."""
    root = tmp_path / "catalog"
    for sub in ("lessons", "quizzes", "exercises"):
        (root / sub).mkdir(parents=True)

    (root / "users.json").write_text(json.dumps([
        {"email": "admin@superguide.com", "name": "Admin", "password": "Admin@2024", "role": "admin"},
    ]), encoding="utf-8")
    (root / "languages.json").write_text(json.dumps([
        {"name": "Python", "color": "#3776ab", "icon": "🐍"},
        {"name": "Excel", "color": "#217346"},
    ]), encoding="utf-8")
    (root / "tags.json").write_text(json.dumps([
        {"name": "Principiante", "color": "#10b981"},
        {"name": "Funciones", "color": "#8b5cf6"},
    ]), encoding="utf-8")
    (root / "courses.json").write_text(json.dumps([
        {
            "slug": "python-desde-cero",
            "language": "python",
            "title": "Python desde Cero",
            "level": "beginner",
            "published": True,
            "sort_order": 9,
        },
    ]), encoding="utf-8")
    (root / "lessons" / "python-desde-cero.json").write_text(json.dumps({
        "lessons": [
            {"order": 1, "slug": "introduccion", "title": "Introducción", "published": True, "tags": ["principiante"]},
            {"order": 2, "slug": "variables", "title": "Variables", "published": True, "tags": ["principiante"]},
            {"order": 3, "slug": "funciones", "title": "Funciones", "published": True, "tags": ["funciones"]},
        ],
    }), encoding="utf-8")
    (root / "quizzes" / "python-desde-cero.json").write_text(
        json.dumps(quiz_payload([2, 4, 1])), encoding="utf-8"
    )
    (root / "exercises" / "python-desde-cero.json").write_text(
        json.dumps(exercise_payload([1, 2, 3])), encoding="utf-8"
    )
    return root
