"""Tests for quiz rebuilds and exercise upserts."""

import pytest
from sqlalchemy import select

from courseseed.modules import Lesson, LessonExercise, Quiz, QuizOption, QuizQuestion
from courseseed.seeding.catalog import ExerciseEntry, QuizCatalog
from courseseed.seeding.reconciler import FindOrCreate, Reconciler

from conftest import FakeClock, exercise_payload, quiz_payload


def quiz_catalog(option_counts, **kwargs):
    return QuizCatalog.model_validate(quiz_payload(option_counts, **kwargs))


def exercise(lesson, **overrides):
    data = exercise_payload([lesson])["exercises"][0]
    data.update(overrides)
    return ExerciseEntry.model_validate(data)


def questions_of(db, quiz_id):
    return db.execute(
        select(QuizQuestion).where(QuizQuestion.quiz_id == quiz_id).order_by(QuizQuestion.sort_order)
    ).scalars().all()


def options_of(db, question_id):
    return db.execute(
        select(QuizOption)
        .where(QuizOption.quiz_question_id == question_id)
        .order_by(QuizOption.sort_order)
    ).scalars().all()


class TestQuizRebuild:
    """Quiz upsert plus destructive rebuild of questions and options."""

    def test_first_run_creates_quiz_questions_and_options(self, db, reconciler, python_course):
        catalog = quiz_catalog([2, 4, 1])

        inserted = reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()

        assert inserted == 3
        quiz = db.execute(select(Quiz).where(Quiz.course_id == python_course.id)).scalar_one()
        assert quiz.title == "Evaluación: Python"
        assert quiz.published is True
        questions = questions_of(db, quiz.id)
        assert [q.sort_order for q in questions] == [1, 2, 3]
        assert [len(options_of(db, q.id)) for q in questions] == [2, 4, 1]

    def test_seeding_twice_keeps_three_questions_and_seven_options(self, db, reconciler, store, python_course):
        catalog = quiz_catalog([2, 4, 1])

        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()
        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()

        assert store.count(Quiz) == 1
        assert store.count(QuizQuestion) == 3
        assert store.count(QuizOption) == 7
        quiz = store.find_by_key(Quiz, course_id=python_course.id)
        assert [q.sort_order for q in questions_of(db, quiz.id)] == [1, 2, 3]

    def test_repeated_runs_yield_identical_content(self, db, reconciler, python_course):
        catalog = quiz_catalog([3, 2])

        def snapshot():
            quiz = db.execute(select(Quiz)).scalar_one()
            return [
                (q.sort_order, q.question, q.explanation,
                 [(o.sort_order, o.text, o.is_correct) for o in options_of(db, q.id)])
                for q in questions_of(db, quiz.id)
            ]

        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()
        first = snapshot()
        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()

        assert snapshot() == first

    def test_shrinking_catalog_removes_orphans(self, db, reconciler, store, python_course):
        bigger = quiz_catalog([4, 4, 4, 4])
        smaller = quiz_catalog([2])

        reconciler.reconcile_quiz(python_course, bigger, bigger.questions)
        db.commit()
        reconciler.reconcile_quiz(python_course, smaller, smaller.questions)
        db.commit()

        assert store.count(QuizQuestion) == 1
        assert store.count(QuizOption) == 2

    def test_quiz_row_is_updated_in_place(self, db, reconciler, store, python_course):
        first = quiz_catalog([2], title="Primera versión")
        second = quiz_catalog([2], title="Segunda versión")

        reconciler.reconcile_quiz(python_course, first, first.questions)
        db.commit()
        quiz_id = store.find_by_key(Quiz, course_id=python_course.id).id
        reconciler.reconcile_quiz(python_course, second, second.questions)
        db.commit()

        quiz = store.find_by_key(Quiz, course_id=python_course.id)
        assert quiz.id == quiz_id
        assert quiz.title == "Segunda versión"

    def test_explicit_order_overrides_file_position(self, db, reconciler, python_course):
        payload = quiz_payload([1, 1])
        payload["questions"][0]["order"] = 2
        payload["questions"][1]["order"] = 1
        catalog = QuizCatalog.model_validate(payload)

        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()

        quiz = db.execute(select(Quiz)).scalar_one()
        assert [q.question for q in questions_of(db, quiz.id)] == ["Pregunta 2", "Pregunta 1"]

    def test_options_keep_authored_order_and_correct_flag(self, db, reconciler, python_course):
        catalog = quiz_catalog([3])

        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        db.commit()

        question = db.execute(select(QuizQuestion)).scalar_one()
        options = options_of(db, question.id)
        assert [o.text for o in options] == ["Opción 1.1", "Opción 1.2", "Opción 1.3"]
        assert [o.is_correct for o in options] == [True, False, False]

    def test_works_against_in_memory_store(self, memory_store, python_course):
        reconciler = Reconciler(memory_store, FakeClock())
        catalog = quiz_catalog([2, 4, 1])

        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)
        reconciler.reconcile_quiz(python_course, catalog, catalog.questions)

        assert memory_store.count(Quiz) == 1
        assert memory_store.count(QuizQuestion) == 3
        assert memory_store.count(QuizOption) == 7
        questions = memory_store.find_all(QuizQuestion, order_by="sort_order")
        assert [q.sort_order for q in questions] == [1, 2, 3]
        for question in questions:
            options = memory_store.find_all(QuizOption, order_by="sort_order", quiz_question_id=question.id)
            assert [o.sort_order for o in options] == list(range(1, len(options) + 1))


class TestExerciseUpsert:
    """Exercise rows are upserted by lesson_id and keep their identity."""

    def test_insert_then_update_keeps_row_id(self, db, reconciler, store, python_lessons):
        lesson = python_lessons[1]

        created = reconciler.reconcile_exercise(lesson.id, exercise(1))
        db.commit()
        row_id = created.row.id
        updated = reconciler.reconcile_exercise(lesson.id, exercise(1, title="Nuevo título"))
        db.commit()

        assert created.created is True
        assert updated.created is False
        assert store.count(LessonExercise, lesson_id=lesson.id) == 1
        row = store.find_by_key(LessonExercise, lesson_id=lesson.id)
        assert row.id == row_id
        assert row.title == "Nuevo título"

    def test_created_at_preserved_and_updated_at_refreshed(self, db, reconciler, store, python_lessons):
        lesson = python_lessons[2]

        reconciler.reconcile_exercise(lesson.id, exercise(2))
        db.commit()
        first = store.find_by_key(LessonExercise, lesson_id=lesson.id)
        created_at, updated_at = first.created_at, first.updated_at

        reconciler.reconcile_exercise(lesson.id, exercise(2))
        db.commit()
        second = store.find_by_key(LessonExercise, lesson_id=lesson.id)

        assert second.created_at == created_at
        assert second.updated_at > updated_at

    def test_missing_solution_clears_previous_solution(self, db, reconciler, store, python_lessons):
        lesson = python_lessons[1]

        reconciler.reconcile_exercise(lesson.id, exercise(1))
        db.commit()
        reconciler.reconcile_exercise(lesson.id, exercise(1, solution_code=None))
        db.commit()

        assert store.find_by_key(LessonExercise, lesson_id=lesson.id).solution_code is None

    def test_one_row_per_lesson_after_many_runs(self, db, reconciler, store, python_lessons):
        for _ in range(3):
            for order, lesson in python_lessons.items():
                reconciler.reconcile_exercise(lesson.id, exercise(order))
            db.commit()

        assert store.count(LessonExercise) == len(python_lessons)


class TestFindOrCreate:
    """First-or-create never overwrites an existing row."""

    def test_existing_row_is_left_untouched(self, db, store, python_course):
        strategy = FindOrCreate(store, FakeClock())
        key = {"course_id": python_course.id, "slug": "intro"}

        first = strategy.apply(Lesson, key, {"title": "Original", "sort_order": 1})
        db.commit()
        second = strategy.apply(Lesson, key, {"title": "Cambiado", "sort_order": 1})
        db.commit()

        assert first.created is True
        assert second.created is False
        assert second.row.id == first.row.id
        assert store.find_by_key(Lesson, **key).title == "Original"

    @pytest.mark.parametrize("runs", [1, 2, 5])
    def test_single_row_regardless_of_runs(self, memory_store, runs):
        strategy = FindOrCreate(memory_store, FakeClock())
        for _ in range(runs):
            strategy.apply(Lesson, {"slug": "intro"}, {"title": "Intro", "sort_order": 1})

        assert memory_store.count(Lesson) == 1
