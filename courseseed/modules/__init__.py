# courseseed/modules/__init__.py
# Importing the package registers every table on Base.metadata

from .courses.models import Course, CourseLevel, Language, Lesson, Tag, lesson_tag
from .quizzes.models import Quiz, QuizOption, QuizQuestion
from .exercises.models import LessonExercise
from .users.models import User, UserRole

__all__ = [
    "Course",
    "CourseLevel",
    "Language",
    "Lesson",
    "LessonExercise",
    "Quiz",
    "QuizOption",
    "QuizQuestion",
    "Tag",
    "User",
    "UserRole",
    "lesson_tag",
]
